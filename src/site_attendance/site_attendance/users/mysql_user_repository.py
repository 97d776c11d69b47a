from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import User, UserSettings
from .repository import UserRepository

_USER_COLUMNS = "user_id, username, display_name, password_hash, role, is_active"


def _to_user(row: Dict[str, Any]) -> User:
    return User(
        user_id=row["user_id"],
        username=row["username"],
        display_name=row.get("display_name"),
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        is_active=as_bool(row.get("is_active", 1)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def list_active(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE is_active=1 ORDER BY username")
            return [_to_user(r) for r in fetchall(cur)]

    def create_user(
        self,
        *,
        user_id: str,
        username: str,
        display_name: Optional[str],
        password_hash: str,
        role: Role,
    ) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(user_id, username, display_name, password_hash, role, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (user_id, username, display_name, password_hash, role.value),
            )
        return user_id

    def update_user(self, *, user_id: str, display_name: Optional[str], role: Role) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET display_name=%s, role=%s WHERE user_id=%s",
                (display_name, role.value, user_id),
            )
            return cur.rowcount > 0

    def deactivate(self, user_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=0 WHERE user_id=%s", (user_id,))
            return cur.rowcount > 0

    def update_password(self, *, user_id: str, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, user_id))
            return cur.rowcount > 0

    def get_settings(self, user_id: str) -> UserSettings:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id, default_site_id FROM user_settings WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            if not row:
                return UserSettings(user_id=user_id)
            return UserSettings(user_id=row["user_id"], default_site_id=row.get("default_site_id"))

    def set_default_site(self, *, user_id: str, site_id: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_settings(user_id, default_site_id) VALUES(%s,%s)
                ON DUPLICATE KEY UPDATE default_site_id=VALUES(default_site_id)
                """,
                (user_id, site_id),
            )
