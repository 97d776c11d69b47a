from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import GuestLink
from .repository import GuestLinkRepository

_COLUMNS = "token, site_id, expires_at, can_edit_attendance, is_deleted, deleted_at, created_at"


def _to_link(row: Dict[str, Any]) -> GuestLink:
    return GuestLink(
        token=row["token"],
        site_id=row["site_id"],
        expires_at=row.get("expires_at"),
        can_edit_attendance=as_bool(row.get("can_edit_attendance")),
        is_deleted=as_bool(row.get("is_deleted")),
        deleted_at=row.get("deleted_at"),
        created_at=row.get("created_at"),
    )


class MySQLGuestLinkRepository(GuestLinkRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, token: str) -> Optional[GuestLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM guest_links WHERE token=%s", (token,))
            row = fetchone(cur)
            return _to_link(row) if row else None

    def list_all(self) -> Sequence[GuestLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM guest_links ORDER BY created_at DESC")
            return [_to_link(r) for r in fetchall(cur)]

    def latest_for_site(self, site_id: str, *, deleted: bool) -> Optional[GuestLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM guest_links
                WHERE site_id=%s AND is_deleted=%s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (site_id, 1 if deleted else 0),
            )
            row = fetchone(cur)
            return _to_link(row) if row else None

    def create(self, link: GuestLink) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO guest_links(token, site_id, expires_at, can_edit_attendance, is_deleted)
                VALUES(%s,%s,%s,%s,0)
                """,
                (link.token, link.site_id, link.expires_at, 1 if link.can_edit_attendance else 0),
            )

    def revive(self, token: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE guest_links SET is_deleted=0, deleted_at=NULL WHERE token=%s", (token,))
            return cur.rowcount > 0

    def soft_delete(self, token: str, *, deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE guest_links SET is_deleted=1, deleted_at=%s WHERE token=%s",
                (deleted_at, token),
            )
            return cur.rowcount > 0

    def hard_delete(self, token: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM guest_links WHERE token=%s", (token,))
            return cur.rowcount > 0

    def update_expiry(self, token: str, expires_at: Optional[date]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE guest_links SET expires_at=%s WHERE token=%s", (expires_at, token))
            return cur.rowcount > 0

    def purge_deleted_before(self, cutoff: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM guest_links WHERE is_deleted=1 AND deleted_at <= %s", (cutoff,))
            return int(cur.rowcount or 0)

    def purge_expired_before(self, today: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM guest_links WHERE expires_at IS NOT NULL AND expires_at < %s", (today,))
            return int(cur.rowcount or 0)
