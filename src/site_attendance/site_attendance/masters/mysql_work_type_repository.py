from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import WorkCategory, WorkType
from .repository import WorkTypeRepository


def _to_category(row: Dict[str, Any]) -> WorkCategory:
    return WorkCategory(
        category_id=row["category_id"],
        name=row["name"],
        is_deleted=as_bool(row.get("is_deleted")),
    )


def _to_work_type(row: Dict[str, Any]) -> WorkType:
    return WorkType(
        work_type_id=row["work_type_id"],
        category_id=row["category_id"],
        name=row["name"],
        is_deleted=as_bool(row.get("is_deleted")),
    )


class MySQLWorkTypeRepository(WorkTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_categories(self) -> Sequence[WorkCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT category_id, name, is_deleted FROM work_categories WHERE is_deleted=0 ORDER BY name"
            )
            return [_to_category(r) for r in fetchall(cur)]

    def find_category_by_name(self, name: str) -> Optional[WorkCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT category_id, name, is_deleted FROM work_categories WHERE name=%s LIMIT 1",
                (name,),
            )
            row = fetchone(cur)
            return _to_category(row) if row else None

    def create_category(self, category: WorkCategory) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO work_categories(category_id, name, is_deleted) VALUES(%s,%s,0)",
                (category.category_id, category.name),
            )

    def update_category(self, category_id: str, *, name: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE work_categories SET name=%s WHERE category_id=%s", (name, category_id))
            return cur.rowcount > 0

    def set_category_deleted(self, category_id: str, deleted_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_categories SET is_deleted=%s, deleted_at=%s WHERE category_id=%s",
                (0 if deleted_at is None else 1, deleted_at, category_id),
            )
            return cur.rowcount > 0

    def list_work_types(self) -> Sequence[WorkType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT work_type_id, category_id, name, is_deleted
                FROM work_types WHERE is_deleted=0
                ORDER BY category_id, name
                """
            )
            return [_to_work_type(r) for r in fetchall(cur)]

    def find_work_type(self, category_id: str, name: str) -> Optional[WorkType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT work_type_id, category_id, name, is_deleted
                FROM work_types WHERE category_id=%s AND name=%s LIMIT 1
                """,
                (category_id, name),
            )
            row = fetchone(cur)
            return _to_work_type(row) if row else None

    def create_work_type(self, work_type: WorkType) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO work_types(work_type_id, category_id, name, is_deleted) VALUES(%s,%s,%s,0)",
                (work_type.work_type_id, work_type.category_id, work_type.name),
            )

    def update_work_type(self, work_type_id: str, *, name: str, category_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_types SET name=%s, category_id=%s WHERE work_type_id=%s",
                (name, category_id, work_type_id),
            )
            return cur.rowcount > 0

    def set_work_type_deleted(self, work_type_id: str, deleted_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE work_types SET is_deleted=%s, deleted_at=%s WHERE work_type_id=%s",
                (0 if deleted_at is None else 1, deleted_at, work_type_id),
            )
            return cur.rowcount > 0
