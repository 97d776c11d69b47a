from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import Contractor
from .repository import ContractorRepository

_COLUMNS = "contractor_id, name, default_work_category_id, show_in_attendance, is_deleted"


def _to_contractor(row: Dict[str, Any]) -> Contractor:
    return Contractor(
        contractor_id=row["contractor_id"],
        name=row["name"],
        default_work_category_id=row.get("default_work_category_id"),
        show_in_attendance=as_bool(row.get("show_in_attendance", 1)),
        is_deleted=as_bool(row.get("is_deleted")),
    )


class MySQLContractorRepository(ContractorRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[Contractor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM contractors WHERE is_deleted=0 ORDER BY contractor_id")
            return [_to_contractor(r) for r in fetchall(cur)]

    def get(self, contractor_id: str) -> Optional[Contractor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM contractors WHERE contractor_id=%s", (contractor_id,))
            row = fetchone(cur)
            return _to_contractor(row) if row else None

    def create(self, contractor: Contractor) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO contractors(contractor_id, name, default_work_category_id, show_in_attendance, is_deleted)
                VALUES(%s,%s,%s,%s,0)
                """,
                (
                    contractor.contractor_id,
                    contractor.name,
                    contractor.default_work_category_id,
                    1 if contractor.show_in_attendance else 0,
                ),
            )

    def update_settings(
        self,
        contractor_id: str,
        *,
        default_work_category_id: Optional[str],
        show_in_attendance: bool,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE contractors
                SET default_work_category_id=%s, show_in_attendance=%s
                WHERE contractor_id=%s
                """,
                (default_work_category_id, 1 if show_in_attendance else 0, contractor_id),
            )
            return cur.rowcount > 0

    def soft_delete(self, contractor_id: str, *, deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE contractors SET is_deleted=1, deleted_at=%s WHERE contractor_id=%s",
                (deleted_at, contractor_id),
            )
            return cur.rowcount > 0
