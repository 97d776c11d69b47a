from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, in_clause
from .model import Worker
from .repository import WorkerRepository

# last_active_date is derived from attendance, never stored
_SELECT = """
    SELECT w.worker_id, w.name, w.contractor_id, w.is_deleted,
           (SELECT MAX(e.entry_date) FROM attendance_entries e WHERE e.worker_id = w.worker_id) AS last_active_date
    FROM workers w
"""


def _to_worker(row: Dict[str, Any]) -> Worker:
    return Worker(
        worker_id=row["worker_id"],
        name=row["name"],
        contractor_id=row["contractor_id"],
        is_deleted=as_bool(row.get("is_deleted")),
        last_active_date=row.get("last_active_date"),
    )


class MySQLWorkerRepository(WorkerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_by_contractors(self, contractor_ids: Sequence[str], *, include_deleted: bool = False) -> Sequence[Worker]:
        if not contractor_ids:
            return []
        sql = f"{_SELECT} WHERE w.contractor_id IN ({in_clause(contractor_ids)})"
        if not include_deleted:
            sql += " AND w.is_deleted=0"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY w.name", tuple(contractor_ids))
            return [_to_worker(r) for r in fetchall(cur)]

    def list_active(self) -> Sequence[Worker]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE w.is_deleted=0 ORDER BY w.contractor_id, w.name")
            return [_to_worker(r) for r in fetchall(cur)]

    def get(self, worker_id: str) -> Optional[Worker]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE w.worker_id=%s", (worker_id,))
            row = fetchone(cur)
            return _to_worker(row) if row else None

    def create(self, worker: Worker) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO workers(worker_id, name, contractor_id, is_deleted) VALUES(%s,%s,%s,0)",
                (worker.worker_id, worker.name, worker.contractor_id),
            )

    def update(self, worker_id: str, *, name: str, contractor_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE workers SET name=%s, contractor_id=%s, is_deleted=0, deleted_at=NULL
                WHERE worker_id=%s
                """,
                (name, contractor_id, worker_id),
            )
            return cur.rowcount > 0

    def revive(self, worker_ids: Sequence[str]) -> int:
        if not worker_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE workers SET is_deleted=0, deleted_at=NULL WHERE worker_id IN ({in_clause(worker_ids)})",
                tuple(worker_ids),
            )
            return int(cur.rowcount or 0)

    def soft_delete(self, worker_id: str, *, deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE workers SET is_deleted=1, deleted_at=%s WHERE worker_id=%s",
                (deleted_at, worker_id),
            )
            return cur.rowcount > 0
