from __future__ import annotations

from datetime import date
from typing import Any, Dict, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import ReportEntry
from .repository import ReportRepository


def _to_entry(row: Dict[str, Any]) -> ReportEntry:
    return ReportEntry(
        entry_date=row["entry_date"],
        contractor_id=row.get("contractor_id"),
        contractor_name=row.get("contractor_name"),
        worker_id=row.get("worker_id"),
        worker_name=row.get("worker_name"),
        work_type_id=row.get("work_type_id"),
        work_type_name=row.get("work_type_name"),
        category_id=row.get("category_id"),
        category_name=row.get("category_name"),
        memo=row.get("memo"),
    )


class MySQLReportRepository(ReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def fetch_page(self, site_id: str, start: date, end: date, *, offset: int, limit: int) -> Sequence[ReportEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT e.entry_date, e.contractor_id, c.name AS contractor_name,
                       e.worker_id, w.name AS worker_name,
                       e.work_type_id, t.name AS work_type_name,
                       t.category_id, g.name AS category_name,
                       e.memo
                FROM attendance_entries e
                LEFT JOIN contractors c ON c.contractor_id = e.contractor_id
                LEFT JOIN workers w ON w.worker_id = e.worker_id
                LEFT JOIN work_types t ON t.work_type_id = e.work_type_id
                LEFT JOIN work_categories g ON g.category_id = t.category_id
                WHERE e.site_id=%s AND e.entry_date BETWEEN %s AND %s
                ORDER BY e.entry_date, e.entry_id
                LIMIT %s OFFSET %s
                """,
                (site_id, start, end, int(limit), int(offset)),
            )
            return [_to_entry(r) for r in fetchall(cur)]
