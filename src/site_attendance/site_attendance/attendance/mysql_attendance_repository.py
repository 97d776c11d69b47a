from __future__ import annotations

from datetime import date
from typing import Any, Dict, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause
from .model import AttendanceEntry, DayEntryView, ReconcilePlan
from .repository import AttendanceRepository

_ENTRY_COLUMNS = """
    e.entry_id, e.entry_date, e.site_id, e.contractor_id, e.worker_id, e.external_identity,
    e.work_type_id, e.memo, e.created_by, e.created_at
"""

_UPSERT_SQL = """
    INSERT INTO attendance_entries
        (entry_id, entry_date, site_id, contractor_id, worker_id, external_identity, work_type_id, memo, created_by)
    VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
    ON DUPLICATE KEY UPDATE
        contractor_id=VALUES(contractor_id),
        work_type_id=VALUES(work_type_id),
        memo=VALUES(memo),
        created_by=VALUES(created_by)
"""


def _to_entry(row: Dict[str, Any]) -> AttendanceEntry:
    return AttendanceEntry(
        entry_id=row["entry_id"],
        entry_date=row["entry_date"],
        site_id=row["site_id"],
        contractor_id=row.get("contractor_id"),
        worker_id=row.get("worker_id"),
        external_identity=row.get("external_identity"),
        work_type_id=row.get("work_type_id"),
        memo=row.get("memo"),
        created_by=row.get("created_by"),
        created_at=row.get("created_at"),
    )


def _upsert_params(entries: Sequence[AttendanceEntry]):
    return [
        (
            e.entry_id,
            e.entry_date,
            e.site_id,
            e.contractor_id,
            e.worker_id,
            e.external_identity,
            e.work_type_id,
            e.memo,
            e.created_by,
        )
        for e in entries
    ]


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_day(self, site_id: str, entry_date: date) -> Sequence[AttendanceEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS}
                FROM attendance_entries e
                WHERE e.site_id=%s AND e.entry_date=%s
                ORDER BY e.created_at, e.entry_id
                """,
                (site_id, entry_date),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def list_day_views(self, site_id: str, entry_date: date) -> Sequence[DayEntryView]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS},
                       c.name AS contractor_name,
                       w.name AS worker_name,
                       wt.name AS work_type_name,
                       u.username AS created_by_name
                FROM attendance_entries e
                LEFT JOIN contractors c ON c.contractor_id = e.contractor_id
                LEFT JOIN workers w ON w.worker_id = e.worker_id
                LEFT JOIN work_types wt ON wt.work_type_id = e.work_type_id
                LEFT JOIN users u ON u.user_id = e.created_by
                WHERE e.site_id=%s AND e.entry_date=%s
                ORDER BY e.created_at, e.entry_id
                """,
                (site_id, entry_date),
            )
            return [
                DayEntryView(
                    entry=_to_entry(r),
                    contractor_name=r.get("contractor_name"),
                    worker_name=r.get("worker_name"),
                    work_type_name=r.get("work_type_name"),
                    created_by_name=r.get("created_by_name"),
                )
                for r in fetchall(cur)
            ]

    def apply_day_plan(self, plan: ReconcilePlan) -> None:
        # One connection, one commit: a failed upsert rolls the deletions back too.
        with db_cursor(self._conn_factory) as (_, cur):
            if plan.clear_day:
                cur.execute(
                    "DELETE FROM attendance_entries WHERE site_id=%s AND entry_date=%s",
                    (plan.site_id, plan.entry_date),
                )
                return
            if plan.delete_ids:
                cur.execute(
                    f"DELETE FROM attendance_entries WHERE entry_id IN ({in_clause(plan.delete_ids)})",
                    tuple(plan.delete_ids),
                )
            if plan.roster_upserts:
                cur.executemany(_UPSERT_SQL, _upsert_params(plan.roster_upserts))
            if plan.external_upserts:
                cur.executemany(_UPSERT_SQL, _upsert_params(plan.external_upserts))

    def delete_day(self, site_id: str, entry_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_entries WHERE site_id=%s AND entry_date=%s",
                (site_id, entry_date),
            )
            return int(cur.rowcount or 0)

    def list_range(self, site_id: str, start: date, end: date) -> Sequence[AttendanceEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS}
                FROM attendance_entries e
                WHERE e.site_id=%s AND e.entry_date BETWEEN %s AND %s
                ORDER BY e.entry_date, e.created_at
                """,
                (site_id, start, end),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def upsert_entries(self, entries: Sequence[AttendanceEntry]) -> int:
        if not entries:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(_UPSERT_SQL, _upsert_params(entries))
            return len(entries)
