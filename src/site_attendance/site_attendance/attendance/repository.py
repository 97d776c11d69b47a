from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import AttendanceEntry, DayEntryView, ReconcilePlan


class AttendanceRepository(Protocol):
    def list_day(self, site_id: str, entry_date: date) -> Sequence[AttendanceEntry]:
        raise NotImplementedError

    def list_day_views(self, site_id: str, entry_date: date) -> Sequence[DayEntryView]:
        raise NotImplementedError

    def apply_day_plan(self, plan: ReconcilePlan) -> None:
        """Deletions, then roster upserts, then external upserts."""
        raise NotImplementedError

    def delete_day(self, site_id: str, entry_date: date) -> int:
        raise NotImplementedError

    def list_range(self, site_id: str, start: date, end: date) -> Sequence[AttendanceEntry]:
        raise NotImplementedError

    def upsert_entries(self, entries: Sequence[AttendanceEntry]) -> int:
        raise NotImplementedError
