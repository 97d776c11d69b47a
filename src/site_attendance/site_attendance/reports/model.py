from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, Optional, Tuple

from ..core.enums import MemoMatch, ReportMode


@dataclass(frozen=True)
class ReportEntry:
    """Attendance row joined with its master names (read-model for reports)."""

    entry_date: date
    contractor_id: Optional[str] = None
    contractor_name: Optional[str] = None
    worker_id: Optional[str] = None
    worker_name: Optional[str] = None
    work_type_id: Optional[str] = None
    work_type_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    memo: Optional[str] = None


@dataclass(frozen=True)
class ReportFilters:
    """Detail-mode filters. Empty values do not filter."""

    category_id: Optional[str] = None
    work_type_id: Optional[str] = None
    contractor_key: Optional[str] = None
    worker_name: Optional[str] = None
    memo_query: str = ""
    memo_match: MemoMatch = MemoMatch.PARTIAL


@dataclass(frozen=True)
class ContractorTotal:
    key: str
    name: str
    man_days: int
    is_external: bool = False


@dataclass(frozen=True)
class WorkerRow:
    bucket_key: str
    bucket_name: str
    display_name: str
    dates: FrozenSet[date] = frozenset()
    is_external: bool = False

    @property
    def days(self) -> int:
        return len(self.dates)


@dataclass(frozen=True)
class DayColumn:
    day: date
    weekday: str

    @property
    def label(self) -> str:
        return f"{self.day.day}({self.weekday})"


@dataclass(frozen=True)
class GridRow:
    worker: WorkerRow
    marks: Tuple[str, ...]


@dataclass(frozen=True)
class MonthGrid:
    columns: Tuple[DayColumn, ...] = ()
    rows: Tuple[GridRow, ...] = ()


@dataclass(frozen=True)
class DetailRow:
    entry_date: date
    bucket_key: str
    bucket_name: str
    display_name: str
    category_name: str = ""
    work_type_name: str = ""
    memo: str = ""


@dataclass(frozen=True)
class Report:
    mode: ReportMode
    start: Optional[date] = None
    end: Optional[date] = None
    site_id: Optional[str] = None
    site_name: str = ""
    contractor_totals: Tuple[ContractorTotal, ...] = ()
    worker_rows: Tuple[WorkerRow, ...] = ()
    month_grid: Optional[MonthGrid] = None
    period_totals: Tuple[WorkerRow, ...] = ()
    detail_rows: Tuple[DetailRow, ...] = field(default_factory=tuple)

    @property
    def total_man_days(self) -> int:
        return sum(t.man_days for t in self.contractor_totals)

    @property
    def range_label(self) -> str:
        if self.mode == ReportMode.MONTH and self.start:
            return f"{self.start.year}年{self.start.month}月"
        if self.start and self.end:
            return f"{self.start.isoformat()}〜{self.end.isoformat()}"
        return ""
