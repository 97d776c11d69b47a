from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..attendance.memo_codec import ExternalMemoCodec
from ..common.datetime_utils import days_in_range, month_range, weekday_label
from ..core.constants import EXTERNAL_BUCKET_KEY
from ..core.enums import ReportMode
from ..naming.collation import collation_key
from ..naming.normalizer import NameNormalizer, default_normalizer
from .memo_query import MemoQuery
from .model import (
    ContractorTotal,
    DayColumn,
    DetailRow,
    GridRow,
    MonthGrid,
    Report,
    ReportEntry,
    ReportFilters,
    WorkerRow,
)

PRESENT_MARK = "◯"

Bucket = Tuple[str, str]


class Aggregator:
    """Groups report entries into contractor buckets.

    Bucket of an entry: its contractor when the contractor is known, else the
    external bucket when the memo carries the external marker, else the raw
    contractor id (used as the name). Entries with none of these are dropped
    from totals and worker rows.
    """

    def __init__(self, codec: ExternalMemoCodec, *, normalizer: Optional[NameNormalizer] = None):
        self._codec = codec
        self._normalizer = normalizer or default_normalizer

    def bucket(self, entry: ReportEntry) -> Optional[Bucket]:
        if entry.contractor_id and entry.contractor_name:
            return entry.contractor_id, self._normalizer.strip_legal_suffix(entry.contractor_name)
        if self._codec.decode(entry.memo) is not None:
            return EXTERNAL_BUCKET_KEY, self._codec.marker
        if entry.contractor_id:
            return entry.contractor_id, entry.contractor_id
        return None

    def display_name(self, entry: ReportEntry) -> Optional[str]:
        if entry.worker_name:
            return entry.worker_name
        decoded = self._codec.decode(entry.memo)
        if decoded is not None:
            return decoded.name
        return entry.worker_id

    def contractor_totals(self, entries: Iterable[ReportEntry]) -> List[ContractorTotal]:
        names: Dict[str, str] = {}
        day_keys: Dict[str, Set[Tuple[date, str]]] = {}
        for entry in entries:
            bucket = self.bucket(entry)
            if bucket is None:
                continue
            key, name = bucket
            names.setdefault(key, name)
            keys = day_keys.setdefault(key, set())
            if key == EXTERNAL_BUCKET_KEY:
                decoded = self._codec.decode(entry.memo)
                if decoded is not None:
                    keys.add((entry.entry_date, decoded.name))
            elif entry.worker_id:
                keys.add((entry.entry_date, entry.worker_id))

        totals = [
            ContractorTotal(key=key, name=names[key], man_days=len(keys), is_external=key == EXTERNAL_BUCKET_KEY)
            for key, keys in day_keys.items()
        ]
        totals.sort(key=lambda t: (not t.is_external, collation_key(t.name)))
        return totals

    def worker_rows(self, entries: Iterable[ReportEntry]) -> List[WorkerRow]:
        rows: Dict[Tuple[str, str], Tuple[str, Set[date]]] = {}
        for entry in entries:
            bucket = self.bucket(entry)
            name = self.display_name(entry)
            if bucket is None or not name:
                continue
            key, bucket_name = bucket
            _, dates = rows.setdefault((bucket_name, name), (key, set()))
            dates.add(entry.entry_date)

        result = [
            WorkerRow(
                bucket_key=key,
                bucket_name=bucket_name,
                display_name=name,
                dates=frozenset(dates),
                is_external=key == EXTERNAL_BUCKET_KEY,
            )
            for (bucket_name, name), (key, dates) in rows.items()
        ]
        result.sort(key=lambda r: (not r.is_external, collation_key(r.bucket_name), collation_key(r.display_name)))
        return result

    @staticmethod
    def month_grid(worker_rows: Sequence[WorkerRow], year: int, month: int) -> MonthGrid:
        first, last = month_range(year, month)
        days = days_in_range(first, last)
        columns = tuple(DayColumn(day=d, weekday=weekday_label(d)) for d in days)
        rows = tuple(
            GridRow(worker=row, marks=tuple(PRESENT_MARK if d in row.dates else "" for d in days))
            for row in worker_rows
        )
        return MonthGrid(columns=columns, rows=rows)

    def detail_rows(self, entries: Iterable[ReportEntry], filters: ReportFilters) -> List[DetailRow]:
        query = MemoQuery.parse(filters.memo_query)
        result: List[DetailRow] = []
        for entry in entries:
            if filters.category_id and entry.category_id != filters.category_id:
                continue
            if filters.work_type_id and entry.work_type_id != filters.work_type_id:
                continue
            # stored text, marker and external name included
            if not query.matches(entry.memo or "", filters.memo_match):
                continue
            memo = self._codec.strip(entry.memo)
            bucket = self.bucket(entry)
            key, bucket_name = bucket if bucket is not None else ("", "")
            if filters.contractor_key and key != filters.contractor_key:
                continue
            name = self.display_name(entry) or ""
            if filters.worker_name and name != filters.worker_name:
                continue
            result.append(
                DetailRow(
                    entry_date=entry.entry_date,
                    bucket_key=key,
                    bucket_name=bucket_name,
                    display_name=name,
                    category_name=entry.category_name or "",
                    work_type_name=entry.work_type_name or "",
                    memo=memo,
                )
            )
        result.sort(key=lambda r: (r.entry_date, collation_key(r.bucket_name), collation_key(r.display_name)))
        return result

    def aggregate(
        self,
        entries: Sequence[ReportEntry],
        mode: ReportMode,
        filters: Optional[ReportFilters] = None,
        *,
        month: Optional[Tuple[int, int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Report:
        entries = list(entries or [])
        if mode == ReportMode.MONTH and month is not None:
            start, end = month_range(*month)

        totals = tuple(self.contractor_totals(entries))
        workers = tuple(self.worker_rows(entries))

        grid = None
        period_totals: Tuple[WorkerRow, ...] = ()
        details: Tuple[DetailRow, ...] = ()
        if mode == ReportMode.MONTH:
            if month is None and start is not None:
                month = (start.year, start.month)
            grid = self.month_grid(workers, *month) if month is not None else MonthGrid()
        elif mode == ReportMode.PERIOD:
            period_totals = tuple(r for r in workers if r.is_external)
        else:
            details = tuple(self.detail_rows(entries, filters or ReportFilters()))

        return Report(
            mode=mode,
            start=start,
            end=end,
            contractor_totals=totals,
            worker_rows=workers,
            month_grid=grid,
            period_totals=period_totals,
            detail_rows=details,
        )
