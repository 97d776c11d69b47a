from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class AttendanceEntry:
    """入場記録 (1 worker or 1 external person, 1 site, 1 day).

    At most one of worker_id / external_identity is set.
    """

    entry_id: str
    entry_date: date
    site_id: str
    contractor_id: Optional[str]
    worker_id: Optional[str]
    external_identity: Optional[str]
    work_type_id: Optional[str] = None
    memo: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_external(self) -> bool:
        return self.worker_id is None and self.external_identity is not None

    @property
    def natural_key(self) -> Optional[Tuple[str, str]]:
        if self.worker_id:
            return ("worker", self.worker_id)
        if self.external_identity:
            return ("external", self.external_identity)
        return None


@dataclass(frozen=True)
class RosterRow:
    worker_id: str
    contractor_id: Optional[str] = None


@dataclass(frozen=True)
class ExternalRow:
    external_identity: str
    display_name: str
    memo: Optional[str] = None


RowIdentity = Union[RosterRow, ExternalRow]


@dataclass(frozen=True)
class DesiredRow:
    """One submitted line of the day form.

    identity=None is an empty placeholder line. entry_id is set when the line
    was loaded from an existing entry.
    """

    identity: Optional[RowIdentity] = None
    entry_id: Optional[str] = None
    work_type_id: Optional[str] = None
    memo: Optional[str] = None

    @property
    def natural_key(self) -> Optional[Tuple[str, str]]:
        if isinstance(self.identity, RosterRow):
            return ("worker", self.identity.worker_id)
        if isinstance(self.identity, ExternalRow):
            return ("external", self.identity.external_identity)
        return None


@dataclass(frozen=True)
class ReconcilePlan:
    site_id: str
    entry_date: date
    delete_ids: Tuple[str, ...] = ()
    roster_upserts: Tuple[AttendanceEntry, ...] = ()
    external_upserts: Tuple[AttendanceEntry, ...] = ()
    unchanged_ids: Tuple[str, ...] = ()
    clear_day: bool = False

    @property
    def upserts(self) -> Tuple[AttendanceEntry, ...]:
        return self.roster_upserts + self.external_upserts


@dataclass(frozen=True)
class DayEntryView:
    """Read-model for the day form: entry plus resolved names."""

    entry: AttendanceEntry
    contractor_name: Optional[str] = None
    worker_name: Optional[str] = None
    work_type_name: Optional[str] = None
    external_name: Optional[str] = None
    free_memo: str = ""
    created_by_name: Optional[str] = None
