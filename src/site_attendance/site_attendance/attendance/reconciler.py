from __future__ import annotations

import uuid
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..common.validators import is_uuid
from ..core.exceptions import InvalidWorkerIdError
from .memo_codec import ExternalMemoCodec
from .model import AttendanceEntry, DesiredRow, ExternalRow, ReconcilePlan, RosterRow


def _new_entry_id() -> str:
    return str(uuid.uuid4())


class EntryReconciler:
    """Diff a submitted day (site + date) against the entries already stored.

    Pure: no I/O. The caller applies the plan (deletions first, then roster
    upserts, then external upserts).
    """

    def __init__(self, codec: ExternalMemoCodec, *, id_factory: Callable[[], str] = _new_entry_id):
        self._codec = codec
        self._id_factory = id_factory

    @staticmethod
    def validate_worker_ids(rows: Iterable[DesiredRow]) -> None:
        invalid: List[str] = []
        for row in rows:
            if isinstance(row.identity, RosterRow):
                worker_id = row.identity.worker_id
                if not is_uuid(worker_id) and worker_id not in invalid:
                    invalid.append(worker_id)
        if invalid:
            raise InvalidWorkerIdError(invalid)

    @staticmethod
    def dedupe(rows: Sequence[DesiredRow]) -> List[DesiredRow]:
        """Last row per natural key wins, at the position of that last row. Placeholders are dropped."""
        last_index: Dict[Tuple[str, str], int] = {}
        for index, row in enumerate(rows):
            key = row.natural_key
            if key is not None:
                last_index[key] = index
        return [rows[i] for i in sorted(last_index.values())]

    def _stored_memo(self, row: DesiredRow) -> Optional[str]:
        identity = row.identity
        if isinstance(identity, ExternalRow):
            return self._codec.encode(identity.display_name, identity.memo)
        return row.memo or None

    def _trace(
        self,
        rows: Sequence[DesiredRow],
        previous: Sequence[AttendanceEntry],
    ) -> Dict[int, AttendanceEntry]:
        by_id = {e.entry_id: e for e in previous}
        by_key = {e.natural_key: e for e in previous if e.natural_key is not None}
        traced: Dict[int, AttendanceEntry] = {}
        for index, row in enumerate(rows):
            if row.entry_id and row.entry_id in by_id:
                traced[index] = by_id[row.entry_id]
                continue
            match = by_key.get(row.natural_key)
            if match is not None:
                traced[index] = match
        return traced

    def _key_changed(self, row: DesiredRow, entry: AttendanceEntry) -> bool:
        identity = row.identity
        if isinstance(identity, RosterRow):
            return entry.is_external or entry.worker_id != identity.worker_id
        if isinstance(identity, ExternalRow):
            return (
                not entry.is_external
                or entry.external_identity != identity.external_identity
                or (entry.memo or None) != self._stored_memo(row)
            )
        return True

    def _to_entry(
        self,
        row: DesiredRow,
        *,
        entry_id: str,
        site_id: str,
        entry_date: date,
        actor_id: Optional[str],
    ) -> AttendanceEntry:
        identity = row.identity
        if isinstance(identity, RosterRow):
            return AttendanceEntry(
                entry_id=entry_id,
                entry_date=entry_date,
                site_id=site_id,
                contractor_id=identity.contractor_id,
                worker_id=identity.worker_id,
                external_identity=None,
                work_type_id=row.work_type_id,
                memo=self._stored_memo(row),
                created_by=actor_id,
            )
        return AttendanceEntry(
            entry_id=entry_id,
            entry_date=entry_date,
            site_id=site_id,
            contractor_id=None,
            worker_id=None,
            external_identity=identity.external_identity,
            work_type_id=row.work_type_id,
            memo=self._stored_memo(row),
            created_by=actor_id,
        )

    @staticmethod
    def _same_content(a: AttendanceEntry, b: AttendanceEntry) -> bool:
        return (
            a.natural_key == b.natural_key
            and a.contractor_id == b.contractor_id
            and a.work_type_id == b.work_type_id
            and (a.memo or None) == (b.memo or None)
        )

    def plan(
        self,
        site_id: str,
        entry_date: date,
        rows: Sequence[DesiredRow],
        previous: Sequence[AttendanceEntry],
        *,
        actor_id: Optional[str] = None,
    ) -> ReconcilePlan:
        self.validate_worker_ids(rows)
        desired = self.dedupe(rows)

        if not desired:
            return ReconcilePlan(
                site_id=site_id,
                entry_date=entry_date,
                delete_ids=tuple(e.entry_id for e in previous),
                clear_day=True,
            )

        traced = self._trace(desired, previous)
        kept_ids = set()
        roster: List[AttendanceEntry] = []
        external: List[AttendanceEntry] = []
        unchanged: List[str] = []

        for index, row in enumerate(desired):
            source = traced.get(index)
            if source is not None and not self._key_changed(row, source):
                kept_ids.add(source.entry_id)
                entry_id = source.entry_id
            else:
                entry_id = self._id_factory()
            entry = self._to_entry(
                row, entry_id=entry_id, site_id=site_id, entry_date=entry_date, actor_id=actor_id
            )
            if source is not None and source.entry_id == entry_id and self._same_content(entry, source):
                unchanged.append(entry_id)
            if isinstance(row.identity, RosterRow):
                roster.append(entry)
            else:
                external.append(entry)

        delete_ids = tuple(e.entry_id for e in previous if e.entry_id not in kept_ids)
        return ReconcilePlan(
            site_id=site_id,
            entry_date=entry_date,
            delete_ids=delete_ids,
            roster_upserts=tuple(roster),
            external_upserts=tuple(external),
            unchanged_ids=tuple(unchanged),
        )
