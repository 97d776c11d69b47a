from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..attendance.memo_codec import ExternalMemoCodec
from ..attendance.model import AttendanceEntry
from ..attendance.repository import AttendanceRepository
from ..core.constants import DEFAULT_IMPORT_CHUNK_SIZE
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..masters.model import Site, Worker
from ..masters.repository import ContractorRepository, SiteRepository, WorkerRepository
from ..naming.fuzzy import suggest
from ..naming.normalizer import NameNormalizer, default_normalizer
from .csv_source import AttendanceSheet, WorkerSheetRow, parse_worker_line
from .resolver import (
    ContractorIndex,
    External,
    ImportDeduper,
    Resolved,
    Skip,
    Unresolved,
    WorkerIndex,
    normalize_overrides,
    resolve_contractor,
)

logger = logging.getLogger(__name__)

WORKER_IMPORT_MODES = ("skip", "revive")


class UnknownSiteError(NotFoundError):
    def __init__(self, name: str, suggestions: Sequence[str] = ()):
        self.name = name
        self.suggestions = list(suggestions)
        super().__init__(f"現場が見つかりません: {name}")


@dataclass(frozen=True)
class SkipDetail:
    reason: str
    row_number: int
    line: str
    detail: str = ""

    def to_dict(self) -> dict:
        return {"reason": self.reason, "row": self.row_number, "line": self.line, "detail": self.detail}


@dataclass
class ImportSummary:
    site_id: Optional[str] = None
    planned: int = 0
    written: int = 0
    duplicate_existing: int = 0
    duplicate_in_file: int = 0
    blank: int = 0
    missing_contractor: int = 0
    missing_worker: int = 0
    mapping_skip: int = 0
    invalid_format: int = 0
    created_workers: int = 0
    failed: Optional[str] = None
    skipped: List[SkipDetail] = field(default_factory=list)
    missing_contractors: Dict[str, List[str]] = field(default_factory=dict)
    missing_workers: Counter = field(default_factory=Counter)

    def skip(self, reason: str, row_number: int, line: str, detail: str = "") -> None:
        self.skipped.append(SkipDetail(reason=reason, row_number=row_number, line=line, detail=detail))

    def summary_lines(self) -> List[str]:
        return [
            f"取込予定: {self.planned}",
            f"重複スキップ: {self.duplicate_existing}",
            f"空欄スキップ: {self.blank}",
            f"未一致業者: {self.missing_contractor}",
            f"作業員未一致: {self.missing_worker}",
            f"マッピングでスキップ: {self.mapping_skip}",
            f"形式不明: {self.invalid_format}",
            f"詳細スキップ: {len(self.skipped)}",
        ]

    def to_dict(self) -> dict:
        return {
            "siteId": self.site_id,
            "planned": self.planned,
            "written": self.written,
            "duplicateExisting": self.duplicate_existing,
            "duplicateInFile": self.duplicate_in_file,
            "blank": self.blank,
            "missingContractor": self.missing_contractor,
            "missingWorker": self.missing_worker,
            "mappingSkip": self.mapping_skip,
            "invalidFormat": self.invalid_format,
            "createdWorkers": self.created_workers,
            "failed": self.failed,
            "missingContractors": self.missing_contractors,
            "missingWorkers": [
                {"contractorId": contractor_id, "name": name, "count": count}
                for (contractor_id, name), count in self.missing_workers.most_common()
            ],
            "skipped": [s.to_dict() for s in self.skipped],
        }


def _chunks(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AttendanceImportService:
    """Use case: load a daily attendance sheet into attendance entries of one site.

    Dry run unless execute=True. Rows already stored for the same natural key
    are left untouched (duplicate_existing).
    """

    def __init__(
        self,
        entries: AttendanceRepository,
        contractors: ContractorRepository,
        workers: WorkerRepository,
        sites: SiteRepository,
        *,
        codec: ExternalMemoCodec,
        normalizer: Optional[NameNormalizer] = None,
        chunk_size: int = DEFAULT_IMPORT_CHUNK_SIZE,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._entries = entries
        self._contractors = contractors
        self._workers = workers
        self._sites = sites
        self._codec = codec
        self._normalizer = normalizer or default_normalizer
        self._chunk_size = max(1, int(chunk_size))
        self._id_factory = id_factory

    def resolve_site(self, *, site_id: Optional[str] = None, site_name: Optional[str] = None) -> Site:
        if site_id:
            site = self._sites.get(site_id)
            if site is None or site.is_deleted:
                raise UnknownSiteError(site_id)
            return site

        if not site_name:
            raise ValidationError("現場名が指定されていません。")
        sites = list(self._sites.list_active())
        key = self._normalizer.normalize(site_name)
        for site in sites:
            if self._normalizer.normalize(site.site_name) == key:
                return site
        raise UnknownSiteError(
            site_name, suggest(site_name, [s.site_name for s in sites], normalizer=self._normalizer)
        )

    def run(
        self,
        sheet: AttendanceSheet,
        *,
        mappings: Optional[Mapping[str, str]] = None,
        site_id: Optional[str] = None,
        site_name: Optional[str] = None,
        create_missing: bool = False,
        execute: bool = False,
    ) -> ImportSummary:
        site = self.resolve_site(site_id=site_id, site_name=site_name or sheet.site_name)
        summary = ImportSummary(site_id=site.site_id)

        overrides = normalize_overrides(mappings, normalizer=self._normalizer)
        contractor_index = ContractorIndex.from_contractors(self._contractors.list_active(), normalizer=self._normalizer)
        worker_index = WorkerIndex.from_workers(self._workers.list_active(), normalizer=self._normalizer)

        deduper: ImportDeduper[AttendanceEntry] = ImportDeduper(self._normalizer)
        pending: ImportDeduper[Tuple[int, str, str, str]] = ImportDeduper(self._normalizer)

        for row in sheet.rows:
            if not row.lines:
                summary.blank += 1
                continue
            for raw in row.lines:
                line = parse_worker_line(raw)
                if line is None:
                    continue
                if not line.is_valid:
                    summary.invalid_format += 1
                    summary.skip("invalid_format", row.row_number, raw)
                    continue

                resolution = resolve_contractor(
                    line.contractor_label,
                    overrides,
                    contractor_index,
                    marker=self._codec.marker,
                    normalizer=self._normalizer,
                )
                if isinstance(resolution, Skip):
                    summary.mapping_skip += 1
                    summary.skip("mapping_skip", row.row_number, raw, line.contractor_label)
                elif isinstance(resolution, External):
                    deduper.add(
                        deduper.external_key(row.entry_date, site.site_id, line.name),
                        self._external_entry(site.site_id, row.entry_date, line.name),
                    )
                elif isinstance(resolution, Unresolved):
                    summary.missing_contractor += 1
                    summary.missing_contractors.setdefault(resolution.label, list(resolution.suggestions))
                    summary.skip(
                        "missing_contractor", row.row_number, raw,
                        ", ".join(resolution.suggestions),
                    )
                elif isinstance(resolution, Resolved):
                    worker_id = worker_index.lookup(resolution.contractor_id, line.name, normalizer=self._normalizer)
                    if worker_id:
                        deduper.add(
                            deduper.worker_key(row.entry_date, site.site_id, worker_id),
                            self._roster_entry(site.site_id, row.entry_date, worker_id, resolution.contractor_id),
                        )
                    else:
                        pending.add(
                            pending.pending_key(row.entry_date, site.site_id, resolution.contractor_id, line.name),
                            (row.row_number, raw, resolution.contractor_id, line.name),
                        )

        self._resolve_pending(
            pending.values(), deduper, summary, site.site_id, sheet, create_missing=create_missing, execute=execute
        )
        summary.duplicate_in_file = deduper.replaced + pending.replaced

        candidates = deduper.values()
        to_write = self._drop_existing(site.site_id, candidates, summary)
        summary.planned = len(to_write)

        if execute and to_write:
            self._write(to_write, summary)

        logger.info(
            "attendance import site=%s planned=%d written=%d duplicates=%d missing_contractor=%d missing_worker=%d",
            site.site_id, summary.planned, summary.written, summary.duplicate_existing,
            summary.missing_contractor, summary.missing_worker,
        )
        return summary

    def _roster_entry(self, site_id, entry_date, worker_id, contractor_id) -> AttendanceEntry:
        return AttendanceEntry(
            entry_id=self._id_factory(),
            entry_date=entry_date,
            site_id=site_id,
            contractor_id=contractor_id,
            worker_id=worker_id,
            external_identity=None,
        )

    def _external_entry(self, site_id, entry_date, name) -> AttendanceEntry:
        return AttendanceEntry(
            entry_id=self._id_factory(),
            entry_date=entry_date,
            site_id=site_id,
            contractor_id=None,
            worker_id=None,
            external_identity=self._normalizer.normalize(name),
            memo=self._codec.encode(name),
        )

    def _resolve_pending(self, pending, deduper, summary, site_id, sheet, *, create_missing, execute) -> None:
        if not pending:
            return

        created: Dict[Tuple[str, str], str] = {}
        dates = {row.row_number: row.entry_date for row in sheet.rows}
        for row_number, raw, contractor_id, name in pending:
            key = (contractor_id, self._normalizer.normalize(name))
            if not create_missing:
                summary.missing_worker += 1
                summary.missing_workers[(contractor_id, name)] += 1
                summary.skip("missing_worker", row_number, raw)
                continue

            worker_id = created.get(key)
            if worker_id is None:
                worker_id = self._id_factory()
                if execute:
                    self._workers.create(Worker(worker_id=worker_id, name=name, contractor_id=contractor_id))
                created[key] = worker_id
                summary.created_workers += 1
            entry_date = dates[row_number]
            deduper.add(
                deduper.worker_key(entry_date, site_id, worker_id),
                self._roster_entry(site_id, entry_date, worker_id, contractor_id),
            )

        if created:
            logger.info("import created %d missing workers (execute=%s)", len(created), execute)

    def _drop_existing(self, site_id, candidates: List[AttendanceEntry], summary: ImportSummary) -> List[AttendanceEntry]:
        if not candidates:
            return []
        start = min(e.entry_date for e in candidates)
        end = max(e.entry_date for e in candidates)
        existing: Set[Tuple] = {
            (e.entry_date, e.natural_key) for e in self._entries.list_range(site_id, start, end) if e.natural_key
        }

        result = []
        for entry in candidates:
            if (entry.entry_date, entry.natural_key) in existing:
                summary.duplicate_existing += 1
                summary.skip("duplicate_existing", 0, entry.worker_id or entry.memo or "", entry.entry_date.isoformat())
                continue
            result.append(entry)
        return result

    def _write(self, entries: List[AttendanceEntry], summary: ImportSummary) -> None:
        for chunk in _chunks(entries, self._chunk_size):
            try:
                self._entries.upsert_entries(chunk)
            except StorageError as e:
                logger.exception("attendance import write failed after %d rows", summary.written)
                summary.failed = str(e)
                return
            summary.written += len(chunk)


@dataclass
class WorkerImportSummary:
    inserted: int = 0
    restored: int = 0
    skipped: int = 0
    missing_contractors: Dict[str, List[str]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def summary_lines(self) -> List[str]:
        return [
            f"新規登録: {self.inserted}",
            f"復元: {self.restored}",
            f"スキップ: {self.skipped}",
            f"未一致業者: {len(self.missing_contractors)}",
            f"エラー: {len(self.errors)}",
        ]

    def to_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "restored": self.restored,
            "skipped": self.skipped,
            "missingContractors": self.missing_contractors,
            "errors": list(self.errors),
        }


class WorkerImportService:
    """Use case: register workers from a roster sheet (contractor, worker names...).

    mode="skip" leaves soft-deleted namesakes alone, mode="revive" revives them.
    """

    def __init__(
        self,
        workers: WorkerRepository,
        contractors: ContractorRepository,
        *,
        normalizer: Optional[NameNormalizer] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._workers = workers
        self._contractors = contractors
        self._normalizer = normalizer or default_normalizer
        self._id_factory = id_factory

    def run(
        self,
        rows: Sequence[WorkerSheetRow],
        *,
        mappings: Optional[Mapping[str, str]] = None,
        mode: str = "skip",
        execute: bool = False,
    ) -> WorkerImportSummary:
        if mode not in WORKER_IMPORT_MODES:
            raise ValidationError(f"mode は {' / '.join(WORKER_IMPORT_MODES)} のいずれかです: {mode}")

        summary = WorkerImportSummary()
        overrides = normalize_overrides(mappings, normalizer=self._normalizer)
        index = ContractorIndex.from_contractors(self._contractors.list_active(), normalizer=self._normalizer)

        resolved: List[Tuple[str, str]] = []
        for row in rows:
            resolution = resolve_contractor(row.contractor_label, overrides, index, normalizer=self._normalizer)
            if isinstance(resolution, Resolved):
                resolved.extend((resolution.contractor_id, name) for name in row.worker_names)
            elif isinstance(resolution, Unresolved):
                summary.missing_contractors.setdefault(resolution.label, list(resolution.suggestions))
            else:
                summary.skipped += len(row.worker_names)

        if not resolved:
            return summary

        existing: Dict[Tuple[str, str], Worker] = {}
        contractor_ids = sorted({contractor_id for contractor_id, _ in resolved})
        for worker in self._workers.list_by_contractors(contractor_ids, include_deleted=True):
            key = (worker.contractor_id, self._normalizer.normalize(worker.name))
            # prefer the active record when a name exists twice
            if key not in existing or existing[key].is_deleted:
                existing[key] = worker

        seen: Set[Tuple[str, str]] = set()
        for contractor_id, name in resolved:
            key = (contractor_id, self._normalizer.normalize(name))
            if key in seen:
                summary.skipped += 1
                continue
            seen.add(key)

            try:
                current = existing.get(key)
                if current is not None:
                    if current.is_deleted and mode == "revive":
                        if execute:
                            self._workers.revive([current.worker_id])
                        summary.restored += 1
                    else:
                        summary.skipped += 1
                    continue

                if execute:
                    self._workers.create(Worker(worker_id=self._id_factory(), name=name, contractor_id=contractor_id))
                summary.inserted += 1
            except StorageError as e:
                logger.warning("worker import failed for %s: %s", name, e)
                summary.errors.append(f"保存失敗: {name}")

        logger.info(
            "worker import inserted=%d restored=%d skipped=%d missing_contractors=%d execute=%s",
            summary.inserted, summary.restored, summary.skipped, len(summary.missing_contractors), execute,
        )
        return summary
