from __future__ import annotations

from datetime import date

import pytest

from src.site_attendance.site_attendance.attendance.model import AttendanceEntry
from src.site_attendance.site_attendance.core.exceptions import ValidationError
from src.site_attendance.site_attendance.imports.csv_source import AttendanceSheet, AttendanceSheetRow, WorkerSheetRow
from src.site_attendance.site_attendance.imports.service import (
    AttendanceImportService,
    UnknownSiteError,
    WorkerImportService,
)
from src.site_attendance.site_attendance.masters.model import Contractor, Site, Worker

from tests.fakes import SITE, InMemoryAttendance, InMemoryContractors, InMemorySites, InMemoryWorkers

D1 = date(2025, 1, 10)
D2 = date(2025, 1, 11)


@pytest.fixture
def contractors():
    return InMemoryContractors(
        [
            Contractor(contractor_id="C1", name="株式会社山田工業"),
            Contractor(contractor_id="C2", name="有限会社佐藤建設"),
        ]
    )


@pytest.fixture
def workers():
    return InMemoryWorkers(
        [
            Worker(worker_id="W-yamada", name="山田太郎", contractor_id="C1"),
            Worker(worker_id="W-tanaka", name="田中一郎", contractor_id="C2"),
            Worker(worker_id="W-gone", name="鈴木次郎", contractor_id="C1", is_deleted=True),
        ]
    )


@pytest.fixture
def sites():
    return InMemorySites([Site(site_id=SITE, site_name="A邸新築工事"), Site(site_id="202501002", site_name="B倉庫改修")])


@pytest.fixture
def entries():
    return InMemoryAttendance()


@pytest.fixture
def service(entries, contractors, workers, sites, codec, id_factory):
    return AttendanceImportService(entries, contractors, workers, sites, codec=codec, id_factory=id_factory)


def sheet(*rows, site_name="A邸新築工事"):
    return AttendanceSheet(
        site_name=site_name,
        rows=tuple(AttendanceSheetRow(row_number=5 + i, entry_date=d, lines=tuple(lines)) for i, (d, lines) in enumerate(rows)),
    )


MAPPINGS = {"ネクサス": "external", "応援": "skip"}


def test_dry_run_counts_and_writes_nothing(service, entries):
    summary = service.run(
        sheet(
            (D1, ["山田太郎(山田工業)", "田中一郎（佐藤建設）", "Yamada(ネクサス)", "助っ人(応援)", "メモ"]),
            (D2, []),
            (D2, ["不明(謎工務店)", "新人(山田工業)"]),
        ),
        mappings=MAPPINGS,
    )

    assert summary.site_id == SITE
    assert summary.planned == 3
    assert summary.written == 0
    assert summary.blank == 1
    assert summary.invalid_format == 1
    assert summary.mapping_skip == 1
    assert summary.missing_contractor == 1
    assert "謎工務店" in summary.missing_contractors
    assert summary.missing_worker == 1
    assert summary.missing_workers[("C1", "新人")] == 1
    assert entries.upsert_calls == []
    assert [line.split(":")[0] for line in summary.summary_lines()][:2] == ["取込予定", "重複スキップ"]


def test_execute_writes_roster_and_external_entries(service, entries):
    summary = service.run(
        sheet((D1, ["山田太郎(山田工業)", "Yamada(ネクサス)"])), mappings=MAPPINGS, execute=True
    )

    assert summary.written == 2
    stored = {e.natural_key: e for e in entries.entries.values()}
    assert stored[("worker", "W-yamada")].contractor_id == "C1"
    external = stored[("external", "yamada")]
    assert external.memo == "ネクサス / Yamada"
    assert external.worker_id is None


def test_existing_entries_are_not_rewritten(service, entries):
    entries.entries["old"] = AttendanceEntry(
        entry_id="old", entry_date=D1, site_id=SITE, contractor_id="C1", worker_id="W-yamada",
        external_identity=None, memo="keep",
    )
    summary = service.run(sheet((D1, ["山田太郎(山田工業)", "田中一郎(佐藤建設)"])), execute=True)

    assert summary.duplicate_existing == 1
    assert summary.written == 1
    assert entries.entries["old"].memo == "keep"


def test_in_file_duplicates_collapse(service):
    summary = service.run(sheet((D1, ["山田太郎(山田工業)", "山田 太郎(株式会社山田工業)", "Yamada(ネクサス)", "yamada(ネクサス)"])),
                          mappings=MAPPINGS)
    assert summary.planned == 2
    assert summary.duplicate_in_file == 2


def test_create_missing_workers(service, workers):
    dry = service.run(sheet((D1, ["新人(山田工業)"]), (D2, ["新人(山田工業)"])), create_missing=True)
    assert dry.created_workers == 1
    assert dry.planned == 2
    assert all(w.name != "新人" for w in workers.workers.values())

    done = service.run(sheet((D1, ["新人(山田工業)"])), create_missing=True, execute=True)
    assert done.written == 1
    assert any(w.name == "新人" and w.contractor_id == "C1" for w in workers.workers.values())


def test_writes_in_chunks(entries, contractors, workers, sites, codec, id_factory):
    service = AttendanceImportService(
        entries, contractors, workers, sites, codec=codec, id_factory=id_factory, chunk_size=2
    )
    names = ["A", "B", "C", "D", "E"]
    summary = service.run(sheet((D1, [f"{n}(ネクサス)" for n in names])), mappings=MAPPINGS, execute=True)

    assert entries.upsert_calls == [2, 2, 1]
    assert summary.written == 5


def test_storage_failure_stops_and_reports(entries, contractors, workers, sites, codec, id_factory):
    service = AttendanceImportService(
        entries, contractors, workers, sites, codec=codec, id_factory=id_factory, chunk_size=2
    )
    entries.fail_on_upsert_call = 2
    summary = service.run(sheet((D1, [f"{n}(ネクサス)" for n in "ABCDE"])), mappings=MAPPINGS, execute=True)

    assert summary.written == 2
    assert summary.failed == "Duplicate entry"
    assert entries.upsert_calls == [2, 2]


def test_site_by_id_or_name(service):
    assert service.resolve_site(site_id=SITE).site_id == SITE
    assert service.resolve_site(site_name="A邸 新築工事").site_id == SITE


def test_unknown_site_suggests_names(service):
    with pytest.raises(UnknownSiteError) as excinfo:
        service.run(sheet((D1, ["山田太郎(山田工業)"]), site_name="A邸新築"))
    assert excinfo.value.name == "A邸新築"
    assert excinfo.value.suggestions[0] == "A邸新築工事"


def test_site_name_required(service):
    with pytest.raises(ValidationError):
        service.run(sheet((D1, []), site_name=None))


class TestWorkerImport:
    def rows(self):
        return [
            WorkerSheetRow(row_number=4, contractor_label="山田工業", worker_names=("山田太郎", "鈴木次郎", "新人", "新人")),
            WorkerSheetRow(row_number=5, contractor_label="謎工務店", worker_names=("誰か",)),
            WorkerSheetRow(row_number=6, contractor_label="応援", worker_names=("助っ人",)),
        ]

    def test_skip_mode(self, workers, contractors, id_factory):
        service = WorkerImportService(workers, contractors, id_factory=id_factory)
        summary = service.run(self.rows(), mappings={"応援": "skip"}, mode="skip", execute=True)

        assert summary.inserted == 1
        assert summary.restored == 0
        # existing 山田太郎, deleted 鈴木次郎, duplicate 新人, mapped 助っ人
        assert summary.skipped == 4
        assert list(summary.missing_contractors) == ["謎工務店"]
        assert workers.workers["new-1"].name == "新人"
        assert workers.workers["W-gone"].is_deleted

    def test_revive_mode(self, workers, contractors, id_factory):
        service = WorkerImportService(workers, contractors, id_factory=id_factory)
        summary = service.run(self.rows(), mode="revive", execute=True)

        assert summary.restored == 1
        assert not workers.workers["W-gone"].is_deleted

    def test_dry_run_and_errors(self, workers, contractors, id_factory):
        service = WorkerImportService(workers, contractors, id_factory=id_factory)
        dry = service.run(self.rows(), mode="revive")
        assert (dry.inserted, dry.restored) == (1, 1)
        assert workers.workers["W-gone"].is_deleted

        workers.fail_on_create = True
        failed = service.run(self.rows(), execute=True)
        assert failed.inserted == 0
        assert failed.errors == ["保存失敗: 新人"]

    def test_invalid_mode(self, workers, contractors):
        with pytest.raises(ValidationError):
            WorkerImportService(workers, contractors).run([], mode="merge")
