from datetime import date

from src.site_attendance.site_attendance.imports.resolver import (
    ContractorIndex,
    External,
    ImportDeduper,
    Resolved,
    Skip,
    Unresolved,
    WorkerIndex,
    normalize_overrides,
    resolve_contractor,
    resolve_import_row,
)
from src.site_attendance.site_attendance.masters.model import Contractor, Worker

CONTRACTORS = [
    Contractor(contractor_id="C1", name="株式会社山田工業"),
    Contractor(contractor_id="C2", name="有限会社佐藤建設"),
    Contractor(contractor_id="C3", name="Acme Corporation"),
]


def test_legal_suffix_variants_resolve_to_same_contractor():
    assert resolve_import_row("Acme Corp", {}, CONTRACTORS) == Resolved("C3")
    assert resolve_import_row("(株)山田工業", {}, CONTRACTORS) == Resolved("C1")
    assert resolve_import_row("山田 工業", None, CONTRACTORS) == Resolved("C1")


def test_trailing_number_is_ignored():
    assert resolve_import_row("山田工業 2", {}, CONTRACTORS) == Resolved("C1")
    assert resolve_import_row("山田工業２", {}, CONTRACTORS) == Resolved("C1")


def test_override_replaces_label():
    mappings = {"ヤマダ": "株式会社山田工業"}
    assert resolve_import_row("ヤマダ", mappings, CONTRACTORS) == Resolved("C1")
    assert resolve_import_row("ヤマダ 3", mappings, CONTRACTORS) == Resolved("C1")


def test_skip_and_external_sentinels():
    mappings = {"応援": "skip", "ネクサス班": "external", "他社": "ネクサス", "臨時": "SKIP"}
    assert resolve_import_row("応援", mappings, CONTRACTORS) == Skip()
    assert resolve_import_row("臨時", mappings, CONTRACTORS) == Skip()
    assert resolve_import_row("ネクサス班", mappings, CONTRACTORS) == External()
    assert resolve_import_row("他社", mappings, CONTRACTORS) == External()


def test_unresolved_carries_suggestions():
    result = resolve_import_row("山田工務", {}, CONTRACTORS)
    assert isinstance(result, Unresolved)
    assert result.label == "山田工務"
    assert result.suggestions[0] == "山田工業"
    assert len(result.suggestions) <= 3


def test_unresolved_mapped_label_reports_mapped_value():
    result = resolve_import_row("旧名", {"旧名": "存在しない業者"}, CONTRACTORS)
    assert isinstance(result, Unresolved)
    assert result.label == "存在しない業者"


def test_index_and_overrides_are_reusable():
    index = ContractorIndex.from_contractors(CONTRACTORS)
    overrides = normalize_overrides({"株式会社 ヤマダ": "山田工業"})
    assert len(index) == 3
    assert "ヤマダ" in overrides
    assert resolve_contractor("ヤマダ", overrides, index) == Resolved("C1")
    assert resolve_import_row("佐藤建設", {}, index) == Resolved("C2")


def test_worker_index_matches_normalized_names():
    index = WorkerIndex.from_workers(
        [Worker(worker_id="W1", name="山田 太郎", contractor_id="C1"), Worker(worker_id="W2", name="山田太郎", contractor_id="C2")]
    )
    assert index.lookup("C1", "山田太郎") == "W1"
    assert index.lookup("C2", "山田　太郎") == "W2"
    assert index.lookup("C3", "山田太郎") is None


def test_deduper_keeps_last_value_at_last_position():
    deduper = ImportDeduper()
    day = date(2025, 1, 10)
    deduper.add(deduper.worker_key(day, "S", "W1"), "first")
    deduper.add(deduper.external_key(day, "S", "Yamada"), "ext")
    deduper.add(deduper.worker_key(day, "S", "W1"), "second")
    deduper.add(deduper.external_key(day, "S", "yamada "), "ext2")

    assert deduper.values() == ["second", "ext2"]
    assert deduper.replaced == 2
    assert len(deduper) == 2


def test_pending_key_separates_contractors():
    deduper = ImportDeduper()
    day = date(2025, 1, 10)
    assert deduper.pending_key(day, "S", "C1", "山田") != deduper.pending_key(day, "S", "C2", "山田")
    assert deduper.pending_key(day, "S", "C1", "山田 ") == deduper.pending_key(day, "S", "C1", "山田")
