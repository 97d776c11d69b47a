from __future__ import annotations

from datetime import date

import pytest

from src.site_attendance.site_attendance.core.enums import SiteStatus
from src.site_attendance.site_attendance.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from src.site_attendance.site_attendance.masters.model import BulkWorkerRow, Contractor, Site, WorkCategory, Worker
from src.site_attendance.site_attendance.masters.service import (
    ContractorService,
    SiteService,
    WorkTypeService,
    WorkerService,
    compute_site_status,
    next_site_id,
)

from tests.fakes import InMemoryContractors, InMemorySites, InMemoryWorkTypes, InMemoryWorkers

TODAY = date(2025, 1, 15)


@pytest.mark.parametrize(
    "start,end,expected",
    [
        (None, None, SiteStatus.PRE_CONTRACT),
        (date(2025, 1, 5), None, SiteStatus.PRE_CONTRACT),
        (date(2025, 2, 1), date(2025, 3, 1), SiteStatus.PRE_CONTRACT),
        (date(2025, 1, 15), date(2025, 1, 15), SiteStatus.IN_PROGRESS),
        (date(2024, 12, 1), date(2025, 1, 14), SiteStatus.COMPLETED),
    ],
)
def test_compute_site_status(start, end, expected):
    assert compute_site_status(start, end, TODAY) == expected


def test_next_site_id():
    assert next_site_id(None, TODAY) == "202501001"
    assert next_site_id("202501009", TODAY) == "202501010"
    assert next_site_id("202412015", TODAY) == "202501001"


class TestSites:
    def test_create_assigns_monthly_sequence(self, clock, staff):
        sites = InMemorySites([Site(site_id="202501001", site_name="A邸新築工事")])
        service = SiteService(sites, clock=clock)

        site_id = service.create_site(staff, name="C事務所", start_date="2025-01-10", end_date="2025-02-28")

        assert site_id == "202501002"
        assert sites.get(site_id).status == SiteStatus.IN_PROGRESS

    def test_rejects_inverted_dates_and_guests(self, clock, staff, guest_editor):
        service = SiteService(InMemorySites(), clock=clock)
        with pytest.raises(ValidationError):
            service.create_site(staff, name="X", start_date="2025-02-01", end_date="2025-01-01")
        with pytest.raises(AuthorizationError):
            service.create_site(guest_editor, name="X")
        with pytest.raises(AuthenticationError):
            service.create_site(None, name="X")

    def test_settled_is_kept_on_update(self, clock, staff):
        sites = InMemorySites([Site(site_id="202501001", site_name="A", status=SiteStatus.SETTLED)])
        service = SiteService(sites, clock=clock)

        status = service.update_site(staff, site_id="202501001", name="A", start_date="2025-01-01", end_date="2025-03-01")
        assert status == SiteStatus.SETTLED

    def test_update_recomputes_or_settles(self, clock, staff):
        sites = InMemorySites([Site(site_id="202501001", site_name="A")])
        service = SiteService(sites, clock=clock)

        assert service.update_site(staff, site_id="202501001", name="A", start_date="2025-01-01") == SiteStatus.PRE_CONTRACT
        assert service.update_site(staff, site_id="202501001", name="A", settled=True) == SiteStatus.SETTLED
        with pytest.raises(NotFoundError):
            service.update_site(staff, site_id="nope", name="A")

    def test_guest_sees_only_its_site(self, clock, guest_editor):
        sites = InMemorySites([Site(site_id="202501001", site_name="A"), Site(site_id="202501002", site_name="B")])
        assert [s.site_id for s in SiteService(sites, clock=clock).list_sites(guest_editor)] == ["202501001"]


class TestContractors:
    def test_duplicate_names_after_normalization(self, clock, staff):
        contractors = InMemoryContractors([Contractor(contractor_id="C1", name="株式会社山田工業")])
        service = ContractorService(contractors, clock=clock)

        with pytest.raises(ValidationError):
            service.create_contractor(staff, name="山田 工業")
        new_id = service.create_contractor(staff, name="有限会社佐藤建設", show_in_attendance=False)
        assert not contractors.get(new_id).show_in_attendance
        assert service.display_name(contractors.get(new_id)) == "佐藤建設"

    def test_update_unknown(self, clock, staff):
        with pytest.raises(NotFoundError):
            ContractorService(InMemoryContractors(), clock=clock).update_contractor(
                staff, contractor_id="C9", default_work_category_id=None
            )


class TestWorkers:
    @pytest.fixture
    def contractors(self):
        return InMemoryContractors(
            [Contractor(contractor_id="C1", name="株式会社山田工業"), Contractor(contractor_id="C2", name="佐藤建設")]
        )

    @pytest.fixture
    def workers(self):
        return InMemoryWorkers(
            [
                Worker(worker_id="W1", name="山田太郎", contractor_id="C1"),
                Worker(worker_id="W2", name="鈴木次郎", contractor_id="C1", is_deleted=True),
            ]
        )

    def test_create_revives_deleted_namesake(self, workers, contractors, clock, staff):
        service = WorkerService(workers, contractors, clock=clock)

        assert service.create_worker(staff, name="鈴木 次郎", contractor_id="C1") == ("W2", True)
        with pytest.raises(ValidationError):
            service.create_worker(staff, name="山田太郎", contractor_id="C1")
        with pytest.raises(NotFoundError):
            service.create_worker(staff, name="誰か", contractor_id="C9")

        worker_id, restored = service.create_worker(staff, name="山田太郎", contractor_id="C2")
        assert not restored
        assert workers.get(worker_id).contractor_id == "C2"

    def test_bulk_upsert(self, workers, contractors, clock, staff):
        service = WorkerService(workers, contractors, clock=clock)
        result = service.bulk_upsert(
            staff,
            [
                BulkWorkerRow(contractor_name="山田工業", worker_name="山田太郎"),
                BulkWorkerRow(contractor_name="山田工業", worker_name="鈴木次郎"),
                BulkWorkerRow(contractor_name="佐藤建設", worker_name="田中一郎"),
                BulkWorkerRow(contractor_name="佐藤建設", worker_name="田中 一郎"),
                BulkWorkerRow(contractor_name="山田工業", worker_name="山田太郎改", worker_id="W1"),
                BulkWorkerRow(contractor_name="謎工務店", worker_name="誰か"),
            ],
        )

        assert result.to_dict() == {
            "inserted": 1,
            "updated": 1,
            "restored": 1,
            "skipped": 1,
            "errors": ["行6: 協力業者名が見つかりません (謎工務店)"],
        }
        assert workers.get("W1").name == "山田太郎改"

    def test_bulk_upsert_collects_storage_errors(self, workers, contractors, clock, staff):
        workers.fail_on_create = True
        result = WorkerService(workers, contractors, clock=clock).bulk_upsert(
            staff, [BulkWorkerRow(contractor_name="佐藤建設", worker_name="田中一郎")]
        )
        assert result.inserted == 0
        assert result.errors == ["保存失敗: 田中一郎"]


class TestWorkTypes:
    def test_template_has_bom_and_header(self):
        data = WorkTypeService.template_csv()
        assert data.startswith(b"\xef\xbb\xbf")
        assert data.decode("utf-8-sig") == "カテゴリ名,作業内容\n"

    def test_import_creates_categories_and_skips_existing(self, clock, staff):
        repo = InMemoryWorkTypes(categories=[WorkCategory(category_id="K1", name="基礎")])
        service = WorkTypeService(repo, clock=clock)

        csv_text = "\ufeffカテゴリ名,作業内容\n基礎,配筋\n基礎,配筋\n内装,クロス貼り\n,空欄\n"
        assert service.import_csv(staff, csv_text) == 2
        assert {c.name for c in repo.list_categories()} == {"基礎", "内装"}
        assert sorted(t.name for t in repo.list_work_types()) == ["クロス貼り", "配筋"]

    def test_import_rejects_header_only(self, clock, staff):
        with pytest.raises(ValidationError):
            WorkTypeService(InMemoryWorkTypes(), clock=clock).import_csv(staff, "カテゴリ名,作業内容\n")

    def test_category_revive(self, clock, staff):
        repo = InMemoryWorkTypes(categories=[WorkCategory(category_id="K1", name="基礎", is_deleted=True)])
        assert WorkTypeService(repo, clock=clock).create_category(staff, "基礎") == ("K1", True)
