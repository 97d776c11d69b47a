from __future__ import annotations

import csv
import io
import logging
import uuid
from datetime import date, datetime
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_TIMEZONE
from ..core.enums import SiteStatus
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, StorageError, ValidationError
from ..naming.normalizer import NameNormalizer, default_normalizer
from ..users.identity import Identity
from .model import BulkWorkerResult, BulkWorkerRow, Contractor, Site, WorkCategory, WorkType, Worker
from .repository import ContractorRepository, SiteRepository, WorkTypeRepository, WorkerRepository

logger = logging.getLogger(__name__)

WORK_TYPE_TEMPLATE_HEADER = ("カテゴリ名", "作業内容")


def _require_staff(actor: Optional[Identity]) -> Identity:
    if actor is None:
        raise AuthenticationError("ログインしてください。")
    if actor.is_guest:
        raise AuthorizationError("ゲストは操作できません。")
    return actor


def _optional_date(value: Optional[str]) -> Optional[date]:
    text = (value or "").strip()
    return parse_iso_date(text) if text else None


def compute_site_status(start: Optional[date], end: Optional[date], today: date) -> SiteStatus:
    """受注 until the start date, 着工中 between the dates, 完工 after the end date."""
    if start is None or end is None:
        return SiteStatus.PRE_CONTRACT
    if today < start:
        return SiteStatus.PRE_CONTRACT
    if today > end:
        return SiteStatus.COMPLETED
    return SiteStatus.IN_PROGRESS


def next_site_id(latest: Optional[str], today: date) -> str:
    """YYYYMM + 3-digit sequence within the month."""
    prefix = f"{today.year:04d}{today.month:02d}"
    seq = 0
    if latest and latest.startswith(prefix):
        try:
            seq = int(latest[-3:])
        except ValueError:
            seq = 0
    return f"{prefix}{seq + 1:03d}"


class ContractorService:
    def __init__(self, contractors: ContractorRepository, *, normalizer: Optional[NameNormalizer] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self._contractors = contractors
        self._normalizer = normalizer or default_normalizer
        self._clock = clock or (lambda: now_local(DEFAULT_TIMEZONE))

    def list_contractors(self, actor: Optional[Identity]) -> Sequence[Contractor]:
        _require_staff(actor)
        return self._contractors.list_active()

    def display_name(self, contractor: Contractor) -> str:
        return self._normalizer.strip_legal_suffix(contractor.name)

    def create_contractor(
        self,
        actor: Optional[Identity],
        *,
        name: str,
        default_work_category_id: Optional[str] = None,
        show_in_attendance: bool = True,
    ) -> str:
        _require_staff(actor)
        name = require_non_empty(name, "業者名")
        key = self._normalizer.normalize(name)
        for existing in self._contractors.list_active():
            if self._normalizer.normalize(existing.name) == key:
                raise ValidationError("同じ業者が既に登録されています。")
        contractor_id = str(uuid.uuid4())
        self._contractors.create(
            Contractor(
                contractor_id=contractor_id,
                name=name,
                default_work_category_id=default_work_category_id or None,
                show_in_attendance=bool(show_in_attendance),
            )
        )
        return contractor_id

    def update_contractor(
        self,
        actor: Optional[Identity],
        *,
        contractor_id: str,
        default_work_category_id: Optional[str],
        show_in_attendance: Optional[bool] = True,
    ) -> None:
        _require_staff(actor)
        contractor_id = require_non_empty(contractor_id, "業者")
        if self._contractors.get(contractor_id) is None:
            raise NotFoundError("業者が見つかりません。")
        self._contractors.update_settings(
            contractor_id,
            default_work_category_id=default_work_category_id or None,
            show_in_attendance=True if show_in_attendance is None else bool(show_in_attendance),
        )

    def delete_contractor(self, actor: Optional[Identity], contractor_id: str) -> None:
        _require_staff(actor)
        contractor_id = require_non_empty(contractor_id, "業者")
        self._contractors.soft_delete(contractor_id, deleted_at=self._clock().replace(tzinfo=None))


class WorkerService:
    def __init__(
        self,
        workers: WorkerRepository,
        contractors: ContractorRepository,
        *,
        normalizer: Optional[NameNormalizer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._workers = workers
        self._contractors = contractors
        self._normalizer = normalizer or default_normalizer
        self._clock = clock or (lambda: now_local(DEFAULT_TIMEZONE))

    def list_workers(self, actor: Optional[Identity], contractor_id: Optional[str] = None) -> Sequence[Worker]:
        _require_staff(actor)
        if contractor_id:
            return self._workers.list_by_contractors([contractor_id])
        return self._workers.list_active()

    def create_worker(self, actor: Optional[Identity], *, name: str, contractor_id: str) -> Tuple[str, bool]:
        """Returns (worker_id, restored). A soft-deleted worker with the same name is revived."""
        _require_staff(actor)
        name = require_non_empty(name, "作業員名")
        contractor_id = require_non_empty(contractor_id, "業者")
        if self._contractors.get(contractor_id) is None:
            raise NotFoundError("業者が見つかりません。")

        key = self._normalizer.normalize(name)
        for worker in self._workers.list_by_contractors([contractor_id], include_deleted=True):
            if self._normalizer.normalize(worker.name) != key:
                continue
            if worker.is_deleted:
                self._workers.revive([worker.worker_id])
                return worker.worker_id, True
            raise ValidationError("同じ作業員が既に登録されています。")

        worker_id = str(uuid.uuid4())
        self._workers.create(Worker(worker_id=worker_id, name=name, contractor_id=contractor_id))
        return worker_id, False

    def update_worker(self, actor: Optional[Identity], *, worker_id: str, name: str, contractor_id: str) -> None:
        _require_staff(actor)
        name = require_non_empty(name, "作業員名")
        contractor_id = require_non_empty(contractor_id, "業者")
        if not self._workers.update(worker_id, name=name, contractor_id=contractor_id):
            raise NotFoundError("作業員が見つかりません。")

    def delete_worker(self, actor: Optional[Identity], worker_id: str) -> None:
        _require_staff(actor)
        worker_id = require_non_empty(worker_id, "作業員")
        self._workers.soft_delete(worker_id, deleted_at=self._clock().replace(tzinfo=None))

    def _contractor_lookup(self) -> Dict[str, str]:
        lookup: Dict[str, str] = {}
        for contractor in self._contractors.list_active():
            lookup[self._normalizer.normalize(contractor.name)] = contractor.contractor_id
        return lookup

    def bulk_upsert(self, actor: Optional[Identity], rows: Iterable[BulkWorkerRow]) -> BulkWorkerResult:
        """Spreadsheet-style worker registration.

        Per row: explicit worker_id -> update (and undelete); known name -> skip,
        or revive when soft-deleted; otherwise insert. Failures are collected per
        row and never abort the batch.
        """
        _require_staff(actor)
        result = BulkWorkerResult()
        rows = list(rows)
        if not rows:
            return result

        contractor_by_key = self._contractor_lookup()
        resolved = []
        for index, row in enumerate(rows, start=1):
            contractor_id = contractor_by_key.get(self._normalizer.normalize(row.contractor_name or ""))
            if not contractor_id:
                result.errors.append(f"行{index}: 協力業者名が見つかりません ({row.contractor_name})")
                continue
            worker_name = (row.worker_name or "").strip()
            if worker_name:
                resolved.append((row.worker_id, contractor_id, worker_name))

        if not resolved:
            return result

        contractor_ids = sorted({contractor_id for _, contractor_id, _ in resolved})
        existing: Dict[Tuple[str, str], Worker] = {}
        for worker in self._workers.list_by_contractors(contractor_ids, include_deleted=True):
            existing.setdefault((worker.contractor_id, self._normalizer.normalize(worker.name)), worker)

        seen = set()
        for worker_id, contractor_id, worker_name in resolved:
            key = (contractor_id, self._normalizer.normalize(worker_name))
            if key in seen:
                continue
            seen.add(key)

            try:
                if worker_id:
                    if self._workers.update(worker_id, name=worker_name, contractor_id=contractor_id):
                        result.updated += 1
                    else:
                        result.errors.append(f"更新失敗: {worker_name}")
                    continue

                current = existing.get(key)
                if current is not None:
                    if current.is_deleted:
                        self._workers.revive([current.worker_id])
                        result.restored += 1
                    else:
                        result.skipped += 1
                    continue

                self._workers.create(
                    Worker(worker_id=str(uuid.uuid4()), name=worker_name, contractor_id=contractor_id)
                )
                result.inserted += 1
            except StorageError as e:
                logger.warning("bulk worker write failed for %s: %s", worker_name, e)
                result.errors.append(f"保存失敗: {worker_name}")

        logger.info(
            "bulk workers: inserted=%d updated=%d restored=%d skipped=%d errors=%d",
            result.inserted, result.updated, result.restored, result.skipped, len(result.errors),
        )
        return result


class SiteService:
    def __init__(self, sites: SiteRepository, *, clock: Optional[Callable[[], datetime]] = None):
        self._sites = sites
        self._clock = clock or (lambda: now_local(DEFAULT_TIMEZONE))

    def _today(self) -> date:
        return self._clock().date()

    def list_sites(self, actor: Optional[Identity]) -> Sequence[Site]:
        if actor is None:
            raise AuthenticationError("ログインしてください。")
        sites = self._sites.list_active()
        if actor.is_guest:
            return [s for s in sites if s.site_id == actor.guest_site_id]
        return sites

    def get_site(self, site_id: str) -> Optional[Site]:
        return self._sites.get(site_id)

    def create_site(
        self,
        actor: Optional[Identity],
        *,
        name: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> str:
        _require_staff(actor)
        name = require_non_empty(name, "現場名")
        start = _optional_date(start_date)
        end = _optional_date(end_date)
        if start and end and end < start:
            raise ValidationError("終了日は開始日以降を指定してください。")

        today = self._today()
        prefix = f"{today.year:04d}{today.month:02d}"
        site_id = next_site_id(self._sites.latest_id_with_prefix(prefix), today)
        self._sites.create(
            Site(
                site_id=site_id,
                site_name=name,
                status=compute_site_status(start, end, today),
                start_date=start,
                end_date=end,
            )
        )
        logger.info("site created: %s %s", site_id, name)
        return site_id

    def update_site(
        self,
        actor: Optional[Identity],
        *,
        site_id: str,
        name: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        settled: bool = False,
    ) -> SiteStatus:
        """Status is recomputed from the dates unless the site is (or becomes) 精算完了."""
        _require_staff(actor)
        name = require_non_empty(name, "現場名")
        current = self._sites.get(site_id)
        if current is None or current.is_deleted:
            raise NotFoundError("現場が見つかりません。")
        start = _optional_date(start_date)
        end = _optional_date(end_date)
        if start and end and end < start:
            raise ValidationError("終了日は開始日以降を指定してください。")

        if settled or current.status == SiteStatus.SETTLED:
            status = SiteStatus.SETTLED
        else:
            status = compute_site_status(start, end, self._today())
        self._sites.update(site_id, site_name=name, start_date=start, end_date=end, status=status)
        return status

    def delete_site(self, actor: Optional[Identity], site_id: str) -> None:
        _require_staff(actor)
        site_id = require_non_empty(site_id, "現場")
        self._sites.soft_delete(site_id, deleted_at=self._clock().replace(tzinfo=None))


class WorkTypeService:
    def __init__(self, work_types: WorkTypeRepository, *, clock: Optional[Callable[[], datetime]] = None):
        self._work_types = work_types
        self._clock = clock or (lambda: now_local(DEFAULT_TIMEZONE))

    def _now(self) -> datetime:
        return self._clock().replace(tzinfo=None)

    def list_categories(self, actor: Optional[Identity]) -> Sequence[WorkCategory]:
        if actor is None:
            raise AuthenticationError("ログインしてください。")
        return self._work_types.list_categories()

    def list_work_types(self, actor: Optional[Identity]) -> Sequence[WorkType]:
        if actor is None:
            raise AuthenticationError("ログインしてください。")
        return self._work_types.list_work_types()

    def _create_or_revive_category(self, name: str) -> Tuple[str, bool]:
        existing = self._work_types.find_category_by_name(name)
        if existing is not None:
            if existing.is_deleted:
                self._work_types.set_category_deleted(existing.category_id, None)
                return existing.category_id, True
            raise ValidationError("同じカテゴリが既に登録されています。")
        category_id = str(uuid.uuid4())
        self._work_types.create_category(WorkCategory(category_id=category_id, name=name))
        return category_id, False

    def create_category(self, actor: Optional[Identity], name: str) -> Tuple[str, bool]:
        """Returns (category_id, restored)."""
        _require_staff(actor)
        return self._create_or_revive_category(require_non_empty(name, "カテゴリ名"))

    def update_category(self, actor: Optional[Identity], *, category_id: str, name: str) -> None:
        _require_staff(actor)
        name = require_non_empty(name, "カテゴリ名")
        if not self._work_types.update_category(category_id, name=name):
            raise NotFoundError("カテゴリが見つかりません。")

    def delete_category(self, actor: Optional[Identity], category_id: str) -> None:
        _require_staff(actor)
        self._work_types.set_category_deleted(require_non_empty(category_id, "カテゴリ"), self._now())

    def _create_or_revive_work_type(self, category_id: str, name: str) -> Tuple[str, bool]:
        existing = self._work_types.find_work_type(category_id, name)
        if existing is not None:
            if existing.is_deleted:
                self._work_types.set_work_type_deleted(existing.work_type_id, None)
                return existing.work_type_id, True
            raise ValidationError("同じ作業内容が既に登録されています。")
        work_type_id = str(uuid.uuid4())
        self._work_types.create_work_type(WorkType(work_type_id=work_type_id, category_id=category_id, name=name))
        return work_type_id, False

    def create_work_type(self, actor: Optional[Identity], *, category_id: str, name: str) -> Tuple[str, bool]:
        """Returns (work_type_id, restored)."""
        _require_staff(actor)
        name = require_non_empty(name, "作業内容")
        category_id = require_non_empty(category_id, "カテゴリ")
        return self._create_or_revive_work_type(category_id, name)

    def update_work_type(self, actor: Optional[Identity], *, work_type_id: str, name: str, category_id: str) -> None:
        _require_staff(actor)
        name = require_non_empty(name, "作業内容")
        category_id = require_non_empty(category_id, "カテゴリ")
        if not self._work_types.update_work_type(work_type_id, name=name, category_id=category_id):
            raise NotFoundError("作業内容が見つかりません。")

    def delete_work_type(self, actor: Optional[Identity], work_type_id: str) -> None:
        _require_staff(actor)
        self._work_types.set_work_type_deleted(require_non_empty(work_type_id, "作業内容"), self._now())

    @staticmethod
    def template_csv() -> bytes:
        out = io.StringIO()
        csv.writer(out, lineterminator="\n").writerow(WORK_TYPE_TEMPLATE_HEADER)
        return out.getvalue().encode("utf-8-sig")

    def import_csv(self, actor: Optional[Identity], text: str) -> int:
        """Rows of (category name, work type name); missing categories are created, existing types skipped."""
        _require_staff(actor)
        lines = [line for line in (text or "").lstrip("\ufeff").splitlines() if line.strip()]
        if len(lines) <= 1:
            raise ValidationError("CSVに登録対象がありません。")

        imported = 0
        category_ids: Dict[str, str] = {}
        for record in csv.reader(lines[1:]):
            if len(record) < 2:
                continue
            category_name, work_type_name = record[0].strip(), record[1].strip()
            if not category_name or not work_type_name:
                continue

            category_id = category_ids.get(category_name)
            if category_id is None:
                category = self._work_types.find_category_by_name(category_name)
                if category is None:
                    category_id, _ = self._create_or_revive_category(category_name)
                else:
                    category_id = category.category_id
                    if category.is_deleted:
                        self._work_types.set_category_deleted(category_id, None)
                category_ids[category_name] = category_id

            existing = self._work_types.find_work_type(category_id, work_type_name)
            if existing is not None and not existing.is_deleted:
                continue
            self._create_or_revive_work_type(category_id, work_type_name)
            imported += 1

        logger.info("work types imported: %d", imported)
        return imported
