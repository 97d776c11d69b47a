from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SiteStatus
from .model import Contractor, Site, WorkCategory, WorkType, Worker


class ContractorRepository(Protocol):
    def list_active(self) -> Sequence[Contractor]:
        raise NotImplementedError

    def get(self, contractor_id: str) -> Optional[Contractor]:
        raise NotImplementedError

    def create(self, contractor: Contractor) -> None:
        raise NotImplementedError

    def update_settings(
        self,
        contractor_id: str,
        *,
        default_work_category_id: Optional[str],
        show_in_attendance: bool,
    ) -> bool:
        raise NotImplementedError

    def soft_delete(self, contractor_id: str, *, deleted_at: datetime) -> bool:
        raise NotImplementedError


class WorkerRepository(Protocol):
    def list_by_contractors(self, contractor_ids: Sequence[str], *, include_deleted: bool = False) -> Sequence[Worker]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Worker]:
        raise NotImplementedError

    def get(self, worker_id: str) -> Optional[Worker]:
        raise NotImplementedError

    def create(self, worker: Worker) -> None:
        raise NotImplementedError

    def update(self, worker_id: str, *, name: str, contractor_id: str) -> bool:
        """Rename / move a worker; also clears the deleted flag."""
        raise NotImplementedError

    def revive(self, worker_ids: Sequence[str]) -> int:
        raise NotImplementedError

    def soft_delete(self, worker_id: str, *, deleted_at: datetime) -> bool:
        raise NotImplementedError


class SiteRepository(Protocol):
    def list_active(self) -> Sequence[Site]:
        raise NotImplementedError

    def get(self, site_id: str) -> Optional[Site]:
        raise NotImplementedError

    def latest_id_with_prefix(self, prefix: str) -> Optional[str]:
        raise NotImplementedError

    def create(self, site: Site) -> None:
        raise NotImplementedError

    def update(
        self,
        site_id: str,
        *,
        site_name: str,
        start_date: Optional[date],
        end_date: Optional[date],
        status: SiteStatus,
    ) -> bool:
        raise NotImplementedError

    def soft_delete(self, site_id: str, *, deleted_at: datetime) -> bool:
        raise NotImplementedError


class WorkTypeRepository(Protocol):
    def list_categories(self) -> Sequence[WorkCategory]:
        raise NotImplementedError

    def find_category_by_name(self, name: str) -> Optional[WorkCategory]:
        """Deleted rows included."""
        raise NotImplementedError

    def create_category(self, category: WorkCategory) -> None:
        raise NotImplementedError

    def update_category(self, category_id: str, *, name: str) -> bool:
        raise NotImplementedError

    def set_category_deleted(self, category_id: str, deleted_at: Optional[datetime]) -> bool:
        """deleted_at=None revives."""
        raise NotImplementedError

    def list_work_types(self) -> Sequence[WorkType]:
        raise NotImplementedError

    def find_work_type(self, category_id: str, name: str) -> Optional[WorkType]:
        """Deleted rows included."""
        raise NotImplementedError

    def create_work_type(self, work_type: WorkType) -> None:
        raise NotImplementedError

    def update_work_type(self, work_type_id: str, *, name: str, category_id: str) -> bool:
        raise NotImplementedError

    def set_work_type_deleted(self, work_type_id: str, deleted_at: Optional[datetime]) -> bool:
        raise NotImplementedError
