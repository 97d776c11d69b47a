from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from ..core.enums import SiteStatus


@dataclass(frozen=True)
class Contractor:
    """協力業者。name は登記上の名称 (株式会社 等を含む)。"""

    contractor_id: str
    name: str
    default_work_category_id: Optional[str] = None
    show_in_attendance: bool = True
    is_deleted: bool = False


@dataclass(frozen=True)
class Worker:
    worker_id: str
    name: str
    contractor_id: str
    is_deleted: bool = False
    last_active_date: Optional[date] = None


@dataclass(frozen=True)
class Site:
    site_id: str
    site_name: str
    status: SiteStatus = SiteStatus.PRE_CONTRACT
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_deleted: bool = False


@dataclass(frozen=True)
class WorkCategory:
    category_id: str
    name: str
    is_deleted: bool = False


@dataclass(frozen=True)
class WorkType:
    work_type_id: str
    category_id: str
    name: str
    is_deleted: bool = False


@dataclass(frozen=True)
class BulkWorkerRow:
    contractor_name: str
    worker_name: str
    worker_id: Optional[str] = None


@dataclass
class BulkWorkerResult:
    inserted: int = 0
    updated: int = 0
    restored: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "restored": self.restored,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }
