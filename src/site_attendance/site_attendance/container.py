from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.memo_codec import ExternalMemoCodec
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciler import EntryReconciler
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import (
    DEFAULT_EXTERNAL_MARKER,
    DEFAULT_GUEST_LINK_RETENTION_DAYS,
    DEFAULT_IMPORT_CHUNK_SIZE,
    DEFAULT_REPORT_PAGE_SIZE,
    DEFAULT_TIMEZONE,
)
from .database.connection import DBConfig, DatabaseConnection
from .database.mysql_base import ping
from .guests.mysql_guest_link_repository import MySQLGuestLinkRepository
from .guests.repository import GuestLinkRepository
from .guests.service import GuestAccessPolicy, GuestLinkService
from .imports.service import AttendanceImportService, WorkerImportService
from .masters.mysql_contractor_repository import MySQLContractorRepository
from .masters.mysql_site_repository import MySQLSiteRepository
from .masters.mysql_work_type_repository import MySQLWorkTypeRepository
from .masters.mysql_worker_repository import MySQLWorkerRepository
from .masters.repository import ContractorRepository, SiteRepository, WorkTypeRepository, WorkerRepository
from .masters.service import ContractorService, SiteService, WorkTypeService, WorkerService
from .naming.normalizer import NameNormalizer
from .reports.aggregator import Aggregator
from .reports.mysql_report_repository import MySQLReportRepository
from .reports.repository import ReportRepository
from .reports.service import ReportService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    normalizer: NameNormalizer
    codec: ExternalMemoCodec

    users_repo: UserRepository
    sites_repo: SiteRepository
    contractors_repo: ContractorRepository
    workers_repo: WorkerRepository
    work_types_repo: WorkTypeRepository
    attendance_repo: AttendanceRepository
    reports_repo: ReportRepository
    guest_links_repo: GuestLinkRepository

    access_policy: GuestAccessPolicy
    auth_service: AuthService
    user_service: UserService
    guest_link_service: GuestLinkService
    contractor_service: ContractorService
    worker_service: WorkerService
    site_service: SiteService
    work_type_service: WorkTypeService
    attendance_service: AttendanceService
    report_service: ReportService
    attendance_import_service: AttendanceImportService
    worker_import_service: WorkerImportService

    def health_check(self) -> None:
        if self.conn is not None:
            ping(self.conn)


def _setting(settings: Any, name: str, default):
    value = getattr(settings, name, None) if settings is not None else None
    return default if value is None else value


def assemble(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    sites_repo: SiteRepository,
    contractors_repo: ContractorRepository,
    workers_repo: WorkerRepository,
    work_types_repo: WorkTypeRepository,
    attendance_repo: AttendanceRepository,
    reports_repo: ReportRepository,
    guest_links_repo: GuestLinkRepository,
    settings: Any = None,
    clock=None,
    id_factory=None,
    token_factory=None,
) -> Container:
    """Wire services on top of the given repositories (MySQL ones in the app, in-memory ones in tests)."""
    timezone = _setting(settings, "TIMEZONE", DEFAULT_TIMEZONE)
    normalizer = NameNormalizer(_setting(settings, "LEGAL_ENTITY_TOKENS", None))
    codec = ExternalMemoCodec(_setting(settings, "EXTERNAL_MARKER", DEFAULT_EXTERNAL_MARKER))

    id_kwargs = {"id_factory": id_factory} if id_factory else {}
    token_kwargs = {"token_factory": token_factory} if token_factory else {}

    access_policy = GuestAccessPolicy(guest_links_repo, timezone=timezone, clock=clock)
    guest_link_service = GuestLinkService(
        guest_links_repo,
        timezone=timezone,
        retention_days=_setting(settings, "GUEST_LINK_RETENTION_DAYS", DEFAULT_GUEST_LINK_RETENTION_DAYS),
        app_url=_setting(settings, "APP_URL", ""),
        clock=clock,
        **token_kwargs,
    )
    auth_service = AuthService(users_repo, guest_link_service)
    user_service = UserService(users_repo)

    contractor_service = ContractorService(contractors_repo, normalizer=normalizer, clock=clock)
    worker_service = WorkerService(workers_repo, contractors_repo, normalizer=normalizer, clock=clock)
    site_service = SiteService(sites_repo, clock=clock)
    work_type_service = WorkTypeService(work_types_repo, clock=clock)

    attendance_service = AttendanceService(
        attendance_repo,
        access_policy,
        codec=codec,
        reconciler=EntryReconciler(codec, **id_kwargs),
        normalizer=normalizer,
    )
    report_service = ReportService(
        reports_repo,
        sites_repo,
        users_repo,
        access_policy,
        Aggregator(codec, normalizer=normalizer),
        page_size=_setting(settings, "REPORT_PAGE_SIZE", DEFAULT_REPORT_PAGE_SIZE),
        timezone=timezone,
        clock=clock,
    )
    attendance_import_service = AttendanceImportService(
        attendance_repo,
        contractors_repo,
        workers_repo,
        sites_repo,
        codec=codec,
        normalizer=normalizer,
        chunk_size=_setting(settings, "IMPORT_CHUNK_SIZE", DEFAULT_IMPORT_CHUNK_SIZE),
        **id_kwargs,
    )
    worker_import_service = WorkerImportService(workers_repo, contractors_repo, normalizer=normalizer, **id_kwargs)

    return Container(
        conn=conn,
        normalizer=normalizer,
        codec=codec,
        users_repo=users_repo,
        sites_repo=sites_repo,
        contractors_repo=contractors_repo,
        workers_repo=workers_repo,
        work_types_repo=work_types_repo,
        attendance_repo=attendance_repo,
        reports_repo=reports_repo,
        guest_links_repo=guest_links_repo,
        access_policy=access_policy,
        auth_service=auth_service,
        user_service=user_service,
        guest_link_service=guest_link_service,
        contractor_service=contractor_service,
        worker_service=worker_service,
        site_service=site_service,
        work_type_service=work_type_service,
        attendance_service=attendance_service,
        report_service=report_service,
        attendance_import_service=attendance_import_service,
        worker_import_service=worker_import_service,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))

    return assemble(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        sites_repo=MySQLSiteRepository(conn),
        contractors_repo=MySQLContractorRepository(conn),
        workers_repo=MySQLWorkerRepository(conn),
        work_types_repo=MySQLWorkTypeRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        reports_repo=MySQLReportRepository(conn),
        guest_links_repo=MySQLGuestLinkRepository(conn),
        settings=settings,
    )
