from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from ..common.datetime_utils import month_range, now_local
from ..core.constants import DEFAULT_REPORT_PAGE_SIZE, DEFAULT_TIMEZONE
from ..core.enums import ReportMode
from ..core.exceptions import NotFoundError, ValidationError
from ..guests.service import GuestAccessPolicy
from ..masters.model import Site
from ..masters.repository import SiteRepository
from ..users.identity import Identity
from ..users.repository import UserRepository
from .aggregator import Aggregator
from .model import Report, ReportEntry, ReportFilters
from .repository import ReportRepository

logger = logging.getLogger(__name__)


class ReportService:
    """Use case: build the month / period / detail report of one site."""

    def __init__(
        self,
        reports: ReportRepository,
        sites: SiteRepository,
        users: UserRepository,
        access: GuestAccessPolicy,
        aggregator: Aggregator,
        *,
        page_size: int = DEFAULT_REPORT_PAGE_SIZE,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._reports = reports
        self._sites = sites
        self._users = users
        self._access = access
        self._aggregator = aggregator
        self._page_size = max(1, int(page_size))
        self._clock = clock or (lambda: now_local(timezone))

    def _today(self) -> date:
        return self._clock().date()

    def resolve_site(self, actor: Identity, requested: Optional[str]) -> Site:
        """Guest's site, else the requested one, else the user's default, else the first active site."""
        site_id = self._access.scoped_site(actor, (requested or "").strip() or None)
        if not site_id and not actor.is_guest:
            site_id = self._users.get_settings(actor.user_id).default_site_id
        if site_id:
            site = self._sites.get(site_id)
            if site is None or site.is_deleted:
                raise NotFoundError("現場が見つかりません。")
            return site

        sites = self._sites.list_active()
        if not sites:
            raise NotFoundError("現場が登録されていません。")
        return sites[0]

    def resolve_range(
        self,
        site: Site,
        mode: ReportMode,
        *,
        month: Optional[Tuple[int, int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Tuple[date, date]:
        today = self._today()
        if mode == ReportMode.MONTH:
            return month_range(*(month or (today.year, today.month)))

        if start is None:
            start = site.start_date or today.replace(day=1)
        if end is None:
            end = today
        if end < start:
            raise ValidationError("終了日は開始日以降を指定してください。")
        return start, end

    def fetch_entries(self, site_id: str, start: date, end: date) -> List[ReportEntry]:
        entries: List[ReportEntry] = []
        offset = 0
        while True:
            page = list(self._reports.fetch_page(site_id, start, end, offset=offset, limit=self._page_size))
            entries.extend(page)
            if len(page) < self._page_size:
                break
            offset += self._page_size
        return entries

    def build_report(
        self,
        *,
        site_id: Optional[str] = None,
        mode: ReportMode = ReportMode.MONTH,
        month: Optional[Tuple[int, int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        filters: Optional[ReportFilters] = None,
        actor: Optional[Identity] = None,
    ) -> Report:
        actor = self._access.ensure_authenticated(actor)
        site = self.resolve_site(actor, site_id)
        self._access.ensure_can_read(actor, site.site_id)

        start, end = self.resolve_range(site, mode, month=month, start=start, end=end)
        entries = self.fetch_entries(site.site_id, start, end)
        report = self._aggregator.aggregate(
            entries,
            mode,
            filters,
            month=(start.year, start.month) if mode == ReportMode.MONTH else None,
            start=start,
            end=end,
        )
        logger.debug("report built site=%s mode=%s entries=%d", site.site_id, mode.value, len(entries))
        return dataclasses.replace(report, site_id=site.site_id, site_name=site.site_name)
