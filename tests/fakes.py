"""In-memory repositories used by the tests in place of the MySQL ones."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from src.site_attendance.site_attendance.attendance.model import AttendanceEntry, DayEntryView, ReconcilePlan
from src.site_attendance.site_attendance.container import assemble
from src.site_attendance.site_attendance.core.enums import Role, SiteStatus
from src.site_attendance.site_attendance.core.exceptions import StorageError
from src.site_attendance.site_attendance.guests.model import GuestLink
from src.site_attendance.site_attendance.masters.model import Contractor, Site, WorkCategory, WorkType, Worker
from src.site_attendance.site_attendance.reports.model import ReportEntry
from src.site_attendance.site_attendance.users.model import User, UserSettings

W1 = "8a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c01"
W2 = "8a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c02"
W3 = "8a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c03"
SITE = "202501001"
DAY = date(2025, 1, 10)


class InMemoryAttendance:
    def __init__(self, entries: Sequence[AttendanceEntry] = ()):
        self.entries: Dict[str, AttendanceEntry] = {e.entry_id: e for e in entries}
        self.applied: List[ReconcilePlan] = []
        self.upsert_calls: List[int] = []
        self.fail_on_upsert_call: Optional[int] = None
        self.fail_on_apply = False

    def _conflict(self, entry: AttendanceEntry) -> Optional[AttendanceEntry]:
        for current in self.entries.values():
            if (
                current.entry_date == entry.entry_date
                and current.site_id == entry.site_id
                and current.natural_key == entry.natural_key
            ):
                return current
        return None

    def _upsert(self, entry: AttendanceEntry) -> None:
        current = self._conflict(entry)
        if current is not None:
            # ON DUPLICATE KEY UPDATE keeps the stored primary key
            self.entries[current.entry_id] = dataclasses.replace(entry, entry_id=current.entry_id)
        else:
            self.entries[entry.entry_id] = entry

    def list_day(self, site_id: str, entry_date: date) -> Sequence[AttendanceEntry]:
        return [e for e in self.entries.values() if e.site_id == site_id and e.entry_date == entry_date]

    def list_day_views(self, site_id: str, entry_date: date) -> Sequence[DayEntryView]:
        return [DayEntryView(entry=e) for e in self.list_day(site_id, entry_date)]

    def apply_day_plan(self, plan: ReconcilePlan) -> None:
        if self.fail_on_apply:
            # the MySQL version rolls the whole plan back
            raise StorageError("Lock wait timeout exceeded")
        self.applied.append(plan)
        if plan.clear_day:
            self.delete_day(plan.site_id, plan.entry_date)
            return
        for entry_id in plan.delete_ids:
            self.entries.pop(entry_id, None)
        for entry in plan.roster_upserts + plan.external_upserts:
            self._upsert(entry)

    def delete_day(self, site_id: str, entry_date: date) -> int:
        doomed = [e.entry_id for e in self.list_day(site_id, entry_date)]
        for entry_id in doomed:
            del self.entries[entry_id]
        return len(doomed)

    def list_range(self, site_id: str, start: date, end: date) -> Sequence[AttendanceEntry]:
        return [e for e in self.entries.values() if e.site_id == site_id and start <= e.entry_date <= end]

    def upsert_entries(self, entries: Sequence[AttendanceEntry]) -> int:
        self.upsert_calls.append(len(entries))
        if self.fail_on_upsert_call is not None and len(self.upsert_calls) == self.fail_on_upsert_call:
            raise StorageError("Duplicate entry")
        for entry in entries:
            self._upsert(entry)
        return len(entries)


class InMemoryReports:
    def __init__(self, entries: Sequence[ReportEntry] = ()):
        self.entries = list(entries)
        self.calls: List[tuple] = []

    def fetch_page(self, site_id: str, start: date, end: date, *, offset: int, limit: int) -> Sequence[ReportEntry]:
        self.calls.append((site_id, start, end, offset, limit))
        rows = [e for e in self.entries if start <= e.entry_date <= end]
        return rows[offset:offset + limit]


class InMemoryGuestLinks:
    def __init__(self, links: Sequence[GuestLink] = ()):
        self.links: Dict[str, GuestLink] = {link.token: link for link in links}

    def get(self, token: str) -> Optional[GuestLink]:
        return self.links.get(token)

    def list_all(self) -> Sequence[GuestLink]:
        return list(reversed(list(self.links.values())))

    def latest_for_site(self, site_id: str, *, deleted: bool) -> Optional[GuestLink]:
        matches = [l for l in self.links.values() if l.site_id == site_id and l.is_deleted == deleted]
        return matches[-1] if matches else None

    def create(self, link: GuestLink) -> None:
        self.links[link.token] = link

    def revive(self, token: str) -> bool:
        link = self.links.get(token)
        if link is None:
            return False
        self.links[token] = dataclasses.replace(link, is_deleted=False, deleted_at=None)
        return True

    def soft_delete(self, token: str, *, deleted_at: datetime) -> bool:
        link = self.links.get(token)
        if link is None:
            return False
        self.links[token] = dataclasses.replace(link, is_deleted=True, deleted_at=deleted_at)
        return True

    def hard_delete(self, token: str) -> bool:
        return self.links.pop(token, None) is not None

    def update_expiry(self, token: str, expires_at: Optional[date]) -> bool:
        link = self.links.get(token)
        if link is None:
            return False
        self.links[token] = dataclasses.replace(link, expires_at=expires_at)
        return True

    def purge_deleted_before(self, cutoff: datetime) -> int:
        doomed = [t for t, l in self.links.items() if l.is_deleted and l.deleted_at and l.deleted_at <= cutoff]
        for token in doomed:
            del self.links[token]
        return len(doomed)

    def purge_expired_before(self, today: date) -> int:
        doomed = [t for t, l in self.links.items() if l.expires_at is not None and l.expires_at < today]
        for token in doomed:
            del self.links[token]
        return len(doomed)


class InMemoryUsers:
    def __init__(self, users: Sequence[User] = ()):
        self.users: Dict[str, User] = {u.user_id: u for u in users}
        self.settings: Dict[str, UserSettings] = {}

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    def list_active(self) -> Sequence[User]:
        return [u for u in self.users.values() if u.is_active]

    def create_user(self, *, user_id, username, display_name, password_hash, role) -> str:
        self.users[user_id] = User(
            user_id=user_id, username=username, password_hash=password_hash, role=role, display_name=display_name
        )
        return user_id

    def update_user(self, *, user_id, display_name, role) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = dataclasses.replace(user, display_name=display_name, role=role)
        return True

    def deactivate(self, user_id: str) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = dataclasses.replace(user, is_active=False)
        return True

    def update_password(self, *, user_id, password_hash) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = dataclasses.replace(user, password_hash=password_hash)
        return True

    def get_settings(self, user_id: str) -> UserSettings:
        return self.settings.get(user_id, UserSettings(user_id=user_id))

    def set_default_site(self, *, user_id, site_id) -> None:
        self.settings[user_id] = UserSettings(user_id=user_id, default_site_id=site_id)


class InMemorySites:
    def __init__(self, sites: Sequence[Site] = ()):
        self.sites: Dict[str, Site] = {s.site_id: s for s in sites}

    def list_active(self) -> Sequence[Site]:
        return sorted((s for s in self.sites.values() if not s.is_deleted), key=lambda s: s.site_name)

    def get(self, site_id: str) -> Optional[Site]:
        return self.sites.get(site_id)

    def latest_id_with_prefix(self, prefix: str) -> Optional[str]:
        ids = sorted(i for i in self.sites if i.startswith(prefix))
        return ids[-1] if ids else None

    def create(self, site: Site) -> None:
        self.sites[site.site_id] = site

    def update(self, site_id, *, site_name, start_date, end_date, status: SiteStatus) -> bool:
        site = self.sites.get(site_id)
        if site is None:
            return False
        self.sites[site_id] = dataclasses.replace(
            site, site_name=site_name, start_date=start_date, end_date=end_date, status=status
        )
        return True

    def soft_delete(self, site_id, *, deleted_at) -> bool:
        site = self.sites.get(site_id)
        if site is None:
            return False
        self.sites[site_id] = dataclasses.replace(site, is_deleted=True)
        return True


class InMemoryContractors:
    def __init__(self, contractors: Sequence[Contractor] = ()):
        self.contractors: Dict[str, Contractor] = {c.contractor_id: c for c in contractors}

    def list_active(self) -> Sequence[Contractor]:
        return [c for c in self.contractors.values() if not c.is_deleted]

    def get(self, contractor_id: str) -> Optional[Contractor]:
        return self.contractors.get(contractor_id)

    def create(self, contractor: Contractor) -> None:
        self.contractors[contractor.contractor_id] = contractor

    def update_settings(self, contractor_id, *, default_work_category_id, show_in_attendance) -> bool:
        current = self.contractors.get(contractor_id)
        if current is None:
            return False
        self.contractors[contractor_id] = dataclasses.replace(
            current, default_work_category_id=default_work_category_id, show_in_attendance=show_in_attendance
        )
        return True

    def soft_delete(self, contractor_id, *, deleted_at) -> bool:
        current = self.contractors.get(contractor_id)
        if current is None:
            return False
        self.contractors[contractor_id] = dataclasses.replace(current, is_deleted=True)
        return True


class InMemoryWorkers:
    def __init__(self, workers: Sequence[Worker] = ()):
        self.workers: Dict[str, Worker] = {w.worker_id: w for w in workers}
        self.fail_on_create = False

    def list_by_contractors(self, contractor_ids, *, include_deleted=False) -> Sequence[Worker]:
        return [
            w for w in self.workers.values()
            if w.contractor_id in contractor_ids and (include_deleted or not w.is_deleted)
        ]

    def list_active(self) -> Sequence[Worker]:
        return [w for w in self.workers.values() if not w.is_deleted]

    def get(self, worker_id: str) -> Optional[Worker]:
        return self.workers.get(worker_id)

    def create(self, worker: Worker) -> None:
        if self.fail_on_create:
            raise StorageError("insert rejected")
        self.workers[worker.worker_id] = worker

    def update(self, worker_id, *, name, contractor_id) -> bool:
        current = self.workers.get(worker_id)
        if current is None:
            return False
        self.workers[worker_id] = dataclasses.replace(current, name=name, contractor_id=contractor_id, is_deleted=False)
        return True

    def revive(self, worker_ids) -> int:
        count = 0
        for worker_id in worker_ids:
            current = self.workers.get(worker_id)
            if current is not None:
                self.workers[worker_id] = dataclasses.replace(current, is_deleted=False)
                count += 1
        return count

    def soft_delete(self, worker_id, *, deleted_at) -> bool:
        current = self.workers.get(worker_id)
        if current is None:
            return False
        self.workers[worker_id] = dataclasses.replace(current, is_deleted=True)
        return True


class InMemoryWorkTypes:
    def __init__(self, categories: Sequence[WorkCategory] = (), work_types: Sequence[WorkType] = ()):
        self.categories: Dict[str, WorkCategory] = {c.category_id: c for c in categories}
        self.work_types: Dict[str, WorkType] = {t.work_type_id: t for t in work_types}

    def list_categories(self) -> Sequence[WorkCategory]:
        return [c for c in self.categories.values() if not c.is_deleted]

    def find_category_by_name(self, name: str) -> Optional[WorkCategory]:
        return next((c for c in self.categories.values() if c.name == name), None)

    def create_category(self, category: WorkCategory) -> None:
        self.categories[category.category_id] = category

    def update_category(self, category_id, *, name) -> bool:
        current = self.categories.get(category_id)
        if current is None:
            return False
        self.categories[category_id] = dataclasses.replace(current, name=name)
        return True

    def set_category_deleted(self, category_id, deleted_at) -> bool:
        current = self.categories.get(category_id)
        if current is None:
            return False
        self.categories[category_id] = dataclasses.replace(current, is_deleted=deleted_at is not None)
        return True

    def list_work_types(self) -> Sequence[WorkType]:
        return [t for t in self.work_types.values() if not t.is_deleted]

    def find_work_type(self, category_id, name) -> Optional[WorkType]:
        return next(
            (t for t in self.work_types.values() if t.category_id == category_id and t.name == name), None
        )

    def create_work_type(self, work_type: WorkType) -> None:
        self.work_types[work_type.work_type_id] = work_type

    def update_work_type(self, work_type_id, *, name, category_id) -> bool:
        current = self.work_types.get(work_type_id)
        if current is None:
            return False
        self.work_types[work_type_id] = dataclasses.replace(current, name=name, category_id=category_id)
        return True

    def set_work_type_deleted(self, work_type_id, deleted_at) -> bool:
        current = self.work_types.get(work_type_id)
        if current is None:
            return False
        self.work_types[work_type_id] = dataclasses.replace(current, is_deleted=deleted_at is not None)
        return True


def build_fake_container(*, clock, users=(), sites=(), contractors=(), workers=(), links=(), entries=(),
                         report_entries=(), id_factory=None, token_factory=None, settings=None):
    return assemble(
        conn=None,
        users_repo=InMemoryUsers(users),
        sites_repo=InMemorySites(sites),
        contractors_repo=InMemoryContractors(contractors),
        workers_repo=InMemoryWorkers(workers),
        work_types_repo=InMemoryWorkTypes(),
        attendance_repo=InMemoryAttendance(entries),
        reports_repo=InMemoryReports(report_entries),
        guest_links_repo=InMemoryGuestLinks(links),
        settings=settings,
        clock=clock,
        id_factory=id_factory,
        token_factory=token_factory,
    )


def make_user(user_id="u-admin", username="admin", password_hash="", role=Role.ADMIN) -> User:
    return User(user_id=user_id, username=username, password_hash=password_hash, role=role)
