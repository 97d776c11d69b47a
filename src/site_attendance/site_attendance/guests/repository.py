from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import GuestLink


class GuestLinkRepository(Protocol):
    def get(self, token: str) -> Optional[GuestLink]:
        raise NotImplementedError

    def list_all(self) -> Sequence[GuestLink]:
        raise NotImplementedError

    def latest_for_site(self, site_id: str, *, deleted: bool) -> Optional[GuestLink]:
        raise NotImplementedError

    def create(self, link: GuestLink) -> None:
        raise NotImplementedError

    def revive(self, token: str) -> bool:
        raise NotImplementedError

    def soft_delete(self, token: str, *, deleted_at: datetime) -> bool:
        raise NotImplementedError

    def hard_delete(self, token: str) -> bool:
        raise NotImplementedError

    def update_expiry(self, token: str, expires_at: Optional[date]) -> bool:
        raise NotImplementedError

    def purge_deleted_before(self, cutoff: datetime) -> int:
        raise NotImplementedError

    def purge_expired_before(self, today: date) -> int:
        raise NotImplementedError
