from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class GuestLink:
    """ゲスト用URL。1現場に紐づき、期限と入場編集可否を持つ。"""

    token: str
    site_id: str
    expires_at: Optional[date] = None
    can_edit_attendance: bool = False
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_expired(self, today: date) -> bool:
        return self.expires_at is not None and self.expires_at < today


@dataclass(frozen=True)
class IssuedGuestLink:
    token: str
    url: str
    existing: bool
