from __future__ import annotations

import logging
import secrets
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local, parse_iso_date
from ..core.constants import DEFAULT_GUEST_LINK_RETENTION_DAYS, DEFAULT_TIMEZONE
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidExpiryError,
    LinkExpiredError,
    NotFoundError,
    ValidationError,
)
from ..users.identity import Identity
from .model import GuestLink, IssuedGuestLink
from .repository import GuestLinkRepository

logger = logging.getLogger(__name__)


def _new_token() -> str:
    # 16 random bytes, base64url without padding
    return secrets.token_urlsafe(16)


def parse_expiry(value: Optional[str]) -> Optional[date]:
    text = (value or "").strip()
    if not text:
        return None
    try:
        return parse_iso_date(text)
    except ValidationError:
        raise InvalidExpiryError(f"有効期限が不正です: {text}")


class GuestAccessPolicy:
    """Read/write checks for the attendance and report endpoints.

    Staff (admin / user) may read and write every site. A guest may read only
    the site of its link, and may write only when the link is still valid and
    allows attendance edits. An expired link found during a failed write check
    is deleted.
    """

    def __init__(
        self,
        links: GuestLinkRepository,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._links = links
        self._timezone = timezone
        self._clock = clock or (lambda: now_local(self._timezone))

    def today(self) -> date:
        return self._clock().date()

    def ensure_authenticated(self, identity: Optional[Identity]) -> Identity:
        if identity is None:
            raise AuthenticationError("ログインしてください。")
        return identity

    def ensure_staff(self, identity: Optional[Identity]) -> Identity:
        identity = self.ensure_authenticated(identity)
        if identity.is_guest:
            raise AuthorizationError("ゲストは操作できません。")
        return identity

    def ensure_admin(self, identity: Optional[Identity]) -> Identity:
        identity = self.ensure_staff(identity)
        if not identity.is_admin:
            raise AuthorizationError("管理者のみ操作できます。")
        return identity

    def scoped_site(self, identity: Identity, requested: Optional[str]) -> Optional[str]:
        if identity.is_guest:
            return identity.guest_site_id
        return requested

    def ensure_can_read(self, identity: Optional[Identity], site_id: str) -> Identity:
        identity = self.ensure_authenticated(identity)
        if identity.is_guest and identity.guest_site_id and identity.guest_site_id != site_id:
            raise AuthorizationError("この現場は閲覧できません。")
        return identity

    def ensure_can_write(self, identity: Optional[Identity], site_id: str) -> Identity:
        identity = self.ensure_authenticated(identity)
        if not identity.is_guest:
            return identity

        token = identity.guest_token
        if not token:
            raise AuthorizationError("ゲスト用URLが無効です。")

        link = self._links.get(token)
        expired = link is not None and link.is_expired(self.today())
        if (
            link is None
            or link.is_deleted
            or expired
            or not link.can_edit_attendance
            or (identity.guest_site_id and link.site_id != identity.guest_site_id)
            or link.site_id != site_id
        ):
            if expired:
                self._links.hard_delete(token)
                logger.info("expired guest link removed on write check (site=%s)", link.site_id)
            raise AuthorizationError("この操作は許可されていません。")
        return identity


class GuestLinkService:
    """Use case: issue / revoke / re-date guest links."""

    def __init__(
        self,
        links: GuestLinkRepository,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        retention_days: int = DEFAULT_GUEST_LINK_RETENTION_DAYS,
        app_url: Optional[str] = None,
        token_factory: Callable[[], str] = _new_token,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._links = links
        self._timezone = timezone
        self._retention_days = int(retention_days)
        self._app_url = (app_url or "").rstrip("/")
        self._token_factory = token_factory
        self._clock = clock or (lambda: now_local(self._timezone))

    def _now(self) -> datetime:
        # DATETIME columns hold naive local time
        return self._clock().replace(tzinfo=None)

    @staticmethod
    def _require_staff(actor: Optional[Identity]) -> None:
        if actor is None:
            raise AuthenticationError("ログインしてください。")
        if actor.is_guest:
            raise AuthorizationError("ゲストは操作できません。")

    def build_url(self, token: str, base_url: Optional[str] = None) -> str:
        base = self._app_url or (base_url or "").rstrip("/")
        return f"{base}/login?guest={token}"

    def prune(self, *, include_expired: bool = True) -> int:
        now = self._now()
        removed = self._links.purge_deleted_before(now - timedelta(days=self._retention_days))
        if include_expired:
            removed += self._links.purge_expired_before(now.date())
        if removed:
            logger.info("pruned %d guest links", removed)
        return removed

    def list_links(self, actor: Optional[Identity]) -> Sequence[GuestLink]:
        self._require_staff(actor)
        return self._links.list_all()

    def issue(
        self,
        actor: Optional[Identity],
        *,
        site_id: str,
        expires_at: Optional[str] = None,
        can_edit_attendance: bool = False,
        base_url: Optional[str] = None,
    ) -> IssuedGuestLink:
        """Reuse the live link of the site, else revive the latest deleted one, else create."""
        self._require_staff(actor)
        site_id = (site_id or "").strip()
        if not site_id:
            raise ValidationError("現場を選択してください。")
        expiry = parse_expiry(expires_at)

        self.prune()
        today = self._now().date()

        existing = self._links.latest_for_site(site_id, deleted=False)
        if existing is not None:
            if existing.is_expired(today):
                self._links.hard_delete(existing.token)
            else:
                return IssuedGuestLink(token=existing.token, url=self.build_url(existing.token, base_url), existing=True)

        deleted = self._links.latest_for_site(site_id, deleted=True)
        if deleted is not None:
            self._links.revive(deleted.token)
            logger.info("guest link revived for site %s", site_id)
            return IssuedGuestLink(token=deleted.token, url=self.build_url(deleted.token, base_url), existing=True)

        token = self._token_factory()
        self._links.create(
            GuestLink(
                token=token,
                site_id=site_id,
                expires_at=expiry,
                can_edit_attendance=bool(can_edit_attendance),
            )
        )
        logger.info("guest link issued for site %s", site_id)
        return IssuedGuestLink(token=token, url=self.build_url(token, base_url), existing=False)

    def revoke(self, actor: Optional[Identity], token: str) -> None:
        self._require_staff(actor)
        if not token:
            raise ValidationError("トークンが指定されていません。")
        self.prune(include_expired=False)
        self._links.soft_delete(token, deleted_at=self._now())

    def update_expiry(self, actor: Optional[Identity], token: str, expires_at: Optional[str]) -> None:
        self._require_staff(actor)
        if not token:
            raise ValidationError("トークンが指定されていません。")
        expiry = parse_expiry(expires_at)

        link = self._links.get(token)
        if link is None:
            raise NotFoundError("ゲスト用URLが見つかりません。")
        if link.is_expired(self._now().date()):
            self._links.hard_delete(token)
            raise LinkExpiredError("ゲスト用URLの有効期限が切れています。")
        self._links.update_expiry(token, expiry)

    def resolve_for_login(self, token: str) -> GuestLink:
        """A link usable for guest login: present, not revoked, not expired."""
        token = (token or "").strip()
        if not token:
            raise AuthenticationError("ゲスト用URLからログインしてください。")
        link = self._links.get(token)
        if link is None or link.is_deleted:
            raise AuthenticationError("ゲスト用URLが無効です。")
        if link.is_expired(self._now().date()):
            self._links.hard_delete(token)
            raise AuthenticationError("ゲスト用URLの有効期限が切れています。")
        return link
