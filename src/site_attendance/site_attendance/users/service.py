from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from ..guests.service import GuestLinkService
from .identity import GUEST_USER_ID, GUEST_USERNAME, Identity
from .model import User, UserSettings
from .repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """Use case: login (staff account or guest link)."""

    def __init__(self, users: UserRepository, guest_links: GuestLinkService):
        self._users = users
        self._guest_links = guest_links

    def authenticate(self, username: str, password: str) -> Identity:
        username = (username or "").strip()
        if not username or not password:
            raise AuthenticationError("ログインIDとパスワードを入力してください。")

        user = self._users.get_by_username(username)
        if not user or not user.is_active:
            raise AuthenticationError("ログインに失敗しました。")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # unknown hash method / placeholder hash
            ok = False
        if not ok:
            raise AuthenticationError("ログインに失敗しました。")

        role = Role.ADMIN if user.role == Role.ADMIN else Role.USER
        return Identity(user_id=user.user_id, username=user.display_name or user.username, role=role)

    def guest_login(self, token: str) -> Identity:
        link = self._guest_links.resolve_for_login(token)
        return Identity(
            user_id=GUEST_USER_ID,
            username=GUEST_USERNAME,
            role=Role.GUEST,
            guest_site_id=link.site_id,
            guest_token=link.token,
            guest_can_edit=link.can_edit_attendance,
        )


class UserService:
    """Use case: user accounts and per-user settings."""

    def __init__(self, users: UserRepository):
        self._users = users

    @staticmethod
    def _require_admin(actor: Optional[Identity]) -> None:
        if actor is None:
            raise AuthenticationError("ログインしてください。")
        if not actor.is_admin:
            raise AuthorizationError("管理者のみ操作できます。")

    @staticmethod
    def _require_staff(actor: Optional[Identity]) -> Identity:
        if actor is None:
            raise AuthenticationError("ログインしてください。")
        if actor.is_guest:
            raise AuthorizationError("ゲストは操作できません。")
        return actor

    @staticmethod
    def _parse_role(value) -> Role:
        return Role.ADMIN if str(getattr(value, "value", value)).strip() == Role.ADMIN.value else Role.USER

    def list_users(self, actor: Optional[Identity]) -> Sequence[User]:
        self._require_admin(actor)
        return self._users.list_active()

    def create_user(
        self,
        actor: Optional[Identity],
        *,
        username: str,
        password: str,
        display_name: Optional[str] = None,
        role: str = Role.USER.value,
    ) -> str:
        self._require_admin(actor)
        username = require_non_empty(username, "ログインID")
        require_min_length(password, "パスワード", MIN_PASSWORD_LENGTH)
        if self._users.get_by_username(username):
            raise ValidationError("このログインIDは既に使われています。")

        user_id = self._users.create_user(
            user_id=str(uuid.uuid4()),
            username=username,
            display_name=(display_name or "").strip() or None,
            password_hash=generate_password_hash(password),
            role=self._parse_role(role),
        )
        logger.info("user created: %s", username)
        return user_id

    def update_user(
        self,
        actor: Optional[Identity],
        *,
        user_id: str,
        display_name: Optional[str],
        role: str,
    ) -> None:
        self._require_admin(actor)
        if not self._users.get_by_id(user_id):
            raise ValidationError("ユーザーが存在しません。")
        self._users.update_user(
            user_id=user_id,
            display_name=(display_name or "").strip() or None,
            role=self._parse_role(role),
        )

    def delete_user(self, actor: Optional[Identity], user_id: str) -> None:
        self._require_admin(actor)
        if actor.user_id == user_id:
            raise ValidationError("自分自身は削除できません。")
        if not self._users.get_by_id(user_id):
            raise ValidationError("ユーザーが存在しません。")
        self._users.deactivate(user_id)

    def change_password(self, actor: Optional[Identity], password: str) -> None:
        actor = self._require_staff(actor)
        require_min_length(password, "パスワード", MIN_PASSWORD_LENGTH)
        self._users.update_password(user_id=actor.user_id, password_hash=generate_password_hash(password))

    def get_settings(self, actor: Optional[Identity]) -> UserSettings:
        actor = self._require_staff(actor)
        return self._users.get_settings(actor.user_id)

    def set_default_site(self, actor: Optional[Identity], site_id: str) -> None:
        actor = self._require_staff(actor)
        site_id = require_non_empty(site_id, "既定の現場")
        self._users.set_default_site(user_id=actor.user_id, site_id=site_id)
