from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User, UserSettings


class UserRepository(Protocol):
    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def list_active(self) -> Sequence[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        user_id: str,
        username: str,
        display_name: Optional[str],
        password_hash: str,
        role: Role,
    ) -> str:
        raise NotImplementedError

    def update_user(self, *, user_id: str, display_name: Optional[str], role: Role) -> bool:
        raise NotImplementedError

    def deactivate(self, user_id: str) -> bool:
        raise NotImplementedError

    def update_password(self, *, user_id: str, password_hash: str) -> bool:
        raise NotImplementedError

    def get_settings(self, user_id: str) -> UserSettings:
        raise NotImplementedError

    def set_default_site(self, *, user_id: str, site_id: Optional[str]) -> None:
        raise NotImplementedError
