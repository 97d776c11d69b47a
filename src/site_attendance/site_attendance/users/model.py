from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """ログインユーザー。"""

    user_id: str
    username: str
    password_hash: str
    role: Role
    display_name: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class UserSettings:
    user_id: str
    default_site_id: Optional[str] = None
