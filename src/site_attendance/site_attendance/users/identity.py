from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, MutableMapping, Optional

from ..core.enums import Role

GUEST_USER_ID = "guest"
GUEST_USERNAME = "ゲスト"


@dataclass(frozen=True)
class Identity:
    """Who is calling. Built from the signed session cookie."""

    user_id: str
    username: str
    role: Role
    guest_site_id: Optional[str] = None
    guest_token: Optional[str] = None
    guest_can_edit: bool = False

    @property
    def is_guest(self) -> bool:
        return self.role == Role.GUEST

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def store_identity(session: MutableMapping[str, Any], identity: Identity, *, days: int) -> None:
    session.clear()
    session["user_id"] = identity.user_id
    session["username"] = identity.username
    session["role"] = identity.role.value
    session["expires_at"] = (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()
    if identity.is_guest:
        session["guest_site_id"] = identity.guest_site_id
        session["guest_token"] = identity.guest_token
        session["guest_can_edit"] = bool(identity.guest_can_edit)


def identity_from_session(session: Mapping[str, Any]) -> Optional[Identity]:
    user_id = session.get("user_id")
    if not user_id:
        return None

    expires_at = session.get("expires_at")
    if expires_at:
        try:
            if datetime.fromisoformat(expires_at) < datetime.now(timezone.utc):
                return None
        except ValueError:
            return None

    try:
        role = Role(session.get("role"))
    except ValueError:
        return None

    return Identity(
        user_id=str(user_id),
        username=str(session.get("username") or ""),
        role=role,
        guest_site_id=session.get("guest_site_id"),
        guest_token=session.get("guest_token"),
        guest_can_edit=bool(session.get("guest_can_edit", False)),
    )
