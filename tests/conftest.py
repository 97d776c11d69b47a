from __future__ import annotations

import itertools
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.site_attendance.site_attendance.attendance.memo_codec import ExternalMemoCodec
from src.site_attendance.site_attendance.core.enums import Role
from src.site_attendance.site_attendance.users.identity import Identity

from tests.fakes import SITE


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 15, 9, 0, 0, tzinfo=ZoneInfo("Asia/Tokyo"))


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def codec():
    return ExternalMemoCodec("ネクサス")


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"new-{next(counter)}"


@pytest.fixture
def admin():
    return Identity(user_id="u-admin", username="admin", role=Role.ADMIN)


@pytest.fixture
def staff():
    return Identity(user_id="u-genba", username="genba", role=Role.USER)


@pytest.fixture
def guest_editor():
    return Identity(
        user_id="guest",
        username="ゲスト",
        role=Role.GUEST,
        guest_site_id=SITE,
        guest_token="tok-edit",
        guest_can_edit=True,
    )
