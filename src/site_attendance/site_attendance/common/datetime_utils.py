from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_TIMEZONE, WEEKDAY_LABELS
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"日付が不正です: {value!r}")


def parse_month(value: str) -> tuple[int, int]:
    """Parse YYYY-MM into (year, month)."""
    try:
        parsed = datetime.strptime((value or "").strip(), "%Y-%m")
    except ValueError:
        raise ValidationError(f"月の指定が不正です: {value!r}")
    return parsed.year, parsed.month


def month_range(year: int, month: int) -> tuple[date, date]:
    days = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days)


def days_in_range(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def weekday_label(value: date) -> str:
    return WEEKDAY_LABELS[value.weekday()]


def now_local(tz: str = DEFAULT_TIMEZONE) -> datetime:
    """Current time in the given IANA zone."""
    return datetime.now(ZoneInfo(tz))
