from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """ユーザーの権限区分。"""

    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class ReportMode(str, Enum):
    MONTH = "month"
    PERIOD = "period"
    DETAIL = "detail"

    @classmethod
    def parse(cls, value: str | None) -> "ReportMode":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.MONTH


class MemoMatch(str, Enum):
    PARTIAL = "partial"
    EXACT = "exact"

    @classmethod
    def parse(cls, value: str | None) -> "MemoMatch":
        return cls.EXACT if (value or "").strip().lower() == "exact" else cls.PARTIAL


class SiteStatus(str, Enum):
    """現場ステータス。SETTLED は日付から再計算されない終端状態。"""

    PRE_CONTRACT = "受注"
    IN_PROGRESS = "着工中"
    COMPLETED = "完工"
    SETTLED = "精算完了"
