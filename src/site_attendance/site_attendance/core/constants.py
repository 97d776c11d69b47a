"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 30
DEFAULT_GUEST_LINK_RETENTION_DAYS = 30
DEFAULT_REPORT_PAGE_SIZE = 1000
DEFAULT_IMPORT_CHUNK_SIZE = 500
DEFAULT_SUGGESTION_LIMIT = 3
DEFAULT_TIMEZONE = "Asia/Tokyo"

DEFAULT_EXTERNAL_MARKER = "ネクサス"
EXTERNAL_BUCKET_KEY = "__EXTERNAL__"

SKIP_SENTINEL = "skip"
EXTERNAL_SENTINELS = ("__external__", "external", "__nexus__", "nexus")

DEFAULT_LEGAL_ENTITY_TOKENS = (
    "株式会社",
    "有限会社",
    "合同会社",
    "合名会社",
    "合資会社",
    "（株）",
    "(株)",
    "㈱",
    "（有）",
    "(有)",
    "㈲",
    "（同）",
    "(同)",
    "Co., Ltd.",
    "Co.,Ltd.",
    "Corporation",
    "Corp.",
    "Corp",
    "Inc.",
    "Ltd.",
)

WEEKDAY_LABELS = ("月", "火", "水", "木", "金", "土", "日")
