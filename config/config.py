"""Settings shared by every environment. Environment modules import * from here."""

import os


def _split_tokens(value: str):
    return tuple(token.strip() for token in value.split(",") if token.strip())


TIMEZONE = os.getenv("TIMEZONE", "Asia/Tokyo")

# Marker written at the head of the memo of attendance rows for people outside the roster
EXTERNAL_MARKER = os.getenv("EXTERNAL_MARKER", "ネクサス")

# Company-form tokens stripped from contractor names (comma separated; empty = built-in list)
LEGAL_ENTITY_TOKENS = _split_tokens(os.getenv("LEGAL_ENTITY_TOKENS", "")) or None

SESSION_DAYS = int(os.getenv("SESSION_DAYS", "30"))
GUEST_LINK_RETENTION_DAYS = int(os.getenv("GUEST_LINK_RETENTION_DAYS", "30"))
REPORT_PAGE_SIZE = int(os.getenv("REPORT_PAGE_SIZE", "1000"))
IMPORT_CHUNK_SIZE = int(os.getenv("IMPORT_CHUNK_SIZE", "500"))

# Public base URL used in guest links; request host when empty
APP_URL = os.getenv("APP_URL", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "1" if default else "0").strip().lower() in {"1", "true", "yes", "on"}


def db_config_from_env(default_database: str) -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", ""),
        "database": os.getenv("DB_NAME", default_database),
    }
