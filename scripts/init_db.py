"""Create the database (if missing) and apply database/schema.sql.

    APP_ENV=development python scripts/init_db.py [--schema path/to/schema.sql]
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.site_attendance.site_attendance.common.logging_config import setup_logging
from src.site_attendance.site_attendance.database.bootstrap import apply_schema, list_tables
from src.site_attendance.site_attendance.database.connection import DBConfig


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply the MySQL schema.")
    parser.add_argument("--schema", default=str(REPO_ROOT / "database" / "schema.sql"))
    args = parser.parse_args()

    load_dotenv(override=False)
    setup_logging(logging.INFO)
    db_config = importlib.import_module(get_settings_module()).DB_CONFIG

    apply_schema(db_config, schema_path=args.schema)
    tables = list_tables(db_config)
    print(f"schema applied: {DBConfig.from_mapping(db_config).describe()} ({len(tables)} tables)")


if __name__ == "__main__":
    main()
