"""Load database/seed.sql (sample site, contractors, workers) and reset the demo logins.

    APP_ENV=development python scripts/seed_db.py [--seed path/to/seed.sql] [--no-demo-users]
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
from src.site_attendance.site_attendance.database.bootstrap import DEMO_USERS, apply_seed_sql, ensure_demo_users
from src.site_attendance.site_attendance.database.connection import DBConfig


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed sample master data.")
    parser.add_argument("--seed", default=str(REPO_ROOT / "database" / "seed.sql"))
    parser.add_argument("--no-demo-users", action="store_true", help="keep existing logins untouched")
    args = parser.parse_args()

    load_dotenv(override=False)
    setup_logging(logging.INFO)
    db_config = importlib.import_module(get_settings_module()).DB_CONFIG

    apply_seed_sql(db_config, seed_path=args.seed)
    if not args.no_demo_users:
        ensure_demo_users(db_config)
        print("demo logins: " + ", ".join(f"{u} / {p}" for u, p, _ in DEMO_USERS))
    print(f"seeded: {DBConfig.from_mapping(db_config).describe()}")


if __name__ == "__main__":
    main()
