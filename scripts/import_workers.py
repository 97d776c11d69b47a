"""Register workers from a roster sheet (CSV): contractor in column A, worker names after it.

    python scripts/import_workers.py workers.csv --mode revive --execute
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
from src.site_attendance.site_attendance.container import build_container
from src.site_attendance.site_attendance.imports.csv_source import load_mapping_config, read_text, read_workers_csv
from src.site_attendance.site_attendance.imports.service import WORKER_IMPORT_MODES

DEFAULT_CONFIG = REPO_ROOT / "scripts" / "import-workers.config.json"


def main() -> None:
    parser = argparse.ArgumentParser(description="Register workers from a roster CSV.")
    parser.add_argument("csv", help="roster sheet exported as CSV")
    parser.add_argument("--mode", choices=WORKER_IMPORT_MODES, default="skip",
                        help="skip: leave deleted workers deleted, revive: revive them")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG), help="contractor label mapping (JSON)")
    parser.add_argument("--execute", action="store_true", help="write to the database (dry run otherwise)")
    args = parser.parse_args()

    load_dotenv(override=False)
    setup_logging(logging.INFO)

    csv_path = Path(args.csv)
    if not csv_path.exists():
        raise SystemExit(f"CSV not found: {csv_path}")

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    rows = read_workers_csv(read_text(csv_path))
    summary = container.worker_import_service.run(
        rows,
        mappings=load_mapping_config(Path(args.config)),
        mode=args.mode,
        execute=args.execute,
    )

    for line in summary.summary_lines():
        print(line)
    for label, candidates in summary.missing_contractors.items():
        print(f"  未一致業者: {label}" + (f" (候補: {', '.join(candidates)})" if candidates else ""))
    for error in summary.errors:
        print(f"  {error}")
    if not args.execute:
        print("dry run: --execute で書き込みます")
    if summary.errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
