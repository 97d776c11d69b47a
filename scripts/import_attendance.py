"""Import a daily attendance sheet (CSV) into attendance entries.

Dry run by default: prints what would be written. Pass --execute to write.

    python scripts/import_attendance.py attendance.csv --site-name "〇〇邸新築工事"
    python scripts/import_attendance.py attendance.csv --project-id 202501001 --create-missing --execute
"""

from __future__ import annotations

import argparse
import importlib
import json
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
from src.site_attendance.site_attendance.core.exceptions import DomainError
from src.site_attendance.site_attendance.imports.csv_source import load_mapping_config, read_attendance_csv, read_text
from src.site_attendance.site_attendance.imports.service import UnknownSiteError

DEFAULT_CONFIG = REPO_ROOT / "scripts" / "import-workers.config.json"


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a daily attendance sheet (CSV).")
    parser.add_argument("csv", help="attendance sheet exported as CSV")
    parser.add_argument("--project-id", dest="site_id", help="target site id")
    parser.add_argument("--site-name", help="target site name (defaults to the 現場名: row of the sheet)")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG), help="contractor label mapping (JSON)")
    parser.add_argument("--create-missing", action="store_true", help="register workers that are not found")
    parser.add_argument("--report", action="store_true", help="print skip details as JSON")
    parser.add_argument("--report-file", help="write skip details as JSON to this file")
    parser.add_argument("--execute", action="store_true", help="write to the database (dry run otherwise)")
    args = parser.parse_args()

    load_dotenv(override=False)
    setup_logging(logging.INFO)

    csv_path = Path(args.csv)
    if not csv_path.exists():
        raise SystemExit(f"CSV not found: {csv_path}")

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    sheet = read_attendance_csv(read_text(csv_path))
    mappings = load_mapping_config(Path(args.config))

    try:
        summary = container.attendance_import_service.run(
            sheet,
            mappings=mappings,
            site_id=args.site_id,
            site_name=args.site_name,
            create_missing=args.create_missing,
            execute=args.execute,
        )
    except UnknownSiteError as e:
        print(f"現場が見つかりません: {e.name}")
        for candidate in e.suggestions:
            print(f"  候補: {candidate}")
        sys.exit(1)
    except DomainError as e:
        print(f"エラー: {e}")
        sys.exit(1)

    for line in summary.summary_lines():
        print(line)
    for label, candidates in summary.missing_contractors.items():
        print(f"  未一致業者: {label}" + (f" (候補: {', '.join(candidates)})" if candidates else ""))
    if args.create_missing:
        print(f"作業員新規登録: {summary.created_workers}")

    report = json.dumps(summary.to_dict(), ensure_ascii=False, indent=2)
    if args.report:
        print(report)
    if args.report_file:
        Path(args.report_file).write_text(report, encoding="utf-8")

    if not args.execute:
        print("dry run: --execute で書き込みます")
    elif summary.failed:
        print(f"書き込み失敗 ({summary.written}件書き込み済み): {summary.failed}")
        sys.exit(1)
    else:
        print(f"書き込み: {summary.written}")


if __name__ == "__main__":
    main()
