from __future__ import annotations

import csv
import io
import json
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

ATTENDANCE_FIRST_ROW = 4
ATTENDANCE_LINES_COLUMN = 7
WORKERS_FIRST_ROW = 2
SITE_NAME_LABEL = "現場名:"
WORKERS_HEADER_LABEL = "業者名"

_DATE = re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})")
_TRAILING_MARKS = re.compile(r"[△▲■●◆★☆※＊*]+$")
_NAME_WITH_CONTRACTOR = re.compile(r"^(.*?)[（(](.*?)[）)]$")


@dataclass(frozen=True)
class WorkerLine:
    """One "name(contractor)" line of the attendance sheet. contractor_label=None: unknown format."""

    raw: str
    name: str
    contractor_label: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and bool(self.contractor_label)


@dataclass(frozen=True)
class AttendanceSheetRow:
    row_number: int
    entry_date: date
    lines: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AttendanceSheet:
    site_name: Optional[str] = None
    rows: Tuple[AttendanceSheetRow, ...] = ()


@dataclass(frozen=True)
class WorkerSheetRow:
    row_number: int
    contractor_label: str
    worker_names: Tuple[str, ...] = field(default_factory=tuple)


def parse_sheet_date(text: str) -> Optional[date]:
    m = _DATE.search(text or "")
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def parse_worker_line(line: str) -> Optional[WorkerLine]:
    raw = (line or "").strip()
    if not raw:
        return None
    cleaned = _TRAILING_MARKS.sub("", raw).strip()
    m = _NAME_WITH_CONTRACTOR.match(cleaned)
    if not m:
        return WorkerLine(raw=raw, name=cleaned)
    return WorkerLine(raw=raw, name=m.group(1).strip(), contractor_label=m.group(2).strip() or None)


def _rows(text: str) -> List[List[str]]:
    return list(csv.reader(io.StringIO((text or "").lstrip("\ufeff"))))


def read_attendance_csv(text: str) -> AttendanceSheet:
    """Daily attendance sheet: date in the first column, "name(contractor)" lines in column 8."""
    rows = _rows(text)
    site_name = None
    for row in rows:
        if len(row) > 1 and row[0].strip() == SITE_NAME_LABEL:
            site_name = row[1].strip() or None
            break

    parsed: List[AttendanceSheetRow] = []
    for index, row in enumerate(rows[ATTENDANCE_FIRST_ROW:], start=ATTENDANCE_FIRST_ROW + 1):
        if not row:
            continue
        entry_date = parse_sheet_date(row[0])
        if entry_date is None:
            continue
        cell = row[ATTENDANCE_LINES_COLUMN] if len(row) > ATTENDANCE_LINES_COLUMN else ""
        lines = tuple(part.strip() for part in cell.splitlines() if part.strip())
        parsed.append(AttendanceSheetRow(row_number=index, entry_date=entry_date, lines=lines))
    return AttendanceSheet(site_name=site_name, rows=tuple(parsed))


def read_workers_csv(text: str) -> List[WorkerSheetRow]:
    """Worker roster sheet: contractor in the first column, worker names in the rest."""
    result: List[WorkerSheetRow] = []
    for index, row in enumerate(_rows(text)[WORKERS_FIRST_ROW:], start=WORKERS_FIRST_ROW + 1):
        if not row:
            continue
        label = row[0].strip()
        if not label or label == WORKERS_HEADER_LABEL:
            continue
        names = tuple(name.strip() for name in row[1:] if name.strip())
        result.append(WorkerSheetRow(row_number=index, contractor_label=label, worker_names=names))
    return result


def load_mapping_config(path: Optional[Path]) -> Dict[str, str]:
    """{"mappings": {"<sheet label>": "<contractor name> | skip | external"}}; a missing file means no mappings."""
    if path is None or not Path(path).exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    mappings = data.get("mappings") if isinstance(data, dict) else None
    if not isinstance(mappings, dict):
        return {}
    return {str(k): str(v) for k, v in mappings.items()}


def read_text(path: Path, encodings: Sequence[str] = ("utf-8-sig", "cp932")) -> str:
    last_error: Optional[UnicodeDecodeError] = None
    for encoding in encodings:
        try:
            return Path(path).read_text(encoding=encoding)
        except UnicodeDecodeError as e:
            last_error = e
    raise last_error
