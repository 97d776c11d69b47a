from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from ..core.enums import ReportMode
from .model import Report

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUMMARY_SHEET = "業者別人数"
DAILY_SHEET = "日別入場一覧"
DETAIL_SHEET = "詳細検索"

DETAIL_HEADERS = ("日付", "業者", "作業員", "カテゴリ", "作業内容", "備考")
DAILY_MONTH_ONLY_MESSAGE = "月集計のみ日別入場一覧を出力します。"


@dataclass(frozen=True)
class SheetData:
    name: str
    headers: Tuple[str, ...]
    rows: Sequence[Sequence[Any]] = field(default_factory=list)
    title: Optional[str] = None


def build_workbook(sheets: Sequence[SheetData]) -> bytes:
    """Write the sheets into one xlsx workbook and return its bytes."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        for sheet in sheets:
            start_row = 0
            if sheet.title:
                pd.DataFrame([[sheet.title]]).to_excel(writer, sheet_name=sheet.name, index=False, header=False)
                start_row = 2
            df = pd.DataFrame([list(r) for r in sheet.rows], columns=list(sheet.headers))
            df.to_excel(writer, sheet_name=sheet.name, index=False, startrow=start_row)
    return output.getvalue()


def report_title(report: Report) -> str:
    return f"{report.site_name} / {report.range_label}"


def summary_sheet(report: Report) -> SheetData:
    return SheetData(
        name=SUMMARY_SHEET,
        headers=("業者", "人工"),
        rows=[(t.name, t.man_days) for t in report.contractor_totals],
        title=report_title(report),
    )


def daily_sheet(report: Report) -> SheetData:
    if report.mode != ReportMode.MONTH or report.month_grid is None:
        return SheetData(name=DAILY_SHEET, headers=(DAILY_MONTH_ONLY_MESSAGE,))

    grid = report.month_grid
    headers = ("業者", "氏名", "入場\n日数") + tuple(f"{c.day.day}\n({c.weekday})" for c in grid.columns)
    rows: List[List[Any]] = []
    previous_bucket = None
    for grid_row in grid.rows:
        worker = grid_row.worker
        # contractor name only on the first row of its group
        bucket = worker.bucket_name if worker.bucket_name != previous_bucket else ""
        previous_bucket = worker.bucket_name
        rows.append([bucket, worker.display_name, worker.days, *grid_row.marks])
    return SheetData(name=DAILY_SHEET, headers=headers, rows=rows, title=report_title(report))


def detail_sheet(report: Report) -> SheetData:
    return SheetData(
        name=DETAIL_SHEET,
        headers=DETAIL_HEADERS,
        rows=[
            (
                r.entry_date.isoformat(),
                r.bucket_name,
                r.display_name,
                r.category_name,
                r.work_type_name,
                r.memo,
            )
            for r in report.detail_rows
        ],
        title=report_title(report),
    )


def export_filename(prefix: str, report: Report, timestamp: str) -> str:
    start = report.start.isoformat() if report.start else ""
    end = report.end.isoformat() if report.end else ""
    return f"{prefix}_{report.site_id}_{start}_{end}_{timestamp}.xlsx"
