from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file, session

from ..common.datetime_utils import now_local, parse_iso_date, parse_month
from ..common.http import api_view, json_error
from ..container import Container
from ..core.enums import MemoMatch, ReportMode
from ..users.identity import identity_from_session
from .export import XLSX_MIMETYPE, build_workbook, daily_sheet, detail_sheet, export_filename, summary_sheet
from .model import Report, ReportFilters


def _arg(name: str):
    value = (request.args.get(name) or "").strip()
    return value or None


def _filters_from_args() -> ReportFilters:
    return ReportFilters(
        category_id=_arg("category"),
        work_type_id=_arg("workType"),
        contractor_key=_arg("contractor"),
        worker_name=_arg("worker"),
        memo_query=_arg("memo") or "",
        memo_match=MemoMatch.parse(_arg("memoMatch")),
    )


def _report_to_json(report: Report) -> dict:
    body = {
        "view": report.mode.value,
        "siteId": report.site_id,
        "siteName": report.site_name,
        "from": report.start.isoformat() if report.start else None,
        "to": report.end.isoformat() if report.end else None,
        "contractorTotals": [
            {"key": t.key, "name": t.name, "manDays": t.man_days, "external": t.is_external}
            for t in report.contractor_totals
        ],
        "totalManDays": report.total_man_days,
        "workers": [
            {
                "contractorKey": w.bucket_key,
                "contractorName": w.bucket_name,
                "name": w.display_name,
                "days": w.days,
                "dates": sorted(d.isoformat() for d in w.dates),
            }
            for w in report.worker_rows
        ],
    }
    if report.month_grid is not None:
        body["days"] = [{"date": c.day.isoformat(), "weekday": c.weekday} for c in report.month_grid.columns]
    if report.mode == ReportMode.PERIOD:
        body["externalTotals"] = [{"name": w.display_name, "days": w.days} for w in report.period_totals]
    if report.mode == ReportMode.DETAIL:
        body["details"] = [
            {
                "date": r.entry_date.isoformat(),
                "contractorKey": r.bucket_key,
                "contractorName": r.bucket_name,
                "workerName": r.display_name,
                "categoryName": r.category_name,
                "workTypeName": r.work_type_name,
                "memo": r.memo,
            }
            for r in report.detail_rows
        ]
    return body


def register(app: Flask, container: Container) -> None:
    def _build(mode: ReportMode, identity):
        month = parse_month(_arg("month")) if _arg("month") else None
        start = parse_iso_date(_arg("from")) if _arg("from") else None
        end = parse_iso_date(_arg("to")) if _arg("to") else None
        return container.report_service.build_report(
            site_id=_arg("site"),
            mode=mode,
            month=month,
            start=start,
            end=end,
            filters=_filters_from_args() if mode == ReportMode.DETAIL else None,
            actor=identity,
        )

    def _send_workbook(sheets, filename: str):
        output = io.BytesIO(build_workbook(sheets))
        return send_file(output, download_name=filename, as_attachment=True, mimetype=XLSX_MIMETYPE)

    def _timestamp() -> str:
        return now_local(app.config.get("TIMEZONE") or "Asia/Tokyo").strftime("%Y%m%d%H%M%S")

    @app.route("/api/reports", methods=["GET"], endpoint="api_reports")
    @api_view
    def api_reports():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)
        report = _build(ReportMode.parse(_arg("view")), identity)
        return jsonify(_report_to_json(report))

    @app.route("/api/reports/export", methods=["GET"], endpoint="api_reports_export")
    @api_view
    def api_reports_export():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)
        view = ReportMode.parse(_arg("view"))
        if view == ReportMode.DETAIL:
            view = ReportMode.MONTH
        report = _build(view, identity)
        filename = export_filename("report", report, _timestamp())
        return _send_workbook([summary_sheet(report), daily_sheet(report)], filename)

    @app.route("/api/reports/export-detail", methods=["GET"], endpoint="api_reports_export_detail")
    @api_view
    def api_reports_export_detail():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)
        if not _arg("from") or not _arg("to"):
            return json_error("invalid", 400, "from / to are required")
        report = _build(ReportMode.DETAIL, identity)
        filename = export_filename("report_detail", report, _timestamp())
        return _send_workbook([detail_sheet(report)], filename)
