from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.http import api_view, json_error
from ..container import Container
from ..users.identity import identity_from_session
from .model import DayEntryView
from .service import parse_desired_rows


def _view_to_json(view: DayEntryView) -> dict:
    e = view.entry
    return {
        "id": e.entry_id,
        "entryDate": e.entry_date.isoformat(),
        "siteId": e.site_id,
        "contractorId": e.contractor_id,
        "contractorName": view.contractor_name,
        "workerId": e.worker_id,
        "workerName": view.worker_name,
        "externalIdentity": e.external_identity,
        "externalName": view.external_name,
        "workTypeId": e.work_type_id,
        "workTypeName": view.work_type_name,
        "memo": view.free_memo,
        "createdBy": view.created_by_name or e.created_by,
    }


def register(app: Flask, container: Container) -> None:
    def _day_params():
        entry_date = (request.args.get("date") or "").strip()
        site_id = (request.args.get("siteId") or "").strip()
        return entry_date, site_id

    @app.route("/api/attendance", methods=["GET"], endpoint="api_attendance_get")
    @api_view
    def api_attendance_get():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)
        entry_date, site_id = _day_params()
        if not entry_date or not site_id:
            return json_error("invalid", 400)
        views = container.attendance_service.load_day_entries(site_id, parse_iso_date(entry_date), identity)
        return jsonify({"entries": [_view_to_json(v) for v in views]})

    @app.route("/api/attendance", methods=["POST"], endpoint="api_attendance_save")
    @api_view
    def api_attendance_save():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)

        body = request.get_json(silent=True) or {}
        entry_date = (body.get("date") or request.args.get("date") or "").strip()
        site_id = (body.get("siteId") or request.args.get("siteId") or "").strip()
        items = body.get("entries")
        if not entry_date or not site_id or not isinstance(items, list):
            return json_error("invalid", 400)

        rows = parse_desired_rows(items, normalizer=container.normalizer)
        plan = container.attendance_service.save_day_entries(site_id, parse_iso_date(entry_date), rows, identity)
        return jsonify(
            {
                "ok": True,
                "deleted": len(plan.delete_ids),
                "upserted": len(plan.upserts),
                "unchanged": len(plan.unchanged_ids),
                "cleared": plan.clear_day,
            }
        )

    @app.route("/api/attendance", methods=["DELETE"], endpoint="api_attendance_clear")
    @api_view
    def api_attendance_clear():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)
        entry_date, site_id = _day_params()
        if not entry_date or not site_id:
            return json_error("invalid", 400)
        container.attendance_service.clear_day(site_id, parse_iso_date(entry_date), identity)
        return jsonify({"ok": True})
