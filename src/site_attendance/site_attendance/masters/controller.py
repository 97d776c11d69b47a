from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file, session

from ..common.http import api_view
from ..container import Container
from ..core.exceptions import ValidationError
from ..users.identity import identity_from_session
from .model import BulkWorkerRow, Contractor, Site, WorkCategory, WorkType, Worker


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _contractor_json(c: Contractor, display_name: str) -> dict:
    return {
        "contractorId": c.contractor_id,
        "name": c.name,
        "displayName": display_name,
        "defaultWorkCategoryId": c.default_work_category_id,
        "showInAttendance": c.show_in_attendance,
    }


def _worker_json(w: Worker) -> dict:
    return {
        "workerId": w.worker_id,
        "name": w.name,
        "contractorId": w.contractor_id,
        "lastActiveDate": w.last_active_date.isoformat() if w.last_active_date else None,
    }


def _site_json(s: Site) -> dict:
    return {
        "siteId": s.site_id,
        "siteName": s.site_name,
        "status": s.status.value,
        "startDate": s.start_date.isoformat() if s.start_date else None,
        "endDate": s.end_date.isoformat() if s.end_date else None,
    }


def _category_json(c: WorkCategory) -> dict:
    return {"categoryId": c.category_id, "name": c.name}


def _work_type_json(t: WorkType) -> dict:
    return {"workTypeId": t.work_type_id, "categoryId": t.category_id, "name": t.name}


def register(app: Flask, container: Container) -> None:
    # contractors

    @app.route("/api/masters/contractors", methods=["GET"], endpoint="api_contractors_list")
    @api_view
    def api_contractors_list():
        svc = container.contractor_service
        contractors = svc.list_contractors(identity_from_session(session))
        return jsonify({"contractors": [_contractor_json(c, svc.display_name(c)) for c in contractors]})

    @app.route("/api/masters/contractors", methods=["POST"], endpoint="api_contractors_create")
    @api_view
    def api_contractors_create():
        body = _body()
        contractor_id = container.contractor_service.create_contractor(
            identity_from_session(session),
            name=body.get("name") or "",
            default_work_category_id=body.get("defaultWorkCategoryId"),
            show_in_attendance=body.get("showInAttendance", True),
        )
        return jsonify({"ok": True, "contractorId": contractor_id}), 201

    @app.route("/api/masters/contractors/<contractor_id>", methods=["PATCH"], endpoint="api_contractors_update")
    @api_view
    def api_contractors_update(contractor_id: str):
        body = _body()
        container.contractor_service.update_contractor(
            identity_from_session(session),
            contractor_id=contractor_id,
            default_work_category_id=body.get("defaultWorkCategoryId"),
            show_in_attendance=body.get("showInAttendance"),
        )
        return jsonify({"ok": True})

    @app.route("/api/masters/contractors/<contractor_id>", methods=["DELETE"], endpoint="api_contractors_delete")
    @api_view
    def api_contractors_delete(contractor_id: str):
        container.contractor_service.delete_contractor(identity_from_session(session), contractor_id)
        return jsonify({"ok": True})

    # workers

    @app.route("/api/masters/workers", methods=["GET"], endpoint="api_workers_list")
    @api_view
    def api_workers_list():
        workers = container.worker_service.list_workers(
            identity_from_session(session), request.args.get("contractorId") or None
        )
        return jsonify({"workers": [_worker_json(w) for w in workers]})

    @app.route("/api/masters/workers", methods=["POST"], endpoint="api_workers_create")
    @api_view
    def api_workers_create():
        body = _body()
        worker_id, restored = container.worker_service.create_worker(
            identity_from_session(session),
            name=body.get("name") or "",
            contractor_id=body.get("contractorId") or "",
        )
        return jsonify({"ok": True, "workerId": worker_id, "restored": restored}), 201

    @app.route("/api/masters/workers/bulk", methods=["POST"], endpoint="api_workers_bulk")
    @api_view
    def api_workers_bulk():
        items = _body().get("rows")
        if not isinstance(items, list):
            raise ValidationError("rows を指定してください。")
        rows = [
            BulkWorkerRow(
                contractor_name=str(item.get("contractorName") or ""),
                worker_name=str(item.get("workerName") or ""),
                worker_id=item.get("workerId") or None,
            )
            for item in items
            if isinstance(item, dict)
        ]
        result = container.worker_service.bulk_upsert(identity_from_session(session), rows)
        return jsonify({"ok": True, **result.to_dict()})

    @app.route("/api/masters/workers/<worker_id>", methods=["PATCH"], endpoint="api_workers_update")
    @api_view
    def api_workers_update(worker_id: str):
        body = _body()
        container.worker_service.update_worker(
            identity_from_session(session),
            worker_id=worker_id,
            name=body.get("name") or "",
            contractor_id=body.get("contractorId") or "",
        )
        return jsonify({"ok": True})

    @app.route("/api/masters/workers/<worker_id>", methods=["DELETE"], endpoint="api_workers_delete")
    @api_view
    def api_workers_delete(worker_id: str):
        container.worker_service.delete_worker(identity_from_session(session), worker_id)
        return jsonify({"ok": True})

    # sites

    @app.route("/api/masters/sites", methods=["GET"], endpoint="api_sites_list")
    @api_view
    def api_sites_list():
        sites = container.site_service.list_sites(identity_from_session(session))
        return jsonify({"sites": [_site_json(s) for s in sites]})

    @app.route("/api/masters/sites", methods=["POST"], endpoint="api_sites_create")
    @api_view
    def api_sites_create():
        body = _body()
        site_id = container.site_service.create_site(
            identity_from_session(session),
            name=body.get("siteName") or "",
            start_date=body.get("startDate"),
            end_date=body.get("endDate"),
        )
        return jsonify({"ok": True, "siteId": site_id}), 201

    @app.route("/api/masters/sites/<site_id>", methods=["PATCH"], endpoint="api_sites_update")
    @api_view
    def api_sites_update(site_id: str):
        body = _body()
        status = container.site_service.update_site(
            identity_from_session(session),
            site_id=site_id,
            name=body.get("siteName") or "",
            start_date=body.get("startDate"),
            end_date=body.get("endDate"),
            settled=bool(body.get("settled", False)),
        )
        return jsonify({"ok": True, "status": status.value})

    @app.route("/api/masters/sites/<site_id>", methods=["DELETE"], endpoint="api_sites_delete")
    @api_view
    def api_sites_delete(site_id: str):
        container.site_service.delete_site(identity_from_session(session), site_id)
        return jsonify({"ok": True})

    # work categories / work types

    @app.route("/api/masters/work-categories", methods=["GET"], endpoint="api_categories_list")
    @api_view
    def api_categories_list():
        categories = container.work_type_service.list_categories(identity_from_session(session))
        return jsonify({"categories": [_category_json(c) for c in categories]})

    @app.route("/api/masters/work-categories", methods=["POST"], endpoint="api_categories_create")
    @api_view
    def api_categories_create():
        category_id, restored = container.work_type_service.create_category(
            identity_from_session(session), _body().get("name") or ""
        )
        return jsonify({"ok": True, "categoryId": category_id, "restored": restored}), 201

    @app.route("/api/masters/work-categories/<category_id>", methods=["PATCH"], endpoint="api_categories_update")
    @api_view
    def api_categories_update(category_id: str):
        container.work_type_service.update_category(
            identity_from_session(session), category_id=category_id, name=_body().get("name") or ""
        )
        return jsonify({"ok": True})

    @app.route("/api/masters/work-categories/<category_id>", methods=["DELETE"], endpoint="api_categories_delete")
    @api_view
    def api_categories_delete(category_id: str):
        container.work_type_service.delete_category(identity_from_session(session), category_id)
        return jsonify({"ok": True})

    @app.route("/api/masters/work-types", methods=["GET"], endpoint="api_work_types_list")
    @api_view
    def api_work_types_list():
        work_types = container.work_type_service.list_work_types(identity_from_session(session))
        return jsonify({"workTypes": [_work_type_json(t) for t in work_types]})

    @app.route("/api/masters/work-types", methods=["POST"], endpoint="api_work_types_create")
    @api_view
    def api_work_types_create():
        body = _body()
        work_type_id, restored = container.work_type_service.create_work_type(
            identity_from_session(session),
            category_id=body.get("categoryId") or "",
            name=body.get("name") or "",
        )
        return jsonify({"ok": True, "workTypeId": work_type_id, "restored": restored}), 201

    @app.route("/api/masters/work-types/<work_type_id>", methods=["PATCH"], endpoint="api_work_types_update")
    @api_view
    def api_work_types_update(work_type_id: str):
        body = _body()
        container.work_type_service.update_work_type(
            identity_from_session(session),
            work_type_id=work_type_id,
            name=body.get("name") or "",
            category_id=body.get("categoryId") or "",
        )
        return jsonify({"ok": True})

    @app.route("/api/masters/work-types/<work_type_id>", methods=["DELETE"], endpoint="api_work_types_delete")
    @api_view
    def api_work_types_delete(work_type_id: str):
        container.work_type_service.delete_work_type(identity_from_session(session), work_type_id)
        return jsonify({"ok": True})

    @app.route("/api/masters/work-types/template", methods=["GET"], endpoint="api_work_types_template")
    @api_view
    def api_work_types_template():
        identity = identity_from_session(session)
        container.access_policy.ensure_staff(identity)
        output = io.BytesIO(container.work_type_service.template_csv())
        return send_file(output, download_name="work_types_template.csv", as_attachment=True, mimetype="text/csv")

    @app.route("/api/masters/work-types/import", methods=["POST"], endpoint="api_work_types_import")
    @api_view
    def api_work_types_import():
        upload = request.files.get("file")
        if upload is not None:
            text = upload.read().decode("utf-8-sig")
        else:
            text = request.get_data(as_text=True)
        imported = container.work_type_service.import_csv(identity_from_session(session), text)
        return jsonify({"ok": True, "imported": imported})
