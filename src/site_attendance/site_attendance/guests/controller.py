from __future__ import annotations

import io

import qrcode
from flask import Flask, jsonify, request, send_file, session

from ..common.http import api_view
from ..container import Container
from ..users.identity import identity_from_session


def _qr_png(data: str) -> io.BytesIO:
    qr = qrcode.QRCode(version=1, error_correction=qrcode.constants.ERROR_CORRECT_L, box_size=10, border=2)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def register(app: Flask, container: Container) -> None:
    def _base_url() -> str:
        return request.host_url.rstrip("/")

    @app.route("/api/guest-links", methods=["GET"], endpoint="api_guest_links_list")
    @api_view
    def api_guest_links_list():
        links = container.guest_link_service.list_links(identity_from_session(session))
        return jsonify(
            {
                "links": [
                    {
                        "token": link.token,
                        "siteId": link.site_id,
                        "expiresAt": link.expires_at.isoformat() if link.expires_at else None,
                        "canEditAttendance": link.can_edit_attendance,
                        "deleted": link.is_deleted,
                        "url": container.guest_link_service.build_url(link.token, _base_url()),
                    }
                    for link in links
                ]
            }
        )

    @app.route("/api/guest-links", methods=["POST"], endpoint="api_guest_links_issue")
    @api_view
    def api_guest_links_issue():
        body = request.get_json(silent=True) or {}
        issued = container.guest_link_service.issue(
            identity_from_session(session),
            site_id=body.get("siteId") or "",
            expires_at=body.get("expiresAt"),
            can_edit_attendance=bool(body.get("canEditAttendance", False)),
            base_url=_base_url(),
        )
        return jsonify({"token": issued.token, "url": issued.url, "existing": issued.existing})

    @app.route("/api/guest-links/<token>", methods=["DELETE"], endpoint="api_guest_links_revoke")
    @api_view
    def api_guest_links_revoke(token: str):
        container.guest_link_service.revoke(identity_from_session(session), token)
        return jsonify({"ok": True})

    @app.route("/api/guest-links/<token>", methods=["PATCH"], endpoint="api_guest_links_update")
    @api_view
    def api_guest_links_update(token: str):
        body = request.get_json(silent=True) or {}
        container.guest_link_service.update_expiry(identity_from_session(session), token, body.get("expiresAt"))
        return jsonify({"ok": True})

    @app.route("/api/guest-links/<token>/qr", methods=["GET"], endpoint="api_guest_links_qr")
    @api_view
    def api_guest_links_qr(token: str):
        container.access_policy.ensure_staff(identity_from_session(session))
        url = container.guest_link_service.build_url(token, _base_url())
        return send_file(_qr_png(url), mimetype="image/png")
