from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, jsonify, request, session

from ..common.http import api_view, json_error
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from .identity import Identity, identity_from_session, store_identity

logger = logging.getLogger(__name__)


def _identity_to_json(identity: Identity) -> dict:
    return {
        "userId": identity.user_id,
        "username": identity.username,
        "role": identity.role.value,
        "guestSiteId": identity.guest_site_id,
        "guestCanEdit": identity.guest_can_edit if identity.is_guest else None,
    }


def register(app: Flask, container: Container) -> None:
    session_days = int(app.config.get("SESSION_DAYS", DEFAULT_SESSION_DAYS))
    app.permanent_session_lifetime = timedelta(days=session_days)

    def _login(identity: Identity):
        store_identity(session, identity, days=session_days)
        session.permanent = True
        return jsonify({"ok": True, "user": _identity_to_json(identity)})

    @app.route("/api/session/login", methods=["POST"], endpoint="api_session_login")
    @api_view
    def api_session_login():
        body = request.get_json(silent=True) or {}
        identity = container.auth_service.authenticate(body.get("username", ""), body.get("password", ""))
        logger.info("login: %s", identity.user_id)
        return _login(identity)

    @app.route("/api/session/guest", methods=["POST"], endpoint="api_session_guest")
    @api_view
    def api_session_guest():
        body = request.get_json(silent=True) or {}
        token = body.get("token") or request.args.get("guest") or ""
        identity = container.auth_service.guest_login(token)
        logger.info("guest login for site %s", identity.guest_site_id)
        return _login(identity)

    @app.route("/api/session/logout", methods=["POST"], endpoint="api_session_logout")
    def api_session_logout():
        session.clear()
        return jsonify({"ok": True})

    @app.route("/api/session", methods=["GET"], endpoint="api_session")
    def api_session():
        identity = identity_from_session(session)
        if identity is None:
            return json_error("unauthorized", 401)
        return jsonify({"user": _identity_to_json(identity)})

    @app.route("/api/settings/default-site", methods=["GET"], endpoint="api_settings_get")
    @api_view
    def api_settings_get():
        settings = container.user_service.get_settings(identity_from_session(session))
        return jsonify({"defaultSiteId": settings.default_site_id})

    @app.route("/api/settings/default-site", methods=["POST"], endpoint="api_settings_default_site")
    @api_view
    def api_settings_default_site():
        body = request.get_json(silent=True) or {}
        container.user_service.set_default_site(identity_from_session(session), body.get("siteId") or "")
        return jsonify({"ok": True})

    @app.route("/api/settings/password", methods=["POST"], endpoint="api_settings_password")
    @api_view
    def api_settings_password():
        body = request.get_json(silent=True) or {}
        container.user_service.change_password(identity_from_session(session), body.get("password") or "")
        return jsonify({"ok": True})

    @app.route("/api/users", methods=["GET"], endpoint="api_users_list")
    @api_view
    def api_users_list():
        users = container.user_service.list_users(identity_from_session(session))
        return jsonify(
            {
                "users": [
                    {
                        "userId": u.user_id,
                        "username": u.username,
                        "displayName": u.display_name,
                        "role": getattr(u.role, "value", u.role),
                    }
                    for u in users
                ]
            }
        )

    @app.route("/api/users", methods=["POST"], endpoint="api_users_create")
    @api_view
    def api_users_create():
        body = request.get_json(silent=True) or {}
        user_id = container.user_service.create_user(
            identity_from_session(session),
            username=body.get("username") or "",
            password=body.get("password") or "",
            display_name=body.get("displayName"),
            role=body.get("role") or "user",
        )
        return jsonify({"ok": True, "userId": user_id}), 201

    @app.route("/api/users/<user_id>", methods=["PATCH"], endpoint="api_users_update")
    @api_view
    def api_users_update(user_id: str):
        body = request.get_json(silent=True) or {}
        container.user_service.update_user(
            identity_from_session(session),
            user_id=user_id,
            display_name=body.get("displayName"),
            role=body.get("role") or "user",
        )
        return jsonify({"ok": True})

    @app.route("/api/users/<user_id>", methods=["DELETE"], endpoint="api_users_delete")
    @api_view
    def api_users_delete(user_id: str):
        container.user_service.delete_user(identity_from_session(session), user_id)
        return jsonify({"ok": True})

    @app.route("/api/health", methods=["GET"], endpoint="api_health")
    def api_health():
        try:
            container.health_check()
            return jsonify({"ok": True})
        except Exception as e:
            logger.warning("health check failed: %s", e)
            return json_error("failed", 503, str(e))
