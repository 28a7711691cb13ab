from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.web import api_action, json_body, login_required
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="api_login")
    @api_action("log in")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(str(data.get("username", "")), str(data.get("password", "")))

        session.clear()
        session.permanent = bool(data.get("rememberMe"))
        app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)
        session.update(s_user.to_session())
        return jsonify({"user": s_user.to_session()})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="api_logout")
    def logout():
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/auth/me", methods=["GET"], endpoint="api_me")
    @login_required
    def me():
        keys = ("userId", "username", "role", "branchId", "userType")
        return jsonify({"user": {k: session.get(k) for k in keys}})

    @app.route("/api/branches", methods=["GET"], endpoint="api_branches")
    @login_required
    @api_action("fetch branches")
    def branches():
        return jsonify([b.to_public_dict() for b in container.auth_service.list_branches()])
