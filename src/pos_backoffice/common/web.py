"""Flask helpers shared by feature controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Iterable, Optional

from flask import Flask, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .branch import resolve_branch_id

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def json_error(message: str, status: int):
    return jsonify({"error": message}), status


def error_status(err: DomainError) -> int:
    for exc_type, status in ERROR_STATUS:
        if isinstance(err, exc_type):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    def handle(err: DomainError):
        return json_error(str(err), error_status(err))

    app.register_error_handler(DomainError, handle)


def api_action(action: str):
    """Translate domain errors to JSON; anything else is logged as a 500."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except DomainError as e:
                return json_error(str(e), error_status(e))
            except Exception:
                logger.exception("Failed to %s", action)
                return json_error(f"Failed to {action}", 500)

        return wrapper

    return decorator


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "userId" not in session:
            return json_error("Authentication required", 401)
        return view(*args, **kwargs)

    return wrapper


def role_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "userId" not in session:
                return json_error("Authentication required", 401)
            if session.get("role") not in allowed:
                return json_error("You do not have permission", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_branch_id() -> Optional[str]:
    return resolve_branch_id(request.args, session)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def bool_arg(name: str) -> Optional[bool]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def list_arg(name: str) -> list[str]:
    values: Iterable[str] = request.args.getlist(name)
    out: list[str] = []
    for v in values:
        out.extend(p.strip() for p in v.split(",") if p.strip())
    return out


def download_response(app: Flask, payload: bytes, *, mimetype: str, filename: str):
    return app.response_class(
        payload,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
