from __future__ import annotations

import logging
from functools import wraps
from typing import Any

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyDisbursed,
    AuthenticationError,
    AuthorizationError,
    ConcurrentWriteConflict,
    EmployeeNotFound,
    NarrativeServiceError,
    PolicyMissing,
    ValidationError,
)
from ..employees.model import Identity

logger = logging.getLogger(__name__)


def json_error(message: str, status: int, **extra: Any):
    body = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def current_identity() -> Identity:
    if "employee_id" not in session:
        raise AuthenticationError("Please log in to continue")
    try:
        return Identity(employee_id=int(session["employee_id"]), role=Role(session.get("role")))
    except (TypeError, ValueError):
        session.clear()
        raise AuthenticationError("Session is no longer valid, please log in again")


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "employee_id" not in session:
            return json_error("Please log in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register_error_handlers(app: Flask) -> None:
    """Map domain exceptions raised by services to JSON responses."""

    @app.errorhandler(ValidationError)
    def _validation(e):
        return json_error(str(e), 400)

    @app.errorhandler(AuthenticationError)
    def _authentication(e):
        return json_error(str(e), 401)

    @app.errorhandler(AuthorizationError)
    def _authorization(e):
        return json_error(str(e), 403)

    @app.errorhandler(EmployeeNotFound)
    def _employee_not_found(e):
        return json_error(str(e), 404)

    @app.errorhandler(AlreadyDisbursed)
    def _already_disbursed(e):
        return json_error(str(e), 409, period=e.period_label)

    @app.errorhandler(ConcurrentWriteConflict)
    def _conflict(e):
        logger.warning("Write conflict surfaced to client: %s", e)
        return json_error("The record is busy, please try again", 503, retryable=True)

    @app.errorhandler(PolicyMissing)
    def _policy_missing(e):
        logger.error("Request failed: %s", e)
        return json_error("Attendance policy is not configured. Ask an administrator to save the settings.", 500)

    @app.errorhandler(NarrativeServiceError)
    def _narrative(e):
        return json_error(str(e), 502)

    @app.errorhandler(HTTPException)
    def _http(e):
        return json_error(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _unexpected(e):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return json_error("Internal server error", 500)
