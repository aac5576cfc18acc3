"""JSON error bodies and service outcomes.

Every error response has the same shape::

    {"error": "<message>", "code": "ERR_...", "details": {...}}

``details`` is omitted when empty.  Services never build responses; they
return ``(None, service_error(...))`` and the blueprint hands the error to
``outcome_response``.

    return None, service_error(E.CONFLICT_STATE, "Invalid status transition",
                               current_status="PAID", attempted_status="APPROVED")
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    MAINTENANCE = "ERR_MAINTENANCE"
    INTERNAL = "ERR_INTERNAL"


HTTP_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.INTERNAL: 500,
    E.MAINTENANCE: 503,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` for ``code``; status defaults from ``HTTP_STATUS``, else 400."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or HTTP_STATUS.get(code, 400)


def service_error(code: str, message: str, **details) -> dict:
    return {
        "code": code,
        "error": message,
        "status": HTTP_STATUS.get(code, 400),
        "details": details,
    }


def outcome_response(error: dict):
    return api_error(error["code"], error["error"],
                     status=error.get("status"), details=error.get("details"))
