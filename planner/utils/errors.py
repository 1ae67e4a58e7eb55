"""Standardised API error responses.

Usage
-----
    from planner.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Objective not found")
    return api_error(E.SEQUENCE_GAP, "Open 2026-02 first", details={"missing_month": "2026-02"})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
     • ERR_MONTH_* for calendar-gate rejections, so the UI can render
       "this period is read-only" instead of "you don't have permission"
    """

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_RULE = "ERR_VALIDATION_RULE"

    # Auth – HTTP 401
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Calendar gate – HTTP 409
    MONTH_FROZEN = "ERR_MONTH_FROZEN"
    MONTH_LOCKED = "ERR_MONTH_LOCKED"
    SEQUENCE_GAP = "ERR_SEQUENCE_GAP"

    # Supervisor hierarchy – HTTP 422
    SUPERVISOR_ASSIGNMENT = "ERR_SUPERVISOR_ASSIGNMENT"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.UNAUTHENTICATED: 401,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.MONTH_FROZEN: 409,
    E.MONTH_LOCKED: 409,
    E.SEQUENCE_GAP: 409,
    E.SUPERVISOR_ASSIGNMENT: 422,
    E.FORBIDDEN: 403,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(jsonify(body), status)`` for a view or error handler.

    The status defaults to the code's entry in ``_DEFAULT_STATUS`` (400 when
    unmapped). ``details`` carries structured context such as the missing
    month of a sequence gap or the reason a supervisor edge was rejected.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
