"""
Goal Planner
Blueprint registry and shared view helpers.
"""

import logging

from flask import g, jsonify, request

from planner.core.exceptions import (
    ForbiddenError,
    MonthFrozenError,
    MonthLockedError,
    NotFoundError,
    SequenceGapError,
    SupervisorAssignmentError,
    ValidationError,
)
from planner.models import db
from planner.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def current_context():
    """CompanyContext resolved by the company context middleware."""
    return g.company_context


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Map planner exceptions to the standard JSON error body on *bp*.

    Each handler rolls back the session so a half-applied mutation is never
    committed by a later request on the same connection.
    """

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        db.session.rollback()
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        db.session.rollback()
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(MonthFrozenError)
    def _handle_month_frozen(error: MonthFrozenError):
        db.session.rollback()
        return api_error(E.MONTH_FROZEN, str(error), details={"month": error.month})

    @bp.errorhandler(MonthLockedError)
    def _handle_month_locked(error: MonthLockedError):
        db.session.rollback()
        return api_error(E.MONTH_LOCKED, str(error), details={"month": error.month})

    @bp.errorhandler(SequenceGapError)
    def _handle_sequence_gap(error: SequenceGapError):
        db.session.rollback()
        return api_error(
            E.SEQUENCE_GAP, str(error),
            details={"month": error.month, "missing_month": error.missing_month},
        )

    @bp.errorhandler(SupervisorAssignmentError)
    def _handle_supervisor_assignment(error: SupervisorAssignmentError):
        db.session.rollback()
        return api_error(E.SUPERVISOR_ASSIGNMENT, str(error), details={"reason": error.reason})

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ValueError)
    def _handle_value_error(error: ValueError):
        db.session.rollback()
        return api_error(E.VALIDATION_INVALID, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        from werkzeug.exceptions import HTTPException

        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return jsonify({"error": "Internal server error", "code": E.INTERNAL}), 500
