"""Shared request-parsing and persistence helpers for blueprints.

parse_date:          returns None on bad input
parse_int_id:        raises ValueError on malformed ids
db_commit_or_error:  uniform commit with rollback + JSON error tuple
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, OperationalError

from planner.models import db
from planner.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse an ISO date (or datetime) string to a date object.

    Returns None for empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        return None


def parse_datetime(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except (ValueError, TypeError):
        return None


def parse_int_id(value, label="id"):
    """Coerce a positive integer id, raising ValueError when malformed."""
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValueError(f"Malformed {label}: {value!r}")
    if parsed <= 0:
        raise ValueError(f"Malformed {label}: {value!r}")
    return parsed


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the request's unit of work, or roll back and return an error tuple.

    Services only flush; this is the single commit point for a mutation, so
    the activity-log row and the change it records land together.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError   → 409 ERR_CONFLICT_DUPLICATE (lost a race on a unique key)
    OperationalError → 500 ERR_DATABASE
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
