"""
Month Lifecycle Gate — decides whether a calendar month accepts writes.

Every calendar month is in exactly one state relative to "now" and a user:

    PAST           month <  current           permanently read-only
    CURRENT        month == current           writable, implicitly open
    FUTURE_LOCKED  month >  current, not opened
    FUTURE_OPEN    month >  current, opened by the user

Transitions:
    FUTURE_LOCKED → FUTURE_OPEN    open_month(), only when every month between
                                   the current one and the target is open
    FUTURE_*      → CURRENT → PAST calendar rollover, never stored

There is no re-lock transition and no write into PAST. Months are
``YYYY-MM`` strings; zero padding makes lexicographic order chronological.
"""

import enum
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from planner.core.exceptions import (
    MonthFrozenError,
    MonthLockedError,
    NotFoundError,
    SequenceGapError,
    ValidationError,
)
from planner.models import db
from planner.models.auth import User
from planner.models.planning import MONTH_PATTERN, MonthPlanning, Objective, OpenMonth
from planner.services.activity_log import log_activity

logger = logging.getLogger(__name__)


class MonthState(str, enum.Enum):
    PAST = "past"
    CURRENT = "current"
    FUTURE_LOCKED = "future_locked"
    FUTURE_OPEN = "future_open"


def _gate_timezone():
    if not has_app_context():
        return timezone.utc
    name = current_app.config.get("MONTH_GATE_TIMEZONE", "UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown MONTH_GATE_TIMEZONE %r, falling back to UTC", name)
        return timezone.utc


def _today():
    return datetime.now(_gate_timezone()).date()


# ── Month arithmetic ─────────────────────────────────────────────────────────


def is_valid_month(month) -> bool:
    return isinstance(month, str) and MONTH_PATTERN.match(month) is not None


def validate_month(month) -> str:
    """Return *month* unchanged, or raise ValueError when it is not ``YYYY-MM``."""
    if not is_valid_month(month):
        raise ValueError(f"Invalid month {month!r}; expected YYYY-MM")
    return month


def current_month() -> str:
    today = _today()
    return f"{today.year:04d}-{today.month:02d}"


def next_month(month: str) -> str:
    year, mon = (int(p) for p in validate_month(month).split("-"))
    if mon == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{mon + 1:02d}"


def previous_month(month: str) -> str:
    year, mon = (int(p) for p in validate_month(month).split("-"))
    if mon == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{mon - 1:02d}"


# ── Predicates ───────────────────────────────────────────────────────────────


def is_month_read_only(month: str) -> bool:
    """True for every month strictly before the current one."""
    return validate_month(month) < current_month()


def is_month_open(user_id: int, month: str) -> bool:
    return (
        db.session.execute(
            select(OpenMonth.id).where(OpenMonth.user_id == user_id, OpenMonth.month == month)
        ).first()
        is not None
    )


def classify_month(user_id: int, month: str) -> MonthState:
    current = current_month()
    if validate_month(month) < current:
        return MonthState.PAST
    if month == current:
        return MonthState.CURRENT
    if is_month_open(user_id, month):
        return MonthState.FUTURE_OPEN
    return MonthState.FUTURE_LOCKED


def is_writable(user_id: int, month: str) -> bool:
    """Single write-eligibility predicate used by every mutation path."""
    return classify_month(user_id, month) in (MonthState.CURRENT, MonthState.FUTURE_OPEN)


def ensure_writable(user_id: int, month: str) -> None:
    """Raise MonthFrozenError / MonthLockedError when *month* rejects writes."""
    state = classify_month(user_id, month)
    if state is MonthState.PAST:
        raise MonthFrozenError(month)
    if state is MonthState.FUTURE_LOCKED:
        raise MonthLockedError(month)


# ── Opening ──────────────────────────────────────────────────────────────────


def _opened_months(user_id: int) -> set[str]:
    rows = db.session.execute(
        select(OpenMonth.month).where(OpenMonth.user_id == user_id)
    ).scalars()
    return set(rows)


def first_missing_month(user_id: int, month: str, opened: set[str] | None = None) -> str | None:
    """First month strictly between current and *month* that is not open yet."""
    if opened is None:
        opened = _opened_months(user_id)
    candidate = next_month(current_month())
    while candidate < month:
        if candidate not in opened:
            return candidate
        candidate = next_month(candidate)
    return None


def open_month(user_id: int, month: str) -> tuple[OpenMonth, bool]:
    """Unlock a future month for *user_id*.

    Returns ``(row, created)``. Re-opening an already open month returns the
    existing row with ``created=False``.

    Raises:
        ValueError: malformed month string.
        MonthFrozenError: month is in the past.
        ValidationError: month is the current month (implicitly open).
        SequenceGapError: an intermediate month is still locked.
    """
    validate_month(month)
    current = current_month()
    if month < current:
        raise MonthFrozenError(month)
    if month == current:
        raise ValidationError(
            f"Month {month} is the current month and is always open",
            details={"month": "current month cannot be opened"},
        )

    # Serialise concurrent openings for the same user; the unique
    # constraint on (user_id, month) is the final arbiter.
    user = db.session.execute(
        select(User).where(User.id == user_id).with_for_update()
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)

    opened = _opened_months(user_id)
    if month in opened:
        existing = OpenMonth.query.filter_by(user_id=user_id, month=month).first()
        return existing, False

    missing = first_missing_month(user_id, month, opened)
    if missing is not None:
        logger.info("User %s cannot open %s: %s still locked", user_id, month, missing)
        raise SequenceGapError(month, missing)

    row = OpenMonth(user_id=user_id, month=month)
    try:
        with db.session.begin_nested():
            db.session.add(row)
    except IntegrityError:
        existing = OpenMonth.query.filter_by(user_id=user_id, month=month).first()
        if existing is None:
            raise
        return existing, False

    logger.info("User %s opened month %s", user_id, month)
    log_activity(entity_type="month", entity_id=month, action="month.open", user_id=user_id)
    return row, True


# ── Listing ──────────────────────────────────────────────────────────────────


def month_status(user_id: int, month: str) -> dict:
    state = classify_month(user_id, month)
    return {
        "month": month,
        "state": state.value,
        "is_read_only": state is MonthState.PAST,
        "is_writable": state in (MonthState.CURRENT, MonthState.FUTURE_OPEN),
    }


def list_months(user_id: int) -> list[dict]:
    """Current month, every opened month and every past month holding plans."""
    months = {current_month()}
    months |= _opened_months(user_id)
    months |= set(
        db.session.execute(
            select(Objective.month).where(Objective.user_id == user_id).distinct()
        ).scalars()
    )
    months |= set(
        db.session.execute(
            select(MonthPlanning.month).where(MonthPlanning.user_id == user_id)
        ).scalars()
    )
    return [month_status(user_id, m) for m in sorted(months)]
