"""
Month planning confirmation.

A user confirms a month once every objective in it has left ``draft``.
Confirmation is an ordinary write: it needs a writable month.

``unconfirm_month_planning`` is the single designated override of the past
freeze. It is reserved for company admins of the owner's company and for
super-admins with a concrete company selected.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from planner.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from planner.models import db
from planner.models.auth import Role
from planner.models.planning import MonthPlanning, Objective
from planner.services.access import require_access
from planner.services.activity_log import log_activity
from planner.services.company_context import CompanyContext, get_membership
from planner.services.month_gate import ensure_writable, validate_month
from planner.services.ownership import ObjectKind

logger = logging.getLogger(__name__)


def _validated(month) -> str:
    try:
        return validate_month(month)
    except ValueError:
        raise ValidationError("month must be YYYY-MM", details={"month": "invalid"}) from None


def _get_or_create(user_id: int, month: str) -> MonthPlanning:
    planning = MonthPlanning.query.filter_by(user_id=user_id, month=month).first()
    if planning is not None:
        return planning
    planning = MonthPlanning(user_id=user_id, month=month, is_confirmed=False)
    try:
        with db.session.begin_nested():
            db.session.add(planning)
    except IntegrityError:
        planning = MonthPlanning.query.filter_by(user_id=user_id, month=month).first()
    return planning


def get_month_planning(context: CompanyContext, planning_id: int) -> MonthPlanning:
    require_access(ObjectKind.MONTH_PLANNING, planning_id, context)
    return db.session.get(MonthPlanning, planning_id)


def find_month_planning(user_id: int, month: str) -> MonthPlanning | None:
    return MonthPlanning.query.filter_by(user_id=user_id, month=_validated(month)).first()


def confirm_month_planning(context: CompanyContext, month: str) -> MonthPlanning:
    """Confirm the actor's own plan for *month*."""
    month = _validated(month)
    if context.company_id is None:
        raise ForbiddenError("Select a company before making changes")
    ensure_writable(context.user_id, month)

    statuses = [
        status for (status,) in db.session.query(Objective.status)
        .filter(Objective.user_id == context.user_id, Objective.month == month)
    ]
    if not statuses:
        raise ValidationError(
            f"No objectives planned for {month}", details={"month": "no objectives"}
        )
    drafts = sum(1 for s in statuses if s == "draft")
    if drafts:
        raise ValidationError(
            f"{drafts} objective(s) still in draft", details={"draft_count": drafts}
        )

    planning = _get_or_create(context.user_id, month)
    planning.is_confirmed = True
    planning.confirmed_at = datetime.now(timezone.utc)
    db.session.flush()
    logger.info("User %s confirmed planning for %s", context.user_id, month)
    log_activity(
        entity_type="month_planning", entity_id=planning.id, action="month_planning.confirm",
        user_id=context.user_id, company_id=context.company_id, details={"month": month},
    )
    return planning


def unconfirm_month_planning(
    context: CompanyContext, target_user_id: int, month: str
) -> MonthPlanning:
    """Reopen a confirmed plan, including one in a past month."""
    month = _validated(month)
    if context.company_id is None:
        raise ForbiddenError("Select a company before making changes")

    role = context.effective_role
    if role is Role.SUPERADMIN:
        pass
    elif role is Role.COMPANY_ADMIN and get_membership(target_user_id, context.company_id):
        pass
    else:
        logger.info(
            "Unconfirm denied: user=%s target=%s month=%s", context.user_id, target_user_id, month
        )
        raise ForbiddenError("Only company admins can unconfirm a month planning")

    planning = MonthPlanning.query.filter_by(user_id=target_user_id, month=month).first()
    if planning is None:
        raise NotFoundError(resource="MonthPlanning", resource_id=f"{target_user_id}/{month}")
    if not planning.is_confirmed:
        raise ValidationError(f"Planning for {month} is not confirmed")

    planning.is_confirmed = False
    planning.confirmed_at = None
    db.session.flush()
    logger.info(
        "User %s unconfirmed planning of user %s for %s", context.user_id, target_user_id, month
    )
    log_activity(
        entity_type="month_planning", entity_id=planning.id, action="month_planning.unconfirm",
        user_id=context.user_id, company_id=context.company_id,
        details={"owner_id": target_user_id, "month": month},
    )
    return planning
