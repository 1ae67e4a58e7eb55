"""
Supervisor Chain Validator — keeps each company's supervisor graph a forest.

Every membership row (UserCompany) carries at most one company-scoped edge
``user_id → supervisor_id``. Writes go through ``assign_supervisor`` which
rejects self-assignment and any edge that would close a loop.

The cycle check reads the whole company edge set in one query (a single
consistent snapshot) and walks it in memory with a visited set and a hard
iteration cap, so it terminates even on corrupted data.
"""

import logging

from flask import current_app, has_app_context
from sqlalchemy import select

from planner.core.exceptions import (
    CycleDetectedError,
    ForbiddenError,
    NotFoundError,
    SelfAssignmentError,
    ValidationError,
)
from planner.models import db
from planner.models.auth import MEMBERSHIP_ROLES, Role, User, UserCompany
from planner.services.activity_log import log_activity
from planner.services.company_context import CompanyContext, get_membership

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 1000


def _max_depth() -> int:
    if has_app_context():
        return current_app.config.get("SUPERVISOR_CHAIN_MAX_DEPTH", DEFAULT_MAX_DEPTH)
    return DEFAULT_MAX_DEPTH


def _company_edges(company_id: int, lock: bool = False) -> dict[int, int]:
    stmt = select(UserCompany.user_id, UserCompany.supervisor_id).where(
        UserCompany.company_id == company_id,
        UserCompany.supervisor_id.is_not(None),
    )
    if lock:
        stmt = stmt.with_for_update()
    return {user_id: supervisor_id for user_id, supervisor_id in db.session.execute(stmt)}


def would_create_cycle(
    proposed_supervisor_id: int,
    subordinate_id: int,
    company_id: int,
    edges: dict[int, int] | None = None,
) -> bool:
    """True when making *proposed_supervisor_id* supervise *subordinate_id* closes a loop.

    Walks upward from the proposed supervisor. Reaching the subordinate, or
    revisiting any node (a loop that already exists), rejects the edge.
    Self-assignment is the caller's check.
    """
    if edges is None:
        edges = _company_edges(company_id)

    cap = _max_depth()
    visited = set()
    current = proposed_supervisor_id
    steps = 0

    while current is not None:
        if current == subordinate_id:
            return True
        if current in visited:
            logger.warning(
                "Pre-existing supervisor loop in company %s at user %s", company_id, current
            )
            return True
        visited.add(current)
        steps += 1
        if steps > cap:
            logger.warning(
                "Supervisor chain walk exceeded %d steps in company %s", cap, company_id
            )
            return True
        current = edges.get(current)

    return False


def is_supervisor_of(supervisor_id: int, user_id: int, company_id: int | None) -> bool:
    """True when the edge (user_id → supervisor_id) exists in *company_id*."""
    if company_id is None:
        return False
    membership = get_membership(user_id, company_id)
    return membership is not None and membership.supervisor_id == supervisor_id


def get_supervisees(supervisor_id: int, company_id: int) -> list[User]:
    return (
        User.query.join(UserCompany, UserCompany.user_id == User.id)
        .filter(
            UserCompany.company_id == company_id,
            UserCompany.supervisor_id == supervisor_id,
        )
        .order_by(User.full_name, User.id)
        .all()
    )


def _require_company_admin(context: CompanyContext, company_id: int) -> None:
    if context.company_id != company_id:
        raise ForbiddenError("Select this company before administering it")
    if context.effective_role not in (Role.COMPANY_ADMIN, Role.SUPERADMIN):
        raise ForbiddenError("Only company admins may manage memberships")


def assign_supervisor(
    context: CompanyContext,
    company_id: int,
    subordinate_id: int,
    supervisor_id: int | None,
) -> UserCompany:
    """Set, replace or clear the supervisor of *subordinate_id* in *company_id*.

    Raises:
        ForbiddenError: actor is not admin of that company.
        NotFoundError: subordinate is not a member of the company.
        SelfAssignmentError / CycleDetectedError: the edge is rejected.
        ValidationError: supervisor is not a member of the company.
    """
    _require_company_admin(context, company_id)

    membership = get_membership(subordinate_id, company_id)
    if membership is None:
        raise NotFoundError(resource="Membership", resource_id=subordinate_id, company_id=company_id)

    if supervisor_id is None:
        membership.supervisor_id = None
        db.session.flush()
        logger.info("Cleared supervisor of user %s in company %s", subordinate_id, company_id)
        log_activity(
            entity_type="membership", entity_id=membership.id,
            action="membership.assign_supervisor", user_id=context.user_id,
            company_id=company_id, details={"subordinate_id": subordinate_id, "supervisor_id": None},
        )
        return membership

    if supervisor_id == subordinate_id:
        raise SelfAssignmentError(subordinate_id)

    if get_membership(supervisor_id, company_id) is None:
        raise ValidationError(
            "Supervisor must be a member of the company",
            details={"supervisor_id": "not a member of this company"},
        )

    # Re-read the edge set under lock so concurrent assignments in the same
    # company cannot each pass the check and jointly close a loop.
    edges = _company_edges(company_id, lock=True)
    if would_create_cycle(supervisor_id, subordinate_id, company_id, edges=edges):
        logger.info(
            "Rejected supervisor %s for user %s in company %s: cycle",
            supervisor_id, subordinate_id, company_id,
        )
        raise CycleDetectedError(subordinate_id, supervisor_id)

    membership.supervisor_id = supervisor_id
    db.session.flush()
    logger.info(
        "User %s now supervises user %s in company %s", supervisor_id, subordinate_id, company_id
    )
    log_activity(
        entity_type="membership", entity_id=membership.id,
        action="membership.assign_supervisor", user_id=context.user_id,
        company_id=company_id,
        details={"subordinate_id": subordinate_id, "supervisor_id": supervisor_id},
    )
    return membership


def assign_role(context: CompanyContext, company_id: int, user_id: int, role) -> UserCompany:
    """Change a member's per-company role. SUPERADMIN is never assignable per company."""
    _require_company_admin(context, company_id)

    try:
        role = Role.parse(role)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"role": "unknown role"}) from None
    if role not in MEMBERSHIP_ROLES:
        raise ValidationError(
            "SUPERADMIN cannot be assigned per company", details={"role": role.value}
        )

    membership = get_membership(user_id, company_id)
    if membership is None:
        raise NotFoundError(resource="Membership", resource_id=user_id, company_id=company_id)

    membership.role = role.value
    db.session.flush()
    logger.info("User %s role in company %s set to %s", user_id, company_id, role.value)
    log_activity(
        entity_type="membership", entity_id=membership.id,
        action="membership.assign_role", user_id=context.user_id,
        company_id=company_id, details={"member_id": user_id, "role": role.value},
    )
    return membership
