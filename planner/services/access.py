"""
Access Decision Engine — may this actor view / modify this object?

Composes the other four components. Evaluation order, first match wins:

  1. Resolve ownership (owner, company, governing month); missing → NOT_FOUND
  2. SUPERADMIN: read always; modify unless the month is past, and only
     with a concrete company selected
  3. Tenant scoping: a non-super-admin whose current company is missing or
     differs from the object's company is denied
  4. Owner: read; modify iff the month is writable for the owner
  5. COMPANY_ADMIN of the object's company: same as owner
  6. SUPERVISOR holding the edge (owner → actor) in that company: read only
  7. Deny

Predicates are pure reads and never raise for a deny outcome; malformed ids
or kinds raise ValueError. ``require_access`` translates a decision into the
exception the service layer propagates.

Roles are consumed here only. Callers pass ``context.effective_role`` (or
nothing, in which case the role is taken from the resolved context).
"""

import enum
import logging
from dataclasses import dataclass

from planner.core.exceptions import (
    ForbiddenError,
    MonthFrozenError,
    MonthLockedError,
    NotFoundError,
)
from planner.models import db
from planner.models.auth import Role
from planner.models.planning import (
    FEEDBACK_TARGET_MONTH_PLANNING,
    FEEDBACK_TARGET_OBJECTIVE,
    Feedback,
)
from planner.services.company_context import CompanyContext, get_membership, resolve_context
from planner.services.month_gate import MonthState, classify_month, is_month_read_only
from planner.services.ownership import ObjectKind, Ownership, resolve_ownership
from planner.services.supervisor_chain import is_supervisor_of
from planner.utils.helpers import parse_int_id

logger = logging.getLogger(__name__)


class AccessDecision(str, enum.Enum):
    ALLOWED = "allowed"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    MONTH_FROZEN = "month_frozen"
    MONTH_LOCKED = "month_locked"


@dataclass(frozen=True)
class AccessResult:
    can_access: bool
    can_modify: bool
    decision: AccessDecision
    ownership: Ownership | None = None

    def to_dict(self):
        return {
            "can_access": self.can_access,
            "can_modify": self.can_modify,
            "decision": self.decision.value,
        }


FEEDBACK_TARGET_KINDS = {
    FEEDBACK_TARGET_OBJECTIVE: ObjectKind.OBJECTIVE,
    FEEDBACK_TARGET_MONTH_PLANNING: ObjectKind.MONTH_PLANNING,
}


# ── Composition ──────────────────────────────────────────────────────────────


def _actor_role(actor_role, context: CompanyContext) -> Role | None:
    if actor_role is None:
        return context.effective_role
    return Role.parse(actor_role)


def _object_company(ownership: Ownership, context: CompanyContext) -> int | None:
    """Company the object belongs to for scoping purposes.

    User-scoped rows (month plannings) take the actor's current company when
    the owner is a member there, and no company otherwise.
    """
    if not ownership.user_scoped:
        return ownership.company_id
    if context.company_id is not None and get_membership(ownership.owner_id, context.company_id):
        return context.company_id
    return None


def _month_decision(owner_id: int, month: str | None) -> AccessDecision:
    if month is None:
        return AccessDecision.ALLOWED
    state = classify_month(owner_id, month)
    if state is MonthState.PAST:
        return AccessDecision.MONTH_FROZEN
    if state is MonthState.FUTURE_LOCKED:
        return AccessDecision.MONTH_LOCKED
    return AccessDecision.ALLOWED


def _decide(
    ownership: Ownership,
    actor_id: int,
    role: Role | None,
    context: CompanyContext,
    modify: bool,
) -> AccessDecision:
    if role is Role.SUPERADMIN:
        if not modify:
            return AccessDecision.ALLOWED
        if context.company_id is None:
            return AccessDecision.FORBIDDEN
        if ownership.governing_month and is_month_read_only(ownership.governing_month):
            return AccessDecision.MONTH_FROZEN
        return AccessDecision.ALLOWED

    company_id = _object_company(ownership, context)
    if context.company_id is None or company_id != context.company_id:
        return AccessDecision.FORBIDDEN

    if actor_id == ownership.owner_id or role is Role.COMPANY_ADMIN:
        if not modify:
            return AccessDecision.ALLOWED
        return _month_decision(ownership.owner_id, ownership.governing_month)

    if role is Role.SUPERVISOR and is_supervisor_of(actor_id, ownership.owner_id, company_id):
        return AccessDecision.FORBIDDEN if modify else AccessDecision.ALLOWED

    return AccessDecision.FORBIDDEN


def _evaluate(kind, object_id, actor_id, actor_role, context, modify):
    actor_id = parse_int_id(actor_id, label="actor id")
    ownership = resolve_ownership(kind, object_id)
    if ownership is None:
        return AccessDecision.NOT_FOUND, None
    if context is None:
        context = resolve_context(actor_id)
    role = _actor_role(actor_role, context)
    return _decide(ownership, actor_id, role, context, modify), ownership


def evaluate_access(
    kind,
    object_id,
    actor_id,
    actor_role=None,
    context: CompanyContext | None = None,
    *,
    modify: bool = False,
) -> AccessDecision:
    """Decision with its reason, for callers that render different messages."""
    decision, _ = _evaluate(kind, object_id, actor_id, actor_role, context, modify)
    return decision


def probe_access(kind, object_id, actor_id, actor_role=None, context=None) -> AccessResult:
    """Both predicates at once; ``decision`` explains the modify outcome."""
    read, ownership = _evaluate(kind, object_id, actor_id, actor_role, context, modify=False)
    if read is not AccessDecision.ALLOWED:
        return AccessResult(False, False, read, ownership)
    write, _ = _evaluate(kind, object_id, actor_id, actor_role, context, modify=True)
    return AccessResult(True, write is AccessDecision.ALLOWED, write, ownership)


def require_access(kind, object_id, context: CompanyContext, *, modify: bool = False) -> Ownership:
    """Raise the matching exception unless *context* may read / modify the object.

    A denied read is reported as NotFound so existence is not leaked. A
    denied modify on a readable object is Forbidden, or the month error that
    explains it.
    """
    kind = ObjectKind.parse(kind)
    decision, ownership = _evaluate(
        kind, object_id, context.user_id, None, context, modify=False
    )
    if decision is not AccessDecision.ALLOWED:
        logger.info(
            "Read denied: user=%s %s/%s decision=%s",
            context.user_id, kind.value, object_id, decision.value,
        )
        raise NotFoundError(resource=kind.value, resource_id=object_id, company_id=context.company_id)
    if not modify:
        return ownership

    decision, ownership = _evaluate(kind, object_id, context.user_id, None, context, modify=True)
    if decision is AccessDecision.ALLOWED:
        return ownership
    logger.info(
        "Modify denied: user=%s %s/%s decision=%s",
        context.user_id, kind.value, object_id, decision.value,
    )
    if decision is AccessDecision.MONTH_FROZEN:
        raise MonthFrozenError(ownership.governing_month)
    if decision is AccessDecision.MONTH_LOCKED:
        raise MonthLockedError(ownership.governing_month)
    raise ForbiddenError()


# ── Per-type predicates ──────────────────────────────────────────────────────


def can_access_objective(objective_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.OBJECTIVE, objective_id, actor_id, actor_role, context
    ) is AccessDecision.ALLOWED


def can_modify_objective(objective_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.OBJECTIVE, objective_id, actor_id, actor_role, context, modify=True
    ) is AccessDecision.ALLOWED


def can_access_subtask(subtask_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.SUBTASK, subtask_id, actor_id, actor_role, context
    ) is AccessDecision.ALLOWED


def can_modify_subtask(subtask_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.SUBTASK, subtask_id, actor_id, actor_role, context, modify=True
    ) is AccessDecision.ALLOWED


def can_access_activity(activity_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.ACTIVITY, activity_id, actor_id, actor_role, context
    ) is AccessDecision.ALLOWED


def can_modify_activity(activity_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.ACTIVITY, activity_id, actor_id, actor_role, context, modify=True
    ) is AccessDecision.ALLOWED


def can_access_meeting(meeting_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.MEETING, meeting_id, actor_id, actor_role, context
    ) is AccessDecision.ALLOWED


def can_modify_meeting(meeting_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.MEETING, meeting_id, actor_id, actor_role, context, modify=True
    ) is AccessDecision.ALLOWED


def can_access_person(person_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.PERSON, person_id, actor_id, actor_role, context
    ) is AccessDecision.ALLOWED


def can_modify_person(person_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.PERSON, person_id, actor_id, actor_role, context, modify=True
    ) is AccessDecision.ALLOWED


def can_access_month_planning(planning_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.MONTH_PLANNING, planning_id, actor_id, actor_role, context
    ) is AccessDecision.ALLOWED


def can_modify_month_planning(planning_id, actor_id, actor_role=None, context=None) -> bool:
    return evaluate_access(
        ObjectKind.MONTH_PLANNING, planning_id, actor_id, actor_role, context, modify=True
    ) is AccessDecision.ALLOWED


# ── Feedback ─────────────────────────────────────────────────────────────────


def feedback_target_kind(target_type) -> ObjectKind:
    try:
        return FEEDBACK_TARGET_KINDS[target_type]
    except KeyError:
        raise ValueError(f"Unknown feedback target type: {target_type!r}") from None


def can_access_feedback(feedback_id, actor_id, actor_role=None, context=None) -> bool:
    """Feedback is visible to whoever can see its target, regardless of author."""
    feedback_id = parse_int_id(feedback_id, label="feedback id")
    feedback = db.session.get(Feedback, feedback_id)
    if feedback is None:
        return False
    return evaluate_access(
        feedback_target_kind(feedback.target_type), feedback.target_id,
        actor_id, actor_role, context,
    ) is AccessDecision.ALLOWED


def can_give_feedback(target_type, target_id, actor_id, actor_role=None, context=None) -> bool:
    """Supervisors of the target's owner, company admins and super-admins may annotate.

    Feedback is a review of the owner's work, so the month freeze does not
    apply; a concrete company is still required.
    """
    kind = feedback_target_kind(target_type)
    actor_id = parse_int_id(actor_id, label="actor id")
    ownership = resolve_ownership(kind, target_id)
    if ownership is None:
        return False
    if context is None:
        context = resolve_context(actor_id)
    role = _actor_role(actor_role, context)

    if context.company_id is None:
        return False
    company_id = _object_company(ownership, context)
    if company_id != context.company_id:
        return False
    if role is Role.SUPERADMIN:
        return True

    if actor_id == ownership.owner_id:
        return False
    if role is Role.COMPANY_ADMIN:
        return True
    return role is Role.SUPERVISOR and is_supervisor_of(actor_id, ownership.owner_id, company_id)


def can_delete_feedback(feedback_id, actor_id, actor_role=None, context=None) -> bool:
    """The author, a company admin or a super-admin of the target's company."""
    feedback_id = parse_int_id(feedback_id, label="feedback id")
    actor_id = parse_int_id(actor_id, label="actor id")
    feedback = db.session.get(Feedback, feedback_id)
    if feedback is None:
        return False
    ownership = resolve_ownership(feedback_target_kind(feedback.target_type), feedback.target_id)
    if ownership is None:
        return False
    if context is None:
        context = resolve_context(actor_id)
    role = _actor_role(actor_role, context)

    if context.company_id is None:
        return False
    if _decide(ownership, actor_id, role, context, modify=False) is not AccessDecision.ALLOWED:
        return False
    if _object_company(ownership, context) != context.company_id:
        return False
    if role in (Role.SUPERADMIN, Role.COMPANY_ADMIN):
        return True
    return feedback.author_id == actor_id
