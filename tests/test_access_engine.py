"""
Tests: Access Decision Engine.

"Now" is 2026-01-15. Every test builds its own company / user graph.

Categories:
    1. Owner — current, past and future months
    2. Supervisor — read-only, same company only
    3. Company admin — same company only
    4. Tenant isolation
    5. Super-admin — all-companies mode vs. selected company
    6. Children inherit the root's month
    7. Person and month planning roots
    8. probe_access / require_access
    9. Feedback predicates
"""

import pytest

from planner.core.exceptions import (
    ForbiddenError,
    MonthFrozenError,
    MonthLockedError,
    NotFoundError,
)
from planner.models import db
from planner.models.auth import Role
from planner.models.planning import Feedback
from planner.services import access
from planner.services.access import AccessDecision
from planner.services.company_context import resolve_context
from planner.services.ownership import ObjectKind


@pytest.fixture()
def team(make_company, make_user):
    """One company: admin, supervisor, a report under the supervisor, an unrelated peer."""
    company = make_company("Acme")
    admin = make_user(company, role=Role.COMPANY_ADMIN, name="Admin")
    boss = make_user(company, role=Role.SUPERVISOR, name="Boss")
    report = make_user(company, supervisor=boss, name="Report")
    peer = make_user(company, name="Peer")
    return {"company": company, "admin": admin, "boss": boss, "report": report, "peer": peer}


def _ctx(user, company_id=None):
    return resolve_context(user, selected_company_id=company_id)


# ═════════════════════════════════════════════════════════════════════════════
# 1. Owner
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
@pytest.mark.parametrize("role", ["member", "supervisor", "company_admin"])
def test_owner_modifies_current_month_with_any_role(team, make_objective, role):
    objective = make_objective(team["report"], team["company"], month="2026-01")
    assert access.can_access_objective(objective.id, team["report"].id, role) is True
    assert access.can_modify_objective(objective.id, team["report"].id, role) is True


@pytest.mark.unit
def test_owner_cannot_modify_past_month(team, make_objective):
    objective = make_objective(team["report"], team["company"], month="2025-11")
    assert access.can_access_objective(objective.id, team["report"].id) is True
    assert access.can_modify_objective(objective.id, team["report"].id, "member") is False
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, objective.id, team["report"].id, modify=True
    ) is AccessDecision.MONTH_FROZEN


@pytest.mark.unit
def test_owner_future_month_locked_until_opened(team, make_objective, open_months):
    objective = make_objective(team["report"], team["company"], month="2026-02")
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, objective.id, team["report"].id, modify=True
    ) is AccessDecision.MONTH_LOCKED

    open_months(team["report"], "2026-02")
    assert access.can_modify_objective(objective.id, team["report"].id) is True


@pytest.mark.unit
def test_past_month_frozen_for_every_role(team, make_objective, make_user):
    objective = make_objective(team["report"], team["company"], month="2025-11")
    root = make_user(super_admin=True)
    cid = team["company"].id

    assert access.can_modify_objective(objective.id, team["report"].id) is False
    assert access.can_modify_objective(objective.id, team["boss"].id) is False
    assert access.can_modify_objective(objective.id, team["admin"].id) is False
    assert access.can_modify_objective(objective.id, root.id, context=_ctx(root, cid)) is False


# ═════════════════════════════════════════════════════════════════════════════
# 2. Supervisor
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_supervisor_reads_but_never_modifies(team, make_objective):
    objective = make_objective(team["report"], team["company"])
    boss = team["boss"].id
    assert access.can_access_objective(objective.id, boss, "supervisor") is True
    assert access.can_modify_objective(objective.id, boss, "supervisor") is False
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, objective.id, boss, modify=True
    ) is AccessDecision.FORBIDDEN


@pytest.mark.unit
def test_supervisor_without_edge_denied(team, make_objective):
    objective = make_objective(team["peer"], team["company"])
    assert access.can_access_objective(objective.id, team["boss"].id) is False


@pytest.mark.unit
def test_supervisor_role_needed_for_edge(team, make_objective):
    objective = make_objective(team["report"], team["company"])
    # The edge exists, but a caller asserting MEMBER gets no supervisor rights
    assert access.can_access_objective(objective.id, team["boss"].id, "member") is False


@pytest.mark.unit
def test_supervisor_edge_is_company_scoped(team, make_company, make_objective, add_membership):
    other = make_company("Globex")
    add_membership(team["report"], other)
    add_membership(team["boss"], other, Role.SUPERVISOR)
    objective = make_objective(team["report"], other)

    # No edge in Globex even though boss supervises report in Acme
    ctx = _ctx(team["boss"], other.id)
    assert access.can_access_objective(objective.id, team["boss"].id, context=ctx) is False


@pytest.mark.unit
def test_peer_cannot_see_colleague_objective(team, make_objective):
    objective = make_objective(team["report"], team["company"])
    assert access.can_access_objective(objective.id, team["peer"].id) is False


# ═════════════════════════════════════════════════════════════════════════════
# 3. Company admin
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_company_admin_modifies_member_objective_current_month(team, make_objective):
    objective = make_objective(team["peer"], team["company"], month="2026-01")
    assert access.can_access_objective(objective.id, team["admin"].id, "company_admin") is True
    assert access.can_modify_objective(objective.id, team["admin"].id, "company_admin") is True


@pytest.mark.unit
def test_company_admin_of_other_company_denied(team, make_company, make_user, make_objective):
    other = make_company("Globex")
    outsider = make_user(other)
    objective = make_objective(outsider, other, month="2026-01")

    assert access.can_access_objective(objective.id, team["admin"].id, "company_admin") is False
    assert access.can_modify_objective(objective.id, team["admin"].id, "company_admin") is False


@pytest.mark.unit
def test_company_admin_bound_by_owner_month_lock(team, make_objective, open_months):
    objective = make_objective(team["peer"], team["company"], month="2026-02")
    # Admin opening the month for themself does not open it for the owner
    open_months(team["admin"], "2026-02")
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, objective.id, team["admin"].id, modify=True
    ) is AccessDecision.MONTH_LOCKED


# ═════════════════════════════════════════════════════════════════════════════
# 4. Tenant isolation
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_owner_in_other_company_context_is_denied(team, make_company, make_objective, add_membership):
    other = make_company("Globex")
    add_membership(team["report"], other)
    objective = make_objective(team["report"], team["company"])

    ctx = _ctx(team["report"], other.id)
    assert ctx.company_id == other.id
    assert access.can_access_objective(objective.id, team["report"].id, context=ctx) is False


@pytest.mark.unit
def test_actor_without_resolved_company_denied(team, make_user, make_objective):
    drifter = make_user()
    objective = make_objective(team["report"], team["company"])
    assert access.can_access_objective(objective.id, drifter.id) is False


@pytest.mark.unit
def test_selected_company_without_membership_fails_closed(team, make_company, make_objective):
    other = make_company("Globex")
    ctx = _ctx(team["admin"], other.id)
    assert ctx.company_id is None
    assert ctx.role is None

    objective = make_objective(team["peer"], team["company"])
    assert access.can_access_objective(objective.id, team["admin"].id, context=ctx) is False


# ═════════════════════════════════════════════════════════════════════════════
# 5. Super-admin
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_superadmin_all_companies_mode_is_read_only(team, make_user, make_objective):
    root = make_user(super_admin=True)
    objective = make_objective(team["peer"], team["company"])

    assert access.can_access_objective(objective.id, root.id) is True
    assert access.can_modify_objective(objective.id, root.id) is False
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, objective.id, root.id, modify=True
    ) is AccessDecision.FORBIDDEN


@pytest.mark.unit
def test_superadmin_with_company_may_modify_current_and_future(team, make_user, make_objective):
    root = make_user(super_admin=True)
    ctx = _ctx(root, team["company"].id)
    current = make_objective(team["peer"], team["company"], month="2026-01")
    future = make_objective(team["peer"], team["company"], month="2026-04")

    assert access.can_modify_objective(current.id, root.id, context=ctx) is True
    assert access.can_modify_objective(future.id, root.id, context=ctx) is True


@pytest.mark.unit
def test_superadmin_reads_past_but_cannot_edit(team, make_user, make_tree):
    root = make_user(super_admin=True)
    ctx = _ctx(root, team["company"].id)
    tree = make_tree(team["peer"], team["company"], month="2025-11")

    assert access.can_access_objective(tree["objective"].id, root.id, context=ctx) is True
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, tree["objective"].id, root.id, context=ctx, modify=True
    ) is AccessDecision.MONTH_FROZEN
    assert access.can_modify_subtask(tree["subtask"].id, root.id, context=ctx) is False


# ═════════════════════════════════════════════════════════════════════════════
# 6. Children inherit
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_children_of_past_objective_are_frozen(team, make_tree):
    tree = make_tree(team["report"], team["company"], month="2025-11")
    owner = team["report"].id

    assert access.can_access_subtask(tree["subtask"].id, owner) is True
    assert access.can_modify_subtask(tree["subtask"].id, owner, "member") is False
    assert access.can_modify_activity(tree["activity"].id, owner) is False
    assert access.can_modify_meeting(tree["meeting"].id, owner) is False


@pytest.mark.unit
def test_children_of_current_objective_follow_root(team, make_tree):
    tree = make_tree(team["report"], team["company"])
    owner, boss, peer = team["report"].id, team["boss"].id, team["peer"].id

    assert access.can_modify_activity(tree["activity"].id, owner) is True
    assert access.can_modify_meeting(tree["meeting"].id, owner) is True
    assert access.can_access_activity(tree["activity"].id, boss) is True
    assert access.can_modify_activity(tree["activity"].id, boss) is False
    assert access.can_access_meeting(tree["meeting"].id, peer) is False


# ═════════════════════════════════════════════════════════════════════════════
# 7. Person and month planning
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_person_has_no_month_gate(team, make_person):
    person = make_person(team["report"], team["company"])
    assert access.can_modify_person(person.id, team["report"].id) is True
    assert access.can_access_person(person.id, team["boss"].id) is True
    assert access.can_modify_person(person.id, team["boss"].id) is False
    assert access.can_access_person(person.id, team["peer"].id) is False


@pytest.mark.unit
def test_month_planning_scoped_through_owner_membership(team, make_planning):
    planning = make_planning(team["report"], month="2026-01")
    assert access.can_access_month_planning(planning.id, team["report"].id) is True
    assert access.can_access_month_planning(planning.id, team["boss"].id) is True
    assert access.can_access_month_planning(planning.id, team["admin"].id) is True
    assert access.can_access_month_planning(planning.id, team["peer"].id) is False


@pytest.mark.unit
def test_month_planning_invisible_to_admin_of_unrelated_company(
    team, make_company, make_user, make_planning,
):
    other = make_company("Globex")
    other_admin = make_user(other, role=Role.COMPANY_ADMIN)
    planning = make_planning(team["report"], month="2026-01")
    assert access.can_access_month_planning(planning.id, other_admin.id) is False


@pytest.mark.unit
def test_past_month_planning_frozen(team, make_planning):
    planning = make_planning(team["report"], month="2025-12", confirmed=True)
    assert access.can_modify_month_planning(planning.id, team["report"].id) is False
    assert access.can_modify_month_planning(planning.id, team["admin"].id) is False


@pytest.mark.unit
def test_missing_object_is_not_found(team):
    assert access.evaluate_access(
        ObjectKind.OBJECTIVE, 424242, team["admin"].id
    ) is AccessDecision.NOT_FOUND
    assert access.can_access_activity(424242, team["admin"].id) is False


@pytest.mark.unit
def test_malformed_ids_raise(team):
    with pytest.raises(ValueError):
        access.can_access_objective("abc", team["admin"].id)
    with pytest.raises(ValueError):
        access.can_access_objective(1, "not-a-user")


# ═════════════════════════════════════════════════════════════════════════════
# 8. probe_access / require_access
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_probe_reports_reason_for_modify_denial(team, make_objective):
    objective = make_objective(team["report"], team["company"], month="2025-12")
    result = access.probe_access(ObjectKind.OBJECTIVE, objective.id, team["report"].id)
    assert result.to_dict() == {
        "can_access": True,
        "can_modify": False,
        "decision": "month_frozen",
    }


@pytest.mark.unit
def test_probe_denied_read(team, make_objective):
    objective = make_objective(team["report"], team["company"])
    result = access.probe_access("objective", objective.id, team["peer"].id)
    assert result.can_access is False
    assert result.can_modify is False
    assert result.decision is AccessDecision.FORBIDDEN


@pytest.mark.unit
def test_require_access_hides_existence_on_denied_read(team, make_objective):
    objective = make_objective(team["report"], team["company"])
    with pytest.raises(NotFoundError):
        access.require_access(ObjectKind.OBJECTIVE, objective.id, _ctx(team["peer"]))


@pytest.mark.unit
def test_require_access_translates_modify_denials(team, make_objective):
    past = make_objective(team["report"], team["company"], month="2025-12")
    locked = make_objective(team["report"], team["company"], month="2026-03")
    current = make_objective(team["report"], team["company"])

    owner_ctx = _ctx(team["report"])
    with pytest.raises(MonthFrozenError):
        access.require_access(ObjectKind.OBJECTIVE, past.id, owner_ctx, modify=True)
    with pytest.raises(MonthLockedError):
        access.require_access(ObjectKind.OBJECTIVE, locked.id, owner_ctx, modify=True)
    with pytest.raises(ForbiddenError):
        access.require_access(ObjectKind.OBJECTIVE, current.id, _ctx(team["boss"]), modify=True)

    ownership = access.require_access(ObjectKind.OBJECTIVE, current.id, owner_ctx, modify=True)
    assert ownership.owner_id == team["report"].id


# ═════════════════════════════════════════════════════════════════════════════
# 9. Feedback
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_can_give_feedback_matrix(team, make_user, make_objective):
    objective = make_objective(team["report"], team["company"], month="2025-11")
    root = make_user(super_admin=True)
    oid = objective.id

    assert access.can_give_feedback("objective", oid, team["boss"].id) is True
    assert access.can_give_feedback("objective", oid, team["admin"].id) is True
    assert access.can_give_feedback("objective", oid, team["report"].id) is False
    assert access.can_give_feedback("objective", oid, team["peer"].id) is False
    # all-companies mode is read-only
    assert access.can_give_feedback("objective", oid, root.id) is False
    assert access.can_give_feedback(
        "objective", oid, root.id, context=_ctx(root, team["company"].id)
    ) is True


@pytest.mark.unit
def test_can_give_feedback_on_month_planning(team, make_planning):
    planning = make_planning(team["report"], month="2026-01")
    assert access.can_give_feedback("month_planning", planning.id, team["boss"].id) is True
    assert access.can_give_feedback("month_planning", planning.id, team["peer"].id) is False


@pytest.mark.unit
def test_can_give_feedback_unknown_target_type(team):
    with pytest.raises(ValueError):
        access.can_give_feedback("meeting", 1, team["boss"].id)


@pytest.mark.unit
def test_can_access_feedback_follows_target(team, make_objective):
    objective = make_objective(team["report"], team["company"])
    feedback = Feedback(
        target_type="objective", target_id=objective.id,
        author_id=team["boss"].id, comment="Good progress",
    )
    db.session.add(feedback)
    db.session.commit()

    assert access.can_access_feedback(feedback.id, team["report"].id) is True
    assert access.can_access_feedback(feedback.id, team["admin"].id) is True
    assert access.can_access_feedback(feedback.id, team["peer"].id) is False
    assert access.can_access_feedback(999999, team["report"].id) is False


@pytest.mark.unit
def test_superadmin_feedback_stays_in_selected_company(team, make_company, make_user, make_objective):
    other = make_company("Globex")
    objective = make_objective(team["report"], team["company"])
    root = make_user(super_admin=True)

    assert access.can_give_feedback(
        "objective", objective.id, root.id, context=_ctx(root, other.id)
    ) is False
    assert access.can_give_feedback(
        "objective", objective.id, root.id, context=_ctx(root, team["company"].id)
    ) is True
