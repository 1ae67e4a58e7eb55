"""
Tests: Supervisor Chain Validator.

Categories:
    1. would_create_cycle — pure walk over an edge map
    2. assign_supervisor — self-assignment, cycles, clearing, permissions
    3. Company isolation of edges
    4. assign_role
"""

import pytest

from planner.core.exceptions import (
    CycleDetectedError,
    ForbiddenError,
    NotFoundError,
    SelfAssignmentError,
    ValidationError,
)
from planner.models import db
from planner.models.auth import Role, UserCompany
from planner.services.company_context import resolve_context
from planner.services.supervisor_chain import (
    assign_role,
    assign_supervisor,
    get_supervisees,
    is_supervisor_of,
    would_create_cycle,
)


@pytest.fixture()
def org(make_company, make_user):
    """Company with an admin and a chain  c → b → a  (c reports to b, b to a)."""
    company = make_company("Acme")
    admin = make_user(company, role=Role.COMPANY_ADMIN, name="Admin")
    a = make_user(company, role=Role.SUPERVISOR, name="A")
    b = make_user(company, role=Role.SUPERVISOR, supervisor=a, name="B")
    c = make_user(company, supervisor=b, name="C")
    return {"company": company, "admin": admin, "a": a, "b": b, "c": c}


def _edge(user, company):
    return UserCompany.query.filter_by(user_id=user.id, company_id=company.id).one().supervisor_id


# ═════════════════════════════════════════════════════════════════════════════
# 1. would_create_cycle
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_cycle_when_subordinate_is_above_supervisor():
    edges = {3: 2, 2: 1}
    # making 3 supervise 1 closes 1 → 3 → 2 → 1
    assert would_create_cycle(3, 1, company_id=1, edges=edges) is True


@pytest.mark.unit
def test_no_cycle_for_independent_branch():
    edges = {3: 2, 2: 1, 5: 4}
    assert would_create_cycle(4, 3, company_id=1, edges=edges) is False


@pytest.mark.unit
def test_direct_two_node_loop_detected():
    assert would_create_cycle(2, 1, company_id=1, edges={2: 1}) is True


@pytest.mark.unit
def test_walk_terminates_on_pre_existing_loop():
    # 10 ↔ 11 is already corrupt; the walk from 10 never reaches 99
    edges = {10: 11, 11: 10}
    assert would_create_cycle(10, 99, company_id=1, edges=edges) is True


@pytest.mark.unit
def test_walk_respects_depth_cap(app):
    edges = {i: i + 1 for i in range(1, 50)}
    app.config["SUPERVISOR_CHAIN_MAX_DEPTH"] = 10
    try:
        assert would_create_cycle(1, 999, company_id=1, edges=edges) is True
    finally:
        app.config["SUPERVISOR_CHAIN_MAX_DEPTH"] = 1000


@pytest.mark.unit
def test_would_create_cycle_reads_company_edges(org):
    company = org["company"]
    assert would_create_cycle(org["c"].id, org["a"].id, company.id) is True
    assert would_create_cycle(org["a"].id, org["admin"].id, company.id) is False


# ═════════════════════════════════════════════════════════════════════════════
# 2. assign_supervisor
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_self_assignment_rejected(org):
    ctx = resolve_context(org["admin"])
    with pytest.raises(SelfAssignmentError) as exc:
        assign_supervisor(ctx, org["company"].id, org["a"].id, org["a"].id)
    assert exc.value.reason == "self-assignment"


@pytest.mark.unit
def test_cycle_rejected_and_graph_unchanged(org):
    ctx = resolve_context(org["admin"])
    with pytest.raises(CycleDetectedError) as exc:
        assign_supervisor(ctx, org["company"].id, org["a"].id, org["c"].id)
    assert exc.value.reason == "cycle-detected"

    db.session.rollback()
    assert _edge(org["a"], org["company"]) is None
    assert _edge(org["b"], org["company"]) == org["a"].id
    assert _edge(org["c"], org["company"]) == org["b"].id


@pytest.mark.unit
def test_assign_valid_supervisor(org):
    ctx = resolve_context(org["admin"])
    membership = assign_supervisor(ctx, org["company"].id, org["c"].id, org["a"].id)
    db.session.commit()

    assert membership.supervisor_id == org["a"].id
    assert is_supervisor_of(org["a"].id, org["c"].id, org["company"].id) is True
    assert is_supervisor_of(org["b"].id, org["c"].id, org["company"].id) is False


@pytest.mark.unit
def test_clear_supervisor(org):
    ctx = resolve_context(org["admin"])
    assign_supervisor(ctx, org["company"].id, org["c"].id, None)
    db.session.commit()
    assert _edge(org["c"], org["company"]) is None


@pytest.mark.unit
def test_supervisor_must_be_member(org, make_company, make_user):
    outsider = make_user(make_company("Elsewhere"))
    ctx = resolve_context(org["admin"])
    with pytest.raises(ValidationError):
        assign_supervisor(ctx, org["company"].id, org["c"].id, outsider.id)


@pytest.mark.unit
def test_subordinate_must_be_member(org, make_company, make_user):
    outsider = make_user(make_company("Elsewhere"))
    ctx = resolve_context(org["admin"])
    with pytest.raises(NotFoundError):
        assign_supervisor(ctx, org["company"].id, outsider.id, org["a"].id)


@pytest.mark.unit
def test_only_company_admin_may_assign(org):
    ctx = resolve_context(org["a"])
    with pytest.raises(ForbiddenError):
        assign_supervisor(ctx, org["company"].id, org["c"].id, org["a"].id)


@pytest.mark.unit
def test_superadmin_needs_company_selected(org, make_user):
    root = make_user(super_admin=True)
    ctx = resolve_context(root)
    assert ctx.company_id is None
    with pytest.raises(ForbiddenError):
        assign_supervisor(ctx, org["company"].id, org["c"].id, org["a"].id)

    ctx = resolve_context(root, selected_company_id=org["company"].id)
    membership = assign_supervisor(ctx, org["company"].id, org["c"].id, org["a"].id)
    assert membership.supervisor_id == org["a"].id


@pytest.mark.unit
def test_get_supervisees(org):
    names = [u.full_name for u in get_supervisees(org["b"].id, org["company"].id)]
    assert names == ["C"]
    assert get_supervisees(org["c"].id, org["company"].id) == []


# ═════════════════════════════════════════════════════════════════════════════
# 3. Company isolation
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_edges_are_company_scoped(org, make_company, add_membership):
    other = make_company("Globex")
    add_membership(org["a"], other, Role.COMPANY_ADMIN)
    add_membership(org["c"], other)

    # c → a in Globex does not conflict with a's position in Acme
    ctx = resolve_context(org["a"], selected_company_id=other.id)
    assign_supervisor(ctx, other.id, org["a"].id, None)
    membership = assign_supervisor(ctx, other.id, org["c"].id, org["a"].id)
    assert membership.company_id == other.id

    assert is_supervisor_of(org["a"].id, org["c"].id, other.id) is True
    assert is_supervisor_of(org["a"].id, org["c"].id, org["company"].id) is False
    assert is_supervisor_of(org["b"].id, org["c"].id, other.id) is False


@pytest.mark.unit
def test_cross_company_chain_does_not_create_cycle(org, make_company, add_membership):
    other = make_company("Globex")
    add_membership(org["a"], other)
    add_membership(org["c"], other, Role.COMPANY_ADMIN)

    # In Acme a is above c; in Globex a may report to c
    ctx = resolve_context(org["c"], selected_company_id=other.id)
    membership = assign_supervisor(ctx, other.id, org["a"].id, org["c"].id)
    assert membership.supervisor_id == org["c"].id


# ═════════════════════════════════════════════════════════════════════════════
# 4. assign_role
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.unit
def test_assign_role_updates_membership(org):
    ctx = resolve_context(org["admin"])
    membership = assign_role(ctx, org["company"].id, org["c"].id, "supervisor")
    db.session.commit()
    assert membership.role == "supervisor"
    assert resolve_context(org["c"]).role is Role.SUPERVISOR


@pytest.mark.unit
def test_assign_role_rejects_superadmin(org):
    ctx = resolve_context(org["admin"])
    with pytest.raises(ValidationError):
        assign_role(ctx, org["company"].id, org["c"].id, "superadmin")


@pytest.mark.unit
def test_assign_role_rejects_unknown(org):
    ctx = resolve_context(org["admin"])
    with pytest.raises(ValidationError):
        assign_role(ctx, org["company"].id, org["c"].id, "overlord")


@pytest.mark.unit
def test_assign_role_requires_admin(org):
    ctx = resolve_context(org["b"])
    with pytest.raises(ForbiddenError):
        assign_role(ctx, org["company"].id, org["c"].id, "company_admin")
