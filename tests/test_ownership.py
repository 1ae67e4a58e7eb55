"""
Tests: Object Hierarchy Resolver.

Children carry no owner / company / month of their own; every level of the
tree must resolve to the root objective's attributes.
"""

import pytest

from planner.models import db
from planner.models.planning import Objective, SubTask
from planner.services.ownership import ObjectKind, Ownership, resolve_ownership


@pytest.mark.unit
def test_every_level_resolves_to_root(make_company, make_user, make_tree):
    company = make_company()
    user = make_user(company)
    tree = make_tree(user, company, month="2026-01")

    expected = Ownership(owner_id=user.id, company_id=company.id, governing_month="2026-01")
    assert resolve_ownership(ObjectKind.OBJECTIVE, tree["objective"].id) == expected
    assert resolve_ownership(ObjectKind.SUBTASK, tree["subtask"].id) == expected
    assert resolve_ownership(ObjectKind.ACTIVITY, tree["activity"].id) == expected
    assert resolve_ownership(ObjectKind.MEETING, tree["meeting"].id) == expected


@pytest.mark.unit
def test_kind_accepts_plain_strings(make_company, make_user, make_tree):
    company = make_company()
    user = make_user(company)
    tree = make_tree(user, company)
    assert resolve_ownership("Activity", tree["activity"].id).owner_id == user.id
    assert resolve_ownership("subtask", str(tree["subtask"].id)).owner_id == user.id


@pytest.mark.unit
def test_person_has_no_governing_month(make_company, make_user, make_person):
    company = make_company()
    user = make_user(company)
    person = make_person(user, company)

    ownership = resolve_ownership(ObjectKind.PERSON, person.id)
    assert ownership.owner_id == user.id
    assert ownership.company_id == company.id
    assert ownership.governing_month is None
    assert ownership.user_scoped is False


@pytest.mark.unit
def test_month_planning_is_user_scoped(make_user, make_planning):
    user = make_user()
    planning = make_planning(user, month="2025-12")

    ownership = resolve_ownership(ObjectKind.MONTH_PLANNING, planning.id)
    assert ownership.owner_id == user.id
    assert ownership.company_id is None
    assert ownership.governing_month == "2025-12"
    assert ownership.user_scoped is True


@pytest.mark.unit
@pytest.mark.parametrize("kind", list(ObjectKind))
def test_missing_object_returns_none(kind):
    assert resolve_ownership(kind, 987654) is None


@pytest.mark.unit
def test_orphaned_child_resolves_to_none(make_company, make_user, make_tree):
    company = make_company()
    user = make_user(company)
    tree = make_tree(user, company)
    activity_id = tree["activity"].id

    # Cascade removes the whole subtree; nothing is left to resolve
    db.session.delete(db.session.get(Objective, tree["objective"].id))
    db.session.commit()

    assert db.session.get(SubTask, tree["subtask"].id) is None
    assert resolve_ownership(ObjectKind.ACTIVITY, activity_id) is None


@pytest.mark.unit
@pytest.mark.parametrize("bad_id", ["abc", "", None, 0, -3, "1.5"])
def test_malformed_id_raises_value_error(bad_id):
    with pytest.raises(ValueError):
        resolve_ownership(ObjectKind.OBJECTIVE, bad_id)


@pytest.mark.unit
def test_unknown_kind_raises_value_error():
    with pytest.raises(ValueError):
        resolve_ownership("invoice", 1)


@pytest.mark.unit
def test_repeated_resolution_is_stable(make_company, make_user, make_tree):
    company = make_company()
    user = make_user(company)
    tree = make_tree(user, company)

    first = resolve_ownership(ObjectKind.MEETING, tree["meeting"].id)
    second = resolve_ownership(ObjectKind.MEETING, tree["meeting"].id)
    assert first == second
