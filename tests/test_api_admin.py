"""
Tests: Company admin API — members, roles, supervisor edges.
"""

import pytest

from planner.models import db
from planner.models.auth import Role, UserCompany


@pytest.fixture()
def org(make_company, make_user):
    """c → b → a chain plus an admin, all in one company."""
    company = make_company("Acme")
    admin = make_user(company, role=Role.COMPANY_ADMIN, name="Admin")
    a = make_user(company, role=Role.SUPERVISOR, name="A")
    b = make_user(company, role=Role.SUPERVISOR, supervisor=a, name="B")
    c = make_user(company, supervisor=b, name="C")
    return {"company": company, "admin": admin, "a": a, "b": b, "c": c}


def _url(org, user, suffix="supervisor"):
    return f"/api/v1/companies/{org['company'].id}/users/{user.id}/{suffix}"


def test_assign_supervisor(client, org, auth_headers):
    res = client.put(
        _url(org, org["c"]), json={"supervisor_id": org["a"].id}, headers=auth_headers(org["admin"])
    )
    assert res.status_code == 200
    assert res.get_json()["supervisor_id"] == org["a"].id


def test_cycle_returns_422_with_reason(client, org, auth_headers):
    res = client.put(
        _url(org, org["a"]), json={"supervisor_id": org["c"].id}, headers=auth_headers(org["admin"])
    )
    assert res.status_code == 422
    body = res.get_json()
    assert body["code"] == "ERR_SUPERVISOR_ASSIGNMENT"
    assert body["details"]["reason"] == "cycle-detected"

    db.session.expire_all()
    membership = UserCompany.query.filter_by(user_id=org["a"].id, company_id=org["company"].id).one()
    assert membership.supervisor_id is None


def test_self_assignment_returns_422(client, org, auth_headers):
    res = client.put(
        _url(org, org["a"]), json={"supervisor_id": org["a"].id}, headers=auth_headers(org["admin"])
    )
    assert res.status_code == 422
    assert res.get_json()["details"]["reason"] == "self-assignment"


def test_clear_supervisor_with_null(client, org, auth_headers):
    res = client.put(_url(org, org["c"]), json={"supervisor_id": None}, headers=auth_headers(org["admin"]))
    assert res.status_code == 200
    assert res.get_json()["supervisor_id"] is None


def test_supervisor_id_required(client, org, auth_headers):
    res = client.put(_url(org, org["c"]), json={}, headers=auth_headers(org["admin"]))
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


def test_malformed_supervisor_id(client, org, auth_headers):
    res = client.put(_url(org, org["c"]), json={"supervisor_id": "boss"}, headers=auth_headers(org["admin"]))
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_non_admin_cannot_assign(client, org, auth_headers):
    res = client.put(_url(org, org["c"]), json={"supervisor_id": org["a"].id}, headers=auth_headers(org["b"]))
    assert res.status_code == 403


def test_admin_of_other_company_cannot_assign(client, org, auth_headers, make_company, make_user):
    outsider_admin = make_user(make_company("Globex"), role=Role.COMPANY_ADMIN)
    res = client.put(
        _url(org, org["c"]), json={"supervisor_id": org["a"].id}, headers=auth_headers(outsider_admin)
    )
    assert res.status_code == 403


def test_assign_role(client, org, auth_headers):
    res = client.put(
        _url(org, org["c"], "role"), json={"role": "company_admin"}, headers=auth_headers(org["admin"])
    )
    assert res.status_code == 200
    assert res.get_json()["role"] == "company_admin"


def test_assign_superadmin_role_rejected(client, org, auth_headers):
    res = client.put(
        _url(org, org["c"], "role"), json={"role": "superadmin"}, headers=auth_headers(org["admin"])
    )
    assert res.status_code == 422


def test_list_members(client, org, auth_headers):
    res = client.get(f"/api/v1/companies/{org['company'].id}/members", headers=auth_headers(org["admin"]))
    assert res.status_code == 200
    body = res.get_json()
    assert body["total"] == 4
    by_name = {m["user"]["full_name"]: m for m in body["items"]}
    assert by_name["C"]["supervisor_id"] == org["b"].id


def test_list_members_requires_admin(client, org, auth_headers):
    res = client.get(f"/api/v1/companies/{org['company'].id}/members", headers=auth_headers(org["c"]))
    assert res.status_code == 403
