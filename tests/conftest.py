"""
Shared pytest fixtures for the Goal Planner test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - frozen_month: pins the month gate's clock to 2026-01-15 (autouse)
    - client: Flask test client (function-scoped)
    - make_company / make_user / make_objective / ...: ORM factories
    - auth_headers: Bearer headers for a user
"""

from datetime import date

import pytest

from planner import create_app
from planner.models import db as _db
from planner.models.auth import Company, Role, User, UserCompany
from planner.models.planning import (
    Activity,
    Meeting,
    MonthPlanning,
    Objective,
    OpenMonth,
    Person,
    SubTask,
)
from planner.services import month_gate
from planner.services.jwt_service import generate_access_token

# "Now" for every test unless a test re-pins it
FROZEN_TODAY = date(2026, 1, 15)
CURRENT_MONTH = "2026-01"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture(autouse=True)
def frozen_month(monkeypatch):
    """Pin the calendar so month states are deterministic."""
    monkeypatch.setattr(month_gate, "_today", lambda: FROZEN_TODAY)
    return CURRENT_MONTH


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── ORM factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_company():
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        name = name or f"Company {counter['n']}"
        company = Company(name=name, slug=f"{name.lower().replace(' ', '-')}-{counter['n']}")
        _db.session.add(company)
        _db.session.commit()
        return company

    return _make


@pytest.fixture()
def make_user():
    """Create a user; with *company* also a membership and current selection."""
    counter = {"n": 0}

    def _make(company=None, role=Role.MEMBER, supervisor=None, super_admin=False, name=None):
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@example.com",
            full_name=name or f"User {counter['n']}",
            is_super_admin=super_admin,
        )
        _db.session.add(user)
        _db.session.flush()
        if company is not None:
            if not super_admin:
                _db.session.add(UserCompany(
                    user_id=user.id,
                    company_id=company.id,
                    role=Role.parse(role).value,
                    supervisor_id=supervisor.id if supervisor else None,
                ))
            user.current_company_id = company.id
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def add_membership():
    def _add(user, company, role=Role.MEMBER, supervisor=None):
        membership = UserCompany(
            user_id=user.id,
            company_id=company.id,
            role=Role.parse(role).value,
            supervisor_id=supervisor.id if supervisor else None,
        )
        _db.session.add(membership)
        _db.session.commit()
        return membership

    return _add


@pytest.fixture()
def make_objective():
    def _make(user, company, month=CURRENT_MONTH, status="draft", title="Grow revenue"):
        objective = Objective(
            user_id=user.id,
            company_id=company.id if company else None,
            month=month,
            title=title,
            status=status,
        )
        _db.session.add(objective)
        _db.session.commit()
        return objective

    return _make


@pytest.fixture()
def make_tree(make_objective):
    """Objective with one sub-task, one activity and one meeting."""

    def _make(user, company, month=CURRENT_MONTH):
        objective = make_objective(user, company, month=month)
        subtask = SubTask(objective_id=objective.id, description="Call ten prospects")
        _db.session.add(subtask)
        _db.session.flush()
        activity = Activity(subtask_id=subtask.id, title="Monday calls", kind="daily")
        meeting = Meeting(objective_id=objective.id, title="Pipeline review")
        _db.session.add_all([activity, meeting])
        _db.session.commit()
        return {"objective": objective, "subtask": subtask, "activity": activity, "meeting": meeting}

    return _make


@pytest.fixture()
def make_person():
    def _make(user, company, first_name="Ada", last_name="Lovelace"):
        person = Person(
            user_id=user.id,
            company_id=company.id if company else None,
            first_name=first_name,
            last_name=last_name,
        )
        _db.session.add(person)
        _db.session.commit()
        return person

    return _make


@pytest.fixture()
def make_planning():
    def _make(user, month=CURRENT_MONTH, confirmed=False):
        planning = MonthPlanning(user_id=user.id, month=month, is_confirmed=confirmed)
        _db.session.add(planning)
        _db.session.commit()
        return planning

    return _make


@pytest.fixture()
def open_months():
    """Insert OpenMonth rows directly, bypassing the sequence check."""

    def _open(user, *months):
        for m in months:
            _db.session.add(OpenMonth(user_id=user.id, month=m))
        _db.session.commit()

    return _open


# ── Auth helpers ─────────────────────────────────────────────────────────


@pytest.fixture()
def auth_headers():
    """Return ``{"Authorization": "Bearer ..."}`` for a user.

    Without *company_id* the token carries no company claim and the user's
    persisted selection applies.
    """

    def _headers(user, company_id=None):
        token = generate_access_token(user.id, company_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
