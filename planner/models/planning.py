"""
Goal Planner
Planning domain models.

Models:
    - Objective:      monthly objective owned by one user in one company (root)
    - SubTask:        unit of work under an objective
    - Activity:       daily / weekly activity under a sub-task
    - Meeting:        key meeting attached to an objective
    - Person:         key person owned by a user in a company (root, timeless)
    - objective_people: link between an objective and the key people it involves
    - OpenMonth:      future month unlocked for planning by a user
    - MonthPlanning:  per-user monthly planning record (confirmation state)
    - Feedback:       supervisor annotation on an objective or month planning

Architecture:
    Company ──1:N──▶ Objective ──1:N──▶ SubTask ──1:N──▶ Activity
                     Objective ──1:N──▶ Meeting
    Company ──1:N──▶ Person ◀──N:M──▶ Objective  (objective_people)
    User    ──1:N──▶ OpenMonth / MonthPlanning

Owner, company and month live on the root rows only. Children are resolved
through their ancestors by ``planner.services.ownership``.

Lifecycle states:
    Objective:  draft → confirmed → in_progress → completed
    SubTask:    pending → in_progress → completed
"""

import re
from datetime import datetime, timezone

from planner.models import db
from planner.models.base import CompanyModel


# ── Constants ────────────────────────────────────────────────────────────────

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

OBJECTIVE_STATUSES = {"draft", "confirmed", "in_progress", "completed"}
SUBTASK_STATUSES = {"pending", "in_progress", "completed"}
ACTIVITY_KINDS = {"daily", "weekly"}

FEEDBACK_TARGET_OBJECTIVE = "objective"
FEEDBACK_TARGET_MONTH_PLANNING = "month_planning"
FEEDBACK_TARGET_TYPES = {FEEDBACK_TARGET_OBJECTIVE, FEEDBACK_TARGET_MONTH_PLANNING}

OBJECTIVE_TRANSITIONS = {
    "draft":       ["confirmed"],
    "confirmed":   ["draft", "in_progress"],
    "in_progress": ["completed"],
    "completed":   ["in_progress"],
}


def validate_objective_transition(current: str, target: str) -> bool:
    return target in OBJECTIVE_TRANSITIONS.get(current, [])


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


objective_people = db.Table(
    "objective_people",
    db.Column(
        "objective_id", db.Integer,
        db.ForeignKey("objectives.id", ondelete="CASCADE"), primary_key=True,
    ),
    db.Column(
        "person_id", db.Integer,
        db.ForeignKey("people.id", ondelete="CASCADE"), primary_key=True,
    ),
)


# ═════════════════════════════════════════════════════════════════════════════
# 1. Objective
# ═════════════════════════════════════════════════════════════════════════════


class Objective(CompanyModel):
    """Monthly objective. The only row in its subtree that stores owner and month."""

    __tablename__ = "objectives"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    month = db.Column(db.String(7), nullable=False, comment="YYYY-MM governing month")
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default="draft")
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.Index("ix_objectives_user_month", "user_id", "month"),
    )

    subtasks = db.relationship(
        "SubTask", back_populates="objective", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    meetings = db.relationship(
        "Meeting", back_populates="objective", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    people = db.relationship(
        "Person", secondary=objective_people, back_populates="objectives", lazy="dynamic",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "month": self.month,
            "title": self.title,
            "description": self.description or "",
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Objective {self.id}: {self.month} user={self.user_id}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. SubTask
# ═════════════════════════════════════════════════════════════════════════════


class SubTask(db.Model):
    __tablename__ = "subtasks"

    id = db.Column(db.Integer, primary_key=True)
    objective_id = db.Column(
        db.Integer, db.ForeignKey("objectives.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description = db.Column(db.String(500), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    progress = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=_utcnow)

    objective = db.relationship("Objective", back_populates="subtasks")
    activities = db.relationship(
        "Activity", back_populates="subtask", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "objective_id": self.objective_id,
            "description": self.description,
            "status": self.status,
            "progress": self.progress,
            "created_at": _iso(self.created_at),
        }


# ═════════════════════════════════════════════════════════════════════════════
# 3. Activity
# ═════════════════════════════════════════════════════════════════════════════


class Activity(db.Model):
    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    subtask_id = db.Column(
        db.Integer, db.ForeignKey("subtasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(300), nullable=False)
    kind = db.Column(db.String(10), nullable=False, default="daily")
    date = db.Column(db.Date, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime, default=_utcnow)

    subtask = db.relationship("SubTask", back_populates="activities")

    def to_dict(self):
        return {
            "id": self.id,
            "subtask_id": self.subtask_id,
            "title": self.title,
            "kind": self.kind,
            "date": _iso(self.date),
            "completed": self.completed,
            "notes": self.notes or "",
        }


# ═════════════════════════════════════════════════════════════════════════════
# 4. Meeting
# ═════════════════════════════════════════════════════════════════════════════


class Meeting(db.Model):
    __tablename__ = "meetings"

    id = db.Column(db.Integer, primary_key=True)
    objective_id = db.Column(
        db.Integer, db.ForeignKey("objectives.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(300), nullable=False)
    date = db.Column(db.DateTime, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    outcome = db.Column(db.Text, default="")

    objective = db.relationship("Objective", back_populates="meetings")

    def to_dict(self):
        return {
            "id": self.id,
            "objective_id": self.objective_id,
            "title": self.title,
            "date": _iso(self.date),
            "completed": self.completed,
            "outcome": self.outcome or "",
        }


# ═════════════════════════════════════════════════════════════════════════════
# 5. Person
# ═════════════════════════════════════════════════════════════════════════════


class Person(CompanyModel):
    """Key person. Root object without a governing month."""

    __tablename__ = "people"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(100))
    contact = db.Column(db.String(200))

    objectives = db.relationship(
        "Objective", secondary=objective_people, back_populates="people", lazy="dynamic",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "contact": self.contact,
        }


# ═════════════════════════════════════════════════════════════════════════════
# 6. OpenMonth
# ═════════════════════════════════════════════════════════════════════════════


class OpenMonth(db.Model):
    """Future month unlocked by a user. Append-only: never updated or deleted."""

    __tablename__ = "open_months"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    month = db.Column(db.String(7), nullable=False)
    opened_at = db.Column(db.DateTime, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("user_id", "month", name="uq_open_month_user_month"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "month": self.month,
            "opened_at": _iso(self.opened_at),
        }


# ═════════════════════════════════════════════════════════════════════════════
# 7. MonthPlanning
# ═════════════════════════════════════════════════════════════════════════════


class MonthPlanning(db.Model):
    __tablename__ = "month_plannings"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    month = db.Column(db.String(7), nullable=False)
    is_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    confirmed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("user_id", "month", name="uq_month_planning_user_month"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "month": self.month,
            "is_confirmed": self.is_confirmed,
            "confirmed_at": _iso(self.confirmed_at),
        }


# ═════════════════════════════════════════════════════════════════════════════
# 8. Feedback
# ═════════════════════════════════════════════════════════════════════════════


class Feedback(db.Model):
    """Supervisor annotation. Visibility follows the target's owner, not the author."""

    __tablename__ = "feedback"

    id = db.Column(db.Integer, primary_key=True)
    target_type = db.Column(db.String(20), nullable=False)
    target_id = db.Column(db.Integer, nullable=False)
    author_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    comment = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("target_type", "target_id", name="uq_feedback_target"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "author_id": self.author_id,
            "comment": self.comment,
            "rating": self.rating,
            "updated_at": _iso(self.updated_at),
        }
