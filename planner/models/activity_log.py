"""
Goal Planner
Activity log model.

Models:
    - ActivityLog: append-only feed of user-visible events
      (objective created, month opened, feedback given, ...).
"""

import json
from datetime import datetime, timezone

from planner.models import db


# ── Constants ────────────────────────────────────────────────────────────────

ACTIVITY_ENTITY_TYPES = {
    "objective", "subtask", "activity", "meeting", "person",
    "month", "month_planning", "feedback", "membership",
}

ACTIVITY_ACTIONS = {
    "create",
    "update",
    "delete",
    "objective.confirm",
    "month.open",
    "month_planning.confirm",
    "month_planning.unconfirm",
    "feedback.give",
    "membership.assign_role",
    "membership.assign_supervisor",
}


class ActivityLog(db.Model):
    """One row per user-visible event. Rows are never updated."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_entity", "entity_type", "entity_id"),
        db.Index("idx_activity_user", "user_id"),
        db.Index("idx_activity_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer,
        db.ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Actor that performed the action",
    )
    entity_type = db.Column(db.String(30), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False)
    action = db.Column(db.String(60), nullable=False)
    details_json = db.Column(db.Text, default="{}")
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def details(self) -> dict:
        try:
            return json.loads(self.details_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "details": self.details,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


def write_activity(
    *,
    entity_type: str,
    entity_id,
    action: str,
    user_id: int | None = None,
    company_id: int | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.
    """
    if company_id is None:
        from flask import g, has_request_context
        if has_request_context():
            ctx = getattr(g, "company_context", None)
            company_id = getattr(ctx, "company_id", None)

    entry = ActivityLog(
        company_id=company_id,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        details_json=json.dumps(details or {}, default=str),
    )
    db.session.add(entry)
    db.session.flush()
    return entry
