"""
Activity log side effect.

Permitted mutations append a row to the user-visible activity feed. The
write is best-effort: it runs in a savepoint so a failure never rolls back
the primary mutation, and failures are logged, not propagated.
"""

import logging

from planner.models import db
from planner.models.activity_log import ActivityLog, write_activity

logger = logging.getLogger(__name__)


def log_activity(
    *,
    entity_type: str,
    entity_id,
    action: str,
    user_id: int | None = None,
    company_id: int | None = None,
    details: dict | None = None,
) -> ActivityLog | None:
    try:
        with db.session.begin_nested():
            return write_activity(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                user_id=user_id,
                company_id=company_id,
                details=details,
            )
    except Exception:
        logger.exception(
            "Activity log write failed: %s %s/%s", action, entity_type, entity_id
        )
        return None


def list_activity(user_id: int, limit: int = 50) -> list[ActivityLog]:
    return (
        ActivityLog.query.filter_by(user_id=user_id)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
