"""
Feedback service — one supervisor annotation per target, upserted.

Targets are objectives and month plannings. Whoever can read the target can
read its feedback; only ``can_give_feedback`` actors may write it.
The author, a company admin or a super-admin may delete it. Feedback goes
away with its target (``purge_feedback``) so a reused target id never
inherits another owner's annotation.
"""

import logging

from planner.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from planner.models import db
from planner.models.planning import FEEDBACK_TARGET_TYPES, Feedback
from planner.services.access import (
    can_access_feedback,
    can_delete_feedback,
    can_give_feedback,
    feedback_target_kind,
    require_access,
)
from planner.services.activity_log import log_activity
from planner.services.company_context import CompanyContext

logger = logging.getLogger(__name__)


def _check_target_type(target_type):
    if target_type not in FEEDBACK_TARGET_TYPES:
        raise ValidationError(
            "target_type must be objective or month_planning",
            details={"target_type": target_type},
        )


def get_feedback(context: CompanyContext, target_type: str, target_id: int) -> Feedback | None:
    _check_target_type(target_type)
    require_access(feedback_target_kind(target_type), target_id, context)
    return Feedback.query.filter_by(target_type=target_type, target_id=target_id).first()


def upsert_feedback(
    context: CompanyContext,
    target_type: str,
    target_id: int,
    comment: str,
    rating: int | None = None,
) -> tuple[Feedback, bool]:
    """Create or replace the feedback on a target. Returns ``(feedback, created)``."""
    _check_target_type(target_type)
    require_access(feedback_target_kind(target_type), target_id, context)
    if not can_give_feedback(target_type, target_id, context.user_id, None, context):
        raise ForbiddenError("Only the owner's supervisor or an admin can give feedback")

    comment = (comment or "").strip()
    if not comment:
        raise ValidationError("comment is required", details={"comment": "required"})
    if rating is not None and (
        not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5
    ):
        raise ValidationError("rating must be 1-5", details={"rating": rating})

    feedback = Feedback.query.filter_by(target_type=target_type, target_id=target_id).first()
    created = feedback is None
    if created:
        feedback = Feedback(target_type=target_type, target_id=target_id)
        db.session.add(feedback)
    feedback.author_id = context.user_id
    feedback.comment = comment
    feedback.rating = rating
    db.session.flush()

    logger.info(
        "Feedback %s on %s/%s by user %s",
        "created" if created else "updated", target_type, target_id, context.user_id,
    )
    log_activity(
        entity_type="feedback", entity_id=feedback.id, action="feedback.give",
        user_id=context.user_id, company_id=context.company_id,
        details={"target_type": target_type, "target_id": target_id},
    )
    return feedback, created


def get_feedback_by_id(context: CompanyContext, feedback_id: int) -> Feedback:
    if not can_access_feedback(feedback_id, context.user_id, None, context):
        raise NotFoundError(resource="Feedback", resource_id=feedback_id)
    return db.session.get(Feedback, feedback_id)


def delete_feedback(context: CompanyContext, feedback_id: int) -> None:
    if not can_access_feedback(feedback_id, context.user_id, None, context):
        raise NotFoundError(resource="Feedback", resource_id=feedback_id)
    if not can_delete_feedback(feedback_id, context.user_id, None, context):
        raise ForbiddenError("Only the author or an admin can delete this feedback")

    feedback = db.session.get(Feedback, feedback_id)
    target_type, target_id = feedback.target_type, feedback.target_id
    db.session.delete(feedback)
    db.session.flush()
    logger.info("Feedback %s deleted by user %s", feedback_id, context.user_id)
    log_activity(
        entity_type="feedback", entity_id=feedback_id, action="delete",
        user_id=context.user_id, company_id=context.company_id,
        details={"target_type": target_type, "target_id": target_id},
    )


def purge_feedback(target_type: str, target_id: int) -> int:
    """Remove feedback attached to a target that is being deleted."""
    _check_target_type(target_type)
    removed = (
        Feedback.query.filter_by(target_type=target_type, target_id=target_id)
        .delete()
    )
    if removed:
        logger.info("Purged %d feedback row(s) on %s/%s", removed, target_type, target_id)
    return removed
