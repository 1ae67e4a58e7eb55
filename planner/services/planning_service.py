"""
Planning service — guarded CRUD for objectives and everything below them.

Every read and mutation goes through the access engine (``require_access``)
before touching a row; creates under a parent require *modify* on the parent.
Services flush only, so the blueprint owns the transaction boundary.

Denied reads surface as NotFoundError. Denied writes surface as
ForbiddenError, MonthFrozenError or MonthLockedError.
"""

import logging

from planner.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from planner.models import db
from planner.models.auth import Role
from planner.models.planning import (
    ACTIVITY_KINDS,
    FEEDBACK_TARGET_OBJECTIVE,
    SUBTASK_STATUSES,
    Activity,
    Meeting,
    Objective,
    Person,
    SubTask,
    validate_objective_transition,
)
from planner.services.access import require_access
from planner.services.activity_log import log_activity
from planner.services.company_context import CompanyContext, apply_company_scope
from planner.services.feedback_service import purge_feedback
from planner.services.month_gate import ensure_writable, is_valid_month
from planner.services.ownership import ObjectKind
from planner.services.supervisor_chain import is_supervisor_of
from planner.utils.helpers import parse_date, parse_datetime

logger = logging.getLogger(__name__)


# ── Input helpers ────────────────────────────────────────────────────────────


def _require_text(data: dict, field: str, max_len: int) -> str:
    value = (data.get(field) or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", details={field: "required"})
    if len(value) > max_len:
        raise ValidationError(
            f"{field} must be at most {max_len} characters", details={field: "too long"}
        )
    return value


def _check_flag(data: dict, field: str) -> None:
    if field in data and not isinstance(data[field], bool):
        raise ValidationError(f"{field} must be true or false", details={field: data[field]})


def _check_str(data: dict, field: str) -> None:
    if field in data and data[field] is not None and not isinstance(data[field], str):
        raise ValidationError(f"{field} must be a string", details={field: "invalid type"})


def _require_company(context: CompanyContext) -> int:
    if context.company_id is None:
        raise ForbiddenError("Select a company before making changes")
    return context.company_id


def _apply(obj, data: dict, fields: tuple) -> list[str]:
    changed = []
    for f in fields:
        if f in data and getattr(obj, f) != data[f]:
            setattr(obj, f, data[f])
            changed.append(f)
    return changed


def _can_view_user(context: CompanyContext, user_id: int) -> bool:
    """May the actor list another user's plans in the current company?"""
    if user_id == context.user_id or context.is_super_admin:
        return True
    if context.company_id is None:
        return False
    if context.role is Role.COMPANY_ADMIN:
        return True
    return context.role is Role.SUPERVISOR and is_supervisor_of(
        context.user_id, user_id, context.company_id
    )


# ═════════════════════════════════════════════════════════════════════════════
# Objectives
# ═════════════════════════════════════════════════════════════════════════════


def list_objectives(
    context: CompanyContext, *, user_id: int | None = None, month: str | None = None
):
    """Query of objectives visible in the actor's company, newest month first."""
    target = user_id if user_id is not None else context.user_id
    if not _can_view_user(context, target):
        raise ForbiddenError("You cannot view this user's objectives")

    q = apply_company_scope(Objective.query, context, Objective.company_id)
    q = q.filter(Objective.user_id == target)
    if month:
        if not is_valid_month(month):
            raise ValidationError("month must be YYYY-MM", details={"month": "invalid"})
        q = q.filter(Objective.month == month)
    return q.order_by(Objective.month.desc(), Objective.id)


def get_objective(context: CompanyContext, objective_id: int) -> Objective:
    require_access(ObjectKind.OBJECTIVE, objective_id, context)
    return db.session.get(Objective, objective_id)


def create_objective(context: CompanyContext, data: dict) -> Objective:
    company_id = _require_company(context)
    month = data.get("month")
    if not is_valid_month(month):
        raise ValidationError("month must be YYYY-MM", details={"month": "invalid"})
    title = _require_text(data, "title", 300)
    _check_str(data, "description")
    ensure_writable(context.user_id, month)

    objective = Objective(
        user_id=context.user_id,
        company_id=company_id,
        month=month,
        title=title,
        description=data.get("description", ""),
        status="draft",
    )
    db.session.add(objective)
    db.session.flush()
    logger.info("Objective created id=%s user=%s month=%s", objective.id, context.user_id, month)
    log_activity(
        entity_type="objective", entity_id=objective.id, action="create",
        user_id=context.user_id, company_id=company_id, details={"title": title},
    )
    return objective


def update_objective(context: CompanyContext, objective_id: int, data: dict) -> Objective:
    require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    objective = db.session.get(Objective, objective_id)

    if "month" in data and data["month"] != objective.month:
        raise ValidationError("An objective cannot change month", details={"month": "immutable"})
    if "title" in data:
        data = {**data, "title": _require_text(data, "title", 300)}
    _check_str(data, "description")
    if "status" in data and data["status"] != objective.status:
        if not validate_objective_transition(objective.status, data["status"]):
            raise ValidationError(
                f"Invalid transition: {objective.status} → {data['status']}",
                details={"status": data["status"]},
            )

    changed = _apply(objective, data, ("title", "description", "status"))
    db.session.flush()
    logger.info("Objective updated id=%s fields=%s", objective.id, changed)
    log_activity(
        entity_type="objective", entity_id=objective.id, action="update",
        user_id=context.user_id, company_id=objective.company_id, details={"fields": changed},
    )
    return objective


def confirm_objective(context: CompanyContext, objective_id: int) -> Objective:
    """Move a draft objective to ``confirmed``."""
    require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    objective = db.session.get(Objective, objective_id)
    if objective.status != "draft":
        raise ValidationError(
            f"Only draft objectives can be confirmed (status={objective.status})",
            details={"status": objective.status},
        )
    objective.status = "confirmed"
    db.session.flush()
    logger.info("Objective confirmed id=%s", objective.id)
    log_activity(
        entity_type="objective", entity_id=objective.id, action="objective.confirm",
        user_id=context.user_id, company_id=objective.company_id,
    )
    return objective


def delete_objective(context: CompanyContext, objective_id: int) -> None:
    require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    objective = db.session.get(Objective, objective_id)
    company_id = objective.company_id
    purge_feedback(FEEDBACK_TARGET_OBJECTIVE, objective_id)
    db.session.delete(objective)
    db.session.flush()
    logger.info("Objective deleted id=%s", objective_id)
    log_activity(
        entity_type="objective", entity_id=objective_id, action="delete",
        user_id=context.user_id, company_id=company_id,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Sub-tasks
# ═════════════════════════════════════════════════════════════════════════════


def list_subtasks(context: CompanyContext, objective_id: int) -> list[SubTask]:
    require_access(ObjectKind.OBJECTIVE, objective_id, context)
    return SubTask.query.filter_by(objective_id=objective_id).order_by(SubTask.id).all()


def get_subtask(context: CompanyContext, subtask_id: int) -> SubTask:
    require_access(ObjectKind.SUBTASK, subtask_id, context)
    return db.session.get(SubTask, subtask_id)


def _validate_subtask(data: dict) -> None:
    if "status" in data and data["status"] not in SUBTASK_STATUSES:
        raise ValidationError("Invalid status", details={"status": data["status"]})
    if "progress" in data:
        progress = data["progress"]
        if not isinstance(progress, int) or isinstance(progress, bool) or not 0 <= progress <= 100:
            raise ValidationError("progress must be 0-100", details={"progress": progress})


def create_subtask(context: CompanyContext, objective_id: int, data: dict) -> SubTask:
    ownership = require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    description = _require_text(data, "description", 500)
    _validate_subtask(data)
    subtask = SubTask(
        objective_id=objective_id,
        description=description,
        status=data.get("status", "pending"),
        progress=data.get("progress", 0),
    )
    db.session.add(subtask)
    db.session.flush()
    logger.info("SubTask created id=%s objective=%s", subtask.id, objective_id)
    log_activity(
        entity_type="subtask", entity_id=subtask.id, action="create",
        user_id=context.user_id, company_id=ownership.company_id,
    )
    return subtask


def update_subtask(context: CompanyContext, subtask_id: int, data: dict) -> SubTask:
    ownership = require_access(ObjectKind.SUBTASK, subtask_id, context, modify=True)
    subtask = db.session.get(SubTask, subtask_id)
    if "description" in data:
        data = {**data, "description": _require_text(data, "description", 500)}
    _validate_subtask(data)
    changed = _apply(subtask, data, ("description", "status", "progress"))
    db.session.flush()
    log_activity(
        entity_type="subtask", entity_id=subtask.id, action="update",
        user_id=context.user_id, company_id=ownership.company_id, details={"fields": changed},
    )
    return subtask


def delete_subtask(context: CompanyContext, subtask_id: int) -> None:
    ownership = require_access(ObjectKind.SUBTASK, subtask_id, context, modify=True)
    db.session.delete(db.session.get(SubTask, subtask_id))
    db.session.flush()
    log_activity(
        entity_type="subtask", entity_id=subtask_id, action="delete",
        user_id=context.user_id, company_id=ownership.company_id,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Activities
# ═════════════════════════════════════════════════════════════════════════════


def list_activities(context: CompanyContext, subtask_id: int) -> list[Activity]:
    require_access(ObjectKind.SUBTASK, subtask_id, context)
    return (
        Activity.query.filter_by(subtask_id=subtask_id)
        .order_by(Activity.date, Activity.id)
        .all()
    )


def get_activity(context: CompanyContext, activity_id: int) -> Activity:
    require_access(ObjectKind.ACTIVITY, activity_id, context)
    return db.session.get(Activity, activity_id)


def _activity_fields(data: dict) -> dict:
    fields = {}
    if "kind" in data:
        if data["kind"] not in ACTIVITY_KINDS:
            raise ValidationError("kind must be daily or weekly", details={"kind": data["kind"]})
        fields["kind"] = data["kind"]
    if "date" in data:
        parsed = parse_date(data["date"])
        if data["date"] and parsed is None:
            raise ValidationError("date must be YYYY-MM-DD", details={"date": data["date"]})
        fields["date"] = parsed
    _check_flag(data, "completed")
    _check_str(data, "notes")
    for f in ("completed", "notes"):
        if f in data:
            fields[f] = data[f]
    return fields


def create_activity(context: CompanyContext, subtask_id: int, data: dict) -> Activity:
    ownership = require_access(ObjectKind.SUBTASK, subtask_id, context, modify=True)
    title = _require_text(data, "title", 300)
    activity = Activity(subtask_id=subtask_id, title=title, **_activity_fields(data))
    db.session.add(activity)
    db.session.flush()
    logger.info("Activity created id=%s subtask=%s", activity.id, subtask_id)
    log_activity(
        entity_type="activity", entity_id=activity.id, action="create",
        user_id=context.user_id, company_id=ownership.company_id,
    )
    return activity


def update_activity(context: CompanyContext, activity_id: int, data: dict) -> Activity:
    ownership = require_access(ObjectKind.ACTIVITY, activity_id, context, modify=True)
    activity = db.session.get(Activity, activity_id)
    fields = _activity_fields(data)
    if "title" in data:
        fields["title"] = _require_text(data, "title", 300)
    changed = _apply(activity, fields, tuple(fields))
    db.session.flush()
    log_activity(
        entity_type="activity", entity_id=activity.id, action="update",
        user_id=context.user_id, company_id=ownership.company_id, details={"fields": changed},
    )
    return activity


def delete_activity(context: CompanyContext, activity_id: int) -> None:
    ownership = require_access(ObjectKind.ACTIVITY, activity_id, context, modify=True)
    db.session.delete(db.session.get(Activity, activity_id))
    db.session.flush()
    log_activity(
        entity_type="activity", entity_id=activity_id, action="delete",
        user_id=context.user_id, company_id=ownership.company_id,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Meetings
# ═════════════════════════════════════════════════════════════════════════════


def list_meetings(context: CompanyContext, objective_id: int) -> list[Meeting]:
    require_access(ObjectKind.OBJECTIVE, objective_id, context)
    return Meeting.query.filter_by(objective_id=objective_id).order_by(Meeting.date, Meeting.id).all()


def get_meeting(context: CompanyContext, meeting_id: int) -> Meeting:
    require_access(ObjectKind.MEETING, meeting_id, context)
    return db.session.get(Meeting, meeting_id)


def _meeting_fields(data: dict) -> dict:
    fields = {}
    if "date" in data:
        parsed = parse_datetime(data["date"])
        if data["date"] and parsed is None:
            raise ValidationError("date must be ISO 8601", details={"date": data["date"]})
        fields["date"] = parsed
    _check_flag(data, "completed")
    _check_str(data, "outcome")
    for f in ("completed", "outcome"):
        if f in data:
            fields[f] = data[f]
    return fields


def create_meeting(context: CompanyContext, objective_id: int, data: dict) -> Meeting:
    ownership = require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    title = _require_text(data, "title", 300)
    meeting = Meeting(objective_id=objective_id, title=title, **_meeting_fields(data))
    db.session.add(meeting)
    db.session.flush()
    logger.info("Meeting created id=%s objective=%s", meeting.id, objective_id)
    log_activity(
        entity_type="meeting", entity_id=meeting.id, action="create",
        user_id=context.user_id, company_id=ownership.company_id,
    )
    return meeting


def update_meeting(context: CompanyContext, meeting_id: int, data: dict) -> Meeting:
    ownership = require_access(ObjectKind.MEETING, meeting_id, context, modify=True)
    meeting = db.session.get(Meeting, meeting_id)
    fields = _meeting_fields(data)
    if "title" in data:
        fields["title"] = _require_text(data, "title", 300)
    changed = _apply(meeting, fields, tuple(fields))
    db.session.flush()
    log_activity(
        entity_type="meeting", entity_id=meeting.id, action="update",
        user_id=context.user_id, company_id=ownership.company_id, details={"fields": changed},
    )
    return meeting


def delete_meeting(context: CompanyContext, meeting_id: int) -> None:
    ownership = require_access(ObjectKind.MEETING, meeting_id, context, modify=True)
    db.session.delete(db.session.get(Meeting, meeting_id))
    db.session.flush()
    log_activity(
        entity_type="meeting", entity_id=meeting_id, action="delete",
        user_id=context.user_id, company_id=ownership.company_id,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Key people
# ═════════════════════════════════════════════════════════════════════════════


def list_people(context: CompanyContext, *, user_id: int | None = None):
    target = user_id if user_id is not None else context.user_id
    if not _can_view_user(context, target):
        raise ForbiddenError("You cannot view this user's key people")
    q = apply_company_scope(Person.query, context, Person.company_id)
    return q.filter(Person.user_id == target).order_by(Person.last_name, Person.first_name)


def get_person(context: CompanyContext, person_id: int) -> Person:
    require_access(ObjectKind.PERSON, person_id, context)
    return db.session.get(Person, person_id)


def create_person(context: CompanyContext, data: dict) -> Person:
    company_id = _require_company(context)
    for f in ("role", "contact"):
        _check_str(data, f)
    person = Person(
        user_id=context.user_id,
        company_id=company_id,
        first_name=_require_text(data, "first_name", 100),
        last_name=_require_text(data, "last_name", 100),
        role=data.get("role"),
        contact=data.get("contact"),
    )
    db.session.add(person)
    db.session.flush()
    logger.info("Person created id=%s user=%s", person.id, context.user_id)
    log_activity(
        entity_type="person", entity_id=person.id, action="create",
        user_id=context.user_id, company_id=company_id,
    )
    return person


def update_person(context: CompanyContext, person_id: int, data: dict) -> Person:
    ownership = require_access(ObjectKind.PERSON, person_id, context, modify=True)
    person = db.session.get(Person, person_id)
    for f in ("role", "contact"):
        _check_str(data, f)
    fields = {f: data[f] for f in ("role", "contact") if f in data}
    for f in ("first_name", "last_name"):
        if f in data:
            fields[f] = _require_text(data, f, 100)
    changed = _apply(person, fields, tuple(fields))
    db.session.flush()
    log_activity(
        entity_type="person", entity_id=person.id, action="update",
        user_id=context.user_id, company_id=ownership.company_id, details={"fields": changed},
    )
    return person


def delete_person(context: CompanyContext, person_id: int) -> None:
    ownership = require_access(ObjectKind.PERSON, person_id, context, modify=True)
    db.session.delete(db.session.get(Person, person_id))
    db.session.flush()
    log_activity(
        entity_type="person", entity_id=person_id, action="delete",
        user_id=context.user_id, company_id=ownership.company_id,
    )


# ── Objective ↔ key person links ─────────────────────────────────────────────


def list_objective_people(context: CompanyContext, objective_id: int) -> list[Person]:
    require_access(ObjectKind.OBJECTIVE, objective_id, context)
    objective = db.session.get(Objective, objective_id)
    return objective.people.order_by(Person.last_name, Person.first_name).all()


def link_person(context: CompanyContext, objective_id: int, person_id: int) -> tuple[Person, bool]:
    """Attach a key person to an objective. Returns ``(person, created)``.

    Both ends must be modifiable by the actor, belong to the same owner and
    live in the same company. Linking twice is a no-op.
    """
    person_owner = require_access(ObjectKind.PERSON, person_id, context, modify=True)
    objective_owner = require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    if person_owner.owner_id != objective_owner.owner_id:
        raise ValidationError(
            "The key person and the objective must belong to the same user",
            details={"person_id": person_id, "objective_id": objective_id},
        )
    if person_owner.company_id != objective_owner.company_id:
        raise ValidationError(
            "The key person and the objective must belong to the same company",
            details={"person_id": person_id, "objective_id": objective_id},
        )

    objective = db.session.get(Objective, objective_id)
    person = db.session.get(Person, person_id)
    if objective.people.filter(Person.id == person_id).first() is not None:
        return person, False

    objective.people.append(person)
    db.session.flush()
    logger.info("Person %s linked to objective %s", person_id, objective_id)
    log_activity(
        entity_type="objective", entity_id=objective_id, action="person.link",
        user_id=context.user_id, company_id=objective_owner.company_id,
        details={"person_id": person_id},
    )
    return person, True


def unlink_person(context: CompanyContext, objective_id: int, person_id: int) -> None:
    objective_owner = require_access(ObjectKind.OBJECTIVE, objective_id, context, modify=True)
    require_access(ObjectKind.PERSON, person_id, context)

    objective = db.session.get(Objective, objective_id)
    person = objective.people.filter(Person.id == person_id).first()
    if person is None:
        raise NotFoundError(resource="Objective person link", resource_id=person_id)

    objective.people.remove(person)
    db.session.flush()
    logger.info("Person %s unlinked from objective %s", person_id, objective_id)
    log_activity(
        entity_type="objective", entity_id=objective_id, action="person.unlink",
        user_id=context.user_id, company_id=objective_owner.company_id,
        details={"person_id": person_id},
    )
