"""
Object Hierarchy Resolver — (owner, company, governing month) for any object.

Only the roots of the planning tree store governing attributes:

    Objective      user_id, company_id, month
    Person         user_id, company_id              (no governing month)
    MonthPlanning  user_id, month                   (user-scoped, no company)

Children resolve through their ancestors with a single joined SELECT:

    SubTask  → Objective
    Activity → SubTask → Objective
    Meeting  → Objective

A missing link anywhere in the chain returns None, which every caller
treats as NotFound (deny).
"""

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import null, select

from planner.models import db
from planner.models.planning import (
    Activity,
    Meeting,
    MonthPlanning,
    Objective,
    Person,
    SubTask,
)
from planner.utils.helpers import parse_int_id

logger = logging.getLogger(__name__)


class ObjectKind(str, enum.Enum):
    OBJECTIVE = "objective"
    SUBTASK = "subtask"
    ACTIVITY = "activity"
    MEETING = "meeting"
    PERSON = "person"
    MONTH_PLANNING = "month_planning"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown object kind: {value!r}") from None


@dataclass(frozen=True)
class Ownership:
    owner_id: int
    company_id: int | None
    governing_month: str | None
    # True for rows that belong to a user rather than to a company
    user_scoped: bool = False


def _statement(kind: ObjectKind, object_id: int):
    if kind is ObjectKind.OBJECTIVE:
        return select(Objective.user_id, Objective.company_id, Objective.month).where(
            Objective.id == object_id
        )
    if kind is ObjectKind.SUBTASK:
        return (
            select(Objective.user_id, Objective.company_id, Objective.month)
            .join(SubTask, SubTask.objective_id == Objective.id)
            .where(SubTask.id == object_id)
        )
    if kind is ObjectKind.ACTIVITY:
        return (
            select(Objective.user_id, Objective.company_id, Objective.month)
            .join(SubTask, SubTask.objective_id == Objective.id)
            .join(Activity, Activity.subtask_id == SubTask.id)
            .where(Activity.id == object_id)
        )
    if kind is ObjectKind.MEETING:
        return (
            select(Objective.user_id, Objective.company_id, Objective.month)
            .join(Meeting, Meeting.objective_id == Objective.id)
            .where(Meeting.id == object_id)
        )
    if kind is ObjectKind.PERSON:
        return select(Person.user_id, Person.company_id, null()).where(Person.id == object_id)
    if kind is ObjectKind.MONTH_PLANNING:
        return select(MonthPlanning.user_id, null(), MonthPlanning.month).where(
            MonthPlanning.id == object_id
        )
    raise ValueError(f"Unsupported object kind: {kind!r}")


def resolve_ownership(kind, object_id) -> Ownership | None:
    """Return the governing attributes of an object, or None when it does not exist.

    Raises ValueError for an unknown kind or a malformed id.
    """
    kind = ObjectKind.parse(kind)
    object_id = parse_int_id(object_id, label=f"{kind.value} id")

    row = db.session.execute(_statement(kind, object_id)).first()
    if row is None:
        logger.debug("Ownership lookup miss: %s/%s", kind.value, object_id)
        return None

    owner_id, company_id, month = row
    return Ownership(
        owner_id=owner_id,
        company_id=company_id,
        governing_month=month,
        user_scoped=kind is ObjectKind.MONTH_PLANNING,
    )
