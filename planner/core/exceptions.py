"""
Planner exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

The access engine itself never raises for a deny outcome. It returns a
decision, and the service layer translates that decision into one of the
exceptions below.

Usage:
    from planner.core.exceptions import NotFoundError, MonthFrozenError

    raise NotFoundError(resource="Objective", resource_id=42)
    raise MonthFrozenError("2025-11")
"""


class NotFoundError(Exception):
    """Raised when a requested object does not exist within the actor's scope.

    Used for BOTH genuinely missing records AND denied reads. A 403 would
    confirm the object exists; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Objective", "Activity").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        company_id: Optional scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        company_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.company_id = company_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if company_id is not None:
            msg += f" (company={company_id})"
        super().__init__(msg)


class ForbiddenError(Exception):
    """Raised when ownership, role or company scope denies a mutation. Maps to 403."""

    def __init__(self, message: str = "You do not have permission to perform this action") -> None:
        super().__init__(message)


class MonthFrozenError(Exception):
    """The governing month is in the past; the period is permanently read-only."""

    def __init__(self, month: str) -> None:
        self.month = month
        super().__init__(f"Month {month} is closed and read-only")


class MonthLockedError(Exception):
    """The governing month is in the future and has not been opened by its owner."""

    def __init__(self, month: str) -> None:
        self.month = month
        super().__init__(f"Month {month} has not been opened for planning")


class SequenceGapError(Exception):
    """Opening a future month requires every intermediate month to be open first.

    Args:
        month: The month the caller tried to open.
        missing_month: The first prerequisite month that is still locked.
    """

    def __init__(self, month: str, missing_month: str) -> None:
        self.month = month
        self.missing_month = missing_month
        super().__init__(f"Cannot open {month}: open {missing_month} first")


class SupervisorAssignmentError(Exception):
    """Base for rejected supervisor assignments. Maps to 422 with a ``reason``."""

    reason = "invalid-assignment"


class SelfAssignmentError(SupervisorAssignmentError):
    reason = "self-assignment"

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} cannot supervise themselves")


class CycleDetectedError(SupervisorAssignmentError):
    reason = "cycle-detected"

    def __init__(self, subordinate_id: int, supervisor_id: int) -> None:
        self.subordinate_id = subordinate_id
        self.supervisor_id = supervisor_id
        super().__init__(
            f"Assigning {supervisor_id} as supervisor of {subordinate_id} would create a cycle"
        )


class ValidationError(Exception):
    """Input was well-formed but violated a business rule. Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)

