"""
Domain-specific exception hierarchy for the salon scheduling application.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


@dataclass(frozen=True)
class FieldError:
    """A single offending request field."""
    field: str
    message: str


class ScheduleError(Exception):
    """Base class for all application-level errors."""

    status_code = 500
    public_message = "Schedule operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(ScheduleError):
    """Raised when request parameters or schedule payloads are invalid."""

    status_code = 400
    public_message = "Invalid request"

    def __init__(self, message: str | None = None, errors: Sequence[FieldError] = ()):
        super().__init__(message)
        self.errors: List[FieldError] = list(errors)

    @property
    def fields(self) -> List[str]:
        return [error.field for error in self.errors]


class AuthenticationError(ScheduleError):
    """Raised when no tenant context can be resolved for a request."""

    status_code = 401
    public_message = "Tenant ID not found. Please login again."


class ForbiddenError(ScheduleError):
    """Raised when a record exists but does not belong to the caller's scope."""

    status_code = 403
    public_message = "Forbidden"


class NotFoundError(ScheduleError):
    """Raised when a tenant, staff member or exception does not exist."""

    status_code = 404

    def __init__(self, entity: str, identifier: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.identifier = identifier


class RepositoryError(ScheduleError):
    """Raised when schedule data cannot be read from or written to storage."""

    status_code = 500
    public_message = "Failed to fetch available slots"
