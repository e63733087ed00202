"""
Input schemas using Pydantic.

These models validate everything that enters the application from outside:
availability query parameters, schedule management payloads and the records
of a schedule data file. Wire names are camelCase; snake_case is accepted too.
"""

from datetime import date, datetime
from typing import Any, List, Optional

import pendulum
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .domain.exceptions import FieldError, ValidationError
from .domain.models import (
    MAX_BUFFER_MINUTES,
    MAX_REASON_LENGTH,
    MAX_SERVICE_DURATION_MINUTES,
    MIN_SERVICE_DURATION_MINUTES,
    Booking,
    BookingStatus,
    ExceptionType,
    ScheduleException,
    Scope,
    StaffMember,
    WorkingHourRule,
)
from .domain.time_utils import TIME_FORMAT_PATTERN, ensure_timezone, minutes_of_day

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def translate_validation_error(exc: PydanticValidationError, message: str) -> ValidationError:
    """
    Convert a pydantic error into the application's field-level ValidationError.

    Field names are reported in camelCase. pydantic uses the alias for input
    it received but the Python name for defaults it validated itself.
    """
    errors = [
        FieldError(
            field=".".join(_wire_name(part) for part in error["loc"]) or "body",
            message=error["msg"],
        )
        for error in exc.errors()
    ]
    return ValidationError(message, errors)


def _wire_name(part: Any) -> str:
    if isinstance(part, str) and "_" in part:
        return to_camel(part)
    return str(part)


def _coerce_utc_date(value: Any) -> Any:
    """Reduce ISO dates, ISO datetimes and datetime objects to a UTC calendar date."""
    if isinstance(value, datetime):
        return pendulum.instance(value).in_timezone("UTC").date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value)
        except ValueError as exc:
            raise ValueError(f"Invalid date: {value!r}") from exc
        if isinstance(parsed, datetime):
            return pendulum.instance(parsed).in_timezone("UTC").date()
        return parsed
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AvailableSlotsQuery(_CamelModel):
    """Query parameters of the available-slots request."""
    day: str = Field(alias="date", pattern=DATE_PATTERN)
    staff_id: Optional[str] = None
    service_duration_minutes: int = Field(
        ge=MIN_SERVICE_DURATION_MINUTES, le=MAX_SERVICE_DURATION_MINUTES
    )
    buffer_minutes: int = Field(default=0, ge=0, le=MAX_BUFFER_MINUTES)
    tenant_id: Optional[str] = None

    @field_validator("day")
    @classmethod
    def validate_calendar_date(cls, value: str) -> str:
        """Reject strings shaped like a date that name no real day (e.g. 2025-02-30)."""
        date.fromisoformat(value)
        return value

    @field_validator("staff_id", "tenant_id", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def requested_date(self) -> date:
        return date.fromisoformat(self.day)

    @classmethod
    def parse_query(cls, query: Any) -> "AvailableSlotsQuery":
        """
        Validate raw query parameters.

        Raises:
            ValidationError: listing every offending field
        """
        try:
            return cls.model_validate(dict(query))
        except PydanticValidationError as exc:
            raise translate_validation_error(exc, "Invalid query parameters") from exc


class WorkingHourInput(_CamelModel):
    """One weekday of a working-hours payload."""
    day_of_week: int = Field(ge=0, le=6)
    is_working_day: bool = True
    start_time: str = Field(pattern=TIME_FORMAT_PATTERN)
    end_time: str = Field(pattern=TIME_FORMAT_PATTERN)

    @field_validator("end_time")
    @classmethod
    def validate_range(cls, value: str, info: ValidationInfo) -> str:
        start = info.data.get("start_time")
        if start is None or not info.data.get("is_working_day", True):
            return value
        if minutes_of_day(start) >= minutes_of_day(value):
            raise ValueError("startTime must be before endTime")
        return value

    def to_rule(self, scope: Scope, staff_id: Optional[str] = None) -> WorkingHourRule:
        return WorkingHourRule(
            scope=scope,
            staff_id=staff_id,
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_working_day=self.is_working_day,
        )


def parse_working_hours(payload: Any) -> List[WorkingHourInput]:
    """
    Validate a full working-hours payload (one entry per weekday).

    Raises:
        ValidationError: If the payload is not a list, an entry is invalid,
            or a weekday appears twice
    """
    if not isinstance(payload, list):
        raise ValidationError(
            "Expected array of working hours",
            [FieldError(field="body", message="Expected array of working hours")],
        )

    entries: List[WorkingHourInput] = []
    errors: List[FieldError] = []
    for index, item in enumerate(payload):
        try:
            entries.append(WorkingHourInput.model_validate(item))
        except PydanticValidationError as exc:
            for error in translate_validation_error(exc, "").errors:
                errors.append(FieldError(field=f"{index}.{error.field}", message=error.message))

    seen: set[int] = set()
    for index, entry in enumerate(entries):
        if entry.day_of_week in seen:
            errors.append(
                FieldError(
                    field=f"{index}.dayOfWeek",
                    message=f"Duplicate working hours for day {entry.day_of_week}",
                )
            )
        seen.add(entry.day_of_week)

    if errors:
        raise ValidationError("Invalid working hours format", errors)
    return entries


class ScheduleExceptionInput(_CamelModel):
    """Payload creating a vacation, sick leave or custom-hours exception."""
    type: ExceptionType
    start_date: date
    end_date: date
    custom_start_time: Optional[str] = Field(default=None, pattern=TIME_FORMAT_PATTERN)
    custom_end_time: Optional[str] = Field(
        default=None, pattern=TIME_FORMAT_PATTERN, validate_default=True
    )
    is_working_day: Optional[bool] = None
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)
    staff_id: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any) -> Any:
        return _coerce_utc_date(value)

    @field_validator("end_date")
    @classmethod
    def validate_date_order(cls, value: date, info: ValidationInfo) -> date:
        start = info.data.get("start_date")
        if start is not None and start > value:
            raise ValueError("Start date must be before or equal to end date")
        return value

    @field_validator("custom_end_time")
    @classmethod
    def validate_custom_hours(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if info.data.get("type") != ExceptionType.CUSTOM_HOURS:
            return value
        start = info.data.get("custom_start_time")
        if not start or not value:
            raise ValueError("CUSTOM_HOURS type requires customStartTime and customEndTime")
        if minutes_of_day(start) >= minutes_of_day(value):
            raise ValueError("Custom start time must be before custom end time")
        return value

    def to_exception(self, exception_id: str, staff_id: Optional[str] = None) -> ScheduleException:
        return ScheduleException(
            id=exception_id,
            staff_id=staff_id,
            start_date=self.start_date,
            end_date=self.end_date,
            type=self.type,
            custom_start_time=self.custom_start_time,
            custom_end_time=self.custom_end_time,
            is_working_day=self.is_working_day,
            reason=self.reason,
        )


class ScheduleExceptionRecord(ScheduleExceptionInput):
    """Stored exception as it appears in a schedule data file."""
    id: str


class StaffWorkingHourRecord(WorkingHourInput):
    staff_id: str


class BookingRecord(_CamelModel):
    id: str
    start_at: datetime
    end_at: datetime
    staff_id: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED

    @field_validator("start_at", "end_at", mode="before")
    @classmethod
    def parse_instant(cls, value: Any) -> Any:
        if isinstance(value, str):
            return pendulum.parse(value)
        return value

    @field_validator("end_at")
    @classmethod
    def validate_order(cls, value: datetime, info: ValidationInfo) -> datetime:
        start = info.data.get("start_at")
        if start is not None and start >= value:
            raise ValueError("Booking must end after it starts")
        return value

    def to_booking(self) -> Booking:
        return Booking(
            id=self.id,
            staff_id=self.staff_id,
            start_at=pendulum.instance(self.start_at).in_timezone("UTC"),
            end_at=pendulum.instance(self.end_at).in_timezone("UTC"),
            status=self.status,
        )


class StaffRecord(_CamelModel):
    id: str
    name: str = ""

    def to_staff_member(self) -> StaffMember:
        return StaffMember(id=self.id, name=self.name)


class TenantRecord(_CamelModel):
    """One salon with its whole schedule configuration."""
    id: str
    timezone: str
    staff: List[StaffRecord] = Field(default_factory=list)
    working_hours: List[WorkingHourInput] = Field(default_factory=list)
    staff_working_hours: List[StaffWorkingHourRecord] = Field(default_factory=list)
    exceptions: List[ScheduleExceptionRecord] = Field(default_factory=list)
    bookings: List[BookingRecord] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return ensure_timezone(value)


class ScheduleDataFile(_CamelModel):
    tenants: List[TenantRecord] = Field(default_factory=list)
