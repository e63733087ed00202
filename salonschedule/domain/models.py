"""
Domain models for working hours, schedule exceptions, bookings and slots.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from pendulum import DateTime

from .time_utils import format_utc_iso, intervals_overlap, minutes_of_day

SLOT_INTERVAL_MINUTES = 15
MIN_SERVICE_DURATION_MINUTES = 15
MAX_SERVICE_DURATION_MINUTES = 480
MAX_BUFFER_MINUTES = 60
MAX_REASON_LENGTH = 255


class Scope(str, Enum):
    SALON = "SALON"
    STAFF = "STAFF"


class ExceptionType(str, Enum):
    DAY_OFF = "DAY_OFF"
    SICK_LEAVE = "SICK_LEAVE"
    CUSTOM_HOURS = "CUSTOM_HOURS"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class UnavailableReason(str, Enum):
    APPOINTMENT_CONFLICT = "APPOINTMENT_CONFLICT"
    SALON_CLOSED = "SALON_CLOSED"
    STAFF_OFF = "STAFF_OFF"
    OUTSIDE_WORKING_HOURS = "OUTSIDE_WORKING_HOURS"


class WorkingHoursSource(str, Enum):
    SALON = "salon"
    STAFF = "staff"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (touching ends do not count)."""
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def widen(self, minutes: int) -> "TimeRange":
        """Return the range extended by ``minutes`` on both ends."""
        if minutes == 0:
            return self
        padding = timedelta(minutes=minutes)
        return TimeRange(start=self.start - padding, end=self.end + padding)


@dataclass(frozen=True)
class WorkingHourRule:
    """
    Default weekly working hours of a salon or of one staff member.

    ``day_of_week`` uses 0 = Sunday ... 6 = Saturday.
    """
    scope: Scope
    day_of_week: int
    start_time: str
    end_time: str
    is_working_day: bool = True
    staff_id: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")
        if self.scope == Scope.STAFF and not self.staff_id:
            raise ValueError("Staff working hours require a staff_id")
        if self.scope == Scope.SALON and self.staff_id:
            raise ValueError("Salon working hours cannot carry a staff_id")
        # Parses both clocks, rejecting malformed values even on days off.
        start, end = self.start_minutes, self.end_minutes
        if self.is_working_day and start >= end:
            raise ValueError(
                f"Invalid time range for day {self.day_of_week}: startTime must be before endTime"
            )

    @property
    def start_minutes(self) -> int:
        return minutes_of_day(self.start_time)

    @property
    def end_minutes(self) -> int:
        return minutes_of_day(self.end_time)


@dataclass(frozen=True)
class ScheduleException:
    """
    Date-ranged override layered on top of the weekly working hours.

    ``staff_id`` of None makes the exception salon-wide. The date range is
    inclusive and expressed in UTC calendar days.
    """
    id: str
    start_date: date
    end_date: date
    type: ExceptionType
    staff_id: Optional[str] = None
    custom_start_time: Optional[str] = None
    custom_end_time: Optional[str] = None
    is_working_day: Optional[bool] = None
    reason: Optional[str] = None

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError("Start date must be before or equal to end date")
        if self.type == ExceptionType.CUSTOM_HOURS:
            if not self.custom_start_time or not self.custom_end_time:
                raise ValueError("CUSTOM_HOURS type requires customStartTime and customEndTime")
            if minutes_of_day(self.custom_start_time) >= minutes_of_day(self.custom_end_time):
                raise ValueError("Custom start time must be before custom end time")

    @property
    def scope(self) -> Scope:
        return Scope.SALON if self.staff_id is None else Scope.STAFF

    @property
    def closes_day(self) -> bool:
        """DAY_OFF and SICK_LEAVE close the whole day for their scope."""
        return self.type in (ExceptionType.DAY_OFF, ExceptionType.SICK_LEAVE)

    def covers(self, day: date) -> bool:
        """Check whether the inclusive range contains ``day``."""
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class Booking:
    """Occupancy read from the appointment ledger."""
    id: str
    start_at: DateTime
    end_at: DateTime
    staff_id: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED

    @property
    def blocks_time(self) -> bool:
        return self.status not in (BookingStatus.CANCELLED, BookingStatus.NO_SHOW)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_at, end=self.end_at)


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Slot:
    """A scan step annotated with its availability."""
    start_local: str
    end_local: str
    start_utc: DateTime
    end_utc: DateTime
    available: bool
    unavailable_reason: Optional[UnavailableReason] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the wire field names; the reason is omitted when available."""
        payload: Dict[str, Any] = {
            "startLocal": self.start_local,
            "endLocal": self.end_local,
            "startUtc": format_utc_iso(self.start_utc),
            "endUtc": format_utc_iso(self.end_utc),
            "available": self.available,
        }
        if self.unavailable_reason is not None:
            payload["unavailableReason"] = self.unavailable_reason.value
        return payload
