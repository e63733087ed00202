"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    Booking,
    BookingStatus,
    ExceptionType,
    ScheduleException,
    Scope,
    Slot,
    StaffMember,
    TimeRange,
    UnavailableReason,
    WorkingHourRule,
    WorkingHoursSource,
)
from .slot_generator import SlotGenerator
from .working_window import DaySchedule, WorkingWindow, resolve_working_window

__all__ = [
    "Booking",
    "BookingStatus",
    "DaySchedule",
    "ExceptionType",
    "ScheduleException",
    "Scope",
    "Slot",
    "SlotGenerator",
    "StaffMember",
    "TimeRange",
    "UnavailableReason",
    "WorkingHourRule",
    "WorkingHoursSource",
    "WorkingWindow",
    "resolve_working_window",
]
