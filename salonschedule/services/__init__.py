"""
Service layer helpers that orchestrate repositories and domain logic.
"""

from .availability import AvailabilityRequest, AvailabilityService, DayAvailability
from .repository import ScheduleRepository, ScheduleStore
from .schedule_management import ScheduleManagementService, StaffSchedule

__all__ = [
    "AvailabilityRequest",
    "AvailabilityService",
    "DayAvailability",
    "ScheduleManagementService",
    "ScheduleRepository",
    "ScheduleStore",
    "StaffSchedule",
]
