"""
Effective working window for one day.

The window is resolved by an ordered pipeline of override steps applied to a
mutable ``WorkingWindow``. Later steps take precedence:

1. base weekly rule (staff rule when present, else the salon rule)
2. salon CUSTOM_HOURS exception
3. staff CUSTOM_HOURS exception
4. salon DAY_OFF / SICK_LEAVE exception
5. staff DAY_OFF / SICK_LEAVE exception
6. fail-closed default when nothing configured the day

Each step is a plain function so it can be exercised on its own.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Sequence

from .models import (
    Booking,
    ExceptionType,
    ScheduleException,
    WorkingHourRule,
    WorkingHoursSource,
)
from .time_utils import minutes_of_day


@dataclass(frozen=True)
class DaySchedule:
    """All schedule inputs for one requested local date."""
    day: date
    timezone: str
    staff_id: Optional[str] = None
    salon_rule: Optional[WorkingHourRule] = None
    staff_rule: Optional[WorkingHourRule] = None
    salon_exceptions: Sequence[ScheduleException] = ()
    staff_exceptions: Sequence[ScheduleException] = ()
    bookings: Sequence[Booking] = ()

    @property
    def base_rule(self) -> Optional[WorkingHourRule]:
        if self.staff_id and self.staff_rule is not None:
            return self.staff_rule
        return self.salon_rule

    @property
    def source(self) -> WorkingHoursSource:
        if self.staff_id and self.staff_rule is not None:
            return WorkingHoursSource.STAFF
        return WorkingHoursSource.SALON


@dataclass
class WorkingWindow:
    """Mutable working-window value threaded through the override steps."""
    source: WorkingHoursSource = WorkingHoursSource.SALON
    has_template: bool = False
    start_minutes: int = 0
    end_minutes: int = 0
    is_working_day: bool = False
    salon_closed: bool = False
    staff_closed: bool = False
    applied: List[str] = field(default_factory=list)

    @property
    def is_configured(self) -> bool:
        return self.has_template and self.is_working_day and self.end_minutes > self.start_minutes

    def contains(self, start_minutes: int, end_minutes: int) -> bool:
        """Check ``[start, end)`` lies fully inside the configured window."""
        return (
            self.is_configured
            and start_minutes >= self.start_minutes
            and end_minutes <= self.end_minutes
        )


def _first_of_type(exceptions: Sequence[ScheduleException], *types: ExceptionType) -> Optional[ScheduleException]:
    for exception in exceptions:
        if exception.type in types:
            return exception
    return None


def apply_base_rule(window: WorkingWindow, schedule: DaySchedule) -> None:
    """Seed the window from the weekly rule that governs this day."""
    window.source = schedule.source
    rule = schedule.base_rule
    if rule is None:
        return

    window.has_template = True
    window.start_minutes = rule.start_minutes
    window.end_minutes = rule.end_minutes
    window.is_working_day = rule.is_working_day
    window.applied.append(f"{window.source.value}_rule")

    if not rule.is_working_day:
        if window.source is WorkingHoursSource.STAFF:
            window.staff_closed = True
        else:
            window.salon_closed = True


def _apply_custom_hours(window: WorkingWindow, exception: Optional[ScheduleException], *, staff_scope: bool) -> None:
    if exception is None:
        return

    if exception.custom_start_time:
        window.start_minutes = minutes_of_day(exception.custom_start_time)
        window.has_template = True
    if exception.custom_end_time:
        window.end_minutes = minutes_of_day(exception.custom_end_time)
        window.has_template = True

    if exception.is_working_day is not None:
        window.is_working_day = exception.is_working_day
        if staff_scope:
            window.staff_closed = not exception.is_working_day
        else:
            window.salon_closed = not exception.is_working_day

    window.applied.append(f"{'staff' if staff_scope else 'salon'}_custom_hours")


def apply_salon_custom_hours(window: WorkingWindow, schedule: DaySchedule) -> None:
    _apply_custom_hours(
        window,
        _first_of_type(schedule.salon_exceptions, ExceptionType.CUSTOM_HOURS),
        staff_scope=False,
    )


def apply_staff_custom_hours(window: WorkingWindow, schedule: DaySchedule) -> None:
    if not schedule.staff_id:
        return
    _apply_custom_hours(
        window,
        _first_of_type(schedule.staff_exceptions, ExceptionType.CUSTOM_HOURS),
        staff_scope=True,
    )


def apply_salon_closure(window: WorkingWindow, schedule: DaySchedule) -> None:
    if _first_of_type(schedule.salon_exceptions, ExceptionType.DAY_OFF, ExceptionType.SICK_LEAVE):
        window.salon_closed = True
        window.applied.append("salon_closure")


def apply_staff_closure(window: WorkingWindow, schedule: DaySchedule) -> None:
    if not schedule.staff_id:
        return
    if _first_of_type(schedule.staff_exceptions, ExceptionType.DAY_OFF, ExceptionType.SICK_LEAVE):
        window.staff_closed = True
        window.applied.append("staff_closure")


def apply_fail_closed_default(window: WorkingWindow, schedule: DaySchedule) -> None:
    """Absence of configuration never means open all day."""
    if not window.is_configured and not window.salon_closed and not window.staff_closed:
        window.salon_closed = True


OverrideStep = Callable[[WorkingWindow, DaySchedule], None]

OVERRIDE_PIPELINE: Sequence[OverrideStep] = (
    apply_base_rule,
    apply_salon_custom_hours,
    apply_staff_custom_hours,
    apply_salon_closure,
    apply_staff_closure,
    apply_fail_closed_default,
)


def resolve_working_window(
    schedule: DaySchedule,
    steps: Sequence[OverrideStep] = OVERRIDE_PIPELINE,
) -> WorkingWindow:
    """Run the override pipeline over a fresh window."""
    window = WorkingWindow()
    for step in steps:
        step(window, schedule)
    return window
