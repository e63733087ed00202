"""
Core business logic for calculating bookable time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no storage, no I/O). Every call is a function of the
``DaySchedule`` it was built from, so repeated runs yield identical slots.
"""

from datetime import timedelta
from typing import Iterator, List, Optional

from pendulum import DateTime

from .models import (
    MAX_BUFFER_MINUTES,
    MAX_SERVICE_DURATION_MINUTES,
    MIN_SERVICE_DURATION_MINUTES,
    SLOT_INTERVAL_MINUTES,
    Slot,
    TimeRange,
    UnavailableReason,
)
from .time_utils import MINUTES_IN_DAY, format_minutes, local_minutes_to_utc, to_utc
from .working_window import DaySchedule, WorkingWindow, resolve_working_window


class SlotGenerator:
    """
    Annotates every scan step of a local day with its availability.

    Algorithm:
    1. Resolve the effective working window (weekly rule, custom hours,
       closures, fail-closed default)
    2. Scan the local day from 00:00 in 15-minute steps while the candidate
       ``[start, start + duration)`` still ends by 24:00
    3. Convert each candidate boundary to UTC with the tenant's DST rules
    4. Pick the first applicable reason: SALON_CLOSED, STAFF_OFF,
       OUTSIDE_WORKING_HOURS, APPOINTMENT_CONFLICT
    5. A step with no reason is available
    """

    def __init__(
        self,
        schedule: DaySchedule,
        service_duration_minutes: int,
        buffer_minutes: int = 0,
        step_minutes: int = SLOT_INTERVAL_MINUTES,
    ):
        if not MIN_SERVICE_DURATION_MINUTES <= service_duration_minutes <= MAX_SERVICE_DURATION_MINUTES:
            raise ValueError(
                f"service_duration_minutes must be between {MIN_SERVICE_DURATION_MINUTES} "
                f"and {MAX_SERVICE_DURATION_MINUTES}, got {service_duration_minutes}"
            )
        if not 0 <= buffer_minutes <= MAX_BUFFER_MINUTES:
            raise ValueError(
                f"buffer_minutes must be between 0 and {MAX_BUFFER_MINUTES}, got {buffer_minutes}"
            )

        self.schedule = schedule
        self.service_duration_minutes = service_duration_minutes
        self.buffer_minutes = buffer_minutes
        self.step_minutes = step_minutes
        self.window: WorkingWindow = resolve_working_window(schedule)
        self._busy_ranges: List[TimeRange] = [
            booking.time_range.widen(buffer_minutes)
            for booking in sorted(schedule.bookings, key=lambda b: (b.start_at, b.end_at))
            if booking.blocks_time
        ]

    def __iter__(self) -> Iterator[Slot]:
        return self.iter_slots()

    def iter_slots(self) -> Iterator[Slot]:
        """Lazily yield one slot per scan step; each call starts a fresh scan."""
        last_start = MINUTES_IN_DAY - self.service_duration_minutes
        for start_minutes in range(0, last_start + 1, self.step_minutes):
            yield self.evaluate(start_minutes)

    def generate(self) -> List[Slot]:
        return list(self.iter_slots())

    def evaluate(self, start_minutes: int) -> Slot:
        """
        Annotate a single candidate starting ``start_minutes`` after local midnight.

        The candidate need not sit on the scan grid, which lets booking flows
        check an arbitrary start time.
        """
        end_minutes = self._end_minutes(start_minutes)
        day, timezone = self.schedule.day, self.schedule.timezone
        start_utc = local_minutes_to_utc(day, start_minutes, timezone)
        end_utc = local_minutes_to_utc(day, end_minutes, timezone)
        return self._build_slot(start_minutes, end_minutes, start_utc, end_utc)

    def evaluate_instant(self, start_at: DateTime) -> Slot:
        """
        Annotate the candidate starting at a concrete instant.

        Bookings are compared against the real ``[start, start + duration)``
        instants, so a start inside a repeated fall-back hour is checked at
        the occurrence the caller meant. Working hours are compared on the
        wall clock.
        """
        start_utc = to_utc(start_at)
        local_start = start_utc.in_timezone(self.schedule.timezone)
        if local_start.date() != self.schedule.day:
            raise ValueError("Slot must start and end within the local day")

        start_minutes = local_start.hour * 60 + local_start.minute
        end_minutes = self._end_minutes(start_minutes)
        end_utc = start_utc + timedelta(minutes=self.service_duration_minutes)
        return self._build_slot(start_minutes, end_minutes, start_utc, end_utc)

    def _end_minutes(self, start_minutes: int) -> int:
        end_minutes = start_minutes + self.service_duration_minutes
        if start_minutes < 0 or end_minutes > MINUTES_IN_DAY:
            raise ValueError("Slot must start and end within the local day")
        return end_minutes

    def _build_slot(
        self,
        start_minutes: int,
        end_minutes: int,
        start_utc: DateTime,
        end_utc: DateTime,
    ) -> Slot:
        reason = self._unavailable_reason(start_minutes, end_minutes, start_utc, end_utc)

        return Slot(
            start_local=format_minutes(start_minutes),
            end_local=format_minutes(end_minutes),
            start_utc=start_utc,
            end_utc=end_utc,
            available=reason is None,
            unavailable_reason=reason,
        )

    def _unavailable_reason(
        self,
        start_minutes: int,
        end_minutes: int,
        start_utc: DateTime,
        end_utc: DateTime,
    ) -> Optional[UnavailableReason]:
        if self.window.salon_closed:
            return UnavailableReason.SALON_CLOSED
        if self.window.staff_closed:
            return UnavailableReason.STAFF_OFF
        if not self.window.contains(start_minutes, end_minutes):
            return UnavailableReason.OUTSIDE_WORKING_HOURS
        if self._has_conflict(start_utc, end_utc):
            return UnavailableReason.APPOINTMENT_CONFLICT
        return None

    def _has_conflict(self, start_utc: DateTime, end_utc: DateTime) -> bool:
        if start_utc >= end_utc:
            # Wall-clock span swallowed by a DST jump; nothing to overlap.
            return False
        candidate = TimeRange(start=start_utc, end=end_utc)
        return any(candidate.overlaps(busy) for busy in self._busy_ranges)
