"""
Application service computing available appointment slots.

The service gathers every schedule input for the requested day via the
repository protocol, issuing independent reads concurrently, and hands them
to the domain-level ``SlotGenerator``. It never writes anything, so the
result is advisory: booking flows must re-check under their own locking.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from ..domain.exceptions import (
    FieldError,
    NotFoundError,
    RepositoryError,
    ScheduleError,
    ValidationError,
)
from ..domain.models import (
    MAX_BUFFER_MINUTES,
    MAX_SERVICE_DURATION_MINUTES,
    MIN_SERVICE_DURATION_MINUTES,
    Slot,
)
from ..domain.slot_generator import SlotGenerator
from ..domain.time_utils import (
    MINUTES_IN_DAY,
    local_minutes_to_utc,
    to_utc,
    zoned_day_of_week,
)
from ..domain.working_window import DaySchedule
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def validate_limits(service_duration_minutes: int, buffer_minutes: int) -> None:
    """
    Check the request limits before any data is read.

    Raises:
        ValidationError: naming each offending parameter
    """
    errors = []
    if not MIN_SERVICE_DURATION_MINUTES <= service_duration_minutes <= MAX_SERVICE_DURATION_MINUTES:
        errors.append(
            FieldError(
                field="serviceDurationMinutes",
                message=(
                    f"Must be between {MIN_SERVICE_DURATION_MINUTES} "
                    f"and {MAX_SERVICE_DURATION_MINUTES} minutes"
                ),
            )
        )
    if not 0 <= buffer_minutes <= MAX_BUFFER_MINUTES:
        errors.append(
            FieldError(field="bufferMinutes", message=f"Must be between 0 and {MAX_BUFFER_MINUTES} minutes")
        )
    if errors:
        raise ValidationError("Invalid query parameters", errors)


@dataclass(frozen=True)
class AvailabilityRequest:
    tenant_id: str
    day: date
    service_duration_minutes: int
    buffer_minutes: int = 0
    staff_id: Optional[str] = None


@dataclass(frozen=True)
class DayAvailability:
    """Slots of one local day, ready for serialization."""
    day: date
    timezone: str
    slots: List[Slot]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "date": self.day.isoformat(),
            "timezone": self.timezone,
            "slots": [slot.to_dict() for slot in self.slots],
        }

    @property
    def available_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if slot.available]


class AvailabilityService:
    """
    Orchestrates schedule retrieval and slot generation.

    Dependency inversion toward a protocol makes it easy to plug in any
    storage backend or the in-memory repository in tests.
    """

    def __init__(self, repository: ScheduleRepository) -> None:
        self._repository = repository

    async def get_available_slots(self, request: AvailabilityRequest) -> DayAvailability:
        """
        Compute the annotated slots for one day.

        Raises:
            ValidationError: If the duration or buffer is out of range
            NotFoundError: If the tenant or staff member is unknown
            RepositoryError: If the storage backend fails
        """
        validate_limits(request.service_duration_minutes, request.buffer_minutes)
        schedule = await self.load_day_schedule(
            tenant_id=request.tenant_id,
            day=request.day,
            staff_id=request.staff_id,
        )
        generator = SlotGenerator(
            schedule,
            service_duration_minutes=request.service_duration_minutes,
            buffer_minutes=request.buffer_minutes,
        )
        slots = generator.generate()

        logger.debug(
            "Computed %d slot(s) for tenant %s on %s (staff=%s, window=%s)",
            len(slots),
            request.tenant_id,
            request.day,
            request.staff_id,
            ",".join(generator.window.applied) or "none",
        )
        return DayAvailability(day=request.day, timezone=schedule.timezone, slots=slots)

    async def is_slot_free(
        self,
        *,
        tenant_id: str,
        start_utc: datetime,
        service_duration_minutes: int,
        buffer_minutes: int = 0,
        staff_id: Optional[str] = None,
    ) -> bool:
        """
        Check one concrete start instant before a booking is written.

        The start need not lie on the 15-minute scan grid. A service that
        would cross local midnight is never free.

        Raises:
            ValidationError: If the duration or buffer is out of range
            NotFoundError: If the tenant or staff member is unknown
        """
        validate_limits(service_duration_minutes, buffer_minutes)

        timezone = await self._require_timezone(tenant_id)
        start_at = to_utc(start_utc)
        local_start = start_at.in_timezone(timezone)

        schedule = await self.load_day_schedule(
            tenant_id=tenant_id,
            day=local_start.date(),
            staff_id=staff_id,
        )
        # Wall-clock minute, which differs from elapsed minutes on DST days.
        if local_start.hour * 60 + local_start.minute + service_duration_minutes > MINUTES_IN_DAY:
            return False

        generator = SlotGenerator(
            schedule,
            service_duration_minutes=service_duration_minutes,
            buffer_minutes=buffer_minutes,
        )
        return generator.evaluate_instant(start_at).available

    async def load_day_schedule(
        self,
        *,
        tenant_id: str,
        day: date,
        staff_id: Optional[str] = None,
    ) -> DaySchedule:
        """Fetch every schedule input for ``day`` with concurrent reads."""
        repo = self._repository

        if staff_id:
            timezone, staff = await asyncio.gather(
                self._require_timezone(tenant_id),
                self._call(repo.get_staff_member(tenant_id, staff_id)),
            )
            if staff is None:
                raise NotFoundError("Staff member", staff_id)
        else:
            timezone = await self._require_timezone(tenant_id)

        day_of_week = zoned_day_of_week(local_minutes_to_utc(day, 0, timezone), timezone)

        salon_rule, staff_rule, salon_exceptions, staff_exceptions, bookings = await asyncio.gather(
            self._call(repo.get_salon_working_hour(tenant_id, day_of_week)),
            self._call(repo.get_staff_working_hour(staff_id, day_of_week)) if staff_id else _none(),
            self._call(repo.get_salon_exceptions(tenant_id, day)),
            self._call(repo.get_staff_exceptions(staff_id, day)) if staff_id else _empty(),
            self._call(repo.get_bookings_for_day(tenant_id, day, staff_id)),
        )

        return DaySchedule(
            day=day,
            timezone=timezone,
            staff_id=staff_id,
            salon_rule=salon_rule,
            staff_rule=staff_rule,
            salon_exceptions=tuple(salon_exceptions),
            staff_exceptions=tuple(staff_exceptions),
            bookings=tuple(bookings),
        )

    async def _require_timezone(self, tenant_id: str) -> str:
        timezone = await self._call(self._repository.get_tenant_timezone(tenant_id))
        if timezone is None:
            raise NotFoundError("Tenant", tenant_id)
        return timezone

    @staticmethod
    async def _call(awaitable: Awaitable[T]) -> T:
        """Await a repository read, wrapping storage failures as RepositoryError."""
        try:
            return await awaitable
        except ScheduleError:
            raise
        except Exception as exc:
            raise RepositoryError(f"Schedule repository failure: {exc}") from exc


async def _none() -> None:
    return None


async def _empty() -> List[Any]:
    return []
