"""
Storage contracts consumed by the services.

The availability path only needs ``ScheduleRepository`` (reads). Schedule
management additionally needs ``ScheduleStore`` (writes). Any backend that
matches these protocols can be plugged in; the bundled one is
``InMemoryScheduleRepository``.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol, Sequence

from ..domain.models import Booking, ScheduleException, StaffMember, WorkingHourRule


class ScheduleRepository(Protocol):
    """Read-only schedule data needed to compute availability."""

    async def get_tenant_timezone(self, tenant_id: str) -> Optional[str]:
        """Return the tenant's IANA timezone, or None for an unknown tenant."""

    async def get_staff_member(self, tenant_id: str, staff_id: str) -> Optional[StaffMember]:
        """Return the staff member, or None when the tenant has no such staff."""

    async def get_salon_working_hour(self, tenant_id: str, day_of_week: int) -> Optional[WorkingHourRule]:
        """Return the salon's weekly rule for a weekday (0 = Sunday)."""

    async def get_staff_working_hour(self, staff_id: str, day_of_week: int) -> Optional[WorkingHourRule]:
        """Return a staff member's weekly rule for a weekday (0 = Sunday)."""

    async def get_salon_exceptions(self, tenant_id: str, day: date) -> List[ScheduleException]:
        """Return salon-wide exceptions whose range covers ``day``."""

    async def get_staff_exceptions(self, staff_id: str, day: date) -> List[ScheduleException]:
        """Return exceptions of one staff member whose range covers ``day``."""

    async def get_bookings_for_day(
        self,
        tenant_id: str,
        day: date,
        staff_id: Optional[str] = None,
    ) -> List[Booking]:
        """Return occupying bookings of the tenant's local ``day``."""


class ScheduleStore(ScheduleRepository, Protocol):
    """Write side used by schedule management."""

    async def list_salon_working_hours(self, tenant_id: str) -> List[WorkingHourRule]:
        ...

    async def list_staff_working_hours(self, tenant_id: str, staff_id: str) -> List[WorkingHourRule]:
        ...

    async def list_staff_exceptions(self, tenant_id: str, staff_id: str) -> List[ScheduleException]:
        ...

    async def replace_salon_working_hours(
        self, tenant_id: str, rules: Sequence[WorkingHourRule]
    ) -> List[WorkingHourRule]:
        ...

    async def replace_staff_working_hours(
        self, tenant_id: str, staff_id: str, rules: Sequence[WorkingHourRule]
    ) -> List[WorkingHourRule]:
        ...

    async def get_exception(self, tenant_id: str, exception_id: str) -> Optional[ScheduleException]:
        ...

    async def add_exception(self, tenant_id: str, exception: ScheduleException) -> ScheduleException:
        ...

    async def delete_exception(self, tenant_id: str, exception_id: str) -> None:
        ...
