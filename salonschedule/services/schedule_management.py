"""
Schedule management: weekly working hours and schedule exceptions.

Salon staff maintain these records independently of any availability
request. Every payload is validated before the store is touched, so a
rejected request leaves the schedule unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import ForbiddenError, NotFoundError
from ..domain.models import ScheduleException, Scope, StaffMember, WorkingHourRule
from ..schemas import ScheduleExceptionInput, parse_working_hours, translate_validation_error
from .repository import ScheduleStore

logger = logging.getLogger(__name__)


def working_hour_to_dict(rule: WorkingHourRule) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "dayOfWeek": rule.day_of_week,
        "startTime": rule.start_time,
        "endTime": rule.end_time,
        "isWorkingDay": rule.is_working_day,
    }
    if rule.staff_id is not None:
        payload["staffId"] = rule.staff_id
    return payload


def exception_to_dict(exception: ScheduleException) -> Dict[str, Any]:
    return {
        "id": exception.id,
        "staffId": exception.staff_id,
        "startDate": exception.start_date.isoformat(),
        "endDate": exception.end_date.isoformat(),
        "type": exception.type.value,
        "customStartTime": exception.custom_start_time,
        "customEndTime": exception.custom_end_time,
        "isWorkingDay": exception.is_working_day,
        "reason": exception.reason,
    }


@dataclass(frozen=True)
class StaffSchedule:
    """A staff member's weekly hours and exceptions, for display."""
    staff: StaffMember
    working_hours: List[WorkingHourRule]
    exceptions: List[ScheduleException]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "staffId": self.staff.id,
            "staffName": self.staff.name,
            "workingHours": [working_hour_to_dict(rule) for rule in self.working_hours],
            "exceptions": [exception_to_dict(exception) for exception in self.exceptions],
        }


class ScheduleManagementService:
    """Validated reads and writes of working hours and exceptions."""

    def __init__(self, store: ScheduleStore) -> None:
        self._store = store

    async def get_salon_working_hours(self, tenant_id: str) -> List[WorkingHourRule]:
        await self._require_tenant(tenant_id)
        return await self._store.list_salon_working_hours(tenant_id)

    async def replace_salon_working_hours(self, tenant_id: str, payload: Any) -> List[WorkingHourRule]:
        """
        Replace every salon weekly rule with ``payload``.

        Raises:
            ValidationError: If the payload is malformed
            NotFoundError: If the tenant is unknown
        """
        await self._require_tenant(tenant_id)
        rules = [entry.to_rule(Scope.SALON) for entry in parse_working_hours(payload)]

        stored = await self._store.replace_salon_working_hours(tenant_id, rules)
        logger.info("Updated salon working hours (%d days) for tenant %s", len(stored), tenant_id)
        return stored

    async def get_staff_schedule(self, tenant_id: str, staff_id: str) -> StaffSchedule:
        staff = await self._require_staff(tenant_id, staff_id)
        working_hours = await self._store.list_staff_working_hours(tenant_id, staff_id)
        exceptions = await self._store.list_staff_exceptions(tenant_id, staff_id)
        return StaffSchedule(staff=staff, working_hours=working_hours, exceptions=exceptions)

    async def replace_staff_working_hours(
        self, tenant_id: str, staff_id: str, payload: Any
    ) -> List[WorkingHourRule]:
        await self._require_staff(tenant_id, staff_id)
        rules = [entry.to_rule(Scope.STAFF, staff_id) for entry in parse_working_hours(payload)]

        stored = await self._store.replace_staff_working_hours(tenant_id, staff_id, rules)
        logger.info("Updated schedule for staff %s (%d days)", staff_id, len(stored))
        return stored

    async def create_schedule_exception(
        self,
        tenant_id: str,
        payload: Mapping[str, Any],
        staff_id: Optional[str] = None,
    ) -> ScheduleException:
        """
        Create a vacation, sick leave or custom-hours exception.

        ``staff_id`` scopes the exception to one staff member; without it the
        payload's own ``staffId`` is used, and None means salon-wide.
        """
        try:
            data = ScheduleExceptionInput.model_validate(dict(payload))
        except PydanticValidationError as exc:
            raise translate_validation_error(exc, "Invalid exception format") from exc

        owner = staff_id or data.staff_id
        if owner:
            await self._require_staff(tenant_id, owner)
        else:
            await self._require_tenant(tenant_id)

        exception = await self._store.add_exception(tenant_id, data.to_exception("", owner))
        logger.info(
            "Created schedule exception %s (%s) for %s",
            exception.id,
            exception.type.value,
            owner or f"tenant {tenant_id}",
        )
        return exception

    async def delete_schedule_exception(self, tenant_id: str, staff_id: str, exception_id: str) -> None:
        """
        Delete one of a staff member's exceptions.

        Raises:
            NotFoundError: If the exception does not exist
            ForbiddenError: If it belongs to a different staff member
        """
        await self._require_tenant(tenant_id)
        exception = await self._store.get_exception(tenant_id, exception_id)
        if exception is None:
            raise NotFoundError("Exception", exception_id)
        if exception.staff_id != staff_id:
            raise ForbiddenError("Exception does not belong to this staff member")

        await self._store.delete_exception(tenant_id, exception_id)
        logger.info("Deleted schedule exception %s", exception_id)

    async def _require_tenant(self, tenant_id: str) -> None:
        if await self._store.get_tenant_timezone(tenant_id) is None:
            raise NotFoundError("Tenant", tenant_id)

    async def _require_staff(self, tenant_id: str, staff_id: str) -> StaffMember:
        await self._require_tenant(tenant_id)
        staff = await self._store.get_staff_member(tenant_id, staff_id)
        if staff is None:
            raise NotFoundError("Staff member", staff_id)
        return staff
