"""
In-memory schedule repository, optionally loaded from a YAML or JSON data file.

This backend serves the CLI, local experiments and the test-suite. It keeps
every tenant's schedule in plain dictionaries and answers the repository
protocols without touching any external service.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import yaml

from ..domain.exceptions import NotFoundError
from ..domain.models import (
    MAX_BUFFER_MINUTES,
    Booking,
    ScheduleException,
    Scope,
    StaffMember,
    TimeRange,
    WorkingHourRule,
)
from ..domain.time_utils import MINUTES_IN_DAY, ensure_timezone, local_minutes_to_utc
from ..schemas import ScheduleDataFile, TenantRecord

logger = logging.getLogger(__name__)


@dataclass
class _TenantData:
    id: str
    timezone: str
    staff: Dict[str, StaffMember] = field(default_factory=dict)
    salon_hours: Dict[int, WorkingHourRule] = field(default_factory=dict)
    staff_hours: Dict[str, Dict[int, WorkingHourRule]] = field(default_factory=dict)
    exceptions: Dict[str, ScheduleException] = field(default_factory=dict)
    bookings: List[Booking] = field(default_factory=list)


def _sorted_exceptions(exceptions: Iterable[ScheduleException]) -> List[ScheduleException]:
    return sorted(exceptions, key=lambda e: (e.start_date, e.end_date, e.id))


class InMemoryScheduleRepository:
    """
    Dictionary-backed implementation of ``ScheduleStore``.

    Staff identifiers are expected to be unique across tenants, as they are in
    the appointment ledger.
    """

    def __init__(self) -> None:
        self._tenants: Dict[str, _TenantData] = {}
        self._staff_tenant: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Loading and seeding
    # ------------------------------------------------------------------

    @classmethod
    def from_file(cls, data_path: Path) -> "InMemoryScheduleRepository":
        """
        Load tenants, schedules and bookings from a YAML (or JSON) file.

        Raises:
            FileNotFoundError: If the data file doesn't exist
            ValueError: If the file is not valid YAML or fails validation
        """
        if not data_path.exists():
            raise FileNotFoundError(
                f"Schedule data file not found: {data_path}\n"
                f"See schedule.example.yaml for the expected layout."
            )

        try:
            with open(data_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {data_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Schedule data file must contain a mapping at the root level.")

        repository = cls.from_records(ScheduleDataFile.model_validate(data).tenants)
        logger.debug("Loaded %d tenant(s) from %s", len(repository._tenants), data_path)
        return repository

    @classmethod
    def from_records(cls, tenants: Sequence[TenantRecord]) -> "InMemoryScheduleRepository":
        repository = cls()
        for record in tenants:
            repository.add_tenant(
                record.id,
                record.timezone,
                staff=[staff.to_staff_member() for staff in record.staff],
            )
            for hours in record.working_hours:
                repository.put_working_hour(record.id, hours.to_rule(Scope.SALON))
            for hours in record.staff_working_hours:
                repository.put_working_hour(record.id, hours.to_rule(Scope.STAFF, hours.staff_id))
            for exception in record.exceptions:
                repository.put_exception(record.id, exception.to_exception(exception.id, exception.staff_id))
            for booking in record.bookings:
                repository.put_booking(record.id, booking.to_booking())
        return repository

    def add_tenant(self, tenant_id: str, timezone: str, staff: Sequence[StaffMember] = ()) -> None:
        if tenant_id in self._tenants:
            raise ValueError(f"Duplicate tenant detected: {tenant_id}")
        tenant = _TenantData(id=tenant_id, timezone=ensure_timezone(timezone))
        self._tenants[tenant_id] = tenant
        for member in staff:
            self.add_staff_member(tenant_id, member)

    def add_staff_member(self, tenant_id: str, member: StaffMember) -> None:
        tenant = self._tenant(tenant_id)
        owner = self._staff_tenant.get(member.id)
        if owner is not None and owner != tenant_id:
            raise ValueError(f"Staff member {member.id} already belongs to tenant {owner}")
        tenant.staff[member.id] = member
        self._staff_tenant[member.id] = tenant_id

    def put_working_hour(self, tenant_id: str, rule: WorkingHourRule) -> None:
        """Insert or replace the rule for its (scope, weekday, staff)."""
        tenant = self._tenant(tenant_id)
        if rule.scope == Scope.SALON:
            tenant.salon_hours[rule.day_of_week] = rule
            return
        self._require_staff(tenant, rule.staff_id)
        tenant.staff_hours.setdefault(rule.staff_id, {})[rule.day_of_week] = rule

    def put_exception(self, tenant_id: str, exception: ScheduleException) -> None:
        tenant = self._tenant(tenant_id)
        if exception.staff_id is not None:
            self._require_staff(tenant, exception.staff_id)
        tenant.exceptions[exception.id] = exception

    def put_booking(self, tenant_id: str, booking: Booking) -> None:
        tenant = self._tenant(tenant_id)
        if booking.staff_id is not None:
            self._require_staff(tenant, booking.staff_id)
        tenant.bookings.append(booking)

    @property
    def tenant_ids(self) -> List[str]:
        return sorted(self._tenants)

    def _tenant(self, tenant_id: str) -> _TenantData:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant", tenant_id)
        return tenant

    def _tenant_of_staff(self, staff_id: str) -> Optional[_TenantData]:
        tenant_id = self._staff_tenant.get(staff_id)
        return self._tenants.get(tenant_id) if tenant_id else None

    @staticmethod
    def _require_staff(tenant: _TenantData, staff_id: Optional[str]) -> None:
        if not staff_id or staff_id not in tenant.staff:
            raise NotFoundError("Staff member", staff_id or "")

    # ------------------------------------------------------------------
    # ScheduleRepository
    # ------------------------------------------------------------------

    async def get_tenant_timezone(self, tenant_id: str) -> Optional[str]:
        tenant = self._tenants.get(tenant_id)
        return tenant.timezone if tenant else None

    async def get_staff_member(self, tenant_id: str, staff_id: str) -> Optional[StaffMember]:
        tenant = self._tenants.get(tenant_id)
        return tenant.staff.get(staff_id) if tenant else None

    async def get_salon_working_hour(self, tenant_id: str, day_of_week: int) -> Optional[WorkingHourRule]:
        tenant = self._tenants.get(tenant_id)
        return tenant.salon_hours.get(day_of_week) if tenant else None

    async def get_staff_working_hour(self, staff_id: str, day_of_week: int) -> Optional[WorkingHourRule]:
        tenant = self._tenant_of_staff(staff_id)
        if tenant is None:
            return None
        return tenant.staff_hours.get(staff_id, {}).get(day_of_week)

    async def get_salon_exceptions(self, tenant_id: str, day: date) -> List[ScheduleException]:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            return []
        return _sorted_exceptions(
            e for e in tenant.exceptions.values() if e.staff_id is None and e.covers(day)
        )

    async def get_staff_exceptions(self, staff_id: str, day: date) -> List[ScheduleException]:
        tenant = self._tenant_of_staff(staff_id)
        if tenant is None:
            return []
        return _sorted_exceptions(
            e for e in tenant.exceptions.values() if e.staff_id == staff_id and e.covers(day)
        )

    async def get_bookings_for_day(
        self,
        tenant_id: str,
        day: date,
        staff_id: Optional[str] = None,
    ) -> List[Booking]:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            return []

        # The local day plus the widest buffer, so edge-of-day bookings still count.
        padding = timedelta(minutes=MAX_BUFFER_MINUTES)
        day_range = TimeRange(
            start=local_minutes_to_utc(day, 0, tenant.timezone) - padding,
            end=local_minutes_to_utc(day, MINUTES_IN_DAY, tenant.timezone) + padding,
        )

        return sorted(
            (
                booking
                for booking in tenant.bookings
                if booking.blocks_time
                and (staff_id is None or booking.staff_id == staff_id)
                and booking.time_range.overlaps(day_range)
            ),
            key=lambda b: (b.start_at, b.end_at, b.id),
        )

    # ------------------------------------------------------------------
    # ScheduleStore
    # ------------------------------------------------------------------

    async def list_salon_working_hours(self, tenant_id: str) -> List[WorkingHourRule]:
        tenant = self._tenant(tenant_id)
        return [tenant.salon_hours[day] for day in sorted(tenant.salon_hours)]

    async def list_staff_working_hours(self, tenant_id: str, staff_id: str) -> List[WorkingHourRule]:
        tenant = self._tenant(tenant_id)
        hours = tenant.staff_hours.get(staff_id, {})
        return [hours[day] for day in sorted(hours)]

    async def list_staff_exceptions(self, tenant_id: str, staff_id: str) -> List[ScheduleException]:
        tenant = self._tenant(tenant_id)
        return _sorted_exceptions(e for e in tenant.exceptions.values() if e.staff_id == staff_id)

    async def replace_salon_working_hours(
        self, tenant_id: str, rules: Sequence[WorkingHourRule]
    ) -> List[WorkingHourRule]:
        tenant = self._tenant(tenant_id)
        tenant.salon_hours = {rule.day_of_week: rule for rule in rules}
        return await self.list_salon_working_hours(tenant_id)

    async def replace_staff_working_hours(
        self, tenant_id: str, staff_id: str, rules: Sequence[WorkingHourRule]
    ) -> List[WorkingHourRule]:
        tenant = self._tenant(tenant_id)
        self._require_staff(tenant, staff_id)
        tenant.staff_hours[staff_id] = {rule.day_of_week: rule for rule in rules}
        return await self.list_staff_working_hours(tenant_id, staff_id)

    async def get_exception(self, tenant_id: str, exception_id: str) -> Optional[ScheduleException]:
        return self._tenant(tenant_id).exceptions.get(exception_id)

    async def add_exception(self, tenant_id: str, exception: ScheduleException) -> ScheduleException:
        if not exception.id:
            exception = replace(exception, id=uuid.uuid4().hex)
        self.put_exception(tenant_id, exception)
        return exception

    async def delete_exception(self, tenant_id: str, exception_id: str) -> None:
        tenant = self._tenant(tenant_id)
        if tenant.exceptions.pop(exception_id, None) is None:
            raise NotFoundError("Exception", exception_id)
