"""
Shared fixtures: an in-memory repository with one Warsaw salon.
"""

import pytest

from salonschedule.adapters.memory_repository import InMemoryScheduleRepository
from salonschedule.domain.models import StaffMember

TENANT_ID = "cmhqftgym0005b9vnofzs3u0v"
STAFF_ID = "cmhqfth2v001bb9vnaso1wh6h"
OTHER_STAFF_ID = "cmhqfth2v001cb9vnbbbbbbbb"
TIMEZONE = "Europe/Warsaw"


@pytest.fixture
def repository() -> InMemoryScheduleRepository:
    repo = InMemoryScheduleRepository()
    repo.add_tenant(
        TENANT_ID,
        TIMEZONE,
        staff=[
            StaffMember(id=STAFF_ID, name="Anna Nowak"),
            StaffMember(id=OTHER_STAFF_ID, name="Piotr Zielinski"),
        ],
    )
    return repo
