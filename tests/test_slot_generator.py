"""
Tests for the core slot generation algorithm.
"""

from datetime import date
from types import GeneratorType

import pendulum
import pytest

from salonschedule.domain.models import (
    Booking,
    BookingStatus,
    ExceptionType,
    ScheduleException,
    Scope,
    UnavailableReason,
    WorkingHourRule,
)
from salonschedule.domain.slot_generator import SlotGenerator
from salonschedule.domain.working_window import DaySchedule

TZ = "Europe/Warsaw"


def rule(day_of_week, start="09:00", end="17:00", staff_id=None, is_working_day=True):
    return WorkingHourRule(
        scope=Scope.STAFF if staff_id else Scope.SALON,
        staff_id=staff_id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        is_working_day=is_working_day,
    )


def booking(start, end, status=BookingStatus.CONFIRMED, staff_id="anna"):
    return Booking(
        id=f"apt-{start}",
        staff_id=staff_id,
        start_at=pendulum.parse(start),
        end_at=pendulum.parse(end),
        status=status,
    )


def by_start(slots):
    return {slot.start_local: slot for slot in slots}


class TestScan:
    """Grid shape and UTC conversion."""

    @pytest.mark.parametrize("duration, expected", [(15, 96), (60, 93), (480, 65)])
    def test_slot_count(self, duration, expected):
        schedule = DaySchedule(day=date(2025, 11, 20), timezone=TZ)
        slots = SlotGenerator(schedule, service_duration_minutes=duration).generate()

        assert len(slots) == expected
        assert slots[0].start_local == "00:00"
        assert slots[-1].end_local <= "24:00"

    def test_last_slot_ends_at_midnight(self):
        schedule = DaySchedule(day=date(2025, 11, 20), timezone=TZ)
        slots = SlotGenerator(schedule, service_duration_minutes=60).generate()

        assert slots[-1].start_local == "23:00"
        assert slots[-1].end_local == "24:00"
        assert slots[-1].end_utc == pendulum.datetime(2025, 11, 20, 23, 0, tz="UTC")

    def test_utc_boundaries_follow_winter_offset(self):
        schedule = DaySchedule(day=date(2025, 11, 20), timezone=TZ, salon_rule=rule(4))
        slot = by_start(SlotGenerator(schedule, service_duration_minutes=30))["10:00"]

        assert slot.start_utc == pendulum.datetime(2025, 11, 20, 9, 0, tz="UTC")
        assert slot.end_utc == pendulum.datetime(2025, 11, 20, 9, 30, tz="UTC")

    def test_spring_forward_day(self):
        """The scan stays on the wall-clock grid across the missing hour."""
        schedule = DaySchedule(day=date(2025, 3, 30), timezone=TZ, salon_rule=rule(0, "00:00", "23:45"))
        slots = by_start(SlotGenerator(schedule, service_duration_minutes=15))

        assert len(slots) == 96
        assert slots["01:45"].start_utc == pendulum.datetime(2025, 3, 30, 0, 45, tz="UTC")
        assert slots["03:00"].start_utc == pendulum.datetime(2025, 3, 30, 1, 0, tz="UTC")

    def test_iteration_is_lazy_and_restartable(self):
        schedule = DaySchedule(day=date(2025, 11, 20), timezone=TZ, salon_rule=rule(4))
        generator = SlotGenerator(schedule, service_duration_minutes=60)

        iterator = generator.iter_slots()
        assert isinstance(iterator, GeneratorType)
        assert next(iterator).start_local == "00:00"
        assert [slot.start_local for slot in generator][:2] == ["00:00", "00:15"]

    def test_same_input_same_output(self):
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4),
            bookings=(booking("2025-11-20T09:00:00Z", "2025-11-20T10:00:00Z"),),
        )

        first = SlotGenerator(schedule, 60, 15).generate()
        second = SlotGenerator(schedule, 60, 15).generate()

        assert first == second


class TestValidation:

    @pytest.mark.parametrize("duration", [0, 10, 481])
    def test_duration_out_of_range(self, duration):
        with pytest.raises(ValueError, match="service_duration_minutes"):
            SlotGenerator(DaySchedule(day=date(2025, 11, 20), timezone=TZ), service_duration_minutes=duration)

    @pytest.mark.parametrize("buffer", [-1, 61])
    def test_buffer_out_of_range(self, buffer):
        with pytest.raises(ValueError, match="buffer_minutes"):
            SlotGenerator(DaySchedule(day=date(2025, 11, 20), timezone=TZ), 60, buffer_minutes=buffer)

    def test_evaluate_past_midnight(self):
        generator = SlotGenerator(DaySchedule(day=date(2025, 11, 20), timezone=TZ), 60)
        with pytest.raises(ValueError, match="within the local day"):
            generator.evaluate(23 * 60 + 30)


class TestReasons:
    """Reason precedence and the individual closure sources."""

    def test_no_configuration_is_salon_closed(self):
        schedule = DaySchedule(day=date(2025, 11, 20), timezone=TZ)
        slots = SlotGenerator(schedule, service_duration_minutes=60).generate()

        assert all(slot.unavailable_reason is UnavailableReason.SALON_CLOSED for slot in slots)
        assert not any(slot.available for slot in slots)

    def test_outside_working_hours(self):
        schedule = DaySchedule(day=date(2025, 12, 15), timezone=TZ, salon_rule=rule(1))
        slots = by_start(SlotGenerator(schedule, service_duration_minutes=30))

        assert slots["08:45"].unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS
        assert slots["09:00"].available
        assert slots["16:30"].available
        assert slots["16:45"].unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS
        assert all(
            slot.unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS
            for start, slot in slots.items()
            if start < "09:00"
        )

    def test_available_slot_has_no_reason(self):
        schedule = DaySchedule(day=date(2025, 12, 15), timezone=TZ, salon_rule=rule(1))
        slot = by_start(SlotGenerator(schedule, service_duration_minutes=30))["10:00"]

        assert slot.available
        assert slot.unavailable_reason is None

    def test_booking_with_buffer(self):
        """Booking 10:00-11:00 local with a 15 minute buffer blocks 09:45-11:15."""
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4),
            bookings=(booking("2025-11-20T09:00:00Z", "2025-11-20T10:00:00Z"),),
        )
        slots = by_start(SlotGenerator(schedule, service_duration_minutes=60, buffer_minutes=15))

        for start in ("09:00", "10:00", "10:15", "11:00"):
            assert slots[start].unavailable_reason is UnavailableReason.APPOINTMENT_CONFLICT, start
        assert slots["08:45"].unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS
        assert slots["11:15"].available

    def test_adjacent_booking_does_not_conflict(self):
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            salon_rule=rule(4),
            bookings=(booking("2025-11-20T09:00:00Z", "2025-11-20T10:00:00Z"),),
        )
        slots = by_start(SlotGenerator(schedule, service_duration_minutes=60))

        assert slots["09:00"].available
        assert slots["11:00"].available
        assert slots["10:30"].unavailable_reason is UnavailableReason.APPOINTMENT_CONFLICT

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.NO_SHOW])
    def test_released_bookings_are_ignored(self, status):
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            salon_rule=rule(4),
            bookings=(booking("2025-11-20T09:00:00Z", "2025-11-20T10:00:00Z", status=status),),
        )
        assert by_start(SlotGenerator(schedule, 60))["10:00"].available

    def test_staff_day_off(self):
        vacation = ScheduleException(
            id="vacation",
            staff_id="anna",
            start_date=date(2025, 12, 15),
            end_date=date(2025, 12, 20),
            type=ExceptionType.DAY_OFF,
        )
        schedule = DaySchedule(
            day=date(2025, 12, 15),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(1),
            staff_exceptions=(vacation,),
        )
        slots = SlotGenerator(schedule, service_duration_minutes=60).generate()

        assert all(slot.unavailable_reason is UnavailableReason.STAFF_OFF for slot in slots)

    def test_salon_closure_dominates_staff_schedule(self):
        holiday = ScheduleException(
            id="christmas", start_date=date(2025, 12, 25), end_date=date(2025, 12, 25), type=ExceptionType.DAY_OFF
        )
        sick = ScheduleException(
            id="flu",
            staff_id="anna",
            start_date=date(2025, 12, 25),
            end_date=date(2025, 12, 25),
            type=ExceptionType.SICK_LEAVE,
        )
        schedule = DaySchedule(
            day=date(2025, 12, 25),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4),
            staff_rule=rule(4, "10:00", "18:00", staff_id="anna"),
            salon_exceptions=(holiday,),
            staff_exceptions=(sick,),
        )
        slots = SlotGenerator(schedule, service_duration_minutes=60).generate()

        assert all(slot.unavailable_reason is UnavailableReason.SALON_CLOSED for slot in slots)

    def test_staff_rule_narrows_salon_hours(self):
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4, "09:00", "19:00"),
            staff_rule=rule(4, "11:00", "19:00", staff_id="anna"),
        )
        slots = by_start(SlotGenerator(schedule, service_duration_minutes=60))

        assert slots["10:00"].unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS
        assert slots["11:00"].available
        assert slots["18:00"].available

    def test_staff_custom_hours_inside_salon_custom_hours(self):
        salon_custom = ScheduleException(
            id="salon-short",
            start_date=date(2025, 11, 20),
            end_date=date(2025, 11, 20),
            type=ExceptionType.CUSTOM_HOURS,
            custom_start_time="10:00",
            custom_end_time="16:00",
        )
        staff_custom = ScheduleException(
            id="anna-short",
            staff_id="anna",
            start_date=date(2025, 11, 20),
            end_date=date(2025, 11, 20),
            type=ExceptionType.CUSTOM_HOURS,
            custom_start_time="12:00",
            custom_end_time="14:00",
        )
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4),
            salon_exceptions=(salon_custom,),
            staff_exceptions=(staff_custom,),
        )
        available = [slot.start_local for slot in SlotGenerator(schedule, 60) if slot.available]

        assert available == ["12:00", "12:15", "12:30", "12:45", "13:00"]

    def test_staff_custom_hours_wider_than_salon_custom_hours(self):
        """Staff custom hours replace the salon's custom window, they do not intersect it."""
        salon_custom = ScheduleException(
            id="salon-short",
            start_date=date(2025, 11, 20),
            end_date=date(2025, 11, 20),
            type=ExceptionType.CUSTOM_HOURS,
            custom_start_time="10:00",
            custom_end_time="16:00",
        )
        staff_custom = ScheduleException(
            id="anna-long",
            staff_id="anna",
            start_date=date(2025, 11, 20),
            end_date=date(2025, 11, 20),
            type=ExceptionType.CUSTOM_HOURS,
            custom_start_time="08:00",
            custom_end_time="18:00",
        )
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4),
            salon_exceptions=(salon_custom,),
            staff_exceptions=(staff_custom,),
        )
        slots = by_start(SlotGenerator(schedule, 60))

        assert slots["08:00"].available
        assert slots["17:00"].available
        assert slots["07:45"].unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS
        assert slots["17:15"].unavailable_reason is UnavailableReason.OUTSIDE_WORKING_HOURS

    def test_staff_custom_hours_not_working(self):
        custom = ScheduleException(
            id="anna-off",
            staff_id="anna",
            start_date=date(2025, 11, 20),
            end_date=date(2025, 11, 20),
            type=ExceptionType.CUSTOM_HOURS,
            custom_start_time="12:00",
            custom_end_time="14:00",
            is_working_day=False,
        )
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            staff_id="anna",
            salon_rule=rule(4),
            staff_exceptions=(custom,),
        )
        slots = SlotGenerator(schedule, 60).generate()

        assert all(slot.unavailable_reason is UnavailableReason.STAFF_OFF for slot in slots)


class TestEvaluate:

    def test_off_grid_start(self):
        schedule = DaySchedule(
            day=date(2025, 11, 20),
            timezone=TZ,
            salon_rule=rule(4),
            bookings=(booking("2025-11-20T09:00:00Z", "2025-11-20T10:00:00Z"),),
        )
        generator = SlotGenerator(schedule, service_duration_minutes=30)

        slot = generator.evaluate(11 * 60 + 5)

        assert slot.start_local == "11:05"
        assert slot.end_local == "11:35"
        assert slot.available
        assert generator.evaluate(10 * 60 + 50).unavailable_reason is UnavailableReason.APPOINTMENT_CONFLICT

    def test_instant_in_repeated_fall_back_hour(self):
        """02:30 occurs twice on 2025-10-26 in Warsaw; each occurrence is checked on its own."""
        schedule = DaySchedule(
            day=date(2025, 10, 26),
            timezone=TZ,
            salon_rule=rule(0, "00:00", "23:45"),
            bookings=(booking("2025-10-26T00:30:00Z", "2025-10-26T01:00:00Z"),),
        )
        generator = SlotGenerator(schedule, service_duration_minutes=30)

        first = generator.evaluate_instant(pendulum.parse("2025-10-26T00:30:00Z"))
        second = generator.evaluate_instant(pendulum.parse("2025-10-26T01:30:00Z"))

        assert first.start_local == second.start_local == "02:30"
        assert first.start_utc == pendulum.datetime(2025, 10, 26, 0, 30, tz="UTC")
        assert first.end_utc == pendulum.datetime(2025, 10, 26, 1, 0, tz="UTC")
        assert first.unavailable_reason is UnavailableReason.APPOINTMENT_CONFLICT
        assert second.available

    def test_instant_on_another_day(self):
        generator = SlotGenerator(DaySchedule(day=date(2025, 11, 20), timezone=TZ), 30)

        with pytest.raises(ValueError, match="within the local day"):
            generator.evaluate_instant(pendulum.parse("2025-11-20T23:30:00Z"))
