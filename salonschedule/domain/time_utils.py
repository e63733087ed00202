"""
Timezone and minute-of-day helpers.

All wall-clock values (working hours, exception hours, slot boundaries) are
interpreted in the tenant's IANA timezone. Conversions go through pendulum's
tz database so that DST transitions are honoured; never add fixed offsets.
"""

import re
from datetime import date, datetime, timedelta

import pendulum
from pendulum import DateTime

MINUTES_IN_DAY = 24 * 60

TIME_FORMAT_PATTERN = r"^([0-1][0-9]|2[0-3]):([0-5][0-9])$"

_TIME_FORMAT_RE = re.compile(TIME_FORMAT_PATTERN)


def is_valid_clock(value: str) -> bool:
    """Check a string is a 24h ``HH:mm`` clock time."""
    return bool(_TIME_FORMAT_RE.match(value))


def minutes_of_day(clock: str) -> int:
    """
    Convert an ``HH:mm`` string to minutes since local midnight.

    Raises:
        ValueError: If the string is not a valid clock time
    """
    if not is_valid_clock(clock):
        raise ValueError(f"Invalid time format (HH:mm): {clock!r}")
    hours, minutes = clock.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    """
    Convert minutes since local midnight to ``HH:mm``.

    ``1440`` renders as ``24:00`` (end of day).
    """
    if not 0 <= minutes <= MINUTES_IN_DAY:
        raise ValueError(f"Minutes must be between 0 and {MINUTES_IN_DAY}, got {minutes}")
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def ensure_timezone(timezone: str) -> str:
    """
    Validate an IANA timezone name.

    Raises:
        ValueError: If pendulum does not know the zone
    """
    try:
        pendulum.timezone(timezone)
    except (ValueError, KeyError) as exc:
        raise ValueError(f"Unknown timezone: {timezone!r}") from exc
    return timezone


def to_utc(instant: datetime) -> DateTime:
    """Normalize any datetime to a pendulum UTC instant. Naive values are taken as UTC."""
    return pendulum.instance(instant).in_timezone("UTC")


def zoned_day_of_week(instant: datetime, timezone: str) -> int:
    """
    Day of week of an instant as observed in ``timezone``.

    Returns 0 for Sunday through 6 for Saturday, the numbering used by
    working-hour rules.
    """
    local = pendulum.instance(instant).in_timezone(timezone)
    return local.isoweekday() % 7


def local_minutes_to_utc(day: date, minutes: int, timezone: str) -> DateTime:
    """
    Convert a local wall-clock position on ``day`` to a UTC instant.

    ``minutes`` may equal 1440, meaning midnight at the start of the next day.
    Wall times skipped by a DST jump are shifted forward by pendulum.
    """
    extra_days, minute_of_day = divmod(minutes, MINUTES_IN_DAY)
    target = day + timedelta(days=extra_days)
    hour, minute = divmod(minute_of_day, 60)

    local = pendulum.datetime(
        target.year,
        target.month,
        target.day,
        hour,
        minute,
        tz=timezone,
    )
    return local.in_timezone("UTC")


def local_time_to_utc(day: date, clock: str, timezone: str) -> DateTime:
    """Convert ``HH:mm`` on a local date in ``timezone`` to a UTC instant."""
    return local_minutes_to_utc(day, minutes_of_day(clock), timezone)


def utc_to_local_time(instant: datetime, timezone: str) -> str:
    """Render an instant as local ``HH:mm`` in ``timezone``."""
    return pendulum.instance(instant).in_timezone(timezone).format("HH:mm")


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """
    Half-open interval test: ``[a, b)`` and ``[c, d)`` conflict iff a < d and b > c.

    Touching endpoints do not conflict.
    """
    return start_a < end_b and end_a > start_b


def format_utc_iso(instant: datetime) -> str:
    """ISO 8601 rendering of an instant in UTC with millisecond precision."""
    utc = to_utc(instant)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
