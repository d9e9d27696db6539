import math
import re
from typing import Optional
from datetime import date, datetime, time

CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

# Sample schedules shared by the tests and the batch runner examples
mock_schedules = {
    "day": {
        "shift_type": "morning_shift",
        "scheduled_time_in": "09:00",
        "scheduled_time_out": "17:00",
        "grace_period_minutes": 15,
    },
    "night": {
        "shift_type": "night_shift",
        "scheduled_time_in": "22:00",
        "scheduled_time_out": "06:00",
        "grace_period_minutes": 15,
    },
    "graveyard": {
        "shift_type": "graveyard_shift",
        "scheduled_time_in": "00:00",
        "scheduled_time_out": "09:00",
        "grace_period_minutes": 15,
    },
}


def parse_clock_time(value) -> time:
    """Turn a schedule's wall-clock value ("HH:MM", "HH:MM:SS" or time) into a naive time.

    Raises ValueError on anything it cannot read unambiguously; nothing is clamped.
    """
    if isinstance(value, datetime):
        raise ValueError(f"expected a wall-clock time without a date, got {value!r}")
    if isinstance(value, time):
        if value.tzinfo is not None:
            raise ValueError("scheduled times are local wall-clock values and cannot carry a timezone")
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected 'HH:MM' string, got {type(value).__name__}")

    match = CLOCK_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"malformed time string: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"time out of range: {value!r}")
    return time(hour, minute, second)


def floor_minutes(later: datetime, earlier: datetime) -> int:
    return math.floor((later - earlier).total_seconds() / 60)


def same_clock(instant: Optional[datetime], reference: Optional[datetime]) -> Optional[datetime]:
    """Express ``instant`` in the civil time of ``reference``.

    Naive values are local civil time: a naive instant takes the reference's
    zone, and against a naive reference an aware instant keeps its wall clock.
    """
    if instant is None or reference is None:
        return instant
    if reference.tzinfo is None:
        return instant.replace(tzinfo=None)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=reference.tzinfo)
    return instant.astimezone(reference.tzinfo)


def describe_shift_date(shift_date: date) -> str:
    return shift_date.strftime("%Y-%m-%d (%a)")
