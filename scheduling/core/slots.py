"""Slot arithmetic for fixed-length appointments.

Every appointment occupies one slot of ``SLOT_DURATION`` starting at its
``start_time``. Times are naive local clock values.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from scheduling.core.exceptions import InvalidTimeException

SLOT_DURATION = timedelta(minutes=30)

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::00)?$")


@dataclass(frozen=True)
class SlotInterval:
    """Half-open interval ``[start, end)`` occupied by a slot."""

    start: datetime
    end: datetime


def parse_time_of_day(value: str | time, field: str = "start_time") -> time:
    """
    Parse a time of day given as ``HH:MM`` (``HH:MM:00`` is also accepted).

    Slots start on whole minutes, so non-zero seconds are rejected.

    Args:
        value: Raw value or an existing ``time``
        field: Name reported back when the value is rejected

    Returns:
        Naive time of day

    Raises:
        InvalidTimeException: If the value is not a whole minute between 00:00 and 23:59
    """
    if isinstance(value, time):
        if value.second or value.microsecond:
            raise InvalidTimeException(f"'{value}' is not on a whole minute (HH:MM)", field)
        return value.replace(tzinfo=None)

    if not isinstance(value, str):
        raise InvalidTimeException(f"Expected a time of day, got {type(value).__name__}", field)

    match = _TIME_OF_DAY.match(value.strip())
    if not match:
        raise InvalidTimeException(f"'{value}' is not a valid time of day (HH:MM)", field)

    hours, minutes = match.groups()
    return time(int(hours), int(minutes))


def derive_end_time(start: str | time) -> time:
    """
    Compute the end of the slot starting at ``start``.

    The clock value wraps past midnight, so ``23:45`` ends at ``00:15``.
    """
    start_time = parse_time_of_day(start)
    return (datetime.combine(date.min, start_time) + SLOT_DURATION).time()


def slot_interval(day: date, start: str | time) -> SlotInterval:
    """Interval of the slot on ``day``; late slots end on the following date."""
    begin = datetime.combine(day, parse_time_of_day(start))
    return SlotInterval(start=begin, end=begin + SLOT_DURATION)


def overlaps(a: SlotInterval, b: SlotInterval) -> bool:
    """Check whether two half-open intervals intersect."""
    return a.start < b.end and b.start < a.end
