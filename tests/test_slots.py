"""Tests for slot arithmetic."""

from datetime import date, datetime, time

import pytest

from scheduling.core.exceptions import InvalidTimeException, ValidationException
from scheduling.core.slots import (
    SLOT_DURATION,
    derive_end_time,
    overlaps,
    parse_time_of_day,
    slot_interval,
)


@pytest.mark.parametrize(
    ("start", "expected"),
    [
        ("09:00", time(9, 30)),
        ("09:30", time(10, 0)),
        ("09:45", time(10, 15)),
        ("14:15", time(14, 45)),
        ("00:00", time(0, 30)),
        ("23:29", time(23, 59)),
    ],
)
def test_derive_end_time_adds_thirty_minutes(start, expected):
    """End time is the start plus one slot with hour rollover."""
    assert derive_end_time(start) == expected


def test_derive_end_time_wraps_past_midnight():
    """Clock value wraps; the date change is handled by slot_interval."""
    assert derive_end_time("23:45") == time(0, 15)
    assert derive_end_time(time(23, 30)) == time(0, 0)


def test_derive_end_time_for_every_minute_of_the_day():
    """Property holds for all valid start times."""
    for minute_of_day in range(24 * 60):
        start = time(minute_of_day // 60, minute_of_day % 60)
        expected = (datetime.combine(date.min, start) + SLOT_DURATION).time()
        assert derive_end_time(start) == expected


def test_parse_time_of_day_accepts_zero_seconds():
    """A whole-minute value may carry ``:00`` seconds."""
    assert parse_time_of_day("08:05:00") == time(8, 5)
    assert parse_time_of_day(" 07:00 ") == time(7, 0)


@pytest.mark.parametrize("value", ["09:00:30", time(9, 0, 30), time(9, 0, 0, 500)])
def test_parse_time_of_day_rejects_partial_minutes(value):
    """Slots start on whole minutes; the rendered HH:MM must match what is stored."""
    with pytest.raises(InvalidTimeException):
        parse_time_of_day(value)


@pytest.mark.parametrize(
    "value", ["24:00", "12:60", "noon", "", "9:00", "12:3", "-01:00", "12:00:60", "12:00:5"]
)
def test_parse_time_of_day_rejects_invalid_values(value):
    """Anything outside 00:00-23:59 is an invalid time."""
    with pytest.raises(InvalidTimeException) as exc_info:
        parse_time_of_day(value)

    assert exc_info.value.field == "start_time"
    assert exc_info.value.status_code == 422


def test_parse_time_of_day_rejects_non_strings():
    """Numbers are not times of day."""
    with pytest.raises(InvalidTimeException):
        parse_time_of_day(900)  # type: ignore[arg-type]


def test_invalid_time_is_a_validation_error():
    """Callers catching validation errors also catch malformed times."""
    with pytest.raises(ValidationException):
        derive_end_time("25:00")


def test_slot_interval_crosses_into_next_date():
    """A late slot ends on the following calendar date."""
    interval = slot_interval(date(2030, 3, 10), "23:45")

    assert interval.start == datetime(2030, 3, 10, 23, 45)
    assert interval.end == datetime(2030, 3, 11, 0, 15)


def test_overlaps_half_open_intervals():
    """Touching slots do not overlap; shifted ones do."""
    day = date(2030, 3, 10)
    nine = slot_interval(day, "09:00")

    assert overlaps(nine, slot_interval(day, "09:00"))
    assert overlaps(nine, slot_interval(day, "09:15"))
    assert overlaps(slot_interval(day, "08:45"), nine)
    assert not overlaps(nine, slot_interval(day, "09:30"))
    assert not overlaps(slot_interval(day, "08:30"), nine)


def test_overlaps_across_midnight():
    """A 23:45 slot collides with a 00:00 slot the next day."""
    late = slot_interval(date(2030, 3, 10), "23:45")

    assert overlaps(late, slot_interval(date(2030, 3, 11), "00:00"))
    assert not overlaps(late, slot_interval(date(2030, 3, 11), "00:15"))
    assert not overlaps(late, slot_interval(date(2030, 3, 10), "00:00"))
