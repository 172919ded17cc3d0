from datetime import date

import pytest

from services.errors import ValidationError
from services.operating_hours import (
    DayHours,
    Weekday,
    normalize_schedule,
    normalize_weekday,
    resolve_hours,
)
from services.timeunit import WallTime

MONDAY = date(2024, 1, 1)
SUNDAY = date(2024, 1, 7)


def test_weekday_of_date():
    assert Weekday.of(MONDAY) is Weekday.MON
    assert Weekday.of(SUNDAY) is Weekday.SUN
    assert Weekday.MON.full_name == "monday"


@pytest.mark.parametrize("key", ["monday", "Monday", " MON ", "mon", 0, Weekday.MON])
def test_normalize_weekday_spellings(key):
    assert normalize_weekday(key) is Weekday.MON


@pytest.mark.parametrize("key", ["mondays", "lunes", 7, -1, None, True])
def test_normalize_weekday_rejects(key):
    with pytest.raises(ValidationError):
        normalize_weekday(key)


def test_normalize_schedule():
    schedule = normalize_schedule({
        "Monday": {"open": "06:00", "close": "22:00"},
        "sun": {"isOpen": False},
    })
    assert schedule[Weekday.MON] == DayHours(WallTime(360), WallTime(1320))
    assert schedule[Weekday.SUN].is_open is False
    assert Weekday.TUE not in schedule


def test_duplicate_day_spellings_rejected():
    with pytest.raises(ValidationError):
        normalize_schedule({
            "monday": {"open": "06:00", "close": "22:00"},
            "mon": {"open": "08:00", "close": "20:00"},
        })


def test_open_must_precede_close():
    with pytest.raises(ValidationError):
        normalize_schedule({"monday": {"open": "22:00", "close": "06:00"}})
    with pytest.raises(ValidationError):
        normalize_schedule({"monday": {"open": "10:00", "close": "10:00"}})


def test_open_day_needs_both_times():
    with pytest.raises(ValidationError):
        normalize_schedule({"monday": {"open": "06:00"}})


def test_empty_schedule_rejected():
    with pytest.raises(ValidationError):
        normalize_schedule({})


def test_resolve_open_day():
    schedule = normalize_schedule({"monday": {"open": "06:00", "close": "22:00"}})
    window = resolve_hours(schedule, MONDAY)
    assert window.is_open
    assert str(window.open) == "06:00"
    assert str(window.close) == "22:00"
    assert window.to_dict() == {"open": "06:00", "close": "22:00"}


def test_missing_day_resolves_closed():
    schedule = normalize_schedule({"monday": {"open": "06:00", "close": "22:00"}})
    window = resolve_hours(schedule, SUNDAY)
    assert not window.is_open
    assert window.to_dict() is None


def test_explicitly_closed_day():
    schedule = normalize_schedule({"sunday": {"is_open": False}})
    assert not resolve_hours(schedule, SUNDAY).is_open


def test_window_contains_is_inclusive_of_edges():
    window = resolve_hours(normalize_schedule({"monday": {"open": "06:00", "close": "22:00"}}), MONDAY)
    assert window.contains(WallTime.parse("06:00"), WallTime.parse("07:00"))
    assert window.contains(WallTime.parse("21:00"), WallTime.parse("22:00"))
    assert not window.contains(WallTime.parse("05:30"), WallTime.parse("06:30"))
    assert not window.contains(WallTime.parse("21:00"), WallTime.parse("22:30"))
