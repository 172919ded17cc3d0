"""
Operating hours per weekday and their resolution for a calendar date.

Schedules are keyed by ``Weekday`` only. Free-form day names coming from
clients are normalised once, when the schedule is written; reads never try
alternative spellings.
"""

from dataclasses import dataclass
from datetime import date
from enum import IntEnum
from typing import Mapping, Optional

from services.errors import ValidationError
from services.timeunit import WallTime


class Weekday(IntEnum):
    MON = 0
    TUE = 1
    WED = 2
    THU = 3
    FRI = 4
    SAT = 5
    SUN = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        # date.weekday() is 0=Monday regardless of locale
        return cls(day.weekday())

    @property
    def full_name(self) -> str:
        return _FULL_NAMES[self]


_FULL_NAMES = {
    Weekday.MON: "monday",
    Weekday.TUE: "tuesday",
    Weekday.WED: "wednesday",
    Weekday.THU: "thursday",
    Weekday.FRI: "friday",
    Weekday.SAT: "saturday",
    Weekday.SUN: "sunday",
}

_ALIASES = {name: day for day, name in _FULL_NAMES.items()}
_ALIASES.update({name[:3]: day for day, name in _FULL_NAMES.items()})


def normalize_weekday(key) -> Weekday:
    if isinstance(key, Weekday):
        return key
    if isinstance(key, int) and not isinstance(key, bool):
        if 0 <= key <= 6:
            return Weekday(key)
        raise ValidationError(f"Unknown weekday {key}", field="operating_hours")
    if isinstance(key, str):
        day = _ALIASES.get(key.strip().lower())
        if day is not None:
            return day
    raise ValidationError(f"Unknown weekday '{key}'", field="operating_hours")


@dataclass(frozen=True)
class DayHours:
    open: Optional[WallTime]
    close: Optional[WallTime]
    is_open: bool = True

    def __post_init__(self):
        if not self.is_open:
            return
        if self.open is None or self.close is None:
            raise ValidationError("Open days need both open and close times", field="operating_hours")
        if self.open >= self.close:
            raise ValidationError("Opening time must be before closing time", field="operating_hours")


@dataclass(frozen=True)
class OpeningWindow:
    is_open: bool
    open: Optional[WallTime] = None
    close: Optional[WallTime] = None

    @classmethod
    def closed(cls) -> "OpeningWindow":
        return cls(is_open=False)

    def contains(self, start: WallTime, end: WallTime) -> bool:
        if not self.is_open:
            return False
        return self.open <= start and end <= self.close

    def to_dict(self):
        if not self.is_open:
            return None
        return {"open": str(self.open), "close": str(self.close)}


def parse_day_hours(entry) -> DayHours:
    if not isinstance(entry, Mapping):
        raise ValidationError("Each weekday needs an object with open/close/is_open", field="operating_hours")

    is_open = entry.get("is_open", entry.get("isOpen", True))
    if not isinstance(is_open, bool):
        raise ValidationError("is_open must be a boolean", field="operating_hours")

    open_raw = entry.get("open")
    close_raw = entry.get("close")
    open_time = WallTime.parse(open_raw, field="open") if open_raw else None
    close_time = WallTime.parse(close_raw, field="close") if close_raw else None
    return DayHours(open=open_time, close=close_time, is_open=is_open)


def normalize_schedule(payload) -> dict:
    """
    Turns a client schedule such as {"monday": {"open": "06:00", "close": "22:00"}}
    into {Weekday.MON: DayHours(...)}. Duplicate spellings of the same day are rejected.
    """
    if not isinstance(payload, Mapping) or not payload:
        raise ValidationError("operating_hours must be a non-empty object", field="operating_hours")

    schedule = {}
    for key, entry in payload.items():
        day = normalize_weekday(key)
        if day in schedule:
            raise ValidationError(f"{day.full_name} given more than once", field="operating_hours")
        schedule[day] = parse_day_hours(entry)
    return schedule


def resolve_hours(schedule: Mapping[Weekday, DayHours], day: date) -> OpeningWindow:
    # An unconfigured weekday is a closed day, not an error.
    hours = schedule.get(Weekday.of(day))
    if hours is None or not hours.is_open:
        return OpeningWindow.closed()
    return OpeningWindow(is_open=True, open=hours.open, close=hours.close)
