import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, DecimalException

from services.errors import InvalidTimeFormat, TimeOverflow, ValidationError

MINUTES_PER_DAY = 24 * 60

# Booking durations are bounded to half an hour .. eight hours
MIN_DURATION_MINUTES = 30
MAX_DURATION_MINUTES = 8 * 60

_HHMM = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


@dataclass(frozen=True, order=True)
class WallTime:
    """A wall-clock time within one day, stored as minutes since midnight."""

    minutes: int

    def __post_init__(self):
        if not isinstance(self.minutes, int) or isinstance(self.minutes, bool):
            raise InvalidTimeFormat("Time must be a whole number of minutes")
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise InvalidTimeFormat(f"Time out of range: {self.minutes} minutes")

    @classmethod
    def parse(cls, text, field: str = "time") -> "WallTime":
        if not isinstance(text, str):
            raise InvalidTimeFormat("Time must be a string in HH:MM format", field=field)
        match = _HHMM.match(text.strip())
        if not match:
            raise InvalidTimeFormat(f"Invalid time '{text}'. Use HH:MM", field=field)
        return cls(int(match.group(1)) * 60 + int(match.group(2)))

    def add(self, minutes: int) -> "WallTime":
        total = self.minutes + minutes
        if total >= MINUTES_PER_DAY or total < 0:
            raise TimeOverflow(
                f"{self} plus {minutes} minutes crosses midnight",
                start=str(self),
                duration_minutes=minutes,
            )
        return WallTime(total)

    def to_time(self) -> time:
        return time(self.minutes // 60, self.minutes % 60)

    def __str__(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"


def parse_duration(hours, field: str = "duration") -> int:
    """
    Converts a duration in hours (e.g. 1, 1.5, "2") to whole minutes.
    Raises ValidationError for non-numeric, fractional-minute or out of range values.
    """
    if isinstance(hours, bool) or hours is None:
        raise ValidationError("Duration is required", field=field)
    try:
        minutes = Decimal(str(hours)) * 60
    # DecimalException also covers Overflow from exponents past Emax
    except (DecimalException, ValueError):
        raise ValidationError("Duration must be a number of hours", field=field)

    if not minutes.is_finite():
        raise ValidationError("Duration must be a number of hours", field=field)
    # bounds before int(): "1e800000" would otherwise expand to 800k digits
    if not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
        raise ValidationError("Duration must be between 0.5 and 8 hours", field=field)
    if minutes != minutes.to_integral_value():
        raise ValidationError("Duration must be a whole number of minutes", field=field)
    return int(minutes)


def parse_day(value, field: str = "date") -> date:
    """Accepts a date, a datetime or an ISO string ("2024-01-01" or a full timestamp)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Valid date is required (YYYY-MM-DD)", field=field)
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD", field=field)
