"""
Overlap detection between a requested interval and existing reservations.

This is the only place the overlap rule lives. Booking creation (inside the
reservation store) and availability queries both go through it.

Records are anything exposing ``facility_id``, ``court_name``, ``date``,
``start_minute`` and ``end_minute``; bookings also expose ``status`` and
blocked slots ``is_active``.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List

from services.lifecycle import ACTIVE_STATUSES
from services.timeunit import WallTime


def overlaps(s1: int, e1: int, s2: int, e2: int) -> bool:
    # Half-open intervals: [09:00,10:00) and [10:00,11:00) do not overlap.
    return s1 < e2 and e1 > s2


@dataclass(frozen=True)
class Candidate:
    facility_id: int
    court_name: str
    day: date
    start: WallTime
    end: WallTime

    def same_court_day(self, record) -> bool:
        return (
            record.facility_id == self.facility_id
            and record.court_name == self.court_name
            and record.date == self.day
        )

    def hits(self, record) -> bool:
        return self.same_court_day(record) and overlaps(
            self.start.minutes, self.end.minutes, record.start_minute, record.end_minute
        )


def active_bookings(bookings: Iterable) -> List:
    return [b for b in bookings if b.status in ACTIVE_STATUSES]


def active_blocks(blocks: Iterable) -> List:
    return [b for b in blocks if b.is_active]


def find_conflicts(candidate: Candidate, bookings: Iterable = (), blocks: Iterable = ()) -> List:
    """Returns every participating booking or block that overlaps the candidate."""
    found = [b for b in active_bookings(bookings) if candidate.hits(b)]
    found.extend(b for b in active_blocks(blocks) if candidate.hits(b))
    return found


def has_conflict(candidate: Candidate, bookings: Iterable = (), blocks: Iterable = ()) -> bool:
    return bool(find_conflicts(candidate, bookings, blocks))


def describe(record) -> dict:
    return {
        "type": getattr(record, "conflict_kind", "booking"),
        "id": record.id,
        "court": record.court_name,
        "start_time": str(WallTime(record.start_minute)),
        "end_time": str(WallTime(record.end_minute)),
    }
