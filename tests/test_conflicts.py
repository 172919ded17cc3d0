from datetime import date
from types import SimpleNamespace

import pytest

from services.conflicts import Candidate, describe, find_conflicts, has_conflict, overlaps
from services.timeunit import WallTime

DAY = date(2024, 1, 1)


def t(text):
    return WallTime.parse(text).minutes


def booking(start, end, court="Court 1", status="confirmed", day=DAY, facility_id=1, id=1):
    return SimpleNamespace(
        id=id, facility_id=facility_id, court_name=court, date=day,
        start_minute=t(start), end_minute=t(end), status=status, conflict_kind="booking",
    )


def block(start, end, court="Court 1", active=True, id=99):
    return SimpleNamespace(
        id=id, facility_id=1, court_name=court, date=DAY,
        start_minute=t(start), end_minute=t(end), is_active=active, conflict_kind="blocked",
    )


def candidate(start, end, court="Court 1"):
    return Candidate(1, court, DAY, WallTime.parse(start), WallTime.parse(end))


@pytest.mark.parametrize("a,b,expected", [
    (("10:00", "12:00"), ("11:00", "12:00"), True),
    (("10:00", "12:00"), ("12:00", "13:00"), False),   # touching
    (("10:00", "12:00"), ("09:00", "10:00"), False),   # touching before
    (("10:00", "12:00"), ("10:30", "11:00"), True),    # nested
    (("10:00", "11:00"), ("09:00", "13:00"), True),    # enclosing
    (("10:00", "11:00"), ("10:00", "11:00"), True),    # identical
    (("10:00", "11:00"), ("14:00", "15:00"), False),
])
def test_overlaps_is_symmetric(a, b, expected):
    s1, e1 = t(a[0]), t(a[1])
    s2, e2 = t(b[0]), t(b[1])
    assert overlaps(s1, e1, s2, e2) is expected
    assert overlaps(s2, e2, s1, e1) is expected


def test_conflict_with_active_booking():
    existing = booking("10:00", "12:00", id=7)
    found = find_conflicts(candidate("11:00", "12:00"), [existing])
    assert found == [existing]


def test_back_to_back_is_free():
    assert not has_conflict(candidate("12:00", "13:00"), [booking("10:00", "12:00")])


@pytest.mark.parametrize("status", ["cancelled", "completed", "no_show"])
def test_inactive_statuses_ignored(status):
    assert not has_conflict(candidate("10:00", "11:00"), [booking("10:00", "11:00", status=status)])


def test_pending_counts_as_active():
    assert has_conflict(candidate("10:00", "11:00"), [booking("10:00", "11:00", status="pending")])


def test_other_court_or_day_ignored():
    others = [
        booking("10:00", "11:00", court="Court 2"),
        booking("10:00", "11:00", day=date(2024, 1, 2)),
        booking("10:00", "11:00", facility_id=2),
    ]
    assert not has_conflict(candidate("10:00", "11:00"), others)


def test_active_block_conflicts():
    blk = block("15:00", "17:00")
    assert find_conflicts(candidate("16:00", "17:00"), blocks=[blk]) == [blk]


def test_removed_block_ignored():
    assert not has_conflict(candidate("16:00", "17:00"), blocks=[block("15:00", "17:00", active=False)])


def test_find_conflicts_returns_all_hits():
    records = [booking("09:00", "10:30", id=1), booking("10:30", "12:00", id=2), booking("13:00", "14:00", id=3)]
    found = find_conflicts(candidate("10:00", "11:00"), records, [block("10:45", "11:15")])
    assert [r.id for r in found] == [1, 2, 99]


def test_describe():
    assert describe(block("15:00", "17:00", id=4)) == {
        "type": "blocked",
        "id": 4,
        "court": "Court 1",
        "start_time": "15:00",
        "end_time": "17:00",
    }
