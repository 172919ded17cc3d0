import multiprocessing
import threading
import time
from datetime import datetime, timedelta
from decimal import Decimal
from unittest import mock

import pytest

from app import create_app
from models import db
from models.booking import Booking
from models.user import User
from services import bookings as booking_service
from services import facilities as facility_service
from services import store as store_module
from services.errors import (
    CancellationWindowExpired,
    ConflictError,
    Forbidden,
    ScheduleClosedError,
    TimeOverflow,
    ValidationError,
)
from tests.conftest import MONDAY, NOW, TUESDAY, SqliteConfig


def book(user, facility, sport, start, duration, day=MONDAY, court="Court 1", now=NOW, **extra):
    return booking_service.create_booking(
        user, facility.id, sport.id, court, day, start, duration, now=now, **extra
    )


def test_end_to_end_scenario(player, other_player, facility, sport):
    a, err = book(player, facility, sport, "10:00", 2)
    assert err is None
    assert str(a.end_time) == "12:00"
    assert a.total_amount == Decimal("1000.00")
    assert a.status == "pending"

    b, err = book(other_player, facility, sport, "11:00", 1)
    assert b is None
    assert isinstance(err, ConflictError)
    assert err.http_status == 409
    assert [c["id"] for c in err.details["conflicts"]] == [a.id]
    assert err.details["requested"] == {"start_time": "11:00", "end_time": "12:00"}

    c, err = book(other_player, facility, sport, "12:00", 1)
    assert err is None
    assert str(c.start_time) == "12:00"

    result, err = booking_service.cancel_booking(a.id, player, now=NOW)
    assert err is None
    assert result["status"] == "cancelled"
    assert result["refund_amount"] == 1000.0
    assert result["payment_status"] == "refunded"

    # the cancelled range is free again
    again, err = book(other_player, facility, sport, "10:00", 1)
    assert err is None


def test_cancel_inside_window_is_refused(player, facility, sport):
    booking, _ = book(player, facility, sport, "12:00", 1)

    result, err = booking_service.cancel_booking(booking.id, player, now=datetime(2024, 1, 1, 0, 0))
    assert result is None
    assert isinstance(err, CancellationWindowExpired)
    assert err.http_status == 403
    assert db.session.get(Booking, booking.id).status == "pending"


def test_owner_cancel_inside_window_without_refund(player, owner, facility, sport):
    booking, _ = book(player, facility, sport, "12:00", 1)

    updated, err = booking_service.update_booking_status(
        booking.id, owner, "cancelled", reason="pitch flooded", now=datetime(2024, 1, 1, 9, 0)
    )
    assert err is None
    assert updated.status == "cancelled"
    assert updated.refund_amount == Decimal("0.00")
    assert updated.cancelled_by == owner.id


def test_cancel_by_stranger_forbidden(player, other_player, facility, sport):
    booking, _ = book(player, facility, sport, "12:00", 1)
    _, err = booking_service.cancel_booking(booking.id, other_player, now=NOW)
    assert isinstance(err, Forbidden)


def test_status_flow(player, owner, facility, sport):
    booking, _ = book(player, facility, sport, "12:00", 1)

    _, err = booking_service.update_booking_status(booking.id, owner, "completed", now=NOW)
    assert err.kind == "invalid_transition"

    confirmed, err = booking_service.update_booking_status(booking.id, owner, "confirmed", notes="paid at desk", now=NOW)
    assert err is None
    assert confirmed.notes == "paid at desk"

    _, err = booking_service.update_booking_status(booking.id, owner, "completed", now=NOW)
    assert err.kind == "invalid_transition"

    done, err = booking_service.update_booking_status(booking.id, owner, "no_show", now=datetime(2024, 1, 1, 12, 30))
    assert err is None
    assert done.status == "no_show"


def test_player_cannot_update_status(player, facility, sport):
    booking, _ = book(player, facility, sport, "12:00", 1)
    _, err = booking_service.update_booking_status(booking.id, player, "confirmed", now=NOW)
    assert isinstance(err, Forbidden)


def test_closed_day(player, facility, sport):
    _, err = book(player, facility, sport, "10:00", 1, day=TUESDAY)
    assert isinstance(err, ScheduleClosedError)
    assert err.details["weekday"] == "tuesday"


def test_outside_operating_hours(player, facility, sport):
    _, err = book(player, facility, sport, "21:00", 2)
    assert isinstance(err, ScheduleClosedError)
    _, err = book(player, facility, sport, "05:00", 1)
    assert isinstance(err, ScheduleClosedError)


def test_crossing_midnight(player, facility, sport):
    _, err = book(player, facility, sport, "23:00", 2)
    assert isinstance(err, TimeOverflow)


@pytest.mark.parametrize("duration", [5, 0.25, "abc", 1.01, "1e800000"])
def test_duration_outside_limits(player, facility, sport, duration):
    _, err = book(player, facility, sport, "10:00", duration)
    assert isinstance(err, ValidationError)
    assert err.field == "duration"


def test_half_hour_booking_below_facility_minimum(player, facility, sport):
    _, err = book(player, facility, sport, "10:00", 0.5)
    assert isinstance(err, ValidationError)
    assert err.details["min_hours"] == 1


def test_cannot_book_started_slot(player, facility, sport):
    _, err = book(player, facility, sport, "10:00", 1, now=datetime(2024, 1, 1, 10, 0))
    assert isinstance(err, ValidationError)
    assert err.field == "start_time"


def test_advance_booking_limit(player, facility, sport):
    _, err = book(player, facility, sport, "10:00", 1, day=MONDAY + timedelta(days=7))
    assert isinstance(err, ValidationError)
    assert err.field == "date"


def test_unknown_court(player, facility, sport):
    _, err = book(player, facility, sport, "10:00", 1, court="Court 9")
    assert err.field == "court"


def test_players_and_requests_validated(player, facility, sport):
    _, err = book(player, facility, sport, "10:00", 1, special_requests="x" * 501)
    assert err.field == "special_requests"
    _, err = book(player, facility, sport, "10:00", 1, players=[{"email": "a@b.c"}])
    assert err.field == "players.name"

    booking, err = book(player, facility, sport, "10:00", 1, players=[{"name": "Asha", "email": "ASHA@X.IN"}])
    assert err is None
    assert booking.players == [{"name": "Asha", "email": "asha@x.in", "phone": None}]


def test_auto_confirm(player, owner, facility, sport):
    _, err = facility_service.update_policies(facility.id, owner, {"auto_confirm": True})
    assert err is None
    booking, _ = book(player, facility, sport, "10:00", 1)
    assert booking.status == "confirmed"


def test_rate_change_does_not_reprice(player, owner, facility, court, sport):
    first, _ = book(player, facility, sport, "10:00", 2)

    _, err = facility_service.update_court(facility.id, court.id, owner, {"hourly_rate": 800})
    assert err is None

    second, _ = book(player, facility, sport, "14:00", 1)
    assert db.session.get(Booking, first.id).total_amount == Decimal("1000.00")
    assert second.total_amount == Decimal("800.00")


def test_availability(player, facility, sport):
    before, err = booking_service.check_availability(facility.id, MONDAY, now=NOW)
    assert err is None
    assert before["is_open"] is True
    assert before["weekday"] == "monday"
    assert len(before["slots"]) == 16
    assert all(s["available"] for s in before["slots"])

    book(player, facility, sport, "10:00", 2)

    after, _ = booking_service.check_availability(facility.id, MONDAY, now=NOW)
    by_start = {s["start"]: s for s in after["slots"]}
    assert not by_start["10:00"]["available"]
    assert not by_start["11:00"]["available"]
    assert by_start["12:00"]["available"]
    assert by_start["12:00"]["courts"] == ["Court 1"]
    assert [b["start_time"] for b in after["active_bookings"]] == ["10:00"]

    # read only: asking again gives the same answer
    assert booking_service.check_availability(facility.id, MONDAY, now=NOW)[0] == after


def test_availability_marks_started_slots(facility):
    result, _ = booking_service.check_availability(facility.id, MONDAY, now=datetime(2024, 1, 1, 12, 30))
    by_start = {s["start"]: s for s in result["slots"]}
    assert not by_start["12:00"]["available"]
    assert by_start["13:00"]["available"]


def test_availability_on_closed_day(facility):
    result, err = booking_service.check_availability(facility.id, TUESDAY, now=NOW)
    assert err is None
    assert result["is_open"] is False
    assert result["window"] is None
    assert result["slots"] == []


def test_availability_unknown_facility(ctx):
    _, err = booking_service.check_availability(4242, MONDAY, now=NOW)
    assert err.kind == "not_found"


@pytest.mark.parametrize("facility_id", [[1, 2], "abc", 2**63, -1, 1.5])
def test_malformed_facility_id(player, facility, sport, facility_id):
    _, err = booking_service.create_booking(
        player, facility_id, sport.id, "Court 1", MONDAY, "10:00", 1, now=NOW
    )
    assert isinstance(err, ValidationError)
    assert err.field == "facility"

    _, err = booking_service.check_availability(facility_id, MONDAY, now=NOW)
    assert err.kind == "validation_error"


def test_booking_id_beyond_key_range(player, facility, sport):
    _, err = booking_service.get_booking(99999999999999999999, player)
    assert err.field == "booking_id"
    _, err = booking_service.cancel_booking(2**64, player, now=NOW)
    assert err.kind == "validation_error"


def test_complete_past_bookings(player, owner, facility, sport):
    booking, _ = book(player, facility, sport, "10:00", 1)
    booking_service.update_booking_status(booking.id, owner, "confirmed", now=NOW)

    count, err = booking_service.complete_past_bookings(now=datetime(2024, 1, 1, 10, 30))
    assert err is None
    assert count == 0

    count, _ = booking_service.complete_past_bookings(now=datetime(2024, 1, 1, 11, 0))
    assert count == 1
    assert db.session.get(Booking, booking.id).status == "completed"


def test_listing(player, other_player, owner, facility, sport):
    book(player, facility, sport, "10:00", 1)
    book(other_player, facility, sport, "12:00", 1)

    mine, _ = booking_service.list_user_bookings(player)
    assert len(mine) == 1

    all_rows, _ = booking_service.list_operator_bookings(owner, day="2024-01-01")
    assert len(all_rows) == 2

    stranger_view, _ = booking_service.list_operator_bookings(player)
    assert stranger_view == []


def test_concurrent_requests_for_one_slot(app, facility, sport):
    player_ids = []
    for i in range(6):
        user = User(email=f"p{i}@example.com", password_hash="x")
        db.session.add(user)
        db.session.commit()
        player_ids.append(user.id)
    facility_id, sport_id = facility.id, sport.id

    barrier = threading.Barrier(len(player_ids))
    results = []
    lock = threading.Lock()

    def attempt(user_id):
        with app.app_context():
            user = db.session.get(User, user_id)
            barrier.wait()
            booking, err = booking_service.create_booking(
                user, facility_id, sport_id, "Court 1", MONDAY, "10:00", 1, now=NOW
            )
            with lock:
                results.append((booking.id if booking else None, err.kind if err else None))

    threads = [threading.Thread(target=attempt, args=(uid,)) for uid in player_ids]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    created = [r for r in results if r[0] is not None]
    rejected = [r for r in results if r[1] is not None]
    assert len(created) == 1
    assert len(rejected) == len(player_ids) - 1
    assert {kind for _, kind in rejected} == {"conflict"}
    assert Booking.query.filter_by(date=MONDAY, start_minute=600).count() == 1


def _book_from_another_process(db_uri, user_id, facility_id, sport_id, barrier, results):
    class _Config(SqliteConfig):
        SQLALCHEMY_DATABASE_URI = db_uri
        CREATE_TABLES = False

    app = create_app(_Config)
    real_find_conflicts = store_module.find_conflicts

    def slow_find_conflicts(*args, **kwargs):
        # widens the gap between the conflict check and the insert
        time.sleep(0.3)
        return real_find_conflicts(*args, **kwargs)

    with app.app_context(), mock.patch.object(store_module, "find_conflicts", slow_find_conflicts):
        user = db.session.get(User, user_id)
        barrier.wait(timeout=30)
        _, err = booking_service.create_booking(
            user, facility_id, sport_id, "Court 1", MONDAY, "10:00", 1, now=NOW
        )
        results.put(err.kind if err else "ok")


def test_requests_from_separate_processes_for_one_slot(app, facility, sport):
    user_ids = []
    for i in range(2):
        user = User(email=f"worker{i}@example.com", password_hash="x")
        db.session.add(user)
        db.session.commit()
        user_ids.append(user.id)

    mp = multiprocessing.get_context("spawn")
    barrier = mp.Barrier(len(user_ids))
    results = mp.Queue()
    workers = [
        mp.Process(
            target=_book_from_another_process,
            args=(app.config["SQLALCHEMY_DATABASE_URI"], uid, facility.id, sport.id, barrier, results),
        )
        for uid in user_ids
    ]
    for w in workers:
        w.start()
    outcomes = sorted(results.get(timeout=60) for _ in workers)
    for w in workers:
        w.join(timeout=30)

    assert outcomes == ["conflict", "ok"]
    assert Booking.query.filter_by(date=MONDAY, start_minute=600).count() == 1


def test_monday_walkthrough(player, other_player, owner, facility, sport):
    a, err = book(player, facility, sport, "10:00", 1)
    assert err is None
    assert a.total_amount == Decimal("500.00")
    assert a.status == "pending"

    _, err = book(other_player, facility, sport, "10:30", 1)
    assert isinstance(err, ConflictError)

    c, err = book(other_player, facility, sport, "11:00", 1)
    assert err is None

    _, err = booking_service.cancel_booking(a.id, player, now=datetime(2023, 12, 31, 23, 30))
    assert isinstance(err, CancellationWindowExpired)

    result, err = booking_service.cancel_booking(a.id, player, now=datetime(2023, 12, 30, 9, 0))
    assert err is None
    assert result["refund_amount"] == 500.0

    # the operator entry point inside the window cancels with no refund
    updated, err = booking_service.update_booking_status(c.id, owner, "cancelled", now=datetime(2023, 12, 31, 23, 30))
    assert err is None
    assert updated.refund_amount == Decimal("0.00")
