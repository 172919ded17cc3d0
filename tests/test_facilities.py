from unittest import mock

import pytest

from services import bookings as booking_service
from services import facilities as facility_service
from services.errors import DuplicateError, Forbidden, StoreUnavailable, ValidationError
from services.operating_hours import Weekday, resolve_hours
from services.store import ReservationStore
from tests.conftest import MONDAY, TUESDAY


def test_create_facility_defaults(owner):
    facility, err = facility_service.create_facility(owner, {"name": "North Courts"})
    assert err is None
    policies = facility.policies_dict()
    assert policies["refund_window_hours"] == 24
    assert policies["advance_booking_days"] == 7
    assert policies["min_booking_hours"] == 1
    assert policies["max_booking_hours"] == 4
    assert policies["slot_minutes"] == 60
    assert policies["auto_confirm"] is False
    # no hours configured: every day closed
    assert not resolve_hours(facility.schedule(), MONDAY).is_open


def test_players_cannot_register_facilities(player):
    _, err = facility_service.create_facility(player, {"name": "Mine"})
    assert isinstance(err, Forbidden)


def test_facility_name_required(owner):
    _, err = facility_service.create_facility(owner, {"name": "  "})
    assert err.field == "name"


def test_replace_operating_hours(owner, facility):
    updated, err = facility_service.set_operating_hours(facility.id, owner, {
        "Tue": {"open": "08:00", "close": "20:00"},
        "wednesday": {"is_open": False},
    })
    assert err is None
    schedule = updated.schedule()
    assert set(schedule) == {Weekday.TUE, Weekday.WED}
    assert not resolve_hours(schedule, MONDAY).is_open
    assert str(resolve_hours(schedule, TUESDAY).open) == "08:00"
    assert updated.to_dict()["operating_hours"]["tuesday"] == {"open": "08:00", "close": "20:00", "is_open": True}


def test_invalid_hours_leave_schedule_untouched(owner, facility):
    _, err = facility_service.set_operating_hours(facility.id, owner, {"monday": {"open": "23:00", "close": "07:00"}})
    assert isinstance(err, ValidationError)
    assert resolve_hours(facility.schedule(), MONDAY).is_open


def test_hours_need_operator(other_player, facility):
    _, err = facility_service.set_operating_hours(facility.id, other_player, {"monday": {"is_open": False}})
    assert isinstance(err, Forbidden)


def test_update_policies(owner, facility):
    updated, err = facility_service.update_policies(facility.id, owner, {
        "refund_window_hours": 12,
        "min_booking_hours": 0.5,
        "max_booking_hours": 2,
        "cancellation_policy": "Full refund up to 12 hours before",
    })
    assert err is None
    assert updated.refund_window_hours == 12
    assert updated.min_booking_minutes == 30
    assert updated.max_booking_minutes == 120


def test_policy_min_above_max_rejected(owner, facility):
    _, err = facility_service.update_policies(facility.id, owner, {"min_booking_hours": 4, "max_booking_hours": 2})
    assert err.field == "min_booking_hours"


def test_policy_slot_minutes_bounds(owner, facility):
    _, err = facility_service.update_policies(facility.id, owner, {"slot_minutes": 5})
    assert err.field == "slot_minutes"


def test_duplicate_court_name(owner, facility, sport):
    _, err = facility_service.add_court(facility.id, sport.id, owner, {"name": "Court 1", "hourly_rate": 300})
    assert isinstance(err, DuplicateError)


def test_court_validation(owner, facility, sport):
    _, err = facility_service.add_court(facility.id, sport.id, owner, {"name": "Court 2", "hourly_rate": -5})
    assert err.field == "hourly_rate"
    _, err = facility_service.add_court(facility.id, sport.id, owner, {"name": "Court 2", "hourly_rate": 5, "type": "roof"})
    assert err.field == "type"


def test_court_rename_refused(owner, facility, court):
    _, err = facility_service.update_court(facility.id, court.id, owner, {"name": "Centre Court"})
    assert err.field == "name"


def test_deactivated_court_not_bookable(owner, player, facility, court, sport):
    _, err = facility_service.update_court(facility.id, court.id, owner, {"is_active": False})
    assert err is None
    _, err = booking_service.create_booking(player, facility.id, sport.id, "Court 1", MONDAY, "10:00", 1)
    assert err.field == "court"


def test_sports(admin, owner):
    sport, err = facility_service.create_sport(admin, "Padel")
    assert err is None
    _, err = facility_service.create_sport(admin, " padel ")
    assert isinstance(err, DuplicateError)
    _, err = facility_service.create_sport(owner, "Squash")
    assert isinstance(err, Forbidden)

    sports, _ = facility_service.list_sports()
    assert [s.name for s in sports] == ["Padel"]


def test_add_court_commits_through_store(owner, facility, sport):
    unavailable = StoreUnavailable("Booking store is unavailable; try again")
    with mock.patch.object(ReservationStore, "save", return_value=(None, unavailable)) as save:
        _, err = facility_service.add_court(facility.id, sport.id, owner, {"name": "Court 2", "hourly_rate": 300})
    assert err is unavailable
    assert save.call_args.args[0].name == "Court 2"
    assert [c.name for c in facility.courts] == ["Court 1"]


@pytest.mark.parametrize("policies,field", [
    ({"refund_window_hours": 10**30}, "refund_window_hours"),
    ({"refund_window_hours": -1}, "refund_window_hours"),
    ({"advance_booking_days": 366}, "advance_booking_days"),
    ({"min_booking_hours": "1e800000"}, "min_booking_hours"),
    ({"slot_minutes": 2**64}, "slot_minutes"),
])
def test_policy_values_out_of_range(owner, facility, policies, field):
    _, err = facility_service.update_policies(facility.id, owner, policies)
    assert isinstance(err, ValidationError)
    assert err.field == field


@pytest.mark.parametrize("rate", ["1e30", "100000000", "1e800000"])
def test_court_rate_too_large(owner, facility, sport, rate):
    _, err = facility_service.add_court(facility.id, sport.id, owner, {"name": "Court 2", "hourly_rate": rate})
    assert err.field == "hourly_rate"
