"""
Facility configuration: operating hours, booking policy, courts and sports.

Schedules are normalised to ``Weekday`` here, at write time. Court renames
are refused because bookings match courts by name.
"""

import logging
from decimal import Decimal, InvalidOperation

from flask import current_app
from models import db
from models.court import COURT_TYPES, Court
from models.facility import Facility, OperatingHours
from models.sport import Sport
from services.common import (
    as_int,
    clean_text,
    engine_operation,
    get_store,
    load_facility,
    require_operator,
)
from services.errors import DuplicateError, Forbidden, NotFound, ValidationError
from services.operating_hours import normalize_schedule
from services.timeunit import parse_duration

logger = logging.getLogger(__name__)

# Numeric(10, 2) on courts.hourly_rate
MAX_RATE = Decimal("99999999.99")
MAX_REFUND_WINDOW_HOURS = 24 * 365
MAX_ADVANCE_BOOKING_DAYS = 365


def _normalize_name(text: str) -> str:
    return (text or "").strip().lower()


def _rate(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError("hourly_rate is required", field="hourly_rate")
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("hourly_rate must be a number", field="hourly_rate")
    if not rate.is_finite() or rate < 0:
        raise ValidationError("hourly_rate must be zero or more", field="hourly_rate")
    if rate > MAX_RATE:
        raise ValidationError(f"hourly_rate cannot exceed {MAX_RATE}", field="hourly_rate")
    return rate.quantize(Decimal("0.01"))


def _bool(value, field):
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false", field=field)
    return value


def _non_negative(value, field, high):
    return as_int(value, field, low=0, high=high)


# ---------- sports ----------
@engine_operation
def create_sport(acting_user, name):
    if not acting_user.is_admin:
        raise Forbidden("Only admins can add sports")
    name = clean_text(name, "name", 60, required=True)
    if Sport.query.filter_by(name_normalized=_normalize_name(name)).first():
        raise DuplicateError("Sport already exists", field="name")
    sport = Sport(name=name, name_normalized=_normalize_name(name))
    sport, err = get_store().save(sport)
    if err:
        raise err
    return sport


@engine_operation
def list_sports():
    return Sport.query.filter_by(is_active=True).order_by(Sport.name.asc()).all()


# ---------- facilities ----------
@engine_operation
def create_facility(owner, data):
    if not owner.has_role("FACILITY_OWNER", "ADMIN"):
        raise Forbidden("Only facility owners can register facilities")

    facility = Facility(
        owner_user_id=owner.id,
        name=clean_text(data.get("name"), "name", 100, required=True),
        description=clean_text(data.get("description"), "description", 1000),
        address=clean_text(data.get("address"), "address", 255),
        city=clean_text(data.get("city"), "city", 80),
        refund_window_hours=current_app.config.get("REFUND_WINDOW_HOURS", 24),
        slot_minutes=current_app.config.get("DEFAULT_SLOT_MINUTES", 60),
    )
    _apply_policies(facility, data.get("policies") or {})
    if data.get("operating_hours"):
        _apply_schedule(facility, data["operating_hours"])

    facility, err = get_store().save(facility)
    if err:
        raise err
    logger.info("Facility %s registered by user %s", facility.id, owner.id)
    return facility


@engine_operation
def get_facility(facility_id):
    return load_facility(facility_id)


def _apply_schedule(facility, payload):
    schedule = normalize_schedule(payload)
    existing = {row.weekday: row for row in facility.operating_hours}

    for day, hours in schedule.items():
        row = existing.pop(int(day), None)
        if row is None:
            row = OperatingHours(weekday=int(day))
            facility.operating_hours.append(row)
        row.is_open = hours.is_open
        row.open_minute = hours.open.minutes if hours.open else None
        row.close_minute = hours.close.minutes if hours.close else None

    # Days left out are no longer configured, which reads as closed
    for row in existing.values():
        facility.operating_hours.remove(row)


@engine_operation
def set_operating_hours(facility_id, acting_user, payload):
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)
    _apply_schedule(facility, payload)

    facility, err = get_store().save(facility)
    if err:
        raise err
    return facility


def _apply_policies(facility, data):
    if "cancellation_policy" in data:
        facility.cancellation_policy = clean_text(data["cancellation_policy"], "cancellation_policy", 1000)
    if "refund_window_hours" in data:
        facility.refund_window_hours = _non_negative(
            data["refund_window_hours"], "refund_window_hours", MAX_REFUND_WINDOW_HOURS
        )
    if "advance_booking_days" in data:
        facility.advance_booking_days = _non_negative(
            data["advance_booking_days"], "advance_booking_days", MAX_ADVANCE_BOOKING_DAYS
        )
    if "min_booking_hours" in data:
        facility.min_booking_minutes = parse_duration(data["min_booking_hours"], field="min_booking_hours")
    if "max_booking_hours" in data:
        facility.max_booking_minutes = parse_duration(data["max_booking_hours"], field="max_booking_hours")
    if "slot_minutes" in data:
        facility.slot_minutes = as_int(data["slot_minutes"], "slot_minutes", low=15, high=480)
    if "auto_confirm" in data:
        facility.auto_confirm = _bool(data["auto_confirm"], "auto_confirm")

    low = facility.min_booking_minutes if facility.min_booking_minutes is not None else 60
    high = facility.max_booking_minutes if facility.max_booking_minutes is not None else 240
    if low > high:
        raise ValidationError("min_booking_hours cannot exceed max_booking_hours", field="min_booking_hours")


@engine_operation
def update_policies(facility_id, acting_user, data):
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)
    if not isinstance(data, dict):
        raise ValidationError("policies must be an object", field="policies")
    _apply_policies(facility, data)

    facility, err = get_store().save(facility)
    if err:
        raise err
    return facility


# ---------- courts ----------
@engine_operation
def add_court(facility_id, sport_id, acting_user, data):
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)

    sport = db.session.get(Sport, as_int(sport_id, "sport"))
    if sport is None or not sport.is_active:
        raise NotFound("Sport not found", sport_id=sport_id)

    name = clean_text(data.get("name"), "name", 80, required=True)
    if Court.query.filter_by(facility_id=facility.id, sport_id=sport.id, name=name).first():
        raise DuplicateError("Court name already exists for this sport", field="name")
    court_type = data.get("type") or "indoor"
    if court_type not in COURT_TYPES:
        raise ValidationError("type must be indoor or outdoor", field="type")

    court = Court(
        facility_id=facility.id,
        sport_id=sport.id,
        name=name,
        court_type=court_type,
        hourly_rate=_rate(data.get("hourly_rate")),
        is_active=True,
    )
    court, err = get_store().save(court)
    if err:
        raise err
    return court


@engine_operation
def update_court(facility_id, court_id, acting_user, data):
    """
    Changes rate, type or the active flag. Existing bookings keep the price
    and court snapshot they were created with.
    """
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)

    court = Court.query.filter_by(id=as_int(court_id, "court"), facility_id=facility.id).first()
    if court is None:
        raise NotFound("Court not found", court_id=court_id)

    if "name" in data and data["name"] != court.name:
        raise ValidationError("Courts cannot be renamed; add a new court instead", field="name")
    if "hourly_rate" in data:
        court.hourly_rate = _rate(data["hourly_rate"])
    if "type" in data:
        if data["type"] not in COURT_TYPES:
            raise ValidationError("type must be indoor or outdoor", field="type")
        court.court_type = data["type"]
    if "is_active" in data:
        court.is_active = _bool(data["is_active"], "is_active")

    court, err = get_store().save(court)
    if err:
        raise err
    return court
