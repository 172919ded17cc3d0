"""
Booking operations: availability, reservation, cancellation and status updates.

Each public function returns ``(result, error)``; see ``engine_operation``.
"""

import logging
from datetime import datetime, timedelta

from flask import current_app

from models import db
from models.booking import Booking
from models.facility import Facility
from services import lifecycle
from services.common import (
    as_int,
    clean_text,
    current_time,
    engine_operation,
    get_store,
    is_operator,
    load_facility,
    require_operator,
)
from services.conflicts import Candidate, has_conflict
from services.errors import Forbidden, ScheduleClosedError, ValidationError
from services.operating_hours import Weekday, resolve_hours
from services.slots import SlotRange
from services.timeunit import WallTime, parse_day, parse_duration

logger = logging.getLogger(__name__)


# ---------- availability ----------
@engine_operation
def check_availability(facility_id, day, court_name=None, sport_id=None, now=None):
    """
    Opening window, candidate slots and what already occupies the day.

    A slot is available when at least one matching court is free for the
    whole slot and the slot has not started yet. Read only.
    """
    day = parse_day(day)
    now = current_time(now)
    facility = load_facility(facility_id)

    courts = [c for c in facility.courts if c.is_active]
    if sport_id is not None:
        sport_id = as_int(sport_id, "sport")
        courts = [c for c in courts if c.sport_id == sport_id]
    if court_name is not None:
        courts = [c for c in courts if c.name == court_name]
        if not courts:
            raise ValidationError("Court not found or inactive", field="court")
    court_names = sorted({c.name for c in courts})

    window = resolve_hours(facility.schedule(), day)

    records, err = get_store().day_records(facility.id, day)
    if err:
        raise err
    bookings, blocks = records

    slots = []
    for start, end in SlotRange(window, facility.slot_minutes).intervals():
        free = []
        started = datetime.combine(day, start.to_time()) <= now
        if not started:
            for name in court_names:
                candidate = Candidate(facility.id, name, day, start, end)
                if not has_conflict(candidate, bookings, blocks):
                    free.append(name)
        slots.append({
            "start": str(start),
            "end": str(end),
            "available": bool(free),
            "courts": free,
        })

    wanted = set(court_names)
    return {
        "facility_id": facility.id,
        "date": day.isoformat(),
        "weekday": Weekday.of(day).full_name,
        "is_open": window.is_open,
        "window": window.to_dict(),
        "slot_minutes": facility.slot_minutes,
        "slots": slots,
        "active_bookings": [
            {
                "id": b.id,
                "court": b.court_name,
                "start_time": str(b.start_time),
                "end_time": str(b.end_time),
                "status": b.status,
            }
            for b in bookings
            if b.court_name in wanted
        ],
        "blocked_slots": [
            {
                "id": b.id,
                "court": b.court_name,
                "start_time": str(b.start_time),
                "end_time": str(b.end_time),
                "reason": b.reason,
            }
            for b in blocks
            if b.court_name in wanted
        ],
    }


# ---------- reservation ----------
def _clean_players(players):
    if players is None:
        return []
    if not isinstance(players, list):
        raise ValidationError("players must be a list", field="players")
    cleaned = []
    for p in players:
        if not isinstance(p, dict):
            raise ValidationError("Each player needs a name", field="players")
        name = clean_text(p.get("name"), "players.name", 100, required=True)
        email = clean_text(p.get("email"), "players.email", 255)
        cleaned.append({
            "name": name,
            "email": email.lower() if email else None,
            "phone": clean_text(p.get("phone"), "players.phone", 30),
        })
    return cleaned


@engine_operation
def create_booking(user, facility_id, sport_id, court_name, day, start_time, duration,
                   players=None, special_requests=None, now=None):
    """
    Validates the request against the facility's courts, policy and hours,
    prices it and reserves it atomically.
    """
    # Field validation first; nothing below touches the store until it passes
    sport_id = as_int(sport_id, "sport")
    court_name = clean_text(court_name, "court.name", 80, required=True)
    day = parse_day(day)
    start = WallTime.parse(start_time, field="start_time")
    minutes = parse_duration(duration)
    end = start.add(minutes)
    players = _clean_players(players)
    special_requests = clean_text(special_requests, "special_requests", 500)
    now = current_time(now)

    facility = load_facility(facility_id)
    if sport_id not in facility.sport_ids():
        raise ValidationError("Sport not available at this facility", field="sport")

    court = facility.find_court(sport_id, court_name)
    if court is None or not court.is_active:
        raise ValidationError("Court not found or inactive", field="court")

    if not facility.min_booking_minutes <= minutes <= facility.max_booking_minutes:
        raise ValidationError(
            "Duration outside this facility's booking limits",
            field="duration",
            min_hours=facility.min_booking_minutes / 60,
            max_hours=facility.max_booking_minutes / 60,
        )

    starts_at = datetime.combine(day, start.to_time())
    if starts_at <= now:
        raise ValidationError("Cannot book past or started slots", field="start_time")
    last_day = now.date() + timedelta(days=facility.advance_booking_days)
    if day > last_day:
        raise ValidationError(
            f"Bookings open {facility.advance_booking_days} days in advance",
            field="date",
            latest_date=last_day.isoformat(),
        )

    window = resolve_hours(facility.schedule(), day)
    if not window.is_open:
        logger.info("Facility %s closed on %s", facility.id, day)
        raise ScheduleClosedError(
            "Facility is closed on this day",
            field="date",
            weekday=Weekday.of(day).full_name,
        )
    if not window.contains(start, end):
        raise ScheduleClosedError(
            "Requested time is outside operating hours",
            field="start_time",
            open=str(window.open),
            close=str(window.close),
        )

    status = lifecycle.initial_status(
        facility.auto_confirm,
        current_app.config.get("BOOKING_INITIAL_STATUS", lifecycle.PENDING),
    )
    booking = Booking(
        user_id=user.id,
        facility_id=facility.id,
        sport_id=sport_id,
        court_name=court.name,
        court_type=court.court_type,
        date=day,
        start_minute=start.minutes,
        end_minute=end.minutes,
        duration_minutes=minutes,
        total_amount=lifecycle.price_for(court.hourly_rate, minutes),
        refund_amount=0,
        status=status,
        payment_status=lifecycle.PAYMENT_PENDING,
        players=players,
        special_requests=special_requests,
    )

    booking, err = get_store().reserve(booking)
    if err:
        logger.warning(
            "Booking rejected (%s) facility=%s court=%s %s %s-%s",
            err.kind, facility_id, court_name, day, start, end,
        )
        raise err

    logger.info("Booking %s created facility=%s court=%s %s %s-%s", booking.id, facility.id, court_name, day, start, end)
    return booking


# ---------- lifecycle ----------
def _load_booking(booking_id, for_update=False):
    booking, err = get_store().get_booking(as_int(booking_id, "booking_id"), for_update=for_update)
    if err:
        raise err
    return booking


@engine_operation
def cancel_booking(booking_id, acting_user, reason=None, now=None):
    """
    Player-facing cancellation. Refused inside the facility's refund window;
    outside it the full amount is refunded.
    """
    reason = clean_text(reason, "reason", 200)
    booking = _load_booking(booking_id, for_update=True)
    facility = booking.facility

    if booking.user_id != acting_user.id and not is_operator(acting_user, facility):
        raise Forbidden("Access denied", booking_id=booking.id)

    refund = lifecycle.transition(
        booking,
        lifecycle.CANCELLED,
        now=current_time(now),
        acting_user_id=acting_user.id,
        policy=facility.cancellation_terms(enforce_window=True),
        reason=reason,
    )
    booking, err = get_store().save(booking)
    if err:
        raise err

    logger.info("Booking %s cancelled by user %s, refund %s", booking.id, acting_user.id, refund)
    return {
        "booking_id": booking.id,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "refund_amount": float(refund),
    }


@engine_operation
def update_booking_status(booking_id, acting_user, status, notes=None, reason=None, now=None):
    """
    Facility owner / admin moves a booking through the state machine.
    Cancelling here is always allowed; the refund still follows the window.
    """
    if status not in lifecycle.STATUSES:
        raise ValidationError(f"Unknown status '{status}'", field="status")
    notes = clean_text(notes, "notes", 500)
    reason = clean_text(reason, "reason", 200)

    booking = _load_booking(booking_id, for_update=True)
    facility = booking.facility
    require_operator(acting_user, facility)

    previous = booking.status
    lifecycle.transition(
        booking,
        status,
        now=current_time(now),
        acting_user_id=acting_user.id,
        policy=facility.cancellation_terms(enforce_window=False),
        reason=reason,
    )
    if notes:
        booking.notes = notes

    booking, err = get_store().save(booking)
    if err:
        raise err
    logger.info("Booking %s moved %s -> %s by user %s", booking.id, previous, status, acting_user.id)
    return booking


@engine_operation
def complete_past_bookings(now=None):
    """Marks confirmed bookings whose end time has passed as completed. Returns the count."""
    now = current_time(now)
    rows = (
        Booking.query
        .filter(Booking.status == lifecycle.CONFIRMED, Booking.date <= now.date())
        .all()
    )
    done = 0
    for booking in rows:
        if booking.ends_at <= now:
            lifecycle.transition(booking, lifecycle.COMPLETED, now=now)
            done += 1
    db.session.commit()
    return done


# ---------- reads ----------
@engine_operation
def get_booking(booking_id, acting_user):
    booking = _load_booking(booking_id)
    if booking.user_id != acting_user.id and not is_operator(acting_user, booking.facility):
        raise Forbidden("Access denied", booking_id=booking.id)
    return booking


@engine_operation
def list_user_bookings(user, status=None):
    q = Booking.query.filter_by(user_id=user.id)
    if status:
        if status not in lifecycle.STATUSES:
            raise ValidationError(f"Unknown status '{status}'", field="status")
        q = q.filter_by(status=status)
    return q.order_by(Booking.date.desc(), Booking.start_minute.desc()).limit(200).all()


@engine_operation
def list_operator_bookings(user, facility_id=None, status=None, day=None):
    q = Booking.query
    if not user.is_admin:
        owned = [f.id for f in Facility.query.filter_by(owner_user_id=user.id).all()]
        q = q.filter(Booking.facility_id.in_(owned))
    if facility_id is not None:
        q = q.filter(Booking.facility_id == as_int(facility_id, "facility"))
    if status:
        if status not in lifecycle.STATUSES:
            raise ValidationError(f"Unknown status '{status}'", field="status")
        q = q.filter(Booking.status == status)
    if day:
        q = q.filter(Booking.date == parse_day(day))
    return q.order_by(Booking.date.desc(), Booking.start_minute.desc()).limit(200).all()
