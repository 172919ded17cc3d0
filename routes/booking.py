from flask import Blueprint, request, jsonify, g

from services import bookings as booking_service
from utils.audit import log_event
from utils.auth_context import login_required
from utils.responses import error_response

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def _court_name(data):
    court = data.get("court")
    if isinstance(court, dict):
        return court.get("name")
    return data.get("court_name", court)


# ---------- PLAYERS: create booking ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}

    booking, err = booking_service.create_booking(
        g.user,
        facility_id=data.get("facility"),
        sport_id=data.get("sport"),
        court_name=_court_name(data),
        day=data.get("date"),
        start_time=data.get("startTime", data.get("start_time")),
        duration=data.get("duration"),
        players=data.get("players"),
        special_requests=data.get("specialRequests", data.get("special_requests")),
    )
    if err:
        if err.kind == "conflict":
            log_event(
                "BOOKING_CONFLICT",
                user_id=g.user.id,
                entity="facility",
                entity_id=data.get("facility"),
                metadata=err.to_dict(),
            )
        return error_response(err)

    log_event(
        "BOOKING_CREATE",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        facility_id=booking.facility_id,
    )
    return jsonify(booking.to_dict()), 201


# ---------- PLAYERS: my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    rows, err = booking_service.list_user_bookings(g.user, status=request.args.get("status"))
    if err:
        return error_response(err)
    return jsonify([b.to_dict() for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking, err = booking_service.get_booking(booking_id, g.user)
    if err:
        return error_response(err)
    return jsonify(booking.to_dict()), 200


# ---------- PLAYERS: cancel ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    result, err = booking_service.cancel_booking(booking_id, g.user, reason=data.get("reason"))
    if err:
        return error_response(err)

    log_event(
        "BOOKING_CANCEL",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking_id,
        metadata={"refund_amount": result["refund_amount"]},
    )
    return jsonify(result), 200
