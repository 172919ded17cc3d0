from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import blocks as block_service
from services import bookings as booking_service
from utils.audit import log_event
from utils.responses import error_response

owner_bp = Blueprint("owner", __name__, url_prefix="/owner")


# ---------- bookings at my facilities ----------
@owner_bp.get("/bookings")
@require_roles("FACILITY_OWNER")
def list_bookings():
    rows, err = booking_service.list_operator_bookings(
        g.user,
        facility_id=request.args.get("facility", type=int),
        status=request.args.get("status"),
        day=request.args.get("date"),
    )
    if err:
        return error_response(err)
    return jsonify([b.to_dict() for b in rows]), 200


@owner_bp.put("/bookings/<int:booking_id>/status")
@require_roles("FACILITY_OWNER")
def update_booking_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()

    booking, err = booking_service.update_booking_status(
        booking_id,
        g.user,
        status,
        notes=data.get("notes"),
        reason=data.get("reason"),
    )
    if err:
        return error_response(err)

    log_event(
        "BOOKING_STATUS_UPDATE",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        facility_id=booking.facility_id,
        metadata={"status": booking.status},
    )
    return jsonify(booking.to_dict()), 200


# ---------- blocked time slots ----------
@owner_bp.get("/facilities/<int:facility_id>/blocked-slots")
@require_roles("FACILITY_OWNER")
def list_blocked_slots(facility_id: int):
    rows, err = block_service.list_blocked_slots(
        facility_id,
        g.user,
        day=request.args.get("date"),
        include_inactive=request.args.get("all") == "1",
    )
    if err:
        return error_response(err)
    return jsonify([b.to_dict() for b in rows]), 200


@owner_bp.post("/facilities/<int:facility_id>/courts/<int:court_id>/block")
@require_roles("FACILITY_OWNER")
def block_time_slot(facility_id: int, court_id: int):
    data = request.get_json(silent=True) or {}
    slot, err = block_service.block_time_slot(
        facility_id,
        court_id,
        g.user,
        day=data.get("date"),
        start_time=data.get("startTime", data.get("start_time")),
        end_time=data.get("endTime", data.get("end_time")),
        reason=data.get("reason"),
    )
    if err:
        return error_response(err)

    log_event(
        "SLOT_BLOCK",
        user_id=g.user.id,
        entity="blocked_slot",
        entity_id=slot.id,
        facility_id=facility_id,
    )
    return jsonify(slot.to_dict()), 201


@owner_bp.delete("/facilities/<int:facility_id>/courts/<int:court_id>/unblock/<int:block_id>")
@require_roles("FACILITY_OWNER")
def unblock_time_slot(facility_id: int, court_id: int, block_id: int):
    slot, err = block_service.unblock_time_slot(facility_id, court_id, block_id, g.user)
    if err:
        return error_response(err)

    log_event(
        "SLOT_UNBLOCK",
        user_id=g.user.id,
        entity="blocked_slot",
        entity_id=slot.id,
        facility_id=facility_id,
    )
    return jsonify(slot.to_dict()), 200
