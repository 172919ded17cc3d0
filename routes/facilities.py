from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import bookings as booking_service
from services import facilities as facility_service
from utils.audit import log_event
from utils.auth_context import login_required
from utils.responses import error_response

facilities_bp = Blueprint("facilities", __name__, url_prefix="/facilities")


@facilities_bp.post("")
@require_roles("FACILITY_OWNER")
def create_facility():
    data = request.get_json(silent=True) or {}
    facility, err = facility_service.create_facility(g.user, data)
    if err:
        return error_response(err)

    log_event("FACILITY_CREATE", user_id=g.user.id, entity="facility", entity_id=facility.id, facility_id=facility.id)
    return jsonify(facility.to_dict()), 201


@facilities_bp.get("/<int:facility_id>")
def get_facility(facility_id: int):
    facility, err = facility_service.get_facility(facility_id)
    if err:
        return error_response(err)
    return jsonify(facility.to_dict()), 200


@facilities_bp.put("/<int:facility_id>/operating-hours")
@login_required
def set_operating_hours(facility_id: int):
    data = request.get_json(silent=True) or {}
    payload = data.get("operating_hours", data)
    facility, err = facility_service.set_operating_hours(facility_id, g.user, payload)
    if err:
        return error_response(err)

    log_event("HOURS_UPDATE", user_id=g.user.id, entity="facility", entity_id=facility.id, facility_id=facility.id)
    return jsonify(facility.to_dict(include_courts=False)), 200


@facilities_bp.put("/<int:facility_id>/policies")
@login_required
def update_policies(facility_id: int):
    data = request.get_json(silent=True) or {}
    facility, err = facility_service.update_policies(facility_id, g.user, data)
    if err:
        return error_response(err)

    log_event(
        "POLICY_UPDATE",
        user_id=g.user.id,
        entity="facility",
        entity_id=facility.id,
        facility_id=facility.id,
        metadata=data,
    )
    return jsonify(facility.policies_dict()), 200


@facilities_bp.post("/<int:facility_id>/sports/<int:sport_id>/courts")
@login_required
def add_court(facility_id: int, sport_id: int):
    data = request.get_json(silent=True) or {}
    court, err = facility_service.add_court(facility_id, sport_id, g.user, data)
    if err:
        return error_response(err)

    log_event("COURT_CREATE", user_id=g.user.id, entity="court", entity_id=court.id, facility_id=facility_id)
    return jsonify(court.to_dict()), 201


@facilities_bp.patch("/<int:facility_id>/courts/<int:court_id>")
@login_required
def update_court(facility_id: int, court_id: int):
    data = request.get_json(silent=True) or {}
    court, err = facility_service.update_court(facility_id, court_id, g.user, data)
    if err:
        return error_response(err)

    log_event(
        "COURT_UPDATE",
        user_id=g.user.id,
        entity="court",
        entity_id=court.id,
        facility_id=facility_id,
        metadata=data,
    )
    return jsonify(court.to_dict()), 200


# ---------- public: availability ----------
@facilities_bp.get("/<int:facility_id>/availability")
def availability(facility_id: int):
    day = request.args.get("date")
    if not day:
        return jsonify(error="Valid date is required (YYYY-MM-DD)", kind="validation_error", field="date"), 400

    result, err = booking_service.check_availability(
        facility_id,
        day,
        court_name=request.args.get("court"),
        sport_id=request.args.get("sport", type=int),
    )
    if err:
        return error_response(err)
    return jsonify(result), 200
