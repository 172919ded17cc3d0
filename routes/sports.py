from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import facilities as facility_service
from utils.audit import log_event
from utils.responses import error_response

sports_bp = Blueprint("sports", __name__, url_prefix="/sports")


@sports_bp.get("")
def list_sports():
    sports, err = facility_service.list_sports()
    if err:
        return error_response(err)
    return jsonify([s.to_dict() for s in sports]), 200


@sports_bp.post("")
@require_roles("ADMIN")
def create_sport():
    data = request.get_json(silent=True) or {}
    sport, err = facility_service.create_sport(g.user, data.get("name"))
    if err:
        return error_response(err)

    log_event("SPORT_CREATE", user_id=g.user.id, entity="sport", entity_id=sport.id)
    return jsonify(sport.to_dict()), 201
