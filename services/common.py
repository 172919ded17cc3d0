import logging
from datetime import datetime
from functools import wraps

from flask import current_app

from models import db
from models.facility import Facility
from services.errors import BookingError, Forbidden, NotFound, StoreUnavailable, ValidationError
from services.store import DB_UNAVAILABLE, ReservationStore

logger = logging.getLogger(__name__)

MAX_ID = 2**63 - 1


def engine_operation(fn):
    """
    Runs a service function and returns ``(result, None)`` or ``(None, error)``.
    Engine errors never escape as exceptions past this point.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs), None
        except BookingError as err:
            db.session.rollback()
            return None, err
        except DB_UNAVAILABLE as exc:
            db.session.rollback()
            logger.warning("%s: store unavailable: %s", fn.__name__, exc)
            return None, StoreUnavailable("Booking store is unavailable; try again")
    return wrapper


def get_store() -> ReservationStore:
    return ReservationStore(db.session, timeout=current_app.config.get("STORE_TIMEOUT_SECONDS", 5))


def current_time(now=None) -> datetime:
    # Bookings are naive wall-clock times in the facility's local time
    return now or datetime.now()


def load_facility(facility_id, active_only: bool = True) -> Facility:
    facility_id = as_int(facility_id, "facility")
    facility = db.session.get(Facility, facility_id)
    if facility is None or (active_only and not facility.is_active):
        raise NotFound("Facility not found", facility_id=facility_id)
    return facility


def is_operator(user, facility) -> bool:
    if user is None:
        return False
    return user.is_admin or facility.owner_user_id == user.id


def require_operator(user, facility):
    if not is_operator(user, facility):
        raise Forbidden("Only the facility owner can do this", facility_id=facility.id)


def as_int(value, field: str, low: int = 1, high: int = MAX_ID) -> int:
    """Ids and counts from clients. Defaults to the range of a 64-bit primary key."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be an integer", field=field)
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer", field=field)
    if not low <= number <= high:
        raise ValidationError(f"{field} must be between {low} and {high}", field=field)
    return number


def clean_text(value, field: str, max_length: int, required: bool = False):
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters", field=field)
    return value
