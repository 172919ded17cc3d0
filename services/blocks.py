import logging

from models.blocked_slot import BlockedTimeSlot
from models.court import Court
from services.common import (
    as_int,
    clean_text,
    current_time,
    engine_operation,
    get_store,
    load_facility,
    require_operator,
)
from services.errors import NotFound, ValidationError
from services.timeunit import WallTime, parse_day

logger = logging.getLogger(__name__)


def _facility_court(facility, court_id) -> Court:
    court_id = as_int(court_id, "court")
    for court in facility.courts:
        if court.id == court_id:
            return court
    raise NotFound("Court not found", court_id=court_id)


@engine_operation
def block_time_slot(facility_id, court_id, acting_user, day, start_time, end_time, reason=None, now=None):
    """Takes one court out of service for a range of the day. Refused if it covers a live booking."""
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)
    court = _facility_court(facility, court_id)

    day = parse_day(day)
    start = WallTime.parse(start_time, field="start_time")
    end = WallTime.parse(end_time, field="end_time")
    if start >= end:
        raise ValidationError("Start time must be before end time", field="end_time")
    reason = clean_text(reason, "reason", 200) or ""

    if day < current_time(now).date():
        raise ValidationError("Cannot block a date in the past", field="date")

    slot = BlockedTimeSlot(
        facility_id=facility.id,
        court_id=court.id,
        date=day,
        start_minute=start.minutes,
        end_minute=end.minutes,
        reason=reason,
        blocked_by=acting_user.id,
        is_active=True,
    )
    slot, err = get_store().block(slot, court.name)
    if err:
        raise err

    logger.info("Court %s blocked on %s %s-%s by user %s", court.name, day, start, end, acting_user.id)
    return slot


@engine_operation
def unblock_time_slot(facility_id, court_id, block_id, acting_user, now=None):
    """Soft-removes a block. Removing an already removed block is a no-op."""
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)

    slot = BlockedTimeSlot.query.filter_by(
        id=as_int(block_id, "block_id"),
        facility_id=facility.id,
        court_id=as_int(court_id, "court"),
    ).first()
    if slot is None:
        raise NotFound("Blocked slot not found", block_id=block_id)

    if not slot.is_active:
        return slot

    slot.is_active = False
    slot.removed_at = current_time(now)
    slot, err = get_store().save(slot)
    if err:
        raise err
    logger.info("Blocked slot %s removed by user %s", slot.id, acting_user.id)
    return slot


@engine_operation
def list_blocked_slots(facility_id, acting_user, day=None, include_inactive=False):
    facility = load_facility(facility_id, active_only=False)
    require_operator(acting_user, facility)

    q = BlockedTimeSlot.query.filter_by(facility_id=facility.id)
    if not include_inactive:
        q = q.filter(BlockedTimeSlot.is_active.is_(True))
    if day:
        q = q.filter(BlockedTimeSlot.date == parse_day(day))
    return q.order_by(BlockedTimeSlot.date.asc(), BlockedTimeSlot.start_minute.asc()).all()
