"""
Reservation store: the persistence side of the booking engine.

Every method returns a ``(value, error)`` pair instead of raising, so the
conflict check and the insert can only ever happen together inside
``reserve`` / ``block``.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from models.blocked_slot import BlockedTimeSlot
from models.booking import Booking
from models.court import Court
from models.facility import Facility
from services.conflicts import Candidate, describe, find_conflicts
from services.errors import ConflictError, NotFound, StoreUnavailable, ValidationError
from services.lifecycle import ACTIVE_STATUSES
from utils.locks import acquire_lock, release_lock

logger = logging.getLogger(__name__)

DB_UNAVAILABLE = (OperationalError, PoolTimeoutError)


class ReservationStore:
    def __init__(self, session, timeout: float = 5.0):
        self.session = session
        self.timeout = timeout

    # ---------- locking ----------
    @contextmanager
    def _court_day(self, facility_id, court_name, day):
        key = ("court-day", facility_id, court_name, day.isoformat())
        if not acquire_lock(key, self.timeout):
            raise StoreUnavailable(
                "Timed out waiting for the court schedule; try again",
                court=court_name,
                date=day.isoformat(),
            )
        try:
            yield
        finally:
            release_lock(key)

    def _lock_for_write(self, facility_id):
        """
        Holds the database write lock for the rest of the transaction so
        that other processes cannot run the same conflict check at once.
        SQLite has no row locks and ignores FOR UPDATE, so the whole
        database is reserved with BEGIN IMMEDIATE instead.
        """
        conn = self.session.connection()
        if conn.dialect.name == "sqlite":
            # pysqlite only opens a transaction on DML; one that has
            # already written holds the reserved lock
            if not conn.connection.driver_connection.in_transaction:
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            return
        self.session.query(Facility.id).filter(Facility.id == facility_id).with_for_update().one_or_none()

    # ---------- queries ----------
    def _bookings(self, facility_id, day, court_name=None):
        q = self.session.query(Booking).filter(
            Booking.facility_id == facility_id,
            Booking.date == day,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        if court_name is not None:
            q = q.filter(Booking.court_name == court_name)
        return q.order_by(Booking.start_minute.asc(), Booking.id.asc()).all()

    def _blocks(self, facility_id, day, court_name=None):
        q = (
            self.session.query(BlockedTimeSlot)
            .join(Court, BlockedTimeSlot.court_id == Court.id)
            .filter(
                BlockedTimeSlot.facility_id == facility_id,
                BlockedTimeSlot.date == day,
                BlockedTimeSlot.is_active.is_(True),
            )
        )
        if court_name is not None:
            q = q.filter(Court.name == court_name)
        return q.order_by(BlockedTimeSlot.start_minute.asc(), BlockedTimeSlot.id.asc()).all()

    def day_records(self, facility_id, day, court_name=None):
        """Active bookings and active blocks for one facility day."""
        try:
            return (self._bookings(facility_id, day, court_name), self._blocks(facility_id, day, court_name)), None
        except DB_UNAVAILABLE as exc:
            return None, self._unavailable(exc)

    def get_booking(self, booking_id, for_update: bool = False):
        try:
            q = self.session.query(Booking).filter(Booking.id == booking_id)
            if for_update:
                q = q.with_for_update()
            booking = q.one_or_none()
        except DB_UNAVAILABLE as exc:
            return None, self._unavailable(exc)
        if booking is None:
            return None, NotFound("Booking not found", booking_id=booking_id)
        return booking, None

    # ---------- writes ----------
    def reserve(self, booking: Booking):
        """Inserts ``booking`` unless it overlaps an active booking or block on the same court and day."""
        candidate = Candidate(
            facility_id=booking.facility_id,
            court_name=booking.court_name,
            day=booking.date,
            start=booking.start_time,
            end=booking.end_time,
        )
        try:
            with self._court_day(booking.facility_id, booking.court_name, booking.date):
                self._lock_for_write(booking.facility_id)
                clashes = find_conflicts(
                    candidate,
                    self._bookings(booking.facility_id, booking.date, booking.court_name),
                    self._blocks(booking.facility_id, booking.date, booking.court_name),
                )
                if clashes:
                    error = ConflictError(
                        "Time slot is not available",
                        field="start_time",
                        requested={"start_time": str(candidate.start), "end_time": str(candidate.end)},
                        conflicts=[describe(c) for c in clashes],
                    )
                    self.session.rollback()
                    return None, error

                self.session.add(booking)
                self.session.commit()
                return booking, None
        except StoreUnavailable as err:
            self.session.rollback()
            logger.warning("Reservation lock timeout for %s on %s", booking.court_name, booking.date)
            return None, err
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Booking rejected by database constraint: %s", exc.orig)
            return None, ValidationError("Booking violates a data constraint")
        except DB_UNAVAILABLE as exc:
            return None, self._unavailable(exc)

    def block(self, slot: BlockedTimeSlot, court_name: str):
        """Inserts a blocked slot unless it would cover an active booking."""
        candidate = Candidate(
            facility_id=slot.facility_id,
            court_name=court_name,
            day=slot.date,
            start=slot.start_time,
            end=slot.end_time,
        )
        try:
            with self._court_day(slot.facility_id, court_name, slot.date):
                self._lock_for_write(slot.facility_id)
                clashes = find_conflicts(candidate, self._bookings(slot.facility_id, slot.date, court_name))
                if clashes:
                    error = ConflictError(
                        "Cannot block a range that overlaps existing bookings",
                        field="start_time",
                        conflicts=[describe(c) for c in clashes],
                    )
                    self.session.rollback()
                    return None, error

                self.session.add(slot)
                self.session.commit()
                return slot, None
        except StoreUnavailable as err:
            self.session.rollback()
            return None, err
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Blocked slot rejected by database constraint: %s", exc.orig)
            return None, ValidationError("Blocked slot violates a data constraint")
        except DB_UNAVAILABLE as exc:
            return None, self._unavailable(exc)

    def save(self, obj):
        """Commits a change to a single row (status transitions, soft deletes, settings)."""
        try:
            self.session.add(obj)
            self.session.commit()
            return obj, None
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Update rejected by database constraint: %s", exc.orig)
            return None, ValidationError("Update violates a data constraint")
        except DB_UNAVAILABLE as exc:
            return None, self._unavailable(exc)

    def _unavailable(self, exc):
        self.session.rollback()
        logger.warning("Booking store unavailable: %s", exc)
        return StoreUnavailable("Booking store is unavailable; try again")
