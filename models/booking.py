from datetime import datetime
from models.db import db
from services.lifecycle import PAYMENT_PENDING, PENDING
from services.timeunit import WallTime

class Booking(db.Model):
    __tablename__ = "bookings"

    conflict_kind = "booking"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False)
    sport_id = db.Column(db.Integer, db.ForeignKey("sports.id"), nullable=False)

    # Court snapshot taken at booking time; conflicts match on the name
    court_name = db.Column(db.String(80), nullable=False)
    court_type = db.Column(db.String(20), nullable=True)

    date = db.Column(db.Date, nullable=False)
    start_minute = db.Column(db.Integer, nullable=False)
    end_minute = db.Column(db.Integer, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    refund_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default=PENDING)
    # status values: pending, confirmed, cancelled, completed, no_show
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)
    # payment values: pending, paid, refunded, failed

    players = db.Column(db.JSON, nullable=False, default=list)
    special_requests = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    cancellation_reason = db.Column(db.String(200), nullable=True)
    cancelled_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    facility = db.relationship("Facility")
    sport = db.relationship("Sport")

    __table_args__ = (
        db.Index("ix_bookings_facility_court_date", "facility_id", "court_name", "date"),
        db.Index("ix_bookings_status_date", "status", "date"),
        db.CheckConstraint("end_minute = start_minute + duration_minutes", name="ck_booking_end_derived"),
        db.CheckConstraint("duration_minutes BETWEEN 30 AND 480", name="ck_booking_duration"),
        db.CheckConstraint("total_amount >= 0 AND refund_amount >= 0", name="ck_booking_amounts"),
    )

    @property
    def start_time(self) -> WallTime:
        return WallTime(self.start_minute)

    @property
    def end_time(self) -> WallTime:
        return WallTime(self.end_minute)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time.to_time())

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.date, self.end_time.to_time())

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "facility_id": self.facility_id,
            "sport_id": self.sport_id,
            "court": {"name": self.court_name, "type": self.court_type},
            "date": self.date.isoformat(),
            "start_time": str(self.start_time),
            "end_time": str(self.end_time),
            "duration": self.duration_minutes / 60,
            "total_amount": float(self.total_amount),
            "refund_amount": float(self.refund_amount or 0),
            "status": self.status,
            "payment_status": self.payment_status,
            "players": self.players or [],
            "special_requests": self.special_requests,
            "notes": self.notes,
            "cancellation_reason": self.cancellation_reason,
            "cancelled_by": self.cancelled_by,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
