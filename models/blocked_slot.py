from datetime import datetime
from models.db import db
from services.timeunit import WallTime

class BlockedTimeSlot(db.Model):
    """Operator-declared closure of one court; behaves like a booking for conflicts."""

    __tablename__ = "blocked_time_slots"

    conflict_kind = "blocked"

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False)

    date = db.Column(db.Date, nullable=False)
    start_minute = db.Column(db.Integer, nullable=False)
    end_minute = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(200), nullable=False, default="")
    blocked_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # soft delete only; time range is never edited in place
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    removed_at = db.Column(db.DateTime, nullable=True)

    court = db.relationship("Court")

    __table_args__ = (
        db.Index("ix_blocked_slots_facility_court_date", "facility_id", "court_id", "date"),
        db.CheckConstraint("start_minute < end_minute", name="ck_blocked_slot_order"),
    )

    @property
    def court_name(self) -> str:
        return self.court.name

    @property
    def start_time(self) -> WallTime:
        return WallTime(self.start_minute)

    @property
    def end_time(self) -> WallTime:
        return WallTime(self.end_minute)

    def to_dict(self):
        return {
            "id": self.id,
            "facility_id": self.facility_id,
            "court_id": self.court_id,
            "court": self.court_name,
            "date": self.date.isoformat(),
            "start_time": str(self.start_time),
            "end_time": str(self.end_time),
            "reason": self.reason,
            "blocked_by": self.blocked_by,
            "is_active": self.is_active,
        }
