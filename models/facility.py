from datetime import datetime
from models.db import db
from services.lifecycle import CancellationPolicy
from services.operating_hours import DayHours, Weekday
from services.timeunit import WallTime

class Facility(db.Model):
    __tablename__ = "facilities"

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(80), nullable=True)

    # Booking policy
    cancellation_policy = db.Column(db.Text, nullable=True)  # shown to players only
    refund_window_hours = db.Column(db.Integer, nullable=False, default=24)
    advance_booking_days = db.Column(db.Integer, nullable=False, default=7)
    min_booking_minutes = db.Column(db.Integer, nullable=False, default=60)
    max_booking_minutes = db.Column(db.Integer, nullable=False, default=240)
    slot_minutes = db.Column(db.Integer, nullable=False, default=60)
    auto_confirm = db.Column(db.Boolean, nullable=False, default=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    operating_hours = db.relationship(
        "OperatingHours",
        cascade="all, delete-orphan",
        order_by="OperatingHours.weekday",
        back_populates="facility",
    )
    courts = db.relationship("Court", back_populates="facility", order_by="Court.id")

    __table_args__ = (
        db.CheckConstraint("refund_window_hours >= 0", name="ck_facility_refund_window"),
        db.CheckConstraint("min_booking_minutes >= 30 AND max_booking_minutes <= 480", name="ck_facility_duration_bounds"),
        db.CheckConstraint("min_booking_minutes <= max_booking_minutes", name="ck_facility_duration_order"),
        db.CheckConstraint("slot_minutes > 0", name="ck_facility_slot_minutes"),
    )

    def schedule(self) -> dict:
        return {Weekday(row.weekday): row.day_hours() for row in self.operating_hours}

    def cancellation_terms(self, enforce_window: bool = True) -> CancellationPolicy:
        return CancellationPolicy(refund_window_hours=self.refund_window_hours, enforce_window=enforce_window)

    def sport_ids(self) -> set:
        return {c.sport_id for c in self.courts}

    def find_court(self, sport_id: int, name: str):
        for court in self.courts:
            if court.sport_id == sport_id and court.name == name:
                return court
        return None

    def policies_dict(self):
        return {
            "cancellation_policy": self.cancellation_policy,
            "refund_window_hours": self.refund_window_hours,
            "advance_booking_days": self.advance_booking_days,
            "min_booking_hours": self.min_booking_minutes / 60,
            "max_booking_hours": self.max_booking_minutes / 60,
            "slot_minutes": self.slot_minutes,
            "auto_confirm": self.auto_confirm,
        }

    def to_dict(self, include_courts: bool = True):
        out = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "city": self.city,
            "owner_user_id": self.owner_user_id,
            "is_active": self.is_active,
            "operating_hours": {Weekday(r.weekday).full_name: r.to_dict() for r in self.operating_hours},
            "policies": self.policies_dict(),
        }
        if include_courts:
            out["courts"] = [c.to_dict() for c in self.courts]
        return out


class OperatingHours(db.Model):
    __tablename__ = "operating_hours"

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)

    weekday = db.Column(db.Integer, nullable=False)  # 0=Monday .. 6=Sunday
    open_minute = db.Column(db.Integer, nullable=True)
    close_minute = db.Column(db.Integer, nullable=True)
    is_open = db.Column(db.Boolean, nullable=False, default=True)

    facility = db.relationship("Facility", back_populates="operating_hours")

    __table_args__ = (
        db.UniqueConstraint("facility_id", "weekday", name="uq_operating_hours_day"),
        db.CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_operating_hours_weekday"),
        db.CheckConstraint("NOT is_open OR open_minute < close_minute", name="ck_operating_hours_order"),
    )

    def day_hours(self) -> DayHours:
        if not self.is_open:
            return DayHours(open=None, close=None, is_open=False)
        return DayHours(open=WallTime(self.open_minute), close=WallTime(self.close_minute))

    def to_dict(self):
        return {
            "open": str(WallTime(self.open_minute)) if self.open_minute is not None else None,
            "close": str(WallTime(self.close_minute)) if self.close_minute is not None else None,
            "is_open": self.is_open,
        }
