from datetime import datetime
from models.db import db

COURT_TYPES = ("indoor", "outdoor")

class Court(db.Model):
    __tablename__ = "courts"

    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)
    sport_id = db.Column(db.Integer, db.ForeignKey("sports.id"), nullable=False, index=True)

    name = db.Column(db.String(80), nullable=False)
    court_type = db.Column(db.String(20), nullable=False, default="indoor")
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    facility = db.relationship("Facility", back_populates="courts")
    sport = db.relationship("Sport")

    __table_args__ = (
        # Bookings identify a court by (facility, sport, name)
        db.UniqueConstraint("facility_id", "sport_id", "name", name="uq_court_name_per_sport"),
        db.CheckConstraint("hourly_rate >= 0", name="ck_court_rate_positive"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "sport_id": self.sport_id,
            "name": self.name,
            "type": self.court_type,
            "hourly_rate": float(self.hourly_rate),
            "is_active": self.is_active,
        }
