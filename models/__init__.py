from .db import db
from .user import User, Role, user_roles
from .session import Session
from .audit_log import AuditLog
from .sport import Sport
from .facility import Facility, OperatingHours
from .court import Court
from .booking import Booking
from .blocked_slot import BlockedTimeSlot
