from routes.health import health_bp
from routes.auth import auth_bp
from routes.sports import sports_bp
from routes.facilities import facilities_bp
from routes.booking import booking_bp
from routes.owner import owner_bp
