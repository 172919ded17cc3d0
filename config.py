import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as courtside.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "courtside.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # How long a reservation waits on a busy court/day before giving up
    STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "courtside_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Password hashing cost
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Booking defaults (facilities can override the window and slot size)
    REFUND_WINDOW_HOURS = 24
    BOOKING_INITIAL_STATUS = os.getenv("BOOKING_INITIAL_STATUS", "pending")  # pending | confirmed
    DEFAULT_SLOT_MINUTES = 60

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


def engine_options(uri: str, timeout: float) -> dict:
    """Driver/pool wait limits so a stuck database surfaces as an error instead of hanging."""
    if uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout}}
    return {"pool_timeout": timeout, "pool_pre_ping": True}
