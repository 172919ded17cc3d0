from datetime import date, datetime

import pytest

from app import create_app
from config import Config
from models import db
from models.sport import Sport
from models.user import Role, User
from security.password import hash_password
from services import facilities as facility_service

# 2024-01-01 is a Monday
MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)
NOW = datetime(2023, 12, 30, 12, 0)

PASSWORD = "correct-horse-1"


class SqliteConfig(Config):
    TESTING = True
    BCRYPT_ROUNDS = 4
    CREATE_TABLES = True
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app(tmp_path):
    # a file database so that worker threads share it
    class _Config(SqliteConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "courtside-test.db")

    app = create_app(_Config)
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, *roles):
    user = User(email=email, password_hash=hash_password(PASSWORD))
    for name in roles:
        user.roles.append(Role.query.filter_by(name=name).one())
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def owner(ctx):
    return make_user("owner@example.com", "FACILITY_OWNER")


@pytest.fixture
def player(ctx):
    return make_user("player@example.com", "PLAYER")


@pytest.fixture
def other_player(ctx):
    return make_user("other@example.com", "PLAYER")


@pytest.fixture
def admin(ctx):
    return make_user("admin@example.com", "ADMIN")


@pytest.fixture
def sport(ctx):
    sport = Sport(name="Futsal", name_normalized="futsal")
    db.session.add(sport)
    db.session.commit()
    return sport


@pytest.fixture
def facility(owner, sport):
    """Open Mondays 06:00-22:00 with one futsal court at 500/hour."""
    facility, err = facility_service.create_facility(owner, {
        "name": "Riverside Arena",
        "city": "Pune",
        "operating_hours": {"monday": {"open": "06:00", "close": "22:00"}},
    })
    assert err is None
    court, err = facility_service.add_court(facility.id, sport.id, owner, {"name": "Court 1", "hourly_rate": 500})
    assert err is None
    return facility


@pytest.fixture
def court(facility):
    return facility.courts[0]
