import logging

import click
from flask import Flask, g, request
from flask_migrate import Migrate

from config import Config, engine_options
from routes import health_bp, auth_bp, sports_bp, facilities_bp, booking_bp, owner_bp

from models import db
from models.sport import Sport
from models.user import User, Role
from services import bookings as booking_service
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from security.csrf import CSRF_EXEMPT_PATHS, UNSAFE_METHODS, require_csrf

LOG_FORMAT = "%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s"

DEFAULT_SPORTS = ("Football", "Futsal", "Badminton", "Tennis", "Basketball", "Cricket")


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.setdefault(
        "SQLALCHEMY_ENGINE_OPTIONS",
        engine_options(app.config["SQLALCHEMY_DATABASE_URI"], app.config.get("STORE_TIMEOUT_SECONDS", 5)),
    )

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(sports_bp)
    app.register_blueprint(facilities_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(owner_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    if app.config.get("CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    # Seed default roles at startup (safe & idempotent)
    with app.app_context():
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        if request.method not in UNSAFE_METHODS or request.path in CSRF_EXEMPT_PATHS:
            return None
        # only requests carrying a session cookie can be forged cross-site
        if getattr(g, "user", None) is None:
            return None
        return require_csrf()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-sports")
    @click.argument("names", nargs=-1)
    def seed_sports(names):
        """Add sports by name, or the default catalogue when none are given (idempotent)."""
        added = 0
        for name in names or DEFAULT_SPORTS:
            name = name.strip()
            if not name:
                continue
            if not Sport.query.filter_by(name_normalized=name.lower()).first():
                db.session.add(Sport(name=name, name_normalized=name.lower()))
                added += 1
        db.session.commit()
        click.echo(f"{added} sports added")

    @app.cli.command("complete-bookings")
    def complete_bookings():
        """Mark confirmed bookings that have ended as completed."""
        count, err = booking_service.complete_past_bookings()
        if err:
            raise click.ClickException(err.message)
        click.echo(f"{count} bookings completed")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
