from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.csrf import clear_csrf_token, issue_csrf_token
from security.password import hash_password, verify_password
from security.session import create_session, revoke_session
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

# roles a user may pick at sign-up; ADMIN is granted from the CLI
SIGNUP_ROLES = {"player": "PLAYER", "facility_owner": "FACILITY_OWNER"}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role_key = (data.get("role") or "player").strip().lower()

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if not isinstance(password, str) or len(password) < 8:
        return jsonify(error="Password must be at least 8 characters"), 400
    if role_key not in SIGNUP_ROLES:
        return jsonify(error="role must be player or facility_owner"), 400

    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=(data.get("first_name") or "").strip()[:60] or None,
        last_name=(data.get("last_name") or "").strip()[:60] or None,
        phone_number=(data.get("phone_number") or "").strip()[:30] or None,
    )
    role = Role.query.filter_by(name=SIGNUP_ROLES[role_key]).first()
    if role:
        user.roles.append(role)
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": SIGNUP_ROLES[role_key]})
    return jsonify(id=user.id, message="Registered successfully"), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    raw_token = create_session(user.id)

    resp = jsonify(message="Login OK", roles=sorted(user.role_names))
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "courtside_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    resp = issue_csrf_token(resp)
    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(
        id=g.user.id,
        email=g.user.email,
        first_name=g.user.first_name,
        last_name=g.user.last_name,
        roles=sorted(g.user.role_names),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "courtside_session")
    revoke_session(request.cookies.get(cookie_name))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    resp = clear_csrf_token(resp)
    return resp, 200
