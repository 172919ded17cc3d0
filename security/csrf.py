"""
Double-submit CSRF check for cookie-authenticated requests.

Login sets a readable ``csrf_token`` cookie; clients echo it back in the
``X-CSRF-Token`` header on every state-changing request.
"""

import secrets

from flask import current_app, jsonify, request

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

UNSAFE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
# reachable without a session cookie
CSRF_EXEMPT_PATHS = {"/auth/login", "/auth/register", "/health"}


def issue_csrf_token(resp):
    token = secrets.token_urlsafe(32)
    resp.set_cookie(
        CSRF_COOKIE,
        token,
        httponly=False,  # the client reads it to fill the header
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return resp


def clear_csrf_token(resp):
    resp.delete_cookie(CSRF_COOKIE, path="/")
    return resp


def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed", kind="csrf_failed"), 403
    return None
