# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/posail/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Login throttling per (client ip, email) to prevent brute-force attacks
- Lockout is checked before credentials, so a locked key is refused even
  with the right password
- Every failed sub-case answers the same generic 401 (no user enumeration)
- Stateless signed bearer tokens
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_scope
from ..errors import InvalidInputError, RateLimitedError, UnauthenticatedError
from ..services import auth_service, token_service
from ..services.login_throttle_service import throttle_key
from ..validation import normalize_email


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _throttle():
    return current_app.extensions["login_throttle"]


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a signed token.

    Returns {"token": ..., "usuario": {...}} on success.
    """
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password")

    if not email or not isinstance(password, str) or not password:
        raise InvalidInputError("email and password required")

    key = throttle_key(request.remote_addr, email)
    throttle = _throttle()

    state = throttle.get_state(key)
    if state.locked:
        current_app.logger.warning("Login refused, key locked: ip=%s", request.remote_addr)
        raise RateLimitedError(
            "Too many failed login attempts, try again later",
            retry_after_seconds=state.retry_after_seconds,
        )

    user = auth_service.authenticate(email, password)
    if user is None:
        state = throttle.record_failure(key)
        if state.locked:
            current_app.logger.warning(
                "Login locked after %s failures: ip=%s", state.failures, request.remote_addr
            )
        raise UnauthenticatedError("Invalid credentials", reason="invalid_credentials")

    throttle.clear(key)
    token = token_service.issue_token_for(user)
    return jsonify({"token": token, "usuario": user.to_dict()}), 200


@auth_bp.get("/session")
@require_scope
def session_route(scope):
    """Echo the resolved scope of the caller."""
    return jsonify(scope.to_dict()), 200
