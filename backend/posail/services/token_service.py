# Overview: Identity token codec; signs and verifies the bearer credential.

"""
Identity Token Service

The bearer credential is an HS256 JWT whose payload is
{"id": "<user id>", "rol": "<role>", "localId": "<local id>" | null}
plus the standard iat/exp claims.

SECURITY:
- Role and local are copied from the user at sign time; the token is the
  only source of truth for them until it expires.
- verify_token() never raises: malformed, expired and badly signed tokens
  all come back as None, so downstream code cannot tell an invalid token
  from a missing one.
- Expiry is enforced here (PyJWT "exp" validation), not by callers.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, request

from posail.errors import ConfigurationError


ALGORITHM = "HS256"
DEV_DEFAULT_SECRET = "dev_only_change_this_jwt_secret"
DEFAULT_EXPIRES_IN = timedelta(hours=12)

_EXPIRES_IN_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def resolve_jwt_secret(raw, *, production: bool, logger) -> str:
    """
    Resolve the signing secret once at start-up.

    Missing secret in production is fatal; anywhere else a fixed development
    secret is used and a single warning is logged.
    """
    secret = raw.strip() if isinstance(raw, str) else ""
    if secret:
        return secret

    if production:
        raise ConfigurationError("JWT_SECRET is not configured in a production environment")

    logger.warning("JWT_SECRET not set; using a temporary development secret")
    return DEV_DEFAULT_SECRET


def parse_expires_in(raw) -> timedelta:
    """Parse "12h" / "30m" / "45s" / "7d" / "3600" into a timedelta."""
    if raw is None:
        return DEFAULT_EXPIRES_IN
    if isinstance(raw, timedelta):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        value, unit = raw, ""
    else:
        text = str(raw).strip().lower()
        if not text:
            return DEFAULT_EXPIRES_IN
        match = _EXPIRES_IN_RE.match(text)
        if not match:
            raise ConfigurationError(f"Invalid JWT_EXPIRES_IN value: {raw!r}")
        value, unit = int(match.group(1)), match.group(2)

    if value <= 0:
        raise ConfigurationError(f"Invalid JWT_EXPIRES_IN value: {raw!r}")
    return timedelta(seconds=value * _UNIT_SECONDS[unit])


def extract_bearer_token(auth_header) -> str | None:
    if not isinstance(auth_header, str) or not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def _local_id_of(user):
    local = getattr(user, "local", None)
    if local is not None and getattr(local, "id", None) is not None:
        return local.id
    return getattr(user, "local_id", None)


def sign_user_token(user, *, secret: str, expires_in: timedelta = DEFAULT_EXPIRES_IN) -> str:
    local_id = _local_id_of(user)
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user.id),
        "rol": str(user.rol or ""),
        "localId": str(local_id) if local_id else None,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token, *, secret: str) -> dict | None:
    if not token or not isinstance(token, str):
        return None
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError:
        return None
    return payload if isinstance(payload, dict) else None


def issue_token_for(user) -> str:
    """Sign with the application's configured secret and lifetime."""
    return sign_user_token(
        user,
        secret=current_app.config["JWT_SECRET"],
        expires_in=current_app.config["JWT_EXPIRES_DELTA"],
    )


def get_request_token_payload() -> dict | None:
    """Decode the current request's bearer credential, or None."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        return None
    return verify_token(token, secret=current_app.config["JWT_SECRET"])
