# Overview: Path restrictions per role, applied before any route runs.

"""
Role Restriction Policy

Waiters (rol "mesero") may only reach the restaurant API, login, health and
root. Every other role is untouched here. The role is read independently of
the scope resolver: a valid token's role wins, otherwise the x-user-role
header is used. Claiming "mesero" in a header can only ever restrict the
caller, so honouring it without a token is safe.

This check never changes identity or local; it either passes or answers 403.
"""

from __future__ import annotations

from flask import current_app, request

from posail.errors import ForbiddenError
from posail.permissions import Role, is_path_allowed_for_role, normalize_role
from .scope_service import ROLE_HEADER
from .token_service import get_request_token_payload


def peek_request_role() -> Role | None:
    payload = get_request_token_payload()
    if payload is not None:
        return normalize_role(payload.get("rol"))
    return normalize_role(request.headers.get(ROLE_HEADER))


def enforce_role_paths() -> None:
    """before_request hook; raises ForbiddenError for restricted paths."""
    role = peek_request_role()
    if is_path_allowed_for_role(role, request.path):
        return None

    current_app.logger.warning(
        "Restricted role blocked: rol=%s method=%s path=%s",
        role.value if role else None,
        request.method,
        request.path,
    )
    raise ForbiddenError(f"Access restricted for role {role.value}", reason="restricted_role")
