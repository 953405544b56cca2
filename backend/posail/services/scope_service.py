# Overview: Access scope resolution; derives (role, local, caller) for each request.

"""
Access Scope Resolver

Every scoped route receives an immutable RequestScope built from, in
priority order:

1. A valid bearer token. It is trusted exclusively. Headers may confirm the
   token's local but never replace it, except:
   - superadmin may select any local via x-local-id;
   - admin may pick a local via x-local-id only when its token carries none.
2. No token, legacy headers disabled: rejected as unauthenticated, unless
   public catalog access is enabled and the request is an allow-listed GET.
   Those requests must name a valid local in x-local-id and resolve to the
   "public" role with no caller.
3. No token, legacy headers enabled: x-user-role / x-local-id / x-user-id are
   trusted as sent (each validated when present).

Any malformed identifier is a client error; the reason tells apart local,
caller and credential problems. resolve_scope() is pure: the same inputs
always produce the same scope and nothing is written anywhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from flask import current_app, g, request

from posail.errors import ForbiddenError, InvalidInputError, UnauthenticatedError
from posail.permissions import (
    Role,
    can_select_any_local,
    can_self_assign_local,
    normalize_role,
)
from posail.validation import parse_identifier
from .token_service import get_request_token_payload


ROLE_HEADER = "x-user-role"
LOCAL_HEADER = "x-local-id"
USER_HEADER = "x-user-id"

# Anonymous GETs allowed when ALLOW_PUBLIC_CATALOG is on
PUBLIC_CATALOG_ROUTES = (
    re.compile(r"^/api/productos/?$"),
    re.compile(r"^/api/productos/[^/]+/?$"),
    re.compile(r"^/api/agregados/?$"),
    re.compile(r"^/api/social-config/public/?$"),
)


@dataclass(frozen=True)
class RequestScope:
    role: Role | None = None
    local_id: int | None = None
    user_id: int | None = None

    @property
    def is_public(self) -> bool:
        return self.role is Role.PUBLIC

    def to_dict(self) -> dict:
        return {
            "rol": self.role.value if self.role else None,
            "local_id": self.local_id,
            "user_id": self.user_id,
        }


def is_public_catalog_request(method: str, path: str) -> bool:
    if (method or "").upper() != "GET":
        return False
    return any(pattern.match(path or "") for pattern in PUBLIC_CATALOG_ROUTES)


def _header(headers, name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _header_identifier(headers, name: str, *, label: str, reason: str) -> int | None:
    try:
        return parse_identifier(_header(headers, name))
    except ValueError:
        raise InvalidInputError(f"{label} is invalid", reason=reason)


def _invalid_credential() -> InvalidInputError:
    return InvalidInputError("Credential is invalid", reason="invalid_credential")


def _resolve_from_token(payload: dict, header_local_id: int | None) -> RequestScope:
    try:
        user_id = parse_identifier(payload.get("id"))
        token_local_id = parse_identifier(payload.get("localId"))
    except ValueError:
        raise _invalid_credential()

    role = normalize_role(payload.get("rol"))
    if user_id is None or role is None or role is Role.PUBLIC:
        raise _invalid_credential()

    if can_select_any_local(role):
        local_id = header_local_id if header_local_id is not None else token_local_id
    elif can_self_assign_local(role) and token_local_id is None:
        local_id = header_local_id
    else:
        if header_local_id is not None and header_local_id != token_local_id:
            raise ForbiddenError("Local does not match the credential", reason="forbidden")
        local_id = token_local_id

    return RequestScope(role=role, local_id=local_id, user_id=user_id)


def resolve_scope(
    *,
    headers,
    method: str,
    path: str,
    token_payload: dict | None,
    allow_legacy_headers: bool = False,
    allow_public_catalog: bool = False,
) -> RequestScope:
    header_local_id = _header_identifier(headers, LOCAL_HEADER, label="Local", reason="invalid_local")
    header_user_id = _header_identifier(headers, USER_HEADER, label="User", reason="invalid_user")

    if token_payload is not None:
        return _resolve_from_token(token_payload, header_local_id)

    if allow_legacy_headers:
        return RequestScope(
            role=normalize_role(_header(headers, ROLE_HEADER)),
            local_id=header_local_id,
            user_id=header_user_id,
        )

    if allow_public_catalog and is_public_catalog_request(method, path):
        if header_local_id is None:
            raise InvalidInputError("Local required", reason="local_required")
        return RequestScope(role=Role.PUBLIC, local_id=header_local_id, user_id=None)

    raise UnauthenticatedError("Authentication required")


def require_local(scope: RequestScope) -> int:
    if scope.local_id is None:
        raise InvalidInputError("Local required", reason="local_required")
    return scope.local_id


def get_request_scope() -> RequestScope:
    """
    Resolve the scope for the current request, once.

    Subsequent calls during the same request return the cached value.
    """
    scope = g.get("scope")
    if scope is not None:
        return scope

    try:
        scope = resolve_scope(
            headers=request.headers,
            method=request.method,
            path=request.path,
            token_payload=get_request_token_payload(),
            allow_legacy_headers=current_app.config["ALLOW_LEGACY_HEADERS"],
            allow_public_catalog=current_app.config["ALLOW_PUBLIC_CATALOG"],
        )
    except ForbiddenError:
        current_app.logger.warning(
            "Rejected local header contradicting credential: path=%s local_header=%s",
            request.path,
            request.headers.get(LOCAL_HEADER),
        )
        raise

    g.scope = scope
    return scope
