"""
Roles and capability checks.

WHY: Every authorization decision in the API goes through one of the
functions below instead of comparing role strings inline. Routes ask
"can this role do X?", never "is this role in [...]?".
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    CAJERO = "cajero"
    MESERO = "mesero"
    REPARTIDOR = "repartidor"
    # Anonymous caller on an allow-listed catalog route
    PUBLIC = "public"


STAFF_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN, Role.CAJERO, Role.MESERO, Role.REPARTIDOR})
ADMIN_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN})

# Waiters only operate the restaurant floor
WAITER_PATH_PREFIXES = ("/api/restaurante",)
WAITER_EXACT_PATHS = frozenset({"/api/auth/login", "/health", "/"})


def normalize_role(raw) -> Role | None:
    """Trim + lowercase; unknown or empty values yield None."""
    if isinstance(raw, Role):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return Role(raw.strip().lower())
    except ValueError:
        return None


def can_select_any_local(role: Role | None) -> bool:
    return role is Role.SUPERADMIN


def can_self_assign_local(role: Role | None) -> bool:
    """Roles that may pick a local by header when their token carries none."""
    return role is Role.ADMIN


def can_manage_catalog(role: Role | None) -> bool:
    return role in ADMIN_ROLES


def can_delete_catalog(role: Role | None) -> bool:
    return role in ADMIN_ROLES


def can_manage_locales(role: Role | None) -> bool:
    return role in ADMIN_ROLES


def can_view_all_locales(role: Role | None) -> bool:
    return role in ADMIN_ROLES


def can_clone_insumos(role: Role | None) -> bool:
    return role is Role.SUPERADMIN


def can_configure_alerts(role: Role | None) -> bool:
    return role is Role.SUPERADMIN


def can_view_inventory(role: Role | None) -> bool:
    return role in STAFF_ROLES


def can_post_movements(role: Role | None) -> bool:
    return role in STAFF_ROLES


def is_path_allowed_for_role(role: Role | None, path: str) -> bool:
    """Only waiters are path-restricted; every other role passes."""
    if role is not Role.MESERO:
        return True
    path = path or ""
    return path.startswith(WAITER_PATH_PREFIXES) or path in WAITER_EXACT_PATHS
