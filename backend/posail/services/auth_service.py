# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing and
validates password strength for new accounts.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper + lower case and a digit required
- authenticate() returns None for unknown email, wrong password and
  deactivated users alike; callers must not reveal which one happened
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Local, User
from posail.errors import ConflictError, InvalidInputError, NotFoundError
from posail.permissions import Role, normalize_role
from posail.time_utils import utcnow
from posail.validation import is_valid_email, normalize_email, sanitize_text


class PasswordValidationError(InvalidInputError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    if rounds is None:
        rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw() is timing-safe; malformed hashes simply fail."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(email: str, password: str) -> User | None:
    email = normalize_email(email)
    if not email or not isinstance(password, str) or not password:
        return None

    user = db.session.query(User).filter_by(email=email).first()
    if user is None or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_user(
    *,
    nombre: str,
    email: str,
    password: str,
    rol: str,
    local_id: int | None = None,
) -> User:
    """
    Create a staff account.

    Only superadmins may exist without a local; every other role except
    admin must be bound to one.
    """
    nombre = sanitize_text(nombre, max_length=120)
    email = normalize_email(email)
    role = normalize_role(rol)

    if not nombre:
        raise InvalidInputError("nombre is required")
    if not is_valid_email(email):
        raise InvalidInputError("email is invalid")
    if role is None or role is Role.PUBLIC:
        raise InvalidInputError("rol is invalid")

    if local_id is not None:
        if db.session.query(Local).filter_by(id=local_id).first() is None:
            raise NotFoundError("Local not found")
    elif role not in (Role.SUPERADMIN, Role.ADMIN):
        raise InvalidInputError(f"Role {role.value} requires a local", reason="local_required")

    if db.session.query(User).filter_by(email=email).first() is not None:
        raise ConflictError("Email already registered", reason="duplicate")

    user = User(
        nombre=nombre,
        email=email,
        password_hash=hash_password(password),
        rol=role.value,
        local_id=local_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user
