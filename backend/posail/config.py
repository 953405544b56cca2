# backend/posail/config.py
from __future__ import annotations
import os


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw.strip())


class Config:
    # SQLite DB stored in backend/instance/posail.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///posail.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "production" turns a missing JWT_SECRET into a start-up failure
    ENV_NAME = os.environ.get("POSAIL_ENV", "development").strip().lower()

    # Resolved (and defaulted) once in create_app()
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_EXPIRES_IN = os.environ.get("JWT_EXPIRES_IN", "12h")

    # Identity fallbacks, both off unless explicitly enabled
    ALLOW_LEGACY_HEADERS = env_flag("ALLOW_LEGACY_HEADERS")
    ALLOW_PUBLIC_CATALOG = env_flag("ALLOW_PUBLIC_CATALOG")

    # Login throttling
    LOGIN_MAX_FAILURES = env_int("LOGIN_MAX_FAILURES", 5)
    LOGIN_FAILURE_WINDOW_MINUTES = env_int("LOGIN_FAILURE_WINDOW_MINUTES", 10)
    LOGIN_LOCKOUT_MINUTES = env_int("LOGIN_LOCKOUT_MINUTES", 15)

    BCRYPT_ROUNDS = env_int("BCRYPT_ROUNDS", 12)
