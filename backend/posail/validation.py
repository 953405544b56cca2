from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from posail.errors import InvalidInputError
from posail.time_utils import parse_iso_datetime


# Identifiers are positive integers; 18 digits keeps them inside a signed 64-bit column
_IDENTIFIER_RE = re.compile(r"^[0-9]{1,18}$")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Signed 64-bit column bounds
MAX_IDENTIFIER = 2**63 - 1
MIN_INTEGER = -(2**63)

# Quantities are stored as NUMERIC(14, 3)
QUANTITY_SCALE = 3
QUANTITY_STEP = Decimal(1).scaleb(-QUANTITY_SCALE)
MAX_QUANTITY = Decimal(10) ** 11


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def is_valid_identifier(value: Any) -> bool:
    try:
        return parse_identifier(value) is not None
    except ValueError:
        return False


def parse_identifier(value: Any) -> int | None:
    """
    Parse an entity identifier.

    - None / blank string -> None (absent)
    - positive int, or a string of digits -> int
    - anything else -> ValueError
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("identifier must be a positive integer")
    if isinstance(value, int):
        if value <= 0 or value > MAX_IDENTIFIER:
            raise ValueError("identifier must be a positive integer")
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if not _IDENTIFIER_RE.match(stripped):
            raise ValueError("identifier must be a positive integer")
        parsed = int(stripped)
        if parsed <= 0 or parsed > MAX_IDENTIFIER:
            raise ValueError("identifier must be a positive integer")
        return parsed
    raise ValueError("identifier must be a positive integer")


def require_identifier(value: Any, field: str, *, reason: str = "invalid_input") -> int:
    try:
        parsed = parse_identifier(value)
    except ValueError:
        raise InvalidInputError(f"{field} is invalid", reason=reason)
    if parsed is None:
        raise InvalidInputError(f"{field} is required", reason=reason)
    return parsed


def optional_identifier(value: Any, field: str, *, reason: str = "invalid_input") -> int | None:
    try:
        return parse_identifier(value)
    except ValueError:
        raise InvalidInputError(f"{field} is invalid", reason=reason)


def to_quantity(value: Any) -> Decimal | None:
    """
    Exact decimal quantity rounded to QUANTITY_STEP.

    Floats go through repr() so 0.1 becomes Decimal("0.1"), not its binary expansion.
    Returns None for anything non-numeric, non-finite or too wide for the column.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        value = repr(value)
    try:
        number = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not number.is_finite() or abs(number) >= MAX_QUANTITY:
        return None
    return number.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def parse_positive_quantity(value: Any) -> Decimal:
    """Quantities must be finite and strictly positive once rounded to QUANTITY_STEP."""
    number = to_quantity(value)
    if number is None or number <= 0:
        raise InvalidInputError("cantidad must be a finite number greater than zero", reason="invalid_quantity")
    return number


def sanitize_text(value: Any, *, max_length: int = 200, allow_empty: bool = False) -> str | None:
    """Strip control characters, collapse whitespace, truncate to max_length."""
    if value is None:
        return "" if allow_empty else None

    cleaned = _WHITESPACE_RE.sub(" ", _CONTROL_CHARS_RE.sub("", str(value))).strip()
    if not cleaned and not allow_empty:
        return None
    return cleaned[:max_length]


def normalize_email(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Booleans must be real JSON booleans (no truthiness guessing)
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidInputError(f"{col.key} must be a boolean")

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        number = None
        if isinstance(value, int) and not isinstance(value, bool):
            number = value
        elif isinstance(value, str):
            stripped = value.strip()
            if stripped.lstrip("-").isdigit():
                number = int(stripped)
        if number is None:
            raise InvalidInputError(f"{col.key} must be an integer")
        if not MIN_INTEGER <= number <= MAX_IDENTIFIER:
            raise InvalidInputError(f"{col.key} is out of range")
        return number

    if isinstance(coltype, Numeric):
        number = to_quantity(value)
        if number is None:
            raise InvalidInputError(f"{col.key} must be a number")
        return number

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise InvalidInputError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise InvalidInputError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return sanitize_text(value, allow_empty=True, max_length=10_000)

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Unknown keys are ignored rather than rejected: the POS front-end sends
    whole objects back on update.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInputError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise InvalidInputError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            raise InvalidInputError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidInputError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_insumo(patch: dict) -> None:
    for field in ("stock_minimo", "alerta_vencimiento_dias"):
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise InvalidInputError(f"{field} must be >= 0")


def parse_identifier_list(values: Any, field: str) -> list[int]:
    """A JSON list of identifiers; duplicates are dropped, order is kept."""
    if not isinstance(values, list):
        raise InvalidInputError(f"{field} must be a list")

    parsed: list[int] = []
    for value in values:
        try:
            identifier = parse_identifier(value)
        except ValueError:
            identifier = None
        if identifier is None:
            raise InvalidInputError(f"{field} contains an invalid identifier")
        if identifier not in parsed:
            parsed.append(identifier)
    return parsed
