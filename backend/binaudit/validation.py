from __future__ import annotations

from typing import Any


# Upper bound on a single bin count; guards Integer columns against overflow
# and catches obvious typos (extra zeros) at the counting screen.
MAX_BIN_QUANTITY = 1_000_000
MAX_PAGE_SIZE = 1000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


class NotFoundError(LookupError):
    """404-level: referenced worker, session, bin or user does not exist."""


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals
    and scientific notation.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")

    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")

    raise ValidationError(f"{field} must be an integer")


def parse_limit(value: Any, default: int) -> int:
    """Page size from a query string: 1..MAX_PAGE_SIZE, default when absent."""
    if value is None:
        return default
    limit = parse_int(value, "limit")
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    return min(limit, MAX_PAGE_SIZE)


def parse_quantity(value: Any, field: str = "qty") -> int:
    """Counted quantity: a non-negative integer no larger than MAX_BIN_QUANTITY."""
    qty = parse_int(value, field)
    if qty < 0:
        raise ValidationError(f"{field} cannot be negative")
    if qty > MAX_BIN_QUANTITY:
        raise ValidationError(f"{field} must be at most {MAX_BIN_QUANTITY}")
    return qty


def parse_optional_quantity(value: Any, field: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_quantity(value, field)


def require_text(payload: dict, field: str, max_length: int = 255) -> str:
    """Required, stripped, non-empty string field."""
    value = payload.get(field)
    if value is None:
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} is required")
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def optional_text(payload: dict, field: str, max_length: int = 255) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value or None


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no"):
        return False
    raise ValidationError(f"{field} must be a boolean")
