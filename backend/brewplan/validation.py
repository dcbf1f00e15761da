# Overview: Input validation helpers for the request layer and service entry points.

from __future__ import annotations

from enum import Enum
from typing import Any, Type, TypeVar

from brewplan.time_utils import parse_iso_date, parse_iso_datetime


# Maximum money amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999

E = TypeVar("E", bound=Enum)


class ValidationError(ValueError):
    """400-level input problem."""


def parse_enum(enum_cls: Type[E], value: Any, *, field: str = "status") -> E:
    """
    Parse a raw value into a closed enum.

    Unknown values are rejected, never defaulted: a typo at the boundary must
    not turn into a silently different status inside the core.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    try:
        return enum_cls(value.strip())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}'. Must be one of: {allowed}")


def require_positive_quantity(value: Any, *, field: str = "quantity") -> float:
    """Accept int/float/numeric string > 0. Booleans are rejected."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        qty = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if qty != qty or qty <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return qty


def require_positive_int(value: Any, *, field: str = "quantity") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        value = int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return value


def require_cents(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_AMOUNT_CENTS} cents")
    return value


def require_text(value: Any, *, field: str, max_length: int = 255) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    stripped = value.strip()
    if len(stripped) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return stripped


def optional_date(value: Any, *, field: str):
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO date string")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"Invalid {field} format")


def optional_version(value: Any, *, field: str = "expected_version") -> int | None:
    """Client-held row version for optimistic checks. Absent means no check."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def optional_number(value: Any, *, field: str, minimum: float | None = None, maximum: float | None = None) -> float | None:
    """Optional reading. None passes through; bounds are inclusive."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if number != number:
        raise ValidationError(f"{field} must be a number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum:g}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum:g}")
    return number


def optional_datetime(value: Any, *, field: str):
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO datetime string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {field} format")
