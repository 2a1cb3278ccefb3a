from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from cyberpos.time_utils import parse_iso_datetime


# Maximum amount: $9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT = Decimal("9999999.99")

CENTS = Decimal("0.01")
MILLS = Decimal("0.001")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate id)."""


def to_money(value) -> Decimal:
    """Quantize an amount to cents (all displays except commission lines)."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_mills(value) -> Decimal:
    """Quantize an amount to three decimals (commission lines)."""
    return Decimal(value).quantize(MILLS, rounding=ROUND_HALF_UP)


def require_fields(payload: dict, *names: str) -> None:
    missing = [n for n in names if payload.get(n) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation so "1.5" or "1e3" never silently become ints.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_money(value: Any, field: str, *, allow_zero: bool = True) -> Decimal:
    """Parse a non-negative monetary amount from JSON (number or string)."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        # str() first so floats like 0.1 do not drag binary noise along
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{field} must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed amount")
    return amount


def parse_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if not isinstance(value, str) or value.strip().upper() not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value.strip().upper()


def parse_optional_datetime(value: Any, field: str):
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
