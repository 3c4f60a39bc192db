"""Currency arithmetic helpers.

Every monetary value in the system goes through `round2` so totals are
reproducible regardless of the database backend's float handling.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')
HUNDRED = Decimal('100')


def to_decimal(value: Any) -> Decimal:
    """Convert ints/floats/strings to Decimal without float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def round2(value: Any) -> Decimal:
    """Round to two decimals, half-up (9.745 -> 9.75)."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def percent_of(amount: Any, percentage: Optional[Any]) -> Decimal:
    """round2(amount * percentage / 100); no percentage means zero."""
    if percentage is None:
        return ZERO
    return round2(to_decimal(amount) * to_decimal(percentage) / HUNDRED)


def money_str(value: Any) -> str:
    """Serialize an amount for JSON payloads (always two decimals)."""
    return str(round2(value))
