"""
Integer money helpers.

All amounts are integers in the smallest currency unit. Rates are
percentages (0-100) and are applied with exact Decimal arithmetic,
then floored back to an integer before anything is persisted.
"""

import math
from decimal import Decimal, InvalidOperation

from equity_ledger.utils.exceptions import ValidationError


def to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Convert a number or numeric string to Decimal without float rounding."""
    if isinstance(value, float):
        # Go through str so 78.9 stays 78.9
        value = repr(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValidationError(f"Invalid number: {value!r}") from e


def floor_int(value: Decimal | int) -> int:
    """Floor a Decimal to an int."""
    return math.floor(value)


def percent_of(amount: int, rate_percent: int | Decimal) -> int:
    """
    Apply a percentage to an amount, rounding down.

    Formula: floor(amount * rate_percent / 100)

    Example:
        >>> percent_of(370_000_000, 49)
        181300000
    """
    return floor_int(Decimal(amount) * to_decimal(rate_percent) / 100)


def pro_rata(amount: int, part: int, whole: int) -> int:
    """
    Share of amount proportional to part/whole, rounding down.

    Formula: floor(amount * part / whole)
    """
    if whole <= 0:
        return 0
    return (amount * part) // whole


def require_positive(amount: int, field: str = "amount") -> int:
    """Validate that an amount is a positive integer."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{field} must be an integer", value=amount)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive", value=amount)
    return amount


def require_non_negative(amount: int, field: str = "amount") -> int:
    """Validate that an amount is a non-negative integer."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{field} must be an integer", value=amount)
    if amount < 0:
        raise ValidationError(f"{field} must not be negative", value=amount)
    return amount
