"""
Reporting period helpers.

Parses period values ("2024-11", "2024-Q4", "2024") into UTC
[start, end) boundaries.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from equity_ledger.utils.exceptions import ValidationError


class PeriodType(str, Enum):
    """Supported reporting periods."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


_PATTERNS = {
    PeriodType.MONTH: re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$"),
    PeriodType.QUARTER: re.compile(r"^(\d{4})-Q([1-4])$"),
    PeriodType.YEAR: re.compile(r"^(\d{4})$"),
}


def _month_start(year: int, month: int) -> datetime:
    if month > 12:
        year, month = year + 1, month - 12
    return datetime(year, month, 1, tzinfo=UTC)


def period_bounds(period: str, period_value: str) -> tuple[datetime, datetime]:
    """
    Get [start, end) datetime boundaries of a period.

    Args:
        period: "month", "quarter" or "year"
        period_value: "2024-11", "2024-Q4" or "2024"

    Returns:
        Tuple of (start, end), end exclusive

    Raises:
        ValidationError: If period or value is malformed
    """
    try:
        period_type = PeriodType(period)
    except ValueError as e:
        raise ValidationError(f"Unknown period type: {period}") from e

    match = _PATTERNS[period_type].match(period_value or "")
    if not match:
        raise ValidationError(
            f"Invalid {period_type.value} value: {period_value!r}",
            period=period,
            period_value=period_value,
        )

    year = int(match.group(1))
    if period_type == PeriodType.MONTH:
        month = int(match.group(2))
        return _month_start(year, month), _month_start(year, month + 1)
    if period_type == PeriodType.QUARTER:
        first_month = (int(match.group(2)) - 1) * 3 + 1
        return _month_start(year, first_month), _month_start(year, first_month + 3)
    return datetime(year, 1, 1, tzinfo=UTC), datetime(year + 1, 1, 1, tzinfo=UTC)


def validate_period(period: str, period_value: str) -> None:
    """Raise ValidationError if the period value is malformed."""
    period_bounds(period, period_value)
