"""
Staff KPI calculations.

total_points = card_sales * 5 + customer_retention
slots_earned = floor(total_points / kpi_threshold_points)
shares_awarded = slots_earned * shares_per_slot
"""

from dataclasses import dataclass
from decimal import Decimal

from equity_ledger.config.business_constants import POINTS_PER_CARD_SALE
from equity_ledger.utils.exceptions import ValidationError
from equity_ledger.utils.money import floor_int, require_non_negative, to_decimal


@dataclass(frozen=True)
class KpiAward:
    """Shares awarded to a staff member for one KPI row."""

    kpi_id: int
    staff_id: int
    total_points: Decimal
    slots_earned: int
    shares_awarded: int


def validate_retention(customer_retention: int | float | str | Decimal) -> Decimal:
    """Customer retention as a Decimal percentage in [0, 100]."""
    retention = to_decimal(customer_retention)
    if not retention.is_finite() or retention < 0 or retention > 100:
        raise ValidationError(
            "customer_retention must be between 0 and 100",
            value=str(customer_retention),
        )
    return retention


def calculate_kpi_points(
    card_sales: int, customer_retention: int | float | str | Decimal
) -> Decimal:
    """
    KPI points of a period.

    Example:
        >>> calculate_kpi_points(10, Decimal("78.9"))
        Decimal('128.9')
    """
    require_non_negative(card_sales, "card_sales")
    return Decimal(card_sales * POINTS_PER_CARD_SALE) + validate_retention(
        customer_retention
    )


def calculate_kpi_award(
    total_points: Decimal, kpi_threshold_points: int, shares_per_slot: int
) -> tuple[int, int]:
    """
    Slots and shares earned for a point total.

    Returns:
        Tuple of (slots_earned, shares_awarded)
    """
    if kpi_threshold_points <= 0:
        raise ValidationError("kpi_threshold_points must be positive")
    slots = floor_int(to_decimal(total_points) / kpi_threshold_points)
    slots = max(slots, 0)
    return slots, slots * shares_per_slot
