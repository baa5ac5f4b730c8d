"""
Business tier and share calculator.

Pure functions: no database access, no side effects.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol

from equity_ledger.config.business_constants import (
    SHARE_UNIT_VND,
    TierName,
    get_tier_rule,
)
from equity_ledger.utils.exceptions import ConfigurationError, ValidationError
from equity_ledger.utils.money import floor_int, require_non_negative, to_decimal


class TierConfigLike(Protocol):
    """Fields of a tier configuration used by the calculator."""

    tier_name: str
    min_investment_amount: int
    share_multiplier: Decimal
    max_shares: int | None


def determine_tier(
    investment_amount: int, tier_configs: Iterable[TierConfigLike]
) -> TierName:
    """
    Select the highest tier whose threshold the investment reaches.

    Tiers are scanned by descending min_investment_amount. Only tiers that
    can be bought into (founder, angel, customer) are candidates; equal
    thresholds resolve by tier declaration order.

    Args:
        investment_amount: Cumulative investment (VND)
        tier_configs: Tier configurations

    Returns:
        Tier name

    Raises:
        ValidationError: If amount is negative
        ConfigurationError: If no configured tier covers the amount
    """
    require_non_negative(investment_amount, "investment_amount")

    candidates = []
    for config in tier_configs:
        rule = get_tier_rule(config.tier_name)
        if rule.investment_reachable and config.min_investment_amount <= investment_amount:
            candidates.append((-config.min_investment_amount, rule.order, rule.tier))

    if not candidates:
        raise ConfigurationError(
            f"No business tier covers investment {investment_amount}",
            investment_amount=investment_amount,
        )

    return min(candidates)[2]


def calculate_shares(tier_config: TierConfigLike, amount: int) -> int:
    """
    Shares issued for an amount under a tier.

    Formula: floor(amount / 1,000,000 * share_multiplier), clamped to
    max_shares when the tier has one.

    Example:
        245,000,000 VND at multiplier 1.0 -> 245 shares
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("amount must be an integer", value=amount)
    if amount <= 0:
        return 0

    multiplier = to_decimal(tier_config.share_multiplier)
    shares = floor_int(Decimal(amount) * multiplier / SHARE_UNIT_VND)
    shares = max(shares, 0)

    if tier_config.max_shares is not None:
        shares = min(shares, tier_config.max_shares)
    return shares
