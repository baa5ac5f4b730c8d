"""
Profit allocation.

Pure calculations for quarterly profit sharing. Rounding always goes
down; the residual left by floor division is not redistributed.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from equity_ledger.utils.money import percent_of, pro_rata


@dataclass(frozen=True)
class ProfitSummary:
    """Approved income and expenses of a period."""

    revenue: int
    expenses: int

    @property
    def profit(self) -> int:
        """Revenue minus expenses, may be negative."""
        return self.revenue - self.expenses


@dataclass(frozen=True)
class ShareAllocation:
    """Raw entitlement of one shareholder."""

    shareholder_id: int
    share_count: int
    raw_entitlement: int


def calculate_distributable(profit: int, profit_share_rate: int | Decimal) -> int:
    """
    Amount distributed to shareholders.

    Formula: floor(max(profit, 0) * profit_share_rate / 100)

    Example:
        >>> calculate_distributable(570_000_000 - 200_000_000, 49)
        181300000
    """
    return percent_of(max(profit, 0), profit_share_rate)


def allocate_by_shares(
    distributable: int, holdings: Sequence[tuple[int, int]]
) -> list[ShareAllocation]:
    """
    Split an amount pro rata by share count.

    Args:
        distributable: Amount to split
        holdings: (shareholder_id, share_count) pairs, share_count > 0

    Returns:
        One allocation per holder; the sum never exceeds distributable
    """
    total_shares = sum(count for _, count in holdings)
    return [
        ShareAllocation(
            shareholder_id=holder_id,
            share_count=count,
            raw_entitlement=pro_rata(distributable, count, total_shares),
        )
        for holder_id, count in holdings
    ]
