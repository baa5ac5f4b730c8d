"""
Withdrawal tax.

Withdrawals up to 10,000,000 VND are tax free. Above that the tax rate
applies to the full amount, not only the excess.
"""

from decimal import Decimal

from equity_ledger.config.business_constants import WITHDRAWAL_TAX_FREE_THRESHOLD
from equity_ledger.utils.money import percent_of, require_non_negative


def calculate_withdrawal_tax(amount: int, tax_rate: int | Decimal) -> int:
    """
    Tax withheld from a withdrawal.

    Example:
        >>> calculate_withdrawal_tax(10_000_000, 10)
        0
        >>> calculate_withdrawal_tax(10_000_001, 10)
        1000000
    """
    require_non_negative(amount)
    if amount <= WITHDRAWAL_TAX_FREE_THRESHOLD:
        return 0
    return percent_of(amount, tax_rate)


def calculate_net_payout(amount: int, tax_rate: int | Decimal) -> int:
    """Amount paid out after tax."""
    return amount - calculate_withdrawal_tax(amount, tax_rate)
