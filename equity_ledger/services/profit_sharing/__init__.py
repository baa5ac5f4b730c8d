"""Quarterly profit distribution engine."""

from equity_ledger.services.profit_sharing.allocation import (
    ProfitSummary,
    ShareAllocation,
    allocate_by_shares,
    calculate_distributable,
)
from equity_ledger.services.profit_sharing.distribution_payment_service import (
    DistributionPaymentService,
)
from equity_ledger.services.profit_sharing.profit_sharing_service import (
    ProfitSharingService,
)


__all__ = [
    "DistributionPaymentService",
    "ProfitSharingService",
    "ProfitSummary",
    "ShareAllocation",
    "allocate_by_shares",
    "calculate_distributable",
]
