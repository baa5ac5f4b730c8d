"""Withdrawal validation, tax and cash flow approvals."""

from equity_ledger.services.withdrawal.cash_flow_service import (
    CashFlowService,
    WithdrawalValidation,
)
from equity_ledger.services.withdrawal.tax import (
    calculate_net_payout,
    calculate_withdrawal_tax,
)


__all__ = [
    "CashFlowService",
    "WithdrawalValidation",
    "calculate_net_payout",
    "calculate_withdrawal_tax",
]
