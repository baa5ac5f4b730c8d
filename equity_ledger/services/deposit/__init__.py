"""Deposit approval workflow."""

from equity_ledger.services.deposit.deposit_request_service import (
    DepositRequestService,
)


__all__ = ["DepositRequestService"]
