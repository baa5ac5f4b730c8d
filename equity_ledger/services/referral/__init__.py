"""Referral commission lifecycle."""

from equity_ledger.services.referral.referral_service import (
    ReferralService,
    calculate_commission,
)


__all__ = ["ReferralService", "calculate_commission"]
