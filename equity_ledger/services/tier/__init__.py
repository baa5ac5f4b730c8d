"""Business tier classification and share calculation."""

from equity_ledger.services.tier.calculator import calculate_shares, determine_tier
from equity_ledger.services.tier.tier_service import BusinessTierService


__all__ = ["BusinessTierService", "calculate_shares", "determine_tier"]
