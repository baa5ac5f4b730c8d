"""
Business rules and constants for the equity ledger.

Single source of truth for business tiers, their payout caps and the
system configuration keys. Imported by models, services and scripts
without circular dependencies.
"""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple


# 1 share per 1,000,000 VND invested (before the tier multiplier)
SHARE_UNIT_VND = 1_000_000

# KPI points earned per card sold
POINTS_PER_CARD_SALE = 5

# Withdrawals up to this amount are tax free
WITHDRAWAL_TAX_FREE_THRESHOLD = 10_000_000

# Angel tier payout cap: 500% of investment
ANGEL_MAXOUT_PERCENTAGE = 500


class TierName(str, Enum):
    """Business tiers."""

    FOUNDER = "founder"
    ANGEL = "angel"
    BRANCH = "branch"
    CUSTOMER = "customer"
    STAFF = "staff"
    AFFILIATE = "affiliate"


class CapBasis(str, Enum):
    """What a tier's payout ceiling is measured against."""

    CARD_PRICE = "card_price"
    INVESTMENT = "investment"
    UNLIMITED = "unlimited"


class TierRule(NamedTuple):
    """Static behaviour of a business tier."""

    tier: TierName
    cap_basis: CapBasis
    # Fixed cap percentage; None means read maxout_limit_percentage
    cap_percentage: int | None
    # Can be reached by investing (candidate for determine_tier)
    investment_reachable: bool
    order: int


TIER_RULES: dict[TierName, TierRule] = {
    TierName.FOUNDER: TierRule(
        tier=TierName.FOUNDER,
        cap_basis=CapBasis.UNLIMITED,
        cap_percentage=None,
        investment_reachable=True,
        order=0,
    ),
    TierName.ANGEL: TierRule(
        tier=TierName.ANGEL,
        cap_basis=CapBasis.INVESTMENT,
        cap_percentage=ANGEL_MAXOUT_PERCENTAGE,
        investment_reachable=True,
        order=1,
    ),
    TierName.BRANCH: TierRule(
        tier=TierName.BRANCH,
        cap_basis=CapBasis.UNLIMITED,
        cap_percentage=None,
        investment_reachable=False,
        order=2,
    ),
    TierName.CUSTOMER: TierRule(
        tier=TierName.CUSTOMER,
        cap_basis=CapBasis.CARD_PRICE,
        cap_percentage=None,
        investment_reachable=True,
        order=3,
    ),
    TierName.STAFF: TierRule(
        tier=TierName.STAFF,
        cap_basis=CapBasis.UNLIMITED,
        cap_percentage=None,
        investment_reachable=False,
        order=4,
    ),
    TierName.AFFILIATE: TierRule(
        tier=TierName.AFFILIATE,
        cap_basis=CapBasis.UNLIMITED,
        cap_percentage=None,
        investment_reachable=False,
        order=5,
    ),
}


def get_tier_rule(tier: "TierName | str | None") -> TierRule | None:
    """Resolve the rule record for a tier name, None for users without a tier."""
    if tier is None:
        return None
    return TIER_RULES[TierName(tier)]


class DefaultTierConfig(NamedTuple):
    """Seed values for business_tier_configs."""

    tier_name: TierName
    min_investment_amount: int
    share_multiplier: Decimal
    max_shares: int | None
    description: str
    benefits: str


DEFAULT_TIER_CONFIGS: list[DefaultTierConfig] = [
    DefaultTierConfig(
        tier_name=TierName.FOUNDER,
        min_investment_amount=245_000_000,
        share_multiplier=Decimal("1.0"),
        max_shares=None,
        description="Founder tier - unlimited shares for investments >= 245M VND",
        benefits="Unlimited shares, highest profit sharing percentage, voting rights",
    ),
    DefaultTierConfig(
        tier_name=TierName.ANGEL,
        min_investment_amount=100_000_000,
        share_multiplier=Decimal("1.0"),
        max_shares=None,
        description="Angel tier - 1M VND = 1 share with 5x payout maxout",
        benefits="5x investment payout cap, maxout protection, priority support",
    ),
    DefaultTierConfig(
        tier_name=TierName.BRANCH,
        min_investment_amount=0,
        share_multiplier=Decimal("1.0"),
        max_shares=200,
        description="Branch tier - maximum 200 shares based on KPI performance",
        benefits="KPI-based share allocation up to 200 shares",
    ),
    DefaultTierConfig(
        tier_name=TierName.CUSTOMER,
        min_investment_amount=0,
        share_multiplier=Decimal("1.0"),
        max_shares=None,
        description="Card customer - 1M VND = 1 share with 210% card price maxout",
        benefits="210% card price payout cap, card-based benefits",
    ),
    DefaultTierConfig(
        tier_name=TierName.STAFF,
        min_investment_amount=0,
        share_multiplier=Decimal("1.0"),
        max_shares=None,
        description="Staff - 50 points = 50 shares per quarter",
        benefits="Performance-based shares, quarterly rewards",
    ),
    DefaultTierConfig(
        tier_name=TierName.AFFILIATE,
        min_investment_amount=0,
        share_multiplier=Decimal("0.0"),
        max_shares=0,
        description="Affiliate - 8% commission on referrals, no shares",
        benefits="Referral commission, no shares allocation",
    ),
]


class ConfigKey(str, Enum):
    """Runtime business configuration keys (system_configs table)."""

    MAXOUT_LIMIT_PERCENTAGE = "maxout_limit_percentage"
    KPI_THRESHOLD_POINTS = "kpi_threshold_points"
    PROFIT_SHARE_RATE = "profit_share_rate"
    WITHDRAWAL_MINIMUM = "withdrawal_minimum"
    WITHDRAWAL_TAX_RATE = "withdrawal_tax_rate"
    CORPORATE_TAX_RATE = "corporate_tax_rate"
    REFERRAL_COMMISSION_RATE = "referral_commission_rate"
    SHARES_PER_SLOT = "shares_per_slot"


class ConfigKind(str, Enum):
    """How a configuration value is validated at write time."""

    PERCENTAGE = "percentage"  # 0-100, may be fractional
    POSITIVE_INTEGER = "positive_integer"


CONFIG_KINDS: dict[ConfigKey, ConfigKind] = {
    ConfigKey.MAXOUT_LIMIT_PERCENTAGE: ConfigKind.POSITIVE_INTEGER,
    ConfigKey.KPI_THRESHOLD_POINTS: ConfigKind.POSITIVE_INTEGER,
    ConfigKey.PROFIT_SHARE_RATE: ConfigKind.PERCENTAGE,
    ConfigKey.WITHDRAWAL_MINIMUM: ConfigKind.POSITIVE_INTEGER,
    ConfigKey.WITHDRAWAL_TAX_RATE: ConfigKind.PERCENTAGE,
    ConfigKey.CORPORATE_TAX_RATE: ConfigKind.PERCENTAGE,
    ConfigKey.REFERRAL_COMMISSION_RATE: ConfigKind.PERCENTAGE,
    ConfigKey.SHARES_PER_SLOT: ConfigKind.POSITIVE_INTEGER,
}

CONFIG_DESCRIPTIONS: dict[ConfigKey, str] = {
    ConfigKey.MAXOUT_LIMIT_PERCENTAGE: "Maximum payout limit as percentage of card price",
    ConfigKey.KPI_THRESHOLD_POINTS: "KPI points required per share slot",
    ConfigKey.PROFIT_SHARE_RATE: "Percentage of quarterly profit distributed to shareholders",
    ConfigKey.WITHDRAWAL_MINIMUM: "Minimum withdrawal amount in VND",
    ConfigKey.WITHDRAWAL_TAX_RATE: "Tax rate percentage for withdrawals over 10M VND",
    ConfigKey.CORPORATE_TAX_RATE: "Corporate tax rate percentage on gross profit",
    ConfigKey.REFERRAL_COMMISSION_RATE: "Referral commission rate percentage",
    ConfigKey.SHARES_PER_SLOT: "Number of shares awarded per slot",
}
