"""Tests for business tier classification and share calculation."""

from decimal import Decimal

import pytest

from equity_ledger.config.business_constants import DEFAULT_TIER_CONFIGS, TierName
from equity_ledger.models import BusinessTierConfig
from equity_ledger.services.tier.calculator import calculate_shares, determine_tier
from equity_ledger.utils.exceptions import ConfigurationError, ValidationError


def _configs() -> list[BusinessTierConfig]:
    return [
        BusinessTierConfig(
            tier_name=default.tier_name.value,
            min_investment_amount=default.min_investment_amount,
            share_multiplier=default.share_multiplier,
            max_shares=default.max_shares,
        )
        for default in DEFAULT_TIER_CONFIGS
    ]


def _config(multiplier: str = "1.0", max_shares: int | None = None) -> BusinessTierConfig:
    return BusinessTierConfig(
        tier_name="customer",
        min_investment_amount=0,
        share_multiplier=Decimal(multiplier),
        max_shares=max_shares,
    )


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (0, TierName.CUSTOMER),
        (99_999_999, TierName.CUSTOMER),
        (100_000_000, TierName.ANGEL),
        (244_999_999, TierName.ANGEL),
        (245_000_000, TierName.FOUNDER),
        (1_000_000_000, TierName.FOUNDER),
    ],
)
def test_determine_tier_thresholds(amount: int, expected: TierName) -> None:
    """Highest reachable threshold wins."""
    assert determine_tier(amount, _configs()) == expected


def test_determine_tier_ignores_non_investment_tiers() -> None:
    """Branch, staff and affiliate share the 0 threshold but are not bought into."""
    assert determine_tier(5_000_000, _configs()) == TierName.CUSTOMER


def test_determine_tier_tie_resolves_by_declaration_order() -> None:
    """Equal thresholds resolve to the earlier declared tier."""
    configs = _configs()
    for config in configs:
        if config.tier_name == "angel":
            config.min_investment_amount = 245_000_000

    assert determine_tier(300_000_000, configs) == TierName.FOUNDER


def test_determine_tier_rejects_negative_amount() -> None:
    """Negative investments are invalid."""
    with pytest.raises(ValidationError):
        determine_tier(-1, _configs())


def test_determine_tier_without_matching_config() -> None:
    """No reachable tier configured is a configuration problem."""
    configs = [c for c in _configs() if c.tier_name in ("founder", "angel")]

    with pytest.raises(ConfigurationError):
        determine_tier(1_000_000, configs)


def test_calculate_shares_founder_deposit() -> None:
    """245M VND at multiplier 1.0 buys 245 shares."""
    assert calculate_shares(_config(), 245_000_000) == 245


def test_calculate_shares_rounds_down() -> None:
    """Partial million is dropped."""
    assert calculate_shares(_config(), 1_999_999) == 1
    assert calculate_shares(_config("1.5"), 3_000_000) == 4


def test_calculate_shares_respects_max_shares() -> None:
    """Excess over max_shares is dropped silently."""
    assert calculate_shares(_config(max_shares=200), 500_000_000) == 200


def test_calculate_shares_zero_multiplier() -> None:
    """Affiliate tier never earns shares."""
    assert calculate_shares(_config("0.0", max_shares=0), 50_000_000) == 0


def test_calculate_shares_is_monotonic() -> None:
    """More money never buys fewer shares."""
    config = _config("1.25", max_shares=150)
    amounts = range(0, 200_000_000, 3_333_333)
    shares = [calculate_shares(config, amount) for amount in amounts]

    assert shares == sorted(shares)
    assert max(shares) <= 150
