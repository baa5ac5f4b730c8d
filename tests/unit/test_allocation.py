"""Tests for quarterly profit allocation math."""

from equity_ledger.services.profit_sharing.allocation import (
    ProfitSummary,
    allocate_by_shares,
    calculate_distributable,
)


def test_profit_summary() -> None:
    """Profit is revenue minus expenses and may be negative."""
    assert ProfitSummary(revenue=570_000_000, expenses=200_000_000).profit == 370_000_000
    assert ProfitSummary(revenue=10, expenses=30).profit == -20


def test_distributable_amount() -> None:
    """49% of 370M is 181.3M."""
    assert calculate_distributable(370_000_000, 49) == 181_300_000


def test_loss_distributes_nothing() -> None:
    """A loss is clamped to zero."""
    assert calculate_distributable(-5_000_000, 49) == 0


def test_allocation_is_pro_rata() -> None:
    """Entitlements follow share counts."""
    allocations = allocate_by_shares(181_300_000, [(1, 245), (2, 100), (3, 55)])
    entitlements = {a.shareholder_id: a.raw_entitlement for a in allocations}

    assert entitlements == {
        1: 111_046_250,
        2: 45_325_000,
        3: 24_928_750,
    }


def test_allocation_never_exceeds_distributable() -> None:
    """Floor rounding leaves a residual, never an overdraw."""
    allocations = allocate_by_shares(100, [(1, 1), (2, 1), (3, 1)])

    assert [a.raw_entitlement for a in allocations] == [33, 33, 33]
    assert sum(a.raw_entitlement for a in allocations) <= 100


def test_allocation_without_holders() -> None:
    """No shareholders means no allocations."""
    assert allocate_by_shares(1_000, []) == []
