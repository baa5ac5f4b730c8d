"""Integration tests for referral commissions."""

from decimal import Decimal

import pytest

from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.exceptions import (
    CommissionOverpaymentError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


@pytest.mark.asyncio
async def test_referral_lifecycle(session, make_user, config, admin_id) -> None:
    """Create, complete with the first income and pay out 8% of 45M."""
    referrer = await make_user(tier="affiliate", role="affiliate")
    customer = await make_user()
    ledger = LedgerService(session)

    referral = await ledger.create_referral(referrer.id, "Tran Van A", 45_000_000, config=config)

    assert referral.status == "pending"
    assert referral.referral_code.startswith("REF")
    assert len(referral.referral_code) == 11
    assert referral.commission_amount == 3_600_000
    assert referral.commission_paid == 0

    income = await ledger.create_cash_flow_transaction(
        "income", 45_000_000, admin_id, user_id=customer.id
    )
    completed = await ledger.process_first_transaction(referral.referral_code, income.id)

    assert completed.status == "completed"
    assert completed.first_transaction_id == income.id
    assert completed.referred_user_id == customer.id
    assert completed.completed_at is not None

    await ledger.mark_commission_paid(referral.id, 1_000_000, admin_id)
    assert (await ledger.get_user_balance(referrer.id)).available_balance == 1_000_000

    assert await ledger.process_commission_payments(referrer.id, admin_id) == 2_600_000
    assert (await ledger.get_user_balance(referrer.id)).available_balance == 3_600_000
    assert (await ledger.get_referral_by_code(referral.referral_code)).commission_paid == 3_600_000
    assert await ledger.process_commission_payments(referrer.id) == 0


@pytest.mark.asyncio
async def test_commission_cannot_be_overpaid(session, make_user, config, admin_id) -> None:
    """Payments beyond the commission are rejected without crediting."""
    referrer = await make_user(tier="affiliate", role="affiliate")
    referrer_id = referrer.id
    ledger = LedgerService(session)
    referral = await ledger.create_referral(referrer_id, None, 45_000_000, config=config)
    referral_id = referral.id

    with pytest.raises(CommissionOverpaymentError):
        await ledger.mark_commission_paid(referral_id, 3_600_001, admin_id)
    with pytest.raises(ValidationError):
        await ledger.mark_commission_paid(referral_id, 0, admin_id)
    with pytest.raises(NotFoundError):
        await ledger.mark_commission_paid(9999, 1, admin_id)

    assert await ledger.calculate_referral_commission(referral_id) == 3_600_000
    balance = await ledger.get_user_balance(referrer_id)
    await session.refresh(balance)
    assert balance.available_balance == 0


@pytest.mark.asyncio
async def test_first_transaction_rules(session, make_user, config, admin_id) -> None:
    """Only one approved income transaction completes a referral."""
    referrer = await make_user(tier="affiliate", role="affiliate")
    customer = await make_user()
    customer_id = customer.id
    ledger = LedgerService(session)
    referral = await ledger.create_referral(referrer.id, "B", 10_000_000, config=config)
    code = referral.referral_code
    expense = await ledger.create_cash_flow_transaction("expense", 1_000_000, admin_id)
    expense_id = expense.id
    income = await ledger.create_cash_flow_transaction("income", 10_000_000, admin_id)
    income_id = income.id

    with pytest.raises(NotFoundError):
        await ledger.process_first_transaction("REFMISSING", income_id)
    with pytest.raises(NotFoundError):
        await ledger.process_first_transaction(code, 9999)
    with pytest.raises(ValidationError):
        await ledger.process_first_transaction(code, expense_id)

    completed = await ledger.process_first_transaction(
        code, income_id, referred_user_id=customer_id
    )
    assert completed.referred_user_id == customer_id

    with pytest.raises(InvalidStateError):
        await ledger.process_first_transaction(code, income_id)


@pytest.mark.asyncio
async def test_custom_commission_rate(session, make_user) -> None:
    """Explicit fractional rates are stored and rounded down."""
    referrer = await make_user(tier="affiliate", role="affiliate")
    referrer_id = referrer.id
    ledger = LedgerService(session)

    referral = await ledger.create_referral(referrer_id, None, 999, commission_rate="8.5")

    assert referral.commission_rate == Decimal("8.5")
    assert referral.commission_amount == 84

    with pytest.raises(ValidationError):
        await ledger.create_referral(referrer_id, None, 1_000, commission_rate=101)
    with pytest.raises(NotFoundError):
        await ledger.create_referral(9999, None, 1_000, commission_rate=8)


@pytest.mark.asyncio
async def test_referral_readers(session, make_user, config) -> None:
    """Referrals are listed overall and per referrer with unique codes."""
    first = await make_user(tier="affiliate", role="affiliate")
    second = await make_user(tier="affiliate", role="affiliate")
    ledger = LedgerService(session)

    await ledger.create_referral(first.id, None, 1_000_000, config=config)
    await ledger.create_referral(first.id, None, 2_000_000, config=config)
    await ledger.create_referral(second.id, None, 3_000_000, config=config)

    assert len(await ledger.get_referrals()) == 3
    mine = await ledger.get_referrals_by_referrer(first.id)
    assert len(mine) == 2
    assert len({r.referral_code for r in await ledger.get_referrals()}) == 3
    assert await ledger.get_referral_by_code("REFNOTHING") is None
