"""Integration tests for withdrawals and cash flow transactions."""

import pytest

from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.exceptions import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


@pytest.mark.asyncio
async def test_validate_withdrawal_balance(session, make_user, config) -> None:
    """Minimum and balance checks report the available amount."""
    user = await make_user(available_balance=20_000_000)
    ledger = LedgerService(session)

    ok = await ledger.validate_withdrawal_balance(user.id, 20_000_000, config)
    assert ok.valid is True
    assert ok.available_balance == 20_000_000
    assert ok.error_message is None

    too_small = await ledger.validate_withdrawal_balance(user.id, 4_999_999, config)
    assert too_small.valid is False
    assert "Minimum" in too_small.error_message

    too_big = await ledger.validate_withdrawal_balance(user.id, 20_000_001, config)
    assert too_big.valid is False
    assert too_big.available_balance == 20_000_000


@pytest.mark.asyncio
async def test_withdrawal_approval_debits_gross(session, make_user, config, admin_id) -> None:
    """Approval debits the gross amount; tax is withheld from the payout."""
    user = await make_user(available_balance=30_000_000)
    ledger = LedgerService(session)

    request = await ledger.create_withdrawal_request(user.id, 20_000_000, "Payout", config)

    assert request.status == "pending"
    assert request.tax_amount == 2_000_000
    assert request.net_amount == 18_000_000
    assert (await ledger.get_user_balance(user.id)).available_balance == 30_000_000
    assert [t.id for t in await ledger.get_pending_transactions()] == [request.id]

    approved = await ledger.approve_cash_flow_transaction(request.id, admin_id, config)

    assert approved.status == "approved"
    assert approved.approved_by == admin_id
    balance = await ledger.get_user_balance(user.id)
    assert balance.available_balance == 10_000_000
    assert balance.total_withdrawn == 20_000_000
    assert await ledger.get_pending_transactions() == []


@pytest.mark.asyncio
async def test_tax_free_withdrawal(session, make_user, config) -> None:
    """Up to 10M no tax is withheld."""
    user = await make_user(available_balance=10_000_000)
    ledger = LedgerService(session)

    request = await ledger.create_withdrawal_request(user.id, 10_000_000, config=config)

    assert request.tax_amount == 0
    assert request.net_amount == 10_000_000
    assert await ledger.calculate_withdrawal_tax(10_000_001, config) == 1_000_000


@pytest.mark.asyncio
async def test_withdrawal_rejected_when_insufficient(session, make_user, config) -> None:
    """Requests below the minimum or above the balance are refused."""
    user = await make_user(available_balance=6_000_000)
    user_id = user.id
    ledger = LedgerService(session)

    with pytest.raises(InsufficientFundsError):
        await ledger.create_withdrawal_request(user_id, 7_000_000, config=config)
    with pytest.raises(InsufficientFundsError):
        await ledger.create_withdrawal_request(user_id, 1_000_000, config=config)
    with pytest.raises(NotFoundError):
        await ledger.validate_withdrawal_balance(9999, 6_000_000, config)

    assert await ledger.get_cash_flow_transactions(user_id) == []


@pytest.mark.asyncio
async def test_approval_revalidates_balance(session, make_user, config, admin_id) -> None:
    """Two pending withdrawals cannot both drain the same balance."""
    user = await make_user(available_balance=12_000_000)
    user_id = user.id
    ledger = LedgerService(session)
    first = await ledger.create_withdrawal_request(user_id, 8_000_000, config=config)
    second = await ledger.create_withdrawal_request(user_id, 8_000_000, config=config)
    second_id = second.id

    await ledger.approve_cash_flow_transaction(first.id, admin_id, config)
    with pytest.raises(InsufficientFundsError):
        await ledger.approve_cash_flow_transaction(second_id, admin_id, config)

    balance = await ledger.get_user_balance(user_id)
    await session.refresh(balance)
    assert balance.available_balance == 4_000_000
    pending = await ledger.get_pending_transactions()
    assert [t.id for t in pending] == [second_id]


@pytest.mark.asyncio
async def test_reject_withdrawal(session, make_user, config, admin_id) -> None:
    """Rejected withdrawals keep the balance and cannot be approved later."""
    user = await make_user(available_balance=12_000_000)
    user_id = user.id
    ledger = LedgerService(session)
    request = await ledger.create_withdrawal_request(user_id, 8_000_000, config=config)
    request_id = request.id

    with pytest.raises(ValidationError):
        await ledger.reject_cash_flow_transaction(request_id, admin_id, "")

    rejected = await ledger.reject_cash_flow_transaction(request_id, admin_id, "KYC missing")
    assert rejected.status == "rejected"
    assert rejected.notes == "KYC missing"

    with pytest.raises(InvalidStateError):
        await ledger.approve_cash_flow_transaction(request_id, admin_id, config)

    balance = await ledger.get_user_balance(user_id)
    await session.refresh(balance)
    assert balance.available_balance == 12_000_000


@pytest.mark.asyncio
async def test_cash_flow_transactions(session, admin_id) -> None:
    """Income and expense are approved on entry and listed by type."""
    ledger = LedgerService(session)

    income = await ledger.create_cash_flow_transaction(
        "income", 5_000_000, admin_id, description="Card sale", branch_id="HN-01"
    )
    await ledger.create_cash_flow_transaction("expense", 1_000_000, admin_id)

    assert income.status == "approved"
    assert income.approved_by == admin_id
    assert income.branch_id == "HN-01"
    assert income.transaction_date is not None
    assert [t.id for t in await ledger.get_cash_flow_transactions_by_type("income")] == [income.id]
    assert len(await ledger.get_cash_flow_transactions()) == 2

    with pytest.raises(ValidationError):
        await ledger.create_cash_flow_transaction("withdrawal", 1_000_000, admin_id)
    with pytest.raises(ValidationError):
        await ledger.create_cash_flow_transaction("income", -5, admin_id)
    with pytest.raises(ValidationError):
        await ledger.create_cash_flow_transaction("refund", 5, admin_id)


@pytest.mark.asyncio
async def test_withdrawal_at_maxout_is_clamped(session, make_user, config, admin_id) -> None:
    """A customer at the 210% ceiling is approved with a zero payout."""
    customer = await make_user(
        tier="customer",
        card_price=10_000_000,
        available_balance=30_000_000,
        total_distributed=21_000_000,
    )
    ledger = LedgerService(session)
    assert (await ledger.check_maxout_limit(customer.id, config)).reached is True

    request = await ledger.create_withdrawal_request(customer.id, 20_000_000, config=config)
    approved = await ledger.approve_cash_flow_transaction(request.id, admin_id, config)

    assert approved.status == "approved"
    assert approved.amount == 20_000_000
    assert approved.paid_amount == 0
    assert approved.tax_amount == 0
    assert approved.net_amount == 0
    assert "maxout" in approved.notes

    balance = await ledger.get_user_balance(customer.id)
    assert balance.available_balance == 30_000_000
    assert balance.total_withdrawn == 0
    assert balance.maxout_reached is True


@pytest.mark.asyncio
async def test_withdrawals_count_towards_maxout(session, make_user, config, admin_id) -> None:
    """Withdrawing beyond the distributed amount fills the ceiling."""
    customer = await make_user(
        tier="customer", card_price=10_000_000, available_balance=40_000_000
    )
    ledger = LedgerService(session)

    first = await ledger.create_withdrawal_request(customer.id, 25_000_000, config=config)
    paid = await ledger.approve_cash_flow_transaction(first.id, admin_id, config)

    assert paid.paid_amount == 25_000_000
    assert paid.net_amount == 22_500_000
    status = await ledger.check_maxout_limit(customer.id, config)
    assert status.current == 25_000_000
    assert status.reached is True

    second = await ledger.create_withdrawal_request(customer.id, 10_000_000, config=config)
    clamped = await ledger.approve_cash_flow_transaction(second.id, admin_id, config)

    assert clamped.paid_amount == 0
    balance = await ledger.get_user_balance(customer.id)
    assert balance.available_balance == 15_000_000
    assert balance.total_withdrawn == 25_000_000


@pytest.mark.asyncio
async def test_unlimited_tier_withdrawal_records_paid_amount(
    session, make_user, config, admin_id
) -> None:
    """Without a ceiling the full gross is paid and recorded."""
    founder = await make_user(tier="founder", available_balance=50_000_000)
    ledger = LedgerService(session)

    request = await ledger.create_withdrawal_request(founder.id, 50_000_000, config=config)
    approved = await ledger.approve_cash_flow_transaction(request.id, admin_id, config)

    assert approved.paid_amount == 50_000_000
    assert approved.tax_amount == 5_000_000
    assert approved.notes is None
    assert (await ledger.get_user_balance(founder.id)).available_balance == 0
