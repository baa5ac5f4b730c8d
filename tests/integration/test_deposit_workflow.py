"""Integration tests for the deposit request workflow."""

import pytest

from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.exceptions import NotFoundError, ValidationError


@pytest.mark.asyncio
async def test_founder_deposit_issues_shares(session, tiers, make_user, admin_id) -> None:
    """Approving 245M as founder credits the balance and issues 245 shares."""
    user = await make_user()
    ledger = LedgerService(session)

    request = await ledger.create_deposit_request(user.id, 245_000_000, "founder")
    assert request.status == "pending"

    approved = await ledger.approve_deposit_request(request.id, admin_id)

    assert approved.status == "approved"
    assert approved.approved_by == admin_id

    balance = await ledger.get_user_balance(user.id)
    assert balance.available_balance == 245_000_000
    assert balance.total_shares == 245

    await session.refresh(user)
    assert user.business_tier == "founder"
    assert user.investment_amount == 245_000_000

    history = await ledger.get_user_shares_history(user.id)
    assert len(history) == 1
    assert history[0].change_amount == 245
    assert history[0].change_type == "deposit"
    assert history[0].transaction_id == str(request.id)


@pytest.mark.asyncio
async def test_requested_tier_above_investment_is_rederived(session, tiers, make_user, admin_id) -> None:
    """Asking for founder with 50M ends up as customer."""
    user = await make_user()
    ledger = LedgerService(session)

    request = await ledger.create_deposit_request(user.id, 50_000_000, "founder")
    await ledger.approve_deposit_request(request.id, admin_id)

    await session.refresh(user)
    assert user.business_tier == "customer"
    assert (await ledger.get_user_balance(user.id)).total_shares == 50


@pytest.mark.asyncio
async def test_cumulative_deposits_upgrade_tier(session, tiers, make_user, admin_id) -> None:
    """Investments accumulate towards higher tiers."""
    user = await make_user()
    ledger = LedgerService(session)

    for amount in (60_000_000, 60_000_000):
        request = await ledger.create_deposit_request(user.id, amount, "angel")
        await ledger.approve_deposit_request(request.id, admin_id)

    await session.refresh(user)
    assert user.investment_amount == 120_000_000
    assert user.business_tier == "angel"
    assert (await ledger.get_user_balance(user.id)).total_shares == 120


@pytest.mark.asyncio
async def test_approve_twice_is_noop(session, tiers, make_user, admin_id) -> None:
    """A processed request is skipped instead of credited again."""
    user = await make_user()
    ledger = LedgerService(session)
    request = await ledger.create_deposit_request(user.id, 10_000_000, "customer")

    await ledger.approve_deposit_request(request.id, admin_id)
    assert await ledger.approve_deposit_request(request.id, admin_id) is None

    balance = await ledger.get_user_balance(user.id)
    assert balance.available_balance == 10_000_000
    assert balance.total_shares == 10


@pytest.mark.asyncio
async def test_reject_leaves_balance_untouched(session, tiers, make_user, admin_id) -> None:
    """Rejection stores the reason and credits nothing."""
    user = await make_user()
    ledger = LedgerService(session)
    request = await ledger.create_deposit_request(user.id, 10_000_000, "customer")

    rejected = await ledger.reject_deposit_request(request.id, admin_id, "Payment not received")

    assert rejected.status == "rejected"
    assert rejected.notes == "Payment not received"
    balance = await ledger.get_user_balance(user.id)
    assert balance.available_balance == 0
    assert balance.total_shares == 0
    assert await ledger.approve_deposit_request(request.id, admin_id) is None


@pytest.mark.asyncio
async def test_reject_requires_reason(session, tiers, make_user, admin_id) -> None:
    """Empty rejection reasons are invalid."""
    user = await make_user()
    ledger = LedgerService(session)
    request = await ledger.create_deposit_request(user.id, 10_000_000, "customer")
    request_id = request.id

    with pytest.raises(ValidationError):
        await ledger.reject_deposit_request(request_id, admin_id, "  ")

    refreshed = await ledger.get_deposit_request(request_id)
    await session.refresh(refreshed)
    assert refreshed.status == "pending"


@pytest.mark.asyncio
async def test_invalid_requests(session, tiers, make_user, admin_id) -> None:
    """Bad amounts, tiers and ids are rejected."""
    user = await make_user()
    user_id = user.id
    ledger = LedgerService(session)

    with pytest.raises(ValidationError):
        await ledger.create_deposit_request(user_id, 0, "customer")
    with pytest.raises(ValidationError):
        await ledger.create_deposit_request(user_id, 1_000_000, "platinum")
    with pytest.raises(NotFoundError):
        await ledger.create_deposit_request(9999, 1_000_000, "customer")
    with pytest.raises(NotFoundError):
        await ledger.approve_deposit_request(9999, admin_id)


@pytest.mark.asyncio
async def test_deposit_request_readers(session, tiers, make_user, admin_id) -> None:
    """Requests can be listed by status and by user."""
    first = await make_user()
    second = await make_user()
    ledger = LedgerService(session)

    done = await ledger.create_deposit_request(first.id, 5_000_000, "customer")
    await ledger.create_deposit_request(second.id, 7_000_000, "customer")
    await ledger.approve_deposit_request(done.id, admin_id)

    pending = await ledger.get_deposit_requests("pending")
    assert [r.user_id for r in pending] == [second.id]
    assert len(await ledger.get_deposit_requests()) == 2
    assert [r.id for r in await ledger.get_user_deposit_requests(first.id)] == [done.id]
