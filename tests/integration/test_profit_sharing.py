"""Integration tests for quarterly profit sharing and distribution payments."""

import asyncio
from datetime import UTC, datetime

import pytest

from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.exceptions import InvalidStateError, NotFoundError, ValidationError


IN_Q4 = datetime(2024, 11, 15, tzinfo=UTC)
AFTER_Q4 = datetime(2025, 1, 2, tzinfo=UTC)


async def _record_quarter(ledger: LedgerService, admin_id: int) -> None:
    await ledger.create_cash_flow_transaction(
        "income", 570_000_000, admin_id, transaction_date=IN_Q4
    )
    await ledger.create_cash_flow_transaction(
        "expense", 200_000_000, admin_id, transaction_date=IN_Q4
    )
    # Next quarter, must not be counted
    await ledger.create_cash_flow_transaction(
        "income", 999_000_000, admin_id, transaction_date=AFTER_Q4
    )


@pytest.fixture
def shareholders(make_user):
    """Founder with 300 shares and a customer 1M below maxout with 100 shares."""

    async def _create():
        founder = await make_user(tier="founder", investment_amount=300_000_000, total_shares=300)
        customer = await make_user(
            tier="customer",
            card_price=10_000_000,
            total_shares=100,
            total_distributed=20_000_000,
        )
        return founder, customer

    return _create


@pytest.mark.asyncio
async def test_calculate_quarterly_profit(session, admin_id) -> None:
    """Only approved transactions dated in the period are summed."""
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)

    summary = await ledger.calculate_quarterly_profit("quarter", "2024-Q4")

    assert summary.revenue == 570_000_000
    assert summary.expenses == 200_000_000
    assert summary.profit == 370_000_000


@pytest.mark.asyncio
async def test_profit_sharing_with_maxout(session, shareholders, config, admin_id) -> None:
    """181.3M is split pro rata and the customer is clamped to 1M."""
    founder, customer = await shareholders()
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)

    sharing = await ledger.process_quarterly_profit_sharing(
        "quarter", "2024-Q4", processed_by=admin_id, config=config
    )

    assert sharing.status == "calculated"
    assert sharing.profit == 370_000_000
    assert sharing.distributable_amount == 181_300_000
    assert sharing.corporate_tax_amount == 74_000_000
    assert sharing.total_shares == 400
    assert sharing.respect_maxout is True

    rows = {
        d.shareholder_id: d
        for d in await ledger.get_profit_distributions_by_sharing(sharing.id)
    }
    assert rows[founder.id].raw_entitlement == 135_975_000
    assert rows[founder.id].capped_amount == 135_975_000
    assert rows[customer.id].raw_entitlement == 45_325_000
    assert rows[customer.id].capped_amount == 1_000_000
    assert sum(d.raw_entitlement for d in rows.values()) <= sharing.distributable_amount

    # Allocated but unpaid amounts count towards the ceiling
    status = await ledger.check_maxout_limit(customer.id, config)
    assert status.limit == 21_000_000
    assert status.current == 21_000_000
    assert status.reached is True
    assert (await ledger.get_user_balance(customer.id)).maxout_reached is True


@pytest.mark.asyncio
async def test_profit_sharing_without_maxout(session, shareholders, config, admin_id) -> None:
    """Disabling maxout pays the raw entitlement."""
    _, customer = await shareholders()
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)

    sharing = await ledger.process_quarterly_profit_sharing_with_maxout(
        "quarter", "2024-Q4", respect_maxout=False, config=config
    )

    rows = await ledger.get_profit_distributions_by_sharing(sharing.id)
    capped = {d.shareholder_id: d.capped_amount for d in rows}
    assert capped[customer.id] == 45_325_000
    assert sharing.respect_maxout is False


@pytest.mark.asyncio
async def test_period_processed_once(session, shareholders, config, admin_id) -> None:
    """Processing a period twice is rejected and leaves one record."""
    await shareholders()
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)

    await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)
    with pytest.raises(InvalidStateError):
        await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)

    assert len(await ledger.get_profit_sharings()) == 1


@pytest.mark.asyncio
async def test_loss_distributes_nothing(session, shareholders, config, admin_id) -> None:
    """A loss quarter creates zero-amount rows."""
    await shareholders()
    ledger = LedgerService(session)
    await ledger.create_cash_flow_transaction(
        "expense", 50_000_000, admin_id, transaction_date=IN_Q4
    )

    sharing = await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)

    assert sharing.profit == -50_000_000
    assert sharing.distributable_amount == 0
    assert sharing.corporate_tax_amount == 0
    rows = await ledger.get_profit_distributions_by_sharing(sharing.id)
    assert all(d.capped_amount == 0 for d in rows)


@pytest.mark.asyncio
async def test_invalid_period_rejected(session, config) -> None:
    """Malformed periods fail before anything is written."""
    ledger = LedgerService(session)

    with pytest.raises(ValidationError):
        await ledger.process_quarterly_profit_sharing("quarter", "2024-Q9", config=config)
    assert await ledger.get_profit_sharings() == []


@pytest.mark.asyncio
async def test_pay_all_distributions(session, shareholders, config, admin_id) -> None:
    """Paying credits balances, tracks distributions and closes the record."""
    founder, customer = await shareholders()
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)
    sharing = await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)

    paid = await ledger.process_all_distribution_payments(sharing.id, config, admin_id)

    assert paid == 2
    founder_balance = await ledger.get_user_balance(founder.id)
    assert founder_balance.available_balance == 135_975_000
    assert founder_balance.total_distributed == 135_975_000

    customer_balance = await ledger.get_user_balance(customer.id)
    assert customer_balance.available_balance == 1_000_000
    assert customer_balance.total_distributed == 21_000_000
    assert customer_balance.maxout_reached is True

    for row in await ledger.get_profit_distributions_by_sharing(sharing.id):
        assert row.paid is True
        assert row.paid_amount == row.capped_amount
        assert row.paid_at is not None

    assert (await ledger.get_profit_sharing(sharing.id)).status == "paid"
    assert await ledger.process_all_distribution_payments(sharing.id, config) == 0


@pytest.mark.asyncio
async def test_mark_single_distribution_paid(session, shareholders, config, admin_id) -> None:
    """Rows can be paid one at a time; a paid row is skipped."""
    founder, _ = await shareholders()
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)
    sharing = await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)
    rows = {
        d.shareholder_id: d
        for d in await ledger.get_profit_distributions_by_sharing(sharing.id)
    }

    paid = await ledger.mark_distribution_paid(rows[founder.id].id, config, admin_id)

    assert paid.paid_amount == 135_975_000
    assert (await ledger.get_profit_sharing(sharing.id)).status == "calculated"
    assert await ledger.mark_distribution_paid(rows[founder.id].id, config) is None

    with pytest.raises(NotFoundError):
        await ledger.mark_distribution_paid(9999, config)


@pytest.mark.asyncio
async def test_payment_reclamps_when_ceiling_moved(session, shareholders, config, admin_id) -> None:
    """Distributions credited in between shrink the payable amount."""
    _, customer = await shareholders()
    customer_id = customer.id
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)
    sharing = await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)

    balance = await ledger.get_user_balance(customer_id)
    balance.total_distributed += 600_000
    await session.commit()

    await ledger.process_all_distribution_payments(sharing.id, config)

    rows = {
        d.shareholder_id: d
        for d in await ledger.get_profit_distributions_by_sharing(sharing.id)
    }
    assert rows[customer_id].capped_amount == 1_000_000
    assert rows[customer_id].paid_amount == 400_000
    assert (await ledger.get_user_balance(customer_id)).total_distributed == 21_000_000


@pytest.mark.asyncio
async def test_profit_sharing_readers(session, shareholders, config, admin_id) -> None:
    """Records can be looked up by period."""
    await shareholders()
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)
    sharing = await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)

    assert (await ledger.get_profit_sharing_by_period("quarter", "2024-Q4")).id == sharing.id
    assert await ledger.get_profit_sharing_by_period("quarter", "2024-Q3") is None


@pytest.mark.asyncio
async def test_customer_at_maxout_gets_nothing(session, make_user, config, admin_id) -> None:
    """A customer already paid 210% of the card price is capped at 0."""
    await make_user(tier="founder", total_shares=100)
    capped_customer = await make_user(
        tier="customer", card_price=10_000_000, total_shares=100, total_distributed=21_000_000
    )
    ledger = LedgerService(session)
    await _record_quarter(ledger, admin_id)

    sharing = await ledger.process_quarterly_profit_sharing("quarter", "2024-Q4", config=config)

    rows = {
        d.shareholder_id: d
        for d in await ledger.get_profit_distributions_by_sharing(sharing.id)
    }
    assert rows[capped_customer.id].raw_entitlement == 90_650_000
    assert rows[capped_customer.id].capped_amount == 0
    assert sum(d.capped_amount for d in rows.values()) < sharing.distributable_amount


@pytest.mark.asyncio
async def test_concurrent_runs_allocate_a_period_once(
    session, session_maker, shareholders, config, admin_id
) -> None:
    """Two sessions racing on one quarter: one allocates, the other is refused."""
    await shareholders()
    await _record_quarter(LedgerService(session), admin_id)

    async def run():
        async with session_maker() as run_session:
            return await LedgerService(run_session).process_quarterly_profit_sharing(
                "quarter", "2024-Q4", processed_by=admin_id, config=config
            )

    results = await asyncio.gather(run(), run(), return_exceptions=True)

    created = [r for r in results if not isinstance(r, BaseException)]
    refused = [r for r in results if isinstance(r, InvalidStateError)]
    assert len(created) == 1
    assert len(refused) == 1

    ledger = LedgerService(session)
    sharings = await ledger.get_profit_sharings()
    assert [s.id for s in sharings] == [created[0].id]
    assert len(await ledger.get_profit_distributions_by_sharing(created[0].id)) == 2
