"""Integration tests for quarterly processing tasks."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.distributed_lock import DistributedLock
from equity_ledger.utils.exceptions import InvalidStateError
from jobs.tasks import quarterly_processing
from jobs.tasks.quarterly_processing import (
    _pay_distributions_async,
    _process_kpi_shares_async,
    _process_profit_sharing_async,
)


@pytest.mark.asyncio
async def test_kpi_job_is_idempotent(session, session_maker, make_user) -> None:
    """A repeated run finds nothing pending."""
    staff = await make_user(tier="staff", role="staff")
    await LedgerService(session).create_staff_kpi(staff.id, "quarter", "2024-Q4", 10, 78.9)

    first = await _process_kpi_shares_async("quarter", "2024-Q4", session_maker, DistributedLock())
    second = await _process_kpi_shares_async("quarter", "2024-Q4", session_maker, DistributedLock())

    assert first == {"rows": 1, "shares_awarded": 100}
    assert second == {"rows": 0, "shares_awarded": 0}


@pytest.mark.asyncio
async def test_profit_sharing_and_payment_jobs(session, session_maker, make_user, admin_id) -> None:
    """Profit sharing runs once per period and payments settle it."""
    founder = await make_user(tier="founder", total_shares=100)
    await LedgerService(session).create_cash_flow_transaction(
        "income", 100_000_000, admin_id, transaction_date=datetime(2024, 12, 1, tzinfo=UTC)
    )

    result = await _process_profit_sharing_async(
        "quarter", "2024-Q4", True, admin_id, session_maker, DistributedLock()
    )
    assert result["distributable_amount"] == 49_000_000

    with pytest.raises(InvalidStateError):
        await _process_profit_sharing_async(
            "quarter", "2024-Q4", True, admin_id, session_maker, DistributedLock()
        )

    paid = await _pay_distributions_async(result["profit_sharing_id"], session_maker)
    assert paid == {"profit_sharing_id": result["profit_sharing_id"], "paid_rows": 1}

    async with session_maker() as check:
        balance = await LedgerService(check).get_user_balance(founder.id)
        assert balance.available_balance == 49_000_000


@pytest.mark.asyncio
async def test_locked_run_uses_redis_and_local_sessions(session_maker) -> None:
    """Tasks run under a Redis-backed lock on a task-local session factory."""
    client = MagicMock()
    client.aclose = AsyncMock()
    run = AsyncMock(return_value={"rows": 0})

    @asynccontextmanager
    async def fake_local_session_maker():
        yield session_maker

    with patch.object(quarterly_processing, "_create_redis_client", return_value=client), \
            patch.object(quarterly_processing, "local_session_maker", fake_local_session_maker):
        assert await quarterly_processing._run_locked(run) == {"rows": 0}

    used_maker, lock = run.await_args.args
    assert used_maker is session_maker
    assert isinstance(lock, DistributedLock)
    assert lock.redis_client is client
    client.aclose.assert_awaited_once()
