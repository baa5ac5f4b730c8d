"""
Quarterly processing tasks.

Dramatiq actors for KPI share awards, profit sharing and distribution
payments. Triggered by cron or admin actions; the engine itself has no
scheduler. Each run holds a Redis period lock so several workers never
process the same period at once.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import dramatiq
import redis.asyncio as redis
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from equity_ledger.config.settings import settings
from equity_ledger.services.ledger_service import LedgerService
from equity_ledger.utils.distributed_lock import DistributedLock
from equity_ledger.utils.exceptions import LedgerError
from jobs.async_runner import local_session_maker, run_async
from jobs.broker import broker  # noqa: F401

LockedRun = Callable[
    [async_sessionmaker[AsyncSession], DistributedLock], Awaitable[dict[str, Any]]
]


def _create_redis_client() -> redis.Redis:
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


async def _process_kpi_shares_async(
    period: str,
    period_value: str,
    session_maker: async_sessionmaker[AsyncSession],
    lock: DistributedLock,
) -> dict[str, Any]:
    """Async implementation of KPI share processing."""
    async with session_maker() as session:
        ledger = LedgerService(session, lock=lock)
        awards = await ledger.process_quarterly_shares(period, period_value)
        return {
            "rows": len(awards),
            "shares_awarded": sum(award.shares_awarded for award in awards),
        }


async def _process_profit_sharing_async(
    period: str,
    period_value: str,
    respect_maxout: bool,
    processed_by: int | None,
    session_maker: async_sessionmaker[AsyncSession],
    lock: DistributedLock,
) -> dict[str, Any]:
    """Async implementation of profit sharing processing."""
    async with session_maker() as session:
        ledger = LedgerService(session, lock=lock)
        sharing = await ledger.process_quarterly_profit_sharing_with_maxout(
            period,
            period_value,
            respect_maxout,
            processed_by=processed_by,
        )
        return {
            "profit_sharing_id": sharing.id,
            "distributable_amount": sharing.distributable_amount,
        }


async def _pay_distributions_async(
    profit_sharing_id: int,
    session_maker: async_sessionmaker[AsyncSession],
) -> dict[str, Any]:
    """Async implementation of distribution payments."""
    async with session_maker() as session:
        ledger = LedgerService(session)
        paid = await ledger.process_all_distribution_payments(profit_sharing_id)
        return {"profit_sharing_id": profit_sharing_id, "paid_rows": paid}


async def _run_locked(run: LockedRun) -> dict[str, Any]:
    redis_client = _create_redis_client()
    try:
        async with local_session_maker() as session_maker:
            return await run(session_maker, DistributedLock(redis_client=redis_client))
    finally:
        await redis_client.aclose()


async def _pay_in_local_session(profit_sharing_id: int) -> dict[str, Any]:
    async with local_session_maker() as session_maker:
        return await _pay_distributions_async(profit_sharing_id, session_maker)


@dramatiq.actor(max_retries=3, time_limit=600_000)  # must exceed period lock timeout
def process_kpi_shares(period: str, period_value: str) -> None:
    """
    Issue KPI shares for a period.

    Args:
        period: month, quarter or year
        period_value: e.g. "2024-Q4"
    """
    logger.info(f"Starting KPI share processing for {period_value}")
    try:
        result = run_async(
            _run_locked(
                lambda session_maker, lock: _process_kpi_shares_async(
                    period, period_value, session_maker, lock
                )
            )
        )
    except LedgerError as e:
        logger.warning(f"KPI share processing rejected: {e}")
        raise

    logger.info(
        f"KPI share processing complete: {result['rows']} rows, "
        f"{result['shares_awarded']} shares"
    )


@dramatiq.actor(max_retries=3, time_limit=600_000)
def process_profit_sharing(
    period: str,
    period_value: str,
    respect_maxout: bool = True,
    processed_by: int | None = None,
) -> None:
    """
    Calculate and allocate profit sharing of a period.

    Args:
        period: month, quarter or year
        period_value: e.g. "2024-Q4"
        respect_maxout: Clamp payouts to maxout ceilings
        processed_by: Admin user ID
    """
    logger.info(f"Starting profit sharing for {period_value}")
    try:
        result = run_async(
            _run_locked(
                lambda session_maker, lock: _process_profit_sharing_async(
                    period,
                    period_value,
                    respect_maxout,
                    processed_by,
                    session_maker,
                    lock,
                )
            )
        )
    except LedgerError as e:
        logger.warning(f"Profit sharing rejected: {e}")
        raise

    logger.info(
        f"Profit sharing {result['profit_sharing_id']} calculated: "
        f"distributable {result['distributable_amount']}"
    )


@dramatiq.actor(max_retries=3, time_limit=300_000)
def pay_profit_distributions(profit_sharing_id: int) -> None:
    """
    Pay all unpaid distributions of a profit sharing record.

    Args:
        profit_sharing_id: ProfitSharing ID
    """
    logger.info(f"Paying distributions of profit sharing {profit_sharing_id}")
    result = run_async(_pay_in_local_session(profit_sharing_id))
    logger.info(f"Paid {result['paid_rows']} distributions")
