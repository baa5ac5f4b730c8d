"""
Profit sharing service.

Computes a period's profit and allocates the distributable part across
shareholders, clamped by each shareholder's maxout ceiling.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.config.settings import settings
from equity_ledger.models.enums import ProfitSharingStatus, TransactionType
from equity_ledger.models.profit_sharing import ProfitDistribution, ProfitSharing
from equity_ledger.repositories.profit_sharing_repository import (
    ProfitDistributionRepository,
    ProfitSharingRepository,
)
from equity_ledger.repositories.transaction_repository import TransactionRepository
from equity_ledger.repositories.user_balance_repository import (
    UserBalanceRepository,
)
from equity_ledger.services.audit_service import AuditService, snapshot
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.maxout_guard import MaxoutGuard
from equity_ledger.services.profit_sharing.allocation import (
    ProfitSummary,
    allocate_by_shares,
    calculate_distributable,
)
from equity_ledger.services.system_config_service import load_ledger_config
from equity_ledger.utils.db_decorators import with_rollback_on_error
from equity_ledger.utils.distributed_lock import DistributedLock, period_lock_name
from equity_ledger.utils.exceptions import InvalidStateError
from equity_ledger.utils.money import percent_of
from equity_ledger.utils.periods import period_bounds


SHARING_FIELDS = (
    "period",
    "period_value",
    "revenue",
    "expenses",
    "profit",
    "distributable_amount",
    "total_shares",
    "respect_maxout",
    "status",
)


class ProfitSharingService(BaseService):
    """Quarterly profit distribution engine."""

    def __init__(
        self,
        session: AsyncSession,
        audit: AuditService | None = None,
        lock: DistributedLock | None = None,
    ) -> None:
        """
        Initialize profit sharing service.

        Args:
            session: Async database session
            audit: Shared audit service
            lock: Period lock (process-local when not given)
        """
        super().__init__(session, audit)
        self.sharing_repo = ProfitSharingRepository(session)
        self.distribution_repo = ProfitDistributionRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.balance_repo = UserBalanceRepository(session)
        self.maxout_guard = MaxoutGuard(session, self.audit)
        self.lock = lock or DistributedLock()

    async def calculate_quarterly_profit(
        self, period: str, period_value: str
    ) -> ProfitSummary:
        """
        Sum approved income and expenses dated inside a period.

        Raises:
            ValidationError: If the period is malformed
        """
        start, end = period_bounds(period, period_value)
        revenue = await self.transaction_repo.sum_approved(
            TransactionType.INCOME.value, start, end
        )
        expenses = await self.transaction_repo.sum_approved(
            TransactionType.EXPENSE.value, start, end
        )
        return ProfitSummary(revenue=revenue, expenses=expenses)

    async def process_quarterly_profit_sharing(
        self,
        period: str,
        period_value: str,
        processed_by: int | None = None,
        config: LedgerConfig | None = None,
    ) -> ProfitSharing:
        """Process profit sharing of a period with maxout clamping."""
        return await self.process_quarterly_profit_sharing_with_maxout(
            period,
            period_value,
            respect_maxout=True,
            processed_by=processed_by,
            config=config,
        )

    @with_rollback_on_error
    async def process_quarterly_profit_sharing_with_maxout(
        self,
        period: str,
        period_value: str,
        respect_maxout: bool,
        processed_by: int | None = None,
        config: LedgerConfig | None = None,
    ) -> ProfitSharing:
        """
        Calculate and allocate profit sharing of a period.

        The existence check, allocation and commit all run under the
        period lock; a period can be processed only once.

        Args:
            period: month, quarter or year
            period_value: e.g. "2024-Q4"
            respect_maxout: Clamp each entitlement to the maxout room
            processed_by: Admin user ID
            config: Configuration snapshot

        Returns:
            Calculated ProfitSharing record

        Raises:
            ValidationError: If the period is malformed
            InvalidStateError: If the period was already processed
        """
        period_bounds(period, period_value)
        config = await load_ledger_config(self.session, config)
        lock_name = period_lock_name("profit_sharing", period, period_value)

        async with self.lock.lock(lock_name, timeout=settings.period_lock_timeout):
            if await self.sharing_repo.get_by_period(period, period_value):
                raise InvalidStateError(
                    f"Profit sharing for {period} {period_value} already processed",
                    period=period,
                    period_value=period_value,
                )

            summary = await self.calculate_quarterly_profit(period, period_value)
            distributable = calculate_distributable(
                summary.profit, config.profit_share_rate
            )
            shareholders = await self.balance_repo.get_shareholders()
            allocations = allocate_by_shares(
                distributable,
                [(b.user_id, b.total_shares) for b in shareholders],
            )
            balances = {b.user_id: b for b in shareholders}

            try:
                sharing = await self.sharing_repo.create(
                    period=period,
                    period_value=period_value,
                    revenue=summary.revenue,
                    expenses=summary.expenses,
                    profit=summary.profit,
                    profit_share_rate=config.profit_share_rate,
                    distributable_amount=distributable,
                    corporate_tax_amount=percent_of(
                        max(summary.profit, 0), config.corporate_tax_rate
                    ),
                    total_shares=sum(a.share_count for a in allocations),
                    respect_maxout=respect_maxout,
                    status=ProfitSharingStatus.CALCULATED.value,
                    processed_by=processed_by,
                )
            except IntegrityError as e:
                raise InvalidStateError(
                    f"Profit sharing for {period} {period_value} already processed"
                ) from e

            capped_total = 0
            for allocation in allocations:
                capped = allocation.raw_entitlement
                if respect_maxout:
                    status = await self.maxout_guard.check_maxout_limit(
                        allocation.shareholder_id, config
                    )
                    capped = status.clamp(allocation.raw_entitlement)
                    if capped < allocation.raw_entitlement:
                        self.maxout_guard.refresh_flag(
                            balances[allocation.shareholder_id], status, capped
                        )

                await self.distribution_repo.create(
                    profit_sharing_id=sharing.id,
                    shareholder_id=allocation.shareholder_id,
                    share_count=allocation.share_count,
                    raw_entitlement=allocation.raw_entitlement,
                    capped_amount=capped,
                    paid_amount=0,
                    paid=False,
                )
                capped_total += capped

            await self.audit.record(
                "profit_sharing.process",
                "profit_sharing",
                sharing.id,
                actor_id=processed_by,
                after={**snapshot(sharing, SHARING_FIELDS), "capped_total": capped_total},
            )
            await self.commit()

        self.logger.info(
            f"Profit sharing {period_value}: distributable {distributable}, "
            f"allocated {capped_total} to {len(allocations)} shareholders",
            extra={
                "profit": str(summary.profit),
                "respect_maxout": respect_maxout,
            },
        )
        return sharing

    async def get_profit_sharings(self) -> list[ProfitSharing]:
        """Get all profit sharing records, newest first."""
        return await self.sharing_repo.get_all_newest_first()

    async def get_profit_sharing(self, profit_sharing_id: int) -> ProfitSharing | None:
        """Get profit sharing record by ID."""
        return await self.sharing_repo.get_by_id(profit_sharing_id)

    async def get_profit_sharing_by_period(
        self, period: str, period_value: str
    ) -> ProfitSharing | None:
        """Get profit sharing record of a period."""
        return await self.sharing_repo.get_by_period(period, period_value)

    async def get_profit_distributions_by_sharing(
        self, profit_sharing_id: int
    ) -> list[ProfitDistribution]:
        """Get distributions of a profit sharing record, by shareholder."""
        return await self.distribution_repo.get_by_sharing(profit_sharing_id)
