"""
Distribution payment service.

Credits allocated profit distributions to shareholder balances. The
maxout ceiling is checked again at payment time because it may have
moved since allocation.
"""

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.models.enums import PROFIT_SHARING_STATES, ProfitSharingStatus
from equity_ledger.models.profit_sharing import ProfitDistribution, ProfitSharing
from equity_ledger.repositories.profit_sharing_repository import (
    ProfitDistributionRepository,
    ProfitSharingRepository,
)
from equity_ledger.services.audit_service import AuditService
from equity_ledger.services.balance_service import BalanceService
from equity_ledger.services.base_service import BaseService
from equity_ledger.services.maxout_guard import MaxoutGuard
from equity_ledger.services.system_config_service import load_ledger_config
from equity_ledger.utils.db_decorators import with_auto_commit
from equity_ledger.utils.exceptions import NotFoundError


class DistributionPaymentService(BaseService):
    """Profit distribution payments."""

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """Initialize distribution payment service."""
        super().__init__(session, audit)
        self.sharing_repo = ProfitSharingRepository(session)
        self.distribution_repo = ProfitDistributionRepository(session)
        self.balance_service = BalanceService(session, self.audit)
        self.maxout_guard = MaxoutGuard(session, self.audit)

    async def _get_sharing(self, profit_sharing_id: int) -> ProfitSharing:
        sharing = await self.sharing_repo.get_for_update(profit_sharing_id)
        if sharing is None:
            raise NotFoundError(
                f"Profit sharing {profit_sharing_id} not found",
                profit_sharing_id=profit_sharing_id,
            )
        return sharing

    async def _pay(
        self,
        distribution: ProfitDistribution,
        sharing: ProfitSharing,
        config: LedgerConfig,
    ) -> int:
        amount = distribution.capped_amount
        status = None
        # Lock the balance before reading the ceiling
        await self.balance_service.get_locked_balance(distribution.shareholder_id)
        if sharing.respect_maxout:
            status = await self.maxout_guard.check_maxout_limit(
                distribution.shareholder_id,
                config,
                exclude_distribution_id=distribution.id,
            )
            amount = status.clamp(amount)

        if amount > 0:
            balance = await self.balance_service.credit(
                distribution.shareholder_id,
                amount,
                f"Profit sharing {sharing.period_value}",
            )
            balance.total_distributed += amount
            if status is not None:
                self.maxout_guard.refresh_flag(balance, status, amount)

        if amount < distribution.capped_amount:
            self.logger.info(
                f"Distribution {distribution.id} clamped at payment: "
                f"{amount} of {distribution.capped_amount}",
                extra={"shareholder_id": distribution.shareholder_id},
            )

        distribution.paid_amount = amount
        distribution.paid = True
        distribution.paid_at = datetime.now(UTC)
        await self.session.flush()
        return amount

    async def _close_if_settled(self, sharing: ProfitSharing) -> None:
        unpaid = await self.distribution_repo.count(
            profit_sharing_id=sharing.id, paid=False
        )
        if unpaid == 0 and sharing.state != ProfitSharingStatus.PAID:
            sharing.status = PROFIT_SHARING_STATES.ensure(
                sharing.state, ProfitSharingStatus.PAID
            ).value
            await self.session.flush()

    @with_auto_commit
    async def process_all_distribution_payments(
        self,
        profit_sharing_id: int,
        config: LedgerConfig | None = None,
        actor_id: int | None = None,
    ) -> int:
        """
        Pay every unpaid distribution of a profit sharing record.

        Args:
            profit_sharing_id: ProfitSharing ID
            config: Configuration snapshot
            actor_id: Admin triggering the payments

        Returns:
            Number of distributions paid by this call

        Raises:
            NotFoundError: If the record does not exist
        """
        sharing = await self._get_sharing(profit_sharing_id)
        config = await load_ledger_config(self.session, config)

        unpaid = await self.distribution_repo.get_by_sharing(
            profit_sharing_id, unpaid_only=True
        )
        total = 0
        for distribution in unpaid:
            total += await self._pay(distribution, sharing, config)
        await self._close_if_settled(sharing)

        if unpaid:
            await self.audit.record(
                "profit_sharing.pay_all",
                "profit_sharing",
                sharing.id,
                actor_id=actor_id,
                after={"paid_rows": len(unpaid), "paid_total": total},
            )
        self.logger.info(
            f"Paid {len(unpaid)} distributions of profit sharing {sharing.id}, "
            f"total {total}"
        )
        return len(unpaid)

    @with_auto_commit
    async def mark_distribution_paid(
        self,
        distribution_id: int,
        config: LedgerConfig | None = None,
        actor_id: int | None = None,
    ) -> ProfitDistribution | None:
        """
        Pay a single distribution.

        Returns:
            Paid distribution, or None if it was already paid

        Raises:
            NotFoundError: If the distribution does not exist
        """
        distribution = await self.distribution_repo.get_for_update(distribution_id)
        if distribution is None:
            raise NotFoundError(
                f"Distribution {distribution_id} not found",
                distribution_id=distribution_id,
            )
        if distribution.paid:
            self.logger.warning(f"Distribution {distribution_id} already paid")
            return None

        sharing = await self._get_sharing(distribution.profit_sharing_id)
        config = await load_ledger_config(self.session, config)

        amount = await self._pay(distribution, sharing, config)
        await self._close_if_settled(sharing)

        await self.audit.record(
            "profit_distribution.pay",
            "profit_distribution",
            distribution.id,
            actor_id=actor_id,
            after={"paid_amount": amount, "shareholder_id": distribution.shareholder_id},
        )
        return distribution
