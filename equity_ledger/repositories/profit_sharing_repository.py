"""
Profit sharing repositories.

Data access layer for ProfitSharing and ProfitDistribution models.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.profit_sharing import ProfitDistribution, ProfitSharing
from equity_ledger.repositories.base import BaseRepository


class ProfitSharingRepository(BaseRepository[ProfitSharing]):
    """Profit sharing period repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize profit sharing repository."""
        super().__init__(ProfitSharing, session)

    async def get_by_period(
        self, period: str, period_value: str
    ) -> ProfitSharing | None:
        """Get the profit sharing record of a period."""
        return await self.get_by(period=period, period_value=period_value)

    async def get_all_newest_first(self) -> list[ProfitSharing]:
        """Get all profit sharing records, newest first."""
        stmt = select(ProfitSharing).order_by(ProfitSharing.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ProfitDistributionRepository(BaseRepository[ProfitDistribution]):
    """Per-shareholder distribution repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize profit distribution repository."""
        super().__init__(ProfitDistribution, session)

    async def get_by_sharing(
        self, profit_sharing_id: int, unpaid_only: bool = False
    ) -> list[ProfitDistribution]:
        """
        Get distributions of a profit sharing period.

        Args:
            profit_sharing_id: Parent ProfitSharing ID
            unpaid_only: Return only rows not yet paid (locked until commit)

        Returns:
            Distributions ordered by shareholder
        """
        stmt = select(ProfitDistribution).where(
            ProfitDistribution.profit_sharing_id == profit_sharing_id
        )
        if unpaid_only:
            stmt = stmt.where(ProfitDistribution.paid.is_(False)).with_for_update()
        stmt = stmt.order_by(ProfitDistribution.shareholder_id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_unpaid_for_shareholder(
        self, shareholder_id: int, exclude_id: int | None = None
    ) -> int:
        """
        Sum capped amounts allocated to a shareholder but not yet paid.

        Args:
            shareholder_id: User ID
            exclude_id: Distribution row to leave out of the sum

        Returns:
            Total unpaid capped amount
        """
        stmt = select(
            func.coalesce(func.sum(ProfitDistribution.capped_amount), 0)
        ).where(
            ProfitDistribution.shareholder_id == shareholder_id,
            ProfitDistribution.paid.is_(False),
        )
        if exclude_id is not None:
            stmt = stmt.where(ProfitDistribution.id != exclude_id)

        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)
