"""
Business tier config repository.

Data access layer for BusinessTierConfig, keyed by tier name.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.business_tier_config import BusinessTierConfig
from equity_ledger.repositories.base import BaseRepository


class BusinessTierConfigRepository(BaseRepository[BusinessTierConfig]):
    """Business tier config repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize business tier config repository."""
        super().__init__(BusinessTierConfig, session)

    async def get_all_ordered(self) -> list[BusinessTierConfig]:
        """
        Get all tier configs, highest threshold first.

        Returns:
            List of tier configs
        """
        stmt = select(BusinessTierConfig).order_by(
            BusinessTierConfig.min_investment_amount.desc(),
            BusinessTierConfig.tier_name,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
