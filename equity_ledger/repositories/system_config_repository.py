"""
System config repository.

Data access layer for SystemConfig model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.system_config import SystemConfig
from equity_ledger.repositories.base import BaseRepository


class SystemConfigRepository(BaseRepository[SystemConfig]):
    """System config repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize system config repository."""
        super().__init__(SystemConfig, session)

    async def get_by_key(self, config_key: str) -> SystemConfig | None:
        """Get config entry by key."""
        return await self.get_by(config_key=config_key)

    async def get_all_by_key(self) -> list[SystemConfig]:
        """Get all config entries ordered by key."""
        stmt = select(SystemConfig).order_by(SystemConfig.config_key)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
