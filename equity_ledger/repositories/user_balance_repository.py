"""
User balance repository.

Data access layer for UserBalance model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.user_balance import UserBalance
from equity_ledger.repositories.base import BaseRepository


class UserBalanceRepository(BaseRepository[UserBalance]):
    """User balance repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user balance repository."""
        super().__init__(UserBalance, session)

    async def get_by_user_id(
        self, user_id: int, for_update: bool = False
    ) -> UserBalance | None:
        """
        Get balance row of a user.

        Args:
            user_id: User ID
            for_update: Lock the row until commit

        Returns:
            UserBalance or None if the user has no balance yet
        """
        stmt = select(UserBalance).where(UserBalance.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_shareholders(self) -> list[UserBalance]:
        """
        Get balances holding at least one share, ordered by user.

        Returns:
            List of balances with total_shares > 0
        """
        stmt = (
            select(UserBalance)
            .where(UserBalance.total_shares > 0)
            .order_by(UserBalance.user_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
