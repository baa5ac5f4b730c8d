"""
User shares history repository.

Append-only access to the share ledger.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.user_shares_history import UserSharesHistory
from equity_ledger.repositories.base import BaseRepository


class UserSharesHistoryRepository(BaseRepository[UserSharesHistory]):
    """Share ledger repository. Entries are created, never updated."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize shares history repository."""
        super().__init__(UserSharesHistory, session)

    async def get_by_user(self, user_id: int) -> list[UserSharesHistory]:
        """
        Get share ledger entries of a user, newest first.

        Args:
            user_id: User ID

        Returns:
            List of history entries
        """
        stmt = (
            select(UserSharesHistory)
            .where(UserSharesHistory.user_id == user_id)
            .order_by(
                UserSharesHistory.timestamp.desc(),
                UserSharesHistory.id.desc(),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_for_user(self, user_id: int) -> int:
        """Sum of all share deltas of a user."""
        stmt = select(
            func.coalesce(func.sum(UserSharesHistory.change_amount), 0)
        ).where(UserSharesHistory.user_id == user_id)
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)
