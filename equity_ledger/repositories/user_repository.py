"""
User repository.

Data access layer for User model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.user import User
from equity_ledger.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email.

        Args:
            email: User email

        Returns:
            User or None if not found
        """
        return await self.get_by(email=email)

    async def get_by_tier(self, business_tier: str) -> list[User]:
        """Get all users in a business tier."""
        return await self.find_by(business_tier=business_tier)
