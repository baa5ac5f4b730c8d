"""
Referral repository.

Data access layer for Referral model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.referral import Referral
from equity_ledger.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_by_code(
        self, referral_code: str, for_update: bool = False
    ) -> Referral | None:
        """
        Get referral by its code.

        Args:
            referral_code: Referral code
            for_update: Lock the row until commit

        Returns:
            Referral or None if not found
        """
        stmt = select(Referral).where(Referral.referral_code == referral_code)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_referrer(self, referrer_id: int) -> list[Referral]:
        """
        Get referrals by referrer.

        Args:
            referrer_id: Referrer user ID

        Returns:
            List of referrals
        """
        return await self.find_by(referrer_id=referrer_id)

    async def get_with_outstanding_commission(
        self, referrer_id: int
    ) -> list[Referral]:
        """
        Get a referrer's referrals with commission still owed, locked.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Referrals where commission_paid < commission_amount
        """
        stmt = (
            select(Referral)
            .where(
                Referral.referrer_id == referrer_id,
                Referral.commission_paid < Referral.commission_amount,
            )
            .order_by(Referral.id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all_newest_first(self) -> list[Referral]:
        """Get all referrals, newest first."""
        stmt = select(Referral).order_by(Referral.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
