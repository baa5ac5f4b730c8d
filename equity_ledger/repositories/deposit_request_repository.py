"""
Deposit request repository.

Data access layer for DepositRequest model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.deposit_request import DepositRequest
from equity_ledger.repositories.base import BaseRepository


class DepositRequestRepository(BaseRepository[DepositRequest]):
    """Deposit request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit request repository."""
        super().__init__(DepositRequest, session)

    async def get_requests(
        self, status: str | None = None, user_id: int | None = None
    ) -> list[DepositRequest]:
        """
        Get deposit requests, newest first.

        Args:
            status: Optional status filter
            user_id: Optional user filter

        Returns:
            List of deposit requests
        """
        stmt = select(DepositRequest)
        if status is not None:
            stmt = stmt.where(DepositRequest.status == status)
        if user_id is not None:
            stmt = stmt.where(DepositRequest.user_id == user_id)
        stmt = stmt.order_by(DepositRequest.id.desc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
