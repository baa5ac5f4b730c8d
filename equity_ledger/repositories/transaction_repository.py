"""
Transaction repository.

Data access layer for cash flow transactions.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.enums import TransactionStatus
from equity_ledger.models.transaction import Transaction
from equity_ledger.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def sum_approved(
        self, transaction_type: str, start: datetime, end: datetime
    ) -> int:
        """
        Sum approved transactions of a type within [start, end).

        Args:
            transaction_type: income, expense or withdrawal
            start: Period start (inclusive)
            end: Period end (exclusive)

        Returns:
            Total amount, 0 if there are none
        """
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.type == transaction_type,
            Transaction.status == TransactionStatus.APPROVED.value,
            Transaction.transaction_date >= start,
            Transaction.transaction_date < end,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def get_transactions(
        self,
        user_id: int | None = None,
        transaction_type: str | None = None,
        status: str | None = None,
    ) -> list[Transaction]:
        """
        Get transactions, newest first.

        Args:
            user_id: Optional user filter
            transaction_type: Optional type filter
            status: Optional status filter

        Returns:
            List of transactions
        """
        stmt = select(Transaction)
        if user_id is not None:
            stmt = stmt.where(Transaction.user_id == user_id)
        if transaction_type is not None:
            stmt = stmt.where(Transaction.type == transaction_type)
        if status is not None:
            stmt = stmt.where(Transaction.status == status)
        stmt = stmt.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
