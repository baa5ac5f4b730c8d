"""
Deposit request model.

A user's request to invest; pending until an admin approves or rejects it.
"""

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.enums import DepositRequestStatus
from equity_ledger.models.types import MoneyType


class DepositRequest(Base):
    """Deposit request model."""

    __tablename__ = "deposit_requests"
    __table_args__ = (
        CheckConstraint(
            'amount > 0', name='check_deposit_request_amount_positive'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    business_tier: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DepositRequestStatus.PENDING.value,
        index=True
    )  # pending, approved, rejected
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    @property
    def state(self) -> DepositRequestStatus:
        """Status as enum."""
        return DepositRequestStatus(self.status)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DepositRequest(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
