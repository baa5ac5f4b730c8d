"""
User balance model.

One row per user: spendable balance, share count and payout counters.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.types import MoneyType


class UserBalance(Base):
    """User balance model."""

    __tablename__ = "user_balances"
    __table_args__ = (
        CheckConstraint(
            'available_balance >= 0',
            name='check_balance_available_non_negative'
        ),
        CheckConstraint(
            'total_shares >= 0', name='check_balance_shares_non_negative'
        ),
        CheckConstraint(
            'total_distributed >= 0',
            name='check_balance_distributed_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )

    available_balance: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    total_shares: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    maxout_reached: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Profit distributions credited so far (maxout "current")
    total_distributed: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    total_withdrawn: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )

    # Description of the last adjustment
    description: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserBalance(user_id={self.user_id}, "
            f"available={self.available_balance}, shares={self.total_shares})>"
        )
