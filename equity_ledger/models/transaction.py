"""
Transaction model.

Cash flow records: business income, expenses and user withdrawals.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.enums import TransactionStatus, TransactionType
from equity_ledger.models.types import MoneyType


class Transaction(Base):
    """Cash flow transaction."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_transaction_amount_positive'),
        CheckConstraint(
            'tax_amount >= 0', name='check_transaction_tax_non_negative'
        ),
        Index('idx_transaction_type_date', 'type', 'transaction_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # income, expense, withdrawal
    amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    # Withdrawal tax and net payout; 0 / amount for income and expense
    tax_amount: Mapped[int] = mapped_column(MoneyType, nullable=False, default=0)
    net_amount: Mapped[int] = mapped_column(MoneyType, nullable=False, default=0)
    # Gross debited when a withdrawal is approved; below amount when
    # clamped at the payout ceiling
    paid_amount: Mapped[int | None] = mapped_column(MoneyType, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TransactionStatus.PENDING.value,
        index=True
    )  # pending, approved, rejected

    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    branch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Date used for period bucketing
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
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

    @property
    def state(self) -> TransactionStatus:
        """Status as enum."""
        return TransactionStatus(self.status)

    @property
    def kind(self) -> TransactionType:
        """Type as enum."""
        return TransactionType(self.type)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transaction(id={self.id}, type={self.type}, "
            f"amount={self.amount}, status={self.status})>"
        )
