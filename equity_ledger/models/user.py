"""
User model.

Represents a ledger participant: investor, card customer, staff member
or affiliate.
"""

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.types import MoneyType


class User(Base):
    """User model - ledger participants."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'investment_amount >= 0',
            name='check_user_investment_non_negative'
        ),
        CheckConstraint(
            'card_price >= 0', name='check_user_card_price_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="customer", index=True
    )  # admin, staff, customer, investor, affiliate
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )

    # Business tier (founder, angel, branch, customer, staff, affiliate)
    business_tier: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True
    )

    # Cumulative approved deposits (angel maxout basis)
    investment_amount: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    # Membership card price (customer maxout basis)
    card_price: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )

    # Timestamps
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
            f"<User(id={self.id}, email={self.email}, "
            f"tier={self.business_tier})>"
        )
