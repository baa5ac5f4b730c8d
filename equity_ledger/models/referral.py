"""
Referral model.

A referrer's customer referral and the commission owed for it.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.enums import ReferralStatus
from equity_ledger.models.types import MoneyType, PercentType


class Referral(Base):
    """Referral model."""

    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint(
            'commission_paid >= 0',
            name='check_referral_commission_paid_non_negative'
        ),
        CheckConstraint(
            'commission_paid <= commission_amount',
            name='check_referral_commission_paid_not_exceeds_amount'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    referred_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    referral_code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, index=True
    )
    customer_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Non-owning back-reference to the qualifying transaction
    first_transaction_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    contribution_value: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )
    # Computed once at creation
    commission_amount: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    commission_paid: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReferralStatus.PENDING.value,
        index=True
    )  # pending, completed
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
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
    def state(self) -> ReferralStatus:
        """Status as enum."""
        return ReferralStatus(self.status)

    @property
    def commission_outstanding(self) -> int:
        """Commission not yet paid."""
        return self.commission_amount - self.commission_paid

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(id={self.id}, code={self.referral_code}, "
            f"commission={self.commission_paid}/{self.commission_amount})>"
        )
