"""
Profit sharing models.

ProfitSharing holds one period's profit calculation; ProfitDistribution
rows are the per-shareholder payouts owned by it.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equity_ledger.models.base import Base
from equity_ledger.models.enums import ProfitSharingStatus
from equity_ledger.models.types import MoneyType, PercentType


class ProfitSharing(Base):
    """Profit sharing period."""

    __tablename__ = "profit_sharings"
    __table_args__ = (
        UniqueConstraint(
            'period', 'period_value', name='uq_profit_sharing_period'
        ),
        CheckConstraint(
            'distributable_amount >= 0',
            name='check_profit_sharing_distributable_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    period: Mapped[str] = mapped_column(String(10), nullable=False)
    period_value: Mapped[str] = mapped_column(String(10), nullable=False)

    revenue: Mapped[int] = mapped_column(MoneyType, nullable=False, default=0)
    expenses: Mapped[int] = mapped_column(MoneyType, nullable=False, default=0)
    # May be negative
    profit: Mapped[int] = mapped_column(MoneyType, nullable=False, default=0)
    profit_share_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )
    distributable_amount: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    # Informational, not deducted from distributable_amount
    corporate_tax_amount: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    total_shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    respect_maxout: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProfitSharingStatus.CALCULATED.value,
        index=True
    )  # calculated, paid
    processed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    distributions: Mapped[list["ProfitDistribution"]] = relationship(
        "ProfitDistribution",
        back_populates="profit_sharing",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    @property
    def state(self) -> ProfitSharingStatus:
        """Status as enum."""
        return ProfitSharingStatus(self.status)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProfitSharing(id={self.id}, {self.period}={self.period_value}, "
            f"distributable={self.distributable_amount}, status={self.status})>"
        )


class ProfitDistribution(Base):
    """Per-shareholder payout of a profit sharing period."""

    __tablename__ = "profit_distributions"
    __table_args__ = (
        UniqueConstraint(
            'profit_sharing_id', 'shareholder_id',
            name='uq_profit_distribution_shareholder'
        ),
        CheckConstraint(
            'capped_amount <= raw_entitlement',
            name='check_distribution_capped_not_exceeds_raw'
        ),
        CheckConstraint(
            'capped_amount >= 0',
            name='check_distribution_capped_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    profit_sharing_id: Mapped[int] = mapped_column(
        ForeignKey("profit_sharings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    shareholder_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    share_count: Mapped[int] = mapped_column(Integer, nullable=False)
    raw_entitlement: Mapped[int] = mapped_column(MoneyType, nullable=False)
    capped_amount: Mapped[int] = mapped_column(MoneyType, nullable=False)
    # Actually credited; may be below capped_amount if the cap moved
    paid_amount: Mapped[int] = mapped_column(MoneyType, nullable=False, default=0)

    paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    profit_sharing: Mapped["ProfitSharing"] = relationship(
        "ProfitSharing",
        back_populates="distributions",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProfitDistribution(id={self.id}, shareholder={self.shareholder_id}, "
            f"raw={self.raw_entitlement}, capped={self.capped_amount}, paid={self.paid})>"
        )
