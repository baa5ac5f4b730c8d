"""
Business tier configuration model.

Thresholds and share rules per tier. Read-only during calculations.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.types import MoneyType, MultiplierType


class BusinessTierConfig(Base):
    """Business tier configuration."""

    __tablename__ = "business_tier_configs"

    # founder, angel, branch, customer, staff, affiliate
    tier_name: Mapped[str] = mapped_column(String(20), primary_key=True)

    min_investment_amount: Mapped[int] = mapped_column(
        MoneyType, nullable=False, default=0
    )
    share_multiplier: Mapped[Decimal] = mapped_column(
        MultiplierType, nullable=False, default=Decimal("1.0")
    )
    # NULL = unlimited
    max_shares: Mapped[int | None] = mapped_column(Integer, nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    benefits: Mapped[str | None] = mapped_column(Text, nullable=True)

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
            f"<BusinessTierConfig(tier={self.tier_name}, "
            f"min={self.min_investment_amount}, max_shares={self.max_shares})>"
        )
