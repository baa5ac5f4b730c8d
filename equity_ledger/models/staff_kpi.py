"""
Staff KPI model.

Quarterly performance metrics of a staff member and the share award
derived from them.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base
from equity_ledger.models.enums import StaffKpiStatus
from equity_ledger.models.types import PercentType, PointsType


class StaffKpi(Base):
    """Staff KPI model."""

    __tablename__ = "staff_kpis"
    __table_args__ = (
        UniqueConstraint(
            'staff_id', 'period', 'period_value',
            name='uq_staff_kpi_staff_period'
        ),
        CheckConstraint(
            'card_sales >= 0', name='check_staff_kpi_card_sales_non_negative'
        ),
        CheckConstraint(
            'customer_retention >= 0 AND customer_retention <= 100',
            name='check_staff_kpi_retention_range'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    staff_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    period_value: Mapped[str] = mapped_column(String(10), nullable=False)

    card_sales: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    customer_retention: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False, default=Decimal("0")
    )

    # Derived
    total_points: Mapped[Decimal] = mapped_column(
        PointsType, nullable=False, default=Decimal("0")
    )
    slots_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shares_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StaffKpiStatus.PENDING.value,
        index=True
    )  # pending, processed
    processed_at: Mapped[datetime | None] = mapped_column(
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
    def state(self) -> StaffKpiStatus:
        """Status as enum."""
        return StaffKpiStatus(self.status)

    @property
    def is_processed(self) -> bool:
        """Check if shares were already issued for this row."""
        return self.state == StaffKpiStatus.PROCESSED

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<StaffKpi(id={self.id}, staff_id={self.staff_id}, "
            f"{self.period}={self.period_value}, status={self.status})>"
        )
