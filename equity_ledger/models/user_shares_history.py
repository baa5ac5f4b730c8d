"""
User shares history model.

Append-only ledger of share deltas. Rows are never updated.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base


class UserSharesHistory(Base):
    """Share ledger entry."""

    __tablename__ = "user_shares_history"
    __table_args__ = (
        Index('idx_shares_history_user_timestamp', 'user_id', 'timestamp'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Signed share delta
    change_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    change_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # deposit, kpi-award, adjustment
    description: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )

    # Back-reference to the originating record (deposit request, KPI row)
    transaction_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserSharesHistory(user_id={self.user_id}, "
            f"change={self.change_amount}, type={self.change_type})>"
        )
