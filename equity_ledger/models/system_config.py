"""
System configuration model.

Named business settings stored as strings and validated on write.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base


class SystemConfig(Base):
    """System configuration entry."""

    __tablename__ = "system_configs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    config_key: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    config_value: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    updated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<SystemConfig({self.config_key}={self.config_value})>"
