"""
Audit log model.

One row per state-mutating ledger operation.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from equity_ledger.models.base import Base


class AuditLog(Base):
    """Audit log entry."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index('idx_audit_entity', 'entity_type', 'entity_id'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # None for system-triggered operations
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    before: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    after: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"{self.entity_type}={self.entity_id})>"
        )
