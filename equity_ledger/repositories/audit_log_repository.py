"""
Audit log repository.

Data access layer for AuditLog model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.audit_log import AuditLog
from equity_ledger.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    """Audit log repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize audit log repository."""
        super().__init__(AuditLog, session)

    async def get_recent(self, limit: int = 100) -> list[AuditLog]:
        """
        Get latest audit entries.

        Args:
            limit: Max number of entries

        Returns:
            Entries, newest first
        """
        stmt = select(AuditLog).order_by(AuditLog.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_entity(
        self, entity_type: str, entity_id: str
    ) -> list[AuditLog]:
        """Get audit trail of one entity, oldest first."""
        return await self.find_by(entity_type=entity_type, entity_id=entity_id)
