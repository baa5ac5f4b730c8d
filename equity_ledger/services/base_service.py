"""
Base service class.

Common functionality of the ledger services: session, bound logger and
the audit trail of the current unit of work.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.services.audit_service import AuditService


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session management
    - Logging with bound service context
    - Shared audit trail
    """

    def __init__(
        self, session: AsyncSession, audit: AuditService | None = None
    ) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
            audit: Audit service shared by one unit of work
        """
        self.session = session
        self.audit = audit or AuditService(session)
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction and dispatch its audit entries."""
        await self.session.commit()
        await self.audit.dispatch()
