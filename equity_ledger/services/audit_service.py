"""
Audit service.

Appends one AuditLog row per state-mutating operation and hands the
committed entries to registered hooks.
"""

import inspect
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.models.audit_log import AuditLog
from equity_ledger.repositories.audit_log_repository import AuditLogRepository


AuditHook = Callable[[AuditLog], Awaitable[None] | None]


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(entity: Any, fields: Iterable[str]) -> dict[str, Any]:
    """
    Capture selected attributes of an entity as JSON-safe values.

    Args:
        entity: Model instance
        fields: Attribute names

    Returns:
        Dict of field -> value (Decimal and datetime as strings)
    """
    return {field: _jsonable(getattr(entity, field)) for field in fields}


class AuditService:
    """
    Audit trail writer.

    Entries are written into the caller's session, so they commit or roll
    back with the operation. Hooks only see entries of committed work:
    BaseService.commit() and the db decorators call dispatch() after commit
    and discard() after rollback.
    """

    def __init__(
        self, session: AsyncSession, hooks: Sequence[AuditHook] | None = None
    ) -> None:
        """
        Initialize audit service.

        Args:
            session: Async database session
            hooks: Callables invoked with each committed AuditLog entry
        """
        self.session = session
        self.audit_repo = AuditLogRepository(session)
        self.hooks: list[AuditHook] = list(hooks or [])
        self._pending: list[AuditLog] = []

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Any,
        actor_id: int | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> AuditLog:
        """
        Append an audit entry to the current unit of work.

        Args:
            action: Operation name, e.g. "deposit_request.approve"
            entity_type: Affected table/entity
            entity_id: Affected entity identifier
            actor_id: Admin or user that triggered the change
            before: Entity state before the change
            after: Entity state after the change

        Returns:
            Created AuditLog entry
        """
        entry = await self.audit_repo.create(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=None if entity_id is None else str(entity_id),
            before=before,
            after=after,
        )
        self._pending.append(entry)
        return entry

    async def dispatch(self) -> int:
        """
        Invoke hooks for entries recorded since the last dispatch.

        Returns:
            Number of entries dispatched
        """
        pending, self._pending = self._pending, []
        for entry in pending:
            for hook in self.hooks:
                result = hook(entry)
                if inspect.isawaitable(result):
                    await result
        if pending:
            logger.debug(f"Dispatched {len(pending)} audit entries")
        return len(pending)

    def discard(self) -> None:
        """Forget entries of a rolled back unit of work."""
        self._pending.clear()

    async def get_audit_logs(self, limit: int = 100) -> list[AuditLog]:
        """Get latest audit entries, newest first."""
        return await self.audit_repo.get_recent(limit)
