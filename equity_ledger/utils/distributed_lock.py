"""
Named locks for period-level processing.

Uses a Redis lock when a client is configured so several worker
processes serialize on the same key. Without Redis the lock is an
asyncio.Lock shared by every DistributedLock in the process.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger

from equity_ledger.utils.exceptions import InvalidStateError


# name -> [lock, holders + waiters]
_local_locks: dict[str, list[Any]] = {}


class DistributedLock:
    """Lock keyed by name, e.g. "profit_sharing:quarter:2024-Q4"."""

    def __init__(
        self, redis_client: Any | None = None, prefix: str = "ledger:lock:"
    ) -> None:
        """
        Initialize lock.

        Args:
            redis_client: Optional redis.asyncio.Redis client
            prefix: Key prefix for Redis locks
        """
        self.redis_client = redis_client
        self.prefix = prefix

    @asynccontextmanager
    async def lock(
        self, name: str, timeout: int = 300, blocking_timeout: float | None = None
    ) -> AsyncIterator[None]:
        """
        Hold the named lock for the duration of the block.

        Args:
            name: Lock name
            timeout: Redis lock expiry in seconds
            blocking_timeout: Max seconds to wait for the lock (None = wait)

        Raises:
            InvalidStateError: If the lock could not be acquired in time
        """
        if self.redis_client is not None:
            async with self._redis_lock(name, timeout, blocking_timeout):
                yield
        else:
            async with self._local_lock(name, blocking_timeout):
                yield

    @asynccontextmanager
    async def _redis_lock(
        self, name: str, timeout: int, blocking_timeout: float | None
    ) -> AsyncIterator[None]:
        redis_lock = self.redis_client.lock(
            f"{self.prefix}{name}",
            timeout=timeout,
            blocking_timeout=blocking_timeout,
        )
        acquired = await redis_lock.acquire()
        if not acquired:
            raise InvalidStateError(f"Lock {name} is held by another worker")
        logger.debug(f"Acquired redis lock {name}")
        try:
            yield
        finally:
            await redis_lock.release()
            logger.debug(f"Released redis lock {name}")

    @asynccontextmanager
    async def _local_lock(
        self, name: str, blocking_timeout: float | None
    ) -> AsyncIterator[None]:
        entry = _local_locks.setdefault(name, [asyncio.Lock(), 0])
        entry[1] += 1
        lock: asyncio.Lock = entry[0]
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=blocking_timeout)
            except TimeoutError as e:
                raise InvalidStateError(
                    f"Lock {name} is held by another task"
                ) from e
            try:
                yield
            finally:
                lock.release()
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                _local_locks.pop(name, None)


def period_lock_name(kind: str, period: str, period_value: str) -> str:
    """Build the lock name for a processing period."""
    return f"{kind}:{period}:{period_value}"
