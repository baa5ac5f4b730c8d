"""
Async runner for dramatiq tasks.

Runs ledger coroutines from synchronous dramatiq actors. Each worker
thread keeps one event loop, and each task gets its own NullPool engine
so no pooled connection outlives the loop that opened it.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from equity_ledger.config.settings import settings

T = TypeVar("T")

# Thread-local storage for event loops
_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """
    Get or create the event loop of the current thread.

    Reusing one loop per thread prevents "Future attached to a different
    loop" errors in redis and SQLAlchemy clients.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(
            f"Created new event loop for thread {threading.current_thread().name}"
        )
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine in the thread's event loop.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except Exception as e:
        logger.exception(f"Error running async coroutine: {e}")
        raise


@asynccontextmanager
async def local_session_maker() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session factory bound to a task-local engine.

    Usage:
        async with local_session_maker() as session_maker:
            async with session_maker() as session:
                ...

    Yields:
        async_sessionmaker on a NullPool engine, disposed on exit
    """
    local_engine = create_async_engine(
        settings.database_url,
        echo=False,
        poolclass=NullPool,
    )
    try:
        yield async_sessionmaker(
            local_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    finally:
        await local_engine.dispose()
