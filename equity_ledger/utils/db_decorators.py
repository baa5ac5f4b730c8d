"""
Database decorators for automatic error handling and rollback.

Ledger workflows are all-or-nothing: every sub-effect of a workflow is
flushed into one session transaction that is committed once, or rolled
back entirely if any step raises. When the decorated object carries an
audit trail, its entries are dispatched after commit and discarded after
rollback.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.utils.exceptions import is_expected


P = ParamSpec("P")
T = TypeVar("T")


def _find_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    """Locate the session: session kwarg, first positional arg, or self.session."""
    session = kwargs.get("session")
    if session is None and args:
        if isinstance(args[0], AsyncSession):
            session = args[0]
        else:
            session = getattr(args[0], "session", None)
    return session if isinstance(session, AsyncSession) else None


def _find_audit(args: tuple[Any, ...]) -> Any:
    """Audit trail of the decorated service, if it has one."""
    return getattr(args[0], "audit", None) if args else None


async def _rollback(session: AsyncSession, func_name: str, error: Exception) -> None:
    try:
        await session.rollback()
    except Exception as rollback_error:
        logger.error(
            f"Failed to rollback in {func_name}: {rollback_error}",
            exc_info=True,
        )
        return

    if is_expected(error):
        logger.info(
            f"Rollback performed in {func_name}: {type(error).__name__}: {error}"
        )
    else:
        logger.error(
            f"Rollback performed in {func_name} due to error: {type(error).__name__}: {error}"
        )


def _discard_audit(args: tuple[Any, ...]) -> None:
    audit = _find_audit(args)
    if audit is not None:
        audit.discard()


def with_rollback_on_error(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[T]]:
    """
    Roll the session back on any exception, then re-raise.

    Use on workflows that commit themselves (e.g. inside a lock).

    Example:
        @with_rollback_on_error
        async def process(self, period: str) -> None:
            async with self.lock.lock(period):
                ...
                await self.commit()
    """
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        session = _find_session(args, kwargs)
        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            await _rollback(session, func.__name__, e)
            _discard_audit(args)
            raise

    return wrapper


def with_auto_commit(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[T]]:
    """
    Commit the session on success and roll it back on error.

    Example:
        @with_auto_commit
        async def approve(self, request_id: int) -> DepositRequest:
            ...  # no explicit commit needed
    """
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        session = _find_session(args, kwargs)
        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_auto_commit "
                f"but no session found. Commit/rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            result = await func(*args, **kwargs)
            await session.commit()
        except Exception as e:
            await _rollback(session, func.__name__, e)
            _discard_audit(args)
            raise

        logger.debug(f"Auto-commit performed in {func.__name__}")
        audit = _find_audit(args)
        if audit is not None:
            await audit.dispatch()
        return result

    return wrapper
