"""Tests for commit and rollback decorators."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from equity_ledger.utils.db_decorators import with_auto_commit, with_rollback_on_error
from equity_ledger.utils.exceptions import InsufficientFundsError


class _Service:
    def __init__(self, session, audit=None) -> None:
        self.session = session
        if audit is not None:
            self.audit = audit

    @with_auto_commit
    async def succeed(self) -> str:
        return "ok"

    @with_auto_commit
    async def fail(self) -> None:
        raise InsufficientFundsError("not enough")

    @with_rollback_on_error
    async def run_and_fail(self) -> None:
        raise RuntimeError("boom")

    @with_rollback_on_error
    async def run(self) -> int:
        return 1


@pytest.mark.asyncio
async def test_auto_commit_on_success(mock_session) -> None:
    """Successful calls commit once."""
    assert await _Service(mock_session).succeed() == "ok"

    mock_session.commit.assert_awaited_once()
    mock_session.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_auto_commit_rolls_back_and_reraises(mock_session) -> None:
    """Errors roll back and propagate unchanged."""
    with pytest.raises(InsufficientFundsError):
        await _Service(mock_session).fail()

    mock_session.commit.assert_not_awaited()
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_rollback_on_error_does_not_commit(mock_session) -> None:
    """with_rollback_on_error leaves commits to the function."""
    assert await _Service(mock_session).run() == 1
    mock_session.commit.assert_not_awaited()

    with pytest.raises(RuntimeError):
        await _Service(mock_session).run_and_fail()
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_without_session_runs_plain() -> None:
    """No session found means the function just runs."""
    assert await _Service(None).succeed() == "ok"


def _audit() -> MagicMock:
    audit = MagicMock()
    audit.dispatch = AsyncMock(return_value=1)
    return audit


@pytest.mark.asyncio
async def test_audit_dispatched_after_commit(mock_session) -> None:
    """A service's audit entries reach hooks once the commit succeeded."""
    audit = _audit()

    await _Service(mock_session, audit).succeed()

    audit.dispatch.assert_awaited_once()
    audit.discard.assert_not_called()


@pytest.mark.asyncio
async def test_audit_discarded_after_rollback(mock_session) -> None:
    """Entries of rolled back work are dropped by both decorators."""
    audit = _audit()
    service = _Service(mock_session, audit)

    with pytest.raises(InsufficientFundsError):
        await service.fail()
    with pytest.raises(RuntimeError):
        await service.run_and_fail()

    assert audit.discard.call_count == 2
    audit.dispatch.assert_not_awaited()
