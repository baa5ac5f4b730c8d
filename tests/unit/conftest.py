"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Mock database session
- Default ledger configuration
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from equity_ledger.config.ledger_config import LedgerConfig


@pytest.fixture
def mock_session():
    """
    Mock async database session.

    Returns:
        AsyncMock: Mocked async session that passes isinstance checks
    """
    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    return session


@pytest.fixture
def default_config() -> LedgerConfig:
    """Configuration snapshot built from settings defaults."""
    return LedgerConfig.defaults()
