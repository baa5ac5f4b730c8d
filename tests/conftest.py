"""Pytest configuration and shared fixtures for all tests."""

import itertools
import os
import sys
from decimal import Decimal
from pathlib import Path

# Minimal environment for tests
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from equity_ledger.config.ledger_config import LedgerConfig
from equity_ledger.models import Base, User, UserBalance
from equity_ledger.services.tier.tier_service import BusinessTierService


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session for one test."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def tiers(session):
    """Seed default business tier configs."""
    await BusinessTierService(session).seed_default_tiers()


@pytest.fixture
def config() -> LedgerConfig:
    """Default configuration snapshot."""
    return LedgerConfig(
        maxout_limit_percentage=210,
        kpi_threshold_points=50,
        profit_share_rate=Decimal("49"),
        withdrawal_minimum=5_000_000,
        withdrawal_tax_rate=Decimal("10"),
        corporate_tax_rate=Decimal("20"),
        referral_commission_rate=Decimal("8"),
        shares_per_slot=50,
    )


@pytest.fixture
def make_user(session):
    """Factory creating a committed user with a balance row."""
    counter = itertools.count(1)

    async def _make_user(
        tier: str | None = None,
        role: str = "customer",
        investment_amount: int = 0,
        card_price: int = 0,
        available_balance: int = 0,
        total_shares: int = 0,
        total_distributed: int = 0,
    ) -> User:
        number = next(counter)
        user = User(
            name=f"User {number}",
            email=f"user{number}@example.com",
            role=role,
            business_tier=tier,
            investment_amount=investment_amount,
            card_price=card_price,
        )
        session.add(user)
        await session.flush()
        session.add(
            UserBalance(
                user_id=user.id,
                available_balance=available_balance,
                total_shares=total_shares,
                total_distributed=total_distributed,
                total_withdrawn=0,
                maxout_reached=False,
            )
        )
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def admin_id() -> int:
    """Acting admin user ID."""
    return 1
