#!/usr/bin/env python3
"""Initialize database tables and seed default ledger configuration."""

import asyncio

from loguru import logger

from equity_ledger.config.database import async_session_maker, engine
from equity_ledger.config.logging import setup_logging
from equity_ledger.models import Base
from equity_ledger.services.system_config_service import SystemConfigService
from equity_ledger.services.tier.tier_service import BusinessTierService


async def init_database() -> None:
    """Create all database tables and insert missing defaults."""
    logger.info("Connecting to database...")

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async with async_session_maker() as session:
        tiers = await BusinessTierService(session).seed_default_tiers()
        configs = await SystemConfigService(session).seed_defaults()

    await engine.dispose()
    logger.success(
        f"Database ready: {tiers} tier configs and {configs} system configs seeded"
    )


if __name__ == "__main__":
    setup_logging("logs/init_database.log")
    asyncio.run(init_database())
