"""
Database configuration.

Async engine and session factory shared by jobs and scripts.
"""

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from equity_ledger.config.settings import settings


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
)

# expire_on_commit=False: services return ORM rows after committing
async_session_maker = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autoflush=False,
)
