"""
Async SQLAlchemy engine and sessions for the commission tables.

SQLite (aiosqlite) is used for local runs and tests, PostgreSQL (asyncpg)
in deployment.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from commission_engine.config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """Driver-specific engine arguments."""
    options: Dict[str, Any] = {
        "echo": settings.log_level.upper() == "DEBUG",
    }
    if database_url.startswith("postgresql+asyncpg"):
        # Pooled connections come from the database's pooler
        options["poolclass"] = NullPool
        options["connect_args"] = {"statement_cache_size": 0}
    return options


def create_engine_for(database_url: str) -> AsyncEngine:
    logger.debug(f"Creating database engine for {database_url.split('://', 1)[0]}")
    return create_async_engine(database_url, **engine_options(database_url))


engine = create_engine_for(settings.database_url)

# Commission rows are read back after commit (snapshots, responses)
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session dependency.

    Commits when the endpoint returns, rolls back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
