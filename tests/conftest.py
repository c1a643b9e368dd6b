"""
Pytest configuration and fixtures.
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from commission_engine.models import Base
from commission_engine.schemas.commission import SearchCandidate


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def candidate():
    """A sale as returned by the sales search."""
    return SearchCandidate(
        agent_name="Maria Santos",
        developer_name="Ayala Land",
        client_name="Dela Cruz",
        reservation_date=date(2026, 3, 14),
        base_amount_hint=Decimal("250000"),
        sale_id=1042,
        member_id=77,
    )
