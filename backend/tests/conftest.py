"""Root conftest: shared test configuration and database fixtures.

Invariants:
    - Env defaults are set before dislink.config is first imported
    - Every test gets a fresh in-memory SQLite database
    - No test reaches a real email provider (EMAIL_PROVIDER=log)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for
      repository and route tests (PostgreSQL-specific features not exercised)
"""

import os
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("EMAIL_PROVIDER", "log")
os.environ.setdefault("INTERNAL_HOOK_TOKEN", "test-internal-token")
os.environ.setdefault("PUBLIC_BASE_URL", "https://dislink.test")

from dislink.db.base import Base  # noqa: E402
import dislink.models  # noqa: E402,F401

from tests.fakes import FakeMailer, FixedClock, seed_profile  # noqa: E402


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
async def owner(test_db):
    """A complete profile with sharing enabled and mixed field preferences."""
    return await seed_profile(test_db)
