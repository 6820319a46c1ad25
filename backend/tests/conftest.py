"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; keep tests off the real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AI_EXTRACTION_ENABLED", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tourscout.models import Base
from tourscout.scrapers.factory import ScraperFactory
from tourscout.scrapers.utils.rate_limiter import SiteRateLimiters

from tests.fakes import FakeFetcher


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def scraper_factory(fake_fetcher: FakeFetcher) -> ScraperFactory:
    """Factory whose scrapers all fetch through ``fake_fetcher``."""
    limiters = SiteRateLimiters(overrides={
        "tripadvisor": 1000,
        "booking.com": 1000,
        "getyourguide": 1000,
        "peruforless": 1000,
        "tour_operator": 1000,
    })
    return ScraperFactory(rate_limiters=limiters, fetcher_factory=lambda: fake_fetcher)
