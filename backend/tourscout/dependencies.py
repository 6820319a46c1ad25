"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from tourscout.db.session import async_session_factory
from tourscout.scrapers.factory import ScraperFactory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_scraper_factory(request: Request) -> ScraperFactory:
    """The application-wide scraper factory (owns the per-site rate limiters)."""
    return request.app.state.scraper_factory
