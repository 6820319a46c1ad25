"""Single-tour import from an arbitrary tour page.

Fetches one page with the same pacing and identity rotation as a scan, asks
the AI extractor for the tour it describes and normalizes the answer into a
ProcessedTour. Nothing is persisted.
"""

from typing import Optional

import httpx
import structlog
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from tourscout.config import settings
from tourscout.core.exceptions import ScraperError
from tourscout.scrapers.ai_extractor import ExtractedTour, TourExtractionClient
from tourscout.scrapers.base import ProcessedTour
from tourscout.scrapers.factory import ScraperFactory, select_scraper_type
from tourscout.scrapers.utils.user_agents import UserAgentRotator
from tourscout.services.tour_mapper import activity_to_tour

logger = structlog.get_logger(__name__)


class TourImportService:
    """Imports one tour from a page URL via AI extraction."""

    def __init__(self, scraper_factory: ScraperFactory, extractor: Optional[TourExtractionClient] = None):
        """Initialize import service.

        Args:
            scraper_factory: Supplies the fetcher and the site's rate limiter
            extractor: Extraction client; the factory's, or one built from
                settings (demo mode when extraction is disabled)
        """
        self.scraper_factory = scraper_factory
        self.extractor = extractor or scraper_factory.extractor or TourExtractionClient.from_settings(settings)
        self.user_agents = UserAgentRotator()
        self.logger = logger.bind(service="tour_import_service")

    async def import_tour(self, url: str) -> ProcessedTour:
        """Fetch, extract and normalize the tour at ``url``.

        Raises:
            ScraperError: If the page cannot be fetched
        """
        html = await self._fetch(url)
        extracted: ExtractedTour = await self.extractor.extract(html, url)
        if extracted.is_demo:
            self.logger.warning("import_returned_demo_tour", url=url)

        tour = activity_to_tour(extracted.to_activity(), url)
        self.logger.info("tour_imported", url=url, name=tour.name, is_demo=extracted.is_demo)
        return tour

    async def _fetch(self, url: str) -> str:
        fetcher = self.scraper_factory.create_fetcher()
        limiter = self.scraper_factory.rate_limiters.get(select_scraper_type(url))
        user_agent = self.user_agents.get_next()
        try:
            return await limiter.schedule(lambda: fetcher.fetch(url, user_agent))
        except httpx.HTTPStatusError as e:
            raise ScraperError(url, f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, PlaywrightTimeoutError) as e:
            raise ScraperError(url, str(e) or e.__class__.__name__)
        finally:
            await fetcher.close()
