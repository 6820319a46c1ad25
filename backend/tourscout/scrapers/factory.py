"""Scraper selection and construction."""

from typing import Callable, Dict, List, Optional, Tuple, Type
from urllib.parse import urlparse

import structlog

from tourscout.scrapers.base import BaseTourScraper
from tourscout.scrapers.adapters import (
    TripAdvisorScraper,
    BookingComScraper,
    GetYourGuideScraper,
    PeruForLessScraper,
    TourOperatorScraper,
)
from tourscout.scrapers.ai_extractor import TourExtractionClient
from tourscout.scrapers.fetchers import PageFetcher, HttpPageFetcher, BrowserPageFetcher
from tourscout.scrapers.utils.rate_limiter import SiteRateLimiters
from tourscout.scrapers.utils.user_agents import UserAgentRotator


logger = structlog.get_logger(__name__)


class ScraperType:
    TRIPADVISOR = "tripadvisor"
    BOOKING_COM = "booking.com"
    GETYOURGUIDE = "getyourguide"
    PERU_FOR_LESS = "peruforless"
    TOUR_OPERATOR = "tour_operator"


# Hostname substring -> scraper type, checked in order; first match wins
HOST_PATTERNS: List[Tuple[str, str]] = [
    ("tripadvisor", ScraperType.TRIPADVISOR),
    ("booking.com", ScraperType.BOOKING_COM),
    ("getyourguide", ScraperType.GETYOURGUIDE),
    ("peruforless", ScraperType.PERU_FOR_LESS),
]


def select_scraper_type(url: str) -> str:
    """Pick the scraper type for a URL from its hostname.

    Args:
        url: Absolute URL

    Returns:
        A ScraperType value; TOUR_OPERATOR when no known host matches
    """
    hostname = (urlparse(url).hostname or "").lower()
    for needle, scraper_type in HOST_PATTERNS:
        if needle in hostname:
            return scraper_type
    return ScraperType.TOUR_OPERATOR


class ScraperFactory:
    """Builds scrapers with their collaborators injected.

    The factory owns the per-site rate limiters, so every scraper it builds
    for the same site shares one limiter. Each scraper gets its own fetcher
    and user-agent rotator, released by the scraper's ``dispose()``.
    """

    def __init__(
        self,
        rate_limiters: Optional[SiteRateLimiters] = None,
        fetcher_factory: Optional[Callable[[], PageFetcher]] = None,
        extractor: Optional[TourExtractionClient] = None,
        use_browser: bool = False,
        headless: bool = True,
        request_timeout: float = 30.0,
    ):
        """Initialize the scraper factory.

        Args:
            rate_limiters: Site limiter registry (a fresh one when omitted)
            fetcher_factory: Builds a fetcher per scraper; overrides use_browser
            extractor: AI extractor handed to the generic scraper
            use_browser: Fetch with headless Chromium instead of plain HTTP
            headless: Browser headless mode
            request_timeout: Per-page timeout in seconds
        """
        self.rate_limiters = rate_limiters or SiteRateLimiters()
        self.extractor = extractor
        self._fetcher_factory = fetcher_factory
        self._use_browser = use_browser
        self._headless = headless
        self._request_timeout = request_timeout

        self._scraper_registry: Dict[str, Type[BaseTourScraper]] = {
            ScraperType.TRIPADVISOR: TripAdvisorScraper,
            ScraperType.BOOKING_COM: BookingComScraper,
            ScraperType.GETYOURGUIDE: GetYourGuideScraper,
            ScraperType.PERU_FOR_LESS: PeruForLessScraper,
            ScraperType.TOUR_OPERATOR: TourOperatorScraper,
        }

    @classmethod
    def from_settings(cls, settings) -> "ScraperFactory":
        extractor = None
        if settings.AI_EXTRACTION_ENABLED:
            extractor = TourExtractionClient.from_settings(settings)
            logger.info("ai_extraction_enabled", model=settings.AI_EXTRACTION_MODEL)

        return cls(
            extractor=extractor,
            use_browser=settings.SCRAPER_USE_BROWSER,
            headless=settings.SCRAPER_HEADLESS,
            request_timeout=settings.SCRAPER_REQUEST_TIMEOUT_SECONDS,
        )

    def register_scraper(self, scraper_type: str, scraper_class: Type[BaseTourScraper]) -> None:
        """Register (or replace) the scraper class for a type."""
        if not issubclass(scraper_class, BaseTourScraper):
            raise ValueError(f"Scraper class must inherit from BaseTourScraper: {scraper_class}")
        self._scraper_registry[scraper_type] = scraper_class
        logger.info("scraper_registered", scraper_type=scraper_type, scraper=scraper_class.__name__)

    def create_fetcher(self) -> PageFetcher:
        if self._fetcher_factory is not None:
            return self._fetcher_factory()
        if self._use_browser:
            return BrowserPageFetcher(headless=self._headless, timeout=self._request_timeout)
        return HttpPageFetcher(timeout=self._request_timeout)

    def create_scraper(self, url: str) -> BaseTourScraper:
        """Select and build the scraper for a URL.

        Args:
            url: Website URL to be scanned

        Returns:
            Scraper with fetcher, rate limiter and user-agent rotator injected
        """
        scraper_type = select_scraper_type(url)
        return self.create_scraper_for_type(scraper_type)

    def create_scraper_for_type(self, scraper_type: str) -> BaseTourScraper:
        scraper_class = self._scraper_registry.get(scraper_type, TourOperatorScraper)

        kwargs = {
            "fetcher": self.create_fetcher(),
            "rate_limiter": self.rate_limiters.get(scraper_type),
            "user_agents": UserAgentRotator(),
        }
        if issubclass(scraper_class, TourOperatorScraper):
            kwargs["extractor"] = self.extractor

        scraper = scraper_class(**kwargs)
        logger.info("scraper_created", scraper_type=scraper_type, scraper=scraper_class.__name__)
        return scraper

    def get_registered_types(self) -> List[str]:
        return list(self._scraper_registry.keys())

    def has_scraper(self, scraper_type: str) -> bool:
        return scraper_type in self._scraper_registry
