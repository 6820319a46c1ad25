"""Base scraper interface and the records that flow out of it.

Every site scraper inherits from BaseTourScraper and implements parse().
Scrapers return a ScrapingResult tagged with the kind of record they
produce, so callers never need to know which scraper class they hold.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import httpx
import structlog
from bs4 import Tag
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from tourscout.core.exceptions import ScraperConfigurationError
from tourscout.scrapers.utils.normalizer import clean_text, is_valid_tour_image, resolve_url
from tourscout.scrapers.utils.rate_limiter import RateLimiter
from tourscout.scrapers.utils.user_agents import UserAgentRotator


KIND_ACTIVITY = "activity"
KIND_ACCOMMODATION = "accommodation"
RECORD_KINDS = (KIND_ACTIVITY, KIND_ACCOMMODATION)

MAX_IMAGES_PER_RECORD = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RawRecord:
    """Site-specific listing as scraped, before normalization."""

    url: str
    title: str
    description: Optional[str] = None
    price: Union[Decimal, int, float, str, None] = None  # Number or free text ("From $45")
    currency: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    images: List[str] = field(default_factory=list)
    location: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    id: Optional[str] = None  # Source-side identifier, when the site exposes one
    extracted_at: datetime = field(default_factory=_utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate data after initialization."""
        self.title = clean_text(self.title)
        if not self.title:
            raise ValueError("title is required")


@dataclass
class RawActivity(RawRecord):
    """A bookable tour or activity listing."""

    duration: Optional[str] = None
    highlights: List[str] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)
    meeting_point: Optional[str] = None
    cancel_policy: Optional[str] = None
    availability: List[str] = field(default_factory=list)
    group_size: Optional[Dict[str, int]] = None  # {"min": 1, "max": 12}
    difficulty: Optional[str] = None


@dataclass
class RawAccommodation(RawRecord):
    """A hotel, apartment or other lodging listing."""

    star_rating: Optional[int] = None
    amenities: List[str] = field(default_factory=list)
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    room_types: List[Dict[str, Any]] = field(default_factory=list)
    policies: List[str] = field(default_factory=list)
    address: Optional[str] = None
    nearby_attractions: List[str] = field(default_factory=list)


@dataclass
class ScrapingMetadata:
    url: str
    items_found: int = 0
    processing_time_ms: int = 0
    scraped_at: datetime = field(default_factory=_utcnow)


@dataclass
class ScrapingResult:
    """Outcome of scraping one page.

    ``kind`` says how to read ``data``: "activity" results hold RawActivity
    records, "accommodation" results hold RawAccommodation records.
    ``data`` is None when the page failed.
    """

    success: bool
    kind: str
    data: Optional[List[RawRecord]]
    errors: List[str]
    metadata: ScrapingMetadata

    def __post_init__(self):
        if self.kind not in RECORD_KINDS:
            raise ValueError(f"Invalid kind: {self.kind}")


@dataclass
class TourMetadata:
    images: List[str] = field(default_factory=list)
    highlights: List[str] = field(default_factory=list)
    included: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    source_url: str = ""
    scanned_at: datetime = field(default_factory=_utcnow)
    type: str = KIND_ACTIVITY


@dataclass(frozen=True)
class ProcessedTour:
    """Canonical tour produced by normalization.

    Frozen: tours are never mutated once built within a scan.
    """

    id: str
    name: str
    destination: str
    duration: str
    description: str
    metadata: TourMetadata
    price: Optional[Decimal] = None  # None means unknown, zero is a real price
    currency: str = "USD"
    status: str = "enabled"

    def __post_init__(self):
        if not self.name:
            raise ValueError("name is required")
        if not self.destination:
            raise ValueError("destination is required")
        if self.status not in ("enabled", "disabled"):
            raise ValueError(f"Invalid status: {self.status}")


class BaseTourScraper(ABC):
    """Abstract base class for all site scrapers.

    The fetcher, rate limiter and user-agent rotator are injected by the
    factory (or by tests). Each call to ``scrape_url`` waits for a slot from
    the rate limiter, fetches with a rotated identity and parses the body.
    Per-page failures come back as ``success=False`` results; only a scraper
    missing its collaborators raises.
    """

    site_key: str = ""  # Must be overridden in subclass (e.g., "tripadvisor")
    site_name: str = ""  # Human readable, e.g. "TripAdvisor"
    record_kind: str = KIND_ACTIVITY
    base_url: str = ""
    wait_selector: Optional[str] = None  # Rendered fetches wait for this before reading the DOM

    def __init__(
        self,
        fetcher=None,
        rate_limiter: Optional[RateLimiter] = None,
        user_agents: Optional[UserAgentRotator] = None,
    ):
        """Initialize the scraper with its collaborators.

        Args:
            fetcher: PageFetcher implementation (HTTP or browser)
            rate_limiter: Limiter for this scraper's site
            user_agents: Rotator; a fresh one is created when omitted
        """
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.user_agents = user_agents or UserAgentRotator()
        self.logger = structlog.get_logger(scraper=self.site_key)
        self._disposed = False

    @abstractmethod
    def parse(self, html: str, url: str) -> List[RawRecord]:
        """Extract listings from a page.

        Args:
            html: Page body
            url: Page URL, used to resolve relative links and images

        Returns:
            Raw records found on the page (possibly empty)
        """
        pass

    async def extract(self, html: str, url: str) -> List[RawRecord]:
        """Turn a fetched page into records. Subclasses may add async fallbacks."""
        return self.parse(html, url)

    async def scrape_url(self, url: str) -> ScrapingResult:
        """Fetch and parse one page.

        Returns:
            ScrapingResult; failures are reported in ``errors`` with
            ``success=False`` rather than raised.

        Raises:
            ScraperConfigurationError: If the fetcher or rate limiter is missing
        """
        if self.fetcher is None or self.rate_limiter is None:
            raise ScraperConfigurationError(
                self.site_key or self.__class__.__name__,
                "fetcher and rate_limiter must be injected before scraping",
            )

        started = time.monotonic()
        metadata = ScrapingMetadata(url=url)
        records: Optional[List[RawRecord]] = None
        errors: List[str] = []

        try:
            html = await self._fetch(url)
            records = await self.extract(html, url)
        except httpx.HTTPStatusError as e:
            errors.append(f"HTTP {e.response.status_code}: Failed to load {url}")
        except (httpx.TimeoutException, PlaywrightTimeoutError):
            errors.append(f"Timed out loading {url}")
        except httpx.TransportError as e:
            errors.append(f"Network error loading {url}: {e}")
        except Exception as e:
            # Parser bugs and anti-bot pages are still per-page failures
            errors.append(f"{e.__class__.__name__}: {e}")
            self.logger.exception("scrape_unexpected_error", url=url)

        metadata.processing_time_ms = int((time.monotonic() - started) * 1000)
        metadata.items_found = len(records) if records is not None else 0

        if errors:
            self.logger.warning("scrape_failed", url=url, errors=errors)
        else:
            self.logger.info(
                "scrape_completed",
                url=url,
                items_found=metadata.items_found,
                processing_time_ms=metadata.processing_time_ms,
            )

        return ScrapingResult(
            success=not errors,
            kind=self.record_kind,
            data=records if not errors else None,
            errors=errors,
            metadata=metadata,
        )

    async def dispose(self) -> None:
        """Release the fetcher's resources. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        if self.fetcher is not None:
            await self.fetcher.close()
        self.logger.debug("scraper_disposed")

    async def _fetch(self, url: str) -> str:
        user_agent = self.user_agents.get_next()
        return await self.rate_limiter.schedule(
            lambda: self.fetcher.fetch(url, user_agent, self.wait_selector)
        )

    # --- HTML helpers shared by selector-driven scrapers ---

    @staticmethod
    def _text(element: Tag, selector: Optional[str]) -> Optional[str]:
        """Text of the first element matching selector, or None."""
        if not selector:
            return None
        found = element.select_one(selector)
        if found is None:
            return None
        text = clean_text(found.get_text(" "))
        return text or None

    @staticmethod
    def _texts(element: Tag, selector: Optional[str]) -> List[str]:
        """Non-empty texts of all elements matching selector."""
        if not selector:
            return []
        texts = [clean_text(node.get_text(" ")) for node in element.select(selector)]
        return [text for text in texts if text]

    @staticmethod
    def _images(element: Tag, selector: Optional[str], page_url: str) -> List[str]:
        """Absolute image URLs under element, decorations skipped, capped at five."""
        if not selector:
            return []
        images: List[str] = []
        for img in element.select(selector):
            src = img.get("src") or img.get("data-src") or img.get("data-lazy-src")
            if not src or not is_valid_tour_image(src):
                continue
            absolute = resolve_url(src, page_url)
            if absolute not in images:
                images.append(absolute)
            if len(images) >= MAX_IMAGES_PER_RECORD:
                break
        return images

    @staticmethod
    def _link(element: Tag, selectors: List[str], page_url: str) -> Optional[str]:
        """Absolute href of the first matching link."""
        for selector in selectors:
            link = element.select_one(selector)
            if link is not None and link.get("href"):
                return resolve_url(link["href"], page_url)
        return None
