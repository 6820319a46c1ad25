"""Website scan orchestration.

A scan fetches a bounded list of candidate pages with one scraper, normalizes
every record into a ProcessedTour, drops duplicates, optionally persists the
result for the tenant and returns the tours with a summary. Pages are fetched
one at a time so a scan never has more than one outbound request in flight.
"""

import asyncio
import re
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourscout.config import settings
from tourscout.models.scan_job import ScanJob
from tourscout.models.tour import Tour
from tourscout.scrapers.base import ProcessedTour, ScrapingResult
from tourscout.scrapers.factory import ScraperFactory, ScraperType, select_scraper_type
from tourscout.services.deduplication import deduplicate_tours
from tourscout.services.tour_mapper import records_to_tours

logger = structlog.get_logger(__name__)


DEFAULT_TENANT = "default"

# Common listing page paths on tour operator websites
TOUR_PAGE_PATTERNS = [
    "/tours", "/trips", "/packages", "/destinations", "/adventures",
    "/our-tours", "/tour-packages", "/travel-packages", "/itineraries",
    "/experiences", "/journeys", "/expeditions", "/vacations",
    "/holiday-packages", "/tour-listing", "/all-tours", "/tour-catalog",
]
LANGUAGE_PREFIXES = ["en", "es", "fr"]
LANGUAGE_PATTERN_COUNT = 5

_DURATION_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*(day|night|hour|hr|week|min)", re.IGNORECASE)


def parse_duration(text: Optional[Union[str, int, float]]) -> Tuple[Optional[float], str]:
    """Split a free-text duration into (value, unit) for storage.

    "3 days" -> (3.0, "days"), "2 nights" -> (2.0, "days"), "4 hours" -> (4.0, "hours"),
    "1 week" -> (7.0, "days"), "90 minutes" -> (90.0, "minutes"). Anything else
    (including "Varies" and a bare number with no unit) is (None, "hours").
    """
    if text is None or text == "":
        return None, "hours"
    match = _DURATION_PATTERN.search(str(text))
    if not match:
        return None, "hours"

    value = float(match.group(1).replace(",", "."))
    unit = match.group(2).lower()
    if unit in ("day", "night"):
        return value, "days"
    if unit == "week":
        return value * 7, "days"
    if unit == "min":
        return value, "minutes"
    return value, "hours"


class ContentScanService:
    """Scans a website for tours and stores them as draft tours."""

    def __init__(
        self,
        db: AsyncSession,
        scraper_factory: ScraperFactory,
        deadline_seconds: Optional[float] = None,
        persist_default_tenant: Optional[bool] = None,
    ):
        """Initialize scan service.

        Args:
            db: Async database session
            scraper_factory: Builds the scraper for the scanned site
            deadline_seconds: Wall-clock bound for the page loop (settings default)
            persist_default_tenant: Also persist scans for the "default" tenant
        """
        self.db = db
        self.scraper_factory = scraper_factory
        self.deadline_seconds = (
            deadline_seconds if deadline_seconds is not None else settings.SCAN_DEADLINE_SECONDS
        )
        self.persist_default_tenant = (
            persist_default_tenant
            if persist_default_tenant is not None
            else settings.SCAN_PERSIST_DEFAULT_TENANT
        )
        self.logger = logger.bind(service="content_scan_service")

    @staticmethod
    def build_candidate_urls(website_url: str, scraper_type: str) -> List[str]:
        """List the pages to try, in scan order.

        Known listing sites are scanned at the given URL only. For generic
        tour operator sites the common listing paths are tried next, then the
        first few of them under language prefixes.
        """
        urls = [website_url]
        if scraper_type != ScraperType.TOUR_OPERATOR:
            return urls

        parsed = urlparse(website_url)
        origin = f"{parsed.scheme}://{parsed.netloc}"

        candidates = [f"{origin}{pattern}" for pattern in TOUR_PAGE_PATTERNS]
        for lang in LANGUAGE_PREFIXES:
            candidates.extend(
                f"{origin}/{lang}{pattern}" for pattern in TOUR_PAGE_PATTERNS[:LANGUAGE_PATTERN_COUNT]
            )

        for candidate in candidates:
            if candidate not in urls:
                urls.append(candidate)
        return urls

    async def scan_website(
        self,
        website_url: str,
        tenant_id: str = DEFAULT_TENANT,
        scan_depth: int = 10,
    ) -> Dict[str, Any]:
        """Scan a website and return ``{"tours": [...], "summary": {...}}``.

        A page that fails to load or parse contributes nothing and the loop
        moves on. When the deadline passes, scanning stops and whatever was
        collected so far is returned.

        Args:
            website_url: Site to scan
            tenant_id: Tenant that owns persisted tours
            scan_depth: Maximum number of pages to fetch

        Returns:
            Dict with the deduplicated ProcessedTour list and the scan summary
        """
        scraper_type = select_scraper_type(website_url)
        scraper = self.scraper_factory.create_scraper_for_type(scraper_type)
        scraper_name = type(scraper).__name__

        candidates = self.build_candidate_urls(website_url, scraper_type)
        page_limit = min(len(candidates), scan_depth)

        self.logger.info(
            "scan_started",
            website_url=website_url,
            tenant_id=tenant_id,
            scan_depth=scan_depth,
            scraper=scraper_name,
            candidates=len(candidates),
        )

        job = await self._start_job(website_url, tenant_id, scan_depth, scraper_name)
        started = time.monotonic()
        deadline = started + self.deadline_seconds

        processed: List[ProcessedTour] = []
        errors: List[str] = []
        pages_scanned = 0
        pages_failed = 0
        deadline_reached = False

        try:
            for index, url in enumerate(candidates[:page_limit]):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    deadline_reached = True
                    break

                self.logger.info("scanning_page", url=url, page=index + 1, total=page_limit)
                try:
                    result: ScrapingResult = await asyncio.wait_for(scraper.scrape_url(url), timeout=remaining)
                except asyncio.TimeoutError:
                    deadline_reached = True
                    self.logger.warning("scan_deadline_reached", url=url, deadline_seconds=self.deadline_seconds)
                    break

                pages_scanned += 1
                if not result.success:
                    pages_failed += 1
                    errors.extend(result.errors)
                    continue

                processed.extend(records_to_tours(result))
        finally:
            await scraper.dispose()

        unique_tours = deduplicate_tours(processed)
        self.logger.info("tours_deduplicated", before=len(processed), after=len(unique_tours))

        saved = 0
        if unique_tours and self._should_persist(tenant_id):
            saved = await self.save_tours(unique_tours, tenant_id)

        summary = self.summarize(unique_tours, website_url, scraper_name)
        summary["scan_id"] = str(job.id) if job is not None else None

        await self._finish_job(
            job,
            pages_scanned=pages_scanned,
            pages_failed=pages_failed,
            items_found=len(unique_tours),
            items_saved=saved,
            errors=errors,
            deadline_reached=deadline_reached,
            elapsed=time.monotonic() - started,
        )

        self.logger.info(
            "scan_completed",
            website_url=website_url,
            pages_scanned=pages_scanned,
            pages_failed=pages_failed,
            total_found=len(unique_tours),
            saved=saved,
            deadline_reached=deadline_reached,
        )
        return {"tours": unique_tours, "summary": summary}

    def _should_persist(self, tenant_id: str) -> bool:
        return tenant_id != DEFAULT_TENANT or self.persist_default_tenant

    @staticmethod
    def summarize(tours: List[ProcessedTour], website_url: str, scraper_name: str) -> Dict[str, Any]:
        """Summary statistics over the deduplicated tours."""
        destinations: List[str] = []
        for tour in tours:
            if tour.destination not in destinations:
                destinations.append(tour.destination)

        prices = [tour.price for tour in tours if tour.price is not None]
        price_range = {"min": min(prices), "max": max(prices)} if prices else None

        return {
            "total_found": len(tours),
            "destinations": destinations,
            "price_range": price_range,
            "website_url": website_url,
            "scan_date": datetime.now(timezone.utc),
            "scraper_used": scraper_name,
        }

    async def save_tours(self, tours: List[ProcessedTour], tenant_id: str) -> int:
        """Upsert tours for a tenant as drafts.

        Each tour is written inside its own SAVEPOINT, so a failing row is
        rolled back and logged while the remaining tours are still saved.
        Tours sharing a (source_url, name) key land on the same row; the
        later one wins and the row is counted once.

        Returns:
            Number of distinct rows saved
        """
        saved_keys = set()
        for tour in tours:
            key = (tour.metadata.source_url, tour.name)
            if key in saved_keys:
                self.logger.info("tour_row_overwritten", tour=tour.name, source_url=key[0], price=str(tour.price))
            try:
                async with self.db.begin_nested():
                    await self._upsert_tour(tour, tenant_id)
                saved_keys.add(key)
            except SQLAlchemyError as e:
                self.logger.error("tour_save_failed", tour=tour.name, tenant_id=tenant_id, error=str(e))

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("tour_commit_failed", tenant_id=tenant_id, error=str(e))
            return 0

        saved = len(saved_keys)
        self.logger.info("tours_saved", tenant_id=tenant_id, saved=saved, total=len(tours))
        return saved

    async def _upsert_tour(self, tour: ProcessedTour, tenant_id: str) -> Tour:
        source_url = tour.metadata.source_url
        result = await self.db.execute(
            select(Tour).where(
                Tour.tenant_id == tenant_id,
                Tour.source_url == source_url,
                Tour.name == tour.name,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = Tour(tenant_id=tenant_id, source_url=source_url, name=tour.name, status="draft")
            self.db.add(row)

        duration, duration_type = parse_duration(tour.duration)

        row.destination = tour.destination
        row.description = tour.description or ""
        row.price = tour.price
        row.currency = tour.currency
        row.duration = duration
        row.duration_type = duration_type
        row.images = list(tour.metadata.images)
        row.highlights = list(tour.metadata.highlights)
        row.included = list(tour.metadata.included)
        row.excluded = list(tour.metadata.excluded)
        row.metadata_ = {
            "tour_id": tour.id,
            "type": tour.metadata.type,
            "duration_text": tour.duration,
            "scanned_at": tour.metadata.scanned_at.isoformat(),
        }
        await self.db.flush()
        return row

    async def get_scan_job(self, scan_id: uuid.UUID) -> Optional[ScanJob]:
        result = await self.db.execute(select(ScanJob).where(ScanJob.id == scan_id))
        return result.scalar_one_or_none()

    async def _start_job(
        self, website_url: str, tenant_id: str, scan_depth: int, scraper_name: str
    ) -> Optional[ScanJob]:
        """Create the tracking row; a tracking failure never fails the scan."""
        job = ScanJob(
            website_url=website_url,
            tenant_id=tenant_id,
            scan_depth=scan_depth,
            scraper_used=scraper_name,
            status="running",
            errors=[],
            started_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(job)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.warning("scan_job_create_failed", website_url=website_url, error=str(e))
            return None
        return job

    async def _finish_job(
        self,
        job: Optional[ScanJob],
        pages_scanned: int,
        pages_failed: int,
        items_found: int,
        items_saved: int,
        errors: List[str],
        deadline_reached: bool,
        elapsed: float,
    ) -> None:
        if job is None:
            return

        job.status = "failed" if pages_scanned and pages_failed == pages_scanned else "completed"
        job.pages_scanned = pages_scanned
        job.pages_failed = pages_failed
        job.items_found = items_found
        job.items_saved = items_saved
        job.errors = errors[:50]
        job.deadline_reached = deadline_reached
        job.completed_at = datetime.now(timezone.utc)
        job.duration_seconds = Decimal(str(round(elapsed, 2)))
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.warning("scan_job_update_failed", scan_id=str(job.id), error=str(e))
