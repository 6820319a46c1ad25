"""Normalization of raw scraped records into ProcessedTour.

Activities map field by field. Accommodations become three-night packages
with a fixed included/excluded policy: the scraped data says nothing about
stay length or inclusions, so the package terms are a business default
rather than something derived from the listing.
"""

import hashlib
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

import structlog

from tourscout.scrapers.base import (
    KIND_ACCOMMODATION,
    KIND_ACTIVITY,
    ProcessedTour,
    RawAccommodation,
    RawActivity,
    RawRecord,
    ScrapingResult,
    TourMetadata,
)
from tourscout.scrapers.utils.normalizer import PriceNormalizer, normalize_url

logger = structlog.get_logger(__name__)


UNKNOWN_DESTINATION = "Unknown"
UNKNOWN_DURATION = "Varies"
DEFAULT_CURRENCY = "USD"

PACKAGE_NAME_SUFFIX = " Package"
PACKAGE_DURATION = "3 nights"
PACKAGE_INCLUDED = ("Accommodation", "Daily breakfast")
PACKAGE_EXCLUDED = ("Flights", "Transfers")


def make_tour_id(
    kind: str, raw_id: Optional[str], name: str, source_url: str, price: Optional[Decimal] = None
) -> str:
    """Stable tour id: the source id when known, else a hash of name, source URL and price.

    Prices are hashed at two decimal places so 45 and 45.00 give the same id.
    """
    if raw_id:
        return f"{kind}-{raw_id}"
    key = f"{name}|{source_url}"
    if price is not None:
        key = f"{key}|{price.quantize(Decimal('0.01'))}"
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]
    return f"{kind}-{digest}"


def _destination(record: RawRecord) -> str:
    return record.location or record.city or record.country or UNKNOWN_DESTINATION


def activity_to_tour(activity: RawActivity, source_url: str, scanned_at: Optional[datetime] = None) -> ProcessedTour:
    """Map a scraped activity to a tour.

    Args:
        activity: Raw activity
        source_url: Page the activity was found on; used when the activity has no URL
        scanned_at: Scan timestamp (now when omitted)
    """
    tour_source = normalize_url(activity.url) if activity.url else source_url
    price = PriceNormalizer.parse_price(activity.price)
    return ProcessedTour(
        id=make_tour_id(KIND_ACTIVITY, activity.id, activity.title, tour_source, price),
        name=activity.title,
        destination=_destination(activity),
        duration=activity.duration or UNKNOWN_DURATION,
        description=activity.description or "",
        price=price,
        currency=activity.currency or DEFAULT_CURRENCY,
        metadata=TourMetadata(
            images=list(activity.images),
            highlights=list(activity.highlights),
            included=list(activity.includes),
            excluded=list(activity.excludes),
            source_url=tour_source,
            scanned_at=scanned_at or datetime.now(timezone.utc),
            type=KIND_ACTIVITY,
        ),
    )


def accommodation_to_tour(
    accommodation: RawAccommodation, source_url: str, scanned_at: Optional[datetime] = None
) -> ProcessedTour:
    """Map a scraped accommodation to a package tour.

    The package name gets a " Package" suffix, the duration is always three
    nights and the inclusions are the fixed package defaults. Amenities are
    presented as highlights.
    """
    name = f"{accommodation.title}{PACKAGE_NAME_SUFFIX}"
    price = PriceNormalizer.parse_price(accommodation.price)
    return ProcessedTour(
        id=make_tour_id(KIND_ACCOMMODATION, accommodation.id, name, source_url, price),
        name=name,
        destination=_destination(accommodation),
        duration=PACKAGE_DURATION,
        description=accommodation.description or "",
        price=price,
        currency=accommodation.currency or DEFAULT_CURRENCY,
        metadata=TourMetadata(
            images=list(accommodation.images),
            highlights=list(accommodation.amenities),
            included=list(PACKAGE_INCLUDED),
            excluded=list(PACKAGE_EXCLUDED),
            source_url=source_url,
            scanned_at=scanned_at or datetime.now(timezone.utc),
            type=KIND_ACCOMMODATION,
        ),
    )


def records_to_tours(result: ScrapingResult, scanned_at: Optional[datetime] = None) -> List[ProcessedTour]:
    """Normalize every record of a scraping result according to its kind.

    Failed results (``data`` is None) yield no tours.
    """
    if not result.data:
        return []

    source_url = result.metadata.url
    if result.kind == KIND_ACCOMMODATION:
        tours = [accommodation_to_tour(record, source_url, scanned_at) for record in result.data]
    else:
        tours = [activity_to_tour(record, source_url, scanned_at) for record in result.data]

    logger.debug("records_normalized", url=source_url, kind=result.kind, count=len(tours))
    return tours
