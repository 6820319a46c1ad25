"""Scraper system for collecting tours from travel websites.

This package provides:
- Base scraper class and the raw/processed record types
- Site scrapers for TripAdvisor, Booking.com, GetYourGuide, partner sites and generic operators
- Utility modules for rate limiting, user-agent rotation, retries and text normalization
- Factory that picks and wires the scraper for a URL
"""

from .base import (
    BaseTourScraper,
    RawRecord,
    RawActivity,
    RawAccommodation,
    ScrapingResult,
    ScrapingMetadata,
    ProcessedTour,
    TourMetadata,
    KIND_ACTIVITY,
    KIND_ACCOMMODATION,
)
from .factory import ScraperFactory, ScraperType, select_scraper_type

__all__ = [
    # Base class
    "BaseTourScraper",
    # Data structures
    "RawRecord",
    "RawActivity",
    "RawAccommodation",
    "ScrapingResult",
    "ScrapingMetadata",
    "ProcessedTour",
    "TourMetadata",
    "KIND_ACTIVITY",
    "KIND_ACCOMMODATION",
    # Factory
    "ScraperFactory",
    "ScraperType",
    "select_scraper_type",
]
