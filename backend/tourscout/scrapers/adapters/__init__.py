"""Site-specific scraper implementations.

Each module implements a class inheriting from BaseTourScraper.
"""

# Listing sites
from .tripadvisor import TripAdvisorScraper
from .booking_com import BookingComScraper
from .getyourguide import GetYourGuideScraper

# Partner sites
from .peru_for_less import PeruForLessScraper

# Generic fallback
from .tour_operator import TourOperatorScraper

__all__ = [
    "TripAdvisorScraper",
    "BookingComScraper",
    "GetYourGuideScraper",
    "PeruForLessScraper",
    "TourOperatorScraper",
]
