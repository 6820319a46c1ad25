"""Services module for business logic and data operations.

Services orchestrate scanning, normalization, persistence and discovery on
top of the scrapers and models.
"""

from tourscout.services.deduplication import deduplicate_tours
from tourscout.services.discovery_service import (
    DiscoveredTour,
    DiscoveryCriteria,
    DiscoveryService,
    calculate_match_score,
    map_category_to_tour_category,
)
from tourscout.services.import_service import TourImportService
from tourscout.services.scan_service import ContentScanService
from tourscout.services.tour_mapper import accommodation_to_tour, activity_to_tour, records_to_tours

__all__ = [
    "ContentScanService",
    "DiscoveryService",
    "DiscoveryCriteria",
    "DiscoveredTour",
    "TourImportService",
    "calculate_match_score",
    "map_category_to_tour_category",
    "deduplicate_tours",
    "activity_to_tour",
    "accommodation_to_tour",
    "records_to_tours",
]
