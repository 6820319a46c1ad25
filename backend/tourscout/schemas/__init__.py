"""Pydantic schemas for the TourScout API.

All request/response models are defined here for easy import.
"""

from tourscout.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from tourscout.schemas.health import HealthCheckResponse
from tourscout.schemas.scan import (
    PriceRange,
    ProcessedTourResponse,
    ScanJobResponse,
    ScanRequest,
    ScanResult,
    ScanSummary,
    TourMetadataResponse,
)
from tourscout.schemas.discovery import DiscoveredTourResponse, DiscoveryRequest, DiscoveryResult
from tourscout.schemas.tour import TourImportRequest

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Health
    "HealthCheckResponse",
    # Scan
    "ScanRequest",
    "ScanResult",
    "ScanSummary",
    "PriceRange",
    "ProcessedTourResponse",
    "TourMetadataResponse",
    "ScanJobResponse",
    # Discovery
    "DiscoveryRequest",
    "DiscoveryResult",
    "DiscoveredTourResponse",
    # Import
    "TourImportRequest",
]
