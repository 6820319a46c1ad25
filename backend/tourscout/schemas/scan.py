"""Website scan request/response schemas.

Request bodies use the camelCase field names existing clients send
(``websiteUrl``, ``tenantId``, ``scanDepth``); snake_case is accepted too.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field


class ScanRequest(BaseModel):
    """Body of POST /content/scan."""

    model_config = ConfigDict(populate_by_name=True)

    website_url: AnyHttpUrl = Field(
        ...,
        alias="websiteUrl",
        description="Website to scan",
        examples=["https://example-tours.com"],
    )
    tenant_id: str = Field("default", alias="tenantId", min_length=1, max_length=100)
    scan_depth: int = Field(10, alias="scanDepth", ge=1, le=50, description="Maximum pages to fetch")


class TourMetadataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    images: List[str] = []
    highlights: List[str] = []
    included: List[str] = []
    excluded: List[str] = []
    source_url: str
    scanned_at: datetime
    type: str


class ProcessedTourResponse(BaseModel):
    """A normalized tour as returned by scans and imports."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    destination: str
    duration: str
    description: str
    price: Optional[float] = None
    currency: str
    status: str
    metadata: TourMetadataResponse


class PriceRange(BaseModel):
    min: float
    max: float


class ScanSummary(BaseModel):
    total_found: int
    destinations: List[str]
    price_range: Optional[PriceRange] = None
    website_url: str
    scan_date: datetime
    scraper_used: str
    scan_id: Optional[str] = None


class ScanResult(BaseModel):
    tours: List[ProcessedTourResponse]
    summary: ScanSummary


class ScanJobResponse(BaseModel):
    """Status of a recorded scan."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    website_url: str
    tenant_id: str
    scan_depth: int
    scraper_used: Optional[str] = None
    status: str
    pages_scanned: int
    pages_failed: int
    items_found: int
    items_saved: int
    deadline_reached: bool
    errors: List[str] = []
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[Decimal] = None
