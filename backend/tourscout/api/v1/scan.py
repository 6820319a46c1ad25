"""Website content scan endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tourscout.core.exceptions import NotFoundError
from tourscout.dependencies import get_db, get_scraper_factory
from tourscout.schemas import ApiResponse, ScanJobResponse, ScanRequest, ScanResult
from tourscout.scrapers.factory import ScraperFactory
from tourscout.services.scan_service import ContentScanService

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post("/scan", response_model=ApiResponse[ScanResult])
async def scan_website(
    request: ScanRequest,
    db: AsyncSession = Depends(get_db),
    scraper_factory: ScraperFactory = Depends(get_scraper_factory),
):
    """Scan a website for tours.

    Fetches up to ``scanDepth`` candidate pages, normalizes and deduplicates
    what they list and, for a real tenant, stores the tours as drafts.
    Always answers 200 with whatever was found, even nothing.
    """
    service = ContentScanService(db, scraper_factory)
    result = await service.scan_website(
        str(request.website_url),
        tenant_id=request.tenant_id,
        scan_depth=request.scan_depth,
    )
    return ApiResponse(data=ScanResult.model_validate(result, from_attributes=True))


@router.get("/scan/{scan_id}", response_model=ApiResponse[ScanJobResponse])
async def get_scan_status(scan_id: UUID, db: AsyncSession = Depends(get_db)):
    """Status and counters of a previous scan."""
    service = ContentScanService(db, scraper_factory=None)
    job = await service.get_scan_job(scan_id)
    if job is None:
        raise NotFoundError("Scan", str(scan_id))
    return ApiResponse(data=ScanJobResponse.model_validate(job))
