"""Tour discovery and import endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tourscout.dependencies import get_db, get_scraper_factory
from tourscout.schemas import (
    ApiResponse,
    DiscoveredTourResponse,
    DiscoveryRequest,
    DiscoveryResult,
    ProcessedTourResponse,
    TourImportRequest,
)
from tourscout.scrapers.factory import ScraperFactory
from tourscout.services.discovery_service import DiscoveryCriteria, DiscoveryService
from tourscout.services.import_service import TourImportService

router = APIRouter()


@router.post("/discover", response_model=ApiResponse[DiscoveryResult])
async def discover_tours(request: DiscoveryRequest, db: AsyncSession = Depends(get_db)):
    """Ranked published tours for a trip (at most 20).

    Database problems give an empty list, never an error response.
    """
    criteria = DiscoveryCriteria(**request.model_dump())
    tours = await DiscoveryService(db).discover_tours(criteria)
    return ApiResponse(
        data=DiscoveryResult(tours=[DiscoveredTourResponse.model_validate(t) for t in tours])
    )


@router.post("/import", response_model=ApiResponse[ProcessedTourResponse])
async def import_tour(
    request: TourImportRequest,
    scraper_factory: ScraperFactory = Depends(get_scraper_factory),
):
    """Extract a single tour from a tour page."""
    service = TourImportService(scraper_factory)
    tour = await service.import_tour(str(request.url))
    return ApiResponse(data=ProcessedTourResponse.model_validate(tour))
