"""Tests for single-tour import."""

import httpx
import pytest

from tourscout.core.exceptions import ScraperError
from tourscout.scrapers.ai_extractor import TourExtractionClient
from tourscout.services.import_service import TourImportService

from tests.fakes import EMPTY_PAGE


TOUR_URL = "https://example-tours.com/tours/paris-by-night?utm_source=newsletter"


@pytest.fixture
def demo_extractor():
    return TourExtractionClient(api_url="", enabled=False)


class TestImportTour:
    """Tests for TourImportService.import_tour."""

    @pytest.mark.asyncio
    async def test_import_with_demo_extraction(self, scraper_factory, fake_fetcher, demo_extractor):
        fake_fetcher.pages[TOUR_URL] = EMPTY_PAGE
        service = TourImportService(scraper_factory, extractor=demo_extractor)

        tour = await service.import_tour(TOUR_URL)

        assert tour.name == "Magical Paris Evening Tour"
        assert tour.destination == "Paris, France"
        assert tour.currency == "EUR"
        assert tour.id.startswith("activity-")
        assert "utm_source" not in tour.metadata.source_url
        assert fake_fetcher.calls == [TOUR_URL]
        assert fake_fetcher.close_count == 1

    @pytest.mark.asyncio
    async def test_http_error_raises_scraper_error(self, scraper_factory, fake_fetcher, demo_extractor):
        service = TourImportService(scraper_factory, extractor=demo_extractor)

        with pytest.raises(ScraperError) as exc_info:
            await service.import_tour("https://example-tours.com/missing")

        assert "HTTP 404" in exc_info.value.message
        assert fake_fetcher.close_count == 1

    @pytest.mark.asyncio
    async def test_network_error_raises_scraper_error(self, scraper_factory, fake_fetcher, demo_extractor):
        fake_fetcher.pages[TOUR_URL] = httpx.ConnectError("connection refused")
        service = TourImportService(scraper_factory, extractor=demo_extractor)

        with pytest.raises(ScraperError):
            await service.import_tour(TOUR_URL)

    def test_uses_factory_extractor(self, scraper_factory, demo_extractor):
        scraper_factory.extractor = demo_extractor

        assert TourImportService(scraper_factory).extractor is demo_extractor
