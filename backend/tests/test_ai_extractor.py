"""Tests for the AI extraction client and its demo fallback."""

import json
from decimal import Decimal

import httpx
import pytest

from tourscout.core.exceptions import ExtractionError
from tourscout.scrapers.ai_extractor import (
    MAX_CONTENT_CHARS,
    ExtractedTour,
    TourExtractionClient,
    demo_tour_for_url,
    page_text,
)


API_URL = "https://llm.example.com/v1/chat/completions"
PAGE_URL = "https://example-tours.com/tours/sintra-day-trip"
PAGE = "<html><body><h1>Sintra Day Trip</h1><p>Palaces and forests</p></body></html>"


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_client(handler, **kwargs) -> TourExtractionClient:
    return TourExtractionClient(
        api_url=API_URL,
        api_key="sk-test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


# ============================================================================
# Service calls
# ============================================================================


class TestExtract:
    """Tests for TourExtractionClient.extract."""

    @pytest.mark.asyncio
    async def test_successful_extraction(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            payload = {
                "name": "Sintra Day Trip",
                "destination": "Sintra, Portugal",
                "duration": "8 hours",
                "price": 69,
                "currency": "eur",
                "highlights": ["Pena Palace", "Quinta da Regaleira"],
                "included": ["Hotel pickup"],
                "excluded": None,
            }
            return httpx.Response(200, json=completion("```json\n" + json.dumps(payload) + "\n```"))

        tour = await make_client(handler).extract(PAGE, PAGE_URL)

        assert tour.is_demo is False
        assert tour.title == "Sintra Day Trip"
        assert tour.destination == "Sintra, Portugal"
        assert tour.price == Decimal("69")
        assert tour.currency == "EUR"
        assert tour.highlights == ["Pena Palace", "Quinta da Regaleira"]
        assert tour.excluded == []

        assert len(requests) == 1
        assert requests[0].headers["Authorization"] == "Bearer sk-test"
        body = json.loads(requests[0].content)
        assert body["model"] == "gpt-4o-mini"
        assert "Sintra Day Trip" in body["messages"][1]["content"]
        assert PAGE_URL in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_server_error_falls_back_to_demo(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "overloaded"}))

        tour = await client.extract(PAGE, "https://example.com/paris-night-tour")

        assert tour.is_demo is True
        assert tour.title == "Magical Paris Evening Tour"

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_demo(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        tour = await make_client(handler).extract(PAGE, PAGE_URL)

        assert tour.is_demo is True
        assert tour.title == "Discover Hidden Gems Walking Tour"

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back_to_demo(self):
        client = make_client(lambda request: httpx.Response(200, json=completion("Sorry, I can't help")))

        tour = await client.extract(PAGE, PAGE_URL)

        assert tour.is_demo is True

    @pytest.mark.asyncio
    async def test_missing_name_falls_back_to_demo(self):
        client = make_client(lambda request: httpx.Response(200, json=completion('{"price": 10}')))

        tour = await client.extract(PAGE, PAGE_URL)

        assert tour.is_demo is True

    @pytest.mark.asyncio
    async def test_unconfigured_client_never_calls_service(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=completion('{"name": "x"}'))

        client = TourExtractionClient(api_url=API_URL, api_key="", transport=httpx.MockTransport(handler))

        tour = await client.extract(PAGE, "https://example.com/rome-colosseum")

        assert tour.is_demo is True
        assert tour.title == "Ancient Rome & Colosseum Skip-the-Line Tour"
        assert calls == []

    def test_disabled_client_is_not_configured(self):
        client = TourExtractionClient(api_url=API_URL, api_key="sk-test", enabled=False)

        assert not client.is_configured


# ============================================================================
# Payload parsing
# ============================================================================


class TestExtractedTour:
    """Tests for building tours from model answers."""

    def test_from_payload_accepts_title_and_price_object(self):
        tour = ExtractedTour.from_payload(
            {"title": "  Lisbon  Tram 28 Ride ", "price": {"amount": "12.50"}, "images": "not-a-list"},
            PAGE_URL,
        )

        assert tour.title == "Lisbon Tram 28 Ride"
        assert tour.price == Decimal("12.50")
        assert tour.currency == "USD"
        assert tour.images == []

    def test_from_payload_coerces_loosely_typed_fields(self):
        tour = ExtractedTour.from_payload(
            {
                "name": "Harbour Cruise",
                "duration": 3,
                "price": 40,
                "destination": ["Sydney"],
                "difficulty": True,
                "highlights": ["Opera House", 2, {"stop": "Bridge"}, None],
            },
            PAGE_URL,
        )

        assert tour.duration == "3"
        assert tour.price == Decimal("40")
        assert tour.destination is None
        assert tour.difficulty is None
        assert tour.highlights == ["Opera House", "2"]

    def test_from_payload_requires_name(self):
        with pytest.raises(ExtractionError):
            ExtractedTour.from_payload({"name": "   "}, PAGE_URL)

    def test_to_activity(self):
        tour = ExtractedTour(
            title="Sintra Day Trip",
            source_url=PAGE_URL,
            destination="Sintra",
            included=["Hotel pickup"],
        )

        activity = tour.to_activity()

        assert activity.title == "Sintra Day Trip"
        assert activity.location == "Sintra"
        assert activity.includes == ["Hotel pickup"]
        assert activity.metadata == {"source": "ai_extraction", "is_demo": False}


class TestDemoTours:
    """Tests for the canned fallback records."""

    @pytest.mark.parametrize("url, title", [
        ("https://example.com/eiffel-tower", "Magical Paris Evening Tour"),
        ("https://example.com/ROME/tours", "Ancient Rome & Colosseum Skip-the-Line Tour"),
        ("https://example.com/anything", "Discover Hidden Gems Walking Tour"),
    ])
    def test_demo_chosen_from_url(self, url, title):
        tour = demo_tour_for_url(url)

        assert tour.title == title
        assert tour.source_url == url
        assert tour.is_demo is True

    def test_demo_lists_are_copies(self):
        first = demo_tour_for_url("https://example.com/paris")
        first.highlights.append("Extra")

        assert "Extra" not in demo_tour_for_url("https://example.com/paris").highlights


class TestPageText:
    """Tests for page cleanup before extraction."""

    def test_strips_scripts_and_navigation(self):
        html = (
            "<html><head><style>body{}</style></head><body>"
            "<nav>Home | About</nav><script>var x = 1;</script>"
            "<h1>Sintra   Day Trip</h1><footer>Copyright</footer></body></html>"
        )

        assert page_text(html) == "Sintra Day Trip"

    def test_caps_length(self):
        html = "<p>" + "word " * 10000 + "</p>"

        assert len(page_text(html)) == MAX_CONTENT_CHARS
