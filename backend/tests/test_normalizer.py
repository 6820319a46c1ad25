"""Tests for text normalization, tour mapping and deduplication."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tourscout.scrapers.base import (
    KIND_ACCOMMODATION,
    KIND_ACTIVITY,
    ProcessedTour,
    RawAccommodation,
    RawActivity,
    ScrapingMetadata,
    ScrapingResult,
    TourMetadata,
)
from tourscout.scrapers.utils.normalizer import (
    PriceNormalizer,
    clean_text,
    extract_currency,
    extract_duration,
    extract_location_from_text,
    normalize_url,
    parse_rating,
    resolve_url,
    title_from_url,
)
from tourscout.services.deduplication import deduplicate_tours
from tourscout.services.tour_mapper import (
    accommodation_to_tour,
    activity_to_tour,
    make_tour_id,
    records_to_tours,
)

SCANNED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _tour(name, price, source_url="https://example-tours.com"):
    return ProcessedTour(
        id=make_tour_id(KIND_ACTIVITY, None, name, source_url),
        name=name,
        destination="Lisbon",
        duration="Varies",
        description="",
        price=price,
        metadata=TourMetadata(source_url=source_url),
    )


# ============================================================================
# TESTS: PRICE AND TEXT PARSING
# ============================================================================

class TestPriceNormalizer:
    """Tests for price parsing."""

    @pytest.mark.parametrize("raw, expected", [
        (45, Decimal("45")),
        (45.5, Decimal("45.5")),
        ("$45", Decimal("45")),
        ("From USD 1,234.50 per person", Decimal("1234.50")),
        ("1,299", Decimal("1299")),
        ("0", Decimal("0")),
    ])
    def test_parse_price(self, raw, expected):
        assert PriceNormalizer.parse_price(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "Contact us", "Free cancellation", True])
    def test_unparseable_price_is_none_not_zero(self, raw):
        assert PriceNormalizer.parse_price(raw) is None

    def test_zero_is_a_real_price(self):
        assert PriceNormalizer.parse_price(0) == Decimal("0")

    @pytest.mark.parametrize("text, expected", [
        ("From $45", (Decimal("45"), "USD")),
        ("€1,200.50", (Decimal("1200.50"), "EUR")),
        ("US$89", (Decimal("89"), "USD")),
        ("GBP 30", (Decimal("30"), "GBP")),
        ("Sold out", (None, None)),
        (None, (None, None)),
    ])
    def test_parse_price_with_currency(self, text, expected):
        assert PriceNormalizer.parse_price_with_currency(text) == expected

    def test_extract_price_from_text(self):
        text = "Inca Trail 4 days from $1,299 per person"
        assert PriceNormalizer.extract_price_from_text(text) == "from $1,299"
        assert PriceNormalizer.extract_price_from_text("no price") is None


class TestTextHelpers:
    """Tests for currency, duration, location and URL helpers."""

    def test_extract_currency(self):
        assert extract_currency("€45") == "EUR"
        assert extract_currency("45 CHF") == "CHF"
        assert extract_currency("45") == "USD"

    def test_extract_duration(self):
        assert extract_duration("A 5 days adventure") == "5 days"
        assert extract_duration("4 days / 3 nights in Cusco") == "4 days / 3 nights"
        assert extract_duration("Flexible") is None

    def test_extract_location_from_text(self):
        assert extract_location_from_text("Day trip to Sacred Valley") == "Sacred Valley"
        assert extract_location_from_text("something else") == "Various Locations"

    def test_parse_rating(self):
        assert parse_rating("4.5 of 5 bubbles") == 4.5
        assert parse_rating("Scored 8.6", scale=10) == 4.3
        assert parse_rating("no rating") is None

    def test_clean_text(self):
        assert clean_text("  City \n\t Walk  ") == "City Walk"
        assert clean_text(None) == ""

    def test_title_from_url(self):
        assert title_from_url("https://example.com/tours/inca-trail-classic/") == "Inca Trail Classic"
        assert title_from_url("https://example.com/tours/lima_food.html") == "Lima Food"

    def test_resolve_url(self):
        page = "https://example-tours.com/tours/"
        assert resolve_url("/img/a.jpg", page) == "https://example-tours.com/img/a.jpg"
        assert resolve_url("//cdn.example.com/a.jpg", page) == "https://cdn.example.com/a.jpg"
        assert resolve_url("https://x.com/a.jpg", page) == "https://x.com/a.jpg"

    def test_normalize_url_drops_tracking(self):
        url = "https://example-tours.com/tours/walk?utm_source=mail&lang=en#top"
        assert normalize_url(url) == "https://example-tours.com/tours/walk?lang=en"


# ============================================================================
# TESTS: TOUR MAPPING
# ============================================================================

class TestTourMapper:
    """Tests for raw record -> ProcessedTour normalization."""

    def test_activity_without_destination_is_unknown(self):
        activity = RawActivity(url="", title="Sunset Kayak", price="$60")

        tour = activity_to_tour(activity, "https://example-tours.com", SCANNED_AT)

        assert tour.destination == "Unknown"
        assert tour.duration == "Varies"
        assert tour.price == Decimal("60")
        assert tour.status == "enabled"
        assert tour.metadata.type == KIND_ACTIVITY
        assert tour.metadata.source_url == "https://example-tours.com"
        assert tour.metadata.scanned_at == SCANNED_AT

    def test_activity_unparseable_price_stays_unknown(self):
        activity = RawActivity(url="", title="Private Tour", price="Price on request")

        tour = activity_to_tour(activity, "https://example-tours.com")

        assert tour.price is None

    def test_activity_fields_carried_over(self):
        activity = RawActivity(
            url="https://example-tours.com/tours/food?utm_source=x",
            title="Food Walk",
            location="Porto",
            duration="3 hours",
            price=Decimal("39"),
            currency="EUR",
            highlights=["Port tasting"],
            includes=["Guide"],
            excludes=["Tips"],
            images=["https://example-tours.com/a.jpg"],
        )

        tour = activity_to_tour(activity, "https://example-tours.com")

        assert tour.destination == "Porto"
        assert tour.duration == "3 hours"
        assert tour.currency == "EUR"
        assert tour.metadata.highlights == ["Port tasting"]
        assert tour.metadata.included == ["Guide"]
        assert tour.metadata.excluded == ["Tips"]
        assert tour.metadata.source_url == "https://example-tours.com/tours/food"

    def test_accommodation_becomes_package(self):
        accommodation = RawAccommodation(
            url="https://www.booking.com/hotel/pt/alfama.html",
            title="Alfama Hotel",
            city="Lisbon",
            price=Decimal("320"),
            currency="EUR",
            amenities=["Free WiFi", "Pool"],
        )

        tour = accommodation_to_tour(accommodation, "https://www.booking.com/searchresults.html")

        assert tour.name == "Alfama Hotel Package"
        assert tour.destination == "Lisbon"
        assert tour.duration == "3 nights"
        assert tour.metadata.included == ["Accommodation", "Daily breakfast"]
        assert tour.metadata.excluded == ["Flights", "Transfers"]
        assert tour.metadata.highlights == ["Free WiFi", "Pool"]
        assert tour.metadata.type == KIND_ACCOMMODATION

    def test_ids_are_stable_and_distinct(self):
        first = make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://a.com")
        again = make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://a.com")
        other = make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://b.com")

        assert first == again
        assert first != other
        assert first.startswith("activity-")
        assert make_tour_id(KIND_ACTIVITY, "12345", "x", "y") == "activity-12345"

    def test_ids_include_price(self):
        cheap = make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://a.com", Decimal("45"))
        dear = make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://a.com", Decimal("60"))

        assert cheap != dear
        assert cheap == make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://a.com", Decimal("45.00"))
        assert cheap != make_tour_id(KIND_ACTIVITY, None, "City Walk", "https://a.com")

    def test_records_to_tours_dispatches_on_kind(self):
        page = "https://www.booking.com/searchresults.html"
        result = ScrapingResult(
            success=True,
            kind=KIND_ACCOMMODATION,
            data=[RawAccommodation(url=page, title="Harbour Inn")],
            errors=[],
            metadata=ScrapingMetadata(url=page, items_found=1),
        )

        tours = records_to_tours(result)

        assert [t.name for t in tours] == ["Harbour Inn Package"]

    def test_records_to_tours_failed_result(self):
        result = ScrapingResult(
            success=False,
            kind=KIND_ACTIVITY,
            data=None,
            errors=["HTTP 500: Failed to load https://x.com"],
            metadata=ScrapingMetadata(url="https://x.com"),
        )

        assert records_to_tours(result) == []

    def test_record_requires_title(self):
        with pytest.raises(ValueError):
            RawActivity(url="https://x.com", title="   ")

    def test_invalid_kind_rejected(self):
        with pytest.raises(ValueError):
            ScrapingResult(success=True, kind="restaurant", data=[], errors=[], metadata=ScrapingMetadata(url="x"))


# ============================================================================
# TESTS: DEDUPLICATION
# ============================================================================

class TestDeduplication:
    """Tests for (name, price) deduplication."""

    def test_first_seen_order_preserved(self):
        a = _tour("City Walk", Decimal("10"), "https://a.com")
        b = _tour("City Walk", Decimal("10"), "https://b.com")
        c = _tour("Food Tour", Decimal("10"))

        assert deduplicate_tours([a, b, c]) == [a, c]

    def test_same_name_different_price_kept(self):
        a = _tour("City Walk", Decimal("10"))
        b = _tour("City Walk", Decimal("12"))
        c = _tour("City Walk", None)

        assert deduplicate_tours([a, b, c]) == [a, b, c]

    def test_decimal_scale_ignored(self):
        a = _tour("City Walk", Decimal("45"))
        b = _tour("City Walk", Decimal("45.00"))

        assert deduplicate_tours([a, b]) == [a]

    def test_idempotent(self):
        tours = [
            _tour("City Walk", Decimal("10")),
            _tour("City Walk", Decimal("10"), "https://b.com"),
            _tour("Night Tour", None),
        ]
        once = deduplicate_tours(tours)

        assert deduplicate_tours(once) == once
