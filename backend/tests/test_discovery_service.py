"""Tests for DiscoveryService ranking and the legacy fallback."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from tourscout.models import Content, Operator, Tour
from tourscout.services.discovery_service import (
    DiscoveryCriteria,
    DiscoveryService,
    calculate_match_score,
    map_category_to_tour_category,
)


class FixedRng:
    """Deterministic stand-in for the random module."""

    def __init__(self, value: float = 0.0):
        self.value = value

    def random(self) -> float:
        return self.value


def make_tour(**overrides) -> Tour:
    values = dict(
        name="Alfama Walking Tour",
        description="Stroll through the oldest quarter of the city",
        destination="Lisbon, Portugal",
        city="Lisbon",
        country="Portugal",
        price=Decimal("40"),
        currency="EUR",
        price_type="per_person",
        duration=3,
        duration_type="hours",
        categories=["Cultural"],
        highlights=[],
        included=[],
        excluded=[],
        images=[],
        languages=["English"],
        review_count=0,
        booking_count=0,
        featured=False,
        status="published",
        metadata_={},
    )
    values.update(overrides)
    return Tour(**values)


@pytest.fixture
def service(test_db):
    return DiscoveryService(test_db, rng=FixedRng())


async def seed(db, *rows):
    db.add_all(rows)
    await db.commit()


# ============================================================================
# Match score
# ============================================================================


class TestMatchScore:
    """Tests for the heuristic relevance score."""

    def test_destination_match(self):
        tour = make_tour(price=None)

        score = calculate_match_score(tour, DiscoveryCriteria(destination="lisbon"), FixedRng())

        assert score == 50

    def test_destination_miss(self):
        tour = make_tour(price=None)

        assert calculate_match_score(tour, DiscoveryCriteria(destination="Porto"), FixedRng()) == 0

    def test_interests_add_per_match(self):
        tour = make_tour(name="Sunset Kayak and Wine", price=None)
        criteria = DiscoveryCriteria(destination="Lisbon", interests=["kayak", "wine", "opera"])

        assert calculate_match_score(tour, criteria, FixedRng()) == 50 + 30

    def test_category_hit(self):
        tour = make_tour(categories=["Food & Wine"], price=None)
        criteria = DiscoveryCriteria(destination="Lisbon", category="restaurants")

        assert calculate_match_score(tour, criteria, FixedRng()) == 70

    @pytest.mark.parametrize("duration, duration_type", [
        (1, "days"),
        (8, "hours"),
        (480, "minutes"),
    ])
    def test_duration_units_compare_in_days(self, duration, duration_type):
        tour = make_tour(duration=duration, duration_type=duration_type, price=None)
        criteria = DiscoveryCriteria(destination="Lisbon", duration=1)

        assert calculate_match_score(tour, criteria, FixedRng()) == 65

    def test_duration_bonus_decays(self):
        tour = make_tour(duration=2, duration_type="days", price=None)
        criteria = DiscoveryCriteria(destination="Lisbon", duration=3)

        assert calculate_match_score(tour, criteria, FixedRng()) == 62

    def test_budget_bonus(self):
        criteria = DiscoveryCriteria(destination="Lisbon", duration=7, budget=700)

        within = calculate_match_score(make_tour(price=Decimal("80")), criteria, FixedRng())
        stretch = calculate_match_score(make_tour(price=Decimal("140")), criteria, FixedRng())
        over = calculate_match_score(make_tour(price=Decimal("200")), criteria, FixedRng())

        assert (within, stretch, over) == (70, 60, 50)

    def test_popularity_boosts(self):
        tour = make_tour(price=None, featured=True, rating=4.8, review_count=120)

        assert calculate_match_score(tour, DiscoveryCriteria(destination="Lisbon"), FixedRng()) == 75

    def test_jitter_below_five(self):
        tour = make_tour(price=None)

        assert calculate_match_score(tour, DiscoveryCriteria(destination="Lisbon"), FixedRng(0.99)) == 55


class TestCriteria:
    """Tests for criteria helpers."""

    def test_budget_per_day_uses_trip_length(self):
        assert DiscoveryCriteria(destination="x", duration=14, budget=1400).budget_per_day() == 100

    def test_short_trips_spread_over_a_week(self):
        assert DiscoveryCriteria(destination="x", duration=3, budget=700).budget_per_day() == 100
        assert DiscoveryCriteria(destination="x", budget=700).budget_per_day() == 100

    def test_no_budget(self):
        assert DiscoveryCriteria(destination="x", duration=3).budget_per_day() is None

    def test_category_mapping(self):
        assert map_category_to_tour_category("restaurants") == "Food & Wine"
        assert map_category_to_tour_category("art-museums") == "Cultural"
        assert map_category_to_tour_category("unknown-slug") == "Sightseeing"


# ============================================================================
# Discovery queries
# ============================================================================


class TestDiscoverTours:
    """Tests for candidate lookup and ranking."""

    @pytest.mark.asyncio
    async def test_finds_published_tours_by_destination(self, test_db, service):
        await seed(
            test_db,
            make_tour(name="Alfama Walking Tour"),
            make_tour(name="Draft Tram Tour", status="draft"),
            make_tour(name="Porto Wine Cellars", destination="Porto, Portugal", city="Porto"),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="lisbon"))

        assert [tour.name for tour in tours] == ["Alfama Walking Tour"]
        assert tours[0].tour_type == "tour"
        assert tours[0].match_score == 50
        assert tours[0].duration == 3
        assert tours[0].duration_display == "3 hours"
        assert len(tours[0].availability) == 7
        assert tours[0].images[0].startswith("https://source.unsplash.com/")

    @pytest.mark.asyncio
    async def test_featured_then_verified_then_score(self, test_db, service):
        verified = Operator(business_name="Lisboa Walks", verified_at=datetime.now(timezone.utc))
        unverified = Operator(business_name="New Operator")
        await seed(
            test_db,
            verified,
            unverified,
            make_tour(name="Best Match Kayak", operator=unverified),
            make_tour(name="Verified Tour", operator=verified),
            make_tour(name="Featured Tour", featured=True, operator=unverified),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon", interests=["kayak"]))

        assert [tour.name for tour in tours] == ["Featured Tour", "Verified Tour", "Best Match Kayak"]
        assert tours[1].verified is True
        assert tours[1].operator_name == "Lisboa Walks"
        assert tours[2].verified is False

    @pytest.mark.asyncio
    async def test_budget_filters_expensive_tours(self, test_db, service):
        await seed(
            test_db,
            make_tour(name="Affordable", price=Decimal("120")),
            make_tour(name="Too Expensive", price=Decimal("200")),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon", duration=7, budget=700))

        assert [tour.name for tour in tours] == ["Affordable"]

    @pytest.mark.asyncio
    async def test_category_filter(self, test_db, service):
        await seed(
            test_db,
            make_tour(name="Petiscos Food Crawl", categories=["Food & Wine"]),
            make_tour(name="Castle Visit", categories=["Cultural"]),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon", category="food"))

        assert [tour.name for tour in tours] == ["Petiscos Food Crawl"]

    @pytest.mark.asyncio
    async def test_category_all_does_not_filter(self, test_db, service):
        await seed(
            test_db,
            make_tour(name="Petiscos Food Crawl", categories=["Food & Wine"]),
            make_tour(name="Castle Visit", categories=["Cultural"]),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon", category="all"))

        assert len(tours) == 2

    @pytest.mark.asyncio
    async def test_results_capped_at_twenty(self, test_db, service):
        await seed(test_db, *[make_tour(name=f"Lisbon Tour {i}") for i in range(25)])

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon"))

        assert len(tours) == 20

    @pytest.mark.asyncio
    async def test_database_error_returns_empty_list(self):
        class BrokenSession:
            async def execute(self, *args, **kwargs):
                raise OperationalError("SELECT", {}, Exception("database is locked"))

        service = DiscoveryService(BrokenSession(), rng=FixedRng())

        assert await service.discover_tours(DiscoveryCriteria(destination="Lisbon")) == []


# ============================================================================
# Legacy fallback
# ============================================================================


class TestLegacyFallback:
    """Tests for topping up sparse results from the contents table."""

    @pytest.mark.asyncio
    async def test_legacy_rows_appended_when_few_tours(self, test_db, service):
        legacy = Content(
            type="activity",
            name="Old Town Fado Night",
            description="Traditional fado in a tiny Alfama tavern",
            location="Lisbon",
            duration=180,
            images=json.dumps(["https://img.example.com/fado.jpg"]),
            metadata_=json.dumps({"operatorName": "Fado Lisboa"}),
        )
        await seed(
            test_db,
            make_tour(name="Alfama Walking Tour"),
            legacy,
            Content(type="activity", name="Closed Activity", location="Lisbon", active=False),
            Content(type="restaurant", name="Tasca do Chico", location="Lisbon"),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon"))

        assert [tour.name for tour in tours] == ["Alfama Walking Tour", "Old Town Fado Night"]
        fallback = tours[1]
        assert fallback.id == f"legacy-{legacy.id}"
        assert fallback.tour_type == "legacy"
        assert fallback.price == Decimal("0")
        assert fallback.currency == "USD"
        assert fallback.duration == 3
        assert fallback.rating == 4.0
        assert fallback.match_score == 50
        assert fallback.operator_name == "Fado Lisboa"
        assert fallback.images == ["https://img.example.com/fado.jpg"]
        assert fallback.included == ["Professional guide"]

    @pytest.mark.asyncio
    async def test_legacy_defaults(self, test_db, service):
        await seed(test_db, Content(type="activity", name="Tile Workshop", location="Lisbon"))

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon"))

        assert len(tours) == 1
        assert tours[0].duration == 4
        assert tours[0].operator_name == "Local Operator"
        assert tours[0].categories == ["general"]

    @pytest.mark.asyncio
    async def test_no_legacy_when_enough_tours(self, test_db, service):
        await seed(
            test_db,
            *[make_tour(name=f"Lisbon Tour {i}") for i in range(5)],
            Content(type="activity", name="Tile Workshop", location="Lisbon"),
        )

        tours = await service.discover_tours(DiscoveryCriteria(destination="Lisbon"))

        assert len(tours) == 5
        assert all(tour.tour_type == "tour" for tour in tours)
