"""Tour discovery: find published tours for a trip and rank them.

Candidates come from the tours table ordered by popularity, get a
heuristic match score and are re-sorted. When too few tours match, rows from
the legacy contents table are appended. Discovery fails soft: any database
error gives an empty list instead of an error.
"""

import json
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import String, cast, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tourscout.models.content import Content
from tourscout.models.tour import Tour

logger = structlog.get_logger(__name__)


CANDIDATE_LIMIT = 30
RESULT_LIMIT = 20
LEGACY_LIMIT = 10
LEGACY_THRESHOLD = 5
DEFAULT_TRIP_DAYS = 7
BUDGET_FLEXIBILITY = 1.5
HOURS_PER_DAY = 8
AVAILABILITY_DAYS = 7

CATEGORY_MAP = {
    "restaurants": "Food & Wine",
    "cafe-bakery": "Food & Wine",
    "bars-nightlife": "Nightlife",
    "art-museums": "Cultural",
    "attractions": "Sightseeing",
    "hotels": "Accommodation",
    "shopping": "Shopping",
    "beauty-fashion": "Shopping",
    "transport": "Transportation",
    "food": "Food & Wine",
    "culture": "Cultural",
    "adventure": "Adventure",
    "city": "City Tours",
    "nature": "Nature",
    "water": "Water Activities",
    "general": "Sightseeing",
}
DEFAULT_CATEGORY = "Sightseeing"


def map_category_to_tour_category(category: str) -> str:
    """Map a client category slug to a tour category (unknown -> Sightseeing)."""
    return CATEGORY_MAP.get(category, DEFAULT_CATEGORY)


def placeholder_image(term: str, destination: str) -> str:
    return f"https://source.unsplash.com/400x300/?{term},{destination}"


@dataclass
class DiscoveryCriteria:
    destination: str
    interests: List[str] = field(default_factory=list)
    duration: Optional[int] = None  # trip length in days
    travelers: Optional[int] = None
    budget: Optional[float] = None  # whole-trip budget
    category: Optional[str] = None

    def budget_per_day(self) -> Optional[float]:
        """Daily budget; trips shorter than a week are spread over seven days."""
        if not self.budget:
            return None
        return self.budget / max(self.duration or DEFAULT_TRIP_DAYS, DEFAULT_TRIP_DAYS)


def calculate_match_score(tour: Tour, criteria: DiscoveryCriteria, rng=random) -> int:
    """Heuristic relevance score for one tour.

    Destination match is worth 50, each interest found in the tour text 15,
    a category hit 20, trip length proximity up to 15, price within the
    daily budget 20 (10 within 1.5x), plus popularity boosts and a random
    jitter in [0, 5).
    """
    score = 0.0
    destination = criteria.destination.lower()
    categories = list(tour.categories or [])

    if any(destination in (value or "").lower() for value in (tour.destination, tour.city, tour.country)):
        score += 50

    if criteria.interests:
        tour_text = f"{tour.name} {tour.description} {' '.join(categories)}".lower()
        matching = [interest for interest in criteria.interests if interest.lower() in tour_text]
        score += len(matching) * 15

    if criteria.category and map_category_to_tour_category(criteria.category) in categories:
        score += 20

    if criteria.duration and tour.duration:
        if tour.duration_type == "days":
            tour_days = tour.duration
        elif tour.duration_type == "minutes":
            tour_days = tour.duration / 60 / HOURS_PER_DAY
        else:
            tour_days = tour.duration / HOURS_PER_DAY
        score += max(0.0, 15 - abs(tour_days - criteria.duration) * 3)

    budget_per_day = criteria.budget_per_day()
    if budget_per_day and tour.price:
        price = float(tour.price)
        if price <= budget_per_day:
            score += 20
        elif price <= budget_per_day * BUDGET_FLEXIBILITY:
            score += 10

    if tour.featured:
        score += 10
    if (tour.rating or 0) >= 4.5:
        score += 10
    if (tour.review_count or 0) > 50:
        score += 5

    score += rng.random() * 5
    return round(score)


def _hours(duration: Optional[float], duration_type: str) -> Optional[float]:
    if duration is None:
        return None
    if duration_type == "days":
        return duration * HOURS_PER_DAY
    if duration_type == "hours":
        return duration
    return duration / 60


def _parse_json(value: Optional[str]) -> Any:
    if not value:
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


def _truncate(text: str, length: int = 200) -> str:
    return (text or "")[:length] + "..."


@dataclass
class DiscoveredTour:
    """A tour in the shape discovery clients render."""

    id: str
    name: str
    description: str
    full_description: str
    location: str
    city: str
    country: str
    price: Optional[Decimal]
    currency: str
    price_type: str
    duration: Optional[float]  # hours
    duration_display: str
    images: List[str]
    included: List[str]
    excluded: List[str]
    highlights: List[str]
    max_participants: int
    min_participants: int
    operator_name: Optional[str]
    operator_id: Optional[str]
    operator_logo: Optional[str]
    verified: bool
    rating: float
    reviews: int
    availability: List[str]
    categories: List[str]
    category: str
    difficulty: Optional[str]
    languages: List[str]
    match_score: int
    featured: bool
    cancellation_policy: str
    starting_point: Optional[str]
    ending_point: Optional[str]
    tour_type: str
    coordinates: Optional[Dict[str, Any]] = None


class DiscoveryService:
    """Finds and ranks tours for a trip request."""

    def __init__(self, db: AsyncSession, rng=random):
        """Initialize discovery service.

        Args:
            db: Async database session
            rng: Source of score jitter (anything with ``random()``)
        """
        self.db = db
        self.rng = rng
        self.logger = logger.bind(service="discovery_service")

    async def discover_tours(self, criteria: DiscoveryCriteria) -> List[DiscoveredTour]:
        """Ranked tours for the criteria, at most 20.

        Never raises for database problems; they are logged and an empty
        list is returned.
        """
        try:
            rows = await self._find_candidates(criteria)
            self.logger.info("tour_candidates_found", destination=criteria.destination, count=len(rows))

            tours = [self._to_discovered(row, criteria) for row in rows]
            tours.sort(key=lambda t: (not t.featured, not t.verified, -t.match_score))

            if len(tours) < LEGACY_THRESHOLD:
                self.logger.info("insufficient_tours_using_legacy", destination=criteria.destination)
                tours.extend(await self._find_legacy(criteria))

            return tours[:RESULT_LIMIT]
        except SQLAlchemyError as e:
            self.logger.error("discovery_database_error", destination=criteria.destination, error=str(e))
            return []

    def calculate_match_score(self, tour: Tour, criteria: DiscoveryCriteria) -> int:
        return calculate_match_score(tour, criteria, self.rng)

    async def _find_candidates(self, criteria: DiscoveryCriteria) -> List[Tour]:
        pattern = f"%{criteria.destination}%"
        text_match = [
            Tour.destination.ilike(pattern),
            Tour.city.ilike(pattern),
            Tour.country.ilike(pattern),
        ]
        for interest in criteria.interests:
            interest_pattern = f"%{interest}%"
            text_match.extend([
                Tour.name.ilike(interest_pattern),
                Tour.description.ilike(interest_pattern),
                cast(Tour.categories, String).ilike(f'%"{interest}"%'),
            ])

        query = (
            select(Tour)
            .options(selectinload(Tour.operator))
            .where(Tour.status == "published", or_(*text_match))
        )

        budget_per_day = criteria.budget_per_day()
        if budget_per_day:
            query = query.where(Tour.price <= budget_per_day * BUDGET_FLEXIBILITY)

        if criteria.category and criteria.category != "all":
            mapped = map_category_to_tour_category(criteria.category)
            query = query.where(cast(Tour.categories, String).like(f'%"{mapped}"%'))

        query = query.order_by(
            Tour.featured.desc(),
            Tour.rating.desc(),
            Tour.booking_count.desc(),
            Tour.created_at.desc(),
        ).limit(CANDIDATE_LIMIT)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    def _to_discovered(self, tour: Tour, criteria: DiscoveryCriteria) -> DiscoveredTour:
        categories = list(tour.categories or [])
        images = list(tour.images or [])
        if not images:
            images = [placeholder_image(categories[0] if categories else "tour", tour.destination)]

        today = date.today()
        availability = [(today + timedelta(days=i)).isoformat() for i in range(1, AVAILABILITY_DAYS + 1)]

        operator = tour.operator
        group_size = tour.group_size or {}
        duration_display = f"{tour.duration:g} {tour.duration_type}" if tour.duration is not None else "Varies"

        return DiscoveredTour(
            id=str(tour.id),
            name=tour.name,
            description=tour.short_description or _truncate(tour.description),
            full_description=tour.description,
            location=tour.destination,
            city=tour.city or tour.destination,
            country=tour.country or "Local",
            coordinates=tour.coordinates,
            price=tour.price,
            currency=tour.currency,
            price_type=tour.price_type,
            duration=_hours(tour.duration, tour.duration_type),
            duration_display=duration_display,
            images=images,
            included=list(tour.included or []),
            excluded=list(tour.excluded or []),
            highlights=list(tour.highlights or []),
            max_participants=group_size.get("max", 20),
            min_participants=group_size.get("min", 1),
            operator_name=operator.business_name if operator else None,
            operator_id=str(operator.id) if operator else None,
            operator_logo=operator.logo if operator else None,
            verified=bool(operator and operator.is_verified),
            rating=tour.rating or 4.5,
            reviews=tour.review_count or 0,
            availability=availability,
            categories=categories,
            category=categories[0] if categories else "general",
            difficulty=tour.difficulty,
            languages=list(tour.languages or []),
            match_score=self.calculate_match_score(tour, criteria),
            featured=tour.featured,
            cancellation_policy=tour.cancellation_policy or "Flexible cancellation",
            starting_point=tour.starting_point,
            ending_point=tour.ending_point,
            tour_type="tour",
        )

    async def _find_legacy(self, criteria: DiscoveryCriteria) -> List[DiscoveredTour]:
        pattern = f"%{criteria.destination}%"
        query = (
            select(Content)
            .where(
                Content.type == "activity",
                Content.active.is_(True),
                or_(Content.location.ilike(pattern), Content.city.ilike(pattern)),
            )
            .limit(LEGACY_LIMIT)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            self.logger.error("legacy_lookup_failed", destination=criteria.destination, error=str(e))
            return []
        return [self._legacy_to_discovered(row, criteria) for row in result.scalars().all()]

    @staticmethod
    def _legacy_to_discovered(content: Content, criteria: DiscoveryCriteria) -> DiscoveredTour:
        metadata = _parse_json(content.metadata_) or {}
        if not isinstance(metadata, dict):
            metadata = {}
        images = _parse_json(content.images) or []
        hours = content.duration // 60 if content.duration else 4

        return DiscoveredTour(
            id=f"legacy-{content.id}",
            name=content.name,
            description=_truncate(content.description),
            full_description=content.description,
            location=content.location,
            city=content.city or content.location,
            country=content.country or "Local",
            price=content.price or Decimal("0"),
            currency=content.currency or "USD",
            price_type="per_person",
            duration=float(hours),
            duration_display=f"{hours} hours",
            images=images or [placeholder_image("tour", criteria.destination)],
            included=_parse_json(content.included) or ["Professional guide"],
            excluded=_parse_json(content.excluded) or ["Personal expenses"],
            highlights=_parse_json(content.highlights) or [],
            max_participants=20,
            min_participants=1,
            operator_name=metadata.get("operatorName") or "Local Operator",
            operator_id=metadata.get("operatorId") or "legacy",
            operator_logo=None,
            verified=False,
            rating=4.0,
            reviews=0,
            availability=[],
            categories=metadata.get("categories") or ["general"],
            category="general",
            difficulty="Easy",
            languages=["English"],
            match_score=50,
            featured=content.featured,
            cancellation_policy="Standard cancellation policy",
            starting_point=None,
            ending_point=None,
            tour_type="legacy",
        )
