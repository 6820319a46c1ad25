"""Booking.com property scraper.

Produces accommodation records; the normalizer turns each into a
package-style tour.

Structure: [data-testid="property-card"]
  - [data-testid="title"] inside a[data-testid="title-link"]
  - [data-testid="price-and-discounted-price"] ("€ 1,120")
  - [data-testid="review-score-badge"] (10-point scale)
  - [data-testid="rating-stars"] (star icons or "4 stars")
"""

import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from tourscout.scrapers.base import BaseTourScraper, RawAccommodation, KIND_ACCOMMODATION
from tourscout.scrapers.utils.normalizer import PriceNormalizer, parse_rating


SELECTORS = {
    "container": '[data-testid="property-card"]',
    "title": '[data-testid="title"]',
    "description": '[data-testid="property-card-description"]',
    "price": '[data-testid="price-and-discounted-price"]',
    "rating": '[data-testid="review-score-badge"]',
    "review_count": '[data-testid="review-score"]',
    "images": 'img[data-testid="image"]',
    "star_rating": '[data-testid="rating-stars"]',
    "amenities": '[data-testid="facility-highlight"]',
    "check_in": '[data-testid="checkin-time"]',
    "check_out": '[data-testid="checkout-time"]',
    "room_types": '[data-testid="room-option"]',
    "policies": '[data-testid="policies"]',
    "address": '[data-testid="address"]',
    "location": '[data-testid="location"]',
}

_LINK_SELECTORS = ['a[data-testid="title-link"]', "a[href]"]

_PROPERTY_TYPES = ("hotel", "apartment", "resort", "villa", "hostel")

_AMENITY_TAGS = {
    "wifi": ("wifi", "internet"),
    "pool": ("pool",),
    "spa": ("spa",),
    "fitness": ("gym", "fitness"),
    "parking": ("parking",),
    "breakfast": ("breakfast",),
    "beachfront": ("beach",),
}


class BookingComScraper(BaseTourScraper):
    """Booking.com search-results scraper."""

    site_key = "booking.com"
    site_name = "Booking.com"
    record_kind = KIND_ACCOMMODATION
    base_url = "https://www.booking.com"
    wait_selector = SELECTORS["container"]

    def parse(self, html: str, url: str) -> List[RawAccommodation]:
        soup = BeautifulSoup(html, "lxml")
        accommodations: List[RawAccommodation] = []

        for index, card in enumerate(soup.select(SELECTORS["container"])):
            try:
                accommodation = self._parse_card(card)
            except ValueError as e:
                self.logger.warning("card_parse_failed", index=index, error=str(e))
                continue
            if accommodation:
                accommodation.metadata["extraction_index"] = index
                accommodations.append(accommodation)

        self.logger.info("booking_page_parsed", url=url, count=len(accommodations))
        return accommodations

    def _parse_card(self, card: Tag) -> Optional[RawAccommodation]:
        title = self._text(card, SELECTORS["title"])
        if not title:
            return None

        price, currency = PriceNormalizer.parse_price_with_currency(self._text(card, SELECTORS["price"]))
        amenities = self._texts(card, SELECTORS["amenities"])
        star_rating = self._parse_star_rating(card)
        room_types = self._parse_room_types(card)
        link = self._link(card, _LINK_SELECTORS, self.base_url)

        return RawAccommodation(
            url=link or self.base_url,
            title=title,
            id=self._property_id(link),
            description=self._text(card, SELECTORS["description"]),
            price=price,
            currency=currency,
            rating=parse_rating(self._text(card, SELECTORS["rating"]), scale=10),
            review_count=self._parse_review_count(card),
            star_rating=star_rating,
            location=self._text(card, SELECTORS["location"]),
            address=self._text(card, SELECTORS["address"]),
            amenities=amenities,
            check_in=self._text(card, SELECTORS["check_in"]),
            check_out=self._text(card, SELECTORS["check_out"]),
            room_types=room_types,
            policies=self._texts(card, SELECTORS["policies"]),
            images=self._images(card, SELECTORS["images"], self.base_url),
            category="accommodation",
            tags=self._generate_tags(title, amenities, star_rating),
            metadata={
                "source": "booking.com",
                "has_room_types": bool(room_types),
                "amenity_count": len(amenities),
            },
        )

    def _parse_star_rating(self, card: Tag) -> Optional[int]:
        element = card.select_one(SELECTORS["star_rating"])
        if element is None:
            return None
        match = re.search(r"(\d+)", element.get_text(" ") or element.get("aria-label", ""))
        if match:
            return int(match.group(1))
        # Stars rendered as icons only
        stars = element.select('[class*="star"], [data-testid*="star"]')
        return len(stars) or None

    def _parse_review_count(self, card: Tag) -> Optional[int]:
        text = self._text(card, SELECTORS["review_count"])
        if not text:
            return None
        match = re.search(r"([\d,]+)\s*reviews?", text, re.IGNORECASE)
        return int(match.group(1).replace(",", "")) if match else None

    def _parse_room_types(self, card: Tag) -> List[Dict[str, Any]]:
        room_types = []
        for room in card.select(SELECTORS["room_types"]):
            name = self._text(room, '[data-testid="room-name"]')
            if not name:
                continue
            room_type: Dict[str, Any] = {"name": name}
            price = self._text(room, '[data-testid="room-price"]')
            if price:
                room_type["price"] = price
            capacity = re.search(r"(\d+)", self._text(room, '[data-testid="room-capacity"]') or "")
            if capacity:
                room_type["capacity"] = int(capacity.group(1))
            amenities = self._texts(room, '[data-testid="room-amenity"]')
            if amenities:
                room_type["amenities"] = amenities
            room_types.append(room_type)
        return room_types

    @staticmethod
    def _property_id(link: Optional[str]) -> Optional[str]:
        """Property slug from a link, e.g. /hotel/fr/le-marais.html gives fr/le-marais."""
        if not link:
            return None
        match = re.search(r"/hotel/(.+?)(?:\.[a-z-]+)?\.html", urlparse(link).path)
        return match.group(1) if match else None

    @staticmethod
    def _generate_tags(title: str, amenities: List[str], star_rating: Optional[int]) -> List[str]:
        tags = []
        if star_rating:
            tags.append(f"{star_rating}-star")

        lowered_title = title.lower()
        tags.extend(kind for kind in _PROPERTY_TYPES if kind in lowered_title)

        lowered = " ".join(amenities).lower()
        tags.extend(tag for tag, needles in _AMENITY_TAGS.items() if any(n in lowered for n in needles))
        return tags
