"""TripAdvisor experiences scraper.

Parses the "things to do" listing cards.

Structure: [data-test-target="HR_CC_CARD"]
  - [data-test-target="experience-card-title"] (title, wraps the link)
  - [data-test-target="price-from"] ("from $45")
  - [data-test-target="rating-circle"] (rating in aria-label)
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from tourscout.scrapers.base import BaseTourScraper, RawActivity, KIND_ACTIVITY
from tourscout.scrapers.utils.normalizer import PriceNormalizer, parse_rating


SELECTORS = {
    "container": '[data-test-target="HR_CC_CARD"]',
    "title": '[data-test-target="experience-card-title"]',
    "description": '[data-test-target="experience-card-description"]',
    "price": '[data-test-target="price-from"]',
    "rating": '[data-test-target="rating-circle"]',
    "reviews": '[data-test-target="review-count"]',
    "images": 'img[src*="media"]',
    "duration": '[data-test-target="duration"]',
    "highlights": '[data-test-target="highlights"] li',
    "location": '[data-test-target="location"]',
    "availability": '[data-test-target="availability"]',
}

_LINK_SELECTORS = ['a[href*="AttractionProductReview"]', "a[href]"]

# "d12345" in "/AttractionProductReview-g187147-d12345-Louvre.html"
_PRODUCT_ID_PATTERN = re.compile(r"-d(\d+)-")


class TripAdvisorScraper(BaseTourScraper):
    """TripAdvisor experience listing scraper."""

    site_key = "tripadvisor"
    site_name = "TripAdvisor"
    record_kind = KIND_ACTIVITY
    base_url = "https://www.tripadvisor.com"
    wait_selector = SELECTORS["container"]

    def parse(self, html: str, url: str) -> List[RawActivity]:
        soup = BeautifulSoup(html, "lxml")
        activities: List[RawActivity] = []

        for index, card in enumerate(soup.select(SELECTORS["container"])):
            try:
                activity = self._parse_card(card)
            except ValueError as e:
                self.logger.warning("card_parse_failed", index=index, error=str(e))
                continue
            if activity:
                activity.metadata.update({"source": self.site_name, "element_index": index})
                activities.append(activity)

        self.logger.info("tripadvisor_page_parsed", url=url, count=len(activities))
        return activities

    def _parse_card(self, card: Tag) -> Optional[RawActivity]:
        title = self._text(card, SELECTORS["title"])
        if not title:
            return None

        link = self._link(card, _LINK_SELECTORS, self.base_url)
        if not link:
            return None

        price_text = self._text(card, SELECTORS["price"])
        _, currency = PriceNormalizer.parse_price_with_currency(price_text)
        if price_text:
            price_text = re.sub(r"^from\s*", "", price_text, flags=re.IGNORECASE)

        id_match = _PRODUCT_ID_PATTERN.search(link)
        reviews = self._text(card, SELECTORS["reviews"])
        review_count = int(re.sub(r"[^\d]", "", reviews)) if reviews and re.search(r"\d", reviews) else None

        return RawActivity(
            url=link,
            title=title,
            id=id_match.group(1) if id_match else None,
            description=self._text(card, SELECTORS["description"]),
            price=price_text,
            currency=currency,
            rating=self._parse_rating(card),
            review_count=review_count,
            location=self._text(card, SELECTORS["location"]),
            duration=self._text(card, SELECTORS["duration"]),
            highlights=self._texts(card, SELECTORS["highlights"]),
            availability=self._texts(card, SELECTORS["availability"]),
            images=self._images(card, SELECTORS["images"], self.base_url),
            category="activity",
        )

    def _parse_rating(self, card: Tag) -> Optional[float]:
        """Rating lives in aria-label ("4.5 of 5 bubbles"), data-rating or text."""
        element = card.select_one(SELECTORS["rating"])
        if element is None:
            return None
        for candidate in (element.get("aria-label"), element.get("data-rating"), element.get_text(" ")):
            rating = parse_rating(candidate)
            if rating is not None:
                return rating
        return None
