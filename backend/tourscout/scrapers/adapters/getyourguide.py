"""GetYourGuide activity scraper.

Structure: [data-test-id="tour-card"]
  - [data-test-id="tour-title"]
  - [data-test-id="price"] ("From €32")
  - [data-test-id="includes"] li / [data-test-id="excludes"] li
  - [data-test-id="group-size"] ("1-12 people", "Up to 8")
"""

import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from tourscout.scrapers.base import BaseTourScraper, RawActivity, KIND_ACTIVITY
from tourscout.scrapers.utils.normalizer import PriceNormalizer, parse_rating


SELECTORS = {
    "container": '[data-test-id="tour-card"]',
    "title": '[data-test-id="tour-title"]',
    "description": '[data-test-id="tour-description"]',
    "price": '[data-test-id="price"]',
    "rating": '[data-test-id="rating"]',
    "images": 'img[data-test-id="tour-image"]',
    "duration": '[data-test-id="duration"]',
    "highlights": '[data-test-id="highlights"] li',
    "location": '[data-test-id="location"]',
    "availability": '[data-test-id="availability"]',
    "includes": '[data-test-id="includes"] li',
    "excludes": '[data-test-id="excludes"] li',
    "meeting_point": '[data-test-id="meeting-point"]',
    "cancel_policy": '[data-test-id="cancellation"]',
    "group_size": '[data-test-id="group-size"]',
}

_LINK_SELECTORS = ['a[data-test-id="tour-link"]', 'a[href*="/activity/"]', "a[href]"]

# "/paris-l16/louvre-tour-t12345/"
_TOUR_ID_PATTERN = re.compile(r"-t(\d+)")


def parse_group_size(text: Optional[str]) -> Optional[Dict[str, int]]:
    """Parse "1-12 people", "Up to 8", "Min 2 people" into {"min", "max"}."""
    if not text:
        return None

    range_match = re.search(r"(\d+)\s*-\s*(\d+)", text)
    if range_match:
        return {"min": int(range_match.group(1)), "max": int(range_match.group(2))}

    max_match = re.search(r"(?:up to|max(?:imum)?)\s*(\d+)", text, re.IGNORECASE)
    if max_match:
        return {"max": int(max_match.group(1))}

    min_match = re.search(r"min(?:imum)?\s*(\d+)", text, re.IGNORECASE)
    if min_match:
        return {"min": int(min_match.group(1))}

    single = re.search(r"(\d+)", text)
    if single:
        return {"max": int(single.group(1))}
    return None


def duration_tags(duration: Optional[str]) -> List[str]:
    """Bucket a duration label into a coarse tag."""
    if not duration:
        return []
    lowered = duration.lower()
    hours = re.search(r"(\d+)\s*hour", lowered)
    if hours:
        value = int(hours.group(1))
        if value <= 2:
            return ["short-duration"]
        if value <= 4:
            return ["half-day"]
        if value <= 8:
            return ["full-day"]
        return ["multi-day"]
    if "day" in lowered:
        return ["multi-day"] if re.search(r"([2-9]|\d{2,})\s*day", lowered) else ["full-day"]
    return []


class GetYourGuideScraper(BaseTourScraper):
    """GetYourGuide tour card scraper."""

    site_key = "getyourguide"
    site_name = "GetYourGuide"
    record_kind = KIND_ACTIVITY
    base_url = "https://www.getyourguide.com"
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
            if activity is None:
                self.logger.debug("card_skipped_no_title", index=index)
                continue
            activities.append(activity)

        self.logger.info("getyourguide_page_parsed", url=url, count=len(activities))
        return activities

    def _parse_card(self, card: Tag) -> Optional[RawActivity]:
        title = self._text(card, SELECTORS["title"])
        if not title:
            return None

        price, currency = PriceNormalizer.parse_price_with_currency(self._text(card, SELECTORS["price"]))
        highlights = self._texts(card, SELECTORS["highlights"])
        includes = self._texts(card, SELECTORS["includes"])
        duration = self._text(card, SELECTORS["duration"])
        link = self._link(card, _LINK_SELECTORS, self.base_url)
        id_match = _TOUR_ID_PATTERN.search(link) if link else None

        return RawActivity(
            url=link or self.base_url,
            title=title,
            id=id_match.group(1) if id_match else None,
            description=self._text(card, SELECTORS["description"]),
            price=price,
            currency=currency,
            rating=parse_rating(self._text(card, SELECTORS["rating"])),
            duration=duration,
            location=self._text(card, SELECTORS["location"]),
            highlights=highlights,
            includes=includes,
            excludes=self._texts(card, SELECTORS["excludes"]),
            meeting_point=self._text(card, SELECTORS["meeting_point"]),
            cancel_policy=self._text(card, SELECTORS["cancel_policy"]),
            group_size=parse_group_size(self._text(card, SELECTORS["group_size"])),
            availability=self._texts(card, SELECTORS["availability"]),
            images=self._images(card, SELECTORS["images"], self.base_url),
            category="activity",
            tags=duration_tags(duration),
            metadata={
                "source": "getyourguide.com",
                "has_highlights": bool(highlights),
                "has_includes": bool(includes),
            },
        )
