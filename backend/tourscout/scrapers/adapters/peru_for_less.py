"""Peru For Less partner-site scraper.

The site lists tours in plain tables and in "tour box" divs:
  - table tr > td a[href*="/tours/"] (title link), row text holds "8 days" and "$1,299"
  - .tour-item / .package-item / .trip-item / [class*="tour-box"]
"""

import re
from typing import List, Optional, Set

from bs4 import BeautifulSoup, Tag

from tourscout.scrapers.base import BaseTourScraper, RawActivity, KIND_ACTIVITY
from tourscout.scrapers.utils.normalizer import clean_text, resolve_url


ROW_LINK_SELECTOR = 'a[href*="/tours/"], a[href*="/peru-tours/"]'
BOX_SELECTOR = '.tour-item, .package-item, .trip-item, [class*="tour-box"]'

_DURATION_PATTERN = re.compile(r"(\d+\s*(?:days?|nights?))", re.IGNORECASE)
_PRICE_PATTERN = re.compile(r"\$\s*([\d,]+)")

KNOWN_LOCATIONS = (
    "Machu Picchu", "Cusco", "Lima", "Sacred Valley", "Inca Trail",
    "Amazon", "Arequipa", "Lake Titicaca", "Nazca", "Colca Canyon",
    "Peru", "Puno", "Huacachina", "Paracas", "Iquitos",
)

DEFAULT_LOCATION = "Peru"


def extract_peru_location(text: str) -> str:
    """Comma-joined known place names found in text, "Peru" if none."""
    lowered = text.lower()
    found = [place for place in KNOWN_LOCATIONS if place.lower() in lowered]
    return ", ".join(found) if found else DEFAULT_LOCATION


class PeruForLessScraper(BaseTourScraper):
    """Scraper for peruforless.com tour listings."""

    site_key = "peruforless"
    site_name = "Peru For Less"
    record_kind = KIND_ACTIVITY
    base_url = "https://www.peruforless.com"

    def parse(self, html: str, url: str) -> List[RawActivity]:
        soup = BeautifulSoup(html, "lxml")
        seen: Set[str] = set()
        activities: List[RawActivity] = []

        for row in soup.select("table tr"):
            activity = self._parse_row(row, url, seen)
            if activity:
                activities.append(activity)

        for box in soup.select(BOX_SELECTOR):
            activity = self._parse_box(box, url, seen)
            if activity:
                activities.append(activity)

        self.logger.info("peruforless_page_parsed", url=url, count=len(activities))
        return activities

    def _parse_row(self, row: Tag, page_url: str, seen: Set[str]) -> Optional[RawActivity]:
        if len(row.find_all("td")) < 2:
            return None
        link = row.select_one(ROW_LINK_SELECTOR)
        if link is None:
            return None

        title = clean_text(link.get_text(" "))
        if not title or title in seen:
            return None
        seen.add(title)

        return self._build(title, clean_text(row.get_text(" ")), page_url, link.get("href"))

    def _parse_box(self, box: Tag, page_url: str, seen: Set[str]) -> Optional[RawActivity]:
        link = box.select_one("a")
        title = clean_text(link.get_text(" ")) if link else ""
        if not title:
            title = self._text(box, ".title, h3, h4") or ""
        if not title or title in seen:
            return None
        seen.add(title)

        activity = self._build(title, clean_text(box.get_text(" ")), page_url, link.get("href") if link else None)
        activity.description = self._text(box, ".description, .summary, p")
        activity.images = self._images(box, "img", page_url)
        return activity

    def _build(self, title: str, full_text: str, page_url: str, href: Optional[str]) -> RawActivity:
        duration = _DURATION_PATTERN.search(full_text)
        price = _PRICE_PATTERN.search(full_text)
        return RawActivity(
            url=self._link_url(href, page_url),
            title=title,
            location=extract_peru_location(full_text),
            price=price.group(1) if price else None,
            currency="USD",
            duration=duration.group(1) if duration else None,
            category="activity",
            metadata={"source": "peruforless.com"},
        )

    @staticmethod
    def _link_url(href: Optional[str], page_url: str) -> str:
        return resolve_url(href, page_url) if href else page_url
