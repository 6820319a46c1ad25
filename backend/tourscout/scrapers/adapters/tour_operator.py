"""Generic tour-operator website scraper.

Used for any site without a dedicated scraper. Listings are found with a
cascade of heuristics, each tried only when the previous one found nothing:

1. Card containers (".tour-card", "article", "[class*=tour]", ...)
2. Page structure (JSON-LD Product/TouristTrip/Event, then the main content block)
3. Links that look like tour pages
4. Children of grid/list containers
5. AI extraction, when an extractor is injected
"""

import json
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from tourscout.scrapers.base import BaseTourScraper, RawActivity, KIND_ACTIVITY, MAX_IMAGES_PER_RECORD
from tourscout.scrapers.utils.normalizer import (
    PriceNormalizer,
    clean_text,
    extract_currency,
    extract_duration,
    extract_location_from_text,
    is_valid_tour_image,
    resolve_url,
    title_from_url,
)


CONTAINER_SELECTORS = [
    # Tour specific
    ".tour-item", ".tour-card", ".product-card", ".package-item",
    '[class*="tour"]', '[class*="package"]', '[class*="product"]',
    '[class*="trip"]', '[class*="itinerary"]', '[class*="destination"]',
    # Generic cards
    "article", ".card", ".item", ".listing-item",
    ".box", ".panel", ".module", ".widget",
    # Grid cells
    ".grid-item", ".flex-item", '[class*="col-"]',
    # Links used as cards
    'a[href*="/tour"]', 'a[href*="/package"]', 'a[href*="/trip"]',
    'a[href*="/itinerary"]', 'a[href*="/destination"]',
]

TITLE_SELECTORS = [
    "h1", "h2", "h3", "h4", "h5",
    ".title", ".tour-title", ".product-title", ".package-title",
    '[class*="title"]', '[class*="heading"]', '[class*="name"]',
    "a > span", "a > div", 'a[href*="/"]',
]

DESCRIPTION_SELECTORS = [
    ".description", ".desc", ".summary", ".excerpt",
    '[class*="desc"]', '[class*="summary"]', '[class*="excerpt"]',
    "p", "span",
]

PRICE_SELECTORS = [
    ".price", ".cost", ".rate", ".fare",
    '[class*="price"]', '[class*="cost"]', '[class*="rate"]',
    '[class*="from"]', 'span:-soup-contains("$")', 'div:-soup-contains("$")',
    "[data-price]", "[data-cost]",
]

DURATION_SELECTORS = [
    ".duration", ".days", ".nights", ".length",
    '[class*="duration"]', '[class*="days"]', '[class*="nights"]',
    '[class*="length"]', '[class*="time"]',
]

LOCATION_SELECTORS = [
    ".location", ".destination", ".place", ".region",
    '[class*="location"]', '[class*="destination"]', '[class*="place"]',
    '[class*="region"]', '[class*="country"]', '[class*="city"]',
]

IMAGE_SELECTORS = [
    "img", "picture img", ".image img", '[class*="image"] img',
    '[class*="photo"] img', '[class*="thumbnail"] img',
]

TOUR_LINK_SELECTOR = ", ".join(
    f'a[href*="/{part}"]' for part in ("tour", "package", "trip", "itinerary", "destination", "travel")
)

GRID_SELECTORS = [
    ".grid", ".row", ".products", ".tours", ".packages",
    '[class*="grid"]', '[class*="list"]', '[class*="items"]',
    "ul.tours", "div.tours", "section.tours",
]

STRUCTURED_DATA_TYPES = ("Product", "TouristTrip", "Event")

_BACKGROUND_IMAGE_PATTERN = re.compile(r"url\(['\"]?([^'\")]+)['\"]?\)", re.IGNORECASE)
_DIGITS_ONLY = re.compile(r"^\d+$")


class TourOperatorScraper(BaseTourScraper):
    """Heuristic scraper for arbitrary tour operator sites."""

    site_key = "tour_operator"
    site_name = "Tour Operator"
    record_kind = KIND_ACTIVITY

    def __init__(self, fetcher=None, rate_limiter=None, user_agents=None, extractor=None):
        """Initialize the scraper.

        Args:
            extractor: Optional TourExtractionClient consulted when no
                heuristic finds a listing
        """
        super().__init__(fetcher=fetcher, rate_limiter=rate_limiter, user_agents=user_agents)
        self.extractor = extractor

    async def extract(self, html: str, url: str) -> List[RawActivity]:
        activities = self.parse(html, url)
        if activities or self.extractor is None:
            return activities

        self.logger.info("pattern_extraction_empty_trying_ai", url=url)
        extracted = await self.extractor.extract(html, url)
        if extracted.is_demo:
            self.logger.warning("ai_extraction_returned_demo_record", url=url, title=extracted.title)
        return [extracted.to_activity()]

    def parse(self, html: str, url: str) -> List[RawActivity]:
        soup = BeautifulSoup(html, "lxml")

        tours = self._extract_from_containers(soup, url)
        if not tours:
            tours = self._extract_from_page_structure(soup, url)
        if not tours:
            tours = self._extract_from_links(soup, url)
        if not tours:
            tours = self._extract_from_grid(soup, url)

        activities: List[RawActivity] = []
        for tour in tours:
            if not tour.get("title"):
                continue
            try:
                activities.append(self._to_activity(tour, url))
            except ValueError as e:
                self.logger.warning("tour_record_invalid", title=tour["title"], error=str(e))

        activities = self._remove_duplicates(activities)
        self.logger.info("tour_operator_page_parsed", url=url, count=len(activities))
        return activities

    @staticmethod
    def _remove_duplicates(activities: List[RawActivity]) -> List[RawActivity]:
        """One record per title, ignoring case and whitespace.

        The first card keeps its position, but a later card with a price
        replaces an earlier one without.
        """
        by_title: Dict[str, RawActivity] = {}
        for activity in activities:
            key = re.sub(r"\s+", "", activity.title.lower())
            kept = by_title.get(key)
            if kept is None or (kept.price is None and activity.price is not None):
                by_title[key] = activity
        return list(by_title.values())

    def _to_activity(self, tour: Dict[str, Any], page_url: str) -> RawActivity:
        price = tour.get("price")
        return RawActivity(
            url=tour.get("url") or page_url,
            title=tour["title"],
            description=tour.get("description") or "",
            location=tour.get("location") or None,
            price=None if price in ("", None) else price,
            currency=tour.get("currency") or "USD",
            duration=tour.get("duration") or None,
            images=tour.get("images", [])[:MAX_IMAGES_PER_RECORD],
            highlights=tour.get("highlights", []),
            includes=tour.get("includes", []),
            excludes=tour.get("excludes", []),
            category="activity",
            metadata={"source": "tour_operator", "strategy": tour.get("strategy")},
        )

    # --- strategy 1: card containers ---

    def _extract_from_containers(self, soup: BeautifulSoup, page_url: str) -> List[Dict[str, Any]]:
        for selector in CONTAINER_SELECTORS:
            elements = soup.select(selector)
            if not elements:
                continue
            tours = [self._extract_from_element(el, page_url) for el in elements]
            tours = [tour for tour in tours if tour["title"]]
            if tours:
                self.logger.debug("container_selector_matched", selector=selector, count=len(tours))
                for tour in tours:
                    tour["strategy"] = "containers"
                return tours
        return []

    def _extract_from_element(self, element: Tag, page_url: str) -> Dict[str, Any]:
        tour: Dict[str, Any] = {"title": "", "description": "", "location": "", "duration": "", "price": ""}

        for selector in TITLE_SELECTORS:
            title = self._text(element, selector)
            if title and len(title) > 3 and not _DIGITS_ONLY.match(title):
                tour["title"] = title
                break

        href = element.get("href") if element.name == "a" else None
        if not href:
            link = element.select_one("a[href]")
            href = link.get("href") if link else None
        if href:
            tour["url"] = resolve_url(href, page_url)
            if not tour["title"]:
                tour["title"] = title_from_url(href)

        for selector in DESCRIPTION_SELECTORS:
            description = self._text(element, selector)
            if description and len(description) > 20:
                tour["description"] = description
                break

        for selector in PRICE_SELECTORS:
            node = element.select_one(selector)
            if node is None:
                continue
            price_text = clean_text(node.get_text(" ")) or node.get("data-price") or node.get("data-cost") or ""
            if re.search(r"\d", price_text):
                tour["price"] = price_text
                tour["currency"] = extract_currency(price_text)
                break

        full_text = clean_text(element.get_text(" "))
        if not tour["price"]:
            price_text = PriceNormalizer.extract_price_from_text(full_text)
            if price_text:
                tour["price"] = price_text
                tour["currency"] = "USD"

        for selector in DURATION_SELECTORS:
            duration = extract_duration(self._text(element, selector) or "")
            if duration:
                tour["duration"] = duration
                break
        if not tour["duration"]:
            tour["duration"] = extract_duration(full_text) or ""

        for selector in LOCATION_SELECTORS:
            location = self._text(element, selector)
            if location and len(location) > 2:
                tour["location"] = location
                break
        if not tour["location"]:
            tour["location"] = extract_location_from_text(f"{tour['title']} {tour['description']}")

        tour["images"] = self._collect_images(element, page_url)
        return tour

    def _collect_images(self, element: Tag, page_url: str) -> List[str]:
        images: List[str] = []

        def add(src: Optional[str]) -> None:
            if src and is_valid_tour_image(src):
                absolute = resolve_url(src, page_url)
                if absolute not in images:
                    images.append(absolute)

        for selector in IMAGE_SELECTORS:
            for img in element.select(selector):
                add(img.get("src") or img.get("data-src") or img.get("data-lazy-src") or img.get("data-original"))

        for styled in element.select('[style*="background-image"]'):
            match = _BACKGROUND_IMAGE_PATTERN.search(styled.get("style", ""))
            if match:
                add(match.group(1))

        return images[:MAX_IMAGES_PER_RECORD]

    # --- strategy 2: structured data and main content ---

    def _extract_from_page_structure(self, soup: BeautifulSoup, page_url: str) -> List[Dict[str, Any]]:
        tours: List[Dict[str, Any]] = []

        for script in soup.select('script[type="application/ld+json"]'):
            try:
                data = json.loads(script.string or "{}")
            except json.JSONDecodeError:
                self.logger.debug("invalid_json_ld", url=page_url)
                continue
            for item in data if isinstance(data, list) else [data]:
                if isinstance(item, dict) and item.get("@type") in STRUCTURED_DATA_TYPES:
                    tours.append(self._tour_from_json_ld(item, page_url))

        if tours:
            return tours

        main = soup.select_one('main, #main, .main-content, [role="main"]')
        if main is not None:
            title = self._text(main, "h1")
            if title:
                description = self._text(main, "p") or ""
                tours.append({
                    "title": title,
                    "description": description,
                    "location": extract_location_from_text(f"{title} {description}"),
                    "images": self._collect_images(main, page_url),
                    "strategy": "main_content",
                })
        return tours

    @staticmethod
    def _tour_from_json_ld(item: Dict[str, Any], page_url: str) -> Dict[str, Any]:
        offers = item.get("offers") or {}
        if isinstance(offers, list):
            offers = offers[0] if offers else {}
        location = item.get("location") or {}
        image = item.get("image")
        images = image if isinstance(image, list) else ([image] if image else [])
        return {
            "title": clean_text(item.get("name") or ""),
            "description": clean_text(item.get("description") or ""),
            "location": location.get("name", "") if isinstance(location, dict) else str(location),
            "price": offers.get("price") if isinstance(offers, dict) else None,
            "currency": (offers.get("priceCurrency") if isinstance(offers, dict) else None) or "USD",
            "images": [resolve_url(str(src), page_url) for src in images],
            "url": item.get("url") or page_url,
            "strategy": "json_ld",
        }

    # --- strategy 3: tour-looking links ---

    def _extract_from_links(self, soup: BeautifulSoup, page_url: str) -> List[Dict[str, Any]]:
        tours: List[Dict[str, Any]] = []
        processed = set()

        for link in soup.select(TOUR_LINK_SELECTOR):
            href = link.get("href")
            if not href or href in processed:
                continue
            processed.add(href)

            container = link.parent or link
            heading = container.select_one("h1, h2, h3, h4")
            title = clean_text(link.get_text(" ")) or (clean_text(heading.get_text(" ")) if heading else "")
            title = title or title_from_url(href)
            if len(title) < 3:
                continue

            container_text = clean_text(container.get_text(" "))
            price = PriceNormalizer.extract_price_from_text(container_text)
            images = []
            for img in container.select("img"):
                src = img.get("src") or img.get("data-src")
                if src and is_valid_tour_image(src):
                    images.append(resolve_url(src, page_url))

            tours.append({
                "title": title,
                "url": resolve_url(href, page_url),
                "price": price or "",
                "currency": "USD" if price else None,
                "duration": extract_duration(container_text) or "",
                "location": extract_location_from_text(container_text),
                "images": images,
                "strategy": "links",
            })
        return tours

    # --- strategy 4: grid children ---

    def _extract_from_grid(self, soup: BeautifulSoup, page_url: str) -> List[Dict[str, Any]]:
        for selector in GRID_SELECTORS:
            grid = soup.select_one(selector)
            if grid is None:
                continue
            items = [child for child in grid.find_all(recursive=False) if len(child.get_text(strip=True)) > 20]
            tours = [self._extract_from_element(item, page_url) for item in items]
            tours = [tour for tour in tours if tour["title"]]
            if tours:
                for tour in tours:
                    tour["strategy"] = "grid"
                return tours
        return []
