"""Text normalization utilities for price, currency, duration and location parsing."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple, Union
from urllib.parse import urljoin, urlparse, parse_qs, urlencode, urlunparse

# First number in a string, thousand separators allowed: "1,234.50", "45", "1,299"
_NUMBER_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")

# "from USD $1,234.00", "$ 45", "1,299"
PRICE_IN_TEXT_PATTERN = re.compile(r"(?:from\s*)?(?:USD\s*)?\$\s*([\d,]+(?:\.\d{2})?)", re.IGNORECASE)

DURATION_PATTERN = re.compile(
    r"(\d+)\s*(days?|nights?|hours?|weeks?)(?:\s*/\s*\d+\s*nights?)?", re.IGNORECASE
)

_LOCATION_PATTERNS = [
    re.compile(r"(?:in|to|from)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"),
    re.compile(r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+(?:tour|trip|package|adventure)", re.IGNORECASE),
]

_CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
}

_CURRENCY_CODE_PATTERN = re.compile(r"\b([A-Z]{3})\b")

# "From $45", "€32", "US$89", "EUR 1,200.00"
_PRICE_WITH_CURRENCY_PATTERN = re.compile(
    r"(?:from\s+)?(US\$|[€$£¥₹]|USD|EUR|GBP|JPY|INR)\s*(\d+(?:,\d{3})*(?:\.\d{1,2})?)", re.IGNORECASE
)

_RATING_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")

# Substrings marking an image as decoration rather than a tour photo
INVALID_IMAGE_PATTERNS = (
    "placeholder", "icon", "logo", "banner", "sprite",
    "pixel", "tracking", "1x1", "blank", "loading",
    "avatar", "profile", "user", ".svg",
)

DEFAULT_LOCATION = "Various Locations"


class PriceNormalizer:
    """Price parsing utilities.

    Prices arrive either as numbers or as free text with currency symbols.
    "Unknown" is always None; zero is a real price and is kept as zero.
    """

    @staticmethod
    def parse_price(raw: Union[int, float, Decimal, str, None]) -> Optional[Decimal]:
        """Parse a raw price into a Decimal.

        Handles:
        - 45 / 45.5 -> Decimal
        - "$45" -> 45
        - "From USD 1,234.50 per person" -> 1234.50

        Args:
            raw: Numeric price or free-text price

        Returns:
            Decimal price, or None when no number can be extracted
        """
        if raw is None or isinstance(raw, bool):
            return None

        if isinstance(raw, Decimal):
            return raw
        if isinstance(raw, (int, float)):
            try:
                return Decimal(str(raw))
            except InvalidOperation:
                return None

        match = _NUMBER_PATTERN.search(str(raw))
        if not match:
            return None

        try:
            return Decimal(match.group(0).replace(",", ""))
        except InvalidOperation:
            return None

    @staticmethod
    def extract_price_from_text(text: str) -> Optional[str]:
        """Find a dollar price like "from $1,299" inside a block of text.

        Returns:
            The matched price text, or None
        """
        if not text:
            return None
        match = PRICE_IN_TEXT_PATTERN.search(text)
        return match.group(0).strip() if match else None

    @staticmethod
    def parse_price_with_currency(text: Optional[str]) -> Tuple[Optional[Decimal], Optional[str]]:
        """Split a listing price label into amount and ISO currency.

        "From $45" -> (45, "USD"), "€1,200.50" -> (1200.50, "EUR").
        Returns (None, None) when the label carries no recognizable price.
        """
        if not text:
            return None, None
        match = _PRICE_WITH_CURRENCY_PATTERN.search(text)
        if not match:
            return None, None

        symbol = match.group(1)
        if symbol.upper() == "US$":
            currency = "USD"
        else:
            currency = _CURRENCY_SYMBOLS.get(symbol, symbol.upper())

        try:
            amount = Decimal(match.group(2).replace(",", ""))
        except InvalidOperation:
            return None, None
        return amount, currency


def parse_rating(text: Optional[str], scale: int = 5) -> Optional[float]:
    """Parse a rating label onto a 5-point scale.

    Args:
        text: "4.5 stars", "4.5/5", "Scored 8.6"
        scale: Native scale of the site (5 or 10)
    """
    if not text:
        return None
    match = _RATING_PATTERN.search(text)
    if not match:
        return None
    value = float(match.group(1))
    if scale == 10 or value > 5:
        value = value / 2
    return round(value, 2)


def extract_currency(price_text: str, default: str = "USD") -> str:
    """Guess an ISO currency code from a price string."""
    if not price_text:
        return default
    for symbol, code in _CURRENCY_SYMBOLS.items():
        if symbol in price_text:
            return code
    match = _CURRENCY_CODE_PATTERN.search(price_text)
    if match:
        return match.group(1)
    return default


def extract_duration(text: str) -> Optional[str]:
    """Extract a duration like "5 days" or "4 days / 3 nights" from text."""
    if not text:
        return None
    match = DURATION_PATTERN.search(text)
    return match.group(0).strip() if match else None


def extract_location_from_text(text: str) -> str:
    """Best-effort location from phrases like "tour in Cusco" or "Lima City tour"."""
    if text:
        for pattern in _LOCATION_PATTERNS:
            match = pattern.search(text)
            if match and match.group(1):
                return match.group(1)
    return DEFAULT_LOCATION


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace runs into single spaces."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def title_from_url(url: str) -> str:
    """Turn the last URL path segment into a title ("/tours/inca-trail" -> "Inca Trail")."""
    if not url:
        return ""
    match = re.search(r"/([^/?#]+?)(?:\.html?)?/?(?:[?#].*)?$", url, re.IGNORECASE)
    if not match:
        return ""
    slug = re.sub(r"[-_]+", " ", match.group(1)).strip()
    return slug.title()


def is_valid_tour_image(src: str) -> bool:
    lowered = src.lower()
    return not any(pattern in lowered for pattern in INVALID_IMAGE_PATTERNS)


def resolve_url(src: str, base_url: str) -> str:
    """Resolve protocol-relative and relative URLs against the page URL."""
    if src.startswith(("http://", "https://")):
        return src
    if src.startswith("//"):
        return "https:" + src
    return urljoin(base_url, src)


def normalize_url(url: str) -> str:
    """Normalize a URL by removing tracking parameters.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    tracking_params = {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "ref",
        "fbclid",
        "gclid",
        "mc_cid",
        "mc_eid",
    }

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)
    filtered_params = {k: v for k, v in query_params.items() if k not in tracking_params}
    new_query = urlencode(filtered_params, doseq=True)

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, new_query, "")
    )
