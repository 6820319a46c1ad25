"""Scraper utilities for rate limiting, user-agent rotation, retries and text normalization."""

from .rate_limiter import RateLimiter, SiteRateLimiters
from .user_agents import (
    UserAgentRotator,
    UserAgentInfo,
    get_random_user_agent,
    USER_AGENTS,
    DESKTOP_USER_AGENTS,
    MOBILE_USER_AGENTS,
)
from .normalizer import (
    PriceNormalizer,
    extract_currency,
    extract_duration,
    extract_location_from_text,
    parse_rating,
    clean_text,
    title_from_url,
    is_valid_tour_image,
    resolve_url,
    normalize_url,
)
from .retry import http_retry, browser_retry


__all__ = [
    # Rate limiting
    "RateLimiter",
    "SiteRateLimiters",
    # User agents
    "UserAgentRotator",
    "UserAgentInfo",
    "get_random_user_agent",
    "USER_AGENTS",
    "DESKTOP_USER_AGENTS",
    "MOBILE_USER_AGENTS",
    # Normalization
    "PriceNormalizer",
    "extract_currency",
    "extract_duration",
    "extract_location_from_text",
    "parse_rating",
    "clean_text",
    "title_from_url",
    "is_valid_tour_image",
    "resolve_url",
    "normalize_url",
    # Retry decorators
    "http_retry",
    "browser_retry",
]
