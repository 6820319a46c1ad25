"""Retry utilities with exponential backoff for page fetches."""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    retry_if_exception_type,
    before_sleep_log,
)
import httpx
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError


logger = logging.getLogger(__name__)

# Status codes worth another attempt: throttling, server errors, CDN gateway errors
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 520, 521, 522, 524})


def is_retryable_http_error(exc: BaseException) -> bool:
    """Return True for transport failures and retryable HTTP statuses."""
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False


# Reusable retry decorator for HTTP requests (httpx)
http_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception(is_retryable_http_error),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


# Reusable retry decorator for Playwright page loads
browser_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type((PlaywrightError, PlaywrightTimeoutError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
