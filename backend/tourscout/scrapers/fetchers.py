"""Page fetchers used by the site scrapers.

A fetcher turns a URL plus a user agent into HTML. Scrapers do not care
whether the page came from a plain HTTP GET or a rendered browser tab.
"""

from typing import Optional, Protocol

import httpx
import structlog

from tourscout.scrapers.utils.browser_manager import BrowserManager
from tourscout.scrapers.utils.retry import http_retry, browser_retry

logger = structlog.get_logger(__name__)


DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}


class PageFetcher(Protocol):
    """Anything that can fetch a page's HTML."""

    async def fetch(self, url: str, user_agent: str, wait_selector: Optional[str] = None) -> str:
        ...

    async def close(self) -> None:
        ...


class HttpPageFetcher:
    """Fetches pages with httpx.

    The underlying AsyncClient (and its connection pool) is created on first
    use and released by ``close()``, which is idempotent.
    """

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize HTTP fetcher.

        Args:
            timeout: Per-request timeout in seconds
            transport: Optional custom transport (used by tests)
        """
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
                transport=self._transport,
            )
        return self._client

    @http_retry
    async def fetch(self, url: str, user_agent: str, wait_selector: Optional[str] = None) -> str:
        """GET a page and return its body.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses (after retries for 429/5xx)
            httpx.TransportError: On network failures (after retries)
        """
        client = self._get_client()
        response = await client.get(url, headers={"User-Agent": user_agent})

        if response.status_code == 429:
            logger.warning("page_rate_limited", url=url)

        response.raise_for_status()
        logger.debug("page_fetched", url=url, status=response.status_code, length=len(response.text))
        return response.text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class BrowserPageFetcher:
    """Fetches fully rendered pages through a headless Chromium."""

    def __init__(
        self,
        headless: bool = True,
        timeout: float = 30.0,
        browser_manager: Optional[BrowserManager] = None,
    ):
        self._timeout_ms = int(timeout * 1000)
        self._manager = browser_manager or BrowserManager(headless=headless)

    @browser_retry
    async def fetch(self, url: str, user_agent: str, wait_selector: Optional[str] = None) -> str:
        """Navigate to a URL and return the rendered HTML.

        Args:
            url: Page URL
            user_agent: Identity for the browser context
            wait_selector: Optional CSS selector to wait for before reading the DOM
        """
        context = await self._manager.get_context(user_agent)
        page = await context.new_page()
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self._timeout_ms)
            if response is not None and response.status >= 400:
                raise httpx.HTTPStatusError(
                    f"HTTP {response.status}: Failed to load {url}",
                    request=httpx.Request("GET", url),
                    response=httpx.Response(response.status),
                )

            if wait_selector:
                try:
                    await page.wait_for_selector(wait_selector, timeout=min(self._timeout_ms, 10000))
                except Exception as e:
                    # Listing may still be in the DOM under other markup
                    logger.debug("wait_selector_timeout", url=url, selector=wait_selector, error=str(e))

            return await page.content()
        finally:
            await page.close()

    async def close(self) -> None:
        await self._manager.stop()
