"""Playwright browser lifecycle manager with anti-detection.

Owns one Chromium instance and hands out browser contexts keyed by user
agent, with stealth configuration and heavy-resource blocking.
"""

import asyncio
from typing import Dict, Optional

import structlog
from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

logger = structlog.get_logger()


class BrowserManager:
    """Manages a Playwright browser with anti-detection features.

    Contexts are created per user agent so that the identity chosen by the
    rotator is the one the site sees. ``stop()`` may be called any number of
    times.
    """

    def __init__(
        self,
        headless: bool = True,
        block_resources: bool = True,
        locale: str = "en-US",
        max_contexts: int = 4,
    ):
        self._headless = headless
        self._block_resources = block_resources
        self._locale = locale
        self._max_contexts = max_contexts
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._contexts: Dict[str, BrowserContext] = {}

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        """Launch the browser. Safe to call repeatedly."""
        async with self._lock:
            if self._browser:
                return
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )
            logger.info("browser_started", headless=self._headless)

    async def stop(self) -> None:
        """Close all contexts and the browser."""
        async with self._lock:
            for name, ctx in list(self._contexts.items()):
                try:
                    await ctx.close()
                except Exception as e:
                    logger.warning("browser_context_close_failed", name=name[:40], error=str(e))
            self._contexts.clear()

            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
                logger.info("browser_stopped")

    async def get_context(self, user_agent: str) -> BrowserContext:
        """Get or create the browser context for a user agent."""
        if user_agent in self._contexts:
            return self._contexts[user_agent]

        if not self._browser:
            await self.start()

        # Keep the pool bounded, oldest context goes first
        if len(self._contexts) >= self._max_contexts:
            oldest = next(iter(self._contexts))
            await self.close_context(oldest)

        context = await self._browser.new_context(
            user_agent=user_agent,
            viewport={"width": 1920, "height": 1080},
            locale=self._locale,
            java_script_enabled=True,
            bypass_csp=True,
        )

        await context.add_init_script(STEALTH_JS)

        if self._block_resources:
            await context.route(
                "**/*.{png,jpg,jpeg,gif,webp,svg,woff,woff2,ttf,eot,mp4}",
                lambda route: route.abort(),
            )

        self._contexts[user_agent] = context
        logger.info("browser_context_created", contexts=len(self._contexts))
        return context

    async def close_context(self, user_agent: str) -> None:
        ctx = self._contexts.pop(user_agent, None)
        if ctx:
            await ctx.close()


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
"""
