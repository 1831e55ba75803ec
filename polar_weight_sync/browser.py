from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional
from urllib.parse import urlparse

import structlog
from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import Settings, get_settings
from .cookies import CookieStore, browser_cookies
from .errors import TransientNetworkError
from .site_selectors import BLOCKED_RESOURCE_TYPES
from .utils import retry_backoff, timed

logger = structlog.get_logger()

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1280,800",
    "--disable-extensions",
    "--disable-component-extensions-with-background-pages",
    "--disable-default-apps",
    "--mute-audio",
]
VIEWPORT = {"width": 1280, "height": 800}
# pages that keep polling never reach zero connections
NETWORK_IDLE_TIMEOUT_MS = 5_000


async def launch_browser(pw: Playwright, settings: Settings) -> Browser:
    @retry_backoff(max_attempts=max(1, settings.BROWSER_LAUNCH_RETRIES), base=1.0, retry_on=(PlaywrightError,))
    async def _launch() -> Browser:
        return await pw.chromium.launch(headless=settings.HEADLESS, args=CHROMIUM_ARGS)

    with timed("browser_launch", headless=settings.HEADLESS):
        return await _launch()


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


@asynccontextmanager
async def open_page(
    settings: Optional[Settings] = None,
    store: Optional[CookieStore] = None,
) -> AsyncIterator[Page]:
    """One browser, one context, one page for the whole run; restored cookies included."""
    settings = settings or get_settings()
    store = store or CookieStore(settings.POLAR_COOKIES_FILE)

    async with async_playwright() as pw:
        browser = await launch_browser(pw, settings)
        try:
            context = await browser.new_context(viewport=VIEWPORT, ignore_https_errors=True)
            cookies = store.load()
            if cookies:
                usable = browser_cookies(cookies)
                try:
                    await context.add_cookies(usable)  # type: ignore[arg-type]
                except PlaywrightError as e:
                    logger.warning("cookies_restore_failed", error=str(e))
                else:
                    logger.info("cookies_restored", count=len(usable))
            page = await context.new_page()
            await page.route("**/*", _block_heavy_resources)
            yield page
        finally:
            await browser.close()
            logger.info("browser_closed")


async def first_match(page: Any, selectors: Iterable[str]) -> Any:
    """First element found by trying each selector in order, or None."""
    for sel in selectors:
        handle = await page.query_selector(sel)
        if handle is not None:
            logger.debug("selector_matched", selector=sel)
            return handle
    return None


async def wait_optional(page: Any, selector: str, timeout_ms: int) -> bool:
    """wait_for_selector that only reports; callers re-check with a direct query."""
    try:
        await page.wait_for_selector(selector, timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        logger.info("selector_wait_timeout", selector=selector, timeout_ms=timeout_ms)
        return False


async def goto(page: Any, url: str, timeout_ms: int) -> None:
    """Navigate and wait for load, then give background requests a short, tolerated chance to go quiet."""
    try:
        await page.goto(url, wait_until="load", timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        raise TransientNetworkError(f"navigation to {url} timed out after {timeout_ms} ms") from e
    except PlaywrightError as e:
        raise TransientNetworkError(f"navigation to {url} failed: {e}") from e
    await settle_load_state(page, "networkidle", NETWORK_IDLE_TIMEOUT_MS)


async def settle_load_state(page: Any, state: str, timeout_ms: int) -> bool:
    try:
        await page.wait_for_load_state(state, timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        logger.info("load_state_timeout", state=state, timeout_ms=timeout_ms)
        return False


async def wait_for_navigation(page: Any, timeout_ms: int) -> bool:
    try:
        await page.wait_for_event("load", timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        logger.info("navigation_wait_timeout", timeout_ms=timeout_ms)
        return False


def auth_host(auth_url: str) -> str:
    return urlparse(auth_url).hostname or auth_url


def is_auth_url(url: Optional[str], auth_url: str) -> bool:
    return auth_host(auth_url) in (url or "")


def on_auth_domain(page: Any, auth_url: str) -> bool:
    return is_auth_url(page.url, auth_url)
