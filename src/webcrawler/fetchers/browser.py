"""
Headless-browser fetch strategy using Playwright.

Each fetch runs in its own browser context, so cookies, storage and
cache never leak between URLs. The browser process itself is launched
once in open() and shared by all fetches of the session.
"""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from webcrawler.config import CrawlConfig
from webcrawler.constants import DESKTOP_VIEWPORT_HEIGHT, DESKTOP_VIEWPORT_WIDTH
from webcrawler.exceptions import FetchError, FetchErrorKind
from webcrawler.fetchers.base import FetchStrategy
from webcrawler.models import AuthContext, Document

logger = logging.getLogger(__name__)

CONNECTION_REFUSED_MARKERS = ("ERR_CONNECTION_REFUSED", "NS_ERROR_CONNECTION_REFUSED", "Connection refused")


def screenshot_filename(title: str, timestamp_ms: Optional[int] = None) -> str:
    """<epoch-ms>-<title with non-alphanumerics replaced by _, lowercased>.png"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    safe_title = re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE).lower()
    return f"{timestamp_ms}-{safe_title}.png"


class HeadlessBrowserStrategy(FetchStrategy):
    """Renders pages in a headless browser and returns the final DOM.

    Navigation waits for network idle (bounded by timeout_ms), then a
    fixed settle period lets deferred rendering finish. A full-page
    screenshot is written to config.screenshot_dir for every successful
    fetch.
    """

    name = "browser"

    def __init__(self, config: CrawlConfig):
        super().__init__(config)
        self._playwright = None
        self._browser = None
        self._launch_lock = asyncio.Lock()
        self.screenshots = []

    async def open(self) -> None:
        async with self._launch_lock:
            if self._browser is not None:
                return

            logger.info(f"Launching {self.config.browser_type} browser (headless={self.config.headless})")
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, self.config.browser_type)

            launch_options = {"headless": self.config.headless}
            if self.config.proxy:
                launch_options["proxy"] = {"server": self.config.proxy}

            self._browser = await launcher.launch(**launch_options)
            Path(self.config.screenshot_dir).mkdir(parents=True, exist_ok=True)

    async def close(self) -> None:
        if self._browser:
            logger.info("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def fetch(self, url: str, auth: AuthContext) -> Document:
        if self._browser is None:
            await self.open()

        context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            viewport={"width": DESKTOP_VIEWPORT_WIDTH, "height": DESKTOP_VIEWPORT_HEIGHT},
            extra_http_headers=auth.request_headers(),
            java_script_enabled=True,
        )

        try:
            page = await context.new_page()

            try:
                response = await page.goto(
                    url,
                    wait_until="networkidle",
                    timeout=self.config.timeout_ms,
                )
            except PlaywrightTimeoutError as e:
                raise FetchError(
                    FetchErrorKind.TIMEOUT,
                    f"Navigation timeout after {self.config.timeout_ms}ms: {url}",
                    url=url,
                ) from e
            except PlaywrightError as e:
                kind = FetchErrorKind.OTHER
                if any(marker in str(e) for marker in CONNECTION_REFUSED_MARKERS):
                    kind = FetchErrorKind.CONNECTION_REFUSED
                raise FetchError(kind, f"Navigation failed for {url}: {e}", url=url) from e

            if response is None:
                raise FetchError(FetchErrorKind.OTHER, f"No response for {url}", url=url)
            if response.status >= 400:
                raise FetchError.http_error(url, response.status)

            # Deferred rendering
            await page.wait_for_timeout(self.config.settle_ms)

            html = await page.content()
            await self._capture_screenshot(page, await page.title())

            logger.debug(f"Rendered {url} (status={response.status})")
            return Document(
                url=page.url,
                body=html,
                status_code=response.status,
                headers=dict(response.headers),
            )
        finally:
            # Runs on success, error and cancellation alike
            await context.close()

    async def _capture_screenshot(self, page, title: str) -> Optional[Path]:
        path = Path(self.config.screenshot_dir) / screenshot_filename(title)
        try:
            await page.screenshot(path=str(path), full_page=True)
        except (PlaywrightError, OSError) as e:
            logger.warning(f"Screenshot failed for {page.url}: {e}")
            return None

        self.screenshots.append(path)
        return path
