"""
Headless browser collector.

Renders pages in Chromium through Playwright so client side rendered
content is visible to the extraction pipeline. Optionally waits for
selectors and writes full page screenshots.
"""

import os
import time
import uuid
from typing import List, Optional, Tuple

from playwright.async_api import Browser, Error as PlaywrightError, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

import config
from collectors.base_collector import BaseCollector
from collectors.context import ProgressEvent
from collectors.types import (
    CollectorConfig,
    CollectorOptions,
    CollectorSpeed,
    CollectorStrategy,
    DynamicCollectorMetadata,
    PageResult,
)
from core.exceptions import ExtractionTimeoutError
from utils.retry_utils import with_browser_retry


class DynamicCollector(BaseCollector):
    """Collector for JavaScript rendered pages."""

    value_adds = ("JavaScript rendered content", "client side links", "screenshots")

    @classmethod
    def default_config(cls) -> CollectorConfig:
        return CollectorConfig(
            id="dynamic",
            name="JavaScript Renderer",
            strategy=CollectorStrategy.DYNAMIC,
            speed=CollectorSpeed.SLOW,
            description="Renders pages in a headless browser before extraction",
            max_concurrency=1,
            excluded_patterns=[r"\.(pdf|zip|jpe?g|png|gif|svg|mp4|mp3)(\?|$)"],
        )

    def __init__(self, config: Optional[CollectorConfig] = None, screenshot_dir: Optional[str] = None):
        super().__init__(config)
        self._screenshot_dir = screenshot_dir
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._metadata = DynamicCollectorMetadata()

    @property
    def screenshot_dir(self) -> str:
        return self._screenshot_dir or config.SCREENSHOT_DIR

    async def on_initialize(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=config.BROWSER_HEADLESS)

    async def on_cleanup(self) -> None:
        try:
            if self._browser is not None:
                await self._browser.close()
        finally:
            self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

    async def get_metadata(self) -> DynamicCollectorMetadata:
        return self._metadata

    def screenshot_path(self) -> str:
        """Collision free screenshot file name: <collector>-<timestamp ms>-<uuid>.png"""
        name = f"{self.id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.png"
        return os.path.join(self.screenshot_dir, name)

    async def collect_pages(self, urls: List[str], options: CollectorOptions) -> List[PageResult]:
        self._metadata = DynamicCollectorMetadata(wait_for_selectors=list(options.wait_for_selectors))
        pages = []
        # Pages render one at a time to bound browser memory
        for index, url in enumerate(urls, start=1):
            pages.append(await self.collect_page(url, options))
            await self._report(ProgressEvent(index, len(urls), f"Rendered {url}",
                                              collector_id=self.id, url=url, phase="collect"))
        return pages

    async def collect_page(self, url: str, options: CollectorOptions) -> PageResult:
        start = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - start) * 1000

        try:
            status, markup, screenshot = await self.render(url, options)
        except PlaywrightError as e:
            return PageResult.failed(url, str(e), "RENDER_ERROR", duration_ms=elapsed())

        if screenshot:
            self._metadata.screenshots.append(screenshot)
        if status is not None and status >= 400:
            return PageResult.failed(url, f"HTTP {status}", f"HTTP_{status}",
                                     status_code=status, duration_ms=elapsed())

        try:
            extracted = await self.context.pipeline.extract(markup, url)
        except ExtractionTimeoutError as e:
            return PageResult.failed(url, str(e), "EXTRACTION_TIMEOUT", status_code=status,
                                     duration_ms=elapsed())

        return self.build_page_result(url, markup, extracted, status_code=status, duration_ms=elapsed())

    async def render(self, url: str, options: CollectorOptions) -> Tuple[Optional[int], str, Optional[str]]:
        """
        Render a URL, retrying browser errors.

        Returns:
            (status code or None, rendered HTML, screenshot path or None)
        """
        retrying = with_browser_retry(max_attempts=self.config.max_retries + 1)(self._render_once)
        return await retrying(url, options)

    async def _render_once(self, url: str, options: CollectorOptions) -> Tuple[Optional[int], str, Optional[str]]:
        browser_context = await self._browser.new_context(
            user_agent=options.user_agent or config.COLLECTOR_USER_AGENT,
            extra_http_headers=dict(options.headers),
        )
        try:
            page = await browser_context.new_page()
            timeout_ms = self.config.page_timeout * 1000
            response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            for selector in options.wait_for_selectors:
                try:
                    await page.wait_for_selector(selector, timeout=timeout_ms)
                except PlaywrightTimeoutError:
                    self.context.tracer.breadcrumb('selector_timeout', 'Selector did not appear',
                                                  collector_id=self.id, url=url, selector=selector)
            markup = await page.content()

            screenshot = None
            if options.screenshot:
                os.makedirs(self.screenshot_dir, exist_ok=True)
                screenshot = self.screenshot_path()
                await page.screenshot(path=screenshot, full_page=True)

            return (response.status if response else None), markup, screenshot
        finally:
            await browser_context.close()
