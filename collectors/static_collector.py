"""
Static HTML collector.

Fetches pages over plain HTTP with aiohttp, retrying transient network
errors with exponential backoff, and runs the markup through the
context's extraction pipeline. Fast, but sees only server rendered HTML.
"""

import asyncio
import time
from typing import List, Optional, Tuple

import aiohttp

import config
from collectors.base_collector import BaseCollector
from collectors.context import ProgressEvent
from collectors.types import (
    CollectorConfig,
    CollectorOptions,
    CollectorSpeed,
    CollectorStrategy,
    PageResult,
    StaticCollectorMetadata,
)
from core.exceptions import ExtractionTimeoutError
from utils.retry_utils import HTTP_EXCEPTIONS, NETWORK_EXCEPTIONS, with_http_retry


class StaticCollector(BaseCollector):
    """Collector for server rendered pages."""

    value_adds = ("server rendered text", "metadata", "links", "contact details")

    @classmethod
    def default_config(cls) -> CollectorConfig:
        return CollectorConfig(
            id="static",
            name="Static HTML Collector",
            strategy=CollectorStrategy.STATIC,
            speed=CollectorSpeed.FAST,
            description="Fetches server rendered HTML over HTTP",
            excluded_patterns=[r"\.(pdf|zip|jpe?g|png|gif|svg|mp4|mp3)(\?|$)"],
        )

    def __init__(self, config: Optional[CollectorConfig] = None):
        super().__init__(config)
        self._session: Optional[aiohttp.ClientSession] = None
        self._metadata = StaticCollectorMetadata()

    async def on_initialize(self) -> None:
        timeout = aiohttp.ClientTimeout(total=self.config.page_timeout)
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            headers={"User-Agent": config.COLLECTOR_USER_AGENT},
        )

    async def on_cleanup(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get_metadata(self) -> StaticCollectorMetadata:
        return self._metadata

    async def collect_pages(self, urls: List[str], options: CollectorOptions) -> List[PageResult]:
        self._metadata = StaticCollectorMetadata(user_agent=options.user_agent or config.COLLECTOR_USER_AGENT)
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        completed = 0

        async def collect(url: str) -> PageResult:
            nonlocal completed
            async with semaphore:
                page = await self.collect_page(url, options)
            completed += 1
            await self._report(ProgressEvent(completed, len(urls), f"Collected {url}",
                                              collector_id=self.id, url=url, phase="collect"))
            return page

        return list(await asyncio.gather(*(collect(url) for url in urls)))

    async def collect_page(self, url: str, options: CollectorOptions) -> PageResult:
        start = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - start) * 1000

        try:
            status, final_url, markup = await self.fetch(url, options)
        except HTTP_EXCEPTIONS + NETWORK_EXCEPTIONS + (aiohttp.ClientError,) as e:
            return PageResult.failed(url, str(e) or type(e).__name__, "FETCH_ERROR", duration_ms=elapsed())

        key = str(status)
        self._metadata.status_codes[key] = self._metadata.status_codes.get(key, 0) + 1
        if final_url != url:
            self._metadata.redirects += 1

        if status >= 400:
            return PageResult.failed(url, f"HTTP {status}", f"HTTP_{status}",
                                     status_code=status, duration_ms=elapsed())

        try:
            extracted = await self.context.pipeline.extract(markup, url)
        except ExtractionTimeoutError as e:
            return PageResult.failed(url, str(e), "EXTRACTION_TIMEOUT", status_code=status,
                                     duration_ms=elapsed())

        return self.build_page_result(url, markup, extracted, status_code=status, duration_ms=elapsed())

    async def fetch(self, url: str, options: CollectorOptions) -> Tuple[int, str, str]:
        """
        GET a URL with retries on transient network errors.

        Returns:
            (status code, final URL after redirects, body text)
        """
        retrying = with_http_retry(max_attempts=self.config.max_retries + 1)(self._fetch_once)
        return await retrying(url, options)

    async def _fetch_once(self, url: str, options: CollectorOptions) -> Tuple[int, str, str]:
        headers = dict(options.headers)
        if options.user_agent:
            headers["User-Agent"] = options.user_agent
        async with self._session.get(url, headers=headers, allow_redirects=True) as response:
            markup = await response.text(errors="replace")
            return response.status, str(response.url), markup
