"""
Shared test fixtures.

Provides a scriptable collector that returns canned pages, and ready made
tracers and collector contexts.
"""
import asyncio
from typing import Dict, List, Optional

import pytest

from collectors.base_collector import BaseCollector
from collectors.context import CollectorContext
from collectors.types import CollectorConfig, CollectorOptions, CollectorStrategy, PageResult
from utils.logging import Tracer


def make_page(url: str, **fields) -> PageResult:
    """Successful PageResult for url with the given fields."""
    return PageResult(url=url, success=True, **fields)


class FakeCollector(BaseCollector):
    """Collector returning canned pages; unknown URLs get a bare successful page."""

    def __init__(self, collector_id: str = 'fake', strategy: CollectorStrategy = CollectorStrategy.STATIC,
                 pages: Optional[Dict[str, PageResult]] = None, **config_fields):
        super().__init__(CollectorConfig(
            id=collector_id,
            name=f"{collector_id.title()} Collector",
            strategy=strategy,
            **config_fields,
        ))
        self.pages = pages or {}
        self.calls: List[List[str]] = []
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[BaseException] = None
        self.initialize_count = 0
        self.cleanup_count = 0

    async def on_initialize(self) -> None:
        self.initialize_count += 1

    async def on_cleanup(self) -> None:
        self.cleanup_count += 1

    async def collect_pages(self, urls: List[str], options: CollectorOptions) -> List[PageResult]:
        self.calls.append(list(urls))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [self.pages.get(url) or make_page(url, title=f"Page {url}") for url in urls]


@pytest.fixture
def tracer():
    return Tracer("tests", session_id="test-session")


@pytest.fixture
def collector_context(tracer):
    return CollectorContext(session_id="test-session", domain="a.test", tracer=tracer)


@pytest.fixture
def fake_collector():
    return FakeCollector()


@pytest.fixture
def collector_factory():
    return FakeCollector


@pytest.fixture
def page_factory():
    return make_page
