"""
Tests for the headless browser collector. Playwright is replaced with mocks.
"""

import os
import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from collectors.dynamic_collector import DynamicCollector
from collectors.types import CollectorOptions, DynamicCollectorMetadata

RENDERED = """
<html>
<head><title>Rendered App</title></head>
<body><div id="__next"><main><p>Content that only exists after client side rendering has finished.</p></main></div>
<script id="__NEXT_DATA__">{}</script></body>
</html>
"""


def mock_browser(status=200, markup=RENDERED):
    page = MagicMock()
    page.goto = AsyncMock(return_value=MagicMock(status=status))
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=markup)
    page.screenshot = AsyncMock()

    browser_context = MagicMock()
    browser_context.new_page = AsyncMock(return_value=page)
    browser_context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=browser_context)
    browser.close = AsyncMock()
    return browser, browser_context, page


async def start_collector(context, browser, **kwargs):
    """DynamicCollector initialized against a mocked Playwright."""
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()
    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)

    collector = DynamicCollector(**kwargs)
    with patch("collectors.dynamic_collector.async_playwright", return_value=starter):
        await collector.initialize(context)
    return collector, playwright


def test_screenshot_names_are_unique(tmp_path):
    collector = DynamicCollector(screenshot_dir=str(tmp_path))

    first = collector.screenshot_path()
    second = collector.screenshot_path()

    assert first != second
    assert os.path.dirname(first) == str(tmp_path)
    assert re.fullmatch(r"dynamic-\d+-[0-9a-f]{8}\.png", os.path.basename(first))


@pytest.mark.asyncio
async def test_initialize_and_cleanup_manage_browser(collector_context):
    browser, _, _ = mock_browser()
    collector, playwright = await start_collector(collector_context, browser)

    playwright.chromium.launch.assert_awaited_once()
    await collector.cleanup()
    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_renders_pages_with_screenshots(collector_context, tmp_path):
    browser, browser_context, page = mock_browser()
    collector, _ = await start_collector(collector_context, browser, screenshot_dir=str(tmp_path / "shots"))

    options = CollectorOptions(screenshot=True, wait_for_selectors=["#__next"])
    result = await collector.execute(["https://app.test/"], options)

    rendered = result.pages[0]
    assert rendered.success
    assert rendered.title == "Rendered App"
    assert "Next.js" in rendered.technologies
    page.wait_for_selector.assert_awaited_once()
    browser_context.close.assert_awaited_once()

    metadata = result.metadata
    assert isinstance(metadata, DynamicCollectorMetadata)
    assert metadata.wait_for_selectors == ["#__next"]
    assert len(metadata.screenshots) == 1
    assert os.path.isdir(tmp_path / "shots")


@pytest.mark.asyncio
async def test_selector_timeout_is_not_fatal(collector_context, tracer):
    browser, _, page = mock_browser()
    page.wait_for_selector.side_effect = PlaywrightTimeoutError("waiting for selector")
    collector, _ = await start_collector(collector_context, browser)

    result = await collector.execute(["https://app.test/"], CollectorOptions(wait_for_selectors=[".late"]))

    assert result.pages[0].success
    assert "selector_timeout" in [crumb["category"] for crumb in tracer.breadcrumbs]


@pytest.mark.asyncio
async def test_render_errors_become_failed_pages(collector_context):
    collector, _ = await start_collector(collector_context, mock_browser()[0])

    with patch.object(collector, 'render', AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))):
        result = await collector.execute(["https://app.test/"])

    assert not result.pages[0].success
    assert result.pages[0].error_code == "RENDER_ERROR"
    assert not result.success


@pytest.mark.asyncio
async def test_http_error_status(collector_context):
    collector, _ = await start_collector(collector_context, mock_browser(status=503)[0])

    result = await collector.execute(["https://app.test/"])

    assert result.pages[0].error_code == "HTTP_503"
    assert result.pages[0].status_code == 503
