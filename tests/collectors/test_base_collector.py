"""
Tests for the collector contract implemented by BaseCollector.
"""

import asyncio

import pytest

from collectors.types import CollectorOptions, CollectorSpeed, CollectorStrategy, PageResult
from core.exceptions import AlreadyBusyError, CollectionError, NotInitializedError, ValidationError
from extraction.models import (
    EmailEntry,
    ExtractedContact,
    ExtractedContent,
    ExtractedData,
    ExtractedSocial,
    FormField,
    FormRef,
    ImageRef,
    LinkRef,
    SocialProfile,
)


@pytest.mark.asyncio
async def test_execute_requires_initialize(fake_collector):
    with pytest.raises(NotInitializedError):
        await fake_collector.execute(["https://a.test/"])
    assert fake_collector.calls == []


@pytest.mark.asyncio
async def test_initialize_is_idempotent(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)
    await fake_collector.initialize(collector_context)

    assert fake_collector.initialize_count == 1
    assert fake_collector.is_initialized
    assert fake_collector.get_status().ready


@pytest.mark.asyncio
async def test_concurrent_execute_fails_without_starting_work(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)
    fake_collector.gate = asyncio.Event()

    first = asyncio.create_task(fake_collector.execute(["https://a.test/"]))
    while not fake_collector.calls:
        await asyncio.sleep(0)
    assert fake_collector.get_status().busy

    with pytest.raises(AlreadyBusyError):
        await fake_collector.execute(["https://a.test/other"])
    assert fake_collector.calls == [["https://a.test/"]]

    fake_collector.gate.set()
    result = await first
    assert result.success
    assert not fake_collector.get_status().busy


@pytest.mark.asyncio
async def test_execute_returns_one_page_per_valid_url(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)

    result = await fake_collector.execute([
        "https://a.test/",
        "https://a.test/#section",
        "not a url",
        "https://a.test/about",
    ])

    assert [page.url for page in result.pages] == ["https://a.test/", "https://a.test/about"]
    assert result.collector_id == "fake"
    assert result.strategy == "static"
    assert result.stats.pages_attempted == 2
    assert result.stats.pages_succeeded == 2
    assert result.stats.success_rate == 100
    assert result.errors == ()


@pytest.mark.asyncio
async def test_missing_pages_are_filled_as_failures(collector_context, collector_factory):
    class DroppingCollector(collector_factory):
        async def collect_pages(self, urls, options):
            return [PageResult(url=urls[0], success=True, title="Only")]

    collector = DroppingCollector()
    await collector.initialize(collector_context)

    result = await collector.execute(["https://a.test/1", "https://a.test/2"])

    assert [page.success for page in result.pages] == [True, False]
    assert result.pages[1].error_code == "MISSING_RESULT"
    assert result.stats.pages_failed == 1
    assert result.errors[0].url == "https://a.test/2"


@pytest.mark.asyncio
async def test_no_valid_urls_raises_validation_error(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)

    with pytest.raises(ValidationError):
        await fake_collector.execute(["ftp://a.test/file", ""])
    assert not fake_collector.get_status().busy


@pytest.mark.asyncio
async def test_max_pages_limits_urls(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)

    result = await fake_collector.execute(
        ["https://a.test/1", "https://a.test/2", "https://a.test/3"],
        CollectorOptions(max_pages=2),
    )
    assert len(result.pages) == 2


@pytest.mark.asyncio
async def test_strategy_failure_is_wrapped(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)
    fake_collector.error = RuntimeError("socket exploded")

    with pytest.raises(CollectionError) as exc_info:
        await fake_collector.execute(["https://a.test/"])

    assert "socket exploded" in str(exc_info.value)
    assert not fake_collector.get_status().busy


@pytest.mark.asyncio
async def test_timeout_raises_collection_error(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)
    fake_collector.gate = asyncio.Event()

    with pytest.raises(CollectionError) as exc_info:
        await fake_collector.execute(["https://a.test/"], CollectorOptions(timeout=0.05))

    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_cleanup_resets_state(fake_collector, collector_context):
    await fake_collector.initialize(collector_context)
    await fake_collector.cleanup()

    assert fake_collector.cleanup_count == 1
    assert not fake_collector.is_initialized
    assert fake_collector.context is None


@pytest.mark.asyncio
async def test_discovered_links_are_classified(collector_context, collector_factory, page_factory):
    collector = collector_factory(pages={
        "https://a.test/": page_factory("https://a.test/", discovered_links=(
            "https://a.test/about",
            "https://a.test/blog/2024/post",
            "https://other.test/",
            "https://a.test/logo.png",
        )),
    })
    await collector.initialize(collector_context)

    result = await collector.execute(["https://a.test/"], CollectorOptions(
        url_metadata={"https://a.test/blog/2024/post": {"priority": "high"}},
    ))

    links = {link.url: (link.type, link.priority) for link in result.discovered_links}
    assert links == {
        "https://a.test/about": ("internal", "high"),
        "https://a.test/blog/2024/post": ("internal", "high"),
        "https://other.test/": ("external", "low"),
        "https://a.test/logo.png": ("asset", "low"),
    }
    assert all(link.found_on == "https://a.test/" for link in result.discovered_links)
    assert result.stats.links_discovered == 4


@pytest.mark.asyncio
async def test_discovered_links_drop_fragments(collector_context, collector_factory, page_factory):
    collector = collector_factory(pages={
        "https://a.test/": page_factory("https://a.test/", discovered_links=(
            "https://a.test/about#team",
            "https://a.test/about",
            "https://a.test/#top",
        )),
    })
    await collector.initialize(collector_context)

    result = await collector.execute(["https://a.test/"])

    assert [link.url for link in result.discovered_links] == ["https://a.test/about", "https://a.test/"]


@pytest.mark.asyncio
async def test_validate_scores_run(collector_context, collector_factory, page_factory):
    collector = collector_factory(pages={
        "https://a.test/": page_factory("https://a.test/", title="Home", description="Welcome",
                                        text_content="x" * 200),
        "https://a.test/thin": page_factory("https://a.test/thin", text_content="short"),
    })
    await collector.initialize(collector_context)
    result = await collector.execute(["https://a.test/", "https://a.test/thin"])

    validation = await collector.validate(result)

    assert validation.is_valid
    assert 0 <= validation.completeness <= 100
    assert 0 <= validation.quality <= 100
    fields = {issue.field for issue in validation.issues}
    assert fields == {"title", "text_content"}
    assert any("JavaScript" in suggestion for suggestion in validation.suggestions)


def test_can_handle_and_estimates(collector_factory):
    collector = collector_factory(
        speed=CollectorSpeed.SLOW,
        supported_patterns=[r"^https://a\.test/"],
        excluded_patterns=[r"\.pdf$"],
    )

    assert collector.can_handle("https://a.test/page")
    assert not collector.can_handle("https://a.test/doc.pdf")
    assert not collector.can_handle("https://b.test/page")
    assert collector.estimate_time(3) == 15000

    estimate = collector.estimate_value(["https://a.test/1", "https://b.test/2"])
    assert estimate.expected_data_points == 20
    assert estimate.confidence == 50


def test_build_page_result_maps_extraction(collector_factory):
    collector = collector_factory(strategy=CollectorStrategy.DYNAMIC)
    extracted = ExtractedData(
        content=ExtractedContent(
            title="Acme",
            main_content="Body text",
            links=[LinkRef("https://a.test/about")],
            images=[ImageRef("https://a.test/a.png", alt="A")],
            forms=[FormRef("https://a.test/contact", "POST", [FormField("email", "email", True)])],
        ),
        contact=ExtractedContact(emails=[EmailEntry("sales@a.test", "sales")]),
        social=ExtractedSocial(profiles=[
            SocialProfile("twitter", "https://twitter.com/acme", "acme"),
            SocialProfile("twitter", "https://twitter.com/acme_two", "acme_two"),
        ]),
    )

    page = collector.build_page_result("https://a.test/", "<html>__NEXT_DATA__</html>", extracted,
                                       duration_ms=12.5)

    assert page.success
    assert page.title == "Acme"
    assert page.text_content == "Body text"
    assert page.discovered_links == ("https://a.test/about",)
    assert page.contact_info.emails == ("sales@a.test",)
    assert page.social_links == {"twitter": "https://twitter.com/acme"}
    assert page.forms[0].fields == ({"name": "email", "type": "email", "required": True},)
    assert page.images[0].alt == "A"
    assert page.technologies == ("Next.js", "React")
    assert page.structured_data == {}
    assert page.bytes_downloaded == len("<html>__NEXT_DATA__</html>")
    assert page.duration_ms == 12.5
