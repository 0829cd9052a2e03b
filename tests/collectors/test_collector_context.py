"""
Tests for collector context construction, progress reporting and
performance tracking.
"""

import pytest

from collectors.context import (
    CollectorContext,
    LoggingProgressReporter,
    PerformanceTracker,
    ProgressEvent,
    QueueProgressReporter,
    cleanup_collector_context,
    create_collector_context,
)
from extraction.extractor_pipeline import PipelineOptions


@pytest.mark.asyncio
async def test_queue_reporter_drops_oldest_when_full(tracer):
    reporter = QueueProgressReporter(maxsize=2, tracer=tracer)

    for index in range(3):
        await reporter.report(ProgressEvent(current=index, total=3, message=f"page {index}"))

    messages = [reporter.queue.get_nowait().message for _ in range(reporter.queue.qsize())]
    assert messages == ["page 1", "page 2"]
    assert tracer.breadcrumbs[-1]["category"] == "progress_dropped"


@pytest.mark.asyncio
async def test_queue_reporter_ignores_events_after_close(tracer):
    reporter = QueueProgressReporter(tracer=tracer)
    await reporter.close()

    await reporter.report(ProgressEvent(current=1, total=1, message="late"))

    assert reporter.queue.empty()


def test_performance_tracker_records_timer_metrics(tracer):
    tracker = PerformanceTracker(tracer)

    timer = tracker.start_timer("fetch")
    timer.checkpoint("headers")
    duration = timer.stop()

    metrics = tracker.get_metrics()
    assert metrics["fetch_duration"]["value"] == duration
    assert metrics["fetch_duration"]["unit"] == "ms"

    cancelled = tracker.start_timer("render")
    cancelled.cancel()
    cancelled.stop()
    assert "render_duration" not in tracker.get_metrics()


def test_context_fills_default_dependencies(tracer):
    context = CollectorContext(session_id="s1", tracer=tracer)

    assert isinstance(context.progress, LoggingProgressReporter)
    assert context.performance.tracer is tracer
    assert context.pipeline is not None


def test_create_collector_context_uses_pipeline_options(tracer):
    options = PipelineOptions(parallel=False, timeout=5)
    reporter = QueueProgressReporter(tracer=tracer)

    context = create_collector_context("s2", "a.test", progress=reporter,
                                       pipeline_options=options, tracer=tracer)

    assert context.session_id == "s2"
    assert context.domain == "a.test"
    assert context.progress is reporter
    assert context.pipeline.options is options


@pytest.mark.asyncio
async def test_cleanup_closes_progress_and_captures_failures(tracer):
    reporter = QueueProgressReporter(tracer=tracer)
    context = create_collector_context("s3", progress=reporter, tracer=tracer)

    await cleanup_collector_context(context)
    assert reporter.closed

    class BrokenReporter(QueueProgressReporter):
        async def close(self):
            raise RuntimeError("stream gone")

    broken = create_collector_context("s4", progress=BrokenReporter(tracer=tracer), tracer=tracer)
    await cleanup_collector_context(broken)
    assert tracer.errors[-1]["context"]["phase"] == "context_cleanup"
