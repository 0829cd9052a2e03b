"""
Collector context: the shared dependencies handed to every collector.

A context bundles the tracer, the progress reporter, the performance
tracker and the extraction pipeline for one session so all collectors
report and extract the same way.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from extraction.extractor_pipeline import ExtractorPipeline, PipelineOptions
from utils.logging import Tracer


@dataclass
class ProgressEvent:
    current: int
    total: int
    message: str
    collector_id: Optional[str] = None
    url: Optional[str] = None
    phase: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ProgressReporter(ABC):
    """
    Sink for collector progress events.

    Reporting is fire and forget: implementations must not let a delivery
    failure escape into the collector.
    """

    @abstractmethod
    async def report(self, event: ProgressEvent) -> None:
        pass

    async def close(self) -> None:
        """Release any resources held by the reporter."""
        pass


class LoggingProgressReporter(ProgressReporter):
    """Writes progress events to the structured log."""

    def __init__(self, tracer: Optional[Tracer] = None):
        self.tracer = tracer or Tracer(__name__)

    async def report(self, event: ProgressEvent) -> None:
        self.tracer.info("collector_progress", **event.to_dict())


class QueueProgressReporter(ProgressReporter):
    """
    Puts progress events on an asyncio queue for streaming consumers.

    When the queue is full the oldest event is dropped so a slow consumer
    never blocks a collector.
    """

    def __init__(self, maxsize: int = 1000, tracer: Optional[Tracer] = None):
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.tracer = tracer or Tracer(__name__)
        self.closed = False

    async def report(self, event: ProgressEvent) -> None:
        if self.closed:
            return
        if self.queue.full():
            dropped = self.queue.get_nowait()
            self.tracer.breadcrumb('progress_dropped', 'Progress queue full, dropped oldest event',
                                   dropped=dropped.message)
        self.queue.put_nowait(event)

    async def close(self) -> None:
        self.closed = True


class PerformanceTimer:
    """Timer handle returned by PerformanceTracker.start_timer()."""

    def __init__(self, tracker: "PerformanceTracker", label: str):
        self._tracker = tracker
        self._label = label
        self._start = time.perf_counter()
        self.cancelled = False

    def checkpoint(self, name: str, **data: Any) -> float:
        elapsed = (time.perf_counter() - self._start) * 1000
        self._tracker.tracer.breadcrumb('timer_checkpoint', f"Checkpoint: {name}",
                                        timer=self._label, elapsed_ms=round(elapsed, 2), **data)
        return elapsed

    def stop(self) -> float:
        duration = (time.perf_counter() - self._start) * 1000
        if not self.cancelled:
            self._tracker.record_metric(f"{self._label}_duration", duration, 'ms')
        return duration

    def cancel(self) -> None:
        self.cancelled = True


class PerformanceTracker:
    """Collects named timings and metrics for one collector context."""

    def __init__(self, tracer: Optional[Tracer] = None):
        self.tracer = tracer or Tracer(__name__)
        self._metrics: Dict[str, Dict[str, Any]] = {}

    def start_timer(self, label: str) -> PerformanceTimer:
        return PerformanceTimer(self, label)

    def record_metric(self, name: str, value: float, unit: str = 'count') -> None:
        metric = {'value': value, 'unit': unit, 'timestamp': time.time()}
        self._metrics[name] = metric
        self.tracer.breadcrumb('metric_recorded', f"Metric: {name}", **metric)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._metrics)


@dataclass
class CollectorContext:
    """Shared state passed to collectors at initialization."""

    session_id: str
    domain: Optional[str] = None
    tracer: Tracer = field(default_factory=lambda: Tracer("collectors"))
    progress: ProgressReporter = None
    performance: PerformanceTracker = None
    pipeline: ExtractorPipeline = None

    def __post_init__(self):
        if self.progress is None:
            self.progress = LoggingProgressReporter(self.tracer)
        if self.performance is None:
            self.performance = PerformanceTracker(self.tracer)
        if self.pipeline is None:
            self.pipeline = ExtractorPipeline(tracer=self.tracer)


def create_collector_context(session_id: str, domain: Optional[str] = None,
                             progress: Optional[ProgressReporter] = None,
                             pipeline_options: Optional[PipelineOptions] = None,
                             tracer: Optional[Tracer] = None) -> CollectorContext:
    """
    Create a collector context with all dependencies.

    Args:
        session_id: Session the collectors will work for
        domain: Domain being collected
        progress: Progress reporter, defaults to logging progress events
        pipeline_options: Default extraction pipeline options
        tracer: Tracer to share, defaults to a new one bound to the session

    Returns:
        A ready to use CollectorContext
    """
    tracer = tracer or Tracer("collectors", session_id=session_id)
    tracer.info("collector_context_created", domain=domain)
    return CollectorContext(
        session_id=session_id,
        domain=domain,
        tracer=tracer,
        progress=progress or LoggingProgressReporter(tracer),
        performance=PerformanceTracker(tracer),
        pipeline=ExtractorPipeline(options=pipeline_options, tracer=tracer),
    )


async def cleanup_collector_context(context: CollectorContext) -> None:
    """Close the progress reporter and log the final metrics of a context."""
    try:
        await context.progress.close()
    except Exception as e:
        context.tracer.capture_error(e, phase='context_cleanup', session_id=context.session_id)
    context.tracer.info("collector_context_cleaned", metrics=context.performance.get_metrics())
