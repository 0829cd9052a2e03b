"""
Additive scraping session.

An AdditiveSession drives successive collector runs against one domain.
Each run is merged into a per URL store without ever discarding what
earlier runs found, after which scores, totals and suggestions are
recomputed. A session is single writer: runs are awaited one at a time.
"""

import time
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from collectors.base_collector import BaseCollector
from collectors.context import CollectorContext, cleanup_collector_context, create_collector_context
from collectors.lifecycle import CollectorLifecycleManager, with_lifecycle
from collectors.types import CollectorOptions, CollectorResult, DiscoveredLink
from core.exceptions import (
    CollectorNotFoundError,
    InstanceUnavailableError,
    SessionCompletedError,
    ValidationError,
)
from core.merger import create_merged_page, merge_page, update_totals
from core.models import (
    DataSummary,
    MergedPageData,
    RunOutcome,
    SessionState,
    SessionStatus,
    Suggestion,
)
from core.suggestions import generate_suggestions, get_undiscovered_links
from utils.logging import Tracer, bind_session
from utils.url_filters import normalize_url


class AdditiveSession:
    """
    Accumulates the output of many collector runs for one domain.

    Args:
        session_id: Session identifier, bound into every log line of a run
        domain: Domain being collected
        collectors: Collectors available to this session, unique by id
        lifecycle: Lifecycle manager to register the collectors with; a
            private one is created (and cleaned up by close()) when omitted
        context: Collector context; one is created for the session when omitted
        previously_discovered_urls: URLs known from earlier phases (a sitemap,
            say) that must not be reported as newly discovered
        tracer: Tracer to log through
    """

    def __init__(self, session_id: str, domain: str, collectors: Sequence[BaseCollector],
                 lifecycle: Optional[CollectorLifecycleManager] = None,
                 context: Optional[CollectorContext] = None,
                 previously_discovered_urls: Iterable[str] = (),
                 tracer: Optional[Tracer] = None):
        self.tracer = tracer or Tracer("session", session_id=session_id, domain=domain)
        self._owns_lifecycle = lifecycle is None
        self._owns_context = context is None
        self.lifecycle = lifecycle or CollectorLifecycleManager(tracer=self.tracer)
        self.context = context or create_collector_context(session_id, domain, tracer=self.tracer)

        self._collectors: Dict[str, BaseCollector] = {}
        self._instance_ids: Dict[str, str] = {}
        for collector in collectors:
            if collector.id in self._collectors:
                raise ValidationError(f"Duplicate collector id '{collector.id}'")
            self._collectors[collector.id] = collector
            self._instance_ids[collector.id] = self.lifecycle.register(collector, self.context)

        self.state = SessionState(
            id=session_id,
            domain=domain,
            collector_ids=list(self._collectors),
            previously_discovered_urls={normalize_url(url) for url in previously_discovered_urls},
        )

        self.tracer.info(
            "session_created",
            collectors=self.state.collector_ids,
            previously_discovered_urls=len(self.state.previously_discovered_urls),
        )

    @property
    def id(self) -> str:
        return self.state.id

    async def add_run(self, collector_id: str, urls: Sequence[str],
                      options: Optional[CollectorOptions] = None) -> RunOutcome:
        """
        Run one collector over the URLs and fold its pages into the session.

        Args:
            collector_id: Id of a registered collector
            urls: URLs to collect
            options: Per run collector options

        Returns:
            RunOutcome with the run's result, session totals and fresh suggestions

        Raises:
            CollectorNotFoundError: If the collector is not registered
            SessionCompletedError: If complete() has been called
            AdditiveScrapeError: Whatever the run raised; nothing is merged
        """
        if self.state.status == SessionStatus.COMPLETED:
            raise SessionCompletedError(self.id)
        collector = self._collectors.get(collector_id)
        if collector is None:
            raise CollectorNotFoundError(collector_id)

        bind_session(self.id)
        options = replace(options or CollectorOptions(), session_id=self.id)
        timer = self.tracer.timing("collector_run", collector_id=collector_id)
        self.tracer.info("collector_run_started", collector_id=collector_id, url_count=len(urls),
                         previous_runs=len(self.state.history))

        async def run(instance: BaseCollector) -> CollectorResult:
            result = await instance.execute(urls, options)
            return replace(result, validation=await instance.validate(result))

        try:
            result = await self._run_managed(collector, run)
        except Exception as e:
            self.tracer.capture_error(e, collector_id=collector_id, phase="run")
            raise

        self.state.history.append(result)
        self.state.last_activity = time.time()
        self._merge_result(result)
        update_totals(self.state.total_stats, result.stats)

        suggestions = self.generate_suggestions()
        totals = self.get_total_data_summary()

        self.tracer.info(
            "collector_run_complete",
            collector_id=collector_id,
            duration_ms=round(timer.stop(), 2),
            new_data_points=result.stats.data_points_extracted,
            total_data_points=totals.data_points,
            suggestions=len(suggestions),
        )
        return RunOutcome(new_data=result, totals=totals, suggestions=suggestions)

    async def _run_managed(self, collector: BaseCollector,
                           fn: Callable[[BaseCollector], Awaitable[CollectorResult]]) -> CollectorResult:
        """Run fn through the lifecycle manager, re-registering an instance the health check evicted."""
        instance_id = self._instance_ids[collector.id]
        if self.lifecycle.get_state(instance_id) is None:
            instance_id = self._reregister(collector)
        try:
            return await with_lifecycle(self.lifecycle, instance_id, fn)
        except InstanceUnavailableError:
            # A failed refresh keeps the instance registered; only eviction is retried
            if self.lifecycle.get_state(instance_id) is not None:
                raise
            return await with_lifecycle(self.lifecycle, self._reregister(collector), fn)

    def _reregister(self, collector: BaseCollector) -> str:
        instance_id = self.lifecycle.register(collector, self.context)
        self.tracer.breadcrumb('collector_reregistered', 'Evicted collector registered again',
                               collector_id=collector.id, previous_instance_id=self._instance_ids[collector.id],
                               instance_id=instance_id)
        self._instance_ids[collector.id] = instance_id
        return instance_id

    def _merge_result(self, result: CollectorResult) -> None:
        added = merged = 0
        for page in result.pages:
            # Failed pages stay in history only, so the URL remains collectable
            if not page.success:
                continue
            existing = self.state.merged_data.get(page.url)
            if existing is None:
                self.state.merged_data[page.url] = create_merged_page(page, result.collector_id)
                added += 1
            else:
                merge_page(existing, page, result.collector_id)
                merged += 1

        self.tracer.breadcrumb('merge_complete', 'Run merged into session',
                               collector_id=result.collector_id, pages_added=added,
                               pages_merged=merged, total_pages=len(self.state.merged_data))

    def generate_suggestions(self) -> List[Suggestion]:
        suggestions = generate_suggestions(self.state, self._collectors)
        self.tracer.breadcrumb('suggestions_generated', 'Suggestions generated',
                               actions=[suggestion.action.value for suggestion in suggestions])
        return suggestions

    def get_undiscovered_links(self) -> List[DiscoveredLink]:
        return get_undiscovered_links(self.state)

    def get_total_data_summary(self) -> DataSummary:
        """Session wide counts; discovered_links counts only links not known beforehand."""
        pages = self.state.merged_data.values()
        return DataSummary(
            pages_scraped=len(self.state.merged_data),
            data_points=self.state.total_stats.data_points_extracted,
            discovered_links=len(self.get_undiscovered_links()),
            collector_runs=len(self.state.history),
            average_quality=sum(page.quality_score for page in pages) / len(pages) if pages else 0.0,
        )

    def get_merged_results(self) -> Dict[str, MergedPageData]:
        return dict(self.state.merged_data)

    def get_history(self) -> List[CollectorResult]:
        return list(self.state.history)

    def get_status(self) -> SessionStatus:
        return self.state.status

    def complete(self) -> None:
        """Mark the session completed. Further runs are rejected."""
        self.state.status = SessionStatus.COMPLETED
        self.tracer.info(
            "session_completed",
            duration_s=round(time.time() - self.state.started_at, 2),
            total_pages=len(self.state.merged_data),
            total_runs=len(self.state.history),
            total_data_points=self.state.total_stats.data_points_extracted,
        )

    def export_session(self) -> dict:
        """Deep, JSON-serialisable snapshot of the session for external storage."""
        return self.state.to_dict()

    async def close(self) -> None:
        """Clean up this session's collector instances and, when owned, its context."""
        if self._owns_lifecycle:
            await self.lifecycle.cleanup_all()
        else:
            for instance_id in self._instance_ids.values():
                await self.lifecycle.cleanup(instance_id)
        if self._owns_context:
            await cleanup_collector_context(self.context)

    async def __aenter__(self) -> "AdditiveSession":
        if self._owns_lifecycle:
            self.lifecycle.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
