"""
Base collector module defining the abstract class for all collectors.

A collector is one way of obtaining page content (plain HTTP, a headless
browser, an API). BaseCollector owns everything collectors share: the
initialization and busy guards, URL validation, progress reporting,
statistics, link discovery and result validation. Subclasses only
implement collect_pages().
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from collectors.context import CollectorContext, ProgressEvent
from collectors.types import (
    CollectionErrorRecord,
    CollectorConfig,
    CollectorMetadata,
    CollectorOptions,
    CollectorResult,
    CollectorSpeed,
    CollectorStats,
    CollectorStatus,
    ContactInfo,
    DiscoveredLink,
    FormData,
    ImageData,
    PageResult,
    ValidationIssue,
    ValidationResult,
    ValueEstimate,
)
from core.exceptions import (
    AdditiveScrapeError,
    AlreadyBusyError,
    CollectionError,
    NotInitializedError,
    ValidationError,
)
from extraction.models import ExtractedData
from extraction.signals import detect_api_endpoints, detect_technologies
from utils.url_filters import (
    classify_link,
    compile_patterns,
    is_valid_url,
    link_priority,
    normalize_url,
)

logger = logging.getLogger(__name__)

# Estimated milliseconds per URL by collector speed
TIME_PER_URL_MS = {
    CollectorSpeed.FAST: 1000,
    CollectorSpeed.MEDIUM: 2500,
    CollectorSpeed.SLOW: 5000,
}

# Expected data points per new page by collector speed
DATA_POINTS_PER_PAGE = {
    CollectorSpeed.FAST: 10,
    CollectorSpeed.MEDIUM: 15,
    CollectorSpeed.SLOW: 20,
}

MIN_TEXT_LENGTH = 100


class BaseCollector(ABC):
    """
    Abstract base class for all collectors.

    Subclasses pass a CollectorConfig (or define ``default_config()``) and
    implement collect_pages(). An instance runs at most one execute() at a
    time; a second concurrent call fails immediately with AlreadyBusyError.
    """

    #: What this collector typically adds beyond other collectors
    value_adds: Tuple[str, ...] = ("page content", "metadata", "links")

    def __init__(self, config: Optional[CollectorConfig] = None):
        self.config = config or self.default_config()
        self._supported = compile_patterns(self.config.supported_patterns)
        self._excluded = compile_patterns(self.config.excluded_patterns)
        self.context: Optional[CollectorContext] = None
        self._initialized = False
        self._busy = False

    @classmethod
    def default_config(cls) -> CollectorConfig:
        raise NotImplementedError(f"{cls.__name__} requires a CollectorConfig")

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def strategy(self) -> str:
        return self.config.strategy.value

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self, context: CollectorContext) -> None:
        """
        Bind the collector to a context. Calling it again is a no-op.

        Args:
            context: Shared collector context
        """
        if self._initialized:
            context.tracer.breadcrumb('collector_already_initialized', 'Collector already initialized',
                                      collector_id=self.id)
            return

        self.context = context
        await self.on_initialize()
        self._initialized = True
        context.tracer.info(
            "collector_initialized",
            collector_id=self.id,
            collector_name=self.name,
            strategy=self.strategy,
        )

    async def execute(self, urls: Sequence[str], options: Optional[CollectorOptions] = None) -> CollectorResult:
        """
        Collect a batch of URLs.

        Args:
            urls: URLs to collect
            options: Per run options

        Returns:
            CollectorResult with one PageResult per URL attempted

        Raises:
            NotInitializedError: If initialize() has not been called
            AlreadyBusyError: If another execute() on this instance is in flight
            ValidationError: If no URL survives validation
            CollectionError: If the strategy fails as a whole or times out
        """
        if not self._initialized or self.context is None:
            raise NotInitializedError(self.id)
        if self._busy:
            raise AlreadyBusyError(self.id)

        self._busy = True
        context = self.context
        options = options or CollectorOptions()
        timer = context.performance.start_timer('collector_execution')
        context.tracer.info("collector_execution_started", collector_id=self.id, url_count=len(urls))

        try:
            valid_urls = self.validate_urls(urls, options)
            if not valid_urls:
                raise ValidationError(f"No valid URLs to collect with '{self.id}'")

            await self._report(ProgressEvent(0, len(valid_urls), "Starting collection",
                                              collector_id=self.id, phase="start"))

            pages = await self._collect_with_timeout(valid_urls, options)
            links = self.extract_discovered_links(pages, options.url_metadata)
            stats = self.calculate_stats(pages, timer.stop(), len(links))

            await self._report(ProgressEvent(len(valid_urls), len(valid_urls), "Collection complete",
                                              collector_id=self.id, phase="complete"))

            context.tracer.info(
                "collector_execution_complete",
                collector_id=self.id,
                pages=len(pages),
                succeeded=stats.pages_succeeded,
                failed=stats.pages_failed,
                duration_ms=round(stats.duration_ms, 2),
            )

            return CollectorResult(
                collector_id=self.id,
                collector_name=self.name,
                strategy=self.strategy,
                success=any(page.success for page in pages),
                pages=pages,
                discovered_links=links,
                stats=stats,
                errors=tuple(
                    CollectionErrorRecord(
                        code=page.error_code or "UNKNOWN",
                        message=page.error or "Unknown error",
                        url=page.url,
                        timestamp=page.timestamp,
                    )
                    for page in pages if not page.success
                ),
                metadata=await self.get_metadata(),
            )
        except Exception as e:
            context.tracer.capture_error(e, collector_id=self.id, phase="execution")
            raise
        finally:
            self._busy = False

    async def _collect_with_timeout(self, urls: List[str], options: CollectorOptions) -> Tuple[PageResult, ...]:
        timeout = options.timeout or self.config.timeout
        try:
            pages = await asyncio.wait_for(self.collect_pages(urls, options), timeout=timeout)
        except asyncio.TimeoutError:
            raise CollectionError(self.id, f"timed out after {timeout} seconds") from None
        except AdditiveScrapeError:
            raise
        except Exception as e:
            raise CollectionError(self.id, str(e)) from e

        # Exactly one page per attempted URL, in request order
        by_url: Dict[str, PageResult] = {}
        for page in pages:
            by_url.setdefault(page.url, page)
        return tuple(
            by_url.get(url) or PageResult.failed(url, "Collector returned no result", "MISSING_RESULT")
            for url in urls
        )

    async def _report(self, event: ProgressEvent) -> None:
        try:
            await self.context.progress.report(event)
        except Exception as e:
            self.context.tracer.capture_error(e, collector_id=self.id, phase="progress")

    async def cleanup(self) -> None:
        """Release collector resources and return to the uninitialized state."""
        if self.context is not None:
            self.context.tracer.breadcrumb('collector_cleanup', 'Cleaning up collector', collector_id=self.id)
        try:
            await self.on_cleanup()
        finally:
            self.context = None
            self._initialized = False
            self._busy = False

    def can_handle(self, url: str) -> bool:
        """
        Check the URL against the configured patterns.

        Excluded patterns win; when supported patterns are configured one of
        them must match; otherwise every URL is accepted.
        """
        if any(pattern.search(url) for pattern in self._excluded):
            return False
        if self._supported:
            return any(pattern.search(url) for pattern in self._supported)
        return True

    def estimate_time(self, url_count: int) -> int:
        """Estimated duration in milliseconds for collecting url_count URLs."""
        return url_count * TIME_PER_URL_MS[self.config.speed]

    def estimate_value(self, urls: Iterable[str], existing: Optional[Mapping[str, object]] = None) -> ValueEstimate:
        """
        Estimate what running this collector over the URLs would add.

        URLs already collected by this collector count for nothing.

        Args:
            urls: Candidate URLs
            existing: Merged page data keyed by URL (objects with ``scraped_by``)
        """
        existing = existing or {}
        new_urls = [
            url for url in urls
            if self.can_handle(url) and self.id not in getattr(existing.get(url), 'scraped_by', ())
        ]
        return ValueEstimate(
            expected_data_points=len(new_urls) * DATA_POINTS_PER_PAGE[self.config.speed],
            confidence=50,
            value_adds=self.value_adds,
            estimated_time_ms=self.estimate_time(len(new_urls)),
        )

    def get_status(self) -> CollectorStatus:
        return CollectorStatus(
            ready=self._initialized and not self._busy,
            busy=self._busy,
            initialized=self._initialized,
        )

    def validate_urls(self, urls: Sequence[str], options: CollectorOptions) -> List[str]:
        """Keep well formed http(s) URLs this collector can handle, deduplicated, up to max_pages."""
        valid: List[str] = []
        for url in urls:
            if not is_valid_url(url):
                logger.debug(f"Skipping invalid URL for {self.id}: {url!r}")
                continue
            url = normalize_url(url)
            if url in valid or not self.can_handle(url):
                continue
            valid.append(url)

        if options.max_pages is not None:
            valid = valid[:max(0, options.max_pages)]

        if self.context is not None:
            self.context.tracer.breadcrumb(
                'urls_validated', 'URLs validated',
                collector_id=self.id,
                original_count=len(urls),
                valid_count=len(valid),
            )
        return valid

    def extract_discovered_links(self, pages: Sequence[PageResult],
                                 url_metadata: Optional[Mapping[str, Mapping]] = None) -> Tuple[DiscoveredLink, ...]:
        """Classify the links found on successful pages, first occurrence wins."""
        url_metadata = url_metadata or {}
        seen = set()
        links: List[DiscoveredLink] = []
        for page in pages:
            if not page.success:
                continue
            for url in page.discovered_links:
                url = normalize_url(url)
                if url in seen:
                    continue
                seen.add(url)
                link_type = classify_link(url, page.url)
                hint = (url_metadata.get(url) or {}).get('priority')
                links.append(DiscoveredLink(
                    url=url,
                    found_on=page.url,
                    type=link_type,
                    priority=link_priority(url, link_type, hint),
                ))
        return tuple(links)

    def calculate_stats(self, pages: Sequence[PageResult], duration_ms: float, links_discovered: int) -> CollectorStats:
        attempted = len(pages)
        succeeded = sum(1 for page in pages if page.success)
        return CollectorStats(
            duration_ms=duration_ms,
            pages_attempted=attempted,
            pages_succeeded=succeeded,
            pages_failed=attempted - succeeded,
            bytes_downloaded=sum(page.bytes_downloaded for page in pages),
            data_points_extracted=sum(page.data_points for page in pages if page.success),
            links_discovered=links_discovered,
            average_time_per_page_ms=duration_ms / attempted if attempted else 0.0,
            success_rate=succeeded / attempted * 100 if attempted else 0.0,
        )

    async def validate(self, result: CollectorResult) -> ValidationResult:
        """
        Judge the completeness and quality of a run.

        Returns:
            ValidationResult with issues and plain language suggestions
        """
        issues: List[ValidationIssue] = []
        suggestions: List[str] = []
        succeeded = [page for page in result.pages if page.success]
        failed = [page.url for page in result.pages if not page.success]

        if not succeeded:
            issues.append(ValidationIssue('error', 'pages', 'No pages were collected successfully',
                                          tuple(failed)))
        elif failed:
            issues.append(ValidationIssue('warning', 'pages', f"{len(failed)} page(s) failed",
                                          tuple(failed)))

        untitled = tuple(page.url for page in succeeded if not page.title)
        if untitled:
            issues.append(ValidationIssue('warning', 'title', 'Pages without a title', untitled))

        thin = tuple(page.url for page in succeeded if len(page.text_content) < MIN_TEXT_LENGTH)
        if thin:
            issues.append(ValidationIssue('info', 'text_content', 'Pages with little text content', thin))
            if result.strategy == 'static':
                suggestions.append("Content may be rendered by JavaScript; try a browser based collector")

        if succeeded and not any(page.structured_data for page in succeeded):
            suggestions.append("No structured data found; metadata extraction may add little")

        completeness = 0
        if succeeded:
            filled = sum(
                sum(bool(value) for value in (
                    page.title, page.description, page.text_content,
                    page.discovered_links, page.structured_data, page.images,
                ))
                for page in succeeded
            )
            completeness = round(filled / (len(succeeded) * 6) * 100)
        quality = round(result.stats.success_rate * 0.5 + completeness * 0.5)

        return ValidationResult(
            is_valid=result.success and not any(issue.severity == 'error' for issue in issues),
            completeness=max(0, min(100, completeness)),
            quality=max(0, min(100, quality)),
            issues=tuple(issues),
            suggestions=tuple(suggestions),
        )

    def build_page_result(self, url: str, markup: str, extracted: ExtractedData,
                          status_code: Optional[int] = 200, duration_ms: float = 0.0,
                          bytes_downloaded: Optional[int] = None) -> PageResult:
        """
        Turn extraction output for a fetched document into a PageResult.

        Args:
            url: Final URL of the document
            markup: Raw HTML
            extracted: Output of the extraction pipeline
            status_code: HTTP status, when known
            duration_ms: Time spent fetching and extracting
            bytes_downloaded: Payload size, defaults to the encoded markup length
        """
        content = extracted.content
        metadata = extracted.metadata
        contact = extracted.contact
        social = extracted.social

        title = content.title if content else ''
        description = content.description if content else ''
        if metadata:
            title = title or metadata.basic.get('title', '')
            description = description or metadata.basic.get('description', '')

        # Fragments point into the same document, so links are keyed without them
        links = tuple(dict.fromkeys(normalize_url(link.href) for link in content.links)) if content else ()

        structured_data: Dict[str, object] = {}
        if metadata:
            for key, value in (
                ('json_ld', metadata.json_ld),
                ('microdata', [asdict(item) for item in metadata.microdata]),
                ('open_graph', metadata.open_graph),
                ('dublin_core', metadata.dublin_core),
            ):
                if value:
                    structured_data[key] = value

        contact_info = ContactInfo()
        if contact:
            contact_info = ContactInfo(
                emails=tuple(entry.email for entry in contact.emails),
                phones=tuple(entry.number for entry in contact.phones),
                addresses=tuple(address.full for address in contact.addresses),
                contact_forms=tuple(form.action or url for form in contact.contact_forms),
            )

        social_links: Dict[str, str] = {}
        if social:
            for profile in social.profiles:
                social_links.setdefault(profile.platform, profile.url)

        return PageResult(
            url=url,
            success=True,
            status_code=status_code,
            title=title,
            description=description,
            text_content=content.main_content if content else '',
            discovered_links=links,
            structured_data=structured_data,
            technologies=tuple(detect_technologies(markup)),
            api_endpoints=tuple(detect_api_endpoints(markup, links, url)),
            contact_info=contact_info,
            social_links=social_links,
            forms=tuple(
                FormData(action=form.action, method=form.method,
                         fields=tuple(asdict(form_field) for form_field in form.fields))
                for form in content.forms
            ) if content else (),
            images=tuple(ImageData(src=image.src, alt=image.alt) for image in content.images) if content else (),
            duration_ms=duration_ms,
            bytes_downloaded=len(markup.encode('utf-8')) if bytes_downloaded is None else bytes_downloaded,
        )

    @abstractmethod
    async def collect_pages(self, urls: List[str], options: CollectorOptions) -> List[PageResult]:
        """
        Collect each URL and return one PageResult per URL.

        Per page failures are reported as PageResult.failed(), not raised.
        """
        pass

    async def on_initialize(self) -> None:
        """Hook for subclasses to acquire resources; self.context is set."""
        pass

    async def on_cleanup(self) -> None:
        """Hook for subclasses to release resources."""
        pass

    async def get_metadata(self) -> Optional[CollectorMetadata]:
        """Typed metadata describing the last run."""
        return None
