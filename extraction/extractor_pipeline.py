"""
Extraction Pipeline Module

Runs the structured extractors over a document, either concurrently or in
a fixed order, under one overall deadline. A failing extractor is isolated
(its category is omitted and the failure recorded) while a deadline miss
fails the whole call.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import config
from core.exceptions import ExtractionTimeoutError, PartialExtractionFailure
from extraction.contact_extractor import ContactExtractor
from extraction.content_extractor import ContentExtractor
from extraction.metadata_extractor import MetadataExtractor
from extraction.models import (
    ExtractedContact,
    ExtractedContent,
    ExtractedData,
    ExtractedMetadata,
    ExtractedSocial,
    ExtractionSummary,
    ExtractorFailure,
)
from extraction.social_extractor import SocialExtractor
from utils.logging import Tracer

logger = logging.getLogger(__name__)

# Fixed order used in sequential mode
EXTRACTOR_ORDER = ('content', 'contact', 'social', 'metadata')


@dataclass
class PipelineOptions:
    """Which extractors run, how, and under which deadline (seconds)."""

    extract_content: bool = True
    extract_contact: bool = True
    extract_social: bool = True
    extract_metadata: bool = True
    parallel: bool = field(default_factory=lambda: config.PIPELINE_PARALLEL)
    timeout: float = field(default_factory=lambda: config.PIPELINE_TIMEOUT_SECONDS)

    def is_enabled(self, name: str) -> bool:
        return getattr(self, f"extract_{name}")


def summarize(data: ExtractedData) -> ExtractionSummary:
    """Compute presence flags and the data point count for extracted data."""
    total = 0
    if data.content:
        content = data.content
        total += len(content.paragraphs) + len(content.images) + len(content.links)
        total += len(content.headings.get('h1', [])) + len(content.headings.get('h2', []))
    if data.contact:
        total += len(data.contact.emails) + len(data.contact.phones) + len(data.contact.addresses)
    if data.social:
        total += len(data.social.profiles) + len(data.social.feeds)
    if data.metadata:
        total += len(data.metadata.json_ld) + len(data.metadata.microdata) + len(data.metadata.custom)

    return ExtractionSummary(
        has_content=bool(data.content and data.content.main_content),
        has_contact=bool(data.contact and (data.contact.emails or data.contact.phones)),
        has_social=bool(data.social and data.social.profiles),
        has_structured_data=bool(data.metadata and (data.metadata.json_ld or data.metadata.microdata)),
        total_data_points=total,
    )


def _unique(values: List[Any], key=lambda value: value) -> List[Any]:
    seen = set()
    unique = []
    for value in values:
        marker = key(value)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(value)
    return unique


class ExtractorPipeline:
    """
    Coordinates the content, contact, social and metadata extractors.

    Extractors are synchronous BeautifulSoup code, so each one runs in a
    worker thread via asyncio.to_thread.
    """

    def __init__(self, options: Optional[PipelineOptions] = None, tracer: Optional[Tracer] = None,
                 extractors: Optional[Dict[str, Any]] = None):
        """
        Initialize the pipeline.

        Args:
            options: Default options for every extract() call
            tracer: Tracer used for breadcrumbs, timings and captured errors
            extractors: Override extractor instances by category name
        """
        self.options = options or PipelineOptions()
        self.tracer = tracer or Tracer(__name__)
        self.extractors = {
            'content': ContentExtractor(),
            'contact': ContactExtractor(),
            'social': SocialExtractor(),
            'metadata': MetadataExtractor(tracer=self.tracer),
        }
        if extractors:
            self.extractors.update(extractors)

    async def extract(self, markup: str, url: Optional[str] = None,
                      options: Optional[PipelineOptions] = None) -> ExtractedData:
        """
        Run the enabled extractors over a document.

        Args:
            markup: Raw HTML
            url: URL of the document
            options: Per call options, defaults to the pipeline options

        Returns:
            ExtractedData with a computed summary

        Raises:
            ExtractionTimeoutError: If the overall deadline is exceeded
        """
        options = options or self.options
        enabled = [name for name in EXTRACTOR_ORDER if options.is_enabled(name)]
        timer = self.tracer.timing('extraction_pipeline', url=url)

        if options.parallel:
            work = asyncio.gather(*(self._run_extractor(name, markup, url) for name in enabled))
        else:
            work = self._run_sequential(enabled, markup, url)

        try:
            outcomes = await asyncio.wait_for(work, timeout=options.timeout)
        except asyncio.TimeoutError:
            timer.stop()
            error = ExtractionTimeoutError(options.timeout, url)
            self.tracer.capture_error(error, url=url, extractors=enabled)
            raise error from None

        data = ExtractedData()
        for name, result, failure in outcomes:
            if failure is not None:
                data.failures.append(failure)
            elif result is not None:
                setattr(data, name, result)
        data.summary = summarize(data)

        duration_ms = timer.stop()
        self.tracer.breadcrumb(
            'extraction_complete', 'Extraction pipeline complete',
            url=url,
            duration_ms=round(duration_ms, 2),
            data_points=data.summary.total_data_points,
            failures=len(data.failures),
        )
        return data

    async def _run_sequential(self, names: List[str], markup: str,
                              url: Optional[str]) -> List[Tuple[str, Any, Optional[ExtractorFailure]]]:
        outcomes = []
        for name in names:
            outcomes.append(await self._run_extractor(name, markup, url))
        return outcomes

    async def _run_extractor(self, name: str, markup: str,
                             url: Optional[str]) -> Tuple[str, Any, Optional[ExtractorFailure]]:
        extractor = self.extractors[name]
        try:
            result = await asyncio.to_thread(extractor.extract, markup, url)
            return name, result, None
        except Exception as e:
            failure = PartialExtractionFailure(name, e)
            self.tracer.capture_error(failure, url=url, extractor=name)
            return name, None, ExtractorFailure(extractor=name, error_type=type(e).__name__, message=str(e))

    @staticmethod
    def merge_results(results: List[ExtractedData]) -> ExtractedData:
        """
        Combine extraction results for several documents into one.

        Args:
            results: Results to merge, in priority order

        Returns:
            Merged ExtractedData with a recomputed summary
        """
        if not results:
            return ExtractedData()
        if len(results) == 1:
            return results[0]

        merged = ExtractedData(
            content=_merge_content([r.content for r in results if r.content]),
            contact=_merge_contact([r.contact for r in results if r.contact]),
            social=_merge_social([r.social for r in results if r.social]),
            metadata=_merge_metadata([r.metadata for r in results if r.metadata]),
            failures=[failure for r in results for failure in r.failures],
        )
        merged.summary = summarize(merged)
        return merged


def _merge_content(contents: List[ExtractedContent]) -> Optional[ExtractedContent]:
    if not contents:
        return None
    return ExtractedContent(
        title=next((c.title for c in contents if c.title), ''),
        description=next((c.description for c in contents if c.description), ''),
        headings={
            level: _unique([h for c in contents for h in c.headings.get(level, [])])
            for level in ('h1', 'h2', 'h3')
        },
        main_content=next((c.main_content for c in contents if c.main_content), ''),
        paragraphs=_unique([p for c in contents for p in c.paragraphs]),
        images=[image for c in contents for image in c.images],
        links=[link for c in contents for link in c.links],
        lists=[item for c in contents for item in c.lists],
        tables=[table for c in contents for table in c.tables],
        forms=[form for c in contents for form in c.forms],
    )


def _merge_contact(contacts: List[ExtractedContact]) -> Optional[ExtractedContact]:
    if not contacts:
        return None
    hours = [entry for c in contacts for entry in (c.business_hours or [])]
    return ExtractedContact(
        emails=_unique([e for c in contacts for e in c.emails], key=lambda e: e.email),
        phones=_unique([p for c in contacts for p in c.phones], key=lambda p: p.number),
        addresses=[a for c in contacts for a in c.addresses],
        business_hours=hours or None,
        contact_forms=[f for c in contacts for f in c.contact_forms],
    )


def _merge_social(socials: List[ExtractedSocial]) -> Optional[ExtractedSocial]:
    if not socials:
        return None
    return ExtractedSocial(
        profiles=_unique([p for s in socials for p in s.profiles], key=lambda p: p.url),
        sharing=socials[0].sharing,
        feeds=_unique([f for s in socials for f in s.feeds], key=lambda f: f.url),
    )


def _merge_metadata(metadatas: List[ExtractedMetadata]) -> Optional[ExtractedMetadata]:
    if not metadatas:
        return None
    first = metadatas[0]
    custom: Dict[str, str] = {}
    for metadata in metadatas:
        custom.update(metadata.custom)
    return ExtractedMetadata(
        basic=first.basic,
        open_graph=first.open_graph,
        twitter=first.twitter,
        dublin_core=first.dublin_core,
        json_ld=[item for m in metadatas for item in m.json_ld],
        microdata=[item for m in metadatas for item in m.microdata],
        custom=custom,
    )
