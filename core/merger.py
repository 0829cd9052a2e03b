"""
Merging collector pages into per URL records, and scoring them.

Merging is additive: a later run can add to or improve a record but never
removes what an earlier run contributed.
"""

import time
from typing import Iterable, List, TypeVar

from collectors.types import CollectorStats, ContactInfo, PageResult
from core.models import MergedPageData, SessionTotals

T = TypeVar('T')

TEXT_SEPARATOR = "\n\n"
SUBSTANTIAL_TEXT_LENGTH = 500
MANY_LINKS = 5


def _union(existing: Iterable[T], new: Iterable[T]) -> List[T]:
    """Order preserving union."""
    merged = list(existing)
    seen = set(merged)
    for item in new:
        if item not in seen:
            seen.add(item)
            merged.append(item)
    return merged


def merge_contact_info(existing: ContactInfo, new: ContactInfo) -> ContactInfo:
    return ContactInfo(
        emails=tuple(_union(existing.emails, new.emails)),
        phones=tuple(_union(existing.phones, new.phones)),
        addresses=tuple(_union(existing.addresses, new.addresses)),
        contact_forms=tuple(_union(existing.contact_forms, new.contact_forms)),
    )


def create_merged_page(page: PageResult, collector_id: str) -> MergedPageData:
    """Start a record for a URL seen for the first time."""
    now = time.time()
    merged = MergedPageData(
        url=page.url,
        scraped_by=[collector_id],
        first_scraped=now,
        last_updated=now,
        title=page.title,
        description=page.description,
        text_content=page.text_content,
        discovered_links=_union([], page.discovered_links),
        structured_data=dict(page.structured_data),
        technologies=_union([], page.technologies),
        api_endpoints=_union([], page.api_endpoints),
        contact_info=page.contact_info,
        social_links=dict(page.social_links),
        forms=[],
        images=[],
    )
    _merge_forms_and_images(merged, page)
    rescore(merged)
    return merged


def merge_page(existing: MergedPageData, page: PageResult, collector_id: str) -> None:
    """
    Fold a new page result into an existing record, in place.

    Longer titles and descriptions win, text is appended, collections are
    unioned, and both scores are recomputed before returning.
    """
    if collector_id not in existing.scraped_by:
        existing.scraped_by.append(collector_id)
    existing.last_updated = time.time()

    if page.title and len(page.title) > len(existing.title):
        existing.title = page.title
    if page.description and len(page.description) > len(existing.description):
        existing.description = page.description

    if page.text_content:
        existing.text_content = (
            existing.text_content + TEXT_SEPARATOR + page.text_content
            if existing.text_content else page.text_content
        )

    existing.discovered_links = _union(existing.discovered_links, page.discovered_links)
    existing.technologies = _union(existing.technologies, page.technologies)
    existing.api_endpoints = _union(existing.api_endpoints, page.api_endpoints)
    existing.structured_data.update(page.structured_data)
    existing.social_links.update(page.social_links)
    existing.contact_info = merge_contact_info(existing.contact_info, page.contact_info)
    _merge_forms_and_images(existing, page)

    rescore(existing)


def _merge_forms_and_images(existing: MergedPageData, page: PageResult) -> None:
    actions = {form.action or "" for form in existing.forms}
    for form in page.forms:
        action = form.action or ""
        if action not in actions:
            actions.add(action)
            existing.forms.append(form)

    sources = {image.src for image in existing.images}
    for image in page.images:
        if image.src not in sources:
            sources.add(image.src)
            existing.images.append(image)


def rescore(data: MergedPageData) -> None:
    data.quality_score = calculate_quality_score(data)
    data.completeness_score = calculate_completeness_score(data)


def calculate_quality_score(data: MergedPageData) -> int:
    """Additive 0-100 score of how trustworthy and rich a record is."""
    score = 0
    if len(data.scraped_by) > 1:
        score += 20
    if data.title and data.description:
        score += 15
    if data.structured_data:
        score += 15
    if data.technologies:
        score += 10
    if data.contact_info.emails or data.contact_info.phones:
        score += 15
    if len(data.text_content) > SUBSTANTIAL_TEXT_LENGTH:
        score += 10
    if len(data.discovered_links) > MANY_LINKS:
        score += 10
    if data.images:
        score += 5
    return min(100, score)


def calculate_completeness_score(data: MergedPageData) -> int:
    """Percentage of the ten tracked fields that are populated."""
    fields = (
        data.title,
        data.description,
        data.text_content,
        data.discovered_links,
        data.structured_data,
        data.technologies,
        data.api_endpoints,
        data.social_links,
        data.forms,
        data.images,
    )
    return round(sum(1 for value in fields if value) / len(fields) * 100)


def update_totals(totals: SessionTotals, stats: CollectorStats) -> None:
    totals.pages_attempted += stats.pages_attempted
    totals.pages_succeeded += stats.pages_succeeded
    totals.pages_failed += stats.pages_failed
    totals.bytes_downloaded += stats.bytes_downloaded
    totals.data_points_extracted += stats.data_points_extracted
    totals.links_discovered += stats.links_discovered
    totals.duration_ms += stats.duration_ms

    if totals.pages_attempted > 0:
        totals.average_time_per_page_ms = totals.duration_ms / totals.pages_attempted
        totals.success_rate = totals.pages_succeeded / totals.pages_attempted * 100
