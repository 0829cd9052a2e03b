"""
Rule based next step suggestions for a session.

Nothing here is learned or probabilistic: every suggestion follows from a
fact about the session (confidence 100) or a simple heuristic (confidence 50).
"""

import logging
from typing import List, Mapping

import config
from collectors.base_collector import BaseCollector
from collectors.types import CollectorStrategy, DiscoveredLink
from core.models import SessionState, Suggestion, SuggestionAction
from extraction.signals import javascript_frameworks

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}

RENDERING_STRATEGIES = (CollectorStrategy.DYNAMIC.value, CollectorStrategy.SPA.value)


def get_undiscovered_links(state: SessionState) -> List[DiscoveredLink]:
    """
    Links found by any run that nobody has collected yet.

    Excludes merged URLs, links flagged as scraped and URLs known before the
    session started. Internal links sort first, then high > medium > low;
    ties keep discovery order.
    """
    candidates = {}
    for result in state.history:
        for link in result.discovered_links:
            if link.url in candidates or link.url in state.merged_data or link.scraped:
                continue
            if link.url in state.previously_discovered_urls:
                logger.debug(f"Skipping previously discovered link {link.url}")
                continue
            candidates[link.url] = link

    return sorted(
        candidates.values(),
        key=lambda link: (link.type != 'internal', PRIORITY_ORDER.get(link.priority or 'low', 2)),
    )


def _format_duration(milliseconds: int) -> str:
    seconds = milliseconds / 1000
    if seconds < 60:
        return f"~{seconds:.0f}s"
    return f"~{seconds / 60:.1f}min"


def _detected_frameworks(state: SessionState) -> List[str]:
    technologies = []
    for page in state.merged_data.values():
        technologies.extend(page.technologies)
    return javascript_frameworks(technologies)


def _collector_suggestions(state: SessionState, collectors: Mapping[str, BaseCollector]) -> List[Suggestion]:
    used_ids = {result.collector_id for result in state.history}
    used_strategies = {result.strategy for result in state.history}
    urls = list(state.merged_data)
    frameworks = _detected_frameworks(state)

    suggestions = []
    for collector_id in state.collector_ids:
        collector = collectors[collector_id]
        if collector_id in used_ids or not collector.config.enabled:
            continue
        if collector.strategy in used_strategies:
            continue

        if collector.strategy in RENDERING_STRATEGIES:
            if frameworks:
                reason = f"Detected {', '.join(frameworks)}; rendering may reveal content static HTML misses"
            else:
                reason = "May capture dynamic content not visible to the collectors used so far"
        else:
            reason = f"{collector.name} has not been run yet"

        estimate = collector.estimate_value(urls, state.merged_data)
        suggestions.append(Suggestion(
            action=SuggestionAction.USE_COLLECTOR,
            label=f"Try {collector.name}",
            reason=reason,
            confidence=50,
            collector_id=collector_id,
            estimated_time=_format_duration(estimate.estimated_time_ms) if urls else None,
            estimated_value='medium',
            target_urls=urls,
        ))
    return suggestions


def generate_suggestions(state: SessionState, collectors: Mapping[str, BaseCollector]) -> List[Suggestion]:
    """
    Build the suggestion list for the current session state.

    The list always ends with exactly one "complete" suggestion.
    """
    suggestions = _collector_suggestions(state, collectors)

    sparse = [
        page.url for page in state.merged_data.values()
        if page.completeness_score < config.SUGGESTION_LOW_COMPLETENESS
    ]
    if sparse:
        suggestions.append(Suggestion(
            action=SuggestionAction.EXTRACT_DATA,
            label=f"Enrich {len(sparse)} sparse page(s)",
            reason=f"{len(sparse)} page(s) have completeness below {config.SUGGESTION_LOW_COMPLETENESS}%",
            confidence=100,
            estimated_value='medium',
            target_urls=sparse,
        ))

    undiscovered = get_undiscovered_links(state)
    if undiscovered:
        count = min(len(undiscovered), config.SUGGESTION_MAX_TARGET_URLS)
        suggestions.append(Suggestion(
            action=SuggestionAction.EXPLORE_LINKS,
            label=f"Collect {count} more page(s)",
            reason=f"{len(undiscovered)} page(s) discovered but not yet collected",
            confidence=100,
            estimated_time=f"~{count * 3}s",
            estimated_value='medium',
            target_urls=[link.url for link in undiscovered[:count]],
        ))

    used = {result.collector_id for result in state.history}
    suggestions.append(Suggestion(
        action=SuggestionAction.COMPLETE,
        label="Complete collection",
        reason=f"{len(state.merged_data)} page(s) collected, {len(used)} collector(s) used",
        confidence=100,
        estimated_value='low',
    ))
    return suggestions
