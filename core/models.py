"""
Data model for additive scraping sessions.

A session owns one MergedPageData per URL and accumulates run history,
totals and suggestions. Everything here converts to plain JSON-serialisable
data with to_dict().
"""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from collectors.types import CollectorResult, ContactInfo, FormData, ImageData


class SessionStatus(str, Enum):
    ACTIVE = "active"
    # Declared for storage compatibility; no operation enters or leaves it
    PAUSED = "paused"
    COMPLETED = "completed"


class SuggestionAction(str, Enum):
    USE_COLLECTOR = "use_collector"
    EXPLORE_LINKS = "explore_links"
    EXTRACT_DATA = "extract_data"
    COMPLETE = "complete"


@dataclass
class MergedPageData:
    """Everything known about one URL, accumulated across collector runs."""

    url: str
    scraped_by: List[str] = field(default_factory=list)
    first_scraped: float = field(default_factory=time.time)
    last_updated: float = field(default_factory=time.time)
    title: str = ""
    description: str = ""
    text_content: str = ""
    discovered_links: List[str] = field(default_factory=list)
    structured_data: Dict[str, Any] = field(default_factory=dict)
    technologies: List[str] = field(default_factory=list)
    api_endpoints: List[str] = field(default_factory=list)
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    social_links: Dict[str, str] = field(default_factory=dict)
    forms: List[FormData] = field(default_factory=list)
    images: List[ImageData] = field(default_factory=list)
    quality_score: int = 0
    completeness_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Suggestion:
    """A rule based next step. Confidence is 100 for a fact, 50 for a guess."""

    action: SuggestionAction
    label: str
    reason: str
    confidence: int
    collector_id: Optional[str] = None
    estimated_time: Optional[str] = None
    estimated_value: Optional[str] = None
    target_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['action'] = self.action.value
        return data


@dataclass
class SessionTotals:
    """Cumulative statistics across every run of a session."""

    duration_ms: float = 0.0
    pages_attempted: int = 0
    pages_succeeded: int = 0
    pages_failed: int = 0
    bytes_downloaded: int = 0
    data_points_extracted: int = 0
    links_discovered: int = 0
    average_time_per_page_ms: float = 0.0
    success_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DataSummary:
    pages_scraped: int
    data_points: int
    discovered_links: int
    collector_runs: int
    average_quality: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RunOutcome:
    """What AdditiveSession.add_run() hands back to the caller."""

    new_data: CollectorResult
    totals: DataSummary
    suggestions: List[Suggestion]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'new_data': self.new_data.to_dict(),
            'totals': self.totals.to_dict(),
            'suggestions': [suggestion.to_dict() for suggestion in self.suggestions],
        }


@dataclass
class SessionState:
    """Mutable aggregate behind an AdditiveSession. Single writer."""

    id: str
    domain: str
    started_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    history: List[CollectorResult] = field(default_factory=list)
    merged_data: Dict[str, MergedPageData] = field(default_factory=dict)
    collector_ids: List[str] = field(default_factory=list)
    total_stats: SessionTotals = field(default_factory=SessionTotals)
    status: SessionStatus = SessionStatus.ACTIVE
    previously_discovered_urls: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'domain': self.domain,
            'started_at': self.started_at,
            'last_activity': self.last_activity,
            'history': [result.to_dict() for result in self.history],
            'merged_data': {url: page.to_dict() for url, page in self.merged_data.items()},
            'collectors': list(self.collector_ids),
            'total_stats': self.total_stats.to_dict(),
            'status': self.status.value,
            'previously_discovered_urls': sorted(self.previously_discovered_urls),
        }
