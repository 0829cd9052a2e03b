"""
Collector data model.

Configuration and collector-family metadata are pydantic models validated
at construction. Run outputs (page results, collector results, stats,
discovered links, validation outcomes) are frozen dataclasses: once a
collector returns them they are never mutated.
"""

import re
import time
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

import config


class CollectorStrategy(str, Enum):
    """How a collector obtains page content"""
    STATIC = "static"
    DYNAMIC = "dynamic"
    SPA = "spa"
    API = "api"


class CollectorSpeed(str, Enum):
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class CollectorConfig(BaseModel):
    """Static description of a collector, validated when the collector is built."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    strategy: CollectorStrategy
    description: str = ""
    speed: CollectorSpeed = CollectorSpeed.MEDIUM
    timeout: float = Field(default_factory=lambda: config.COLLECTOR_TIMEOUT_SECONDS, gt=0)
    page_timeout: float = Field(default_factory=lambda: config.COLLECTOR_PAGE_TIMEOUT_SECONDS, gt=0)
    max_retries: int = Field(default_factory=lambda: config.COLLECTOR_MAX_RETRIES, ge=0)
    max_concurrency: int = Field(default_factory=lambda: config.COLLECTOR_MAX_CONCURRENCY, ge=1)
    supported_patterns: List[str] = Field(default_factory=list)
    excluded_patterns: List[str] = Field(default_factory=list)
    enabled: bool = True

    @field_validator('id', 'name')
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator('supported_patterns', 'excluded_patterns')
    @classmethod
    def _patterns_compile(cls, value: List[str]) -> List[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern {pattern!r}: {e}") from e
        return value


class StaticCollectorMetadata(BaseModel):
    """Run metadata reported by plain HTTP collectors."""
    kind: Literal["static"] = "static"
    user_agent: str = ""
    status_codes: Dict[str, int] = Field(default_factory=dict)
    redirects: int = 0


class DynamicCollectorMetadata(BaseModel):
    """Run metadata reported by headless browser collectors."""
    kind: Literal["dynamic"] = "dynamic"
    browser: str = "chromium"
    javascript_enabled: bool = True
    wait_for_selectors: List[str] = Field(default_factory=list)
    screenshots: List[str] = Field(default_factory=list)


CollectorMetadata = Annotated[
    Union[StaticCollectorMetadata, DynamicCollectorMetadata],
    Field(discriminator="kind"),
]

_metadata_adapter = TypeAdapter(CollectorMetadata)


def parse_collector_metadata(data: Dict[str, Any]) -> Union[StaticCollectorMetadata, DynamicCollectorMetadata]:
    """Rebuild typed collector metadata from its exported dict form."""
    return _metadata_adapter.validate_python(data)


@dataclass(frozen=True)
class ContactInfo:
    emails: Tuple[str, ...] = ()
    phones: Tuple[str, ...] = ()
    addresses: Tuple[str, ...] = ()
    contact_forms: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.emails or self.phones or self.addresses or self.contact_forms)


@dataclass(frozen=True)
class FormData:
    action: str = ""
    method: str = "GET"
    fields: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class ImageData:
    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class PageResult:
    """One collector's output for one URL."""

    url: str
    success: bool
    status_code: Optional[int] = None
    title: str = ""
    description: str = ""
    text_content: str = ""
    discovered_links: Tuple[str, ...] = ()
    structured_data: Dict[str, Any] = field(default_factory=dict)
    technologies: Tuple[str, ...] = ()
    api_endpoints: Tuple[str, ...] = ()
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    social_links: Dict[str, str] = field(default_factory=dict)
    forms: Tuple[FormData, ...] = ()
    images: Tuple[ImageData, ...] = ()
    error: Optional[str] = None
    error_code: Optional[str] = None
    duration_ms: float = 0.0
    bytes_downloaded: int = 0
    timestamp: float = field(default_factory=time.time)

    @property
    def data_points(self) -> int:
        """Number of structured items carried by this page."""
        contact = self.contact_info
        return (
            int(bool(self.title))
            + int(bool(self.description))
            + len(self.structured_data)
            + len(self.technologies)
            + len(self.api_endpoints)
            + len(contact.emails) + len(contact.phones) + len(contact.addresses)
            + len(self.social_links)
            + len(self.forms)
            + len(self.images)
        )

    @classmethod
    def failed(cls, url: str, error: str, error_code: str = "FETCH_ERROR",
               status_code: Optional[int] = None, duration_ms: float = 0.0) -> "PageResult":
        return cls(url=url, success=False, status_code=status_code, error=error,
                   error_code=error_code, duration_ms=duration_ms)


@dataclass(frozen=True)
class DiscoveredLink:
    url: str
    found_on: str
    type: str = "internal"  # internal | external | asset | api | social
    text: str = ""
    priority: Optional[str] = None  # high | medium | low
    scraped: bool = False


@dataclass(frozen=True)
class CollectorStats:
    duration_ms: float = 0.0
    pages_attempted: int = 0
    pages_succeeded: int = 0
    pages_failed: int = 0
    bytes_downloaded: int = 0
    data_points_extracted: int = 0
    links_discovered: int = 0
    average_time_per_page_ms: float = 0.0
    success_rate: float = 0.0  # percentage


@dataclass(frozen=True)
class ValidationIssue:
    severity: str  # error | warning | info
    field: str
    message: str
    affected_urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool = True
    completeness: int = 0
    quality: int = 0
    issues: Tuple[ValidationIssue, ...] = ()
    suggestions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CollectionErrorRecord:
    code: str
    message: str
    url: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ValueEstimate:
    """How much a collector is expected to add for a set of URLs."""
    expected_data_points: int
    confidence: int
    value_adds: Tuple[str, ...] = ()
    estimated_time_ms: int = 0


@dataclass(frozen=True)
class CollectorResult:
    """Output of one collector run over a batch of URLs."""

    collector_id: str
    collector_name: str
    strategy: str
    success: bool
    pages: Tuple[PageResult, ...] = ()
    discovered_links: Tuple[DiscoveredLink, ...] = ()
    stats: CollectorStats = field(default_factory=CollectorStats)
    errors: Tuple[CollectionErrorRecord, ...] = ()
    validation: Optional[ValidationResult] = None
    metadata: Optional[CollectorMetadata] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        # Pydantic metadata is dumped separately from the dataclass fields
        data = asdict(replace(self, metadata=None))
        data["metadata"] = self.metadata.model_dump() if self.metadata is not None else None
        return data


@dataclass
class CollectorOptions:
    """Per run options passed to BaseCollector.execute()."""

    max_pages: Optional[int] = None
    timeout: Optional[float] = None
    headers: Dict[str, str] = field(default_factory=dict)
    user_agent: Optional[str] = None
    wait_for_selectors: List[str] = field(default_factory=list)
    extract_types: List[str] = field(default_factory=list)
    session_id: Optional[str] = None
    url_metadata: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    screenshot: bool = False


@dataclass(frozen=True)
class CollectorStatus:
    ready: bool
    busy: bool
    initialized: bool
