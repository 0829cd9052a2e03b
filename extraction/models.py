"""
Extraction Result Models

This module defines the typed structures produced by the structured
extractors and the extraction pipeline.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ImageRef:
    src: str
    alt: str = ""
    title: str = ""


@dataclass
class LinkRef:
    href: str
    text: str = ""
    is_external: bool = False


@dataclass
class FormField:
    name: str
    type: str = "text"
    required: bool = False


@dataclass
class FormRef:
    action: str = ""
    method: str = "GET"
    fields: List[FormField] = field(default_factory=list)


@dataclass
class TableData:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)


@dataclass
class ListData:
    type: str  # "ordered" or "unordered"
    items: List[str] = field(default_factory=list)


@dataclass
class ExtractedContent:
    """Page level content: text, headings, media and navigation."""

    title: str = ""
    description: str = ""
    headings: Dict[str, List[str]] = field(default_factory=lambda: {"h1": [], "h2": [], "h3": []})
    main_content: str = ""
    paragraphs: List[str] = field(default_factory=list)
    images: List[ImageRef] = field(default_factory=list)
    links: List[LinkRef] = field(default_factory=list)
    lists: List[ListData] = field(default_factory=list)
    tables: List[TableData] = field(default_factory=list)
    forms: List[FormRef] = field(default_factory=list)


@dataclass
class EmailEntry:
    email: str
    type: str = "general"  # support | sales | info | general
    context: str = ""


@dataclass
class PhoneEntry:
    number: str
    type: str = "main"  # main | support | fax | mobile
    formatted: str = ""


@dataclass
class Address:
    full: str
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    type: str = "office"


@dataclass
class BusinessHours:
    day: str
    open: str = ""
    close: str = ""
    closed: bool = False


@dataclass
class ContactForm:
    action: str = ""
    method: str = "GET"
    fields: List[str] = field(default_factory=list)


@dataclass
class ExtractedContact:
    emails: List[EmailEntry] = field(default_factory=list)
    phones: List[PhoneEntry] = field(default_factory=list)
    addresses: List[Address] = field(default_factory=list)
    business_hours: Optional[List[BusinessHours]] = None
    contact_forms: List[ContactForm] = field(default_factory=list)


@dataclass
class SocialProfile:
    platform: str
    url: str
    handle: str = ""
    type: str = "profile"  # profile | page | group | channel


@dataclass
class SharingMetadata:
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    og_type: str = ""
    og_site_name: str = ""
    twitter_card: str = ""
    twitter_site: str = ""
    twitter_creator: str = ""


@dataclass
class Feed:
    url: str
    title: str = ""
    type: str = "rss"  # rss | atom


@dataclass
class ExtractedSocial:
    profiles: List[SocialProfile] = field(default_factory=list)
    sharing: SharingMetadata = field(default_factory=SharingMetadata)
    feeds: List[Feed] = field(default_factory=list)


@dataclass
class MicrodataItem:
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractedMetadata:
    basic: Dict[str, Any] = field(default_factory=dict)
    open_graph: Dict[str, str] = field(default_factory=dict)
    twitter: Dict[str, str] = field(default_factory=dict)
    dublin_core: Dict[str, str] = field(default_factory=dict)
    json_ld: List[Dict[str, Any]] = field(default_factory=list)
    microdata: List[MicrodataItem] = field(default_factory=list)
    custom: Dict[str, str] = field(default_factory=dict)


@dataclass
class ExtractionSummary:
    has_content: bool = False
    has_contact: bool = False
    has_social: bool = False
    has_structured_data: bool = False
    total_data_points: int = 0


@dataclass
class ExtractorFailure:
    """A non-fatal extractor failure recorded by the pipeline."""

    extractor: str
    error_type: str
    message: str


@dataclass
class ExtractedData:
    """
    Combined output of the extraction pipeline for one document.

    A category is None when its extractor was disabled or failed; failed
    extractors are listed in ``failures``.
    """

    content: Optional[ExtractedContent] = None
    contact: Optional[ExtractedContact] = None
    social: Optional[ExtractedSocial] = None
    metadata: Optional[ExtractedMetadata] = None
    summary: ExtractionSummary = field(default_factory=ExtractionSummary)
    failures: List[ExtractorFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
