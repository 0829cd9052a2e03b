"""
URL helpers shared by collectors and the session engine.

Covers URL validation, domain comparison and classification of
discovered links into types and exploration priorities.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urldefrag, urlparse

LINK_TYPES = ("internal", "external", "asset", "api", "social")
PRIORITIES = ("high", "medium", "low")

SOCIAL_DOMAINS = (
    "facebook.com", "twitter.com", "x.com", "linkedin.com", "instagram.com",
    "youtube.com", "github.com", "tiktok.com", "pinterest.com", "reddit.com",
    "discord.gg", "discord.com", "t.me", "telegram.me", "wa.me",
    "whatsapp.com", "medium.com", "slack.com",
)

ASSET_EXTENSIONS = (
    # Images
    '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp', '.ico', '.bmp',
    # Videos
    '.mp4', '.webm', '.ogg', '.mov', '.avi', '.wmv', '.flv',
    # Audio
    '.mp3', '.wav', '.m4a', '.aac',
    # Documents
    '.pdf', '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    # Archives
    '.zip', '.rar', '.gz', '.tar', '.7z',
    # Static bundles
    '.css', '.js', '.woff', '.woff2', '.ttf',
)

API_PATH_PATTERN = re.compile(r'(/api(/|$)|/graphql\b|/v\d+/|/rest/|\.json$)', re.IGNORECASE)

# Paths that usually carry company level information worth exploring first
KEY_PATH_PATTERN = re.compile(
    r'^/(about|about-us|company|contact|contact-us|team|people|leadership|pricing|'
    r'products?|services|solutions|careers|jobs)(/|$)',
    re.IGNORECASE
)

def is_valid_url(url: str) -> bool:
    """
    Check that a URL is an absolute http(s) URL with a host.

    Args:
        url: URL to check

    Returns:
        True if the URL can be fetched by a collector
    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)

def normalize_url(url: str) -> str:
    """
    Normalize a URL for use as a merge key: trims whitespace and drops the fragment.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    return urldefrag(url.strip())[0]

def get_domain(url: str) -> str:
    """
    Extract the host from a URL, lowercased and without a leading "www.".

    Args:
        url: URL to extract domain from

    Returns:
        Domain string
    """
    domain = urlparse(url).netloc.lower().split('@')[-1].split(':')[0]
    if domain.startswith('www.'):
        domain = domain[4:]
    return domain

def is_same_domain(url1: str, url2: str) -> bool:
    """
    Check if two URLs belong to the same host (ignoring "www.").

    Args:
        url1: First URL to compare
        url2: Second URL to compare

    Returns:
        True if both URLs share the same host
    """
    return get_domain(url1) == get_domain(url2)

def is_media_url(url: str) -> bool:
    """
    Check if a URL points to a static asset (images, documents, bundles).

    Args:
        url: URL to check

    Returns:
        True if the URL likely points to an asset
    """
    path = urlparse(url).path.lower()
    return path.endswith(ASSET_EXTENSIONS)

def is_social_url(url: str) -> bool:
    domain = get_domain(url)
    return any(domain == social or domain.endswith('.' + social) for social in SOCIAL_DOMAINS)

def classify_link(url: str, page_url: str) -> str:
    """
    Classify a discovered link.

    Args:
        url: Absolute link URL
        page_url: URL of the page the link was found on

    Returns:
        One of "internal", "external", "asset", "api" or "social"
    """
    if is_media_url(url):
        return "asset"
    internal = is_same_domain(url, page_url)
    if internal and API_PATH_PATTERN.search(urlparse(url).path):
        return "api"
    if internal:
        return "internal"
    if is_social_url(url):
        return "social"
    return "external"

def link_priority(url: str, link_type: str, hint: Optional[str] = None) -> str:
    """
    Decide how worthwhile a discovered link is to explore.

    Args:
        url: Absolute link URL
        link_type: Result of classify_link()
        hint: Caller supplied priority, used as-is when valid

    Returns:
        "high", "medium" or "low"
    """
    if hint in PRIORITIES:
        return hint
    if link_type != "internal":
        return "low"
    path = urlparse(url).path or "/"
    depth = len([segment for segment in path.split('/') if segment])
    if depth <= 1 or KEY_PATH_PATTERN.match(path):
        return "high"
    return "medium"

def compile_patterns(patterns: Iterable[str]) -> List[re.Pattern]:
    """Compile regex patterns, raising re.error for invalid ones."""
    return [re.compile(pattern) for pattern in patterns]
