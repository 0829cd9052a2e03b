"""
Social Extractor Module

Finds social media profiles, social sharing metadata (Open Graph and
Twitter cards) and RSS/Atom feeds in HTML documents.
"""

import logging
import re
from typing import Dict, List, Optional, Set, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from extraction.content_extractor import clean_text, meta_content
from extraction.models import ExtractedSocial, Feed, SharingMetadata, SocialProfile

logger = logging.getLogger(__name__)

_PREFIX = r'^(?:https?://)?(?:www\.)?'

# Platform -> anchored URL patterns; group 1 is the handle
PLATFORM_PATTERNS: Dict[str, List[re.Pattern]] = {
    'facebook': [
        re.compile(_PREFIX + r'facebook\.com/([a-zA-Z0-9.]+)', re.IGNORECASE),
        re.compile(_PREFIX + r'fb\.com/([a-zA-Z0-9.]+)', re.IGNORECASE),
    ],
    'twitter': [
        re.compile(_PREFIX + r'twitter\.com/([a-zA-Z0-9_]+)', re.IGNORECASE),
        re.compile(_PREFIX + r'x\.com/([a-zA-Z0-9_]+)', re.IGNORECASE),
    ],
    'linkedin': [
        re.compile(_PREFIX + r'linkedin\.com/(?:company|in)/([a-zA-Z0-9-]+)', re.IGNORECASE),
    ],
    'instagram': [
        re.compile(_PREFIX + r'instagram\.com/([a-zA-Z0-9_.]+)', re.IGNORECASE),
    ],
    'youtube': [
        re.compile(_PREFIX + r'youtube\.com/(?:c|channel|user)/([a-zA-Z0-9_-]+)', re.IGNORECASE),
        re.compile(_PREFIX + r'youtube\.com/@([a-zA-Z0-9_-]+)', re.IGNORECASE),
    ],
    'github': [
        re.compile(_PREFIX + r'github\.com/([a-zA-Z0-9-]+)', re.IGNORECASE),
    ],
    'tiktok': [
        re.compile(_PREFIX + r'tiktok\.com/@([a-zA-Z0-9_.]+)', re.IGNORECASE),
    ],
    'pinterest': [
        re.compile(_PREFIX + r'pinterest\.com/([a-zA-Z0-9_-]+)', re.IGNORECASE),
    ],
    'reddit': [
        re.compile(_PREFIX + r'reddit\.com/(?:r|u|user)/([a-zA-Z0-9_-]+)', re.IGNORECASE),
    ],
    'discord': [
        re.compile(_PREFIX + r'discord\.gg/([a-zA-Z0-9]+)', re.IGNORECASE),
        re.compile(_PREFIX + r'discord\.com/invite/([a-zA-Z0-9]+)', re.IGNORECASE),
    ],
    'telegram': [
        re.compile(_PREFIX + r't\.me/([a-zA-Z0-9_]+)', re.IGNORECASE),
        re.compile(_PREFIX + r'telegram\.me/([a-zA-Z0-9_]+)', re.IGNORECASE),
    ],
    'whatsapp': [
        re.compile(_PREFIX + r'wa\.me/([0-9]+)', re.IGNORECASE),
        re.compile(_PREFIX + r'whatsapp\.com/([a-zA-Z0-9]+)', re.IGNORECASE),
    ],
    'medium': [
        re.compile(_PREFIX + r'medium\.com/@([a-zA-Z0-9_.-]+)', re.IGNORECASE),
    ],
    'slack': [
        re.compile(r'^(?:https?://)?([a-zA-Z0-9-]+)\.slack\.com', re.IGNORECASE),
    ],
}

SOCIAL_CONTAINER_SELECTORS = [
    '[class*="social"]',
    '[class*="facebook"]',
    '[class*="twitter"]',
    '[class*="linkedin"]',
    '[class*="instagram"]',
    '[class*="youtube"]',
    '[id*="social"]',
]


def match_platform(url: str) -> Optional[Tuple[str, str]]:
    """
    Match a URL against the platform table.

    Returns:
        (platform, handle) for the first matching pattern, or None
    """
    for platform, patterns in PLATFORM_PATTERNS.items():
        for pattern in patterns:
            match = pattern.match(url.strip())
            if match:
                return platform, match.group(1)
    return None


def profile_type(url: str, platform: str) -> str:
    lower = url.lower()
    if platform == 'facebook':
        if '/groups/' in lower:
            return 'group'
        if '/pages/' in lower:
            return 'page'
    elif platform == 'linkedin':
        if '/company/' in lower:
            return 'page'
        if '/in/' in lower:
            return 'profile'
    elif platform == 'youtube':
        if '/channel/' in lower or '/c/' in lower:
            return 'channel'
    elif platform == 'reddit':
        if '/r/' in lower:
            return 'group'
        if '/u/' in lower or '/user/' in lower:
            return 'profile'
    elif platform in ('discord', 'telegram'):
        return 'channel'
    return 'profile'


class SocialExtractor:
    """Stateless extractor for social profiles, sharing metadata and feeds."""

    name = "social"

    def extract(self, markup: str, url: Optional[str] = None) -> ExtractedSocial:
        soup = BeautifulSoup(markup or '', 'lxml')
        social = ExtractedSocial(
            profiles=self._extract_profiles(soup),
            sharing=self._extract_sharing(soup),
            feeds=self._extract_feeds(soup, url),
        )
        logger.debug(f"Social extraction for {url}: {len(social.profiles)} profiles, {len(social.feeds)} feeds")
        return social

    def _extract_profiles(self, soup: BeautifulSoup) -> List[SocialProfile]:
        profiles: List[SocialProfile] = []
        seen: Set[str] = set()

        def add(href: str, forced_type: Optional[str] = None) -> None:
            href = href.strip()
            if not href or href in seen:
                return
            matched = match_platform(href)
            if matched is None:
                return
            platform, handle = matched
            seen.add(href)
            profiles.append(SocialProfile(
                platform=platform,
                url=href,
                handle=handle,
                type=forced_type or profile_type(href, platform),
            ))

        for anchor in soup.find_all('a', href=True):
            add(anchor['href'])

        for selector in SOCIAL_CONTAINER_SELECTORS:
            for container in soup.select(selector):
                for anchor in container.find_all('a', href=True):
                    add(anchor['href'])

        for element in soup.select('[itemtype*="schema.org/Organization"] [itemprop="sameAs"]'):
            add(element.get('href') or element.get('content') or element.get_text(strip=True), 'profile')

        return profiles

    def _extract_sharing(self, soup: BeautifulSoup) -> SharingMetadata:
        return SharingMetadata(
            og_title=meta_content(soup, prop='og:title') or meta_content(soup, name='twitter:title'),
            og_description=(
                meta_content(soup, prop='og:description') or meta_content(soup, name='twitter:description')
            ),
            og_image=meta_content(soup, prop='og:image') or meta_content(soup, name='twitter:image'),
            og_type=meta_content(soup, prop='og:type'),
            og_site_name=meta_content(soup, prop='og:site_name'),
            twitter_card=meta_content(soup, name='twitter:card'),
            twitter_site=meta_content(soup, name='twitter:site'),
            twitter_creator=meta_content(soup, name='twitter:creator'),
        )

    def _extract_feeds(self, soup: BeautifulSoup, url: Optional[str]) -> List[Feed]:
        feeds: List[Feed] = []
        seen: Set[str] = set()

        for link in soup.select('link[type="application/rss+xml"], link[type="application/atom+xml"]'):
            href = link.get('href')
            if not href:
                continue
            absolute = urljoin(url or '', href)
            if absolute in seen:
                continue
            seen.add(absolute)
            feeds.append(Feed(
                url=absolute,
                title=link.get('title', ''),
                type='rss' if 'rss' in link.get('type', '') else 'atom',
            ))

        for anchor in soup.select('a[href*="/feed"], a[href*="/rss"], a[href*="/atom"]'):
            absolute = urljoin(url or '', anchor['href'])
            if absolute in seen:
                continue
            seen.add(absolute)
            feeds.append(Feed(
                url=absolute,
                title=clean_text(anchor.get_text(' ')),
                type='atom' if 'atom' in absolute else 'rss',
            ))

        return feeds
