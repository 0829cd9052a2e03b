"""
Metadata Extractor Module

This module provides extraction capabilities for the metadata formats
embedded in HTML: basic meta tags, OpenGraph, Twitter Cards, Dublin Core,
JSON-LD structured data, microdata and custom meta tags.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from extraction.models import ExtractedMetadata, MicrodataItem
from utils.logging import Tracer

logger = logging.getLogger(__name__)

OPEN_GRAPH_FIELDS = {
    'title': 'og:title',
    'description': 'og:description',
    'type': 'og:type',
    'url': 'og:url',
    'image': 'og:image',
    'site_name': 'og:site_name',
    'locale': 'og:locale',
    'video': 'og:video',
    'audio': 'og:audio',
}

TWITTER_FIELDS = {
    'card': 'twitter:card',
    'site': 'twitter:site',
    'creator': 'twitter:creator',
    'title': 'twitter:title',
    'description': 'twitter:description',
    'image': 'twitter:image',
    'image_alt': 'twitter:image:alt',
}

DUBLIN_CORE_FIELDS = [
    'title', 'creator', 'subject', 'description', 'publisher', 'contributor',
    'date', 'type', 'format', 'identifier', 'source', 'language', 'relation',
    'coverage', 'rights',
]

STANDARD_META_NAMES = {
    'title', 'description', 'keywords', 'author', 'generator',
    'robots', 'viewport', 'charset', 'language',
}

CHARSET_PATTERN = re.compile(r'charset=([^;]+)', re.IGNORECASE)


def _meta(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip()
    return ''


class MetadataExtractor:
    """
    Stateless extractor for document metadata.

    Invalid JSON-LD blocks are skipped and recorded as breadcrumbs on the
    tracer instead of failing the whole extraction.
    """

    name = "metadata"

    def __init__(self, tracer: Optional[Tracer] = None):
        self.tracer = tracer or Tracer(__name__)

    def extract(self, markup: str, url: Optional[str] = None) -> ExtractedMetadata:
        """
        Extract metadata from an HTML document.

        Args:
            markup: Raw HTML
            url: URL the document was fetched from (used for logging only)

        Returns:
            ExtractedMetadata for the document
        """
        soup = BeautifulSoup(markup or '', 'lxml')
        metadata = ExtractedMetadata(
            basic=self.extract_basic(soup),
            open_graph=self._collect(soup, OPEN_GRAPH_FIELDS, 'property'),
            twitter=self._collect(soup, TWITTER_FIELDS, 'name'),
            dublin_core=self.extract_dublin_core(soup),
            json_ld=self.extract_jsonld(soup, url),
            microdata=self.extract_microdata(soup),
            custom=self.extract_custom(soup),
        )
        logger.debug(
            f"Metadata extraction for {url}: {len(metadata.json_ld)} JSON-LD blocks, "
            f"{len(metadata.microdata)} microdata items"
        )
        return metadata

    def extract_basic(self, soup: BeautifulSoup) -> Dict[str, Any]:
        basic: Dict[str, Any] = {}

        title = soup.title.get_text(strip=True) if soup.title else ''
        basic['title'] = title or _meta(soup, name='title')
        basic['description'] = _meta(soup, name='description')

        keywords = _meta(soup, name='keywords')
        basic['keywords'] = [k.strip() for k in keywords.split(',') if k.strip()]

        basic['author'] = _meta(soup, name='author')
        basic['generator'] = _meta(soup, name='generator')
        basic['robots'] = _meta(soup, name='robots')

        canonical = soup.find('link', rel='canonical')
        basic['canonical'] = canonical.get('href', '') if canonical else ''

        html = soup.find('html')
        basic['language'] = (
            (html.get('lang', '') if html else '')
            or _meta(soup, name='language')
            or _meta(soup, **{'http-equiv': 'content-language'})
        )
        basic['viewport'] = _meta(soup, name='viewport')

        charset_tag = soup.find('meta', charset=True)
        charset = charset_tag['charset'] if charset_tag else ''
        if not charset:
            match = CHARSET_PATTERN.search(_meta(soup, **{'http-equiv': 'Content-Type'}))
            charset = match.group(1).strip() if match else ''
        basic['charset'] = charset

        return {key: value for key, value in basic.items() if value}

    def _collect(self, soup: BeautifulSoup, fields: Dict[str, str], attribute: str) -> Dict[str, str]:
        collected = {}
        for key, meta_name in fields.items():
            value = _meta(soup, **{attribute: meta_name})
            if value:
                collected[key] = value
        return collected

    def extract_dublin_core(self, soup: BeautifulSoup) -> Dict[str, str]:
        dublin_core = {}
        for field_name in DUBLIN_CORE_FIELDS:
            value = (
                _meta(soup, name=f'DC.{field_name.capitalize()}')
                or _meta(soup, name=f'dc.{field_name}')
            )
            if value:
                dublin_core[field_name] = value
        return dublin_core

    def extract_jsonld(self, soup: BeautifulSoup, url: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Extract JSON-LD structured data.

        Top level arrays are flattened so each entry is one JSON-LD object.
        """
        jsonld_data = []

        for script in soup.find_all('script', type='application/ld+json'):
            script_content = script.string.strip() if script.string else ''
            if not script_content:
                continue
            try:
                json_data = json.loads(script_content)
            except json.JSONDecodeError as e:
                self.tracer.breadcrumb('jsonld_parse_error', 'Failed to parse JSON-LD', url=url, error=str(e))
                continue

            # Handle single item or array
            if isinstance(json_data, list):
                jsonld_data.extend(item for item in json_data if isinstance(item, dict))
            elif isinstance(json_data, dict):
                jsonld_data.append(json_data)

        return jsonld_data

    def extract_microdata(self, soup: BeautifulSoup) -> List[MicrodataItem]:
        items = []
        for element in soup.find_all(attrs={'itemscope': True}):
            item_type = element.get('itemtype')
            if not item_type:
                continue
            items.append(MicrodataItem(
                type=re.sub(r'.*/([^/]+)$', r'\1', item_type.strip()),
                properties=self._item_properties(element),
            ))
        return items

    def _item_properties(self, element: Tag) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        for prop in element.find_all(attrs={'itemprop': True}):
            name = prop['itemprop']
            value = (
                prop.get('content')
                or prop.get('href')
                or prop.get('src')
                or prop.get('datetime')
                or prop.get_text(strip=True)
            )
            # Repeated properties are collected into a list
            if name in properties:
                if isinstance(properties[name], list):
                    properties[name].append(value)
                else:
                    properties[name] = [properties[name], value]
            else:
                properties[name] = value
        return properties

    def extract_custom(self, soup: BeautifulSoup) -> Dict[str, str]:
        custom = {}
        for meta in soup.find_all('meta'):
            name = meta.get('name') or meta.get('property')
            content = meta.get('content')
            if not name or not content or name in STANDARD_META_NAMES:
                continue
            if name.startswith(('og:', 'twitter:', 'DC.', 'dc.')):
                continue
            custom[name] = content
        return custom
