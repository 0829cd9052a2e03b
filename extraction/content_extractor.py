"""
Content Extractor Module

Extracts page level content from HTML: title, description, headings,
main text, paragraphs, images, links, lists, tables and forms.
"""

import logging
from typing import List, Optional, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

import config
from extraction.models import (
    ExtractedContent,
    FormField,
    FormRef,
    ImageRef,
    LinkRef,
    ListData,
    TableData,
)

logger = logging.getLogger(__name__)

MAIN_CONTENT_SELECTORS = [
    'main',
    'article',
    '[role="main"]',
    '#content',
    '.content',
    '#main',
    '.main',
]

MIN_MAIN_CONTENT_LENGTH = 100
MIN_PARAGRAPH_LENGTH = 20
SKIPPED_LINK_PREFIXES = ('javascript:', 'mailto:', 'tel:', '#', 'data:')


def clean_text(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return ' '.join(text.split())


def meta_content(soup: BeautifulSoup, name: Optional[str] = None, prop: Optional[str] = None) -> str:
    """Read the content attribute of a meta tag matched by name or property."""
    attrs = {'name': name} if name else {'property': prop}
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip()
    return ''


class ContentExtractor:
    """
    Stateless extractor for the readable content of a page.

    Script, style and noscript elements are dropped before any text is read.
    """

    name = "content"

    def __init__(self, max_text_length: int = None):
        self.max_text_length = max_text_length or config.CONTENT_MAX_TEXT_LENGTH

    def extract(self, markup: str, url: Optional[str] = None) -> ExtractedContent:
        """
        Extract content from an HTML document.

        Args:
            markup: Raw HTML
            url: URL the document was fetched from, used to resolve relative links

        Returns:
            ExtractedContent for the document
        """
        soup = BeautifulSoup(markup or '', 'lxml')
        for tag in soup(['script', 'style', 'noscript']):
            tag.decompose()

        return ExtractedContent(
            title=self._extract_title(soup),
            description=self._extract_description(soup),
            headings={level: self._heading_texts(soup, level) for level in ('h1', 'h2', 'h3')},
            main_content=self._extract_main_content(soup),
            paragraphs=self._extract_paragraphs(soup),
            images=self._extract_images(soup, url),
            links=self._extract_links(soup, url),
            lists=self._extract_lists(soup),
            tables=self._extract_tables(soup),
            forms=self._extract_forms(soup, url),
        )

    def _extract_title(self, soup: BeautifulSoup) -> str:
        if soup.title and soup.title.get_text(strip=True):
            return clean_text(soup.title.get_text())
        title = meta_content(soup, prop='og:title') or meta_content(soup, name='twitter:title')
        if title:
            return title
        h1 = soup.find('h1')
        return clean_text(h1.get_text()) if h1 else ''

    def _extract_description(self, soup: BeautifulSoup) -> str:
        return (
            meta_content(soup, name='description')
            or meta_content(soup, prop='og:description')
            or meta_content(soup, name='twitter:description')
        )

    def _heading_texts(self, soup: BeautifulSoup, level: str) -> List[str]:
        texts = [clean_text(h.get_text()) for h in soup.find_all(level)]
        return [text for text in texts if text]

    def _extract_main_content(self, soup: BeautifulSoup) -> str:
        text = ''
        for selector in MAIN_CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            candidate = clean_text(element.get_text(' '))
            if len(candidate) > MIN_MAIN_CONTENT_LENGTH:
                text = candidate
                break

        if not text:
            body = soup.body or soup
            text = clean_text(body.get_text(' '))

        return text[:self.max_text_length]

    def _extract_paragraphs(self, soup: BeautifulSoup) -> List[str]:
        paragraphs = []
        for p in soup.find_all('p'):
            text = clean_text(p.get_text(' '))
            if len(text) > MIN_PARAGRAPH_LENGTH:
                paragraphs.append(text)
        return paragraphs

    def _extract_images(self, soup: BeautifulSoup, url: Optional[str]) -> List[ImageRef]:
        images = []
        for img in soup.find_all('img', src=True):
            images.append(ImageRef(
                src=urljoin(url or '', img['src'].strip()),
                alt=img.get('alt', '').strip(),
                title=img.get('title', '').strip(),
            ))
        return images

    def _extract_links(self, soup: BeautifulSoup, url: Optional[str]) -> List[LinkRef]:
        links = []
        seen: Set[str] = set()
        base_host = urlparse(url).netloc.lower() if url else ''

        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href or href.lower().startswith(SKIPPED_LINK_PREFIXES):
                continue
            absolute = urljoin(url or '', href)
            if absolute in seen:
                continue
            seen.add(absolute)

            host = urlparse(absolute).netloc.lower()
            links.append(LinkRef(
                href=absolute,
                text=clean_text(anchor.get_text(' ')),
                is_external=bool(host) and host != base_host,
            ))
        return links

    def _extract_lists(self, soup: BeautifulSoup) -> List[ListData]:
        lists = []
        for element in soup.find_all(['ul', 'ol']):
            items = [clean_text(li.get_text(' ')) for li in element.find_all('li', recursive=False)]
            items = [item for item in items if item]
            if items:
                lists.append(ListData(
                    type='ordered' if element.name == 'ol' else 'unordered',
                    items=items,
                ))
        return lists

    def _extract_tables(self, soup: BeautifulSoup) -> List[TableData]:
        tables = []
        for table in soup.find_all('table'):
            rows = table.find_all('tr')
            headers: List[str] = []
            thead = table.find('thead')

            if thead is not None:
                headers = [clean_text(cell.get_text(' ')) for cell in thead.find_all(['th', 'td'])]
                body_rows = [row for row in rows if row.find_parent('thead') is None]
            elif rows:
                headers = [clean_text(cell.get_text(' ')) for cell in rows[0].find_all(['th', 'td'])]
                body_rows = rows[1:]
            else:
                body_rows = []

            data = [
                [clean_text(cell.get_text(' ')) for cell in row.find_all(['td', 'th'])]
                for row in body_rows
            ]
            data = [row for row in data if any(row)]
            if headers or data:
                tables.append(TableData(headers=headers, rows=data))
        return tables

    def _extract_forms(self, soup: BeautifulSoup, url: Optional[str]) -> List[FormRef]:
        forms = []
        for form in soup.find_all('form'):
            action = form.get('action', '').strip()
            forms.append(FormRef(
                action=urljoin(url, action) if (url and action) else action,
                method=(form.get('method') or 'GET').upper(),
                fields=self._form_fields(form),
            ))
        return forms

    def _form_fields(self, form: Tag) -> List[FormField]:
        fields = []
        for control in form.find_all(['input', 'textarea', 'select']):
            name = control.get('name')
            if not name:
                continue
            control_type = control.get('type', 'text') if control.name == 'input' else control.name
            if control_type in ('submit', 'button', 'hidden', 'reset'):
                continue
            fields.append(FormField(
                name=name,
                type=control_type,
                required=control.has_attr('required'),
            ))
        return fields
