"""
Contact Extractor Module

Extracts emails, phone numbers, postal addresses, business hours and
contact forms from HTML, combining explicit links, schema.org microdata
and pattern matching over the visible text.
"""

import logging
import re
from typing import Dict, List, Optional, Set

from bs4 import BeautifulSoup

from extraction.content_extractor import clean_text
from extraction.models import (
    Address,
    BusinessHours,
    ContactForm,
    EmailEntry,
    ExtractedContact,
    PhoneEntry,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})')
VALID_EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'(?:\+?[1-9]\d{0,3}[\s.-]?)?\(?\d{1,4}\)?[\s.-]?\d{1,4}[\s.-]?\d{1,9}')
MIN_PHONE_DIGITS = 10

US_ZIP_PATTERN = re.compile(r'\b(\d{5}(?:-\d{4})?)\b')
US_STATE_PATTERN = re.compile(r'\b([A-Z]{2})\b')
ADDRESS_INDICATORS = [
    re.compile(r'\d+\s+\w+\s+(street|st|avenue|ave|road|rd|lane|ln|drive|dr|boulevard|blvd)', re.IGNORECASE),
    re.compile(r'\b(suite|ste|floor|fl|unit|apt)\s*#?\s*\d+', re.IGNORECASE),
    re.compile(r'\b\d{5}(?:-\d{4})?\b'),
    re.compile(r'\b[A-Z]{1,2}\d{1,2}[A-Z]?\s?\d[A-Z]{2}\b', re.IGNORECASE),
]
ADDRESS_SELECTORS = ['.address', '.location', '.contact-address', '[class*="address"]', 'address']
MIN_ADDRESS_LENGTH = 10
MAX_ADDRESS_LENGTH = 500

DAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']
TIME_PATTERN = re.compile(r'(\d{1,2}(?::\d{2})?\s*(?:am|pm)?)', re.IGNORECASE)
CONTACT_FORM_KEYWORDS = ('contact', 'email', 'message', 'inquiry')


def is_valid_email(email: str) -> bool:
    return bool(VALID_EMAIL_PATTERN.match(email)) and '..' not in email


def classify_email(email: str) -> str:
    lower = email.lower()
    if 'support' in lower:
        return 'support'
    if 'sales' in lower:
        return 'sales'
    if 'info' in lower:
        return 'info'
    return 'general'


def normalize_phone(phone: str) -> str:
    """Strip everything except digits and plus signs."""
    return re.sub(r'[^\d+]', '', phone)


def classify_phone(context: str) -> str:
    lower = context.lower()
    if 'fax' in lower:
        return 'fax'
    if 'mobile' in lower or 'cell' in lower:
        return 'mobile'
    if 'support' in lower:
        return 'support'
    return 'main'


def looks_like_address(text: str) -> bool:
    return any(pattern.search(text) for pattern in ADDRESS_INDICATORS)


def parse_address(text: str) -> Dict[str, str]:
    """Pull a US ZIP code and two letter state out of free text."""
    parsed = {}
    zip_match = US_ZIP_PATTERN.search(text)
    if zip_match:
        parsed['postal_code'] = zip_match.group(1)
    state_match = US_STATE_PATTERN.search(text)
    if state_match:
        parsed['state'] = state_match.group(1)
    return parsed


def parse_time_range(text: str) -> Dict[str, object]:
    if 'closed' in text.lower():
        return {'closed': True}
    times = TIME_PATTERN.findall(text)
    if len(times) >= 2:
        return {'open': times[0].strip(), 'close': times[1].strip()}
    return {}


class ContactExtractor:
    """Stateless extractor for contact details."""

    name = "contact"

    def extract(self, markup: str, url: Optional[str] = None) -> ExtractedContact:
        """
        Extract contact information from an HTML document.

        Args:
            markup: Raw HTML
            url: URL the document was fetched from (used for logging only)

        Returns:
            ExtractedContact for the document
        """
        soup = BeautifulSoup(markup or '', 'lxml')
        for tag in soup(['script', 'style', 'noscript']):
            tag.decompose()
        body = soup.body or soup
        text = body.get_text(' ')

        contact = ExtractedContact(
            emails=self._extract_emails(soup, text),
            phones=self._extract_phones(soup, text),
            addresses=self._extract_addresses(soup),
            business_hours=self._extract_business_hours(soup),
            contact_forms=self._extract_contact_forms(soup),
        )
        logger.debug(
            f"Contact extraction for {url}: {len(contact.emails)} emails, "
            f"{len(contact.phones)} phones, {len(contact.addresses)} addresses"
        )
        return contact

    def _extract_emails(self, soup: BeautifulSoup, text: str) -> List[EmailEntry]:
        emails: List[EmailEntry] = []
        seen: Set[str] = set()

        def add(email: str, context: str = '') -> None:
            if is_valid_email(email) and email not in seen:
                seen.add(email)
                emails.append(EmailEntry(email=email, type=classify_email(email), context=context))

        for anchor in soup.select('a[href^="mailto:"]'):
            address = anchor['href'][len('mailto:'):].split('?')[0].strip().lower()
            add(address, clean_text(anchor.get_text(' ')))

        for match in EMAIL_PATTERN.findall(text):
            add(match.lower())

        for element in soup.select('[itemtype*="schema.org"] [itemprop="email"]'):
            add(element.get_text(strip=True).lower(), 'structured data')

        return emails

    def _extract_phones(self, soup: BeautifulSoup, text: str) -> List[PhoneEntry]:
        phones: List[PhoneEntry] = []
        seen: Set[str] = set()

        for anchor in soup.select('a[href^="tel:"]'):
            number = normalize_phone(anchor['href'][len('tel:'):])
            label = clean_text(anchor.get_text(' '))
            if number and number not in seen:
                seen.add(number)
                phones.append(PhoneEntry(number=number, type=classify_phone(label), formatted=label))

        for match in PHONE_PATTERN.findall(text):
            number = normalize_phone(match)
            if len(number) >= MIN_PHONE_DIGITS and number not in seen:
                seen.add(number)
                phones.append(PhoneEntry(number=number, formatted=match.strip()))

        for element in soup.select('[itemtype*="schema.org"] [itemprop="telephone"]'):
            raw = element.get_text(strip=True)
            number = normalize_phone(raw)
            if number and number not in seen:
                seen.add(number)
                phones.append(PhoneEntry(number=number, type='main', formatted=raw))

        return phones

    def _extract_addresses(self, soup: BeautifulSoup) -> List[Address]:
        addresses: List[Address] = []
        seen: Set[str] = set()

        for element in soup.select('[itemtype*="PostalAddress"], [itemtype*="Place"]'):
            def prop(name: str) -> str:
                found = element.select_one(f'[itemprop="{name}"]')
                return clean_text(found.get_text(' ')) if found else ''

            parts = {
                'street': prop('streetAddress'),
                'city': prop('addressLocality'),
                'state': prop('addressRegion'),
                'postal_code': prop('postalCode'),
                'country': prop('addressCountry'),
            }
            full = ', '.join(value for value in parts.values() if value)
            if full and full not in seen:
                seen.add(full)
                addresses.append(Address(full=full, type='office', **parts))

        for selector in ADDRESS_SELECTORS:
            for element in soup.select(selector):
                text = clean_text(element.get_text(' '))
                if not (MIN_ADDRESS_LENGTH < len(text) < MAX_ADDRESS_LENGTH) or text in seen:
                    continue
                if looks_like_address(text):
                    seen.add(text)
                    addresses.append(Address(full=text, **parse_address(text)))

        return addresses

    def _extract_business_hours(self, soup: BeautifulSoup) -> Optional[List[BusinessHours]]:
        hours: List[BusinessHours] = []

        for block in soup.select('[itemtype*="OpeningHoursSpecification"]'):
            def prop(name: str) -> str:
                found = block.select_one(f'[itemprop="{name}"]')
                if found is None:
                    return ''
                return (found.get('content') or found.get_text(strip=True)).strip()

            day = prop('dayOfWeek')
            if day:
                hours.append(BusinessHours(day=day, open=prop('opens'), close=prop('closes')))

        hours_text = ' '.join(
            element.get_text(' ') for element in soup.select('.hours, .business-hours, [class*="hours"]')
        )
        if hours_text:
            for day in DAYS:
                match = re.search(rf'{day}[:\s]+(closed|[\d:apm\s-]+)', hours_text, re.IGNORECASE)
                if match:
                    hours.append(BusinessHours(day=day.capitalize(), **parse_time_range(match.group(1))))

        return hours or None

    def _extract_contact_forms(self, soup: BeautifulSoup) -> List[ContactForm]:
        forms = []
        for form in soup.find_all('form'):
            form_text = form.get_text(' ').lower()
            # Field names and placeholders count as form text too
            for control in form.find_all(['input', 'textarea', 'select']):
                form_text += ' ' + ' '.join(
                    str(control.get(attr, '')) for attr in ('name', 'placeholder', 'type')
                ).lower()
            if not any(keyword in form_text for keyword in CONTACT_FORM_KEYWORDS):
                continue

            fields: List[str] = []
            for control in form.select('input[name], textarea[name], select[name]'):
                if control['name'] not in fields:
                    fields.append(control['name'])

            forms.append(ContactForm(
                action=form.get('action', ''),
                method=(form.get('method') or 'GET').upper(),
                fields=fields,
            ))
        return forms
