"""
Technology and API signal detection.

Recognises front-end frameworks, CMSs and styling libraries from markup,
and finds references to API endpoints. The markers are plain substring
checks so detection stays deterministic and explainable.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlparse

# Technology -> substrings whose presence in the markup indicates it
TECHNOLOGY_INDICATORS = {
    'Next.js': ['__NEXT_DATA__', '/_next/static/', 'next/dist'],
    'React': ['data-reactroot', 'data-reactid', '__REACT_DEVTOOLS_GLOBAL_HOOK__', 'react-dom', 'React.createElement'],
    'Nuxt': ['__NUXT__', '/_nuxt/', 'data-n-head'],
    'Vue': ['data-v-', '__VUE__', 'vue.min.js', 'vue.runtime', 'v-cloak'],
    'Angular': ['ng-version', 'ng-app', '@angular/', 'angular.min.js', '_nghost-'],
    'Gatsby': ['___gatsby', '/page-data/', 'gatsby-'],
    'Svelte': ['svelte-', '__svelte'],
    'jQuery': ['jquery.min.js', 'jquery.js', 'jquery-'],
    'WordPress': ['wp-content/', 'wp-includes/', 'wp-json'],
    'Shopify': ['cdn.shopify.com', 'Shopify.theme'],
    'Drupal': ['drupal.js', 'Drupal.settings', '/sites/default/files/'],
    'Wix': ['static.wixstatic.com', 'wix-code'],
    'Squarespace': ['static1.squarespace.com', 'squarespace-cdn'],
    'Webflow': ['webflow.js', 'data-wf-page'],
    'Bootstrap': ['bootstrap.min.css', 'bootstrap.min.js', 'bootstrap.bundle'],
    'Tailwind CSS': ['tailwindcss', 'tailwind.min.css'],
    'Google Analytics': ['google-analytics.com/analytics.js', 'googletagmanager.com/gtag/js'],
    'Google Tag Manager': ['googletagmanager.com/gtm.js'],
}

# Generator meta values that map onto a technology name
GENERATOR_TECHNOLOGIES = {
    'wordpress': 'WordPress',
    'drupal': 'Drupal',
    'joomla': 'Joomla',
    'shopify': 'Shopify',
    'wix': 'Wix',
    'squarespace': 'Squarespace',
    'webflow': 'Webflow',
    'gatsby': 'Gatsby',
    'hugo': 'Hugo',
    'jekyll': 'Jekyll',
    'ghost': 'Ghost',
    'next.js': 'Next.js',
    'nuxt': 'Nuxt',
}

# Technologies whose content is typically rendered client side
JAVASCRIPT_FRAMEWORKS = ('React', 'Next.js', 'Vue', 'Nuxt', 'Angular', 'Svelte', 'Gatsby')

GENERATOR_PATTERN = re.compile(r'<meta[^>]+name=["\']generator["\'][^>]+content=["\']([^"\']+)', re.IGNORECASE)
API_REFERENCE_PATTERN = re.compile(
    r'["\'(]((?:https?://[^"\'\s)]+)?/(?:api|graphql|rest|v\d+)(?:/[^"\'\s)<>]*)?)["\')]',
    re.IGNORECASE
)
API_PATH_PATTERN = re.compile(r'(/api(/|$)|/graphql\b|/rest/|/v\d+/|\.json$)', re.IGNORECASE)


def detect_technologies(markup: str) -> List[str]:
    """
    Detect technologies used by a page.

    Args:
        markup: Raw HTML

    Returns:
        Technology names in detection order, without duplicates
    """
    if not markup:
        return []

    found: List[str] = []
    for match in GENERATOR_PATTERN.finditer(markup):
        generator = match.group(1).lower()
        for marker, technology in GENERATOR_TECHNOLOGIES.items():
            if marker in generator and technology not in found:
                found.append(technology)

    for technology, markers in TECHNOLOGY_INDICATORS.items():
        if technology in found:
            continue
        if any(marker in markup for marker in markers):
            found.append(technology)

    # Next.js and Nuxt imply their underlying framework
    if 'Next.js' in found and 'React' not in found:
        found.append('React')
    if 'Nuxt' in found and 'Vue' not in found:
        found.append('Vue')

    return found


def detect_api_endpoints(markup: str, links: Iterable[str] = (), base_url: Optional[str] = None) -> List[str]:
    """
    Find references to API endpoints in markup and links.

    Args:
        markup: Raw HTML (including inline scripts)
        links: Absolute links already extracted from the page
        base_url: Page URL used to resolve relative references

    Returns:
        Absolute endpoint URLs (relative when no base URL is known), deduplicated
    """
    endpoints: List[str] = []

    def add(reference: str) -> None:
        absolute = urljoin(base_url, reference) if base_url else reference
        if absolute not in endpoints:
            endpoints.append(absolute)

    for match in API_REFERENCE_PATTERN.finditer(markup or ''):
        add(match.group(1))

    for link in links:
        if API_PATH_PATTERN.search(urlparse(link).path):
            add(link)

    return endpoints


def javascript_frameworks(technologies: Iterable[str]) -> List[str]:
    """Return the client side rendering frameworks among the given technologies."""
    return [technology for technology in technologies if technology in JAVASCRIPT_FRAMEWORKS]
