"""
Tests for the metadata extraction functionality.

This module contains tests for the metadata extractor including:
- HTML meta tag extraction
- OpenGraph and Twitter Card extraction
- Dublin Core extraction
- JSON-LD structured data extraction
- Microdata extraction
- Custom meta tags
"""

import unittest

from bs4 import BeautifulSoup

from extraction.metadata_extractor import MetadataExtractor
from utils.logging import Tracer


class TestMetadataExtractor(unittest.TestCase):
    """Tests for MetadataExtractor."""

    def setUp(self):
        """Set up test environment."""
        self.tracer = Tracer("tests")
        self.extractor = MetadataExtractor(tracer=self.tracer)

        self.html = """
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <title>Test Page Title</title>
            <meta name="description" content="Test page description">
            <meta name="keywords" content="test, page, keywords">
            <meta name="author" content="Test Author">
            <meta name="generator" content="WordPress 6.4">
            <link rel="canonical" href="https://example.com/test">
            <meta property="og:title" content="OG Title">
            <meta property="og:type" content="article">
            <meta property="og:image" content="https://example.com/og.png">
            <meta name="twitter:card" content="summary_large_image">
            <meta name="twitter:creator" content="@author">
            <meta name="DC.Title" content="Dublin Title">
            <meta name="dc.creator" content="Dublin Creator">
            <meta name="theme-color" content="#ffffff">
            <script type="application/ld+json">
                {"@context": "https://schema.org", "@type": "Organization", "name": "Example"}
            </script>
            <script type="application/ld+json">
                [{"@type": "WebSite", "name": "Example"}, {"@type": "WebPage"}]
            </script>
            <script type="application/ld+json">{not valid json</script>
        </head>
        <body>
            <div itemscope itemtype="https://schema.org/Product">
                <span itemprop="name">Widget</span>
                <span itemprop="sku" content="W-1"></span>
                <a itemprop="url" href="https://example.com/widget">Widget page</a>
                <span itemprop="color">Red</span>
                <span itemprop="color">Blue</span>
            </div>
        </body>
        </html>
        """
        self.metadata = self.extractor.extract(self.html, "https://example.com/test")

    def test_basic_meta_tags(self):
        """Test extraction of basic meta tags."""
        basic = self.metadata.basic
        self.assertEqual(basic["title"], "Test Page Title")
        self.assertEqual(basic["description"], "Test page description")
        self.assertEqual(basic["keywords"], ["test", "page", "keywords"])
        self.assertEqual(basic["author"], "Test Author")
        self.assertEqual(basic["canonical"], "https://example.com/test")
        self.assertEqual(basic["language"], "en")
        self.assertEqual(basic["charset"], "UTF-8")

    def test_basic_drops_empty_values(self):
        self.assertNotIn("robots", self.metadata.basic)
        self.assertNotIn("viewport", self.metadata.basic)

    def test_open_graph_and_twitter(self):
        self.assertEqual(self.metadata.open_graph,
                         {"title": "OG Title", "type": "article", "image": "https://example.com/og.png"})
        self.assertEqual(self.metadata.twitter, {"card": "summary_large_image", "creator": "@author"})

    def test_dublin_core(self):
        self.assertEqual(self.metadata.dublin_core, {"title": "Dublin Title", "creator": "Dublin Creator"})

    def test_jsonld_flattened_and_invalid_skipped(self):
        types = [item.get("@type") for item in self.metadata.json_ld]
        self.assertEqual(types, ["Organization", "WebSite", "WebPage"])
        categories = [crumb["category"] for crumb in self.tracer.breadcrumbs]
        self.assertIn("jsonld_parse_error", categories)

    def test_microdata(self):
        self.assertEqual(len(self.metadata.microdata), 1)
        item = self.metadata.microdata[0]
        self.assertEqual(item.type, "Product")
        self.assertEqual(item.properties["name"], "Widget")
        self.assertEqual(item.properties["sku"], "W-1")
        self.assertEqual(item.properties["url"], "https://example.com/widget")
        self.assertEqual(item.properties["color"], ["Red", "Blue"])

    def test_custom_meta_tags(self):
        self.assertEqual(self.metadata.custom, {"theme-color": "#ffffff"})

    def test_extract_basic_directly(self):
        soup = BeautifulSoup('<html><head><meta name="title" content="Meta Title"></head></html>', 'lxml')
        self.assertEqual(self.extractor.extract_basic(soup), {"title": "Meta Title"})

    def test_empty_document(self):
        metadata = self.extractor.extract("")
        self.assertEqual(metadata.basic, {})
        self.assertEqual(metadata.json_ld, [])
        self.assertEqual(metadata.microdata, [])


if __name__ == '__main__':
    unittest.main()
