"""
Tests for the content extractor.
"""

import unittest

from extraction.content_extractor import ContentExtractor, clean_text

PAGE = """
<html>
<head>
    <title>  Acme   Widgets </title>
    <meta name="description" content="Widgets for every occasion">
    <script>var tracking = "should not appear";</script>
    <style>.hidden { display: none; }</style>
</head>
<body>
    <nav><a href="/">Home</a> <a href="/about">About</a></nav>
    <main>
        <h1>Welcome to Acme</h1>
        <h2>Our products</h2>
        <p>Acme builds widgets that are sturdy, affordable and easy to install in any home.</p>
        <p>Short one.</p>
        <p>We have been shipping widgets worldwide since 1999 and counting every single day.</p>
        <img src="/img/widget.png" alt="A widget" title="Widget">
        <ul><li>Fast</li><li>Cheap</li><li><ul><li>nested</li></ul></li></ul>
        <ol><li>First</li><li>Second</li></ol>
        <table>
            <tr><th>Model</th><th>Price</th></tr>
            <tr><td>W1</td><td>$10</td></tr>
            <tr><td>W2</td><td>$20</td></tr>
        </table>
        <a href="https://partner.test/deal">Partner</a>
        <a href="/about">About again</a>
        <a href="mailto:hello@acme.test">Mail</a>
        <a href="tel:+15550000000">Call</a>
        <a href="javascript:void(0)">Nothing</a>
        <a href="#top">Top</a>
        <form action="/subscribe" method="post">
            <input type="email" name="email" required>
            <input type="hidden" name="token" value="x">
            <textarea name="note"></textarea>
            <input type="submit" name="go" value="Go">
        </form>
    </main>
</body>
</html>
"""


class TestContentExtractor(unittest.TestCase):
    """Tests for ContentExtractor.extract()."""

    def setUp(self):
        self.extractor = ContentExtractor()
        self.content = self.extractor.extract(PAGE, "https://acme.test/products")

    def test_title_and_description(self):
        self.assertEqual(self.content.title, "Acme Widgets")
        self.assertEqual(self.content.description, "Widgets for every occasion")

    def test_title_falls_back_to_open_graph_then_h1(self):
        og = self.extractor.extract('<html><head><meta property="og:title" content="OG Title"></head>'
                                    '<body><h1>Heading</h1></body></html>')
        self.assertEqual(og.title, "OG Title")

        heading = self.extractor.extract('<html><body><h1>Only Heading</h1></body></html>')
        self.assertEqual(heading.title, "Only Heading")

    def test_headings(self):
        self.assertEqual(self.content.headings['h1'], ["Welcome to Acme"])
        self.assertEqual(self.content.headings['h2'], ["Our products"])
        self.assertEqual(self.content.headings['h3'], [])

    def test_scripts_and_styles_removed(self):
        self.assertNotIn("should not appear", self.content.main_content)
        self.assertNotIn("display: none", self.content.main_content)

    def test_main_content_prefers_main_element(self):
        self.assertTrue(self.content.main_content.startswith("Welcome to Acme"))
        self.assertNotIn("Home About", self.content.main_content)

    def test_main_content_truncated(self):
        extractor = ContentExtractor(max_text_length=20)
        content = extractor.extract(PAGE, "https://acme.test/")
        self.assertEqual(len(content.main_content), 20)

    def test_short_paragraphs_skipped(self):
        self.assertEqual(len(self.content.paragraphs), 2)
        self.assertNotIn("Short one.", self.content.paragraphs)

    def test_images_are_absolute(self):
        self.assertEqual(len(self.content.images), 1)
        image = self.content.images[0]
        self.assertEqual(image.src, "https://acme.test/img/widget.png")
        self.assertEqual(image.alt, "A widget")
        self.assertEqual(image.title, "Widget")

    def test_links_deduplicated_absolute_and_filtered(self):
        hrefs = [link.href for link in self.content.links]
        self.assertEqual(hrefs, [
            "https://acme.test/",
            "https://acme.test/about",
            "https://partner.test/deal",
        ])
        external = {link.href: link.is_external for link in self.content.links}
        self.assertTrue(external["https://partner.test/deal"])
        self.assertFalse(external["https://acme.test/about"])

    def test_lists_use_direct_children(self):
        unordered, nested, ordered = self.content.lists
        self.assertEqual(unordered.type, "unordered")
        self.assertEqual(unordered.items, ["Fast", "Cheap", "nested"])
        self.assertEqual(nested.items, ["nested"])
        self.assertEqual(ordered.type, "ordered")
        self.assertEqual(ordered.items, ["First", "Second"])

    def test_tables_use_first_row_as_headers(self):
        self.assertEqual(len(self.content.tables), 1)
        table = self.content.tables[0]
        self.assertEqual(table.headers, ["Model", "Price"])
        self.assertEqual(table.rows, [["W1", "$10"], ["W2", "$20"]])

    def test_forms(self):
        self.assertEqual(len(self.content.forms), 1)
        form = self.content.forms[0]
        self.assertEqual(form.action, "https://acme.test/subscribe")
        self.assertEqual(form.method, "POST")
        self.assertEqual([(f.name, f.type, f.required) for f in form.fields],
                         [("email", "email", True), ("note", "textarea", False)])

    def test_empty_markup(self):
        content = self.extractor.extract("")
        self.assertEqual(content.title, "")
        self.assertEqual(content.links, [])
        self.assertEqual(content.main_content, "")


class TestCleanText(unittest.TestCase):

    def test_collapses_whitespace(self):
        self.assertEqual(clean_text("  a \n\t b  "), "a b")


if __name__ == '__main__':
    unittest.main()
