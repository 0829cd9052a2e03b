"""
Tests for technology and API endpoint detection.
"""

import unittest

from extraction.signals import detect_api_endpoints, detect_technologies, javascript_frameworks


class TestDetectTechnologies(unittest.TestCase):

    def test_next_implies_react(self):
        markup = '<script id="__NEXT_DATA__" type="application/json">{}</script>'
        self.assertEqual(detect_technologies(markup), ['Next.js', 'React'])

    def test_generator_meta(self):
        markup = ('<meta name="generator" content="WordPress 6.4">'
                  '<link rel="stylesheet" href="/wp-content/themes/x/style.css">')
        self.assertEqual(detect_technologies(markup), ['WordPress'])

    def test_nothing_detected(self):
        self.assertEqual(detect_technologies('<p>plain</p>'), [])
        self.assertEqual(detect_technologies(''), [])

    def test_javascript_frameworks(self):
        self.assertEqual(javascript_frameworks(['WordPress', 'Vue', 'jQuery', 'Nuxt']), ['Vue', 'Nuxt'])


class TestDetectApiEndpoints(unittest.TestCase):

    def test_script_references_and_links(self):
        markup = '<script>fetch("/api/users").then(r => r.json())</script>'
        links = ["https://a.test/v1/items", "https://a.test/about"]
        self.assertEqual(
            detect_api_endpoints(markup, links, "https://a.test/page"),
            ["https://a.test/api/users", "https://a.test/v1/items"],
        )

    def test_relative_without_base(self):
        self.assertEqual(detect_api_endpoints("'/graphql'"), ["/graphql"])


if __name__ == '__main__':
    unittest.main()
