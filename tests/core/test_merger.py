"""
Tests for merging collector pages into per URL records and scoring them.
"""

import unittest

from collectors.types import CollectorStats, ContactInfo, FormData, ImageData, PageResult
from core.merger import (
    calculate_completeness_score,
    calculate_quality_score,
    create_merged_page,
    merge_contact_info,
    merge_page,
    update_totals,
)
from core.models import MergedPageData, SessionTotals


def page(url="https://a.test/", **fields):
    return PageResult(url=url, success=True, **fields)


class TestMergePage(unittest.TestCase):

    def test_longer_title_wins(self):
        merged = create_merged_page(page(title="Home"), "static")
        merge_page(merged, page(title="Home — Welcome"), "dynamic")
        self.assertEqual(merged.title, "Home — Welcome")

        merge_page(merged, page(title="Hi"), "api")
        self.assertEqual(merged.title, "Home — Welcome")

    def test_empty_fields_never_erase(self):
        merged = create_merged_page(page(title="Home", description="Widgets", text_content="Body"), "static")
        merge_page(merged, page(), "dynamic")

        self.assertEqual(merged.title, "Home")
        self.assertEqual(merged.description, "Widgets")
        self.assertEqual(merged.text_content, "Body")

    def test_scraped_by_grows_without_duplicates(self):
        merged = create_merged_page(page(), "static")
        history = [list(merged.scraped_by)]
        for collector_id in ["static", "dynamic", "static", "api", "dynamic"]:
            merge_page(merged, page(), collector_id)
            self.assertTrue(merged.scraped_by[:len(history[-1])] == history[-1])
            history.append(list(merged.scraped_by))

        self.assertEqual(merged.scraped_by, ["static", "dynamic", "api"])

    def test_text_is_appended(self):
        merged = create_merged_page(page(text_content="First"), "static")
        merge_page(merged, page(text_content="Second"), "dynamic")
        self.assertEqual(merged.text_content, "First\n\nSecond")

    def test_collections_are_unioned(self):
        merged = create_merged_page(page(
            discovered_links=("https://a.test/1", "https://a.test/2"),
            technologies=("React",),
            structured_data={"json_ld": [1]},
            social_links={"twitter": "https://twitter.com/a"},
        ), "static")
        merge_page(merged, page(
            discovered_links=("https://a.test/2", "https://a.test/3"),
            technologies=("React", "Next.js"),
            structured_data={"open_graph": {"title": "A"}},
            social_links={"github": "https://github.com/a"},
        ), "dynamic")

        self.assertEqual(merged.discovered_links, ["https://a.test/1", "https://a.test/2", "https://a.test/3"])
        self.assertEqual(merged.technologies, ["React", "Next.js"])
        self.assertEqual(set(merged.structured_data), {"json_ld", "open_graph"})
        self.assertEqual(set(merged.social_links), {"twitter", "github"})

    def test_forms_keyed_by_action_and_images_by_src(self):
        merged = create_merged_page(page(
            forms=(FormData(action="/contact"), FormData(action="")),
            images=(ImageData(src="https://a.test/a.png"),),
        ), "static")
        merge_page(merged, page(
            forms=(FormData(action="/contact", method="POST"), FormData(action="/search")),
            images=(ImageData(src="https://a.test/a.png", alt="dup"), ImageData(src="https://a.test/b.png")),
        ), "dynamic")

        self.assertEqual([form.action for form in merged.forms], ["/contact", "", "/search"])
        self.assertEqual(merged.forms[0].method, "GET")
        self.assertEqual([image.src for image in merged.images], ["https://a.test/a.png", "https://a.test/b.png"])

    def test_contact_info_union(self):
        combined = merge_contact_info(
            ContactInfo(emails=("a@a.test",), phones=("+1",)),
            ContactInfo(emails=("b@a.test", "a@a.test"), addresses=("1 Main St",)),
        )
        self.assertEqual(combined.emails, ("a@a.test", "b@a.test"))
        self.assertEqual(combined.phones, ("+1",))
        self.assertEqual(combined.addresses, ("1 Main St",))

    def test_scores_recomputed_after_every_merge(self):
        merged = create_merged_page(page(title="Home"), "static")
        first_quality = merged.quality_score
        first_completeness = merged.completeness_score

        merge_page(merged, page(
            description="Widgets",
            technologies=("React",),
            contact_info=ContactInfo(emails=("a@a.test",)),
        ), "dynamic")

        self.assertGreater(merged.quality_score, first_quality)
        self.assertGreater(merged.completeness_score, first_completeness)
        self.assertEqual(merged.quality_score, calculate_quality_score(merged))
        self.assertEqual(merged.completeness_score, calculate_completeness_score(merged))


class TestScores(unittest.TestCase):

    def test_empty_record_scores_zero(self):
        empty = MergedPageData(url="https://a.test/")
        self.assertEqual(calculate_quality_score(empty), 0)
        self.assertEqual(calculate_completeness_score(empty), 0)

    def test_full_record_is_capped(self):
        full = MergedPageData(
            url="https://a.test/",
            scraped_by=["static", "dynamic"],
            title="Home",
            description="Widgets",
            text_content="x" * 600,
            discovered_links=[f"https://a.test/{i}" for i in range(6)],
            structured_data={"json_ld": [{}]},
            technologies=["React"],
            api_endpoints=["https://a.test/api/v1"],
            contact_info=ContactInfo(phones=("+1",)),
            social_links={"github": "https://github.com/a"},
            forms=[FormData(action="/contact")],
            images=[ImageData(src="https://a.test/a.png")],
        )
        self.assertEqual(calculate_quality_score(full), 100)
        self.assertEqual(calculate_completeness_score(full), 100)

    def test_completeness_counts_populated_fields(self):
        partial = MergedPageData(url="https://a.test/", title="Home", description="Widgets",
                                 technologies=["React"])
        self.assertEqual(calculate_completeness_score(partial), 30)


class TestUpdateTotals(unittest.TestCase):

    def test_totals_accumulate(self):
        totals = SessionTotals()
        update_totals(totals, CollectorStats(duration_ms=300, pages_attempted=3, pages_succeeded=2,
                                             pages_failed=1, bytes_downloaded=1000, data_points_extracted=7,
                                             links_discovered=4))
        update_totals(totals, CollectorStats(duration_ms=100, pages_attempted=1, pages_succeeded=1,
                                             data_points_extracted=3))

        self.assertEqual(totals.pages_attempted, 4)
        self.assertEqual(totals.pages_succeeded, 3)
        self.assertEqual(totals.pages_failed, 1)
        self.assertEqual(totals.data_points_extracted, 10)
        self.assertEqual(totals.links_discovered, 4)
        self.assertEqual(totals.average_time_per_page_ms, 100)
        self.assertEqual(totals.success_rate, 75)

    def test_no_pages_leaves_rates_untouched(self):
        totals = SessionTotals()
        update_totals(totals, CollectorStats())
        self.assertEqual(totals.success_rate, 0)


if __name__ == "__main__":
    unittest.main()
