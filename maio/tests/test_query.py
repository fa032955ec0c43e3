import copy
import unittest

from maio.i18n import localized
from maio.query import (
    ListQuery,
    flatten_update,
    matches,
    merge_update,
    page_count,
    pagination,
    sort_documents,
)
from maio.resources import ARTICLES, RESULTS, SPONSORS


class ListQueryTests(unittest.TestCase):
    def test_filter_equal_skips_empty_values(self):
        query = ListQuery()
        query.filter_equal("category", "all")
        query.filter_equal("tier", "")
        query.filter_equal("year", None)
        self.assertEqual(query.equals, {})
        query.filter_equal("category", "results")
        self.assertEqual(query.equals, {"category": "results"})

    def test_pagination(self):
        self.assertEqual(page_count(0, 10), 0)
        self.assertEqual(page_count(10, 10), 1)
        self.assertEqual(page_count(25, 10), 3)
        self.assertEqual(
            pagination(ListQuery(page=2, limit=10), 25),
            {"current": 2, "pages": 3, "total": 25},
        )
        self.assertEqual(ListQuery(page=3, limit=20).offset, 40)

    def test_matches(self):
        doc = {
            "title": {"en": "Robotics", "mn": "Роботын тэмцээн"},
            "content": {"en": "", "mn": ""},
            "category": "results",
            "tags": ["Hardware"],
        }
        self.assertTrue(matches(doc, ListQuery(search="РОБОТЫН"), ARTICLES))
        self.assertTrue(matches(doc, ListQuery(search="hard"), ARTICLES))
        self.assertFalse(matches(doc, ListQuery(search="robot.*"), ARTICLES))
        self.assertFalse(matches(doc, ListQuery(equals={"category": "news"}), ARTICLES))
        self.assertFalse(matches(doc, ListQuery(at_least={"date": "2026-01-01"}), ARTICLES))

    def test_sort_documents(self):
        docs = [
            {"name": "B", "order": 2},
            {"name": "Z", "order": 1},
            {"name": "A", "order": 1},
            {"name": "Unordered"},
        ]
        self.assertEqual(
            [d["name"] for d in sort_documents(docs, SPONSORS)],
            ["Unordered", "A", "Z", "B"],
        )
        results = [
            {"year": 2023, "date": "2023-01-01"},
            {"year": 2024},
            {"year": 2024, "date": "2024-02-01"},
        ]
        self.assertEqual(
            sort_documents(results, RESULTS),
            [
                {"year": 2024, "date": "2024-02-01"},
                {"year": 2024},
                {"year": 2023, "date": "2023-01-01"},
            ],
        )


class UpdateMergeTests(unittest.TestCase):
    def test_merge_keeps_untouched_language(self):
        existing = {"title": {"en": "Old", "mn": "Хуучин"}, "tags": ["a", "b"]}
        merged = merge_update(existing, {"title": {"en": "New"}, "tags": ["c"]})
        self.assertEqual(merged, {"title": {"en": "New", "mn": "Хуучин"}, "tags": ["c"]})
        self.assertEqual(existing["title"]["en"], "Old")

    def test_flatten_update(self):
        existing = {"title": {"en": "Old", "mn": "Хуучин"}, "summary": {"en": "S"}}
        self.assertEqual(
            flatten_update(
                {"title": {"en": "New"}, "featured": True, "summary": {}}, existing
            ),
            {"title.en": "New", "featured": True},
        )

    def test_flatten_update_sets_whole_object_over_non_mapping(self):
        existing = {"title": None, "location": "Ulaanbaatar"}
        changes = {"title": {"en": "New"}, "location": {"mn": "Улаанбаатар"}, "tags": ["a"]}
        flat = flatten_update(changes, existing)
        self.assertEqual(flat, changes)
        self.assertEqual(flatten_update({"summary": {"en": "S"}}), {"summary": {"en": "S"}})

    def test_flatten_matches_merge(self):
        existing = {"title": {"en": "Old", "mn": "Хуучин"}, "summary": None}
        changes = {"title": {"mn": "Шинэ"}, "summary": {"en": "S"}}
        merged = copy.deepcopy(existing)
        for path, value in flatten_update(changes, existing).items():
            target = merged
            *parents, leaf = path.split(".")
            for part in parents:
                target = target[part]
            target[leaf] = value
        self.assertEqual(merged, merge_update(existing, changes))


class LocalizedTests(unittest.TestCase):
    def test_fallback_chain(self):
        self.assertEqual(localized({"en": "Hello", "mn": "Сайн уу"}, "mn"), "Сайн уу")
        self.assertEqual(localized({"en": "Hello", "mn": ""}, "mn"), "Hello")
        self.assertEqual(localized({"mn": "Сайн уу"}), "Сайн уу")
        self.assertEqual(localized({}, default="untitled"), "untitled")
        self.assertEqual(localized("plain"), "plain")
        self.assertEqual(localized(None, default="x"), "x")


if __name__ == "__main__":
    unittest.main()
