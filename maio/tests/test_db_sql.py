import unittest

from maio.db import InMemoryResourceStore, SqlResourceStore, StoreError
from maio.query import ListQuery
from maio.resources import ARTICLES, EVENTS, MEDIA, RESULTS, SPONSORS


def article(title, category="announcement", **extra):
    doc = {
        "title": {"en": title, "mn": "Мэдээ " + title},
        "content": {"en": "Body of " + title, "mn": "Агуулга"},
        "category": category,
        "publish_date": "2024-01-01",
        "tags": ["ai"],
    }
    doc.update(extra)
    return doc


class SqlResourceStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = SqlResourceStore("sqlite+pysqlite:///:memory:")

    def tearDown(self):
        self.store.close()

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlResourceStore("")

    def test_create_and_get(self):
        created = self.store.create_document(ARTICLES, article("Opening", id="ignored"))
        self.assertTrue(created["id"].isdigit())
        self.assertEqual(created["created_at"], created["updated_at"])
        fetched = self.store.get_document(ARTICLES, created["id"])
        self.assertEqual(fetched, created)
        self.assertEqual(fetched["title"]["en"], "Opening")

    def test_unknown_ids_are_not_found(self):
        self.assertIsNone(self.store.get_document(ARTICLES, "999"))
        self.assertIsNone(self.store.get_document(ARTICLES, "not-a-number"))
        self.assertIsNone(self.store.update_document(ARTICLES, "999", {"category": "x"}))
        self.assertIsNone(self.store.delete_document(ARTICLES, "abc"))

    def test_filters_and_pagination(self):
        for i in range(12):
            self.store.create_document(
                ARTICLES, article(f"Story {i}", category="results" if i % 3 == 0 else "news")
            )
        self.store.create_document(ARTICLES, article("Featured", featured=True))

        docs, total = self.store.list_documents(ARTICLES, ListQuery(page=1, limit=5))
        self.assertEqual(total, 13)
        self.assertEqual(len(docs), 5)
        _, total = self.store.list_documents(
            ARTICLES, ListQuery(equals={"category": "results"})
        )
        self.assertEqual(total, 4)
        docs, total = self.store.list_documents(
            ARTICLES, ListQuery(equals={"featured": True})
        )
        self.assertEqual([d["title"]["en"] for d in docs], ["Featured"])

        docs, _ = self.store.list_documents(ARTICLES, ListQuery(page=3, limit=5))
        self.assertEqual(len(docs), 3)

    def test_search_is_case_insensitive_substring(self):
        self.store.create_document(ARTICLES, article("Robotics Finals", tags=["hardware"]))
        self.store.create_document(ARTICLES, article("Workshop", tags=["machine-learning"]))
        self.store.create_document(ARTICLES, article("100% Effort"))

        _, total = self.store.list_documents(ARTICLES, ListQuery(search="robotics"))
        self.assertEqual(total, 1)
        docs, _ = self.store.list_documents(ARTICLES, ListQuery(search="LEARNING"))
        self.assertEqual([d["title"]["en"] for d in docs], ["Workshop"])
        docs, _ = self.store.list_documents(ARTICLES, ListQuery(search="100%"))
        self.assertEqual([d["title"]["en"] for d in docs], ["100% Effort"])
        _, total = self.store.list_documents(ARTICLES, ListQuery(search="_"))
        self.assertEqual(total, 0)

    def test_tag_search_matches_values_like_memory_store(self):
        memory = InMemoryResourceStore()
        for tags in (["олимпиад"], ["ai", "ml"]):
            doc = {
                "title": {"en": "Story", "mn": "Мэдээ"},
                "content": {"en": "Body", "mn": "Агуулга"},
                "tags": tags,
            }
            self.store.create_document(ARTICLES, doc)
            memory.create_document(ARTICLES, doc)

        for term in ("олимпиад", "лимп", "ml", ",", '"', "u043e", "[", "\\"):
            _, sql_total = self.store.list_documents(ARTICLES, ListQuery(search=term))
            _, memory_total = memory.list_documents(ARTICLES, ListQuery(search=term))
            self.assertEqual(sql_total, memory_total, term)

        docs, _ = self.store.list_documents(ARTICLES, ListQuery(search="олимпиад"))
        self.assertEqual([d["tags"] for d in docs], [["олимпиад"]])

    def test_media_tag_search(self):
        self.store.create_document(MEDIA, {"title": "Opening", "tags": ["Ceremony", "2024"]})
        self.store.create_document(MEDIA, {"title": "Finals"})
        docs, total = self.store.list_documents(MEDIA, ListQuery(search="cere"))
        self.assertEqual(total, 1)
        self.assertEqual(docs[0]["title"], "Opening")

    def test_sorting(self):
        for year, day in ((2023, "2023-05-01"), (2024, "2024-01-01"), (2024, "2024-06-01")):
            self.store.create_document(
                RESULTS, {"title": {"en": day, "mn": day}, "year": year, "date": day}
            )
        docs, _ = self.store.list_documents(RESULTS, ListQuery())
        self.assertEqual(
            [d["date"] for d in docs], ["2024-06-01", "2024-01-01", "2023-05-01"]
        )

        for name, order in (("Zeta", 1), ("Alpha", 1), ("First", 0)):
            self.store.create_document(SPONSORS, {"name": name, "order": order, "active": True})
        docs, _ = self.store.list_documents(SPONSORS, ListQuery(limit=100))
        self.assertEqual([d["name"] for d in docs], ["First", "Alpha", "Zeta"])

    def test_upcoming_bound(self):
        for day in ("2999-01-02", "2000-01-01", "2999-01-01"):
            self.store.create_document(EVENTS, {"title": {"en": day, "mn": day}, "date": day})
        docs, total = self.store.list_documents(
            EVENTS, ListQuery(at_least={"date": "2026-01-01"})
        )
        self.assertEqual(total, 2)
        self.assertEqual([d["date"] for d in docs], ["2999-01-01", "2999-01-02"])

    def test_update_merges_nested_fields(self):
        created = self.store.create_document(ARTICLES, article("Opening"))
        updated = self.store.update_document(
            ARTICLES,
            created["id"],
            {"title": {"en": "Renamed"}, "tags": ["new"], "created_at": "bogus"},
        )
        self.assertEqual(updated["id"], created["id"])
        self.assertEqual(updated["title"], {"en": "Renamed", "mn": "Мэдээ Opening"})
        self.assertEqual(updated["tags"], ["new"])
        self.assertEqual(updated["created_at"], created["created_at"])
        self.assertEqual(self.store.get_document(ARTICLES, created["id"]), updated)

    def test_delete_returns_removed_record(self):
        created = self.store.create_document(ARTICLES, article("Opening"))
        deleted = self.store.delete_document(ARTICLES, created["id"])
        self.assertEqual(deleted["id"], created["id"])
        self.assertIsNone(self.store.get_document(ARTICLES, created["id"]))
        self.assertIsNone(self.store.delete_document(ARTICLES, created["id"]))

    def test_distinct_count_and_all_documents(self):
        for title, category in (("A", "results"), ("B", "news"), ("C", "results")):
            self.store.create_document(ARTICLES, article(title, category=category))
        self.assertEqual(
            sorted(self.store.distinct_values(ARTICLES, "category")), ["news", "results"]
        )
        self.assertEqual(self.store.count_documents(ARTICLES), 3)
        self.assertEqual(self.store.count_documents(EVENTS), 0)
        self.assertEqual(
            [d["title"]["en"] for d in self.store.all_documents(ARTICLES)], ["A", "B", "C"]
        )

    def test_ping_and_driver_errors(self):
        self.store.ping()
        self.store.close()
        with self.assertRaises(StoreError):
            SqlResourceStore("sqlite+pysqlite:////nonexistent-dir/maio.db")


if __name__ == "__main__":
    unittest.main()
