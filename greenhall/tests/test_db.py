import unittest
from datetime import datetime, timezone

from greenhall.db import (
    Collection,
    InMemoryDocumentStore,
    NewsRecord,
    SqlDocumentStore,
    TeamMemberRecord,
)
from greenhall.errors import StoreUnavailableError


def _news(title, day):
    return {
        "title": title,
        "news_date": datetime(2024, 3, day, tzinfo=timezone.utc),
        "content": f"{title} content",
    }


class SqlDocumentStoreTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store logic.
    """

    def setUp(self):
        self.db = SqlDocumentStore("sqlite+pysqlite:///:memory:")
        self.assertTrue(self.db.connect())

    def tearDown(self):
        self.db.close()

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlDocumentStore("")

    def test_operations_fail_before_connect(self):
        db = SqlDocumentStore("sqlite+pysqlite:///:memory:")
        self.assertFalse(db.is_connected())
        with self.assertRaises(StoreUnavailableError):
            db.get_by_id(Collection.NEWS, "abc")

    def test_create_and_get_news(self):
        created = self.db.create(Collection.NEWS, _news("Q1", 1))
        self.assertIsInstance(created, NewsRecord)
        self.assertTrue(created.id)
        self.assertIsNone(created.image_url)

        fetched = self.db.get_by_id(Collection.NEWS, created.id)
        self.assertEqual(fetched, created)
        self.assertEqual(fetched.news_date.tzinfo, timezone.utc)

    def test_get_missing_returns_none(self):
        self.assertIsNone(self.db.get_by_id(Collection.PORTFOLIO, "missing"))

    def test_team_member_defaults(self):
        created = self.db.create(
            Collection.TEAM_MEMBERS,
            {
                "name": "Ada",
                "image_url": "https://example.test/a.png",
                "image_public_id": "greenhall-capital/a",
            },
        )
        self.assertIsInstance(created, TeamMemberRecord)
        self.assertEqual(created.role, "")
        self.assertEqual(created.upload_date, created.created_at)

    def test_list_all_sorted_by_date(self):
        for title, day in (("middle", 10), ("newest", 20), ("oldest", 1)):
            self.db.create(Collection.NEWS, _news(title, day))

        newest_first = [r.title for r in self.db.list_all(Collection.NEWS)]
        self.assertEqual(newest_first, ["newest", "middle", "oldest"])

        oldest_first = [
            r.title for r in self.db.list_all(Collection.NEWS, "news_date", descending=False)
        ]
        self.assertEqual(oldest_first, ["oldest", "middle", "newest"])

    def test_update_changes_only_given_fields(self):
        created = self.db.create(Collection.NEWS, _news("Q1", 1))
        updated = self.db.update(Collection.NEWS, created.id, {"title": "Q1 (revised)"})

        self.assertEqual(updated.title, "Q1 (revised)")
        self.assertEqual(updated.content, created.content)
        self.assertEqual(updated.news_date, created.news_date)
        self.assertGreaterEqual(updated.updated_at, created.updated_at)
        self.assertEqual(self.db.get_by_id(Collection.NEWS, created.id), updated)

    def test_update_missing_returns_none(self):
        self.assertIsNone(self.db.update(Collection.NEWS, "missing", {"title": "x"}))

    def test_delete(self):
        created = self.db.create(Collection.NEWS, _news("Q1", 1))
        self.assertTrue(self.db.delete_by_id(Collection.NEWS, created.id))
        self.assertFalse(self.db.delete_by_id(Collection.NEWS, created.id))
        self.assertIsNone(self.db.get_by_id(Collection.NEWS, created.id))

    def test_close_makes_store_unavailable(self):
        self.assertTrue(self.db.is_connected())
        self.db.close()
        self.assertFalse(self.db.is_connected())
        with self.assertRaises(StoreUnavailableError):
            self.db.list_all(Collection.NEWS)


class InMemoryDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDocumentStore()

    def test_disconnected_store_rejects_operations(self):
        self.db.close()
        self.assertFalse(self.db.is_connected())
        with self.assertRaises(StoreUnavailableError):
            self.db.create(Collection.NEWS, _news("Q1", 1))

        self.db.connect()
        self.assertTrue(self.db.is_connected())
        self.db.create(Collection.NEWS, _news("Q1", 1))

    def test_returned_records_are_copies(self):
        created = self.db.create(Collection.NEWS, _news("Q1", 1))
        created.title = "changed"
        self.assertEqual(self.db.get_by_id(Collection.NEWS, created.id).title, "Q1")

    def test_reset_clears_collections(self):
        self.db.create(Collection.NEWS, _news("Q1", 1))
        self.db.reset()
        self.assertEqual(self.db.list_all(Collection.NEWS), [])


if __name__ == "__main__":
    unittest.main()
