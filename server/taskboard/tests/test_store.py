import json
import tempfile
import unittest
from pathlib import Path

from taskboard.store import InMemoryDocumentStore, JsonFileDocumentStore, SqlDocumentStore


class StoreContract:
    """Behaviour shared by every document store backend."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_add_and_get(self):
        doc_id = self.store.add("tasks", {"title": "a", "createdAt": 1.0})
        self.assertTrue(doc_id)
        self.assertEqual(self.store.get("tasks", doc_id), {"title": "a", "createdAt": 1.0})
        self.assertIsNone(self.store.get("tasks", "missing"))
        self.assertIsNone(self.store.get("projects", doc_id))

    def test_ids_are_unique(self):
        ids = {self.store.add("tasks", {"title": str(i)}) for i in range(5)}
        self.assertEqual(len(ids), 5)
        self.assertEqual(self.store.count("tasks"), 5)

    def test_list_orders_by_field(self):
        self.store.add("tasks", {"title": "b", "createdAt": 2.0})
        self.store.add("tasks", {"title": "a", "createdAt": 1.0})
        self.store.add("tasks", {"title": "c", "createdAt": 3.0})
        self.store.add("tasks", {"title": "undated"})

        newest = self.store.list("tasks", order_by="createdAt", descending=True)
        self.assertEqual([d.data["title"] for d in newest], ["c", "b", "a", "undated"])
        oldest = self.store.list("tasks", order_by="createdAt")
        self.assertEqual([d.data["title"] for d in oldest], ["a", "b", "c", "undated"])
        self.assertEqual(self.store.list("empty"), [])

    def test_query_equality(self):
        done = self.store.add("tasks", {"status": "completed"})
        self.store.add("tasks", {"status": "pending"})
        self.store.add("tasks", {"title": "no status"})
        matches = self.store.query("tasks", "status", "completed")
        self.assertEqual([d.id for d in matches], [done])

    def test_update_merges_and_reports_missing(self):
        doc_id = self.store.add("tasks", {"title": "a", "status": "pending"})
        self.assertTrue(self.store.update("tasks", doc_id, {"status": "completed"}))
        self.assertEqual(
            self.store.get("tasks", doc_id), {"title": "a", "status": "completed"}
        )
        self.assertFalse(self.store.update("tasks", "missing", {"status": "x"}))

    def test_delete_is_not_idempotent(self):
        doc_id = self.store.add("tasks", {"title": "a"})
        self.assertTrue(self.store.delete("tasks", doc_id))
        self.assertFalse(self.store.delete("tasks", doc_id))
        self.assertEqual(self.store.count("tasks"), 0)

    def test_mutations_notify_change_feed(self):
        seen = []
        self.store.changes.listen("tasks", seen.append)
        doc_id = self.store.add("tasks", {"title": "a"})
        self.store.update("tasks", doc_id, {"title": "b"})
        self.store.update("tasks", "missing", {"title": "c"})
        self.store.delete("tasks", doc_id)
        self.store.delete("tasks", doc_id)
        self.assertEqual(seen, ["tasks", "tasks", "tasks"])


class InMemoryDocumentStoreTests(StoreContract, unittest.TestCase):
    def make_store(self):
        return InMemoryDocumentStore()

    def test_returned_documents_are_copies(self):
        doc_id = self.store.add("tasks", {"tags": ["a"]})
        self.store.get("tasks", doc_id)["tags"].append("b")
        self.assertEqual(self.store.get("tasks", doc_id), {"tags": ["a"]})

    def test_reset(self):
        self.store.add("tasks", {"title": "a"})
        self.store.reset()
        self.assertEqual(self.store.count("tasks"), 0)


class SqlDocumentStoreTests(StoreContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store logic.
    """

    def make_store(self):
        return SqlDocumentStore("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlDocumentStore("")


class JsonFileDocumentStoreTests(StoreContract, unittest.TestCase):
    def make_store(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "local" / "taskboard.json"
        return JsonFileDocumentStore(self.path)

    def test_data_survives_reopen(self):
        doc_id = self.store.add("users", {"name": "Ada"})
        reopened = JsonFileDocumentStore(self.path)
        self.assertEqual(reopened.get("users", doc_id), {"name": "Ada"})

    def test_file_layout_is_collection_arrays(self):
        doc_id = self.store.add("tasks", {"title": "a"})
        self.store.add("users", {"name": "Ada"})
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(set(payload), {"tasks", "users"})
        self.assertEqual(payload["tasks"], [{"title": "a", "id": doc_id}])


if __name__ == "__main__":
    unittest.main()
