import unittest
from unittest.mock import patch

from scripts import validate_store_setup
from taskboard.config import Settings
from taskboard.store import InMemoryDocumentStore


class ValidateStoreSetupTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(use_in_memory_backends=True)
        self.store = InMemoryDocumentStore()

    def test_reports_collections(self):
        self.store.add("tasks", {"title": "a"})
        counts = validate_store_setup.check_collections(
            self.store, validate_store_setup.required_collections(self.settings)
        )
        self.assertEqual(counts, {"projects": 0, "tasks": 1, "users": 0})

    @patch("scripts.validate_store_setup.get_settings")
    @patch("scripts.validate_store_setup.build_store")
    def test_seed_inserts_linked_sample_data(self, mock_build_store, mock_settings):
        mock_settings.return_value = self.settings
        mock_build_store.return_value = self.store

        self.assertEqual(validate_store_setup.main(["--seed"]), 0)

        [task] = self.store.list("tasks")
        [project] = self.store.list("projects")
        [user] = self.store.list("users")
        self.assertEqual(task.data["projectId"], project.id)
        self.assertEqual(task.data["assignedTo"], user.id)
        self.assertEqual(task.data["priority"], "high")

    @patch("scripts.validate_store_setup.get_settings")
    @patch("scripts.validate_store_setup.build_store")
    def test_unreachable_store_exits_non_zero(self, mock_build_store, mock_settings):
        mock_settings.return_value = self.settings
        mock_build_store.side_effect = ConnectionError("no route to host")
        with self.assertLogs("scripts.validate_store_setup", level="ERROR"):
            self.assertEqual(validate_store_setup.main([]), 1)


if __name__ == "__main__":
    unittest.main()
