import unittest
from datetime import datetime, timezone

from taskboard.dashboard import (
    is_overdue,
    parse_date,
    project_name,
    summarize,
    upcoming_deadlines,
    user_name,
)
from taskboard.schemas import ProjectRecord, TaskRecord, UserRecord

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _task(task_id, **fields):
    return TaskRecord(id=task_id, title=fields.pop("title", task_id), **fields)


class DashboardTests(unittest.TestCase):
    def test_parse_date_formats(self):
        self.assertEqual(parse_date("2024-01-01"), datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(
            parse_date("2024-01-01T10:30:00Z"),
            datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc),
        )
        self.assertIsNone(parse_date("next tuesday"))
        self.assertIsNone(parse_date(None))

    def test_is_overdue(self):
        self.assertTrue(is_overdue(_task("a", deadline="2024-05-31"), NOW))
        self.assertTrue(is_overdue(_task("b", dueDate="2024-05-31"), NOW))
        self.assertFalse(is_overdue(_task("c", deadline="2024-06-02"), NOW))
        self.assertFalse(
            is_overdue(_task("d", deadline="2024-05-31", status="completed"), NOW)
        )
        self.assertFalse(is_overdue(_task("e"), NOW))
        self.assertFalse(is_overdue(_task("f", deadline="garbage"), NOW))

    def test_weak_reference_names(self):
        projects = [ProjectRecord(id="p1", name="Launch")]
        users = [UserRecord(id="u1", name="Ada", email="ada@example.com")]
        self.assertEqual(project_name("p1", projects), "Launch")
        self.assertEqual(project_name("gone", projects), "Unknown")
        self.assertEqual(project_name(None, projects), "Unknown")
        self.assertEqual(user_name("u1", users), "Ada")
        self.assertEqual(user_name("gone", users), "Unassigned")
        self.assertEqual(user_name(None, users), "Unassigned")

    def test_upcoming_deadlines_sorted_and_limited(self):
        tasks = [
            _task("undated"),
            _task("late", deadline="2024-05-01", projectId="p1"),
            _task("done", deadline="2024-01-01", status="completed"),
        ] + [_task(f"t{i}", deadline=f"2024-07-0{i}") for i in range(1, 6)]
        projects = [ProjectRecord(id="p1", name="Launch")]

        upcoming = upcoming_deadlines(tasks, projects, NOW)
        self.assertEqual([item.id for item in upcoming], ["late", "t1", "t2", "t3", "t4"])
        self.assertEqual(upcoming[0].projectName, "Launch")
        self.assertTrue(upcoming[0].overdue)
        self.assertEqual(upcoming[1].projectName, "Unknown")
        self.assertFalse(upcoming[1].overdue)

    def test_summarize(self):
        tasks = [
            _task("a", deadline="2024-05-01"),
            _task("b", status="in-progress"),
            _task("c", status="completed", deadline="2024-05-01"),
        ]
        summary = summarize([ProjectRecord(id="p1", name="Launch")], tasks, NOW)
        self.assertEqual(summary.totalProjects, 1)
        self.assertEqual(summary.totalTasks, 3)
        self.assertEqual(summary.pendingTasks, 1)
        self.assertEqual(summary.inProgressTasks, 1)
        self.assertEqual(summary.completedTasks, 1)
        self.assertEqual(summary.overdueTasks, 1)
        self.assertEqual([item.id for item in summary.upcomingDeadlines], ["a", "b"])


if __name__ == "__main__":
    unittest.main()
