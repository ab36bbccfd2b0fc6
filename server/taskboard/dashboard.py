"""
Derived views over task and project records: overdue detection, dashboard
stats and display names for weak references.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from shared.constants import (
    UNASSIGNED_USER_LABEL,
    UNKNOWN_PROJECT_LABEL,
    UPCOMING_DEADLINES_LIMIT,
)
from shared.types import TaskStatus
from taskboard.schemas import (
    DashboardSummary,
    ProjectRecord,
    TaskRecord,
    UpcomingDeadline,
    UserRecord,
)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime string; naive values are taken as UTC."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def task_deadline(task: TaskRecord) -> Optional[datetime]:
    return parse_date(task.deadline or task.dueDate)


def is_overdue(task: TaskRecord, now: Optional[datetime] = None) -> bool:
    if task.status == TaskStatus.COMPLETED:
        return False
    deadline = task_deadline(task)
    if deadline is None:
        return False
    return deadline < (now or datetime.now(timezone.utc))


def project_name(project_id: Optional[str], projects: Iterable[ProjectRecord]) -> str:
    for project in projects:
        if project.id == project_id:
            return project.name or UNKNOWN_PROJECT_LABEL
    return UNKNOWN_PROJECT_LABEL


def user_name(user_id: Optional[str], users: Iterable[UserRecord]) -> str:
    for user in users:
        if user.id == user_id:
            return user.name or UNASSIGNED_USER_LABEL
    return UNASSIGNED_USER_LABEL


def _deadline_sort_key(task: TaskRecord) -> tuple[bool, datetime]:
    # Undated tasks sort last.
    deadline = task_deadline(task)
    return (deadline is None, deadline or _EPOCH)


def upcoming_deadlines(
    tasks: Sequence[TaskRecord],
    projects: Sequence[ProjectRecord],
    now: Optional[datetime] = None,
    limit: int = UPCOMING_DEADLINES_LIMIT,
) -> list[UpcomingDeadline]:
    open_tasks = [task for task in tasks if task.status != TaskStatus.COMPLETED]
    open_tasks.sort(key=_deadline_sort_key)
    return [
        UpcomingDeadline(
            id=task.id,
            title=task.title,
            status=TaskStatus(task.status).value,
            deadline=task.deadline or task.dueDate,
            projectName=project_name(task.projectId, projects),
            overdue=is_overdue(task, now),
        )
        for task in open_tasks[:limit]
    ]


def summarize(
    projects: Sequence[ProjectRecord],
    tasks: Sequence[TaskRecord],
    now: Optional[datetime] = None,
) -> DashboardSummary:
    now = now or datetime.now(timezone.utc)
    statuses = [task.status for task in tasks]
    return DashboardSummary(
        totalProjects=len(projects),
        totalTasks=len(tasks),
        completedTasks=statuses.count(TaskStatus.COMPLETED),
        pendingTasks=statuses.count(TaskStatus.PENDING),
        inProgressTasks=statuses.count(TaskStatus.IN_PROGRESS),
        overdueTasks=sum(1 for task in tasks if is_overdue(task, now)),
        upcomingDeadlines=upcoming_deadlines(tasks, projects, now),
    )
