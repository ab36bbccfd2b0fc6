"""
Pydantic schemas for task board records and the HTTP envelope.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.types import ProjectStatus, TaskPriority, TaskStatus, UserRole


def epoch_seconds(value: Any) -> Any:
    """
    Normalise a stored timestamp to epoch seconds.

    Firestore hands back ``Timestamp`` fields as datetimes and older JSON
    exports carry ISO strings; anything else is returned untouched for the
    field validation to judge.
    """
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return value


class Record(BaseModel):
    """A stored document annotated with its identifier."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    createdAt: Optional[float] = None
    updatedAt: Optional[float] = None

    @field_validator("createdAt", "updatedAt", mode="before")
    @classmethod
    def _normalise_timestamp(cls, value: Any) -> Any:
        return epoch_seconds(value)


class PartialUpdate(BaseModel):
    """
    Base for update payloads. Every field may be omitted, but the ones listed
    in ``non_nullable`` may not be sent as an explicit ``null``.
    """

    non_nullable: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_nulls(self):
        for name in self.non_nullable:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ProjectRecord(Record):
    name: Optional[str] = None
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    startDate: Optional[str] = None
    endDate: Optional[str] = None


class TaskRecord(Record):
    title: str = ""
    description: str = ""
    projectId: Optional[str] = None
    assignedTo: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    deadline: Optional[str] = None
    dueDate: Optional[str] = None


class UserRecord(Record):
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.DEVELOPER
    department: Optional[str] = None


class ProjectCreate(BaseModel):
    name: Optional[str] = None
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    startDate: Optional[str] = None
    endDate: Optional[str] = None


class ProjectUpdate(PartialUpdate):
    non_nullable = ("description", "status")

    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None


class TaskCreate(BaseModel):
    # Optional so a missing title reaches the service and becomes a 400.
    title: Optional[str] = None
    description: str = ""
    projectId: Optional[str] = None
    assignedTo: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    deadline: Optional[str] = None
    dueDate: Optional[str] = None


class TaskUpdate(PartialUpdate):
    non_nullable = ("title", "description", "status", "priority")

    title: Optional[str] = None
    description: Optional[str] = None
    projectId: Optional[str] = None
    assignedTo: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    deadline: Optional[str] = None
    dueDate: Optional[str] = None


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = UserRole.DEVELOPER
    department: Optional[str] = None


class UserUpdate(PartialUpdate):
    non_nullable = ("name", "email", "role")

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None


class Envelope(BaseModel):
    """Uniform response wrapper; dump with ``exclude_unset`` to drop absent keys."""

    success: bool
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None


class UpcomingDeadline(BaseModel):
    id: str
    title: str = ""
    status: str
    deadline: Optional[str] = None
    projectName: str
    overdue: bool


class DashboardSummary(BaseModel):
    totalProjects: int
    totalTasks: int
    completedTasks: int
    pendingTasks: int
    inProgressTasks: int
    overdueTasks: int
    upcomingDeadlines: list[UpcomingDeadline] = Field(default_factory=list)
