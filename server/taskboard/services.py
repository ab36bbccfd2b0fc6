"""
Collection services for projects, tasks and users.

Each service wraps one collection of a ``DocumentStore``: it validates input
against the entity's create/update schema, stamps ``createdAt``/``updatedAt``,
maps stored documents to typed records and translates store failures into
``StoreError``. Services hold no state besides the injected store.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Any, Callable, ClassVar, Generic, Iterator, Mapping, Optional, TypeVar

import pydantic
from pydantic import BaseModel

from shared.constants import (
    CREATED_AT_FIELD,
    PROJECTS_COLLECTION,
    TASKS_COLLECTION,
    UPDATED_AT_FIELD,
    USERS_COLLECTION,
)
from shared.types import ProjectStatus, TaskStatus, UserRole
from taskboard.dashboard import is_overdue
from taskboard.errors import NotFoundError, StoreError, TaskBoardError, ValidationError
from taskboard.events import Subscription
from taskboard.schemas import (
    ProjectCreate,
    ProjectRecord,
    ProjectUpdate,
    Record,
    TaskCreate,
    TaskRecord,
    TaskUpdate,
    UserCreate,
    UserRecord,
    UserUpdate,
    epoch_seconds,
)
from taskboard.store import Document, DocumentStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)

# Smallest step that survives a float round-trip at current epoch values.
_MIN_TIMESTAMP_STEP = 1e-6

_IMMUTABLE_FIELDS = ("id", CREATED_AT_FIELD)


def _now() -> float:
    return time.time()


def _timestamp_after(previous: Any) -> float:
    now = _now()
    previous = epoch_seconds(previous)
    if isinstance(previous, (int, float)) and now <= previous:
        return previous + _MIN_TIMESTAMP_STEP
    return now


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _validation_message(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return "; ".join(parts)


class CollectionService(Generic[RecordT]):
    """CRUD, query and subscribe operations for one collection."""

    collection: str
    noun: ClassVar[str]
    record_model: ClassVar[type[Record]]
    create_model: ClassVar[type[BaseModel]]
    update_model: ClassVar[type[BaseModel]]
    required_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, store: DocumentStore, collection: Optional[str] = None):
        self.store = store
        if collection:
            self.collection = collection

    @contextmanager
    def _store_call(self, action: str) -> Iterator[None]:
        try:
            yield
        except TaskBoardError:
            raise
        except Exception as exc:
            logger.exception("Store failure (%s) on %s", action, self.collection)
            raise StoreError(action, exc) from exc

    def _to_record(self, doc_id: str, data: Mapping[str, Any]) -> RecordT:
        return self.record_model.model_validate({**data, "id": doc_id})

    def _to_records(self, docs: list[Document]) -> list[RecordT]:
        return [self._to_record(doc.id, doc.data) for doc in docs]

    def _parse(self, model: type[BaseModel], data: Mapping[str, Any] | BaseModel) -> BaseModel:
        if isinstance(data, model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ValidationError(_validation_message(exc)) from exc

    def _check_required(self, payload: Mapping[str, Any]) -> None:
        for name in self.required_fields:
            value = payload.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"{name.capitalize()} is required")

    def create(self, data: Mapping[str, Any] | BaseModel) -> RecordT:
        payload = self._parse(self.create_model, data).model_dump(mode="json")
        self._check_required(payload)
        now = _now()
        payload[CREATED_AT_FIELD] = now
        payload[UPDATED_AT_FIELD] = now
        with self._store_call(f"create {self.noun}"):
            doc_id = self.store.add(self.collection, payload)
        logger.debug("Created %s %s", self.noun, doc_id)
        return self._to_record(doc_id, payload)

    def get_all(
        self, order_by: Optional[str] = CREATED_AT_FIELD, descending: bool = True
    ) -> list[RecordT]:
        with self._store_call(f"fetch {self.collection}"):
            docs = self.store.list(
                self.collection, order_by=order_by, descending=descending
            )
            return self._to_records(docs)

    def get_by_id(self, doc_id: str) -> RecordT:
        with self._store_call(f"fetch {self.noun}"):
            data = self.store.get(self.collection, doc_id)
            if data is None:
                raise NotFoundError(self.noun, doc_id)
            return self._to_record(doc_id, data)

    def update(self, doc_id: str, fields: Mapping[str, Any] | BaseModel) -> RecordT:
        changes = self._parse(self.update_model, fields).model_dump(
            mode="json", exclude_unset=True
        )
        for name in _IMMUTABLE_FIELDS:
            changes.pop(name, None)
        with self._store_call(f"update {self.noun}"):
            existing = self.store.get(self.collection, doc_id)
            if existing is None:
                raise NotFoundError(self.noun, doc_id)
            changes[UPDATED_AT_FIELD] = _timestamp_after(existing.get(UPDATED_AT_FIELD))
            if not self.store.update(self.collection, doc_id, changes):
                raise NotFoundError(self.noun, doc_id)
        return self.get_by_id(doc_id)

    def delete(self, doc_id: str) -> None:
        with self._store_call(f"delete {self.noun}"):
            if not self.store.delete(self.collection, doc_id):
                raise NotFoundError(self.noun, doc_id)
        logger.debug("Deleted %s %s", self.noun, doc_id)

    def query_by_field(self, field: str, value: Any) -> list[RecordT]:
        with self._store_call(f"fetch {self.collection} by {field}"):
            docs = self.store.query(self.collection, field, _plain(value))
            return self._to_records(docs)

    def _query_ordered(self, field: str, value: Any) -> list[RecordT]:
        records = self.query_by_field(field, value)
        return sorted(records, key=lambda r: r.createdAt or 0.0, reverse=True)

    def subscribe(
        self,
        callback: Callable[[list[RecordT]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Subscription:
        """
        Deliver the collection snapshot now and after every change.

        The listener is registered before the initial read, and deliveries are
        held until the initial snapshot has been handed over, so a concurrent
        write is never lost. Raises ``StoreError`` if the initial snapshot
        cannot be read; in that case nothing is left registered.
        """

        def _on_change(_collection: str) -> None:
            try:
                snapshot = self.get_all()
                callback(snapshot)
            except Exception as exc:
                if on_error is None:
                    logger.exception("Subscriber to %s failed", self.collection)
                else:
                    on_error(exc)

        with self._store_call(f"subscribe to {self.collection}"):
            subscription = self.store.changes.listen(self.collection, _on_change)
        with subscription.held():
            try:
                callback(self.get_all())
            except Exception:
                subscription.unsubscribe()
                raise
        return subscription


class ProjectService(CollectionService[ProjectRecord]):
    collection = PROJECTS_COLLECTION
    noun = "project"
    record_model = ProjectRecord
    create_model = ProjectCreate
    update_model = ProjectUpdate

    def get_by_status(self, status: ProjectStatus | str) -> list[ProjectRecord]:
        return self._query_ordered("status", status)


class TaskService(CollectionService[TaskRecord]):
    collection = TASKS_COLLECTION
    noun = "task"
    record_model = TaskRecord
    create_model = TaskCreate
    update_model = TaskUpdate
    required_fields = ("title",)

    def get_by_status(self, status: TaskStatus | str) -> list[TaskRecord]:
        return self.query_by_field("status", status)

    def get_by_project(self, project_id: str) -> list[TaskRecord]:
        return self.query_by_field("projectId", project_id)

    def get_by_assignee(self, user_id: str) -> list[TaskRecord]:
        return self.query_by_field("assignedTo", user_id)

    def get_overdue(self, now: Optional[datetime] = None) -> list[TaskRecord]:
        return [task for task in self.get_all() if is_overdue(task, now)]

    def unassign_user(self, user_id: str) -> int:
        """Clear ``assignedTo`` on every task pointing at ``user_id``."""
        tasks = self.get_by_assignee(user_id)
        for task in tasks:
            self.update(task.id, {"assignedTo": None})
        return len(tasks)


class UserService(CollectionService[UserRecord]):
    collection = USERS_COLLECTION
    noun = "user"
    record_model = UserRecord
    create_model = UserCreate
    update_model = UserUpdate
    required_fields = ("name", "email")

    def __init__(
        self,
        store: DocumentStore,
        collection: Optional[str] = None,
        *,
        tasks: Optional[TaskService] = None,
        unassign_tasks_on_delete: bool = False,
    ):
        super().__init__(store, collection)
        if unassign_tasks_on_delete and tasks is None:
            raise ValueError("unassign_tasks_on_delete requires a TaskService")
        self.tasks = tasks
        self.unassign_tasks_on_delete = unassign_tasks_on_delete

    def delete(self, doc_id: str) -> None:
        super().delete(doc_id)
        if self.unassign_tasks_on_delete:
            cleared = self.tasks.unassign_user(doc_id)
            logger.info("Unassigned %d task(s) from deleted user %s", cleared, doc_id)

    def get_by_role(self, role: UserRole | str) -> list[UserRecord]:
        return self.query_by_field("role", role)

    def get_by_department(self, department: str) -> list[UserRecord]:
        return self.query_by_field("department", department)

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        matches = self.query_by_field("email", email)
        return matches[0] if matches else None
