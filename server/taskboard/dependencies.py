"""
Dependency wiring for the FastAPI app.

One document store client is built per process and injected into every
collection service.
"""

from __future__ import annotations

import logging

from taskboard.config import Settings, get_settings
from taskboard.services import ProjectService, TaskService, UserService
from taskboard.store import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    SqlDocumentStore,
)

logger = logging.getLogger(__name__)

_store_client: DocumentStore | None = None


def build_store(settings: Settings) -> DocumentStore:
    if settings.use_in_memory_backends:
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()
    if settings.database_url:
        logger.info("Using SQL document store")
        return SqlDocumentStore(settings.database_url)
    if settings.firebase_project_id or settings.firebase_credentials_path:
        logger.info("Using Firestore document store")
        return FirestoreDocumentStore(
            project_id=settings.firebase_project_id,
            credentials_path=settings.firebase_credentials_path,
        )
    if settings.local_store_path:
        logger.info("Using local JSON document store at %s", settings.local_store_path)
        return JsonFileDocumentStore(settings.local_store_path)
    logger.info("No store configured; falling back to in-memory document store")
    return InMemoryDocumentStore()


def get_store_client() -> DocumentStore:
    """
    Return a singleton store client so data and subscriptions persist across requests.
    """
    global _store_client
    if _store_client:
        return _store_client
    _store_client = build_store(get_settings())
    return _store_client


def get_project_service() -> ProjectService:
    settings = get_settings()
    return ProjectService(get_store_client(), settings.projects_collection)


def get_task_service() -> TaskService:
    settings = get_settings()
    return TaskService(get_store_client(), settings.tasks_collection)


def get_user_service() -> UserService:
    settings = get_settings()
    return UserService(
        get_store_client(),
        settings.users_collection,
        tasks=get_task_service(),
        unassign_tasks_on_delete=settings.unassign_tasks_on_user_delete,
    )
