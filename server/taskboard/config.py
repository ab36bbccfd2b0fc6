"""
Configuration and settings for the task board service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.constants import PROJECTS_COLLECTION, TASKS_COLLECTION, USERS_COLLECTION


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api", validation_alias="API_PREFIX")
    log_level: str = Field(default="INFO", validation_alias="TASKBOARD_LOG_LEVEL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="TASKBOARD_USE_IN_MEMORY_BACKENDS"
    )

    # SQL document store (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Cloud Firestore
    firebase_project_id: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_PROJECT_ID"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_CREDENTIALS_PATH"
    )

    # Local JSON file fallback
    local_store_path: Optional[str] = Field(
        default=None, validation_alias="TASKBOARD_LOCAL_STORE_PATH"
    )

    # Collection names
    projects_collection: str = Field(
        default=PROJECTS_COLLECTION, validation_alias="TASKBOARD_PROJECTS_COLLECTION"
    )
    tasks_collection: str = Field(
        default=TASKS_COLLECTION, validation_alias="TASKBOARD_TASKS_COLLECTION"
    )
    users_collection: str = Field(
        default=USERS_COLLECTION, validation_alias="TASKBOARD_USERS_COLLECTION"
    )

    unassign_tasks_on_user_delete: bool = Field(
        default=False, validation_alias="TASKBOARD_UNASSIGN_TASKS_ON_USER_DELETE"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
