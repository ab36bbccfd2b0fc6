"""
Validate the configured document store.

Reports which backend the current settings select and how many documents each
required collection holds. Exits non-zero if the store cannot be reached.

Usage:
  python scripts/validate_store_setup.py
  python scripts/validate_store_setup.py --seed
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shared.types import ProjectStatus, TaskPriority, UserRole
from taskboard.config import Settings, get_settings
from taskboard.dependencies import build_store
from taskboard.services import ProjectService, TaskService, UserService
from taskboard.store import DocumentStore

logger = logging.getLogger(__name__)


def required_collections(settings: Settings) -> list[str]:
    return [
        settings.projects_collection,
        settings.tasks_collection,
        settings.users_collection,
    ]


def check_collections(store: DocumentStore, collections: Sequence[str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for name in collections:
        counts[name] = store.count(name)
        if counts[name]:
            logger.info("collection %-16s %d document(s)", name, counts[name])
        else:
            logger.warning("collection %-16s is empty (created on first write)", name)
    return counts


def seed_sample_data(store: DocumentStore, settings: Settings) -> None:
    projects = ProjectService(store, settings.projects_collection)
    users = UserService(store, settings.users_collection)
    tasks = TaskService(store, settings.tasks_collection)

    project = projects.create(
        {
            "name": "Sample project",
            "description": "Created by validate_store_setup.py",
            "status": ProjectStatus.ACTIVE,
        }
    )
    user = users.create(
        {
            "name": "Sample User",
            "email": "sample.user@example.com",
            "role": UserRole.DEVELOPER,
            "department": "Engineering",
        }
    )
    task = tasks.create(
        {
            "title": "Try the task board",
            "projectId": project.id,
            "assignedTo": user.id,
            "priority": TaskPriority.HIGH,
        }
    )
    logger.info(
        "Seeded project=%s user=%s task=%s", project.id, user.id, task.id
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Insert a sample project, user and task after validating.",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    settings = get_settings()
    try:
        store = build_store(settings)
        logger.info("Store backend: %s", type(store).__name__)
        check_collections(store, required_collections(settings))
        if args.seed:
            seed_sample_data(store, settings)
    except Exception:
        logger.exception("Store validation failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
