"""
HTTP routes for the task board API.

Every response uses the ``Envelope`` shape. Domain errors raised by the
services are rendered by the handlers registered in ``taskboard.app``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from taskboard.dashboard import summarize
from taskboard.dependencies import get_project_service, get_task_service
from taskboard.schemas import DashboardSummary, Envelope, TaskCreate, TaskUpdate
from taskboard.services import ProjectService, TaskService

logger = logging.getLogger(__name__)

router = APIRouter()


def envelope_response(status_code: int, **fields) -> JSONResponse:
    """Render an envelope, leaving out keys that were not given."""
    content = Envelope(**fields).model_dump(mode="json", exclude_unset=True)
    return JSONResponse(status_code=status_code, content=content)


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/tasks", response_model=Envelope, tags=["Tasks"])
def list_tasks(tasks: TaskService = Depends(get_task_service)):
    """Retrieve all tasks, newest first."""
    records = tasks.get_all()
    return envelope_response(
        200,
        success=True,
        message="Tasks retrieved successfully",
        data=[record.model_dump(mode="json") for record in records],
    )


@router.post("/tasks", response_model=Envelope, status_code=201, tags=["Tasks"])
def create_task(payload: TaskCreate, tasks: TaskService = Depends(get_task_service)):
    record = tasks.create(payload)
    logger.info("Created task %s", record.id)
    return envelope_response(
        201,
        success=True,
        message="Task created successfully",
        data=record.model_dump(mode="json"),
    )


@router.get("/tasks/{task_id}", response_model=Envelope, tags=["Tasks"])
def get_task(task_id: str, tasks: TaskService = Depends(get_task_service)):
    record = tasks.get_by_id(task_id)
    return envelope_response(200, success=True, data=record.model_dump(mode="json"))


@router.put("/tasks/{task_id}", response_model=Envelope, tags=["Tasks"])
def update_task(
    task_id: str,
    payload: TaskUpdate,
    tasks: TaskService = Depends(get_task_service),
):
    """Merge the given fields into an existing task."""
    record = tasks.update(task_id, payload)
    return envelope_response(
        200,
        success=True,
        message="Task updated successfully",
        data=record.model_dump(mode="json"),
    )


@router.delete("/tasks/{task_id}", response_model=Envelope, tags=["Tasks"])
def delete_task(task_id: str, tasks: TaskService = Depends(get_task_service)):
    tasks.delete(task_id)
    logger.info("Deleted task %s", task_id)
    return envelope_response(200, success=True, message="Task deleted successfully")


@router.get("/dashboard", response_model=Envelope, tags=["Dashboard"])
def dashboard(
    projects: ProjectService = Depends(get_project_service),
    tasks: TaskService = Depends(get_task_service),
):
    summary: DashboardSummary = summarize(projects.get_all(), tasks.get_all())
    return envelope_response(
        200,
        success=True,
        message="Dashboard data retrieved successfully",
        data=summary.model_dump(mode="json"),
    )
