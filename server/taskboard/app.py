"""
FastAPI application entry point for the task board service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from taskboard.config import get_settings
from taskboard.errors import NotFoundError, StoreError, ValidationError
from taskboard.routes import envelope_response, router

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return envelope_response(400, success=False, message=str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return envelope_response(
            400, success=False, message="Invalid request body", error=str(exc)
        )

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return envelope_response(404, success=False, message=str(exc))

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return envelope_response(
            500,
            success=False,
            message=f"Failed to {exc.action}",
            error=str(exc.cause),
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return envelope_response(
            500, success=False, message="Internal server error", error=str(exc)
        )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(
        title="Task Management System API",
        description="API for managing projects, tasks and users over a document store",
        version="1.0.0",
    )
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
