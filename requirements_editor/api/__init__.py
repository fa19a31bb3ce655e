"""
FastAPI application factory and API package.

Run with:
    uvicorn requirements_editor.api:app --port 3000

Or via main.py:
    python -m requirements_editor --serve
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from requirements_editor.api.routes import (
    health_router,
    relationships_router,
    requirements_router,
)
from requirements_editor.config import get_settings
from requirements_editor.models.enums import ErrorKind
from requirements_editor.models.errors import DatabaseNotReadyError, RequirementsEditorError
from requirements_editor.persistence.sqlite_client import MirrorDatabase
from requirements_editor.services.git_service import WorkingCopy
from requirements_editor.services.github_service import close_review_client
from requirements_editor.utils.logger import setup_logging

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
}


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)

    database = MirrorDatabase(settings.database_path)
    try:
        database.connect()
    except DatabaseNotReadyError as exc:
        logger.error(f"{exc.message} Read endpoints fail until the mirror exists.")
    application.state.database = database
    application.state.working_copy = WorkingCopy(
        settings.repo_root,
        remote=settings.git_remote,
        default_branch=settings.default_branch,
    )
    logger.info(f"Starting {settings.app_name} API on port {settings.port}")
    logger.info(f"Working copy: {application.state.working_copy.repo_root}")

    yield

    logger.info("Shutting down: waiting for in-flight git operations")
    await application.state.working_copy.drain()
    await close_review_client()
    database.close()


def create_app() -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title=f"{settings.app_name} API",
        description="Edit requirement documents and submit every change as a pull request",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health_router, tags=["Health"])
    application.include_router(requirements_router, prefix="/requirements", tags=["Requirements"])
    application.include_router(relationships_router, prefix="/relationships", tags=["Relationships"])

    _register_error_handlers(application)
    return application


def _register_error_handlers(application: FastAPI) -> None:
    @application.exception_handler(RequirementsEditorError)
    async def domain_error(request: Request, exc: RequirementsEditorError):
        status_code = _STATUS_BY_KIND.get(exc.kind, 500)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed [{exc.kind.value}]: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Request body must be a JSON object.", "kind": ErrorKind.VALIDATION.value},
        )

    @application.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = "Resource not found." if exc.status_code == 404 else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": message},
            headers=getattr(exc, "headers", None),
        )

    @application.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"message": "Something broke on the server!"})


# Module-level instance for `uvicorn requirements_editor.api:app`
app = create_app()
