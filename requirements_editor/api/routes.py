"""
API routes — thin HTTP layer over the services.

Routes:
  GET  /health                       → liveness check (unprotected)
  GET  /requirements                 → summary list from the mirror
  GET  /requirements/{id}            → one mirror row
  GET  /requirements/{id}/document   → canonical document on the default branch
  POST /requirements                 → create: branch, commit, push, pull request
  PUT  /requirements/{id}            → update: same pipeline, `fix/` branch
  GET  /relationships/graph          → node/link graph with placeholder closure
"""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field

from requirements_editor.api.auth import get_current_user
from requirements_editor.config import get_settings
from requirements_editor.models.errors import NotFoundError
from requirements_editor.models.schemas import GraphData, SourceDocument, UserPrincipal
from requirements_editor.persistence.requirement_repository import RequirementRepository
from requirements_editor.services.document_service import DocumentService
from requirements_editor.services.git_service import WorkingCopy
from requirements_editor.services.github_service import get_review_client
from requirements_editor.services.graph_service import GraphService
from requirements_editor.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
requirements_router = APIRouter(dependencies=[Depends(get_current_user)])
relationships_router = APIRouter(dependencies=[Depends(get_current_user)])


# ── Response schemas ─────────────────────────────────────
class RequirementSummary(BaseModel):
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    branch: str
    pull_request_url: str = Field(alias="pullRequestUrl")
    file_path: str = Field(alias="filePath")


# ── Dependencies (overridden in tests) ───────────────────

def get_repository(request: Request) -> RequirementRepository:
    return RequirementRepository(request.app.state.database)


def get_working_copy(request: Request) -> WorkingCopy:
    return request.app.state.working_copy


def get_submission_service(
    working_copy: WorkingCopy = Depends(get_working_copy),
) -> SubmissionService:
    settings = get_settings()
    return SubmissionService(
        working_copy,
        get_review_client(),
        return_to_default_branch=settings.return_to_default_branch,
    )


def get_document_service(
    working_copy: WorkingCopy = Depends(get_working_copy),
) -> DocumentService:
    return DocumentService(working_copy)


def get_graph_service(
    repository: RequirementRepository = Depends(get_repository),
) -> GraphService:
    return GraphService(repository)


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Reads (mirror + default branch) ──────────────────────

@requirements_router.get("", response_model=list[RequirementSummary])
async def list_requirements(
    repository: RequirementRepository = Depends(get_repository),
):
    return await repository.list_requirements()


@requirements_router.get("/{requirement_id}")
async def get_requirement(
    requirement_id: str,
    repository: RequirementRepository = Depends(get_repository),
) -> dict[str, Any]:
    row = await repository.get_requirement(requirement_id)
    if row is None:
        raise NotFoundError(f"Requirement {requirement_id} not found.")
    return row


@requirements_router.get("/{requirement_id}/document", response_model=SourceDocument)
async def get_requirement_document(
    requirement_id: str,
    service: DocumentService = Depends(get_document_service),
):
    return await service.load_document(requirement_id)


# ── Submissions ──────────────────────────────────────────

def _run_detached(submission: Awaitable[Any], label: str) -> asyncio.Future:
    """
    Run `submission` as its own task and await it through a shield, so a
    client disconnect does not cancel a half-finished pipeline. The task's
    outcome is logged when it ends, whether or not anyone still awaits it.
    """
    task = asyncio.ensure_future(submission)
    task.add_done_callback(functools.partial(_log_submission_outcome, label))
    return asyncio.shield(task)


def _log_submission_outcome(label: str, task: asyncio.Future) -> None:
    if task.cancelled():
        logger.warning(f"{label} was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"{label} ended with {type(exc).__name__}: {exc}")
    else:
        logger.debug(f"{label} finished")


@requirements_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SubmissionResponse,
)
async def create_requirement(
    data: dict[str, Any] = Body(...),
    user: UserPrincipal = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    logger.info(f"Create requested by {user.username}: {data.get('id')}")
    result = await _run_detached(
        service.submit_create(data, author=user), f"Create of {data.get('id')}",
    )
    return SubmissionResponse(
        message="Requirement submitted for review. Pull request created.",
        branch=result.branch,
        pull_request_url=result.review_url,
        file_path=result.file_path,
    )


@requirements_router.put("/{requirement_id}", response_model=SubmissionResponse)
async def update_requirement(
    requirement_id: str,
    data: dict[str, Any] = Body(...),
    user: UserPrincipal = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    logger.info(f"Update of {requirement_id} requested by {user.username}")
    result = await _run_detached(
        service.submit_update(requirement_id, data, author=user), f"Update of {requirement_id}",
    )
    return SubmissionResponse(
        message="Requirement update submitted for review. Pull request created.",
        branch=result.branch,
        pull_request_url=result.review_url,
        file_path=result.file_path,
    )


# ── Graph ────────────────────────────────────────────────

@relationships_router.get("/graph", response_model=GraphData)
async def get_relationship_graph(
    service: GraphService = Depends(get_graph_service),
):
    return await service.project()
