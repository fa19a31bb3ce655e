"""
Submission Service — turns an edited requirement into a pull request.

Pipeline (create and update):
  1. validate + normalise the payload          (no side effects on failure)
  2. derive branch, file path, commit message, review title/body
  3. encode the canonical document              (no side effects on failure)
  4. under the working-copy slot: commit → push, then back to the default
     branch whether or not they succeeded
  5. open the review request                    (outside the slot)

Failures in steps 4–5 surface as SubmissionError with the underlying error
as `cause`. Nothing is retried or rolled back; branch names are unique per
submission, so a half-finished attempt never blocks the next one.
"""

from __future__ import annotations

import logging
from typing import Any

from requirements_editor.models.enums import SubmissionIntent
from requirements_editor.models.errors import (
    GitCommandError,
    RequirementValidationError,
    ReviewApiError,
    ReviewMissingError,
    SubmissionError,
)
from requirements_editor.models.schemas import (
    RequirementPayload,
    SubmissionResult,
    UserPrincipal,
)
from requirements_editor.services.document_codec import encode
from requirements_editor.services.git_service import WorkingCopy
from requirements_editor.services.github_service import GitHubClient
from requirements_editor.utils.naming import (
    branch_name,
    commit_message,
    requirement_file_name,
    requirement_file_path,
    review_body,
    review_title,
)

logger = logging.getLogger(__name__)

_PIPELINE_ERRORS = (GitCommandError, ReviewApiError, ReviewMissingError)


class SubmissionService:
    """Edit-to-Review orchestrator."""

    def __init__(
        self,
        working_copy: WorkingCopy,
        review_client: GitHubClient,
        return_to_default_branch: bool = True,
    ):
        self.working_copy = working_copy
        self.review_client = review_client
        self.return_to_default_branch = return_to_default_branch

    # ── Public API ───────────────────────────────────────

    async def submit_create(
        self,
        data: dict[str, Any],
        author: UserPrincipal | None = None,
    ) -> SubmissionResult:
        payload = RequirementPayload.from_submission(data)
        return await self._submit(SubmissionIntent.CREATE, payload, author)

    async def submit_update(
        self,
        requirement_id: str,
        data: dict[str, Any],
        author: UserPrincipal | None = None,
    ) -> SubmissionResult:
        """The id in the path wins; a payload naming another id is rejected."""
        if not isinstance(data, dict):
            raise RequirementValidationError("Request body must be a JSON object.")

        data = dict(data)
        body_id = str(data.get("id") or "").strip()
        if not body_id:
            data["id"] = requirement_id
        elif body_id != requirement_id:
            raise RequirementValidationError(
                f"Requirement id cannot be changed ({requirement_id} → {body_id}).",
                fields=["id"],
            )

        payload = RequirementPayload.from_submission(data)
        return await self._submit(SubmissionIntent.UPDATE, payload, author)

    # ── Pipeline ─────────────────────────────────────────

    async def _submit(
        self,
        intent: SubmissionIntent,
        payload: RequirementPayload,
        author: UserPrincipal | None,
    ) -> SubmissionResult:
        branch = branch_name(intent, payload.id)
        file_path = requirement_file_path(payload.id, payload.type.value)
        message = commit_message(intent, payload.id, payload.name)
        title = review_title(intent, payload.id, payload.name)
        body = review_body(
            intent, payload.id, payload.name,
            submitted_by=author.username if author else None,
        )
        content = encode(payload)

        logger.info(f"[{intent.value}] {payload.id} → {file_path} on {branch}")

        try:
            async with self.working_copy.exclusive():
                try:
                    if intent is SubmissionIntent.UPDATE:
                        await self._check_existing(payload.id, file_path)
                    outcome = await self.working_copy.commit(
                        branch, file_path, content, message, author=author,
                    )
                    await self.working_copy.push(branch)
                finally:
                    if self.return_to_default_branch:
                        await self._return_to_default_branch()

            review = await self.review_client.open_review(
                branch, title, body, base=self.working_copy.default_branch,
            )
        except _PIPELINE_ERRORS as exc:
            logger.error(f"[{intent.value}] {payload.id} failed on {branch}: {exc.message}")
            raise SubmissionError(
                f"Failed to submit requirement {payload.id}", cause=exc,
            ) from exc

        logger.info(
            f"[{intent.value}] {payload.id} submitted: PR #{review.number} {review.url}"
            + (" (no content change)" if outcome.empty else "")
        )
        return SubmissionResult(
            branch=branch,
            review_url=review.url,
            file_path=file_path,
            review_number=review.number,
            empty_commit=outcome.empty,
        )

    async def _check_existing(self, requirement_id: str, file_path: str) -> None:
        paths = await self.working_copy.locate(requirement_file_name(requirement_id))
        if not paths:
            logger.info(
                f"No existing document for {requirement_id} on "
                f"{self.working_copy.default_branch}; update creates {file_path}"
            )
        elif file_path not in paths:
            logger.warning(
                f"Type of {requirement_id} changed: writing {file_path}, "
                f"previous document left at {', '.join(paths)}"
            )

    async def _return_to_default_branch(self) -> None:
        try:
            await self.working_copy.switch_to_main_and_pull()
        except GitCommandError as exc:
            logger.error(
                f"Could not return to {self.working_copy.default_branch}: {exc.message}"
            )
