"""
Naming rules for branches, files, commits and review requests.

  branch     create → feat/req-<id>-<epoch-ms>
             update → fix/req-<id>-<epoch-ms>
  file path  requirements/<type-folder>/<id-sanitised>.md
"""

from __future__ import annotations

import re
import time
from posixpath import join as posix_join

from requirements_editor.models.enums import SubmissionIntent

REQUIREMENTS_DIR = "requirements"
DEFAULT_TYPE_FOLDER = "general"

_TYPE_FOLDER_STRIP_RE = re.compile(r"[^a-z0-9]")
_ID_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")

_BRANCH_PREFIX = {
    SubmissionIntent.CREATE: "feat",
    SubmissionIntent.UPDATE: "fix",
}


def type_folder(requirement_type: str) -> str:
    """'Non-Functional' → 'nonfunctional', 'UI/UX' → 'uiux', '' → 'general'."""
    folder = _TYPE_FOLDER_STRIP_RE.sub("", requirement_type.lower())
    return folder or DEFAULT_TYPE_FOLDER


def sanitize_id(requirement_id: str) -> str:
    return _ID_UNSAFE_RE.sub("_", requirement_id)


def requirement_file_name(requirement_id: str) -> str:
    return f"{sanitize_id(requirement_id)}.md"


def requirement_file_path(requirement_id: str, requirement_type: str) -> str:
    """Repo-relative POSIX path of a requirement document."""
    return posix_join(
        REQUIREMENTS_DIR,
        type_folder(requirement_type),
        requirement_file_name(requirement_id),
    )


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def branch_name(
    intent: SubmissionIntent,
    requirement_id: str,
    epoch_ms: int | None = None,
) -> str:
    if epoch_ms is None:
        epoch_ms = _now_ms()
    return f"{_BRANCH_PREFIX[intent]}/req-{requirement_id}-{epoch_ms}"


def commit_message(intent: SubmissionIntent, requirement_id: str, name: str) -> str:
    if intent is SubmissionIntent.CREATE:
        return f"feat(req): Create requirement {requirement_id} - {name}"
    return f"fix(req): Update requirement {requirement_id} - {name}"


def review_title(intent: SubmissionIntent, requirement_id: str, name: str) -> str:
    if intent is SubmissionIntent.CREATE:
        return f"Draft Requirement: {requirement_id} - {name}"
    return f"Update Requirement: {requirement_id} - {name}"


def review_body(
    intent: SubmissionIntent,
    requirement_id: str,
    name: str,
    submitted_by: str | None = None,
) -> str:
    if intent is SubmissionIntent.CREATE:
        body = (
            f"This Pull Request proposes the new requirement: "
            f"**{requirement_id} - {name}**. Please review."
        )
    else:
        body = (
            f"This Pull Request proposes updates to requirement: "
            f"**{requirement_id} - {name}**. Please review."
        )
    if submitted_by:
        body += f"\n\nSubmitted by @{submitted_by}."
    return body
