"""
Error types raised by the services and mapped to HTTP responses by the API.

Every error carries an ErrorKind and a human-readable message.
`to_dict()` produces the JSON body sent to callers; tracebacks never
leave the process.
"""

from __future__ import annotations

from typing import Any

from .enums import ErrorKind


class RequirementsEditorError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind = ErrorKind.PIPELINE

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "kind": self.kind.value}


class RequirementValidationError(RequirementsEditorError):
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class DocumentEncodeError(RequirementsEditorError):
    kind = ErrorKind.ENCODE


class DocumentDecodeError(RequirementsEditorError):
    kind = ErrorKind.DECODE


class GitCommandError(RequirementsEditorError):
    """A git invocation exited non-zero."""

    kind = ErrorKind.VCS

    def __init__(
        self,
        command: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        branch: str = "",
        path: str = "",
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.branch = branch
        self.path = path
        detail = (stderr or stdout).strip() or f"exit status {returncode}"
        self._base_message = f"`{' '.join(command)}` failed: {detail}"
        super().__init__(self._base_message)
        self.with_context()

    def with_context(self, branch: str = "", path: str = "") -> GitCommandError:
        """Attach branch/path context; values already set are kept."""
        self.branch = self.branch or branch
        self.path = self.path or path
        context = ", ".join(
            f"{label}={value}"
            for label, value in (("branch", self.branch), ("path", self.path))
            if value
        )
        self.message = f"{self._base_message} ({context})" if context else self._base_message
        self.args = (self.message,)
        return self


class ReviewApiError(RequirementsEditorError):
    kind = ErrorKind.REVIEW_API

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ReviewMissingError(RequirementsEditorError):
    kind = ErrorKind.REVIEW_MISSING


class DatabaseNotReadyError(RequirementsEditorError):
    kind = ErrorKind.DB_NOT_READY


class DatabaseQueryError(RequirementsEditorError):
    kind = ErrorKind.DB_QUERY


class NotFoundError(RequirementsEditorError):
    kind = ErrorKind.NOT_FOUND


class SubmissionError(RequirementsEditorError):
    """A pipeline step failed after validation; `cause` is the underlying error."""

    kind = ErrorKind.PIPELINE

    def __init__(self, message: str, cause: RequirementsEditorError):
        super().__init__(f"{message}: {cause.message}")
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["cause"] = self.cause.kind.value
        return body
