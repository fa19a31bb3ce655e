"""Services — WorkingCopy, GitHubClient, SubmissionService, DocumentService, GraphService."""

from requirements_editor.services.git_service import SerialQueue, WorkingCopy
from requirements_editor.services.github_service import GitHubClient
from requirements_editor.services.submission_service import SubmissionService
from requirements_editor.services.document_service import DocumentService
from requirements_editor.services.graph_service import GraphService

__all__ = [
    "SerialQueue",
    "WorkingCopy",
    "GitHubClient",
    "SubmissionService",
    "DocumentService",
    "GraphService",
]
