"""
Document Service — reads canonical requirement documents from the default
branch of the working copy. Read-only: no branch, commit or review client.
"""

from __future__ import annotations

import logging

from requirements_editor.models.errors import NotFoundError
from requirements_editor.models.schemas import SourceDocument
from requirements_editor.services.document_codec import decode
from requirements_editor.services.git_service import WorkingCopy
from requirements_editor.utils.naming import requirement_file_name

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, working_copy: WorkingCopy):
        self.working_copy = working_copy

    async def load_document(self, requirement_id: str) -> SourceDocument:
        """The canonical document for `requirement_id` on the default branch."""
        paths = await self.working_copy.locate(requirement_file_name(requirement_id))
        if not paths:
            raise NotFoundError(
                f"Requirement {requirement_id} has no document on "
                f"{self.working_copy.default_branch}."
            )
        if len(paths) > 1:
            logger.warning(
                f"Requirement {requirement_id} has several documents: {', '.join(paths)}; "
                f"using {paths[0]}"
            )

        text = await self.working_copy.show(paths[0])
        decoded = decode(text)
        return SourceDocument(file_path=paths[0], header=decoded.header, body=decoded.body)
