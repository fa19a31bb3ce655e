"""
Requirement Repository — read access to the mirrored requirement corpus.

Tables (owned by the ingestion job):
  requirements(id, name, type, priority, status, ...)
  relationships(source_req_id, target_id, relationship_type)
"""

from __future__ import annotations

import logging
from typing import Any

from requirements_editor.persistence.sqlite_client import MirrorDatabase

logger = logging.getLogger(__name__)


class RequirementRepository:
    """Queries used by the listing, detail and graph endpoints."""

    def __init__(self, database: MirrorDatabase):
        self.database = database

    async def list_requirements(self) -> list[dict[str, Any]]:
        """Summary rows ordered by id."""
        return await self.database.fetch_all(
            "SELECT id, name, type, priority, status FROM requirements ORDER BY id"
        )

    async def get_requirement(self, requirement_id: str) -> dict[str, Any] | None:
        """The full row, every column included, or None."""
        return await self.database.fetch_one(
            "SELECT * FROM requirements WHERE id = ?", (requirement_id,)
        )

    async def list_requirement_nodes(self) -> list[dict[str, Any]]:
        return await self.database.fetch_all(
            "SELECT id, name, type, status FROM requirements"
        )

    async def list_relationships(self) -> list[dict[str, Any]]:
        return await self.database.fetch_all(
            "SELECT source_req_id, target_id, relationship_type FROM relationships"
        )
