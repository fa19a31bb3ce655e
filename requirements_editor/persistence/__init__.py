"""Persistence — MirrorDatabase, RequirementRepository."""

from requirements_editor.persistence.sqlite_client import MirrorDatabase
from requirements_editor.persistence.requirement_repository import RequirementRepository

__all__ = ["MirrorDatabase", "RequirementRepository"]
