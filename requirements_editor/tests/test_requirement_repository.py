"""
Tests: Mirror database connection and requirement queries.

Run with:
    pytest requirements_editor/tests/test_requirement_repository.py -v
"""

import asyncio

import pytest

from requirements_editor.models.enums import ErrorKind
from requirements_editor.models.errors import DatabaseNotReadyError, DatabaseQueryError
from requirements_editor.persistence import MirrorDatabase, RequirementRepository


@pytest.fixture
def repository(mirror_db_path):
    db = MirrorDatabase(mirror_db_path)
    db.connect()
    yield RequirementRepository(db)
    db.close()


class TestMirrorDatabase:
    def test_reads_before_connect_fail(self, mirror_db_path):
        repo = RequirementRepository(MirrorDatabase(mirror_db_path))
        with pytest.raises(DatabaseNotReadyError) as exc_info:
            asyncio.run(repo.list_requirements())
        assert exc_info.value.kind is ErrorKind.DB_NOT_READY

    def test_missing_file_is_not_created(self, tmp_path):
        path = tmp_path / "absent.sqlite"
        db = MirrorDatabase(path)
        with pytest.raises(DatabaseNotReadyError):
            db.connect()
        assert not path.exists()
        assert db.is_connected is False

    def test_close_makes_handle_unusable(self, mirror_db_path):
        db = MirrorDatabase(mirror_db_path)
        db.connect()
        db.close()
        with pytest.raises(DatabaseNotReadyError):
            db.connection

    def test_query_error_wrapped(self, repository):
        with pytest.raises(DatabaseQueryError) as exc_info:
            asyncio.run(repository.database.fetch_all("SELECT * FROM no_such_table"))
        assert exc_info.value.kind is ErrorKind.DB_QUERY


class TestRequirementRepository:
    def test_list_ordered_by_id(self, repository):
        rows = asyncio.run(repository.list_requirements())
        assert rows == [
            {"id": "R1", "name": "Login", "type": "Functional", "priority": "High", "status": "Draft"},
            {"id": "R2", "name": "Logout", "type": "Functional", "priority": "Medium", "status": "Approved"},
        ]

    def test_get_returns_full_row(self, repository):
        row = asyncio.run(repository.get_requirement("R2"))
        assert row["description"] == "User can log out."
        assert row["file_path"] == "requirements/functional/R2.md"

    def test_get_unknown_is_none(self, repository):
        assert asyncio.run(repository.get_requirement("R404")) is None

    def test_nodes_in_table_order(self, repository):
        nodes = asyncio.run(repository.list_requirement_nodes())
        assert [node["id"] for node in nodes] == ["R2", "R1"]
        assert set(nodes[0]) == {"id", "name", "type", "status"}

    def test_relationships(self, repository):
        assert asyncio.run(repository.list_relationships()) == [
            {"source_req_id": "R1", "target_id": "R3", "relationship_type": "depends-on"},
        ]
