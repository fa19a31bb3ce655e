"""
SQLite Client — connection management for the read-only requirements mirror.

The mirror is written by the ingestion job; this process only reads it.
Queries run in a worker thread so the event loop keeps serving requests.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Sequence

from requirements_editor.models.errors import DatabaseNotReadyError, DatabaseQueryError

logger = logging.getLogger(__name__)


class MirrorDatabase:
    """
    One shared sqlite3 connection, opened at startup and closed at shutdown.

    Reads before connect() (or after close()) raise DatabaseNotReadyError.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseNotReadyError("Requirements database is not connected.")
        return self._conn

    def connect(self) -> None:
        """Open the existing database file; a missing file is an error."""
        if self._conn is not None:
            return

        uri = f"{self.path.resolve().as_uri()}?mode=rw"
        try:
            conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
        except sqlite3.Error as exc:
            raise DatabaseNotReadyError(
                f"Cannot open requirements database at {self.path}: {exc}"
            ) from exc

        conn.row_factory = sqlite3.Row
        self._conn = conn
        logger.info(f"Connected to requirements database: {self.path}")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Requirements database connection closed")

    # ── Queries ──────────────────────────────────────────

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        conn = self.connection
        return await asyncio.to_thread(self._execute, conn, sql, params)

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None

    def _execute(
        self,
        conn: sqlite3.Connection,
        sql: str,
        params: Sequence[Any],
    ) -> list[dict[str, Any]]:
        with self._lock:
            try:
                cursor = conn.execute(sql, params)
                return [dict(row) for row in cursor.fetchall()]
            except sqlite3.Error as exc:
                logger.error(f"Query failed: {exc} | {sql.strip()}")
                raise DatabaseQueryError(f"Database query failed: {exc}") from exc
