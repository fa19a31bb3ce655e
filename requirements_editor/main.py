"""
Requirements Editor — Main Entry Point

Run the API server:
    python -m requirements_editor
    # or: uvicorn requirements_editor.api:app --port 3000

Settings come from the environment or a `.env` file (see config.py):
REPO_ROOT, DATABASE_PATH, GITHUB_OWNER, GITHUB_REPO, GITHUB_TOKEN_PAT,
JWT_SECRET, PORT.
"""

from __future__ import annotations

import logging

from requirements_editor.config import get_settings
from requirements_editor.utils.logger import setup_logging


def serve(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Start the FastAPI server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    if not settings.github_owner or not settings.github_repo:
        logger.warning("GITHUB_OWNER / GITHUB_REPO not set; submissions will fail")
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET not set; every protected request will be rejected")

    uvicorn.run("requirements_editor.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    serve()
