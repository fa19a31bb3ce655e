"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Requirements Editor"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]

    # ── Mirror database (SQLite, populated by the ingestion job) ──
    database_path: str = "docs_build/requirements.sqlite"

    # ── Working copy ─────────────────────────────────────
    repo_root: str = "."
    git_remote: str = "origin"
    default_branch: str = "main"
    return_to_default_branch: bool = True  # check out main again after each push

    # ── Review platform (GitHub) ─────────────────────────
    github_owner: str = ""
    github_repo: str = ""
    github_token_pat: str = Field(default="", repr=False)
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 30.0

    # ── Auth (tokens issued by the identity-provider callback) ──
    jwt_secret: str = Field(default="", repr=False)
    jwt_algorithm: str = "HS256"

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
