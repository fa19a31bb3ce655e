"""
GitHub Service — opens pull requests for submitted requirement branches.

Provides:
  - GitHubClient.open_review()       → create a PR, or reconcile with the
                                        open PR that already exists for the head
  - get_review_client()              → process-wide client, built on first use
  - close_review_client()            → release the HTTP connection pool

Generic network failures are not retried here; callers decide.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from requirements_editor.config import get_settings
from requirements_editor.models.errors import ReviewApiError, ReviewMissingError
from requirements_editor.models.schemas import ReviewRequest

logger = logging.getLogger(__name__)

_review_client: GitHubClient | None = None


class GitHubClient:
    """Thin async wrapper over the GitHub pulls API for one repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str = "",
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.owner = owner
        self.repo = repo
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "requirements-editor",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def _pulls_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/pulls"

    def already_exists_marker(self, head: str) -> str:
        return f"A pull request already exists for {self.owner}:{head}"

    # ── Public API ───────────────────────────────────────

    async def open_review(
        self,
        head: str,
        title: str,
        body: str,
        base: str = "main",
    ) -> ReviewRequest:
        """Create a PR for `head` → `base`, or return the one already open."""
        self._require_repository()

        payload = {
            "title": title,
            "head": head,
            "base": base,
            "body": body,
            "maintainer_can_modify": True,
        }
        try:
            response = await self._client.post(self._pulls_path, json=payload)
        except httpx.HTTPError as exc:
            raise ReviewApiError(f"GitHub request failed: {exc}") from exc

        if response.is_success:
            review = _to_review(response.json())
            logger.info(f"Opened PR #{review.number} for {head}: {review.url}")
            return review

        messages = _error_messages(response)
        marker = self.already_exists_marker(head)
        if any(marker in message for message in messages):
            logger.warning(f"Pull request for branch {head} already exists; looking it up")
            existing = await self.find_open_review(head, base)
            if existing is None:
                raise ReviewMissingError(
                    f"GitHub reports an open pull request for {head} but none was found"
                )
            logger.info(f"Found existing PR #{existing.number}: {existing.url}")
            return existing

        logger.error(
            f"GitHub rejected PR for {head} (HTTP {response.status_code}): {'; '.join(messages)}"
        )
        raise ReviewApiError(
            f"GitHub API Error: {'; '.join(messages)}",
            status_code=response.status_code,
        )

    async def find_open_review(self, head: str, base: str = "main") -> ReviewRequest | None:
        """First open PR whose head is `owner:head` and base is `base`."""
        params = {"head": f"{self.owner}:{head}", "base": base, "state": "open"}
        try:
            response = await self._client.get(self._pulls_path, params=params)
        except httpx.HTTPError as exc:
            raise ReviewApiError(f"GitHub request failed: {exc}") from exc

        if not response.is_success:
            raise ReviewApiError(
                f"GitHub API Error: {'; '.join(_error_messages(response))}",
                status_code=response.status_code,
            )
        pulls = response.json()
        if not isinstance(pulls, list) or not pulls:
            return None
        return _to_review(pulls[0])

    async def aclose(self) -> None:
        await self._client.aclose()

    def _require_repository(self) -> None:
        if not self.owner or not self.repo:
            raise ReviewApiError("GITHUB_OWNER and GITHUB_REPO environment variables must be set.")


# ── Response helpers ─────────────────────────────────────


def _to_review(data: dict[str, Any]) -> ReviewRequest:
    return ReviewRequest(url=data.get("html_url", ""), number=int(data.get("number", 0)))


def _error_messages(response: httpx.Response) -> list[str]:
    """Collect `message` and every `errors[].message` from a GitHub error body."""
    try:
        data = response.json()
    except ValueError:
        text = response.text.strip()
        return [text or f"HTTP {response.status_code}"]

    messages: list[str] = []
    if isinstance(data, dict):
        for error in data.get("errors") or []:
            if isinstance(error, dict) and error.get("message"):
                messages.append(str(error["message"]))
            elif isinstance(error, str):
                messages.append(error)
        if data.get("message"):
            messages.append(str(data["message"]))
    return messages or [f"HTTP {response.status_code}"]


# ── Process-wide client ──────────────────────────────────


def get_review_client() -> GitHubClient:
    """Return the shared GitHub client, constructing it on first use."""
    global _review_client
    if _review_client is not None:
        return _review_client

    settings = get_settings()
    _review_client = GitHubClient(
        owner=settings.github_owner,
        repo=settings.github_repo,
        token=settings.github_token_pat,
        api_url=settings.github_api_url,
        timeout=settings.github_timeout_seconds,
    )
    logger.info(f"Initialized GitHub client for {settings.github_owner}/{settings.github_repo}")
    return _review_client


async def close_review_client() -> None:
    global _review_client
    if _review_client is not None:
        await _review_client.aclose()
        _review_client = None
        logger.info("GitHub client closed")
