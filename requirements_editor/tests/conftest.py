"""
Shared fixtures: in-memory stand-ins for the working copy and the review
client, a throwaway git remote + clone, a mirror database file, and bearer
tokens.
"""

from __future__ import annotations

import asyncio
import os
import posixpath
import shutil
import sqlite3
import subprocess
from pathlib import Path

import jwt
import pytest

from requirements_editor.models.errors import GitCommandError
from requirements_editor.models.schemas import ReviewRequest
from requirements_editor.services.git_service import CommitOutcome, SerialQueue

JWT_SECRET = "test-secret-for-requirements-editor-0123456789"

S1_PAYLOAD = {
    "id": "PX-FNC-AUTH-LOGIN-00010",
    "name": "Login",
    "type": "Functional",
    "priority": "High",
    "status": "Draft",
    "description_md": "User can log in.",
    "tags": "auth,login",
}


def make_token(secret: str = JWT_SECRET, **claims) -> str:
    payload = {
        "username": "octocat",
        "name": "The Octocat",
        "email": "octocat@example.com",
        "githubId": 583231,
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


# ── Fakes ────────────────────────────────────────────────


class FakeWorkingCopy:
    """Records every operation; `existing` maps paths on main to their text."""

    def __init__(self):
        self.default_branch = "main"
        self.trace: list[tuple[str, str]] = []
        self.queue = SerialQueue(trace=self.trace)
        self.calls: list[tuple[str, ...]] = []
        self.files: dict[str, str] = {}
        self.authors: list = []
        self.existing: dict[str, str] = {}
        self.fail_on: str | None = None
        self.empty_commit = False

    def exclusive(self):
        return self.queue.slot("exclusive")

    async def commit(self, branch, path_in_repo, content, message, author=None):
        async with self.queue.slot(f"commit:{branch}"):
            self._maybe_fail("commit", branch)
            self.calls.append(("commit", branch, path_in_repo, message))
            self.files[f"{branch}:{path_in_repo}"] = content
            self.authors.append(author)
            await asyncio.sleep(0)
            return CommitOutcome(
                branch=branch,
                path=path_in_repo,
                sha="" if self.empty_commit else "0123456789abcdef",
                empty=self.empty_commit,
            )

    async def push(self, branch):
        async with self.queue.slot(f"push:{branch}"):
            self._maybe_fail("push", branch)
            self.calls.append(("push", branch))
            await asyncio.sleep(0)

    async def switch_to_main_and_pull(self):
        async with self.queue.slot("switch:main"):
            self._maybe_fail("switch", self.default_branch)
            self.calls.append(("switch", self.default_branch))

    async def locate(self, file_name):
        async with self.queue.slot(f"locate:{file_name}"):
            return [p for p in self.existing if posixpath.basename(p) == file_name]

    async def show(self, path_in_repo, ref=None):
        async with self.queue.slot(f"show:{path_in_repo}"):
            return self.existing[path_in_repo]

    def _maybe_fail(self, operation: str, branch: str) -> None:
        if self.fail_on == operation:
            raise GitCommandError(["git", operation], 1, stderr=f"{operation} refused").with_context(
                branch=branch
            )


class FakeReviewClient:
    """Returns sequential pull requests, or raises `error` when set."""

    def __init__(self):
        self.requests: list[dict[str, str]] = []
        self.error: Exception | None = None

    async def open_review(self, head, title, body, base="main"):
        self.requests.append({"head": head, "title": title, "body": body, "base": base})
        if self.error is not None:
            raise self.error
        number = len(self.requests)
        return ReviewRequest(url=f"https://github.com/acme/requirements/pull/{number}", number=number)


class FakeRepository:
    def __init__(self, requirements=None, relationships=None):
        self.requirements = requirements or []
        self.relationships = relationships or []

    async def list_requirements(self):
        return sorted(
            ({k: r.get(k) for k in ("id", "name", "type", "priority", "status")} for r in self.requirements),
            key=lambda r: r["id"],
        )

    async def get_requirement(self, requirement_id):
        return next((r for r in self.requirements if r["id"] == requirement_id), None)

    async def list_requirement_nodes(self):
        return [{k: r.get(k) for k in ("id", "name", "type", "status")} for r in self.requirements]

    async def list_relationships(self):
        return list(self.relationships)


@pytest.fixture
def fake_working_copy():
    return FakeWorkingCopy()


@pytest.fixture
def fake_review_client():
    return FakeReviewClient()


# ── Mirror database ──────────────────────────────────────


@pytest.fixture
def mirror_db_path(tmp_path) -> Path:
    """A mirror file with R1, R2 and a link R1 → R3."""
    path = tmp_path / "requirements.sqlite"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE requirements (
            id TEXT NOT NULL,
            name TEXT,
            type TEXT,
            priority TEXT,
            status TEXT,
            description TEXT,
            file_path TEXT
        );
        CREATE TABLE relationships (
            source_req_id TEXT,
            target_id TEXT,
            relationship_type TEXT
        );
        INSERT INTO requirements VALUES
            ('R2', 'Logout', 'Functional', 'Medium', 'Approved', 'User can log out.',
             'requirements/functional/R2.md'),
            ('R1', 'Login', 'Functional', 'High', 'Draft', 'User can log in.',
             'requirements/functional/R1.md');
        INSERT INTO relationships VALUES ('R1', 'R3', 'depends-on');
        """
    )
    conn.commit()
    conn.close()
    return path


# ── Git remote + clone ───────────────────────────────────


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git_env() -> dict[str, str]:
    env = os.environ.copy()
    for key in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
        env.pop(key, None)
    env.update({
        "GIT_AUTHOR_NAME": "Fixture",
        "GIT_AUTHOR_EMAIL": "fixture@example.com",
        "GIT_COMMITTER_NAME": "Fixture",
        "GIT_COMMITTER_EMAIL": "fixture@example.com",
        "GIT_TERMINAL_PROMPT": "0",
    })
    return env


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=_git_env(),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git_repos(tmp_path):
    """
    A bare remote and a clone on `main` holding one requirement document.
    Returns (remote_path, clone_path).
    """
    remote = tmp_path / "remote.git"
    clone = tmp_path / "work"
    run_git(tmp_path, "init", "--bare", str(remote))
    run_git(remote, "symbolic-ref", "HEAD", "refs/heads/main")

    clone.mkdir()
    run_git(clone, "init")
    run_git(clone, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(clone, "config", "user.name", "Editor Bot")
    run_git(clone, "config", "user.email", "editor-bot@example.com")
    run_git(clone, "config", "commit.gpgsign", "false")
    run_git(clone, "remote", "add", "origin", str(remote))

    seeded = clone / "requirements" / "functional" / "R1.md"
    seeded.parent.mkdir(parents=True)
    seeded.write_text(
        "---\nid: R1\nname: Login\ntype: Functional\npriority: High\nstatus: Draft\n---\n\n"
        "# R1: Login\n\nUser can log in.",
        encoding="utf-8",
    )
    run_git(clone, "add", ".")
    run_git(clone, "commit", "-m", "Seed requirements")
    run_git(clone, "push", "-u", "origin", "main")
    return remote, clone


def reject_once(clone: Path, hook: str) -> None:
    """Install a git `hook` in `clone` that fails its first run and passes after."""
    marker = clone.parent / f"{hook}.rejected"
    hooks = clone / ".git" / "hooks"
    hooks.mkdir(parents=True, exist_ok=True)
    script = hooks / hook
    script.write_text(
        "#!/bin/sh\n"
        f'if [ -e "{marker}" ]; then exit 0; fi\n'
        f'touch "{marker}"\n'
        f'echo "{hook} rejected" >&2\n'
        "exit 1\n",
        encoding="utf-8",
    )
    script.chmod(0o755)
