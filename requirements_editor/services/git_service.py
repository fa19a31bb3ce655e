"""
Git Service — owns the single local clone of the requirements repository.

Design:
  - Every operation runs `git` as an asyncio subprocess so the event loop
    keeps serving other requests while git works.
  - All operations go through one SerialQueue: at most one operation touches
    the working tree at a time, in arrival order. The queue is re-entrant for
    the task holding it, so `commit()` inside `exclusive()` does not deadlock.
  - Failures raise GitCommandError with branch/path context. Nothing is
    rolled back; the tree stays wherever the failing command left it.
    New branches start from the default branch tip and commits name their
    path, so leftovers from a failed operation never reach the next branch.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from requirements_editor.models.errors import GitCommandError
from requirements_editor.models.schemas import UserPrincipal
from requirements_editor.utils.naming import REQUIREMENTS_DIR

logger = logging.getLogger(__name__)

_NOTHING_TO_COMMIT = (
    "nothing to commit",
    "nothing added to commit",
    "no changes added to commit",
)


def _clean_git_env() -> dict[str, str]:
    """Environment with inherited git context removed and prompts disabled."""
    env = os.environ.copy()
    env.pop("GIT_DIR", None)
    env.pop("GIT_WORK_TREE", None)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(content)


@dataclass
class GitResult:
    returncode: int
    stdout: str
    stderr: str


@dataclass
class CommitOutcome:
    """What commit() did. `empty` means git had nothing new to record."""

    branch: str
    path: str
    sha: str = ""
    empty: bool = False


# ── Serial queue ─────────────────────────────────────────


class SerialQueue:
    """
    Admits one holder at a time, FIFO.

    asyncio.Lock wakes waiters in the order they arrived, which gives the
    arrival-order guarantee. When `trace` is a list, ("enter", label) and
    ("exit", label) tuples are appended as holders come and go.
    """

    def __init__(self, trace: list[tuple[str, str]] | None = None):
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None
        self._depth = 0
        self.trace = trace

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def slot(self, label: str) -> AsyncIterator[None]:
        task = asyncio.current_task()
        if task is not None and self._owner is task:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        await self._lock.acquire()
        self._owner = task
        self._depth = 1
        self._record("enter", label)
        try:
            yield
        finally:
            self._record("exit", label)
            self._owner = None
            self._depth = 0
            self._lock.release()

    def _record(self, event: str, label: str) -> None:
        if self.trace is not None:
            self.trace.append((event, label))


# ── Working copy ─────────────────────────────────────────


class WorkingCopy:
    """
    The server's clone of the requirements repository.

    Usage:
        wc = WorkingCopy(Path("/srv/requirements"))
        async with wc.exclusive():
            await wc.commit(branch, "requirements/functional/X.md", text, msg)
            await wc.push(branch)
    """

    def __init__(
        self,
        repo_root: Path | str,
        remote: str = "origin",
        default_branch: str = "main",
        queue: SerialQueue | None = None,
        git_binary: str = "git",
    ):
        self.repo_root = Path(repo_root).resolve()
        self.remote = remote
        self.default_branch = default_branch
        self.queue = queue or SerialQueue()
        self.git_binary = git_binary

    # ── Queue access ─────────────────────────────────────

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[WorkingCopy]:
        """Hold the serial slot across several operations."""
        async with self.queue.slot("exclusive"):
            yield self

    async def drain(self) -> None:
        """Return once any in-flight operation has finished."""
        async with self.queue.slot("drain"):
            pass

    # ── Mutating operations ──────────────────────────────

    async def ensure_branch(self, name: str) -> None:
        """
        Leave the working tree on branch `name`. A branch that exists neither
        locally nor on the remote is created from the default branch tip,
        not from whatever branch the tree was left on.
        """
        async with self.queue.slot(f"ensure_branch:{name}"):
            try:
                await self._git("fetch", self.remote)
                local = await self._ref_exists(f"refs/heads/{name}")
                remote = await self._ref_exists(f"refs/remotes/{self.remote}/{name}")

                if local or remote:
                    await self._git("checkout", name)
                    if remote:
                        pulled = await self._git(
                            "pull", "--ff-only", self.remote, name, check=False
                        )
                        if pulled.returncode != 0:
                            logger.warning(
                                f"Fast-forward of {name} from {self.remote} failed: "
                                f"{(pulled.stderr or pulled.stdout).strip()}"
                            )
                    logger.info(f"Checked out existing branch {name}")
                    return

                start = await self._default_ref()
                try:
                    if start is None:
                        await self._git("checkout", "-b", name)
                    else:
                        await self._git("checkout", "--no-track", "-b", name, start)
                    logger.info(f"Created branch {name} from {start or 'HEAD'}")
                except GitCommandError as exc:
                    if "already exists" not in exc.stderr:
                        raise
                    logger.warning(f"Branch {name} appeared concurrently; checking it out")
                    await self._git("checkout", name)
            except GitCommandError as exc:
                raise exc.with_context(branch=name)

    async def commit(
        self,
        branch: str,
        path_in_repo: str,
        content: str,
        message: str,
        author: UserPrincipal | None = None,
    ) -> CommitOutcome:
        """Write `content` to `path_in_repo` on `branch` and commit it."""
        async with self.queue.slot(f"commit:{branch}"):
            try:
                await self.ensure_branch(branch)

                full_path = self._resolve(path_in_repo)
                await asyncio.to_thread(_write_text, full_path, content)
                await self._git("add", "--", path_in_repo)

                staged = await self._git(
                    "diff", "--cached", "--quiet", "--", path_in_repo, check=False
                )
                if staged.returncode == 0:
                    logger.warning(
                        f"No changes to commit for {path_in_repo} on {branch}; "
                        f"content already recorded"
                    )
                    return CommitOutcome(branch=branch, path=path_in_repo, empty=True)

                env = None
                if author is not None:
                    env = {
                        "GIT_AUTHOR_NAME": author.display_name,
                        "GIT_AUTHOR_EMAIL": author.commit_email,
                    }
                # Records this path only, whatever else is staged.
                result = await self._git(
                    "commit", "-m", message, "--", path_in_repo, check=False, env=env
                )
                if result.returncode != 0:
                    output = f"{result.stdout}\n{result.stderr}".lower()
                    if any(marker in output for marker in _NOTHING_TO_COMMIT):
                        logger.warning(
                            f"No changes to commit for {path_in_repo} on {branch}; "
                            f"content already recorded"
                        )
                        return CommitOutcome(branch=branch, path=path_in_repo, empty=True)
                    raise GitCommandError(
                        [self.git_binary, "commit", "-m", message, "--", path_in_repo],
                        result.returncode,
                        result.stdout,
                        result.stderr,
                    )

                sha = (await self._git("rev-parse", "HEAD")).stdout.strip()
                logger.info(f"Committed {path_in_repo} on {branch} ({sha[:10]})")
                return CommitOutcome(branch=branch, path=path_in_repo, sha=sha)
            except GitCommandError as exc:
                raise exc.with_context(branch=branch, path=path_in_repo)

    async def push(self, branch: str) -> None:
        """Push `branch` to the remote, setting upstream tracking."""
        async with self.queue.slot(f"push:{branch}"):
            try:
                await self._git("push", "--set-upstream", self.remote, branch)
            except GitCommandError as exc:
                raise exc.with_context(branch=branch)
            logger.info(f"Pushed {branch} to {self.remote}")

    async def switch_to_main_and_pull(self) -> None:
        """Check out the default branch and fast-forward it from the remote."""
        async with self.queue.slot(f"switch:{self.default_branch}"):
            try:
                await self._git("checkout", self.default_branch)
                await self._git("pull", "--ff-only", self.remote, self.default_branch)
            except GitCommandError as exc:
                raise exc.with_context(branch=self.default_branch)
            logger.info(f"Back on {self.default_branch}, up to date with {self.remote}")

    # ── Reads ────────────────────────────────────────────

    async def current_branch(self) -> str:
        async with self.queue.slot("current_branch"):
            result = await self._git("rev-parse", "--abbrev-ref", "HEAD")
        return result.stdout.strip()

    async def locate(self, file_name: str) -> list[str]:
        """Paths under requirements/ on the default branch named `file_name`."""
        async with self.queue.slot(f"locate:{file_name}"):
            ref = await self._default_ref()
            if ref is None:
                return []
            result = await self._git(
                "ls-tree", "-r", "--name-only", ref, "--", REQUIREMENTS_DIR
            )
        return [
            line for line in result.stdout.splitlines()
            if posixpath.basename(line) == file_name
        ]

    async def show(self, path_in_repo: str, ref: str | None = None) -> str:
        """Content of `path_in_repo` at `ref` (default branch when omitted)."""
        async with self.queue.slot(f"show:{path_in_repo}"):
            if ref is None:
                ref = await self._default_ref() or self.default_branch
            try:
                result = await self._git("show", f"{ref}:{path_in_repo}")
            except GitCommandError as exc:
                raise exc.with_context(branch=ref, path=path_in_repo)
        return result.stdout

    # ── Internals ────────────────────────────────────────

    async def _default_ref(self) -> str | None:
        """Prefer the remote-tracking default branch, fall back to the local one."""
        for ref in (
            f"refs/remotes/{self.remote}/{self.default_branch}",
            f"refs/heads/{self.default_branch}",
        ):
            if await self._ref_exists(ref):
                return ref
        return None

    async def _ref_exists(self, ref: str) -> bool:
        result = await self._git("show-ref", "--verify", "--quiet", ref, check=False)
        return result.returncode == 0

    def _resolve(self, path_in_repo: str) -> Path:
        full_path = (self.repo_root / path_in_repo).resolve()
        if not full_path.is_relative_to(self.repo_root):
            raise ValueError(f"Path escapes the working copy: {path_in_repo}")
        return full_path

    async def _git(
        self,
        *args: str,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> GitResult:
        command = [self.git_binary, *args]
        process_env = _clean_git_env()
        if env:
            process_env.update(env)

        logger.debug(f"[git] {' '.join(command)}")
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(self.repo_root),
            env=process_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        out, err = await proc.communicate()
        result = GitResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=out.decode("utf-8", errors="replace"),
            stderr=err.decode("utf-8", errors="replace"),
        )
        if check and result.returncode != 0:
            raise GitCommandError(command, result.returncode, result.stdout, result.stderr)
        return result
