# gitbm/integrations/GitPythonRepo.py
"""GitPythonRepo.py
========================
Repository gateway bound to GitPython.

GitPython is synchronous, so each public coroutine hands its blocking body to
``asyncio.to_thread``. ``git.exc.GitCommandError`` (and the other GitPython
errors) are translated into :class:`RepositoryError` so the UI treats both
backends identically.
"""

import asyncio
import logging
from typing import Callable, TypeVar

import git
from git.exc import GitCommandError, GitError, InvalidGitRepositoryError, NoSuchPathError

from gitbm.errors import NotARepositoryError, RepositoryError
from gitbm.integrations.GitRepo import (
    GitBranch,
    GitRemoteBranch,
    GitRepo,
    GitStash,
    parse_stash_list,
)


logger = logging.getLogger("gitbm")

T = TypeVar("T")


def _error_message(exc: Exception) -> str:
    if isinstance(exc, GitCommandError):
        return (exc.stderr or exc.stdout or str(exc)).strip().removeprefix("stderr: ").strip("'\n ")
    return str(exc)


# ================= GitPythonRepo Class ==============================
class GitPythonRepo(GitRepo):
    """Wraps a ``git.Repo`` opened at (or above) `repo_dir`."""

    def __init__(self, repo_dir: str):
        try:
            self.repo = git.Repo(repo_dir, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepositoryError(f"{repo_dir}: not a git repository") from e

    async def _call(self, label: str, fn: Callable[[], T]) -> T:
        logger.info(f"GitPython: {label}")
        try:
            return await asyncio.to_thread(fn)
        except GitError as e:
            message = _error_message(e)
            logger.error(f"GitPython {label} failed: {message}")
            raise RepositoryError(message) from e

    def _branches_sync(self) -> list[GitBranch]:
        head_name = None if self.repo.head.is_detached else self.repo.active_branch.name
        branches: list[GitBranch] = []
        for head in sorted(self.repo.heads, key=lambda h: h.name):
            upstream = None
            tracking = head.tracking_branch()
            if tracking is not None:
                upstream = GitRemoteBranch(tracking.name, gone=not tracking.is_valid())
            branches.append(GitBranch(head.name, head.name == head_name, upstream))
        return branches

    async def list_branches(self) -> list[GitBranch]:
        return await self._call("list branches", self._branches_sync)

    async def list_stashes(self) -> list[GitStash]:
        output = await self._call("stash list", lambda: self.repo.git.stash("list"))
        return parse_stash_list(output)

    async def checkout_branch(self, name: str) -> None:
        await self._call(f"checkout {name}", lambda: self.repo.git.checkout(name))

    async def create_branch(self, branch: GitBranch) -> None:
        await self._call(
            f"create {branch.name}", lambda: self.repo.git.checkout("-b", branch.name)
        )

    async def delete_branch(self, branch: GitBranch) -> None:
        await self._call(
            f"delete {branch.name}",
            lambda: self.repo.delete_head(branch.name, force=True),
        )

    async def validate_branch_name(self, name: str) -> bool:
        def check() -> bool:
            try:
                self.repo.git.check_ref_format("--branch", name)
            except GitCommandError:
                return False
            return True

        return await self._call(f"check-ref-format {name}", check)

    async def apply_stash(self, stash: GitStash) -> None:
        await self._call(
            f"stash apply {stash.stash_id}", lambda: self.repo.git.stash("apply", stash.stash_id)
        )

    async def pop_stash(self, stash: GitStash) -> None:
        await self._call(
            f"stash pop {stash.stash_id}", lambda: self.repo.git.stash("pop", stash.stash_id)
        )

    async def drop_stash(self, stash: GitStash) -> None:
        await self._call(
            f"stash drop {stash.stash_id}", lambda: self.repo.git.stash("drop", stash.stash_id)
        )

    async def stash_with_message(self, message: str) -> bool:
        def push() -> bool:
            if not self.repo.is_dirty(untracked_files=False):
                return False
            self.repo.git.stash("push", "-m", message)
            return True

        return await self._call("stash push", push)
