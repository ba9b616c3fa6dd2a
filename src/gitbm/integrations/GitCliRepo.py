# gitbm/integrations/GitCliRepo.py
"""GitCliRepo.py
========================
Repository gateway backed by the ``git`` executable.

Every operation runs one ``git`` command through :func:`gitbm.utils.utils.safe_run`
on a worker thread (``asyncio.to_thread``), so the calling event loop is never
blocked by process I/O. Text output is parsed into the value objects from
:mod:`gitbm.integrations.GitRepo`.

A command exiting with a non-zero status raises :class:`RepositoryError`
carrying git's stderr, except for ``check-ref-format`` whose exit status is
the answer itself.
"""

import asyncio
import logging
from typing import Optional

from gitbm.errors import RepositoryError
from gitbm.integrations.GitRepo import (
    GitBranch,
    GitRemoteBranch,
    GitRepo,
    GitStash,
    parse_stash_list,
)
from gitbm.utils.utils import safe_run


logger = logging.getLogger("gitbm")

# `git for-each-ref` fields, tab separated: HEAD marker, short name, upstream
# and tracking state, e.g.
#   *<TAB>main<TAB>origin/main<TAB>[ahead 1]
#    <TAB>old-work<TAB>origin/old-work<TAB>[gone]
#    <TAB>scratch<TAB><TAB>
BRANCH_FORMAT = "%(HEAD)%09%(refname:short)%09%(upstream:short)%09%(upstream:track)"

NOTHING_TO_STASH = "No local changes to save"


def parse_branch_list(output: str) -> list[GitBranch]:
    """Parses ``git for-each-ref`` output produced with :data:`BRANCH_FORMAT`."""
    branches: list[GitBranch] = []
    for raw in output.splitlines():
        if not raw.strip():
            continue
        fields = raw.split("\t")
        if len(fields) != 4 or not fields[1]:
            logger.warning(f"Unrecognised branch line skipped: {raw!r}")
            continue
        marker, name, upstream_name, track = fields
        upstream = None
        if upstream_name:
            upstream = GitRemoteBranch(upstream_name, gone=track.strip() == "[gone]")
        branches.append(GitBranch(name=name, is_head=marker == "*", upstream=upstream))
    return branches


# ================= GitCliRepo Class ==============================
class GitCliRepo(GitRepo):
    """Runs git commands in `repo_dir` and translates their results."""

    def __init__(self, repo_dir: str, timeout: Optional[float] = None):
        self.repo_dir = repo_dir
        self.timeout = timeout or None

    async def _run(self, *args: str, check: bool = True) -> tuple[int, str, str]:
        cmd = ["git", *args]
        logger.info(f"Running `{' '.join(cmd)}`")
        result = await asyncio.to_thread(
            safe_run, cmd, cwd=self.repo_dir, timeout=self.timeout
        )
        if check and result.returncode != 0:
            message = (result.stderr or result.stdout or "").strip()
            if not message:
                message = f"git {args[0]} failed with exit code {result.returncode}"
            logger.error(f"`{' '.join(cmd)}` failed: {message}")
            raise RepositoryError(message)
        return result.returncode, result.stdout or "", result.stderr or ""

    async def list_branches(self) -> list[GitBranch]:
        _, out, _ = await self._run("for-each-ref", f"--format={BRANCH_FORMAT}", "refs/heads/")
        return parse_branch_list(out)

    async def list_stashes(self) -> list[GitStash]:
        _, out, _ = await self._run("stash", "list")
        return parse_stash_list(out)

    async def checkout_branch(self, name: str) -> None:
        await self._run("checkout", name)

    async def create_branch(self, branch: GitBranch) -> None:
        await self._run("checkout", "-b", branch.name)

    async def delete_branch(self, branch: GitBranch) -> None:
        await self._run("branch", "-D", branch.name)

    async def validate_branch_name(self, name: str) -> bool:
        code, _, _ = await self._run("check-ref-format", "--branch", name, check=False)
        return code == 0

    async def apply_stash(self, stash: GitStash) -> None:
        await self._run("stash", "apply", stash.stash_id)

    async def pop_stash(self, stash: GitStash) -> None:
        await self._run("stash", "pop", stash.stash_id)

    async def drop_stash(self, stash: GitStash) -> None:
        await self._run("stash", "drop", stash.stash_id)

    async def stash_with_message(self, message: str) -> bool:
        _, out, err = await self._run("stash", "push", "-m", message)
        return NOTHING_TO_STASH not in out and NOTHING_TO_STASH not in err
