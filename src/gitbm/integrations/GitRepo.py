# gitbm/integrations/GitRepo.py
"""
Repository gateway contract
===========================

Value objects describing what the UI manages (branches and stashes) and the
abstract asynchronous interface every repository backend implements.

The UI core only talks to :class:`GitRepo`. Two adapters exist:

- :class:`gitbm.integrations.GitCliRepo.GitCliRepo` runs the ``git``
  executable and parses its text output.
- :class:`gitbm.integrations.GitPythonRepo.GitPythonRepo` drives the
  repository through GitPython.

Every method may raise :class:`gitbm.errors.RepositoryError` with a message
meant for the user. The only result the UI interprets is the boolean returned
by :meth:`GitRepo.stash_with_message` (``False`` means nothing to stash).
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class GitRemoteBranch:
    """Upstream tracked by a local branch; `gone` when the remote ref was deleted."""

    name: str
    gone: bool = False


@dataclass(frozen=True)
class GitBranch:
    name: str
    is_head: bool = False
    upstream: Optional[GitRemoteBranch] = None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class GitStash:
    index: int
    message: str
    stash_id: str
    branch_name: str = ""

    @classmethod
    def at(cls, index: int, message: str, branch_name: str = "") -> "GitStash":
        """Builds a stash whose id matches its position in the stash stack."""
        return cls(index, message, f"stash@{{{index}}}", branch_name)

    def __str__(self) -> str:
        return self.stash_id


ManagedItem = Union[GitBranch, GitStash]

_STASH_BRANCH_RE = re.compile(r"^(?:WIP on|On) (?P<branch>[^:]+):")


def branch_of_stash_message(message: str) -> str:
    """Extracts the branch from 'On main: msg' or 'WIP on main: abc123 subject'."""
    match = _STASH_BRANCH_RE.match(message)
    return match.group("branch").strip() if match else ""


def parse_stash_list(output: str) -> list[GitStash]:
    """Parses ``git stash list`` output (``stash@{N}: <message>`` per line)."""
    stashes: list[GitStash] = []
    for index, line in enumerate(filter(None, (ln.strip() for ln in output.splitlines()))):
        stash_id, _, message = line.partition(": ")
        stashes.append(GitStash(index, message, stash_id, branch_of_stash_message(message)))
    return stashes


class GitRepo(ABC):
    """Asynchronous gateway to one git repository."""

    @abstractmethod
    async def list_branches(self) -> list[GitBranch]: ...

    @abstractmethod
    async def list_stashes(self) -> list[GitStash]: ...

    @abstractmethod
    async def checkout_branch(self, name: str) -> None: ...

    @abstractmethod
    async def create_branch(self, branch: GitBranch) -> None:
        """Creates `branch` and checks it out."""

    @abstractmethod
    async def delete_branch(self, branch: GitBranch) -> None: ...

    @abstractmethod
    async def validate_branch_name(self, name: str) -> bool: ...

    @abstractmethod
    async def apply_stash(self, stash: GitStash) -> None: ...

    @abstractmethod
    async def pop_stash(self, stash: GitStash) -> None: ...

    @abstractmethod
    async def drop_stash(self, stash: GitStash) -> None: ...

    @abstractmethod
    async def stash_with_message(self, message: str) -> bool:
        """Stashes local changes; returns False when there was nothing to stash."""
