# gitbm/ui/views/BranchList.py
"""BranchList.py
==================
The branch list: local branches with their HEAD marker and upstream, checkout,
single and bulk delete, and creation of a new branch from the input box.

HEAD is protected everywhere. It cannot be staged, deleted or checked out
again, and its footer offers neither action.
"""

from __future__ import annotations

import curses
import logging
from typing import Any, Optional, Sequence

from gitbm.core.Action import Action, ActionType
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.errors import RepositoryError, ValidationError
from gitbm.integrations.GitRepo import GitBranch, GitRepo
from gitbm.ui.components.GenericList import GenericListComponent
from gitbm.ui.components.protocols import (
    InputHandler,
    ListActionHandler,
    ListDataSource,
    ListItemWrapper,
    Operation,
    OperationContext,
    delete_each,
)
from gitbm.ui.DrawScreen import DrawScreen
from gitbm.ui.KeyBinder import KeyBinder, KeyEvent


logger = logging.getLogger("gitbm")

SECTION = "branches"


class BranchItem(ListItemWrapper[GitBranch]):
    def __init__(
        self,
        branch: GitBranch,
        staged_for_creation: bool = False,
        is_valid_name: bool = True,
    ) -> None:
        self.branch = branch
        self.staged_for_deletion = False
        self.staged_for_creation = staged_for_creation
        self.is_valid_name = is_valid_name

    @property
    def item(self) -> GitBranch:
        return self.branch

    def can_stage(self) -> bool:
        return not self.branch.is_head

    def render(self, screen: DrawScreen) -> list[tuple[str, int]]:
        name_attr = curses.A_NORMAL
        if self.staged_for_deletion:
            name_attr = screen.color("staged")
        if self.staged_for_creation:
            name_attr = screen.color("valid" if self.is_valid_name else "invalid")

        segments = [(self.branch.name, name_attr)]
        if self.branch.is_head:
            segments.append((" (HEAD)", curses.A_DIM))
        upstream = self.branch.upstream
        if upstream is not None:
            gone = ": gone" if upstream.gone else ""
            segments.append((f" [{upstream.name}{gone}]", curses.A_DIM))
        return segments

    def __repr__(self) -> str:
        return f"BranchItem({self.branch.name!r}, staged={self.staged_for_deletion})"


class BranchDataSource(ListDataSource[GitBranch]):
    def __init__(self, repo: GitRepo) -> None:
        self.repo = repo

    async def fetch_items(self) -> list[GitBranch]:
        return await self.repo.list_branches()


# ==================== BranchActionHandler Class ====================
class BranchActionHandler(ListActionHandler[BranchItem]):
    def __init__(self, keybinder: KeyBinder) -> None:
        super().__init__(keybinder, SECTION)

    def wrap(self, item: GitBranch) -> BranchItem:
        return BranchItem(item)

    def map_key_to_action(self, key: KeyEvent, selected: Optional[BranchItem]) -> Optional[Action]:
        binding = self.binding_for(key)
        if binding == "init_new":
            return Action(ActionType.INIT_NEW)
        if binding == "delete_staged":
            return Action(ActionType.DELETE_STAGED)
        if selected is None or selected.branch.is_head:
            return None
        if binding == "primary" and not selected.staged_for_deletion:
            return Action(ActionType.CHECKOUT_SELECTED_BRANCH)
        if binding == "delete":
            if selected.staged_for_deletion:
                return Action(ActionType.DELETE_SELECTED)
            return Action(ActionType.STAGE_FOR_DELETION)
        if binding == "unstage" and selected.staged_for_deletion:
            return Action(ActionType.UNSTAGE_FOR_DELETION)
        return None

    def instructions(self, selected: Optional[BranchItem], has_staged: bool) -> list[str]:
        lines = [
            f"{self.key_label('quit', 'default')}: Exit",
            f"{self.key_label('init_new')}: Create New",
        ]
        if selected is not None:
            if selected.staged_for_deletion:
                lines.append(f"{self.key_label('delete')}: Delete")
                lines.append(f"{self.key_label('unstage')}: Unstage")
            elif not selected.branch.is_head:
                lines.append(f"{self.key_label('primary')}: Checkout")
                lines.append(f"{self.key_label('delete')}: Stage for Deletion")
        if has_staged:
            lines.append(f"{self.key_label('delete_staged')}: Delete All Staged")
        lines.append(f"{self.key_label('toggle_view', 'default')}: Switch View")
        return lines

    def handle_primary_action(
        self, repo: GitRepo, selected: BranchItem, action_type: ActionType
    ) -> Optional[Operation]:
        if action_type is not ActionType.CHECKOUT_SELECTED_BRANCH or selected.branch.is_head:
            return None
        name = selected.branch.name

        async def checkout(ctx: OperationContext[BranchItem]) -> None:
            await repo.checkout_branch(name)
            logger.info(f"Checked out branch {name!r}")
            await ctx.reload(select=lambda w: w.branch.name == name)

        return checkout

    def handle_delete_action(self, repo: GitRepo, selected: BranchItem) -> Optional[Operation]:
        if selected.branch.is_head:
            return None
        branch = selected.branch

        async def delete(ctx: OperationContext[BranchItem]) -> None:
            await repo.delete_branch(branch)
            logger.info(f"Deleted branch {branch.name!r}")
            ctx.state.remove_where(lambda w: w.branch.name == branch.name)

        return delete

    def handle_bulk_delete_action(
        self, repo: GitRepo, staged: list[BranchItem]
    ) -> Optional[Operation]:
        targets = [w for w in staged if w.can_stage()]
        if not targets:
            return None

        async def delete_all(ctx: OperationContext[BranchItem]) -> None:
            deleted = await delete_each(ctx, targets, lambda w: repo.delete_branch(w.branch))
            names = {w.branch.name for w in deleted}
            logger.info(f"Deleted {len(names)} of {len(targets)} staged branches")
            ctx.state.remove_where(lambda w: w.branch.name in names)

        return delete_all

    def handle_create_action(self, repo: GitRepo, text: str) -> Optional[Operation]:
        name = text.strip()
        if not name:
            return None

        async def create(ctx: OperationContext[BranchItem]) -> None:
            await repo.create_branch(GitBranch(name))
            logger.info(f"Created branch {name!r}")
            await ctx.reload(select=lambda w: w.branch.name == name)

        return create


class BranchInputHandler(InputHandler[GitBranch]):
    async def validate(self, repo: GitRepo, current_items: Sequence[GitBranch], text: str) -> bool:
        try:
            name = text.strip()
            if not name:
                raise ValidationError("Branch name is empty")
            if any(branch.name == name for branch in current_items):
                raise ValidationError(f"Branch {name!r} already exists")
            if not await repo.validate_branch_name(name):
                raise ValidationError(f"{name!r} is not a valid branch name")
        except ValidationError as e:
            logger.debug(f"Rejected branch name: {e}")
            return False
        except RepositoryError as e:
            logger.warning(f"Could not validate branch name {text!r}: {e}")
            return False
        return True

    def submit_action(self, text: str) -> Action:
        return Action(ActionType.CREATE_BRANCH, text.strip())

    def prompt(self) -> str:
        return "Enter new branch name:"

    def preview(self, text: str, is_valid: Optional[bool]) -> Optional[BranchItem]:
        if not text:
            return None
        return BranchItem(GitBranch(text), staged_for_creation=True, is_valid_name=bool(is_valid))


def create_branch_list(
    repo: GitRepo,
    engine: AsyncEngine,
    keybinder: KeyBinder,
    config: Optional[dict[str, Any]] = None,
) -> GenericListComponent:
    return GenericListComponent(
        name=SECTION,
        title="Branches",
        repo=repo,
        engine=engine,
        data_source=BranchDataSource(repo),
        action_handler=BranchActionHandler(keybinder),
        input_handler=BranchInputHandler(),
        config=config,
    )
