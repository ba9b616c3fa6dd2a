# gitbm/ui/views/StashList.py
"""StashList.py
==================
The stash list: apply, pop, drop (single and bulk) and stashing the current
changes with a message typed in the input box.

Stash references are positional (``stash@{N}``), so whenever entries are
dropped the remaining ones are renumbered in place, and a bulk drop works from
the highest index down so the references still to be dropped stay valid.
Operations queue behind each other, so each one looks its stash up again when
it runs and gives up if the entry was replaced by a reload in the meantime.
"""

from __future__ import annotations

import curses
import logging
from typing import Any, Optional, Sequence

from gitbm.core.Action import Action, ActionType
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.errors import RepositoryError, ValidationError
from gitbm.integrations.GitRepo import GitRepo, GitStash
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

SECTION = "stashes"


class StashItem(ListItemWrapper[GitStash]):
    def __init__(self, stash: GitStash) -> None:
        self.stash = stash
        self.staged_for_deletion = False

    @property
    def item(self) -> GitStash:
        return self.stash

    def render(self, screen: DrawScreen) -> list[tuple[str, int]]:
        message_attr = screen.color("staged") if self.staged_for_deletion else curses.A_NORMAL
        return [(f"{self.stash.index}: ", curses.A_NORMAL), (self.stash.message, message_attr)]

    def __repr__(self) -> str:
        return f"StashItem({self.stash.stash_id!r}, staged={self.staged_for_deletion})"


def reindex(ctx: OperationContext[StashItem]) -> None:
    """Renumbers the stashes left in the list to match the stash stack."""
    with ctx.state.mutate() as items:
        for index, wrapper in enumerate(items):
            stash = wrapper.stash
            wrapper.stash = GitStash.at(index, stash.message, stash.branch_name)


def current_stash(ctx: OperationContext[StashItem], wrapper: StashItem) -> GitStash:
    """The up-to-date reference for `wrapper`, which must still be listed."""
    if not any(w is wrapper for w in ctx.state.items):
        raise RepositoryError("Stash list changed; selection is stale")
    return wrapper.stash


class StashDataSource(ListDataSource[GitStash]):
    def __init__(self, repo: GitRepo) -> None:
        self.repo = repo

    async def fetch_items(self) -> list[GitStash]:
        return await self.repo.list_stashes()


# ==================== StashActionHandler Class ====================
class StashActionHandler(ListActionHandler[StashItem]):
    def __init__(self, keybinder: KeyBinder) -> None:
        super().__init__(keybinder, SECTION)

    def wrap(self, item: GitStash) -> StashItem:
        return StashItem(item)

    def map_key_to_action(self, key: KeyEvent, selected: Optional[StashItem]) -> Optional[Action]:
        binding = self.binding_for(key)
        if binding == "init_new":
            return Action(ActionType.INIT_NEW)
        if binding == "delete_staged":
            return Action(ActionType.DELETE_STAGED)
        if selected is None:
            return None
        if binding == "primary":
            return Action(ActionType.APPLY_SELECTED_STASH)
        if binding == "pop":
            return Action(ActionType.POP_SELECTED_STASH)
        if binding == "delete":
            if selected.staged_for_deletion:
                return Action(ActionType.DELETE_SELECTED)
            return Action(ActionType.STAGE_FOR_DELETION)
        if binding == "unstage" and selected.staged_for_deletion:
            return Action(ActionType.UNSTAGE_FOR_DELETION)
        return None

    def instructions(self, selected: Optional[StashItem], has_staged: bool) -> list[str]:
        lines = [
            f"{self.key_label('quit', 'default')}: Exit",
            f"{self.key_label('init_new')}: New Stash",
        ]
        if selected is not None:
            lines.append(f"{self.key_label('primary')}: Apply")
            lines.append(f"{self.key_label('pop')}: Pop")
            if selected.staged_for_deletion:
                lines.append(f"{self.key_label('delete')}: Drop")
                lines.append(f"{self.key_label('unstage')}: Unstage")
            else:
                lines.append(f"{self.key_label('delete')}: Stage for Deletion")
        if has_staged:
            lines.append(f"{self.key_label('delete_staged')}: Drop All Staged")
        lines.append(f"{self.key_label('toggle_view', 'default')}: Switch View")
        return lines

    def handle_primary_action(
        self, repo: GitRepo, selected: StashItem, action_type: ActionType
    ) -> Optional[Operation]:
        if action_type is ActionType.APPLY_SELECTED_STASH:
            call, verb = repo.apply_stash, "Applied"
        elif action_type is ActionType.POP_SELECTED_STASH:
            call, verb = repo.pop_stash, "Popped"
        else:
            return None

        async def run(ctx: OperationContext[StashItem]) -> None:
            stash = current_stash(ctx, selected)
            await call(stash)
            logger.info(f"{verb} {stash.stash_id}")
            await ctx.reload()

        return run

    def handle_delete_action(self, repo: GitRepo, selected: StashItem) -> Optional[Operation]:
        async def drop(ctx: OperationContext[StashItem]) -> None:
            stash = current_stash(ctx, selected)
            await repo.drop_stash(stash)
            logger.info(f"Dropped {stash.stash_id}")
            if ctx.state.remove_where(lambda w: w is selected):
                reindex(ctx)
            else:
                await ctx.reload()

        return drop

    def handle_bulk_delete_action(
        self, repo: GitRepo, staged: list[StashItem]
    ) -> Optional[Operation]:
        if not staged:
            return None

        async def drop_all(ctx: OperationContext[StashItem]) -> None:
            targets = sorted(staged, key=lambda w: w.stash.index, reverse=True)

            async def drop_one(wrapper: StashItem) -> None:
                await repo.drop_stash(current_stash(ctx, wrapper))

            dropped = await delete_each(ctx, targets, drop_one)
            dropped_ids = {id(w) for w in dropped}
            logger.info(f"Dropped {len(dropped)} of {len(targets)} staged stashes")
            removed = ctx.state.remove_where(lambda w: id(w) in dropped_ids)
            if len(removed) == len(dropped):
                reindex(ctx)
            else:
                await ctx.reload()

        return drop_all

    def handle_create_action(self, repo: GitRepo, text: str) -> Optional[Operation]:
        message = text.strip()
        if not message:
            return None

        async def create(ctx: OperationContext[StashItem]) -> None:
            if not await repo.stash_with_message(message):
                raise RepositoryError("No local changes to stash")
            logger.info(f"Stashed local changes: {message!r}")
            await ctx.reload(select=lambda w: w.stash.index == 0)

        return create


class StashInputHandler(InputHandler[GitStash]):
    async def validate(self, repo: GitRepo, current_items: Sequence[GitStash], text: str) -> bool:
        try:
            if not text.strip():
                raise ValidationError("Stash message is empty")
        except ValidationError as e:
            logger.debug(f"Rejected stash message: {e}")
            return False
        return True

    def submit_action(self, text: str) -> Action:
        return Action(ActionType.CREATE_STASH, text.strip())

    def prompt(self) -> str:
        return "Enter stash message:"


def create_stash_list(
    repo: GitRepo,
    engine: AsyncEngine,
    keybinder: KeyBinder,
    config: Optional[dict[str, Any]] = None,
) -> GenericListComponent:
    return GenericListComponent(
        name=SECTION,
        title="Stashes",
        repo=repo,
        engine=engine,
        data_source=StashDataSource(repo),
        action_handler=StashActionHandler(keybinder),
        input_handler=StashInputHandler(),
        config=config,
    )
