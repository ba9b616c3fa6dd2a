# gitbm/ui/components/GenericList.py
"""GenericList.py
==================
The list engine behind both the branch list and the stash list.

:class:`GenericListComponent` owns a :class:`SharedListState`, a selection or
input mode, and an input box. Everything domain specific comes from three
strategy objects (see :mod:`gitbm.ui.components.protocols`): the data source
loads the items, the action handler maps keys and produces deferred
operations, the input handler validates and submits typed text.

Repository work never runs on the UI thread. Each operation is spawned on the
:class:`gitbm.core.AsyncEngine.AsyncEngine` inside :meth:`_run_guarded`, which
serializes operations per list with an ``asyncio.Lock``, publishes the loading
marker, turns :class:`RepositoryError` into an ``ERROR`` action and always
finishes with the completion action and a ``RENDER``.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import curses
import logging
import time
from enum import Enum, auto
from typing import Any, Optional

from gitbm.core.Action import (
    COMPLETION_ACTIONS,
    CREATE_ACTIONS,
    PRIMARY_ACTIONS,
    Action,
    ActionType,
)
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.core.SharedListState import LoadingOperation, SharedListState
from gitbm.errors import RepositoryError
from gitbm.integrations.GitRepo import GitRepo
from gitbm.ui.components.Component import Component
from gitbm.ui.components.GenericInput import GenericInputComponent
from gitbm.ui.components.protocols import (
    InputHandler,
    ListActionHandler,
    ListDataSource,
    Operation,
    OperationContext,
)
from gitbm.ui.DrawScreen import DrawScreen, Rect
from gitbm.ui.KeyBinder import KeyEvent


logger = logging.getLogger("gitbm")

HIGHLIGHT_SYMBOL = "→ "
INPUT_HEIGHT = 3
FOOTER_HEIGHT = 3


class Mode(Enum):
    SELECTION = auto()
    INPUT = auto()


async def _load_items(ctx: OperationContext[Any]) -> None:
    await ctx.reload()


# ==================== GenericListComponent Class ====================
class GenericListComponent(Component):
    """Class GenericListComponent
    ============================
    A selectable, stageable list of repository items.

    Attributes:
        state (SharedListState): Items, selection and loading marker, shared with operations.
        mode (Mode): SELECTION, or INPUT while the input box has focus.
        input (GenericInputComponent): The input box used by INIT_NEW.
    """

    def __init__(
        self,
        name: str,
        title: str,
        repo: GitRepo,
        engine: AsyncEngine,
        data_source: ListDataSource[Any],
        action_handler: ListActionHandler[Any],
        input_handler: InputHandler[Any],
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(name)
        self.title = title
        self.repo = repo
        self.engine = engine
        self.data_source = data_source
        self.action_handler = action_handler
        self.input_handler = input_handler
        self.state: SharedListState[Any] = SharedListState()
        self.mode = Mode.SELECTION
        self.input = GenericInputComponent(input_handler)
        settings = (config or {}).get("settings", {})
        self.validation_timeout = float(settings.get("validation_timeout", 2.0))
        self._op_lock = asyncio.Lock()
        self._offset = 0

    def register_action_handler(self, bus) -> None:
        super().register_action_handler(bus)
        bus.send(Action(ActionType.REFRESH, target=self.name))

    # ----- events -----

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        if self.mode is Mode.INPUT:
            return self.input.handle_key(key, self._validate)

        binding = self.action_handler.binding_for(key)
        if binding == "select_next":
            return Action(ActionType.SELECT_NEXT)
        if binding == "select_previous":
            return Action(ActionType.SELECT_PREVIOUS)
        if binding == "refresh":
            return Action(ActionType.REFRESH)
        return self.action_handler.map_key_to_action(key, self.state.selected())

    def update(self, action: Action) -> Optional[Action]:
        kind = action.type

        if kind is ActionType.SELECT_NEXT:
            self.state.select_next()
            return self._render()
        if kind is ActionType.SELECT_PREVIOUS:
            self.state.select_previous()
            return self._render()
        if kind is ActionType.STAGE_FOR_DELETION:
            if not self.state.stage_selected(True):
                logger.debug(f"[{self.name}] selection cannot be staged")
            return self._render()
        if kind is ActionType.UNSTAGE_FOR_DELETION:
            self.state.stage_selected(False)
            return self._render()
        if kind is ActionType.REFRESH:
            self.refresh()
            return None

        if kind is ActionType.INIT_NEW:
            self.mode = Mode.INPUT
            self.input.reset()
            return Action(ActionType.START_INPUT_MODE, target=self.name)
        if kind is ActionType.END_INPUT_MODE:
            self.mode = Mode.SELECTION
            self.input.reset()
            return self._render()

        if kind in PRIMARY_ACTIONS:
            selected = self.state.selected()
            if selected is None:
                return None
            self._launch(
                self.action_handler.handle_primary_action(self.repo, selected, kind),
                ActionType.PRIMARY_ACTION_COMPLETE,
            )
            return None
        if kind is ActionType.DELETE_SELECTED:
            selected = self.state.selected()
            if selected is None:
                return None
            self._launch(
                self.action_handler.handle_delete_action(self.repo, selected),
                ActionType.ITEM_DELETED,
            )
            return None
        if kind is ActionType.DELETE_STAGED:
            staged = self.state.staged()
            if not staged:
                return None
            self._launch(
                self.action_handler.handle_bulk_delete_action(self.repo, staged),
                ActionType.BULK_DELETE_COMPLETE,
            )
            return None
        if kind in CREATE_ACTIONS:
            self.mode = Mode.SELECTION
            self.input.reset()
            if action.payload:
                self._launch(
                    self.action_handler.handle_create_action(self.repo, str(action.payload)),
                    ActionType.ITEM_CREATED,
                )
            return Action(ActionType.END_INPUT_MODE, target=self.name)

        if kind in COMPLETION_ACTIONS:
            logger.debug(f"[{self.name}] {kind.name}")
            return None
        if kind is ActionType.TICK and self.state.loading.active:
            # Keeps the elapsed time in the title moving.
            return self._render()
        return None

    def _render(self) -> Action:
        return Action(ActionType.RENDER, target=self.name)

    # ----- background operations -----

    def refresh(self) -> None:
        self.engine.spawn(
            self._run_guarded(_load_items, ActionType.ITEMS_LOADED, refresh=True)
        )

    def _launch(self, operation: Optional[Operation], completion: ActionType) -> None:
        if operation is None:
            logger.debug(f"[{self.name}] no operation for {completion.name}")
            return
        self.engine.spawn(self._run_guarded(operation, completion))

    def _context(self) -> OperationContext[Any]:
        return OperationContext(
            repo=self.repo,
            state=self.state,
            bus=self.bus,
            target=self.name,
            data_source=self.data_source,
            wrap=self.action_handler.wrap,
        )

    def _post(self, action: Action) -> None:
        if self.bus is not None and not self.bus.closed:
            self.bus.send(action)

    async def _run_guarded(
        self, operation: Operation, completion: ActionType, refresh: bool = False
    ) -> None:
        """Runs one operation with the list's loading marker set around it."""
        async with self._op_lock:
            ctx = self._context()
            ctx.started_at = time.monotonic()
            self.state.set_loading(
                LoadingOperation.loading(ctx.started_at)
                if refresh
                else LoadingOperation.processing(ctx.started_at)
            )
            self._post(self._render())
            try:
                await operation(ctx)
            except RepositoryError as e:
                message = f"Failed to fetch items: {e}" if refresh else str(e)
                logger.error(f"[{self.name}] {completion.name} failed: {message}")
                self._post(Action.error(message, target=self.name))
            finally:
                self.state.set_loading(LoadingOperation.none())
                self._post(Action(completion, target=self.name))
                self._post(self._render())

    def _validate(self, text: str) -> bool:
        """Runs the async input validation on the engine, bounded by a timeout."""
        current = [wrapper.item for wrapper in self.state.items]
        try:
            return self.engine.run_sync(
                self.input_handler.validate(self.repo, current, text),
                timeout=self.validation_timeout,
            )
        except (concurrent.futures.TimeoutError, RuntimeError) as e:
            logger.warning(f"[{self.name}] validation of {text!r} did not complete: {e!r}")
            return False

    # ----- drawing -----

    def draw(self, screen: DrawScreen, rect: Rect) -> None:
        snapshot = self.state.snapshot()
        body, footer = rect.split_bottom(FOOTER_HEIGHT)
        list_rect = body
        if self.mode is Mode.INPUT:
            list_rect, input_rect = body.split_bottom(INPUT_HEIGHT)
            self.input.draw(screen, input_rect)

        screen.draw_box(
            list_rect,
            snapshot.loading.title(self.title),
            title_attr=screen.color("title"),
        )
        self._draw_items(screen, list_rect.inner, snapshot)
        self._draw_footer(screen, footer, snapshot)

    def _draw_items(self, screen: DrawScreen, inner: Rect, snapshot) -> None:
        if inner.height < 1 or inner.width < 1:
            return
        row = inner.y
        rows_left = inner.height
        indent = " " * len(HIGHLIGHT_SYMBOL)

        if self.mode is Mode.INPUT:
            preview = self.input_handler.preview(self.input.buffer.strip(), self.input.is_valid)
            if preview is not None:
                screen.add_segments(row, inner.x, [(indent, 0), *preview.render(screen)], inner.width)
                row += 1
                rows_left -= 1
        if rows_left <= 0 or not snapshot.items:
            return

        selected = snapshot.selected_index
        if selected < self._offset:
            self._offset = selected
        elif selected >= self._offset + rows_left:
            self._offset = selected - rows_left + 1
        self._offset = max(0, min(self._offset, len(snapshot.items) - rows_left))

        for index in range(self._offset, min(len(snapshot.items), self._offset + rows_left)):
            wrapper = snapshot.items[index]
            if index == selected:
                prefix = [(HIGHLIGHT_SYMBOL, curses.A_BOLD)]
            else:
                prefix = [(indent, 0)]
            screen.add_segments(row, inner.x, [*prefix, *wrapper.render(screen)], inner.width)
            row += 1

    def _draw_footer(self, screen: DrawScreen, rect: Rect, snapshot) -> None:
        selected = snapshot.items[snapshot.selected_index] if snapshot.items else None
        has_staged = any(w.staged_for_deletion for w in snapshot.items)
        text = " | ".join(self.action_handler.instructions(selected, has_staged))
        attr = screen.color("footer")
        screen.draw_box(rect, attr=attr)
        inner = rect.inner
        if inner.height >= 1:
            screen.addstr(inner.y, inner.x, text, attr, inner.width)
