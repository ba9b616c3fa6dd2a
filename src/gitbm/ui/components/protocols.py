# gitbm/ui/components/protocols.py
"""Strategy interfaces plugged into :class:`GenericListComponent`.

A list view is one ``GenericListComponent`` configured with three strategies:

* :class:`ListDataSource` loads the items,
* :class:`ListActionHandler` maps keys to actions, builds the footer and turns
  item actions into deferred operations,
* :class:`InputHandler` validates and submits the text typed in input mode.

Deferred operations are coroutine functions taking an :class:`OperationContext`.
The list engine runs them on the background engine inside a guard that sets and
always clears the loading marker, reports :class:`RepositoryError` as an
``ERROR`` action and posts the completion action.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from gitbm.core.Action import Action, ActionType
from gitbm.core.ActionBus import ActionBus
from gitbm.core.SharedListState import LoadingOperation, SharedListState
from gitbm.errors import RepositoryError
from gitbm.integrations.GitRepo import GitRepo

if TYPE_CHECKING:
    from gitbm.ui.DrawScreen import DrawScreen
    from gitbm.ui.KeyBinder import KeyBinder, KeyEvent


logger = logging.getLogger("gitbm")

T = TypeVar("T")


class ListItemWrapper(ABC, Generic[T]):
    """A managed item plus UI-only flags."""

    staged_for_deletion: bool = False

    @property
    @abstractmethod
    def item(self) -> T: ...

    def can_stage(self) -> bool:
        return True

    @abstractmethod
    def render(self, screen: "DrawScreen") -> list[tuple[str, int]]:
        """Styled (text, attr) segments for one list row."""


W = TypeVar("W", bound=ListItemWrapper)


@dataclass
class OperationContext(Generic[W]):
    """Handles given to a running operation."""

    repo: GitRepo
    state: SharedListState[W]
    bus: ActionBus
    target: str
    data_source: "ListDataSource[Any]"
    wrap: Callable[[Any], W]
    started_at: float = field(default_factory=time.monotonic)

    def send(self, action_type: ActionType, payload: Any = None) -> None:
        self.bus.send(Action(action_type, payload, self.target))

    def render(self) -> None:
        self.send(ActionType.RENDER)

    def progress(self, done: int, total: int) -> None:
        self.state.set_loading(LoadingOperation.progress(self.started_at, done, total))
        self.render()

    async def reload(self, select: Optional[Callable[[W], bool]] = None) -> None:
        """Replaces the items with a fresh load; `select` picks the new selection."""
        items = [self.wrap(item) for item in await self.data_source.fetch_items()]
        self.state.replace_items(items)
        if select is not None:
            for index, wrapper in enumerate(items):
                if select(wrapper):
                    self.state.select(index)
                    break


Operation = Callable[[OperationContext[Any]], Awaitable[None]]


async def delete_each(
    ctx: OperationContext[W],
    targets: Sequence[W],
    delete: Callable[[W], Awaitable[None]],
) -> list[W]:
    """Deletes `targets` one by one, reporting progress; failures are logged and skipped.

    Returns the wrappers whose delete call succeeded.
    """
    total = len(targets)
    succeeded: list[W] = []
    ctx.progress(0, total)
    for done, wrapper in enumerate(targets, start=1):
        try:
            await delete(wrapper)
            succeeded.append(wrapper)
        except RepositoryError as e:
            logger.warning(f"[{ctx.target}] skipping {wrapper.item}: {e}")
        ctx.progress(done, total)
    return succeeded


class ListDataSource(ABC, Generic[T]):
    @abstractmethod
    async def fetch_items(self) -> list[T]: ...


class ListActionHandler(ABC, Generic[W]):
    """Key mapping, footer text and deferred operations for one list."""

    def __init__(self, keybinder: "KeyBinder", section: str):
        self.keybinder = keybinder
        self.section = section

    def binding_for(self, key: "KeyEvent") -> Optional[str]:
        return self.keybinder.lookup(self.section, key)

    def key_label(self, binding: str, section: Optional[str] = None) -> str:
        return self.keybinder.display_key(section or self.section, binding)

    @abstractmethod
    def wrap(self, item: Any) -> W: ...

    @abstractmethod
    def map_key_to_action(self, key: "KeyEvent", selected: Optional[W]) -> Optional[Action]: ...

    @abstractmethod
    def instructions(self, selected: Optional[W], has_staged: bool) -> list[str]: ...

    @abstractmethod
    def handle_primary_action(
        self, repo: GitRepo, selected: W, action_type: ActionType
    ) -> Optional[Operation]: ...

    @abstractmethod
    def handle_delete_action(self, repo: GitRepo, selected: W) -> Optional[Operation]: ...

    @abstractmethod
    def handle_bulk_delete_action(self, repo: GitRepo, staged: list[W]) -> Optional[Operation]: ...

    @abstractmethod
    def handle_create_action(self, repo: GitRepo, text: str) -> Optional[Operation]: ...


class InputHandler(ABC, Generic[T]):
    @abstractmethod
    async def validate(self, repo: GitRepo, current_items: Sequence[T], text: str) -> bool: ...

    @abstractmethod
    def submit_action(self, text: str) -> Action: ...

    def prompt(self) -> Optional[str]:
        return None

    def preview(self, text: str, is_valid: Optional[bool]) -> Optional[ListItemWrapper[T]]:
        """Optional row shown above the list while typing."""
        return None
