# gitbm/core/Action.py
"""Action Module
=============
Every state transition in gitbm is requested by an :class:`Action`: a closed
set of message kinds (:class:`ActionType`) with an optional payload and an
optional routing target.

Producers are the event loop (terminal events and global key bindings), the
view components (key handling and ``update`` follow-ups), the input box, and
background operations (completion and error messages). The single consumer is
:class:`gitbm.core.App.App`, which reads them from the
:class:`gitbm.core.ActionBus.ActionBus`.

List-level actions (``SELECT_NEXT``, ``STAGE_FOR_DELETION``, ...) are shared by
the branch and stash lists and reach whichever list is active. Background
operations stamp their messages with ``target`` so a completion is delivered to
the list that launched it even if the user switched views meanwhile.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional


class ActionType(Enum):
    # Loop level
    QUIT = auto()
    SUSPEND = auto()
    RESUME = auto()
    TICK = auto()
    RENDER = auto()
    RESIZE = auto()  # payload: (width, height)

    # Error mode
    ERROR = auto()  # payload: message
    EXIT_ERROR = auto()

    # Views
    TOGGLE_VIEW = auto()
    REFRESH = auto()

    # Selection and staging
    SELECT_NEXT = auto()
    SELECT_PREVIOUS = auto()
    STAGE_FOR_DELETION = auto()
    UNSTAGE_FOR_DELETION = auto()

    # Input sub-mode
    INIT_NEW = auto()
    START_INPUT_MODE = auto()
    END_INPUT_MODE = auto()

    # Item lifecycle
    CHECKOUT_SELECTED_BRANCH = auto()
    APPLY_SELECTED_STASH = auto()
    POP_SELECTED_STASH = auto()
    DELETE_SELECTED = auto()
    DELETE_STAGED = auto()
    CREATE_BRANCH = auto()  # payload: branch name
    CREATE_STASH = auto()  # payload: stash message

    # Background completions
    ITEMS_LOADED = auto()
    PRIMARY_ACTION_COMPLETE = auto()
    ITEM_CREATED = auto()
    ITEM_DELETED = auto()
    BULK_DELETE_COMPLETE = auto()


PRIMARY_ACTIONS = frozenset(
    {
        ActionType.CHECKOUT_SELECTED_BRANCH,
        ActionType.APPLY_SELECTED_STASH,
        ActionType.POP_SELECTED_STASH,
    }
)

CREATE_ACTIONS = frozenset({ActionType.CREATE_BRANCH, ActionType.CREATE_STASH})

COMPLETION_ACTIONS = frozenset(
    {
        ActionType.ITEMS_LOADED,
        ActionType.PRIMARY_ACTION_COMPLETE,
        ActionType.ITEM_CREATED,
        ActionType.ITEM_DELETED,
        ActionType.BULK_DELETE_COMPLETE,
    }
)


@dataclass(frozen=True)
class Action:
    """A typed message; compare with ``Action(ActionType.X, payload)``.

    `target` names the view the message is addressed to. It does not take part
    in equality so tests and handlers can match on kind and payload alone.
    """

    type: ActionType
    payload: Any = None
    target: Optional[str] = field(default=None, compare=False)

    def __repr__(self) -> str:
        parts = [self.type.name]
        if self.payload is not None:
            parts.append(repr(self.payload))
        if self.target:
            parts.append(f"->{self.target}")
        return f"Action({', '.join(parts)})"

    def to(self, target: Optional[str]) -> "Action":
        """Returns a copy of this action addressed to `target`."""
        return Action(self.type, self.payload, target)

    @classmethod
    def error(cls, message: str, target: Optional[str] = None) -> "Action":
        return cls(ActionType.ERROR, message, target)

    @classmethod
    def resize(cls, width: int, height: int) -> "Action":
        return cls(ActionType.RESIZE, (width, height))
