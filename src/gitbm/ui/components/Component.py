# gitbm/ui/components/Component.py
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from gitbm.core.Action import Action

if TYPE_CHECKING:
    from gitbm.core.ActionBus import ActionBus
    from gitbm.ui.DrawScreen import DrawScreen, Rect
    from gitbm.ui.KeyBinder import KeyEvent
    from gitbm.ui.Tui import TerminalEvent


logger = logging.getLogger("gitbm")


# ==================== Component Class ====================
class Component:
    """A base class for views driven by the action loop.

    A component receives terminal events through `handle_events`, answers
    actions in `update` and paints itself in `draw`. Both handlers may return
    one follow-up action, which the loop sends on the bus.
    """

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name
        self.bus: Optional[ActionBus] = None
        logger.debug(f"Component '{self.name}' ({self.__class__.__name__}) initialized.")

    def register_action_handler(self, bus: ActionBus) -> None:
        """Gives the component the bus it sends background results on."""
        self.bus = bus

    def handle_events(self, event: Optional[TerminalEvent]) -> Optional[Action]:
        if event is None or event.key is None:
            return None
        return self.handle_key_event(event.key)

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        return None

    def update(self, action: Action) -> Optional[Action]:
        return None

    def draw(self, screen: DrawScreen, rect: Rect) -> None:
        """Draw one frame of the component inside `rect`."""
        raise NotImplementedError(
            "The 'draw' method must be implemented in a child class."
        )
