# gitbm/ui/views/ErrorView.py
from __future__ import annotations

import logging
import textwrap
from typing import Optional

from gitbm.core.Action import Action, ActionType
from gitbm.ui.components.Component import Component
from gitbm.ui.DrawScreen import DrawScreen, Rect
from gitbm.ui.KeyBinder import KeyEvent


logger = logging.getLogger("gitbm")

SCROLL_UP_KEYS = ("up", "w")
SCROLL_DOWN_KEYS = ("down", "s")


# ==================== ErrorView Class ====================
class ErrorView(Component):
    """Full-screen box showing the last error message.

    Scrolling keys move through a long message; any other key dismisses it
    and returns ``EXIT_ERROR`` so the loop goes back to the previous list.
    """

    def __init__(self, name: str = "error") -> None:
        super().__init__(name)
        self.message: Optional[str] = None
        self.scroll = 0
        self.last_height = 0
        self._line_count = 0

    @property
    def active(self) -> bool:
        return self.message is not None

    def show(self, message: str) -> None:
        logger.debug(f"Showing error: {message}")
        self.message = message
        self.scroll = 0

    def clear(self) -> None:
        self.message = None
        self.scroll = 0

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        if not self.active:
            return None
        plain = not (key.ctrl or key.alt or key.shift)
        if plain and key.key in SCROLL_UP_KEYS:
            self.scroll = max(0, self.scroll - 1)
            return Action(ActionType.RENDER)
        if plain and key.key in SCROLL_DOWN_KEYS:
            max_scroll = max(0, self._line_count - self.last_height)
            self.scroll = min(max_scroll, self.scroll + 1)
            return Action(ActionType.RENDER)
        self.clear()
        return Action(ActionType.EXIT_ERROR)

    def update(self, action: Action) -> Optional[Action]:
        if action.type is ActionType.ERROR:
            self.show(str(action.payload))
            return Action(ActionType.RENDER)
        return None

    def _wrap(self, width: int) -> list[str]:
        lines: list[str] = []
        for paragraph in (self.message or "").splitlines() or [""]:
            lines.extend(textwrap.wrap(paragraph, width=max(1, width)) or [""])
        return lines

    def draw(self, screen: DrawScreen, rect: Rect) -> None:
        attr = screen.color("error")
        screen.draw_box(rect, "Error", attr, attr)
        inner = rect.inner
        lines = self._wrap(inner.width)
        self._line_count = len(lines)
        self.last_height = inner.height
        self.scroll = min(self.scroll, max(0, len(lines) - inner.height))
        for row, line in enumerate(lines[self.scroll: self.scroll + inner.height]):
            screen.addstr(inner.y + row, inner.x, line, attr, inner.width)
