# gitbm/ui/components/GenericInput.py
"""GenericInput.py
==================
The single-line input box a list shows while it is in input mode.

The box owns the text buffer, the caret and the validity flag. It never talks
to the repository itself: the owning list passes a ``validate_fn`` into
:meth:`GenericInputComponent.handle_key`, and the submit action is built by the
list's :class:`gitbm.ui.components.protocols.InputHandler`.
"""

from __future__ import annotations

import curses
import logging
from typing import TYPE_CHECKING, Callable, Optional

from gitbm.core.Action import Action, ActionType
from gitbm.ui.DrawScreen import text_width, truncate_string

if TYPE_CHECKING:
    from gitbm.ui.components.protocols import InputHandler
    from gitbm.ui.DrawScreen import DrawScreen, Rect
    from gitbm.ui.KeyBinder import KeyEvent


logger = logging.getLogger("gitbm")

ValidateFn = Callable[[str], bool]


# ==================== GenericInputComponent Class ====================
class GenericInputComponent:
    """Text buffer with caret and a tri-state validity flag.

    Attributes:
        buffer (str): The raw text typed so far.
        cursor (int): Caret position as a character index into `buffer`.
        is_valid (Optional[bool]): None before any edit, then the last validation result.
    """

    def __init__(self, input_handler: InputHandler) -> None:
        self.input_handler = input_handler
        self.buffer = ""
        self.cursor = 0
        self.is_valid: Optional[bool] = None

    def get_text(self) -> Optional[str]:
        """The trimmed buffer, or None when it is blank."""
        text = self.buffer.strip()
        return text or None

    def reset(self) -> None:
        self.buffer = ""
        self.cursor = 0
        self.is_valid = None

    def handle_key(self, key: KeyEvent, validate_fn: ValidateFn) -> Optional[Action]:
        if key.key == "esc" and not (key.ctrl or key.alt):
            self.reset()
            return Action(ActionType.END_INPUT_MODE)

        if key.key == "enter":
            text = self.get_text()
            if text is None or not self.is_valid:
                return None
            self.reset()
            return self.input_handler.submit_action(text)

        if self._move_cursor(key):
            return None

        if key.key == "backspace":
            if self.cursor == 0:
                return None
            self.buffer = self.buffer[: self.cursor - 1] + self.buffer[self.cursor:]
            self.cursor -= 1
        elif key.key == "delete":
            if self.cursor >= len(self.buffer):
                return None
            self.buffer = self.buffer[: self.cursor] + self.buffer[self.cursor + 1:]
        elif key.is_printable:
            self.buffer = self.buffer[: self.cursor] + key.char + self.buffer[self.cursor:]
            self.cursor += len(key.char)
        else:
            return None

        self._revalidate(validate_fn)
        return None

    def _move_cursor(self, key: KeyEvent) -> bool:
        if key.key == "left":
            self.cursor = max(0, self.cursor - 1)
        elif key.key == "right":
            self.cursor = min(len(self.buffer), self.cursor + 1)
        elif key.key == "home":
            self.cursor = 0
        elif key.key == "end":
            self.cursor = len(self.buffer)
        else:
            return False
        return True

    def _revalidate(self, validate_fn: ValidateFn) -> None:
        if not self.buffer.strip():
            self.is_valid = False
            return
        self.is_valid = bool(validate_fn(self.buffer))
        logger.debug(f"Input {self.buffer!r} valid={self.is_valid}")

    def draw(self, screen: DrawScreen, rect: Rect) -> None:
        """Draws the bordered box; the prompt is the box title."""
        if self.is_valid is None:
            attr = curses.A_NORMAL
        else:
            attr = screen.color("valid" if self.is_valid else "invalid")
        screen.draw_box(rect, self.input_handler.prompt() or "", attr)

        inner = rect.inner
        if inner.height < 1 or inner.width < 2:
            return

        # Scroll horizontally so the caret stays visible.
        start = 0
        while text_width(self.buffer[start: self.cursor]) >= inner.width:
            start += 1
        visible = truncate_string(self.buffer[start:], inner.width)
        screen.addstr(inner.y, inner.x, visible, attr, inner.width)

        caret_x = inner.x + text_width(self.buffer[start: self.cursor])
        caret_char = self.buffer[self.cursor] if self.cursor < len(self.buffer) else " "
        screen.addstr(inner.y, caret_x, caret_char, attr | curses.A_REVERSE, 1)
