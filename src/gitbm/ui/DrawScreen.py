# gitbm/ui/DrawScreen.py
"""DrawScreen.py
==================
Thin drawing layer over a curses window shared by every component.

It owns the colour attributes resolved from ``config["colors"]`` and offers
width-aware primitives (``wcwidth``) so wide glyphs in branch names or stash
messages never overflow a box: text output, bordered boxes with a title, and
horizontal segment lists. All primitives swallow ``curses.error`` raised by
writes touching the last screen cell, which curses reports even though the
text was drawn.
"""

import curses
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from wcwidth import wcswidth, wcwidth


logger = logging.getLogger("gitbm")

COLOR_NAMES: dict[str, int] = {
    "black": curses.COLOR_BLACK,
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "blue": curses.COLOR_BLUE,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
}

# Attributes used when the terminal (or the test environment) has no colours.
FALLBACK_ATTRS: dict[str, int] = {
    "staged": curses.A_BOLD,
    "valid": curses.A_BOLD,
    "invalid": curses.A_UNDERLINE,
    "error": curses.A_BOLD,
    "title": curses.A_BOLD,
    "footer": curses.A_NORMAL,
}


@dataclass(frozen=True)
class Rect:
    y: int
    x: int
    height: int
    width: int

    @property
    def inner(self) -> "Rect":
        """The area inside a one-cell border."""
        return Rect(self.y + 1, self.x + 1, max(0, self.height - 2), max(0, self.width - 2))

    def split_bottom(self, rows: int) -> tuple["Rect", "Rect"]:
        """Splits off `rows` lines at the bottom; returns (top, bottom)."""
        rows = min(rows, self.height)
        top = Rect(self.y, self.x, self.height - rows, self.width)
        bottom = Rect(self.y + self.height - rows, self.x, rows, self.width)
        return top, bottom


def truncate_string(s: str, max_width: int) -> str:
    """Return `s` clipped to visual width `max_width` (wide glyphs count double)."""
    result: list[str] = []
    consumed = 0
    for ch in s:
        w = wcwidth(ch)
        if w < 0:
            w = 1
        if consumed + w > max_width:
            break
        result.append(ch)
        consumed += w
    return "".join(result)


def text_width(s: str) -> int:
    width = wcswidth(s)
    return width if width >= 0 else len(s)


# ==================== DrawScreen Class ====================
class DrawScreen:
    MIN_HEIGHT = 8
    MIN_WIDTH = 30

    def __init__(self, stdscr: Any, config: Optional[dict[str, Any]] = None):
        self.stdscr = stdscr
        self.config = config or {}
        self.colors: dict[str, int] = {}
        self._init_colors()

    def _init_colors(self) -> None:
        """Allocates one colour pair per configured role, or falls back to plain attributes."""
        roles = self.config.get("colors", {}) or {}
        try:
            if not curses.has_colors():
                raise curses.error("terminal has no colours")
            curses.start_color()
            try:
                curses.use_default_colors()
                background = -1
            except curses.error:
                background = curses.COLOR_BLACK
            for pair_id, (role, name) in enumerate(sorted(roles.items()), start=1):
                fg = COLOR_NAMES.get(str(name).lower(), curses.COLOR_WHITE)
                curses.init_pair(pair_id, fg, background)
                self.colors[role] = curses.color_pair(pair_id)
        except curses.error as e:
            logger.debug(f"Colour setup unavailable, using attributes only: {e}")
            self.colors = dict(FALLBACK_ATTRS)

    def color(self, role: str) -> int:
        return self.colors.get(role, FALLBACK_ATTRS.get(role, curses.A_NORMAL))

    def size(self) -> tuple[int, int]:
        height, width = self.stdscr.getmaxyx()
        return height, width

    def too_small(self) -> bool:
        height, width = self.size()
        return height < self.MIN_HEIGHT or width < self.MIN_WIDTH

    def show_small_window_error(self) -> None:
        """Displays a message that the window is too small."""
        height, width = self.size()
        msg = truncate_string(
            f"Window too small ({width}x{height}). Minimum is {self.MIN_WIDTH}x{self.MIN_HEIGHT}.",
            max(0, width - 1),
        )
        try:
            self.stdscr.erase()
            self.stdscr.addstr(height // 2, max(0, (width - text_width(msg)) // 2), msg)
        except curses.error:
            pass

    def addstr(self, y: int, x: int, text: str, attr: int = 0, max_width: Optional[int] = None) -> int:
        """Writes `text` clipped to `max_width` cells; returns the cells used."""
        if max_width is not None:
            text = truncate_string(text, max_width)
        if not text:
            return 0
        try:
            self.stdscr.addstr(y, x, text, attr)
        except curses.error:
            pass
        return text_width(text)

    def add_segments(self, y: int, x: int, segments: Iterable[tuple[str, int]], max_width: int) -> int:
        """Writes styled (text, attr) pieces left to right within `max_width` cells."""
        used = 0
        for text, attr in segments:
            if used >= max_width:
                break
            used += self.addstr(y, x + used, text, attr, max_width - used)
        return used

    def draw_box(self, rect: Rect, title: str = "", attr: int = 0, title_attr: Optional[int] = None) -> None:
        """Draws a single-line border around `rect` with `title` on the top edge."""
        if rect.height < 2 or rect.width < 2:
            return
        horizontal = "─" * (rect.width - 2)
        bottom = rect.y + rect.height - 1
        self.addstr(rect.y, rect.x, f"┌{horizontal}┐", attr)
        for row in range(rect.y + 1, bottom):
            self.addstr(row, rect.x, "│", attr)
            self.addstr(row, rect.x + rect.width - 1, "│", attr)
        self.addstr(bottom, rect.x, f"└{horizontal}┘", attr)
        if title and rect.width > 4:
            self.addstr(
                rect.y, rect.x + 1, f" {title} ",
                attr if title_attr is None else title_attr,
                rect.width - 2,
            )

    def begin_frame(self) -> None:
        self.stdscr.erase()

    def end_frame(self) -> None:
        try:
            self.stdscr.noutrefresh()
            curses.doupdate()
        except curses.error as e:
            logger.debug(f"Screen update failed: {e}")
