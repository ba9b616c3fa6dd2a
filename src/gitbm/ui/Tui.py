# gitbm/ui/Tui.py
"""Tui.py
==================
The terminal event source consumed by :class:`gitbm.core.App.App`.

`poll_next_event()` multiplexes three producers onto one call: key presses
(decoded by :class:`gitbm.ui.KeyBinder.KeyBinder`), terminal resizes, and two
periodic timers (``tick_rate`` and ``frame_rate`` per second). It blocks in
``get_wch`` with a curses timeout computed from the nearest timer deadline, so
waiting for input never delays a tick or a render.
"""

import curses
import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional

from gitbm.ui.KeyBinder import KeyBinder, KeyEvent
from gitbm.ui.TerminalAppMode import TerminalAppMode


logger = logging.getLogger("gitbm")


class EventKind(Enum):
    KEY = auto()
    RESIZE = auto()
    TICK = auto()
    RENDER = auto()
    QUIT = auto()


@dataclass(frozen=True)
class TerminalEvent:
    kind: EventKind
    key: Optional[KeyEvent] = None
    size: tuple[int, int] = (0, 0)  # (width, height)

    @classmethod
    def of_key(cls, key: KeyEvent) -> "TerminalEvent":
        return cls(EventKind.KEY, key=key)


def _advance(deadline: float, interval: float, now: float) -> float:
    """Next deadline after `now`; missed periods are skipped, not replayed."""
    deadline += interval
    return deadline if deadline > now else now + interval


# ==================== Tui Class ====================
class Tui:
    def __init__(
        self,
        stdscr: Any,
        keybinder: KeyBinder,
        tick_rate: float = 4.0,
        frame_rate: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stdscr = stdscr
        self.keybinder = keybinder
        self.mode = TerminalAppMode()
        self.clock = clock
        self.tick_interval = 1.0 / tick_rate if tick_rate > 0 else float("inf")
        self.render_interval = 1.0 / frame_rate if frame_rate > 0 else float("inf")
        self.closed = False
        self._quit_requested = False
        now = self.clock()
        self._next_tick = now + self.tick_interval
        self._next_render = now + self.render_interval

    def enter(self) -> None:
        self.mode.enter(self.stdscr)
        self.closed = False

    def exit(self) -> None:
        self.mode.exit()
        self.closed = True

    def suspend(self) -> None:
        self.mode.suspend()

    def resume(self) -> None:
        self.mode.resume()
        now = self.clock()
        self._next_tick = now + self.tick_interval
        self._next_render = now

    def request_quit(self) -> None:
        """Makes the next poll return a QUIT event (signal handlers call this)."""
        self._quit_requested = True

    def size(self) -> tuple[int, int]:
        height, width = self.stdscr.getmaxyx()
        return width, height

    def poll_next_event(self) -> Optional[TerminalEvent]:
        """Blocks until a key, resize or timer event; returns None once closed."""
        while not self.closed:
            if self._quit_requested:
                self._quit_requested = False
                return TerminalEvent(EventKind.QUIT)
            now = self.clock()
            if now >= self._next_tick:
                self._next_tick = _advance(self._next_tick, self.tick_interval, now)
                return TerminalEvent(EventKind.TICK)
            if now >= self._next_render:
                self._next_render = _advance(self._next_render, self.render_interval, now)
                return TerminalEvent(EventKind.RENDER)

            wait = min(self._next_tick, self._next_render, now + 1.0) - now
            self.stdscr.timeout(max(1, int(wait * 1000)))
            key = self.keybinder.get_key_input(self.stdscr)
            if key is None:
                continue
            if key.key == "resize":
                try:
                    curses.update_lines_cols()
                except curses.error:
                    pass
                return TerminalEvent(EventKind.RESIZE, size=self.size())
            return TerminalEvent.of_key(key)
        return None
