# gitbm/ui/TerminalAppMode.py
from __future__ import annotations

import curses
import logging
import os
import signal
from typing import Optional

from curses import putp, setupterm, tigetstr


logger = logging.getLogger("gitbm")


class TerminalAppMode:
    """
    Puts the terminal into the state the list UI needs and takes it back out:

    - Alternate screen buffer (smcup/rmcup) so the shell prompt is preserved.
    - Application cursor keys (smkx/rmkx).
    - raw + noecho so Ctrl+C and Ctrl+Z arrive as keys, keypad(True), hidden cursor.

    `suspend()` leaves these modes and stops the process with SIGTSTP; once
    the shell resumes it, `resume()` re-enters them. Always pair `enter(stdscr)`
    with `exit()` (try/finally).
    """

    def __init__(self) -> None:
        self._entered: bool = False
        self._stdscr: Optional[curses.window] = None

    @property
    def entered(self) -> bool:
        return self._entered

    def enter(self, stdscr: curses.window) -> None:
        self._stdscr = stdscr

        try:
            setupterm()
        except curses.error as e:
            logger.debug("setupterm() failed or not required: %r", e)

        self._tputs("smcup")
        self._tputs("smkx")

        curses.raw()
        curses.noecho()
        stdscr.keypad(True)

        try:
            curses.set_escdelay(35)
        except curses.error:
            os.environ.setdefault("ESCDELAY", "35")
        try:
            curses.curs_set(0)
        except curses.error:
            pass

        stdscr.scrollok(False)
        stdscr.clearok(True)
        stdscr.erase()
        stdscr.refresh()

        self._entered = True
        logger.debug("TerminalAppMode: entered (alternate screen + raw mode).")

    def exit(self) -> None:
        if not self._entered:
            return

        try:
            if self._stdscr is not None:
                self._stdscr.keypad(False)
            curses.noraw()
            curses.echo()
            curses.curs_set(1)
        except curses.error as e:
            logger.debug("TerminalAppMode: restoring input modes failed: %r", e)

        self._tputs("rmkx")
        self._tputs("rmcup")

        self._entered = False
        logger.debug("TerminalAppMode: exited (restored terminal modes).")

    def suspend(self) -> None:
        """Restores the shell's terminal and stops the process until `fg`."""
        self.exit()
        curses.endwin()
        logger.info("Suspending to the shell.")
        if hasattr(signal, "SIGTSTP"):
            os.kill(os.getpid(), signal.SIGTSTP)

    def resume(self) -> None:
        """Re-enters raw mode after `suspend()`; failures propagate to the caller."""
        if self._stdscr is None:
            raise RuntimeError("TerminalAppMode.resume() called before enter()")
        logger.info("Resuming from suspension.")
        self._stdscr.refresh()
        self.enter(self._stdscr)

    # ── helpers ───────────────────────────────────────────────────────────────

    def _tputs(self, capname: str) -> None:
        try:
            s = tigetstr(capname)
            if s:
                putp(s)
        except curses.error as e:
            logger.debug("tputs(%s) skipped: %r", capname, e)
