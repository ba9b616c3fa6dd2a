# gitbm/core/App.py
"""App Module
==========
The event/render loop of gitbm.

Each iteration polls one terminal event from :class:`gitbm.ui.Tui.Tui`,
translates it into actions (global key bindings first, then the active
component's own key handling), and drains the :class:`ActionBus` once. Loop
level actions (quit, suspend, resize, view switching, error mode) are handled
here; everything else is routed to a list view: to the view named by the
action's target, or to the active list when it has none.

The application mode is derived from the components rather than stored:
``ERROR`` while the error view holds a message, ``INPUT`` while the active list
is in input mode, ``DEFAULT`` otherwise. It selects the global keymap section.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, Optional

from gitbm.core.Action import Action, ActionType
from gitbm.core.ActionBus import ActionBus
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.integrations.GitRepo import GitRepo
from gitbm.ui.components.GenericList import GenericListComponent, Mode
from gitbm.ui.DrawScreen import DrawScreen, Rect
from gitbm.ui.KeyBinder import KeyBinder
from gitbm.ui.Tui import EventKind, TerminalEvent, Tui
from gitbm.ui.views.BranchList import create_branch_list
from gitbm.ui.views.ErrorView import ErrorView
from gitbm.ui.views.StashList import create_stash_list


logger = logging.getLogger("gitbm")


class AppMode(Enum):
    DEFAULT = auto()
    INPUT = auto()
    ERROR = auto()


GLOBAL_ACTIONS: dict[str, ActionType] = {
    "quit": ActionType.QUIT,
    "toggle_view": ActionType.TOGGLE_VIEW,
    "suspend": ActionType.SUSPEND,
}


# ==================== App Class ====================
class App:
    """Class App
    ===========
    Owns the terminal, the action bus, the background engine and the views.

    Attributes:
        views (dict[str, GenericListComponent]): List views by name, in tab order.
        active_view (str): Name of the list currently shown.
        error_view (ErrorView): Shown instead of the list while an error is pending.
        running (bool): Cleared by ``QUIT``.
    """

    def __init__(
        self,
        stdscr: Any,
        config: dict[str, Any],
        repo: GitRepo,
        engine: Optional[AsyncEngine] = None,
    ) -> None:
        self.config = config
        self.repo = repo
        settings = config.get("settings", {})
        self.bus = ActionBus()
        self.engine = engine or AsyncEngine(self.bus)
        self.keybinder = KeyBinder(config)
        self.tui = Tui(
            stdscr,
            self.keybinder,
            tick_rate=float(settings.get("tick_rate", 4.0)),
            frame_rate=float(settings.get("frame_rate", 60.0)),
        )
        self.screen = DrawScreen(stdscr, config)

        self.views: dict[str, GenericListComponent] = {}
        for view in (
            create_branch_list(repo, self.engine, self.keybinder, config),
            create_stash_list(repo, self.engine, self.keybinder, config),
        ):
            self.views[view.name] = view
        self.active_view = next(iter(self.views))
        self.error_view = ErrorView()
        self.running = False
        self._registered = False
        self._dirty = False

    # ----- state -----

    @property
    def current_mode(self) -> AppMode:
        if self.error_view.active:
            return AppMode.ERROR
        if self.views[self.active_view].mode is Mode.INPUT:
            return AppMode.INPUT
        return AppMode.DEFAULT

    def request_quit(self) -> None:
        """Asks the loop to stop at its next poll; safe from signal handlers."""
        self.tui.request_quit()

    def register_components(self) -> None:
        """Hands the bus to every view; each list schedules its first load."""
        if self._registered:
            return
        for view in self.views.values():
            view.register_action_handler(self.bus)
        self.error_view.register_action_handler(self.bus)
        self._registered = True

    # ----- main loop -----

    def run(self) -> None:
        logger.info("gitbm main loop started.")
        self.engine.start()
        self.tui.enter()
        self.running = True
        try:
            self.register_components()
            self._render()
            while self.running:
                event = self.tui.poll_next_event()
                if event is None:
                    break
                self._handle_event(event)
                self._process_actions()
        finally:
            self.shutdown()
        logger.info("gitbm main loop finished.")

    def shutdown(self) -> None:
        self.running = False
        self.engine.stop()
        self.bus.close()
        self.tui.exit()

    def _handle_event(self, event: TerminalEvent) -> None:
        """Translates one terminal event into actions on the bus."""
        if event.kind is EventKind.QUIT:
            self.bus.send(Action(ActionType.QUIT))
        elif event.kind is EventKind.TICK:
            self.bus.send(Action(ActionType.TICK))
        elif event.kind is EventKind.RENDER:
            self.bus.send(Action(ActionType.RENDER))
        elif event.kind is EventKind.RESIZE:
            self.bus.send(Action.resize(*event.size))
        elif event.kind is EventKind.KEY and event.key is not None:
            section = self.current_mode.name.lower()
            binding = self.keybinder.lookup(section, event.key)
            if binding in GLOBAL_ACTIONS:
                self.bus.send(Action(GLOBAL_ACTIONS[binding]))

            component = self.error_view if self.error_view.active else self.views[self.active_view]
            follow_up = component.handle_events(event)
            if follow_up is not None:
                self.bus.send(follow_up)

    def _process_actions(self) -> None:
        """Drains the bus once; the screen is redrawn at most once per batch."""
        for action in self.bus.try_receive_all():
            self._dispatch(action)
        if self._dirty:
            self._render()

    def _dispatch(self, action: Action) -> None:
        kind = action.type
        if kind is not ActionType.TICK and kind is not ActionType.RENDER:
            logger.debug(f"Dispatching {action!r}")

        if kind is ActionType.QUIT:
            logger.info("Quit requested.")
            self.running = False
        elif kind is ActionType.SUSPEND:
            self.tui.suspend()
            self.bus.send(Action(ActionType.RESUME))
        elif kind is ActionType.RESUME:
            self.tui.resume()
            self._dirty = True
        elif kind in (ActionType.RESIZE, ActionType.RENDER):
            self._dirty = True
        elif kind is ActionType.ERROR:
            self.error_view.update(action)
            self._dirty = True
        elif kind is ActionType.EXIT_ERROR:
            self.error_view.clear()
            self._dirty = True
        elif kind is ActionType.TOGGLE_VIEW:
            if self.current_mode is AppMode.DEFAULT:
                self._toggle_view()
            self._dirty = True
        elif kind in (ActionType.START_INPUT_MODE, ActionType.END_INPUT_MODE):
            logger.debug(f"App mode is now {self.current_mode.name}")
            self._route(action)
            self._dirty = True
        else:
            self._route(action)

    def _toggle_view(self) -> None:
        names = list(self.views)
        self.active_view = names[(names.index(self.active_view) + 1) % len(names)]
        logger.debug(f"Switched to view '{self.active_view}'")

    def _route(self, action: Action) -> None:
        view = self.views.get(action.target or self.active_view)
        if view is None:
            logger.warning(f"No view named {action.target!r} for {action!r}")
            return
        follow_up = view.update(action)
        if follow_up is not None:
            self.bus.send(follow_up)

    # ----- drawing -----

    def _render(self) -> None:
        self._dirty = False
        self.screen.begin_frame()
        if self.screen.too_small():
            self.screen.show_small_window_error()
        else:
            height, width = self.screen.size()
            self._draw_tabs(width)
            body = Rect(1, 0, height - 1, width)
            if self.error_view.active:
                self.error_view.draw(self.screen, body)
            else:
                self.views[self.active_view].draw(self.screen, body)
        self.screen.end_frame()

    def _draw_tabs(self, width: int) -> None:
        x = 1
        for name, view in self.views.items():
            attr = self.screen.color("title") if name == self.active_view else 0
            x += self.screen.addstr(0, x, f" {view.title} ", attr, max(0, width - x))
            x += 1
