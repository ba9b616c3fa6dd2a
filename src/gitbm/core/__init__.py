# src/gitbm/core/__init__.py
"""Public facade for gitbm.core: re-export main classes from CamelCase modules.

Keeps Java-like file names (AsyncEngine.py, ActionBus.py, ...),
but provides flat imports for convenience and stability.
"""

# Re-export classes/symbols from CamelCase modules
from .Action import Action, ActionType  # noqa: F401
from .ActionBus import ActionBus  # noqa: F401
from .App import App, AppMode  # noqa: F401
from .AsyncEngine import AsyncEngine  # noqa: F401
from .SharedListState import LoadingOperation, SharedListState  # noqa: F401


__all__ = [
    "Action",
    "ActionType",
    "ActionBus",
    "App",
    "AppMode",
    "AsyncEngine",
    "LoadingOperation",
    "SharedListState",
]
