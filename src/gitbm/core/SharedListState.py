# gitbm/core/SharedListState.py
"""SharedListState Module
======================
The lock-guarded state behind one list view: the wrapped items, the selected
index and the current :class:`LoadingOperation`.

The UI thread reads it for rendering and mutates the selection and the
``staged_for_deletion`` flags; background operations running on the
:class:`gitbm.core.AsyncEngine.AsyncEngine` loop replace or splice the items
when a repository call completes. Every access is a short critical section
under a ``threading.Lock``; callers never hold it across an ``await``.

Invariant: ``selected_index`` is 0 when there are no items, otherwise it is a
valid index into ``items``.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Generic, Iterator, Optional, Protocol, TypeVar


class LoadingKind(Enum):
    NONE = auto()
    LOADING = auto()
    PROCESSING = auto()
    PROCESSING_WITH_PROGRESS = auto()


@dataclass(frozen=True)
class LoadingOperation:
    """What a list is busy with; only used to decorate the list title."""

    kind: LoadingKind = LoadingKind.NONE
    started_at: float = 0.0
    done: int = 0
    total: int = 0

    @classmethod
    def none(cls) -> "LoadingOperation":
        return cls()

    @classmethod
    def loading(cls, started_at: Optional[float] = None) -> "LoadingOperation":
        return cls(LoadingKind.LOADING, time.monotonic() if started_at is None else started_at)

    @classmethod
    def processing(cls, started_at: Optional[float] = None) -> "LoadingOperation":
        return cls(LoadingKind.PROCESSING, time.monotonic() if started_at is None else started_at)

    @classmethod
    def progress(cls, started_at: float, done: int, total: int) -> "LoadingOperation":
        return cls(LoadingKind.PROCESSING_WITH_PROGRESS, started_at, done, total)

    @property
    def active(self) -> bool:
        return self.kind is not LoadingKind.NONE

    def title(self, default: str, now: Optional[float] = None) -> str:
        """'Loading... (1.2s)', 'Processing 2/5... (0.3s)' or `default` when idle."""
        if not self.active:
            return default
        elapsed = max(0.0, (time.monotonic() if now is None else now) - self.started_at)
        if self.kind is LoadingKind.LOADING:
            return f"Loading... ({elapsed:.1f}s)"
        if self.kind is LoadingKind.PROCESSING:
            return f"Processing... ({elapsed:.1f}s)"
        return f"Processing {self.done}/{self.total}... ({elapsed:.1f}s)"


class Stageable(Protocol):
    staged_for_deletion: bool

    def can_stage(self) -> bool: ...


W = TypeVar("W", bound=Stageable)


@dataclass(frozen=True)
class ListSnapshot(Generic[W]):
    items: tuple[W, ...]
    selected_index: int
    loading: LoadingOperation


# ==================== SharedListState Class ====================
class SharedListState(Generic[W]):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[W] = []
        self._selected_index = 0
        self._loading = LoadingOperation.none()

    # --- reads ---
    def snapshot(self) -> ListSnapshot[W]:
        with self._lock:
            return ListSnapshot(tuple(self._items), self._selected_index, self._loading)

    @property
    def items(self) -> list[W]:
        with self._lock:
            return list(self._items)

    @property
    def selected_index(self) -> int:
        with self._lock:
            return self._selected_index

    @property
    def loading(self) -> LoadingOperation:
        with self._lock:
            return self._loading

    def selected(self) -> Optional[W]:
        with self._lock:
            if not self._items:
                return None
            return self._items[self._selected_index]

    def has_staged(self) -> bool:
        with self._lock:
            return any(w.staged_for_deletion for w in self._items)

    def staged(self) -> list[W]:
        with self._lock:
            return [w for w in self._items if w.staged_for_deletion]

    # --- UI-thread mutations ---
    def select_next(self) -> None:
        with self._lock:
            if self._items:
                self._selected_index = (self._selected_index + 1) % len(self._items)

    def select_previous(self) -> None:
        with self._lock:
            if self._items:
                self._selected_index = (self._selected_index - 1) % len(self._items)

    def select(self, index: int) -> None:
        with self._lock:
            self._selected_index = index
            self._clamp()

    def stage_selected(self, stage: bool) -> bool:
        """Sets the selected wrapper's staged flag; returns False when refused."""
        with self._lock:
            if not self._items:
                return False
            wrapper = self._items[self._selected_index]
            if stage and not wrapper.can_stage():
                return False
            wrapper.staged_for_deletion = stage
            return True

    # --- background mutations ---
    def set_loading(self, loading: LoadingOperation) -> None:
        with self._lock:
            self._loading = loading

    def replace_items(self, items: list[W]) -> None:
        with self._lock:
            self._items = list(items)
            self._clamp()

    def remove_where(self, predicate: Callable[[W], bool]) -> list[int]:
        """Removes matching wrappers; selection moves to the first removed position."""
        with self._lock:
            removed = [i for i, w in enumerate(self._items) if predicate(w)]
            if removed:
                self._items = [w for w in self._items if not predicate(w)]
                self._selected_index = removed[0]
                self._clamp()
            return removed

    @contextmanager
    def mutate(self) -> Iterator[list[W]]:
        """Exposes the item list for an in-place edit under the lock."""
        with self._lock:
            yield self._items
            self._clamp()

    def _clamp(self) -> None:
        if not self._items:
            self._selected_index = 0
        elif self._selected_index >= len(self._items):
            self._selected_index = len(self._items) - 1
        elif self._selected_index < 0:
            self._selected_index = 0
