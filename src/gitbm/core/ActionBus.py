# gitbm/core/ActionBus.py
"""ActionBus Module
================
A single unbounded FIFO carrying :class:`Action` messages from many producers
(the UI thread and the background engine thread) to the one consumer, the
event loop.

- ``send`` never blocks and never drops. Sending after :meth:`ActionBus.close`
  raises :class:`gitbm.errors.ChannelFailure`.
- ``try_receive_all`` drains only what was queued when it was called, so
  actions produced while the batch is being handled wait for the next loop
  iteration and the loop always makes progress.
"""

import logging
import queue

from gitbm.core.Action import Action
from gitbm.errors import ChannelFailure


logger = logging.getLogger("gitbm")


# ==================== ActionBus Class ====================
class ActionBus:
    def __init__(self) -> None:
        self._queue: queue.Queue[Action] = queue.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, action: Action) -> None:
        """Thread-safe; enqueues `action` behind everything already queued."""
        if self._closed:
            raise ChannelFailure(f"Action bus is closed, cannot send {action!r}")
        self._queue.put_nowait(action)

    def try_receive_all(self) -> list[Action]:
        """Returns every action queued at call time, oldest first."""
        pending = self._queue.qsize()
        batch: list[Action] = []
        for _ in range(pending):
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return batch

    def close(self) -> None:
        if not self._closed:
            logger.debug(f"Closing action bus with {self._queue.qsize()} pending actions.")
        self._closed = True

    def __len__(self) -> int:
        return self._queue.qsize()
