# gitbm/core/AsyncEngine.py
"""AsyncEngine Module
==================
This module provides the `AsyncEngine` class, which runs background repository
operations in a dedicated thread using its own `asyncio` event loop. The curses
UI thread never waits on git: it hands coroutines to the engine and learns
about their outcome through actions posted on the shared
:class:`gitbm.core.ActionBus.ActionBus`.

Key Features:
-------------
- Runs an asyncio event loop in a separate daemon thread.
- Fire-and-forget `spawn()` for operations; each becomes an `asyncio.Task`
  tracked until it finishes.
- `run_sync()` for the few calls the UI thread must wait on briefly (input
  validation), bounded by a timeout.
- An operation that escapes with an exception is logged and reported as an
  ``ERROR`` action, so a bug in one task cannot silently wedge a list.
- Graceful shutdown cancelling outstanding tasks.

The engine itself adds no retry, timeout or cancellation to spawned work.
"""

import asyncio
import concurrent.futures
import logging
import queue
import threading
from typing import Any, Coroutine, Optional, TypeVar

from gitbm.core.Action import Action
from gitbm.core.ActionBus import ActionBus


logger = logging.getLogger("gitbm")

T = TypeVar("T")

# The queue carries coroutines to schedule, or None to stop.
QueueItem = Optional[Coroutine[Any, Any, Any]]


# ==================== AsyncEngine Class ====================
class AsyncEngine:
    """Class AsyncEngine
    ===================
    Owns the background event loop on which every repository operation runs.

    Attributes:
        loop (Optional[asyncio.AbstractEventLoop]): The loop running in the background thread.
        thread (Optional[threading.Thread]): The background thread running the loop.
        from_ui_queue (queue.Queue): Coroutines submitted by the UI thread, None stops the loop.
        bus (ActionBus): Where operation failures are reported.
        _tasks (set): Currently running tasks.
    """

    def __init__(self, bus: ActionBus) -> None:
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.thread: Optional[threading.Thread] = None
        self.from_ui_queue: queue.Queue[QueueItem] = queue.Queue()
        self.bus = bus
        self._tasks: set[asyncio.Task[Any]] = set()
        self._ready = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and self._ready.is_set()

    def _start_loop_in_thread(self) -> None:
        """Internal method to set up and run the event loop."""
        try:
            self.loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self.loop)
            self.loop.run_until_complete(self.main_loop())
        finally:
            if self.loop:
                if self.loop.is_running():
                    self.loop.stop()
                self.loop.close()
            self._ready.clear()
            logger.info("AsyncEngine event loop has shut down.")

    def start(self, timeout: float = 2.0) -> None:
        """Starts the background thread and waits until its loop accepts work."""
        if self.thread is not None:
            logger.warning("AsyncEngine already started.")
            return
        logger.info("Starting AsyncEngine background thread...")
        self.thread = threading.Thread(
            target=self._start_loop_in_thread, daemon=True, name="AsyncEngineThread"
        )
        self.thread.start()
        if not self._ready.wait(timeout):
            logger.error("AsyncEngine loop did not become ready in time.")

    async def main_loop(self) -> None:
        """Waits for submitted coroutines and schedules them until None arrives."""
        if not self.loop:
            logger.error("Event loop not initialized before starting main_loop.")
            return

        self._ready.set()
        logger.info("AsyncEngine main_loop is running and waiting for operations.")

        while True:
            try:
                coro = await self.loop.run_in_executor(None, self.from_ui_queue.get)

                if coro is None:
                    logger.info("AsyncEngine received stop signal. Breaking main_loop.")
                    break

                task = self.loop.create_task(self.dispatch_task(coro))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

            except Exception as e:
                if self.loop and self.loop.is_running():
                    logger.error(f"Critical error in AsyncEngine main_loop: {e}", exc_info=True)
                    await asyncio.sleep(1)
                else:
                    logger.info("Exception in main_loop during shutdown, likely normal")
                    break

        await self._shutdown_tasks()

    async def dispatch_task(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Awaits one operation, reporting anything it failed to handle itself."""
        name = getattr(coro, "__qualname__", repr(coro))
        logger.debug(f"AsyncEngine running operation: {name}")
        try:
            await coro
        except asyncio.CancelledError:
            logger.info(f"Operation cancelled: {name}")
            raise
        except Exception as e:
            logger.error(f"Error executing background operation '{name}': {e}", exc_info=True)
            if not self.bus.closed:
                self.bus.send(Action.error(f"Unexpected error in {name}: {e}"))

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Thread-safe, fire-and-forget submission of an operation."""
        self.from_ui_queue.put(coro)

    def run_sync(self, coro: Coroutine[Any, Any, T], timeout: float) -> T:
        """Runs `coro` on the engine loop and blocks the caller for its result.

        Raises:
            concurrent.futures.TimeoutError: when the result takes longer than `timeout`.
            RuntimeError: when the engine is not running.
        """
        if not self.loop or not self.running:
            coro.close()
            raise RuntimeError("AsyncEngine is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    async def _shutdown_tasks(self) -> None:
        """Internal coroutine to cancel all running async tasks."""
        if not self._tasks:
            return
        logger.info(f"Cancelling {len(self._tasks)} outstanding async tasks...")
        tasks_to_cancel = list(self._tasks)
        for task in tasks_to_cancel:
            task.cancel()

        await asyncio.gather(*tasks_to_cancel, return_exceptions=True)
        logger.info("All async tasks cancelled.")

    def stop(self) -> None:
        """Gracefully and thread-safely stops the asyncio event loop and its tasks."""
        if not self.thread or not self.loop or not self.thread.is_alive():
            logger.debug("AsyncEngine.stop() called, but no active loop or thread to stop.")
            return

        logger.info("Stopping AsyncEngine...")

        try:
            self.from_ui_queue.put(None)
            self.thread.join(timeout=2.0)

            if self.thread.is_alive():
                logger.error("AsyncEngine thread did not stop gracefully within the timeout.")
                self.loop.call_soon_threadsafe(self.loop.stop)
            else:
                logger.info("AsyncEngine thread has been successfully stopped and joined.")

        except Exception as e:
            logger.error(
                f"An exception occurred while stopping AsyncEngine thread: {e}",
                exc_info=True,
            )
