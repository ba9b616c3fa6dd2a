# tests/test_core/test_async_engine.py
"""`tests/test_core/test_async_engine.py`
=========================================

Unit tests for the AsyncEngine class.

1. **Thread and event loop management**
   - Starting the engine launches a background thread with an active loop.
   - Stopping the engine shuts down the thread cleanly.

2. **Operation execution**
   - `spawn` runs coroutines on the background loop.
   - An operation escaping with an exception is reported as an ERROR action.
   - `run_sync` returns results, times out, and refuses to run when stopped.
"""

import asyncio
import concurrent.futures
import threading

import pytest

from gitbm.core.Action import ActionType
from gitbm.core.ActionBus import ActionBus
from gitbm.core.AsyncEngine import AsyncEngine
from tests.stubs import wait_for_action


class TestAsyncEngine:
    """Group of tests for the AsyncEngine class."""

    def test_start_and_stop(self, bus: ActionBus) -> None:
        """Test: the background thread runs between start() and stop()."""
        engine = AsyncEngine(bus)
        assert not engine.running

        engine.start()
        assert engine.running
        assert engine.thread is not None
        assert engine.thread.name == "AsyncEngineThread"

        engine.stop()
        assert not engine.thread.is_alive()
        assert not engine.running

    def test_spawn_runs_on_background_thread(self, engine: AsyncEngine) -> None:
        done = threading.Event()
        thread_names: list[str] = []

        async def operation() -> None:
            thread_names.append(threading.current_thread().name)
            done.set()

        engine.spawn(operation())

        assert done.wait(2.0)
        assert thread_names == ["AsyncEngineThread"]

    def test_unhandled_exception_becomes_error_action(
        self, engine: AsyncEngine, bus: ActionBus
    ) -> None:
        async def broken() -> None:
            raise ValueError("boom")

        engine.spawn(broken())

        actions = wait_for_action(bus, ActionType.ERROR)
        error = next(a for a in actions if a.type is ActionType.ERROR)
        assert "boom" in error.payload

    def test_run_sync_returns_result(self, engine: AsyncEngine) -> None:
        async def answer() -> int:
            await asyncio.sleep(0)
            return 42

        assert engine.run_sync(answer(), timeout=1.0) == 42

    def test_run_sync_times_out(self, engine: AsyncEngine) -> None:
        async def slow() -> None:
            await asyncio.sleep(5)

        with pytest.raises(concurrent.futures.TimeoutError):
            engine.run_sync(slow(), timeout=0.05)

    def test_run_sync_requires_running_engine(self, bus: ActionBus) -> None:
        engine = AsyncEngine(bus)

        async def never() -> None:
            return None

        with pytest.raises(RuntimeError):
            engine.run_sync(never(), timeout=0.1)

    def test_stop_cancels_outstanding_operations(self, bus: ActionBus) -> None:
        engine = AsyncEngine(bus)
        engine.start()
        started = threading.Event()
        cancelled = threading.Event()

        async def long_running() -> None:
            started.set()
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        engine.spawn(long_running())
        assert started.wait(2.0)

        engine.stop()
        assert cancelled.is_set()
