# tests/conftest.py
"""Pytest configuration with shared fixtures for the gitbm tests."""

from __future__ import annotations

import copy
from typing import Any, Generator
from unittest.mock import MagicMock

import pytest

from gitbm.core.ActionBus import ActionBus
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.ui.KeyBinder import KeyBinder
from gitbm.utils.utils import DEFAULT_CONFIG
from tests.stubs import MockGitRepo


# --- Base fixtures for curses and configuration ---
@pytest.fixture
def mock_stdscr() -> MagicMock:
    """Create a mock of the `curses` stdscr with a (24, 80) terminal."""
    stdscr = MagicMock()
    stdscr.getmaxyx.return_value = (24, 80)
    return stdscr


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """The built-in configuration, with fast validation for tests."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["settings"]["validation_timeout"] = 1.0
    return config


@pytest.fixture
def keybinder(mock_config: dict[str, Any]) -> KeyBinder:
    return KeyBinder(mock_config)


# --- Engine fixtures ---
@pytest.fixture
def bus() -> ActionBus:
    return ActionBus()


@pytest.fixture
def engine(bus: ActionBus) -> Generator[AsyncEngine, None, None]:
    """A running AsyncEngine reporting to `bus`; stopped after the test."""
    engine = AsyncEngine(bus)
    engine.start()
    yield engine
    engine.stop()


# --- Repository fixtures ---
@pytest.fixture
def mock_repo() -> MockGitRepo:
    """Branches main (HEAD), feature-a, feature-b and two stashes."""
    return MockGitRepo(stashes=["On main: first", "On main: second"])
