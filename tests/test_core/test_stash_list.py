# tests/test_core/test_stash_list.py
"""Tests for the stash list: apply/pop/drop, reindexing and stash creation."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from gitbm.core.Action import Action, ActionType
from gitbm.core.ActionBus import ActionBus
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.integrations.GitRepo import GitStash
from gitbm.ui.components.GenericList import GenericListComponent
from gitbm.ui.KeyBinder import KeyBinder, KeyEvent
from gitbm.ui.views.StashList import create_stash_list
from tests.stubs import MockGitRepo, wait_for_action


def messages(view: GenericListComponent) -> list[str]:
    return [w.stash.message for w in view.state.items]


def stash_ids(view: GenericListComponent) -> list[str]:
    return [w.stash.stash_id for w in view.state.items]


def errors(actions: list[Action]) -> list[str]:
    return [a.payload for a in actions if a.type is ActionType.ERROR]


@pytest.fixture
def stash_repo() -> MockGitRepo:
    return MockGitRepo(stashes=["first", "second", "third"])


@pytest.fixture
def stash_list(
    stash_repo: MockGitRepo,
    engine: AsyncEngine,
    keybinder: KeyBinder,
    mock_config: dict[str, Any],
    bus: ActionBus,
) -> GenericListComponent:
    view = create_stash_list(stash_repo, engine, keybinder, mock_config)
    view.register_action_handler(bus)
    view.update(bus.try_receive_all()[0])
    wait_for_action(bus, ActionType.ITEMS_LOADED)
    return view


def stage(view: GenericListComponent, *indices: int) -> None:
    for index in indices:
        view.state.select(index)
        view.update(Action(ActionType.STAGE_FOR_DELETION))


class SlowStashRepo(MockGitRepo):
    """Stash writes take long enough for further actions to queue up behind them."""

    async def stash_with_message(self, message: str) -> bool:
        await asyncio.sleep(0.1)
        return await super().stash_with_message(message)

    async def drop_stash(self, stash: GitStash) -> None:
        await asyncio.sleep(0.1)
        await super().drop_stash(stash)


def open_list(
    repo: MockGitRepo,
    engine: AsyncEngine,
    keybinder: KeyBinder,
    config: dict[str, Any],
    bus: ActionBus,
) -> GenericListComponent:
    view = create_stash_list(repo, engine, keybinder, config)
    view.register_action_handler(bus)
    view.update(bus.try_receive_all()[0])
    wait_for_action(bus, ActionType.ITEMS_LOADED)
    return view


def test_keys_map_to_stash_actions(stash_list: GenericListComponent) -> None:
    assert stash_list.handle_key_event(KeyEvent.parse("s")) == Action(ActionType.INIT_NEW)
    assert stash_list.handle_key_event(KeyEvent.parse("a")) == Action(ActionType.APPLY_SELECTED_STASH)
    assert stash_list.handle_key_event(KeyEvent.parse("p")) == Action(ActionType.POP_SELECTED_STASH)
    assert stash_list.handle_key_event(KeyEvent.parse("d")) == Action(ActionType.STAGE_FOR_DELETION)
    assert stash_list.handle_key_event(KeyEvent.parse("ctrl+d")) == Action(ActionType.DELETE_STAGED)


def test_drop_selected_reindexes_remaining(
    stash_list: GenericListComponent, bus: ActionBus
) -> None:
    stage(stash_list, 1)
    stash_list.update(Action(ActionType.DELETE_SELECTED))

    wait_for_action(bus, ActionType.ITEM_DELETED)
    assert messages(stash_list) == ["first", "third"]
    assert stash_ids(stash_list) == ["stash@{0}", "stash@{1}"]


def test_bulk_drop_runs_from_highest_index(
    stash_list: GenericListComponent, stash_repo: MockGitRepo, bus: ActionBus
) -> None:
    stage(stash_list, 0, 2)
    stash_list.update(Action(ActionType.DELETE_STAGED))

    wait_for_action(bus, ActionType.BULK_DELETE_COMPLETE)
    drops = [arg for name, arg in stash_repo.calls if name == "drop_stash"]
    assert drops == ["stash@{2}", "stash@{0}"]
    assert messages(stash_list) == ["second"]
    assert stash_ids(stash_list) == ["stash@{0}"]


def test_bulk_drop_keeps_failures_staged(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = MockGitRepo(stashes=["a", "will fail", "c"])
    view = create_stash_list(repo, engine, keybinder, mock_config)
    view.register_action_handler(bus)
    view.update(bus.try_receive_all()[0])
    wait_for_action(bus, ActionType.ITEMS_LOADED)

    stage(view, 0, 1, 2)
    view.update(Action(ActionType.DELETE_STAGED))
    actions = wait_for_action(bus, ActionType.BULK_DELETE_COMPLETE)

    assert errors(actions) == []
    assert messages(view) == ["will fail"]
    assert stash_ids(view) == ["stash@{0}"]
    assert view.state.items[0].staged_for_deletion
    assert [s.message for s in repo.stashes] == ["will fail"]


def test_pop_reloads_list(
    stash_list: GenericListComponent, stash_repo: MockGitRepo, bus: ActionBus
) -> None:
    stash_list.update(Action(ActionType.POP_SELECTED_STASH))

    wait_for_action(bus, ActionType.PRIMARY_ACTION_COMPLETE)
    assert ("pop_stash", "stash@{0}") in stash_repo.calls
    assert messages(stash_list) == ["second", "third"]


def test_apply_failure_is_reported(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    view = create_stash_list(MockGitRepo(stashes=["will fail"]), engine, keybinder, mock_config)
    view.register_action_handler(bus)
    view.update(bus.try_receive_all()[0])
    wait_for_action(bus, ActionType.ITEMS_LOADED)

    view.update(Action(ActionType.APPLY_SELECTED_STASH))
    actions = wait_for_action(bus, ActionType.PRIMARY_ACTION_COMPLETE)

    assert errors(actions) == ["error: could not apply stash@{0}"]
    assert not view.state.loading.active


def test_drop_failure_leaves_stash_staged_and_list_usable(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = MockGitRepo(stashes=["will fail", "other"])
    view = open_list(repo, engine, keybinder, mock_config, bus)

    stage(view, 0)
    view.update(Action(ActionType.DELETE_SELECTED))
    actions = wait_for_action(bus, ActionType.ITEM_DELETED)

    assert errors(actions) == ["error: could not drop stash@{0}"]
    assert not view.state.loading.active
    assert messages(view) == ["will fail", "other"]
    assert view.state.items[0].staged_for_deletion

    view.update(Action(ActionType.REFRESH))
    wait_for_action(bus, ActionType.ITEMS_LOADED)
    assert not view.state.loading.active


def test_queued_operations_run_in_order_against_renumbered_stashes(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = SlowStashRepo(stashes=["first", "second", "third"])
    view = open_list(repo, engine, keybinder, mock_config, bus)

    stage(view, 0)
    view.update(Action(ActionType.DELETE_SELECTED))
    view.state.select(2)
    view.update(Action(ActionType.POP_SELECTED_STASH))
    actions = wait_for_action(bus, ActionType.PRIMARY_ACTION_COMPLETE)

    completions = [
        a.type
        for a in actions
        if a.type in (ActionType.ITEM_DELETED, ActionType.PRIMARY_ACTION_COMPLETE)
    ]
    assert completions == [ActionType.ITEM_DELETED, ActionType.PRIMARY_ACTION_COMPLETE]
    assert [c for c in repo.calls if c[0] != "list_stashes"] == [
        ("drop_stash", "stash@{0}"),
        ("pop_stash", "stash@{1}"),
    ]
    assert errors(actions) == []
    assert messages(view) == ["second"]
    assert stash_ids(view) == ["stash@{0}"]


def test_drop_queued_behind_new_stash_leaves_it_alone(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = SlowStashRepo(stashes=["first", "second"])
    view = open_list(repo, engine, keybinder, mock_config, bus)

    view.update(Action(ActionType.STAGE_FOR_DELETION))
    view.update(Action(ActionType.CREATE_STASH, "new work"))
    view.update(Action(ActionType.DELETE_SELECTED))
    actions = wait_for_action(bus, ActionType.ITEM_DELETED)

    assert errors(actions) == ["Stash list changed; selection is stale"]
    assert not any(name == "drop_stash" for name, _ in repo.calls)
    assert [s.message for s in repo.stashes] == ["On main: new work", "first", "second"]
    assert messages(view) == ["On main: new work", "first", "second"]
    assert not view.state.loading.active


def test_bulk_drop_skips_stashes_replaced_by_a_reload(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = SlowStashRepo(stashes=["first", "second"])
    view = open_list(repo, engine, keybinder, mock_config, bus)

    stage(view, 0)
    view.update(Action(ActionType.CREATE_STASH, "new work"))
    view.update(Action(ActionType.DELETE_STAGED))
    actions = wait_for_action(bus, ActionType.BULK_DELETE_COMPLETE)

    assert errors(actions) == []
    assert not any(name == "drop_stash" for name, _ in repo.calls)
    assert [s.message for s in repo.stashes] == ["On main: new work", "first", "second"]
    assert stash_ids(view) == ["stash@{0}", "stash@{1}", "stash@{2}"]


def test_bulk_drop_targets_are_fixed_at_launch(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = SlowStashRepo(stashes=["first", "second", "third"])
    view = open_list(repo, engine, keybinder, mock_config, bus)

    stage(view, 0)
    view.update(Action(ActionType.DELETE_STAGED))
    # Staged while the drop is still running.
    stage(view, 1)
    wait_for_action(bus, ActionType.BULK_DELETE_COMPLETE)

    drops = [arg for name, arg in repo.calls if name == "drop_stash"]
    assert drops == ["stash@{0}"]
    assert messages(view) == ["second", "third"]
    assert [w.stash.message for w in view.state.staged()] == ["second"]


def test_empty_list_ignores_stash_operations(
    engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
) -> None:
    repo = MockGitRepo(stashes=[])
    view = open_list(repo, engine, keybinder, mock_config, bus)

    for kind in (
        ActionType.APPLY_SELECTED_STASH,
        ActionType.POP_SELECTED_STASH,
        ActionType.DELETE_SELECTED,
        ActionType.DELETE_STAGED,
    ):
        assert view.update(Action(kind)) is None
    assert repo.calls == [("list_stashes", None)]


def test_create_stash_selects_newest(
    stash_list: GenericListComponent, bus: ActionBus
) -> None:
    stash_list.update(Action(ActionType.SELECT_NEXT))
    stash_list.update(Action(ActionType.CREATE_STASH, "wip"))

    wait_for_action(bus, ActionType.ITEM_CREATED)
    assert stash_list.state.selected_index == 0
    assert messages(stash_list)[0] == "On main: wip"
    assert len(stash_list.state.items) == 4


def test_create_stash_without_changes_reports_error(
    stash_list: GenericListComponent, stash_repo: MockGitRepo, bus: ActionBus
) -> None:
    stash_repo.dirty = False
    stash_list.update(Action(ActionType.CREATE_STASH, "wip"))

    actions = wait_for_action(bus, ActionType.ITEM_CREATED)
    assert errors(actions) == ["No local changes to stash"]
    assert len(stash_list.state.items) == 3


def test_empty_message_is_invalid_and_enter_is_inert(stash_list: GenericListComponent) -> None:
    stash_list.update(Action(ActionType.INIT_NEW))
    assert stash_list.handle_key_event(KeyEvent.parse("space")) is None
    assert stash_list.input.is_valid is False
    assert stash_list.handle_key_event(KeyEvent("enter")) is None

    for ch in "tmp":
        stash_list.handle_key_event(KeyEvent.from_char(ch))
    assert stash_list.handle_key_event(KeyEvent("enter")) == Action(ActionType.CREATE_STASH, "tmp")


def test_footer_lists_stash_actions(stash_list: GenericListComponent) -> None:
    handler = stash_list.action_handler
    first = stash_list.state.items[0]
    assert handler.instructions(first, False) == [
        "esc: Exit",
        "s: New Stash",
        "a: Apply",
        "p: Pop",
        "d: Stage for Deletion",
        "tab: Switch View",
    ]
    first.staged_for_deletion = True
    assert handler.instructions(first, True) == [
        "esc: Exit",
        "s: New Stash",
        "a: Apply",
        "p: Pop",
        "d: Drop",
        "shift+d: Unstage",
        "ctrl+d: Drop All Staged",
        "tab: Switch View",
    ]
