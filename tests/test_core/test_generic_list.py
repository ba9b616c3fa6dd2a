# tests/test_core/test_generic_list.py
"""Tests for GenericListComponent driven through the branch list.

The component runs its operations on a real AsyncEngine against the in-memory
MockGitRepo; tests wait for the completion action each operation posts.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from gitbm.core.Action import Action, ActionType
from gitbm.core.ActionBus import ActionBus
from gitbm.core.AsyncEngine import AsyncEngine
from gitbm.core.SharedListState import LoadingKind
from gitbm.integrations.GitRepo import GitBranch
from gitbm.ui.components.GenericList import GenericListComponent, Mode
from gitbm.ui.KeyBinder import KeyBinder, KeyEvent
from gitbm.ui.views.BranchList import create_branch_list
from tests.stubs import MockGitRepo, wait_for_action


def load(view: GenericListComponent, bus: ActionBus) -> list[Action]:
    """Registers `view` and completes its first load."""
    view.register_action_handler(bus)
    refresh = bus.try_receive_all()
    assert refresh == [Action(ActionType.REFRESH)]
    assert refresh[0].target == view.name
    view.update(refresh[0])
    return wait_for_action(bus, ActionType.ITEMS_LOADED)


def names(view: GenericListComponent) -> list[str]:
    return [w.branch.name for w in view.state.items]


def type_text(view: GenericListComponent, text: str) -> None:
    for ch in text:
        assert view.handle_key_event(KeyEvent.from_char(ch)) is None


@pytest.fixture
def branch_list(
    mock_repo: MockGitRepo,
    engine: AsyncEngine,
    keybinder: KeyBinder,
    mock_config: dict[str, Any],
    bus: ActionBus,
) -> GenericListComponent:
    view = create_branch_list(mock_repo, engine, keybinder, mock_config)
    load(view, bus)
    return view


class SlowRepo(MockGitRepo):
    async def list_branches(self) -> list[GitBranch]:
        await asyncio.sleep(0.2)
        return await super().list_branches()


class SlowDeleteRepo(MockGitRepo):
    async def delete_branch(self, branch: GitBranch) -> None:
        await asyncio.sleep(0.1)
        await super().delete_branch(branch)


class TestLoading:
    def test_first_load_fills_items(self, branch_list: GenericListComponent) -> None:
        assert names(branch_list) == ["main", "feature-a", "feature-b"]
        assert branch_list.state.selected_index == 0
        assert not branch_list.state.loading.active

    def test_loading_marker_is_set_while_running_and_cleared_after(
        self, engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
    ) -> None:
        view = create_branch_list(SlowRepo(), engine, keybinder, mock_config)
        view.register_action_handler(bus)
        view.update(bus.try_receive_all()[0])

        wait_for_action(bus, ActionType.RENDER)
        assert view.state.loading.kind is LoadingKind.LOADING
        assert view.update(Action(ActionType.TICK)) == Action(ActionType.RENDER)

        actions = wait_for_action(bus, ActionType.ITEMS_LOADED)
        assert view.state.loading.kind is LoadingKind.NONE
        assert view.update(Action(ActionType.TICK)) is None
        assert all(a.target == view.name for a in actions)

    def test_fetch_failure_reports_error_and_clears_loading(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo, bus: ActionBus
    ) -> None:
        mock_repo.fail_list = True
        branch_list.update(Action(ActionType.REFRESH))

        actions = wait_for_action(bus, ActionType.ITEMS_LOADED)
        errors = [a.payload for a in actions if a.type is ActionType.ERROR]
        assert errors == ["Failed to fetch items: fatal: unable to read refs"]
        assert not branch_list.state.loading.active
        assert names(branch_list) == ["main", "feature-a", "feature-b"]


class TestKeyMapping:
    def test_navigation_and_refresh_bindings(self, branch_list: GenericListComponent) -> None:
        assert branch_list.handle_key_event(KeyEvent.parse("j")) == Action(ActionType.SELECT_NEXT)
        assert branch_list.handle_key_event(KeyEvent.parse("up")) == Action(ActionType.SELECT_PREVIOUS)
        assert branch_list.handle_key_event(KeyEvent.parse("r")) == Action(ActionType.REFRESH)
        assert branch_list.handle_key_event(KeyEvent.parse("C")) == Action(ActionType.INIT_NEW)

    def test_head_ignores_delete_and_checkout(self, branch_list: GenericListComponent) -> None:
        assert branch_list.handle_key_event(KeyEvent.parse("d")) is None
        assert branch_list.handle_key_event(KeyEvent.parse("c")) is None

    def test_delete_key_stages_then_deletes(self, branch_list: GenericListComponent) -> None:
        branch_list.update(Action(ActionType.SELECT_NEXT))
        assert branch_list.handle_key_event(KeyEvent.parse("d")) == Action(ActionType.STAGE_FOR_DELETION)

        branch_list.update(Action(ActionType.STAGE_FOR_DELETION))
        assert branch_list.handle_key_event(KeyEvent.parse("d")) == Action(ActionType.DELETE_SELECTED)
        assert branch_list.handle_key_event(KeyEvent.parse("D")) == Action(ActionType.UNSTAGE_FOR_DELETION)

    def test_stage_on_head_is_refused(self, branch_list: GenericListComponent) -> None:
        assert branch_list.update(Action(ActionType.STAGE_FOR_DELETION)) == Action(ActionType.RENDER)
        assert not branch_list.state.has_staged()


class TestOperations:
    def test_checkout_moves_head_and_keeps_selection(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo, bus: ActionBus
    ) -> None:
        branch_list.update(Action(ActionType.SELECT_NEXT))
        branch_list.update(Action(ActionType.CHECKOUT_SELECTED_BRANCH))

        wait_for_action(bus, ActionType.PRIMARY_ACTION_COMPLETE)
        selected = branch_list.state.selected()
        assert selected.branch.name == "feature-a"
        assert selected.branch.is_head
        assert mock_repo.head == "feature-a"

    def test_delete_selected_splices_item_out(
        self, branch_list: GenericListComponent, bus: ActionBus
    ) -> None:
        branch_list.update(Action(ActionType.SELECT_NEXT))
        branch_list.update(Action(ActionType.STAGE_FOR_DELETION))
        branch_list.update(Action(ActionType.DELETE_SELECTED))

        wait_for_action(bus, ActionType.ITEM_DELETED)
        assert names(branch_list) == ["main", "feature-b"]
        assert branch_list.state.selected_index == 1

    def test_bulk_delete_keeps_failed_items_staged(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo, bus: ActionBus
    ) -> None:
        mock_repo.fail_delete = {"feature-b"}
        for _ in range(2):
            branch_list.update(Action(ActionType.SELECT_NEXT))
            branch_list.update(Action(ActionType.STAGE_FOR_DELETION))

        branch_list.update(Action(ActionType.DELETE_STAGED))
        actions = wait_for_action(bus, ActionType.BULK_DELETE_COMPLETE)

        assert names(branch_list) == ["main", "feature-b"]
        assert [w.branch.name for w in branch_list.state.staged()] == ["feature-b"]
        assert ("delete_branch", "feature-a") in mock_repo.calls
        assert ("delete_branch", "feature-b") in mock_repo.calls
        assert not any(a.type is ActionType.ERROR for a in actions)
        assert not branch_list.state.loading.active

    def test_bulk_delete_without_staged_items_is_a_no_op(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo
    ) -> None:
        assert branch_list.update(Action(ActionType.DELETE_STAGED)) is None
        assert not any(call[0] == "delete_branch" for call in mock_repo.calls)

    def test_failed_delete_reports_and_releases_the_list(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo, bus: ActionBus
    ) -> None:
        mock_repo.fail_delete = {"feature-a"}
        branch_list.update(Action(ActionType.SELECT_NEXT))
        branch_list.update(Action(ActionType.STAGE_FOR_DELETION))
        branch_list.update(Action(ActionType.DELETE_SELECTED))

        actions = wait_for_action(bus, ActionType.ITEM_DELETED)
        errors = [a.payload for a in actions if a.type is ActionType.ERROR]
        assert errors == ["error: cannot delete branch 'feature-a'"]
        assert not branch_list.state.loading.active
        assert names(branch_list) == ["main", "feature-a", "feature-b"]
        assert branch_list.state.selected().staged_for_deletion

        branch_list.update(Action(ActionType.REFRESH))
        wait_for_action(bus, ActionType.ITEMS_LOADED)
        assert not branch_list.state.loading.active

    def test_failed_checkout_reports_and_releases_the_list(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo, bus: ActionBus
    ) -> None:
        mock_repo.branch_names.remove("feature-a")
        branch_list.update(Action(ActionType.SELECT_NEXT))
        branch_list.update(Action(ActionType.CHECKOUT_SELECTED_BRANCH))

        actions = wait_for_action(bus, ActionType.PRIMARY_ACTION_COMPLETE)
        errors = [a.payload for a in actions if a.type is ActionType.ERROR]
        assert errors == ["error: pathspec 'feature-a' did not match any branch"]
        assert not branch_list.state.loading.active
        assert mock_repo.head == "main"

        branch_list.update(Action(ActionType.REFRESH))
        wait_for_action(bus, ActionType.ITEMS_LOADED)
        assert names(branch_list) == ["main", "feature-b"]

    def test_queued_operations_run_one_after_another(
        self, engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
    ) -> None:
        repo = SlowDeleteRepo()
        view = create_branch_list(repo, engine, keybinder, mock_config)
        load(view, bus)

        view.update(Action(ActionType.SELECT_NEXT))
        view.update(Action(ActionType.STAGE_FOR_DELETION))
        view.update(Action(ActionType.DELETE_SELECTED))
        view.update(Action(ActionType.SELECT_NEXT))
        view.update(Action(ActionType.CHECKOUT_SELECTED_BRANCH))
        actions = wait_for_action(bus, ActionType.PRIMARY_ACTION_COMPLETE)

        completions = [
            a.type
            for a in actions
            if a.type in (ActionType.ITEM_DELETED, ActionType.PRIMARY_ACTION_COMPLETE)
        ]
        assert completions == [ActionType.ITEM_DELETED, ActionType.PRIMARY_ACTION_COMPLETE]
        assert [c for c in repo.calls if c[0] != "list_branches"] == [
            ("delete_branch", "feature-a"),
            ("checkout_branch", "feature-b"),
        ]
        assert names(view) == ["main", "feature-b"]
        assert view.state.selected().branch.name == "feature-b"
        assert view.state.selected().branch.is_head

    def test_empty_list_launches_nothing(
        self, engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
    ) -> None:
        repo = MockGitRepo(branches=[])
        view = create_branch_list(repo, engine, keybinder, mock_config)
        load(view, bus)

        assert view.state.selected() is None
        assert view.update(Action(ActionType.CHECKOUT_SELECTED_BRANCH)) is None
        assert view.update(Action(ActionType.DELETE_SELECTED)) is None
        assert view.update(Action(ActionType.DELETE_STAGED)) is None
        assert repo.calls == [("list_branches", None)]

    def test_create_branch_selects_new_head(
        self, branch_list: GenericListComponent, mock_repo: MockGitRepo, bus: ActionBus
    ) -> None:
        follow_up = branch_list.update(Action(ActionType.CREATE_BRANCH, "feature-c"))
        assert follow_up == Action(ActionType.END_INPUT_MODE)

        wait_for_action(bus, ActionType.ITEM_CREATED)
        selected = branch_list.state.selected()
        assert selected.branch.name == "feature-c"
        assert selected.branch.is_head
        assert ("create_branch", "feature-c") in mock_repo.calls

    def test_create_failure_is_reported(
        self, branch_list: GenericListComponent, bus: ActionBus
    ) -> None:
        branch_list.update(Action(ActionType.CREATE_BRANCH, "feature-a"))

        actions = wait_for_action(bus, ActionType.ITEM_CREATED)
        errors = [a.payload for a in actions if a.type is ActionType.ERROR]
        assert errors == ["fatal: a branch named 'feature-a' already exists"]


class TestInputMode:
    def test_branch_name_validation_scenario(
        self, engine: AsyncEngine, keybinder: KeyBinder, mock_config: dict[str, Any], bus: ActionBus
    ) -> None:
        view = create_branch_list(MockGitRepo(["main", "feature-a"]), engine, keybinder, mock_config)
        load(view, bus)

        assert view.update(Action(ActionType.INIT_NEW)) == Action(ActionType.START_INPUT_MODE)
        assert view.mode is Mode.INPUT

        type_text(view, "inv@lid")
        assert view.input.is_valid is False
        assert view.handle_key_event(KeyEvent("enter")) is None

        cancel = view.handle_key_event(KeyEvent("esc"))
        assert cancel == Action(ActionType.END_INPUT_MODE)
        view.update(cancel)
        assert view.mode is Mode.SELECTION

        view.update(Action(ActionType.INIT_NEW))
        type_text(view, "feature-b")
        assert view.input.is_valid is True
        assert view.handle_key_event(KeyEvent("enter")) == Action(ActionType.CREATE_BRANCH, "feature-b")

    def test_existing_branch_name_is_invalid(self, branch_list: GenericListComponent) -> None:
        branch_list.update(Action(ActionType.INIT_NEW))
        type_text(branch_list, "feature-a")
        assert branch_list.input.is_valid is False

    def test_list_keys_go_to_the_input_box(self, branch_list: GenericListComponent) -> None:
        branch_list.update(Action(ActionType.INIT_NEW))
        assert branch_list.handle_key_event(KeyEvent.parse("j")) is None
        assert branch_list.input.buffer == "j"
        assert branch_list.state.selected_index == 0

    def test_validation_fails_closed_without_engine(
        self, mock_repo: MockGitRepo, bus: ActionBus, keybinder: KeyBinder, mock_config: dict[str, Any]
    ) -> None:
        view = create_branch_list(mock_repo, AsyncEngine(bus), keybinder, mock_config)
        view.update(Action(ActionType.INIT_NEW))
        type_text(view, "feature-z")
        assert view.input.is_valid is False


class TestFooter:
    def test_instructions_follow_selection(self, branch_list: GenericListComponent) -> None:
        handler = branch_list.action_handler
        head, feature, _ = branch_list.state.items

        assert handler.instructions(head, False) == [
            "esc: Exit",
            "shift+c: Create New",
            "tab: Switch View",
        ]
        assert handler.instructions(feature, False) == [
            "esc: Exit",
            "shift+c: Create New",
            "c: Checkout",
            "d: Stage for Deletion",
            "tab: Switch View",
        ]
        feature.staged_for_deletion = True
        assert handler.instructions(feature, True) == [
            "esc: Exit",
            "shift+c: Create New",
            "d: Delete",
            "shift+d: Unstage",
            "ctrl+d: Delete All Staged",
            "tab: Switch View",
        ]
