"""Tests for workspace editing rules."""

import pytest

from snippetbench.core.workspace import DEFAULT_SETUP_CODE, Workspace
from snippetbench.schemas import BenchmarkResult


@pytest.fixture()
def workspace() -> Workspace:
    ws = Workspace()
    ws.set_results([BenchmarkResult.failure("x", "e")])
    return ws


def test_defaults():
    ws = Workspace()
    assert [tc.name for tc in ws.test_cases] == ["For Loop", "sum()"]
    assert ws.setup_code == DEFAULT_SETUP_CODE
    assert ws.selected_id == "1"
    assert ws.dependencies == []
    assert not ws.async_mode


class TestTestCases:
    def test_add_selects_new_case_and_keeps_results(self, workspace):
        added = workspace.add_test_case()
        assert added.name == "Test Case 3"
        assert workspace.selected_id == added.id
        assert workspace.results

    def test_remove_clears_results_and_moves_selection(self, workspace):
        assert workspace.remove_test_case("1")
        assert [tc.id for tc in workspace.test_cases] == ["2"]
        assert workspace.selected_id == "2"
        assert workspace.results == []

    def test_last_case_cannot_be_removed(self, workspace):
        workspace.remove_test_case("1")
        assert not workspace.remove_test_case("2")
        assert len(workspace.test_cases) == 1

    def test_unknown_id_is_not_removed(self, workspace):
        assert not workspace.remove_test_case("missing")
        assert workspace.results

    def test_update_keeps_results(self, workspace):
        updated = workspace.update_test_case("2", code="do_not_optimize(max(GLOBAL))")
        assert updated.code == "do_not_optimize(max(GLOBAL))"
        assert workspace.results

    def test_empty_list_is_refused(self, workspace):
        with pytest.raises(ValueError):
            workspace.set_test_cases([])


class TestInvalidation:
    def test_setup_edit_clears_results(self, workspace):
        workspace.update_setup_code("return 1")
        assert workspace.results == []

    def test_programmatic_setup_keeps_results(self, workspace):
        workspace.set_setup_code("return 1")
        assert workspace.results

    def test_async_toggle_clears_results(self, workspace):
        workspace.set_async_mode(True)
        assert workspace.async_mode
        assert workspace.results == []

    @pytest.mark.parametrize("action", ["add", "update", "toggle", "remove"])
    def test_dependency_edits_clear_results(self, action):
        ws = Workspace()
        dep = ws.add_dependency()
        ws.set_results([BenchmarkResult.failure("x", "e")])

        if action == "add":
            ws.add_dependency()
        elif action == "update":
            ws.update_dependency(dep.id, url="https://example.com/lib.py", globalName="lib")
            assert ws.dependencies[0].global_name == "lib"
        elif action == "toggle":
            ws.toggle_dependency(dep.id)
            assert ws.dependencies[0].enabled
        else:
            ws.remove_dependency(dep.id)
            assert ws.dependencies == []

        assert ws.results == []


def test_from_suite_assigns_ids_and_enables_dependencies():
    ws = Workspace.from_suite({
        "setup_code": "return [1, 2]",
        "async_mode": True,
        "dependencies": [{"name": "lib", "url": "file:///tmp/lib.py"}],
        "test_cases": [{"name": "a", "code": "pass"}, {"name": "b", "code": "pass"}],
    })

    assert [tc.id for tc in ws.test_cases] == ["1", "2"]
    assert ws.setup_code == "return [1, 2]"
    assert ws.async_mode
    assert ws.dependencies[0].enabled


def test_snapshot_round_trip(workspace):
    snapshot = workspace.to_snapshot(title="demo")
    restored = Workspace()
    restored.load_snapshot(snapshot)

    assert snapshot.title == "demo"
    assert restored.test_cases == workspace.test_cases
    assert restored.results == workspace.results
    assert workspace.to_snapshot(include_results=False).results == []


def test_request_reflects_state(workspace):
    workspace.set_async_mode(True)
    request = workspace.to_request()
    assert request.async_mode
    assert len(request.test_cases) == 2
