"""Tests for the llm-memory CLI (argument parsing, dispatch and output)."""

import argparse
import io
import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from llm_memory.cli.__main__ import build_parser, main
from llm_memory.cli.commands import cmd_memory, cmd_todo
from llm_memory.cli.commands.helpers import parse_key, parse_tags, read_json_array
from llm_memory.types import BatchResult


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep Settings.from_env away from the real home directory."""
    monkeypatch.setenv("LLM_MEMORY_HOME", str(tmp_path / "home"))
    for name in ("LLM_MEMORY_DB", "LLM_MEMORY_NODE_ID", "LLM_MEMORY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def run(tmp_path, project_dirs, capsys):
    """Run the CLI against a temp database from project directory a (or another)."""
    db = str(tmp_path / "cli.db")

    def _run(*argv, cwd=None):
        main(["--db", db, "--cwd", cwd or project_dirs[0], *argv])
        return capsys.readouterr().out

    return _run


class TestParser:
    def test_no_command_exits_2(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_invalid_scope_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["memory", "list", "--scope", "team"])

    def test_update_global_flag_defaults_to_unset(self):
        args = build_parser().parse_args(["memory", "update", "notes"])
        assert args.is_global is None
        args = build_parser().parse_args(["memory", "update", "notes", "--local"])
        assert args.is_global is False

    def test_create_global_flag_defaults_to_local(self):
        args = build_parser().parse_args(["todo", "create", "x"])
        assert args.is_global is False
        args = build_parser().parse_args(["todo", "create", "x", "-g"])
        assert args.is_global is True


class TestHelpers:
    def test_parse_key(self):
        assert parse_key("42") == 42
        assert parse_key(" deploy-notes ") == "deploy-notes"

    def test_parse_tags(self):
        assert parse_tags(None) is None
        assert parse_tags(["a,b", " c "]) == ["a", "b", "c"]

    def test_read_json_array_rejects_objects(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text('{"title": "x"}')
        with pytest.raises(ValueError, match="JSON array"):
            read_json_array(str(path))

    def test_read_json_array_from_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("[1, 2]"))
        assert read_json_array("-") == [1, 2]


class TestScopeCommand:
    def test_scope_json(self, run, project_dirs):
        data = json.loads(run("scope", "--json"))
        assert data["current_path"] == project_dirs[0]
        assert data["path_id"] > 0
        assert data["degraded"] is False

    def test_scope_text_shows_group(self, run, project_dirs):
        run("group", "create", "team")
        run("group", "add", "team", project_dirs[0])
        out = run("scope")
        assert "Group:   team (1 paths)" in out


class TestGroupCommands:
    def test_group_lifecycle(self, run, project_dirs):
        assert "Group created: team" in run("group", "create", "team", "-d", "shared")
        assert "added to team" in run("group", "add", "team")
        run("group", "add", "team", project_dirs[1])

        listed = json.loads(run("group", "list", "--json"))
        assert listed[0]["name"] == "team"
        assert sorted(listed[0]["paths"]) == sorted(project_dirs[:2])

        assert "team" in run("group", "current")
        assert "Path removed" in run("group", "remove", "team")
        assert "not in a group" in run("group", "current")
        assert "Nothing to remove" in run("group", "remove", "team")

        assert "Group deleted" in run("group", "delete", "team")
        assert "No groups." in run("group", "list")

    def test_second_group_conflict_exits_1(self, run, caplog):
        run("group", "create", "one")
        run("group", "create", "two")
        run("group", "add", "one")
        with caplog.at_level(logging.ERROR):
            with pytest.raises(SystemExit) as exc_info:
                run("group", "add", "two")
        assert exc_info.value.code == 1
        assert "one" in caplog.text

    def test_duplicate_group_exits_1(self, run):
        run("group", "create", "team")
        with pytest.raises(SystemExit) as exc_info:
            run("group", "create", "team")
        assert exc_info.value.code == 1


class TestMemoryCommands:
    def test_create_list_get(self, run):
        assert "Memory saved" in run(
            "memory", "create", "Deploy", "use the blue pipeline", "-c", "deploy-notes", "-t", "ops"
        )
        out = run("memory", "list")
        assert "deploy-notes Deploy (personal, medium, active)" in out

        data = json.loads(run("memory", "get", "deploy-notes", "--json"))
        assert data["content"] == "use the blue pipeline"
        assert data["tags"] == ["ops"]
        assert data["scope"] == "personal"

    def test_group_sharing_across_directories(self, run, project_dirs):
        """A private memory of one directory shows in the group view of another."""
        run("group", "create", "team")
        run("group", "add", "team", project_dirs[0])
        run("group", "add", "team", project_dirs[1])
        run("memory", "create", "Shared", "hello")

        out = run("memory", "list", "--scope", "group", cwd=project_dirs[1])
        assert "Shared (group" in out
        out = run("memory", "list", "--scope", "personal", cwd=project_dirs[1])
        assert "No memories in scope." in out
        out = run("memory", "list", cwd=project_dirs[2])
        assert "No memories in scope." in out

    def test_search_and_archive(self, run):
        run("memory", "create", "Release", "tag then push", "-c", "release")
        assert "Release" in run("memory", "search", "push")
        run("memory", "archive", "release")
        assert "No memories match 'push'." in run("memory", "search", "push")
        assert "Release" in run("memory", "search", "push", "--archived")
        assert "Restored" in run("memory", "unarchive", "release")

    def test_update_and_delete(self, run):
        run("memory", "create", "Old", "body", "-c", "note")
        assert "Memory updated: " in run("memory", "update", "note", "--title", "New")
        assert json.loads(run("memory", "get", "note", "-j"))["title"] == "New"
        assert "Nothing to update." in run("memory", "update", "note")
        assert "Memory deleted" in run("memory", "delete", "note")

    def test_missing_record_exits_1(self, run, caplog):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(SystemExit) as exc_info:
                run("memory", "get", "no-such-note")
        assert exc_info.value.code == 1
        assert "memory not found: no-such-note" in caplog.text

    def test_blank_search_exits_1(self, run):
        with pytest.raises(SystemExit) as exc_info:
            run("memory", "search", "   ")
        assert exc_info.value.code == 1


class TestPlanCommands:
    def test_progress_and_complete(self, run):
        run("plan", "create", "Migrate", "-c", "migrate")
        out = run("plan", "progress", "migrate", "50")
        assert "50% (in_progress)" in out
        assert "Plan completed" in run("plan", "complete", "migrate")
        assert "100%" in run("plan", "get", "migrate")

    def test_progress_out_of_range_exits_1(self, run):
        run("plan", "create", "Migrate", "-c", "migrate")
        with pytest.raises(SystemExit) as exc_info:
            run("plan", "progress", "migrate", "150")
        assert exc_info.value.code == 1


class TestTodoCommands:
    def test_create_and_list(self, run):
        run("todo", "create", "Write tests", "-p", "3", "--due", "2020-05-01")
        out = run("todo", "list")
        assert "Write tests (personal, high, pending, overdue)" in out

    def test_completed_todo_is_not_overdue(self, run):
        run("todo", "create", "Old chore", "-c", "old-chore", "--due", "2020-01-01")
        run("todo", "complete", "old-chore")
        out = run("todo", "list")
        assert "Old chore (personal, medium, completed)" in out

    def test_final_requires_yes(self, run):
        run("todo", "create", "one")
        out = run("todo", "final")
        assert "--yes" in out
        assert "one" in run("todo", "list")

    def test_final_keeps_global(self, run):
        run("todo", "create", "local")
        run("todo", "create", "shared", "--global")
        data = json.loads(run("todo", "final", "--yes", "--json"))
        assert data == {"deleted": 1}
        out = run("todo", "list")
        assert "shared (global" in out
        assert "local" not in out


class TestBatchCommands:
    def test_batch_create_reports_per_item_errors(self, run, tmp_path):
        items = tmp_path / "todos.json"
        items.write_text(json.dumps([{"title": "one"}, {"title": ""}, {"title": "three"}]))
        out = run("todo", "batch", "create", "--file", str(items))
        assert "Total: 3  Succeeded: 2  Failed: 1" in out
        assert "✗ item 2: title required" in out

    def test_batch_status_json(self, run, tmp_path):
        run("todo", "create", "one", "-c", "todo-one")
        keys = tmp_path / "keys.json"
        keys.write_text(json.dumps(["todo-one", "todo-missing"]))
        data = json.loads(
            run("todo", "batch", "status", "--status", "completed", "-f", str(keys), "--json")
        )
        assert data["total"] == 2
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["errors"][0].startswith("item 2:")

    def test_batch_status_needs_status(self, run, tmp_path):
        keys = tmp_path / "keys.json"
        keys.write_text("[]")
        with pytest.raises(SystemExit) as exc_info:
            run("plan", "batch", "status", "-f", str(keys))
        assert exc_info.value.code == 1

    def test_batch_too_large_exits_1(self, run, tmp_path):
        items = tmp_path / "memories.json"
        items.write_text(json.dumps([{"title": f"m{i}", "content": "x"} for i in range(101)]))
        with pytest.raises(SystemExit) as exc_info:
            run("memory", "batch", "create", "-f", str(items))
        assert exc_info.value.code == 1
        assert "No memories in scope." in run("memory", "list")

    def test_invalid_json_exits_1(self, run, tmp_path):
        items = tmp_path / "bad.json"
        items.write_text("[{")
        with pytest.raises(SystemExit) as exc_info:
            run("memory", "batch", "create", "-f", str(items))
        assert exc_info.value.code == 1


class TestCommandHandlers:
    """Handlers called directly with a Namespace and a mocked facade."""

    def test_todo_final_without_yes_does_not_delete(self, capsys):
        m = MagicMock()
        args = argparse.Namespace(todo_action="final", yes=False, scope=None, json=False)
        cmd_todo(args, m)
        m.todo_final.assert_not_called()
        assert "--yes" in capsys.readouterr().out

    def test_memory_update_passes_only_given_fields(self):
        m = MagicMock()
        args = argparse.Namespace(
            memory_action="update",
            key="7",
            scope="personal",
            title=None,
            content="new body",
            code=None,
            category=None,
            priority=None,
            tag=None,
            is_global=None,
        )
        cmd_memory(args, m)
        m.memory_update.assert_called_once_with(7, scope="personal", content="new body")

    def test_todo_batch_dispatch(self, tmp_path, capsys):
        items = tmp_path / "items.json"
        items.write_text('[{"title": "a"}]')
        m = MagicMock()
        m.todo_batch_create.return_value = BatchResult(total=1, succeeded=1)
        args = argparse.Namespace(
            todo_action="batch",
            batch_action="create",
            file=str(items),
            status=None,
            scope=None,
            timeout=2.5,
            json=False,
        )
        cmd_todo(args, m)
        m.todo_batch_create.assert_called_once_with([{"title": "a"}], deadline=2.5)
        assert "Succeeded: 1" in capsys.readouterr().out


class TestMainDispatch:
    def test_invalid_environment_exits_1(self, monkeypatch):
        monkeypatch.setenv("LLM_MEMORY_NODE_ID", "9999")
        with pytest.raises(SystemExit) as exc_info:
            main(["scope"])
        assert exc_info.value.code == 1

    def test_unexpected_error_exits_1(self, tmp_path, caplog):
        with patch("llm_memory.cli.__main__.cmd_scope", side_effect=RuntimeError("oops")):
            with caplog.at_level(logging.ERROR):
                with pytest.raises(SystemExit) as exc_info:
                    main(["--db", str(tmp_path / "x.db"), "scope"])
        assert exc_info.value.code == 1
        assert "Command failed: oops" in caplog.text

    def test_mcp_command_starts_server(self, tmp_path):
        with patch("llm_memory.mcp.server.main") as mcp_main:
            main(["--db", str(tmp_path / "x.db"), "--cwd", str(tmp_path), "mcp"])
        mcp_main.assert_called_once()
        assert mcp_main.call_args.kwargs["working_directory"] == str(tmp_path)
