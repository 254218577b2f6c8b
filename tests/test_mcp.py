"""Tests for the MCP server: tool registry, dispatch, validation and error mapping."""

import json
from unittest.mock import patch

import pytest
from mcp.types import TextContent

from llm_memory.errors import StorageFailure
from llm_memory.mcp.handlers import HANDLERS, VALIDATORS
from llm_memory.mcp.server import (
    call_tool,
    configure,
    get_memory,
    handle_tool_error,
    list_tools,
    main,
    validate_tool_input,
)


@pytest.fixture
def server(settings, project_dirs):
    """Point the server at a temp database, working from project directory a."""
    configure(settings, project_dirs[0])
    yield
    configure(None, None)


async def call(name, /, **arguments):
    result = await call_tool(name, arguments)
    assert len(result) == 1
    assert isinstance(result[0], TextContent)
    return result[0].text


class TestRegistry:
    @pytest.mark.asyncio
    async def test_every_tool_has_handler_and_validator(self):
        names = {tool.name for tool in await list_tools()}
        assert names == set(HANDLERS) == set(VALIDATORS)

    def test_get_memory_is_cached(self, server):
        assert get_memory() is get_memory()

    def test_configure_clears_cached_instance(self, server, settings, project_dirs):
        first = get_memory()
        configure(settings, project_dirs[1])
        second = get_memory()
        assert first is not second
        assert second.working_directory == project_dirs[1]


class TestValidateToolInput:
    def test_unknown_tool(self):
        with pytest.raises(ValueError, match="Unknown tool: nope"):
            validate_tool_input("nope", {})

    def test_none_arguments(self):
        assert validate_tool_input("scope_show", None) == {}

    def test_non_object_arguments(self):
        with pytest.raises(ValueError, match="arguments must be an object"):
            validate_tool_input("memory_list", ["x"])

    def test_key_digits_become_ids(self):
        assert validate_tool_input("memory_get", {"key": "42"})["key"] == 42
        assert validate_tool_input("memory_get", {"key": "deploy"})["key"] == "deploy"

    def test_update_needs_a_field(self):
        with pytest.raises(ValueError, match="no fields to update"):
            validate_tool_input("todo_update", {"key": 1})

    def test_update_keeps_only_present_fields(self):
        args = validate_tool_input("todo_update", {"key": 1, "due_date": None})
        assert args["changes"] == {"due_date": None}

    def test_set_status_requires_status(self):
        with pytest.raises(ValueError, match="status is required"):
            validate_tool_input("plan_set_status", {"key": 1})

    def test_batch_keys_validated(self):
        with pytest.raises(ValueError, match=r"items\[1\]"):
            validate_tool_input("todo_batch", {"action": "delete", "items": [1, ""]})

    def test_invalid_scope(self):
        with pytest.raises(ValueError, match="scope must be one of"):
            validate_tool_input("memory_list", {"scope": "team"})


class TestHandleToolError:
    def test_storage_failure(self):
        result = handle_tool_error(StorageFailure("locked"), "memory_list", {})
        assert result[0].text == "Service temporarily unavailable"

    def test_permission_error(self):
        result = handle_tool_error(PermissionError("no"), "memory_list", {})
        assert result[0].text == "Access denied"

    def test_unexpected_error_is_generic(self):
        result = handle_tool_error(RuntimeError("secret detail"), "memory_list", {"a": 1})
        assert result[0].text == "Internal server error"


class TestMemoryTools:
    @pytest.mark.asyncio
    async def test_create_and_list(self, server):
        text = await call("memory_create", title="Deploy", content="blue pipeline", code="deploy")
        assert text.startswith("Memory saved: [")

        records = json.loads(await call("memory_list"))
        assert [r["code"] for r in records] == ["deploy"]
        assert records[0]["scope"] == "personal"

        record = json.loads(await call("memory_get", key="deploy"))
        assert record["content"] == "blue pipeline"

    @pytest.mark.asyncio
    async def test_search_and_archive(self, server):
        await call("memory_create", title="Style", content="black and isort", code="style")
        assert "Style" in await call("memory_search", keyword="isort")
        assert "archived" in await call("memory_archive", key="style")
        assert await call("memory_search", keyword="isort") == "No memories match 'isort'."

    @pytest.mark.asyncio
    async def test_missing_record(self, server):
        assert await call("memory_get", key=999) == "Not found: memory not found: 999"

    @pytest.mark.asyncio
    async def test_out_of_range_key(self, server):
        text = await call("todo_get", key="99999999999999999999999")
        assert text == "Invalid input: key out of range"

    @pytest.mark.asyncio
    async def test_missing_required_field(self, server):
        text = await call("memory_create", title="No body")
        assert text.startswith("Invalid input: content")

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        assert await call("memory_teleport") == "Invalid input: Unknown tool: memory_teleport"


class TestGroupTools:
    @pytest.mark.asyncio
    async def test_group_sharing(self, server, settings, project_dirs):
        assert "Group created: team" in await call("group_create", name="team")
        await call("group_add_path", group="team")
        await call("group_add_path", group="team", path=project_dirs[1])
        await call("memory_create", title="Shared", content="x")

        configure(settings, project_dirs[1])
        records = json.loads(await call("memory_list", scope="group"))
        assert [(r["title"], r["scope"]) for r in records] == [("Shared", "group")]
        assert await call("memory_list", scope="personal") == "No memories in scope."

        scope = json.loads(await call("scope_show"))
        assert scope["group_name"] == "team"
        assert len(scope["group_path_ids"]) == 2

    @pytest.mark.asyncio
    async def test_conflicts(self, server, project_dirs):
        await call("group_create", name="one")
        await call("group_create", name="two")
        assert (await call("group_create", name="one")).startswith("Conflict:")

        await call("group_add_path", group="one")
        text = await call("group_add_path", group="two")
        assert text.startswith("Conflict:")
        assert "'one'" in text

    @pytest.mark.asyncio
    async def test_current_and_delete(self, server):
        assert await call("group_current") == "Current directory is not in a group."
        await call("group_create", name="team")
        await call("group_add_path", group="team")
        assert json.loads(await call("group_current"))["name"] == "team"
        assert "records kept" in await call("group_delete", group="team")
        assert await call("group_list") == "No groups."


class TestPlanTools:
    @pytest.mark.asyncio
    async def test_progress_and_status(self, server):
        await call("plan_create", title="Migrate", code="migrate")
        assert "(in_progress, 30%)" in await call("plan_update", key="migrate", progress=30)
        text = await call("plan_set_status", key="migrate", status="cancelled")
        assert text.startswith("Plan cancelled: [")
        text = await call("plan_update", key="migrate", progress=60)
        assert text.startswith("Invalid input: progress")


class TestTodoTools:
    @pytest.mark.asyncio
    async def test_final_requires_confirm(self, server):
        await call("todo_create", title="local")
        assert (await call("todo_final")).startswith("Invalid input:")
        assert (await call("todo_final", confirm="yes")).startswith("Invalid input:")
        assert "local" in await call("todo_list")

    @pytest.mark.asyncio
    async def test_final_keeps_global(self, server):
        await call("todo_create", title="local")
        await call("todo_create", title="shared", is_global=True)
        assert json.loads(await call("todo_final", confirm=True)) == {"deleted": 1}
        todos = json.loads(await call("todo_list"))
        assert [t["title"] for t in todos] == ["shared"]

    @pytest.mark.asyncio
    async def test_set_status(self, server):
        await call("todo_create", title="Ship", code="ship")
        assert (await call("todo_set_status", key="ship", status="completed")).startswith(
            "Todo completed"
        )
        todo = json.loads(await call("todo_get", key="ship"))
        assert todo["completed_at"] is not None


class TestBatchTools:
    @pytest.mark.asyncio
    async def test_batch_create_reports_counts(self, server):
        items = [
            {"title": "one"},
            {"title": "two", "priority": 9},
            {"title": "three", "due_date": "2026-03-01"},
        ]
        result = json.loads(await call("todo_batch", action="create", items=items))
        assert result["total"] == 3
        assert result["succeeded"] == 2
        assert result["failed"] == 1
        assert result["errors"] == ["item 2: priority must be between 1 and 4"]
        assert len(result["ids"]) == 2

    @pytest.mark.asyncio
    async def test_batch_set_status_and_delete(self, server):
        await call("plan_create", title="a", code="plan-a")
        await call("plan_create", title="b", code="plan-b")
        result = json.loads(
            await call(
                "plan_batch", action="set_status", status="completed", items=["plan-a", "plan-b"]
            )
        )
        assert result["succeeded"] == 2

        result = json.loads(
            await call("plan_batch", action="delete", items=["plan-a", "plan-missing"])
        )
        assert result["succeeded"] == 1
        assert result["errors"] == ["item 2: plan not found: plan-missing"]

    @pytest.mark.asyncio
    async def test_batch_too_large(self, server):
        items = [{"title": f"m{i}", "content": "x"} for i in range(101)]
        text = await call("memory_batch", action="create", items=items)
        assert text.startswith("Invalid input:")
        assert await call("memory_list") == "No memories in scope."

    @pytest.mark.asyncio
    async def test_batch_empty(self, server):
        text = await call("memory_batch", action="delete", items=[])
        assert text.startswith("Invalid input:")


class TestMain:
    def test_main_configures_and_runs(self, settings, tmp_path):
        with patch("llm_memory.mcp.server.asyncio.run", side_effect=lambda coro: coro.close()):
            with patch("llm_memory.mcp.server.configure") as mock_configure:
                main(settings=settings, working_directory=tmp_path)
        mock_configure.assert_called_once_with(settings, tmp_path)
