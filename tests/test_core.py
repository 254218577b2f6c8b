"""Tests for the LLMMemory facade: scoped records end to end."""

from datetime import datetime, timedelta

import pytest

from llm_memory import LLMMemory
from llm_memory.errors import (
    PathAlreadyInGroupError,
    RecordNotFoundError,
    ValidationFailed,
)


class TestScenarios:
    def test_group_member_sees_sibling_record(self, mem_a, mem_b, grouped):
        """A private record of /a is visible from /b through the group, not personally."""
        memory = mem_a.memory_create("deploy notes", "use the blue pipeline")

        assert [m.id for m in mem_b.memory_list(scope="group")] == [memory.id]
        assert mem_b.memory_list(scope="personal") == []
        assert [m.id for m in mem_b.memory_list()] == [memory.id]

    def test_path_cannot_join_second_group(self, mem_a, tmp_path):
        mem_a.group_create("proj")
        mem_a.group_create("other")
        mem_a.group_add_path("proj", str(tmp_path / "x"))
        with pytest.raises(PathAlreadyInGroupError) as exc_info:
            mem_a.group_add_path("other", str(tmp_path / "x"))
        assert exc_info.value.group_name == "proj"
        assert mem_a.group_get("other").paths == []


class TestIsolation:
    def test_unrelated_paths_do_not_see_each_other(self, mem_a, mem_c):
        mem_a.memory_create("secret", "only for a")
        mem_a.todo_create("a's chore")
        mem_a.plan_create("a's plan")
        for scope in (None, "all", "personal", "group", "global", "nonsense"):
            assert mem_c.memory_list(scope=scope) == []
            assert mem_c.todo_list(scope=scope) == []
            assert mem_c.plan_list(scope=scope) == []

    def test_global_records_visible_everywhere(self, mem_a, mem_c):
        shared = mem_a.memory_create("style", "tabs are spaces", is_global=True)
        assert [m.id for m in mem_c.memory_list()] == [shared.id]
        assert [m.id for m in mem_c.memory_list(scope="global")] == [shared.id]
        assert mem_c.memory_list(scope="personal") == []

    def test_invisible_records_behave_as_missing(self, mem_a, mem_c):
        memory = mem_a.memory_create("mine", "x", code="mine-only")
        with pytest.raises(RecordNotFoundError):
            mem_c.memory_get(memory.id)
        with pytest.raises(RecordNotFoundError):
            mem_c.memory_update("mine-only", title="taken over")
        with pytest.raises(RecordNotFoundError):
            mem_c.memory_delete(memory.id)
        assert mem_a.memory_get("mine-only").title == "mine"

    def test_unknown_directory_sees_only_global(self, storage, mem_a):
        mem_a.memory_create("private", "x")
        shared = mem_a.memory_create("public", "x", is_global=True)
        lost = LLMMemory(storage=storage, working_directory=" ")
        assert lost.scope_context().degraded
        assert [m.id for m in lost.memory_list()] == [shared.id]
        with pytest.raises(ValidationFailed):
            lost.memory_create("nowhere", "x")


class TestMemories:
    def test_create_defaults(self, mem_a):
        memory = mem_a.memory_create("title", "content", tags=["a", "b", "a"])
        assert memory.category == "default"
        assert memory.priority == 2
        assert memory.tags == ["a", "b"]
        assert memory.status == "active"
        assert not memory.is_global
        assert memory.path_id == mem_a.scope_context().path_id

    def test_code_validation(self, mem_a):
        with pytest.raises(ValidationFailed):
            mem_a.memory_create("t", "c", code="Bad Code")
        mem_a.memory_create("t", "c", code="good-code")
        with pytest.raises(ValidationFailed, match="already exists"):
            mem_a.memory_create("t2", "c", code="good-code")

    def test_get_by_numeric_string(self, mem_a):
        memory = mem_a.memory_create("t", "c")
        assert mem_a.memory_get(str(memory.id)).id == memory.id

    @pytest.mark.parametrize("key", [2**70, "99999999999999999999999"])
    def test_out_of_range_id_is_rejected(self, mem_a, key):
        with pytest.raises(ValidationFailed, match="key out of range"):
            mem_a.todo_get(key)

    def test_search(self, mem_a):
        mem_a.memory_create("Release checklist", "bump version, tag")
        mem_a.memory_create("Style", "use black", tags=["python"])
        mem_a.memory_create("Percent", "100% coverage")
        assert [m.title for m in mem_a.memory_search("CHECKLIST")] == ["Release checklist"]
        assert [m.title for m in mem_a.memory_search("python")] == ["Style"]
        assert [m.title for m in mem_a.memory_search("%")] == ["Percent"]
        with pytest.raises(ValidationFailed):
            mem_a.memory_search("  ")

    def test_list_by_category_and_priority(self, mem_a):
        mem_a.memory_create("low", "x", category="notes", priority=1)
        mem_a.memory_create("urgent", "x", category="notes", priority=4)
        mem_a.memory_create("other", "x", category="misc")
        assert [m.title for m in mem_a.memory_list(category="notes")] == ["urgent", "low"]
        assert len(mem_a.memory_list(limit=1)) == 1

    def test_archive_and_unarchive(self, mem_a):
        memory = mem_a.memory_create("old", "x")
        mem_a.memory_archive(memory.id)
        assert mem_a.memory_list() == []
        assert mem_a.memory_search("old") == []
        assert len(mem_a.memory_search("old", include_archived=True)) == 1
        assert mem_a.memory_unarchive(memory.id).status == "active"

    def test_update_keeps_absent_fields(self, mem_a):
        memory = mem_a.memory_create("t", "body", category="c", tags=["x"])
        updated = mem_a.memory_update(memory.id, title="new")
        assert updated.title == "new"
        assert updated.content == "body"
        assert updated.category == "c"
        assert updated.tags == ["x"]

    def test_make_global_and_back(self, mem_a, mem_c):
        memory = mem_a.memory_create("t", "c")
        mem_a.memory_update(memory.id, is_global=True)
        assert mem_c.memory_get(memory.id).is_global
        back = mem_a.memory_update(memory.id, is_global=False)
        assert back.path_id == mem_a.scope_context().path_id
        with pytest.raises(RecordNotFoundError):
            mem_c.memory_get(memory.id)

    def test_delete(self, mem_a):
        memory = mem_a.memory_create("t", "c")
        assert mem_a.memory_delete(memory.id) == memory.id
        with pytest.raises(RecordNotFoundError):
            mem_a.memory_get(memory.id)


class TestPlans:
    def test_progress_drives_status(self, mem_a):
        plan = mem_a.plan_create("migrate", code="migrate-db")
        assert plan.status == "pending"

        started = mem_a.plan_progress("migrate-db", 40)
        assert started.status == "in_progress"
        assert started.start_date is not None
        assert started.end_date is None

        done = mem_a.plan_progress("migrate-db", 100)
        assert done.status == "completed"
        assert done.end_date is not None

        reset = mem_a.plan_progress("migrate-db", 0)
        assert reset.status == "pending"
        assert reset.end_date is None

    @pytest.mark.parametrize("value", [-1, 101])
    def test_progress_bounds(self, mem_a, value):
        plan = mem_a.plan_create("p")
        with pytest.raises(ValidationFailed):
            mem_a.plan_progress(plan.id, value)

    def test_complete_sets_full_progress(self, mem_a):
        plan = mem_a.plan_create("p")
        done = mem_a.plan_complete(plan.id)
        assert done.progress == 100
        assert done.start_date is not None
        with pytest.raises(ValidationFailed):
            mem_a.plan_cancel(plan.id)

    def test_reopen_completed(self, mem_a):
        plan = mem_a.plan_create("p")
        mem_a.plan_complete(plan.id)
        reopened = mem_a.plan_set_status(plan.id, "pending")
        assert reopened.progress == 0
        assert reopened.end_date is None

    def test_back_to_pending_resets_progress(self, mem_a):
        plan = mem_a.plan_create("p")
        mem_a.plan_progress(plan.id, 50)
        paused = mem_a.plan_set_status(plan.id, "pending")
        assert paused.status == "pending"
        assert paused.progress == 0
        assert paused.start_date is not None

    def test_cancelled_plan_rejects_progress(self, mem_a):
        plan = mem_a.plan_create("p")
        mem_a.plan_cancel(plan.id)
        with pytest.raises(ValidationFailed):
            mem_a.plan_progress(plan.id, 50)
        with pytest.raises(ValidationFailed):
            mem_a.plan_complete(plan.id)

    def test_list_by_status(self, mem_a):
        a = mem_a.plan_create("a")
        mem_a.plan_create("b")
        mem_a.plan_start(a.id)
        assert [p.id for p in mem_a.plan_list(status="in_progress")] == [a.id]


class TestTodos:
    def test_today(self, mem_a):
        now = datetime.now().astimezone()
        noon = now.replace(hour=12, minute=0, second=0, microsecond=0)
        due_today = mem_a.todo_create("today", due_date=noon)
        mem_a.todo_create("tomorrow", due_date=noon + timedelta(days=1))
        mem_a.todo_create("whenever")
        assert [t.id for t in mem_a.todo_today(today=now)] == [due_today.id]

    def test_list_order(self, mem_a):
        mem_a.todo_create("low", priority=1)
        mem_a.todo_create("high later", priority=3, due_date="2026-02-01T00:00:00+00:00")
        mem_a.todo_create("high sooner", priority=3, due_date="2026-01-01T00:00:00+00:00")
        mem_a.todo_create("high undated", priority=3)
        assert [t.title for t in mem_a.todo_list()] == [
            "high sooner",
            "high later",
            "high undated",
            "low",
        ]

    def test_complete_and_reopen(self, mem_a):
        todo = mem_a.todo_create("t")
        assert mem_a.todo_start(todo.id).status == "in_progress"
        done = mem_a.todo_complete(todo.id)
        assert done.completed_at is not None
        reopened = mem_a.todo_update(todo.id, status="pending")
        assert reopened.completed_at is None

    def test_bad_due_date(self, mem_a):
        with pytest.raises(ValidationFailed, match="due_date"):
            mem_a.todo_create("t", due_date="next week")

    def test_final_keeps_global_and_other_paths(self, mem_a, mem_c):
        mem_a.todo_create("local 1")
        mem_a.todo_create("local 2")
        keep_global = mem_a.todo_create("everyone", is_global=True)
        keep_other = mem_c.todo_create("c's chore")

        assert mem_a.todo_final() == 2
        assert [t.id for t in mem_a.todo_list()] == [keep_global.id]
        assert [t.id for t in mem_c.todo_list(scope="personal")] == [keep_other.id]

    def test_final_with_global_scope_deletes_nothing(self, mem_a):
        mem_a.todo_create("local")
        mem_a.todo_create("everyone", is_global=True)
        assert mem_a.todo_final(scope="global") == 0
        assert len(mem_a.todo_list()) == 2
