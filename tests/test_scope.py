"""Tests for scope resolution, visibility filters and the no-leak property."""

import itertools

import pytest

from llm_memory.scope import build_visibility_filter, describe_scope
from llm_memory.storage.visibility import MATCH_NOTHING, apply_visibility_filter
from llm_memory.types import Scope, ScopeContext, VisibilityFilter

KEYWORDS = [None, "", "all", "personal", "group", "global", "ALL", " Personal ", "bogus", Scope.GROUP]

CONTEXTS = [
    ScopeContext.global_only(),
    ScopeContext(path_id=11),
    ScopeContext(path_id=11, group_path_ids=frozenset({11, 12}), group_id=1, group_name="g"),
    ScopeContext(path_id=0, group_path_ids=frozenset({12, 13}), group_id=1, group_name="g"),
]


class TestScopeParse:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, Scope.ALL),
            ("", Scope.ALL),
            ("all", Scope.ALL),
            ("PERSONAL", Scope.PERSONAL),
            (" group ", Scope.GROUP),
            ("global", Scope.GLOBAL),
            ("everything", Scope.GLOBAL),
            (Scope.PERSONAL, Scope.PERSONAL),
        ],
    )
    def test_parse(self, raw, expected):
        assert Scope.parse(raw) is expected


class TestBuildVisibilityFilter:
    def test_global(self):
        vf = build_visibility_filter("global", ScopeContext(path_id=5))
        assert vf == VisibilityFilter(include_global=True)

    @pytest.mark.parametrize("keyword", ["global", "all"])
    def test_global_data_included_regardless_of_context_flag(self, keyword):
        ctx = ScopeContext(path_id=5, include_global=False)
        assert build_visibility_filter(keyword, ctx).include_global

    def test_personal(self):
        vf = build_visibility_filter("personal", ScopeContext(path_id=5))
        assert vf.include_non_global
        assert not vf.include_global
        assert vf.path_ids == frozenset({5})

    def test_personal_without_path_matches_nothing(self):
        assert build_visibility_filter("personal", ScopeContext.global_only()).matches_nothing

    def test_group(self):
        ctx = ScopeContext(path_id=5, group_path_ids=frozenset({5, 6}), group_id=1)
        vf = build_visibility_filter("group", ctx)
        assert vf.path_ids == frozenset({5, 6})
        assert not vf.include_global

    def test_group_without_group_matches_nothing(self):
        assert build_visibility_filter("group", ScopeContext(path_id=5)).matches_nothing

    def test_all_merges_path_and_group(self):
        ctx = ScopeContext(path_id=5, group_path_ids=frozenset({6}), group_id=1)
        vf = build_visibility_filter(None, ctx)
        assert vf.include_global
        assert vf.path_ids == frozenset({5, 6})

    def test_all_degrades_to_global_only(self):
        ctx = ScopeContext.global_only()
        assert ctx.degraded
        vf = build_visibility_filter("all", ctx)
        assert vf.include_global
        assert not vf.include_non_global

    def test_unknown_keyword_never_widens(self):
        ctx = ScopeContext(path_id=5, group_path_ids=frozenset({6}), group_id=1)
        assert build_visibility_filter("bogus", ctx) == build_visibility_filter("global", ctx)

    @pytest.mark.parametrize("keyword,ctx", list(itertools.product(KEYWORDS, CONTEXTS)))
    def test_no_leak(self, keyword, ctx):
        """A non-global row is visible only through an explicit path id."""
        vf = build_visibility_filter(keyword, ctx)
        allowed = {pid for pid in (ctx.path_id, *ctx.group_path_ids) if pid > 0}
        for path_id in (0, 11, 12, 13, 99):
            if vf.allows(False, path_id):
                assert path_id in allowed
                assert path_id in vf.path_ids


class TestVisibilityFilter:
    def test_non_global_requires_path_ids(self):
        with pytest.raises(ValueError):
            VisibilityFilter(include_non_global=True)

    def test_drops_non_positive_ids(self):
        vf = VisibilityFilter(include_non_global=True, path_ids=frozenset({0, -1, 4}))
        assert vf.path_ids == frozenset({4})


class TestApplyVisibilityFilter:
    def test_match_nothing(self):
        sql, params = apply_visibility_filter(VisibilityFilter())
        assert sql == f"({MATCH_NOTHING})"
        assert params == []

    def test_global_only(self):
        sql, params = apply_visibility_filter(VisibilityFilter(include_global=True))
        assert sql == "(global = 1)"
        assert params == []

    def test_paths_sorted_and_aliased(self):
        vf = VisibilityFilter(include_global=True, include_non_global=True, path_ids=frozenset({9, 3}))
        sql, params = apply_visibility_filter(vf, alias="t")
        assert sql == "(t.global = 1 OR (t.global = 0 AND t.path_id IN (?, ?)))"
        assert params == [3, 9]


class TestScopeResolver:
    def test_first_visit_registers_path(self, mem_a, storage, project_dirs):
        ctx = mem_a.scope_context()
        assert ctx.path_id > 0
        assert ctx.current_path == project_dirs[0]
        assert storage.paths.find_by_path(project_dirs[0]).id == ctx.path_id
        assert not ctx.has_group

    def test_same_directory_resolves_to_same_path(self, mem_a):
        assert mem_a.scope_context().path_id == mem_a.scope_context().path_id

    def test_group_membership(self, mem_a, mem_b, grouped):
        ctx_a = mem_a.scope_context()
        ctx_b = mem_b.scope_context()
        assert ctx_a.group_name == grouped
        assert ctx_a.group_path_ids == ctx_b.group_path_ids == frozenset(
            {ctx_a.path_id, ctx_b.path_id}
        )

    def test_membership_changes_are_seen_immediately(self, mem_a, mem_b, grouped, project_dirs):
        mem_a.group_remove_path(grouped, project_dirs[1])
        assert mem_b.scope_context().group_id is None
        assert mem_a.scope_context().group_path_ids == frozenset({mem_a.scope_context().path_id})

    def test_blank_directory_is_global_only(self, storage):
        from llm_memory.scope import ScopeResolver

        resolver = ScopeResolver(storage.paths, storage.groups, storage.transaction)
        ctx = resolver.resolve("   ")
        assert ctx.degraded
        assert ctx.path_id == 0

    def test_missing_cwd_is_global_only(self, storage, monkeypatch):
        from llm_memory.scope import ScopeResolver

        def boom():
            raise FileNotFoundError("cwd deleted")

        monkeypatch.setattr("llm_memory.scope.os.getcwd", boom)
        ctx = ScopeResolver(storage.paths, storage.groups, storage.transaction).resolve()
        assert ctx == ScopeContext.global_only()


class TestDescribeScope:
    def test_labels(self, mem_a, mem_b, mem_c, grouped):
        own = mem_a.memory_create("own", "x")
        shared = mem_b.memory_create("sibling", "x")
        glob = mem_c.memory_create("everyone", "x", is_global=True)
        ctx = mem_a.scope_context()
        assert describe_scope(own, ctx) == "personal"
        assert describe_scope(shared, ctx) == "group"
        assert describe_scope(glob, ctx) == "global"
        assert mem_c.describe_scope(own) == "other"
