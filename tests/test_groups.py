"""Tests for groups and path membership."""

import threading

import pytest

from llm_memory.errors import (
    DuplicateNameError,
    GroupNotFoundError,
    PathAlreadyInGroupError,
    ValidationFailed,
)
from llm_memory.storage import SQLiteStorage
from llm_memory.storage.snowflake import IDGenerator


class TestGroupRegistry:
    def test_create_and_get(self, storage):
        group = storage.groups.create_group("backend", "api services")
        assert group.id > 0
        assert storage.groups.get_group(group.id).name == "backend"
        assert storage.groups.get_group_by_name("backend").description == "api services"

    def test_duplicate_name(self, storage):
        storage.groups.create_group("backend")
        with pytest.raises(DuplicateNameError):
            storage.groups.create_group("backend")

    def test_blank_name(self, storage):
        with pytest.raises(ValidationFailed):
            storage.groups.create_group("   ")

    def test_list_groups_sorted_with_paths(self, storage, tmp_path):
        zeta = storage.groups.create_group("zeta")
        storage.groups.create_group("alpha")
        storage.groups.add_path(zeta.id, str(tmp_path / "z1"))
        groups = storage.groups.list_groups()
        assert [g.name for g in groups] == ["alpha", "zeta"]
        assert groups[1].paths == [str(tmp_path / "z1")]
        assert groups[0].paths == []

    def test_add_path_is_idempotent_for_same_group(self, storage, tmp_path):
        group = storage.groups.create_group("g")
        first = storage.groups.add_path(group.id, str(tmp_path / "p"))
        second = storage.groups.add_path(group.id, str(tmp_path / "p"))
        assert first.id == second.id
        assert storage.groups.list_path_ids(group.id) == frozenset({first.id})

    def test_path_belongs_to_one_group(self, storage, tmp_path):
        g1 = storage.groups.create_group("g1")
        g2 = storage.groups.create_group("g2")
        storage.groups.add_path(g1.id, str(tmp_path / "p"))
        with pytest.raises(PathAlreadyInGroupError) as exc_info:
            storage.groups.add_path(g2.id, str(tmp_path / "p"))
        assert exc_info.value.group_name == "g1"
        assert storage.groups.find_group_by_path(str(tmp_path / "p")).id == g1.id
        assert storage.groups.list_path_ids(g2.id) == frozenset()

    def test_add_path_to_missing_group_writes_nothing(self, storage, tmp_path):
        with pytest.raises(GroupNotFoundError):
            storage.groups.add_path(123456, str(tmp_path / "p"))
        assert not storage.paths.exists(str(tmp_path / "p"))

    def test_remove_path_is_idempotent(self, storage, tmp_path):
        group = storage.groups.create_group("g")
        storage.groups.add_path(group.id, str(tmp_path / "p"))
        assert storage.groups.remove_path(group.id, str(tmp_path / "p")) is True
        assert storage.groups.remove_path(group.id, str(tmp_path / "p")) is False
        assert storage.groups.remove_path(group.id, str(tmp_path / "never")) is False
        assert storage.groups.find_group_by_path(str(tmp_path / "p")) is None

    def test_removed_path_can_join_another_group(self, storage, tmp_path):
        g1 = storage.groups.create_group("g1")
        g2 = storage.groups.create_group("g2")
        storage.groups.add_path(g1.id, str(tmp_path / "p"))
        storage.groups.remove_path(g1.id, str(tmp_path / "p"))
        storage.groups.add_path(g2.id, str(tmp_path / "p"))
        assert storage.groups.find_group_by_path(str(tmp_path / "p")).name == "g2"

    def test_delete_group_releases_paths(self, storage, tmp_path):
        group = storage.groups.create_group("g")
        storage.groups.add_path(group.id, str(tmp_path / "p"))
        storage.groups.delete_group(group.id)
        assert storage.groups.get_group(group.id) is None
        assert storage.groups.find_group_by_path(str(tmp_path / "p")) is None
        assert storage.paths.exists(str(tmp_path / "p"))
        with pytest.raises(GroupNotFoundError):
            storage.groups.delete_group(group.id)

    def test_update_group(self, storage):
        group = storage.groups.create_group("old")
        updated = storage.groups.update_group(group.id, name="new", description="d")
        assert updated.name == "new"
        assert updated.description == "d"
        storage.groups.create_group("taken")
        with pytest.raises(DuplicateNameError):
            storage.groups.update_group(group.id, name="taken")


    def test_out_of_range_id_is_missing(self, storage):
        assert storage.groups.get_group(2**70) is None
        assert storage.groups.get_group(0) is None


class TestConcurrentMembership:
    def test_racing_writers_cannot_both_claim_a_path(self, settings, storage, tmp_path):
        # Two storages share the file but not the in-process write lock
        other = SQLiteStorage(settings=settings, id_generator=IDGenerator(node_id=8))
        g1 = storage.groups.create_group("g1")
        g2 = storage.groups.create_group("g2")
        path = str(tmp_path / "contested")
        barrier = threading.Barrier(2)
        outcomes = {}

        def claim(name, registry, group_id):
            barrier.wait()
            try:
                registry.add_path(group_id, path)
                outcomes[name] = "ok"
            except PathAlreadyInGroupError as e:
                outcomes[name] = e

        threads = [
            threading.Thread(target=claim, args=("g1", storage.groups, g1.id)),
            threading.Thread(target=claim, args=("g2", other.groups, g2.id)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(o == "ok" for o in outcomes.values()) == [False, True]
        winner = next(name for name, o in outcomes.items() if o == "ok")
        loser = next(o for o in outcomes.values() if o != "ok")
        assert loser.group_name == winner
        with storage.transaction() as conn:
            rows = conn.execute(
                """SELECT gp.group_id FROM group_paths gp
                   JOIN paths p ON p.id = gp.path_id WHERE p.path = ?""",
                (storage.paths.normalize(path),),
            ).fetchall()
        assert len(rows) == 1

    def test_constraint_violation_reports_owner(self, storage, tmp_path, monkeypatch):
        g1 = storage.groups.create_group("g1")
        g2 = storage.groups.create_group("g2")
        path = str(tmp_path / "p")
        storage.groups.add_path(g1.id, path)

        # Make the ownership check miss once, as if another writer raced it
        real_owner_of = storage.groups._owner_of
        calls = []

        def stale_owner_of(conn, path_id):
            calls.append(path_id)
            return None if len(calls) == 1 else real_owner_of(conn, path_id)

        monkeypatch.setattr(storage.groups, "_owner_of", stale_owner_of)
        with pytest.raises(PathAlreadyInGroupError) as exc_info:
            storage.groups.add_path(g2.id, path)
        assert exc_info.value.group_name == "g1"
        assert len(calls) == 2
        assert storage.groups.find_group_by_path(path).id == g1.id

class TestGroupFacade:
    def test_addressed_by_name_or_id(self, mem_a, project_dirs):
        group = mem_a.group_create("team")
        mem_a.group_add_path(group.id, project_dirs[0])
        assert mem_a.group_get("team").paths == [project_dirs[0]]
        assert mem_a.group_get(str(group.id)).name == "team"
        with pytest.raises(GroupNotFoundError):
            mem_a.group_get("nobody")

    def test_add_path_defaults_to_working_directory(self, mem_a, project_dirs):
        mem_a.group_create("team")
        record = mem_a.group_add_path("team")
        assert record.path == project_dirs[0]
        assert mem_a.group_current().name == "team"

    def test_group_current_without_group(self, mem_c):
        assert mem_c.group_current() is None

    def test_delete_keeps_records(self, mem_a, mem_b, grouped):
        """Deleting a group only ends sharing; records stay with their paths."""
        memory = mem_a.memory_create("shared", "visible to the team")
        assert mem_b.memory_get(memory.id).title == "shared"

        mem_a.group_delete(grouped)

        assert mem_a.memory_get(memory.id).title == "shared"
        assert [m.id for m in mem_b.memory_list()] == []
