"""
Pytest fixtures and test configuration for llm-memory tests.
"""

import pytest

from llm_memory import LLMMemory
from llm_memory.config import Settings
from llm_memory.storage import SQLiteStorage


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database with a fixed node id."""
    return Settings(db_path=tmp_path / "memory.db", node_id=7)


@pytest.fixture
def storage(settings):
    s = SQLiteStorage(settings=settings)
    yield s
    s.close()


@pytest.fixture
def project_dirs(tmp_path):
    """Three sibling project directories: a, b and c."""
    dirs = []
    for name in ("a", "b", "c"):
        d = tmp_path / "projects" / name
        d.mkdir(parents=True)
        dirs.append(str(d))
    return dirs


@pytest.fixture
def mem_a(storage, project_dirs):
    return LLMMemory(storage=storage, working_directory=project_dirs[0])


@pytest.fixture
def mem_b(storage, project_dirs):
    return LLMMemory(storage=storage, working_directory=project_dirs[1])


@pytest.fixture
def mem_c(storage, project_dirs):
    return LLMMemory(storage=storage, working_directory=project_dirs[2])


@pytest.fixture
def grouped(mem_a, mem_b, project_dirs):
    """Directories a and b share the group "team"; c stays alone."""
    mem_a.group_create("team", "shared work")
    mem_a.group_add_path("team", project_dirs[0])
    mem_a.group_add_path("team", project_dirs[1])
    return "team"
