"""llm-memory storage.

SQLite-backed registries (paths, groups), entity records and the batch
executor.
"""

from .batch import BatchExecutor, check_batch_size
from .groups import GroupRegistry
from .memory_crud import MEMORY_SPEC
from .paths import PathRegistry, normalize_path
from .plans_crud import PLAN_SPEC
from .records import EntitySpec
from .snowflake import IDGenerator
from .sqlite import SQLiteStorage
from .todos_crud import TODO_SPEC
from .visibility import apply_visibility_filter

__all__ = [
    "SQLiteStorage",
    "IDGenerator",
    "PathRegistry",
    "GroupRegistry",
    "BatchExecutor",
    "EntitySpec",
    "MEMORY_SPEC",
    "PLAN_SPEC",
    "TODO_SPEC",
    "apply_visibility_filter",
    "check_batch_size",
    "normalize_path",
]
