"""Memory mixin for LLMMemory.

Provides creation, retrieval, keyword search, archiving and the batch
operations for memories.
"""

from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Union

from llm_memory.storage.memory_crud import (
    DEFAULT_CATEGORY,
    MEMORY_SPEC,
    list_memories,
    search_memories,
)
from llm_memory.types import (
    PRIORITY_MEDIUM,
    BatchResult,
    Key,
    Memory,
    MemoryCreate,
    MemoryPatch,
    MemoryStatus,
    Scope,
)

if TYPE_CHECKING:
    from llm_memory.core import LLMMemory

ScopeArg = Union[Scope, str, None]


class MemoriesMixin:
    """Mixin providing memory operations."""

    def memory_create(
        self: "LLMMemory",
        title: str,
        content: str,
        code: Optional[str] = None,
        category: str = DEFAULT_CATEGORY,
        priority: int = PRIORITY_MEDIUM,
        tags: Optional[List[str]] = None,
        is_global: bool = False,
    ) -> Memory:
        """Create a memory in the current scope.

        Args:
            title: Short title (required)
            content: Memory body (required)
            code: Optional human key (lowercase letters, digits, hyphens)
            category: Free-form category
            priority: 1 (low) to 4 (urgent)
            tags: Tags for filtering and search
            is_global: Visible from every directory instead of this path only

        Raises:
            ValidationFailed: A field is invalid, or the record is not global
                and the working directory is unknown.
        """
        item = MemoryCreate(
            title=title,
            content=content,
            code=code,
            category=category,
            priority=priority,
            tags=tags,
            is_global=is_global,
        )
        return self._create(MEMORY_SPEC, item)

    def memory_get(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Memory:
        return self._get(MEMORY_SPEC, key, scope)

    def memory_list(
        self: "LLMMemory",
        scope: ScopeArg = None,
        category: Optional[str] = None,
        include_archived: bool = False,
        limit: Optional[int] = None,
    ) -> List[Memory]:
        return list_memories(
            self.storage.transaction,
            self.visibility(scope),
            category=category,
            include_archived=include_archived,
            limit=limit,
        )

    def memory_search(
        self: "LLMMemory",
        keyword: str,
        scope: ScopeArg = None,
        include_archived: bool = False,
        limit: Optional[int] = None,
    ) -> List[Memory]:
        """Substring search over title, content and tags within scope."""
        return search_memories(
            self.storage.transaction,
            self.visibility(scope),
            keyword,
            include_archived=include_archived,
            limit=limit,
        )

    def memory_update(self: "LLMMemory", key: Key, scope: ScopeArg = None, **changes: Any) -> Memory:
        """Update only the given fields (title, content, code, category, priority, tags, is_global)."""
        return self._update(MEMORY_SPEC, MemoryPatch(key=key, **changes), scope)

    def memory_archive(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Memory:
        return self._set_status(MEMORY_SPEC, key, MemoryStatus.ARCHIVED.value, scope)

    def memory_unarchive(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Memory:
        return self._set_status(MEMORY_SPEC, key, MemoryStatus.ACTIVE.value, scope)

    def memory_delete(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> int:
        return self._delete(MEMORY_SPEC, key, scope)

    # Batch

    def memory_batch_create(
        self: "LLMMemory", items: Sequence[Any], deadline: Optional[float] = None
    ) -> BatchResult:
        return self._batch_create(MEMORY_SPEC, items, deadline)

    def memory_batch_update(
        self: "LLMMemory",
        items: Sequence[Any],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_update(MEMORY_SPEC, items, scope, deadline)

    def memory_batch_set_status(
        self: "LLMMemory",
        keys: Sequence[Key],
        status: str,
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_set_status(MEMORY_SPEC, keys, status, scope, deadline)

    def memory_batch_delete(
        self: "LLMMemory",
        keys: Sequence[Key],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_delete(MEMORY_SPEC, keys, scope, deadline)
