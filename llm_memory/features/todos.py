"""Todo mixin for LLMMemory.

Besides the usual record operations this provides the "due today" view and
the scoped bulk clear (``todo_final``).
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Union

from llm_memory.storage.todos_crud import (
    TODO_SPEC,
    delete_all_in_scope,
    list_due_today,
    list_todos,
)
from llm_memory.types import (
    PRIORITY_MEDIUM,
    BatchResult,
    Key,
    Scope,
    TaskStatus,
    Todo,
    TodoCreate,
    TodoPatch,
)

if TYPE_CHECKING:
    from llm_memory.core import LLMMemory

logger = logging.getLogger(__name__)

ScopeArg = Union[Scope, str, None]


class TodosMixin:
    """Mixin providing todo operations."""

    def todo_create(
        self: "LLMMemory",
        title: str,
        code: Optional[str] = None,
        description: str = "",
        priority: int = PRIORITY_MEDIUM,
        due_date: Optional[Union[str, datetime]] = None,
        tags: Optional[List[str]] = None,
        is_global: bool = False,
    ) -> Todo:
        """Create a todo in the current scope.

        Args:
            title: What needs doing (required)
            code: Optional human key
            description: Longer description
            priority: 1 (low) to 4 (urgent)
            due_date: ISO date/datetime or datetime
            tags: Tags for filtering
            is_global: Visible from every directory
        """
        item = TodoCreate(
            title=title,
            code=code,
            description=description,
            priority=priority,
            due_date=due_date,
            tags=tags,
            is_global=is_global,
        )
        return self._create(TODO_SPEC, item)

    def todo_get(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Todo:
        return self._get(TODO_SPEC, key, scope)

    def todo_list(
        self: "LLMMemory",
        scope: ScopeArg = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Todo]:
        return list_todos(self.storage.transaction, self.visibility(scope), status, limit)

    def todo_today(
        self: "LLMMemory", scope: ScopeArg = None, today: Optional[datetime] = None
    ) -> List[Todo]:
        """Todos due on the current local day."""
        return list_due_today(self.storage.transaction, self.visibility(scope), today)

    def todo_update(self: "LLMMemory", key: Key, scope: ScopeArg = None, **changes: Any) -> Todo:
        return self._update(TODO_SPEC, TodoPatch(key=key, **changes), scope)

    def todo_set_status(self: "LLMMemory", key: Key, status: str, scope: ScopeArg = None) -> Todo:
        return self._set_status(TODO_SPEC, key, status, scope)

    def todo_start(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Todo:
        return self._set_status(TODO_SPEC, key, TaskStatus.IN_PROGRESS.value, scope)

    def todo_complete(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Todo:
        return self._set_status(TODO_SPEC, key, TaskStatus.COMPLETED.value, scope)

    def todo_cancel(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Todo:
        return self._set_status(TODO_SPEC, key, TaskStatus.CANCELLED.value, scope)

    def todo_delete(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> int:
        return self._delete(TODO_SPEC, key, scope)

    def todo_final(self: "LLMMemory", scope: ScopeArg = None) -> int:
        """Delete every non-global todo visible in ``scope``; returns the count.

        Global todos survive; with ``scope="global"`` nothing is deleted.
        """
        vfilter = self.visibility(scope)
        with self.storage.transaction(write=True) as conn:
            deleted = delete_all_in_scope(conn, vfilter)
        logger.info(f"Cleared {deleted} todos")
        return deleted

    # Batch

    def todo_batch_create(
        self: "LLMMemory", items: Sequence[Any], deadline: Optional[float] = None
    ) -> BatchResult:
        return self._batch_create(TODO_SPEC, items, deadline)

    def todo_batch_update(
        self: "LLMMemory",
        items: Sequence[Any],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_update(TODO_SPEC, items, scope, deadline)

    def todo_batch_set_status(
        self: "LLMMemory",
        keys: Sequence[Key],
        status: str,
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_set_status(TODO_SPEC, keys, status, scope, deadline)

    def todo_batch_complete(
        self: "LLMMemory",
        keys: Sequence[Key],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_set_status(TODO_SPEC, keys, TaskStatus.COMPLETED.value, scope, deadline)

    def todo_batch_delete(
        self: "LLMMemory",
        keys: Sequence[Key],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_delete(TODO_SPEC, keys, scope, deadline)
