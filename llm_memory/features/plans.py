"""Plan mixin for LLMMemory."""

from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Union

from llm_memory.storage.plans_crud import PLAN_SPEC, list_plans
from llm_memory.types import BatchResult, Key, Plan, PlanCreate, PlanPatch, Scope, TaskStatus

if TYPE_CHECKING:
    from llm_memory.core import LLMMemory

ScopeArg = Union[Scope, str, None]


class PlansMixin:
    """Mixin providing plan operations."""

    def plan_create(
        self: "LLMMemory",
        title: str,
        code: Optional[str] = None,
        description: str = "",
        content: str = "",
        is_global: bool = False,
    ) -> Plan:
        item = PlanCreate(
            title=title,
            code=code,
            description=description,
            content=content,
            is_global=is_global,
        )
        return self._create(PLAN_SPEC, item)

    def plan_get(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Plan:
        return self._get(PLAN_SPEC, key, scope)

    def plan_list(
        self: "LLMMemory",
        scope: ScopeArg = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Plan]:
        return list_plans(self.storage.transaction, self.visibility(scope), status, limit)

    def plan_update(self: "LLMMemory", key: Key, scope: ScopeArg = None, **changes: Any) -> Plan:
        return self._update(PLAN_SPEC, PlanPatch(key=key, **changes), scope)

    def plan_progress(self: "LLMMemory", key: Key, progress: int, scope: ScopeArg = None) -> Plan:
        """Set progress (0-100); the status follows it."""
        return self._update(PLAN_SPEC, PlanPatch(key=key, progress=progress), scope)

    def plan_set_status(self: "LLMMemory", key: Key, status: str, scope: ScopeArg = None) -> Plan:
        return self._set_status(PLAN_SPEC, key, status, scope)

    def plan_start(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Plan:
        return self._set_status(PLAN_SPEC, key, TaskStatus.IN_PROGRESS.value, scope)

    def plan_complete(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Plan:
        return self._set_status(PLAN_SPEC, key, TaskStatus.COMPLETED.value, scope)

    def plan_cancel(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> Plan:
        return self._set_status(PLAN_SPEC, key, TaskStatus.CANCELLED.value, scope)

    def plan_delete(self: "LLMMemory", key: Key, scope: ScopeArg = None) -> int:
        return self._delete(PLAN_SPEC, key, scope)

    # Batch

    def plan_batch_create(
        self: "LLMMemory", items: Sequence[Any], deadline: Optional[float] = None
    ) -> BatchResult:
        return self._batch_create(PLAN_SPEC, items, deadline)

    def plan_batch_update(
        self: "LLMMemory",
        items: Sequence[Any],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_update(PLAN_SPEC, items, scope, deadline)

    def plan_batch_set_status(
        self: "LLMMemory",
        keys: Sequence[Key],
        status: str,
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_set_status(PLAN_SPEC, keys, status, scope, deadline)

    def plan_batch_delete(
        self: "LLMMemory",
        keys: Sequence[Key],
        scope: ScopeArg = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._batch_delete(PLAN_SPEC, keys, scope, deadline)
