"""Feature modules for llm-memory.

Each feature is implemented as a mixin class that provides one area of the
LLMMemory facade.
"""

from llm_memory.features.groups import GroupsMixin
from llm_memory.features.memories import MemoriesMixin
from llm_memory.features.plans import PlansMixin
from llm_memory.features.todos import TodosMixin

__all__ = [
    "GroupsMixin",
    "MemoriesMixin",
    "PlansMixin",
    "TodosMixin",
]
