"""Handler registry for MCP tools.

Merges HANDLERS and VALIDATORS from all sub-modules into unified dicts.
"""

from typing import Callable, Dict

from llm_memory.mcp.handlers.group import HANDLERS as _GROUP_H
from llm_memory.mcp.handlers.group import VALIDATORS as _GROUP_V
from llm_memory.mcp.handlers.memory import HANDLERS as _MEMORY_H
from llm_memory.mcp.handlers.memory import VALIDATORS as _MEMORY_V
from llm_memory.mcp.handlers.plan import HANDLERS as _PLAN_H
from llm_memory.mcp.handlers.plan import VALIDATORS as _PLAN_V
from llm_memory.mcp.handlers.todo import HANDLERS as _TODO_H
from llm_memory.mcp.handlers.todo import VALIDATORS as _TODO_V

HANDLERS: Dict[str, Callable] = {
    **_GROUP_H,
    **_MEMORY_H,
    **_PLAN_H,
    **_TODO_H,
}

VALIDATORS: Dict[str, Callable] = {
    **_GROUP_V,
    **_MEMORY_V,
    **_PLAN_V,
    **_TODO_V,
}
