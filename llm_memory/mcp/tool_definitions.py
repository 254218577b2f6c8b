"""MCP tool schema definitions for llm-memory operations.

Each Tool() defines the name, description, and JSON Schema for one MCP tool.
Validators and handlers live in llm_memory.mcp.handlers.
"""

from mcp.types import Tool

from llm_memory.types import (
    VALID_MEMORY_STATUS_VALUES,
    VALID_SCOPE_VALUES,
    VALID_TASK_STATUS_VALUES,
)

SCOPE_VALUES = sorted(VALID_SCOPE_VALUES)
TASK_STATUSES = sorted(VALID_TASK_STATUS_VALUES)
MEMORY_STATUSES = sorted(VALID_MEMORY_STATUS_VALUES)

_SCOPE = {
    "type": "string",
    "enum": SCOPE_VALUES,
    "description": "personal = this directory, group = this directory's group, "
    "global = shared everywhere, all (default) = union",
}
_KEY = {
    "type": ["integer", "string"],
    "description": "Record id or code",
}
_GROUP = {"type": "string", "description": "Group name or id"}
_PRIORITY = {
    "type": "integer",
    "minimum": 1,
    "maximum": 4,
    "description": "1 low, 2 medium (default), 3 high, 4 urgent",
}
_TAGS = {"type": "array", "items": {"type": "string"}, "description": "Tags"}
_IS_GLOBAL = {
    "type": "boolean",
    "description": "Visible from every directory (default: scoped to the current path)",
}
_CODE = {
    "type": "string",
    "description": "Optional human key: lowercase letters, digits and hyphens",
}
_LIMIT = {"type": "integer", "minimum": 1, "maximum": 1000}


def _key_schema(**extra):
    properties = {"key": _KEY, "scope": _SCOPE}
    properties.update(extra)
    return {"type": "object", "properties": properties, "required": ["key"]}


def _batch_schema(kind: str, statuses):
    return {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": ["create", "update", "set_status", "delete"]},
            "items": {
                "type": "array",
                "description": f"create: {kind} objects; update: objects with 'key' plus the "
                "fields to change; set_status/delete: keys. At most 100 items.",
            },
            "status": {"type": "string", "enum": statuses, "description": "For set_status"},
            "scope": _SCOPE,
            "timeout": {"type": "number", "description": "Abort the batch after N seconds"},
        },
        "required": ["action", "items"],
    }


TOOLS = [
    # Scope & groups
    Tool(
        name="scope_show",
        description="Show how the working directory resolves: path, group and group paths.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="group_create",
        description="Create a group. Directories in the same group share their records.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Unique group name"},
                "description": {"type": "string"},
            },
            "required": ["name"],
        },
    ),
    Tool(
        name="group_list",
        description="List groups with their member paths.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="group_add_path",
        description="Add a directory (default: the working directory) to a group. "
        "A directory belongs to at most one group.",
        inputSchema={
            "type": "object",
            "properties": {"group": _GROUP, "path": {"type": "string"}},
            "required": ["group"],
        },
    ),
    Tool(
        name="group_remove_path",
        description="Remove a directory (default: the working directory) from a group.",
        inputSchema={
            "type": "object",
            "properties": {"group": _GROUP, "path": {"type": "string"}},
            "required": ["group"],
        },
    ),
    Tool(
        name="group_delete",
        description="Delete a group. Records stay with their own paths.",
        inputSchema={"type": "object", "properties": {"group": _GROUP}, "required": ["group"]},
    ),
    Tool(
        name="group_current",
        description="Show the group of the working directory.",
        inputSchema={"type": "object", "properties": {}},
    ),
    # Memories
    Tool(
        name="memory_create",
        description="Save a memory (knowledge, decision, convention) for this directory or globally.",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "content": {"type": "string"},
                "code": _CODE,
                "category": {"type": "string", "description": "Category (default: default)"},
                "priority": _PRIORITY,
                "tags": _TAGS,
                "is_global": _IS_GLOBAL,
            },
            "required": ["title", "content"],
        },
    ),
    Tool(
        name="memory_get",
        description="Get one memory by id or code.",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="memory_list",
        description="List memories visible in scope, highest priority first.",
        inputSchema={
            "type": "object",
            "properties": {
                "scope": _SCOPE,
                "category": {"type": "string"},
                "include_archived": {"type": "boolean"},
                "limit": _LIMIT,
            },
        },
    ),
    Tool(
        name="memory_search",
        description="Keyword search over memory titles, content and tags within scope.",
        inputSchema={
            "type": "object",
            "properties": {
                "keyword": {"type": "string"},
                "scope": _SCOPE,
                "include_archived": {"type": "boolean"},
                "limit": _LIMIT,
            },
            "required": ["keyword"],
        },
    ),
    Tool(
        name="memory_update",
        description="Update only the given fields of a memory.",
        inputSchema=_key_schema(
            title={"type": "string"},
            content={"type": "string"},
            code=_CODE,
            category={"type": "string"},
            priority=_PRIORITY,
            tags=_TAGS,
            is_global=_IS_GLOBAL,
        ),
    ),
    Tool(
        name="memory_archive",
        description="Archive a memory (hidden from lists and search unless requested).",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="memory_delete",
        description="Delete a memory.",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="memory_batch",
        description="Create, update, set status on or delete up to 100 memories. "
        "Reports total/succeeded/failed and per-item errors.",
        inputSchema=_batch_schema("memory", MEMORY_STATUSES),
    ),
    # Plans
    Tool(
        name="plan_create",
        description="Create a plan for this directory or globally.",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "code": _CODE,
                "description": {"type": "string"},
                "content": {"type": "string"},
                "is_global": _IS_GLOBAL,
            },
            "required": ["title"],
        },
    ),
    Tool(
        name="plan_get",
        description="Get one plan by id or code.",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="plan_list",
        description="List plans visible in scope.",
        inputSchema={
            "type": "object",
            "properties": {
                "scope": _SCOPE,
                "status": {"type": "string", "enum": TASK_STATUSES},
                "limit": _LIMIT,
            },
        },
    ),
    Tool(
        name="plan_update",
        description="Update only the given fields of a plan. Setting progress moves the status.",
        inputSchema=_key_schema(
            title={"type": "string"},
            code=_CODE,
            description={"type": "string"},
            content={"type": "string"},
            progress={"type": "integer", "minimum": 0, "maximum": 100},
            is_global=_IS_GLOBAL,
        ),
    ),
    Tool(
        name="plan_set_status",
        description="Move a plan to pending, in_progress, completed or cancelled.",
        inputSchema=_key_schema(status={"type": "string", "enum": TASK_STATUSES}),
    ),
    Tool(
        name="plan_delete",
        description="Delete a plan.",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="plan_batch",
        description="Create, update, set status on or delete up to 100 plans. "
        "Reports total/succeeded/failed and per-item errors.",
        inputSchema=_batch_schema("plan", TASK_STATUSES),
    ),
    # Todos
    Tool(
        name="todo_create",
        description="Add a todo for this directory or globally.",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "code": _CODE,
                "description": {"type": "string"},
                "priority": _PRIORITY,
                "due_date": {"type": "string", "description": "ISO date or datetime"},
                "tags": _TAGS,
                "is_global": _IS_GLOBAL,
            },
            "required": ["title"],
        },
    ),
    Tool(
        name="todo_get",
        description="Get one todo by id or code.",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="todo_list",
        description="List todos visible in scope, by priority then due date.",
        inputSchema={
            "type": "object",
            "properties": {
                "scope": _SCOPE,
                "status": {"type": "string", "enum": TASK_STATUSES},
                "limit": _LIMIT,
            },
        },
    ),
    Tool(
        name="todo_today",
        description="Todos due today (local time).",
        inputSchema={"type": "object", "properties": {"scope": _SCOPE}},
    ),
    Tool(
        name="todo_update",
        description="Update only the given fields of a todo.",
        inputSchema=_key_schema(
            title={"type": "string"},
            code=_CODE,
            description={"type": "string"},
            priority=_PRIORITY,
            status={"type": "string", "enum": TASK_STATUSES},
            due_date={"type": ["string", "null"]},
            tags=_TAGS,
            is_global=_IS_GLOBAL,
        ),
    ),
    Tool(
        name="todo_set_status",
        description="Move a todo to pending, in_progress, completed or cancelled.",
        inputSchema=_key_schema(status={"type": "string", "enum": TASK_STATUSES}),
    ),
    Tool(
        name="todo_delete",
        description="Delete a todo.",
        inputSchema=_key_schema(),
    ),
    Tool(
        name="todo_final",
        description="Delete every non-global todo visible in scope. Global todos are kept.",
        inputSchema={
            "type": "object",
            "properties": {
                "scope": _SCOPE,
                "confirm": {"type": "boolean", "description": "Must be true"},
            },
            "required": ["confirm"],
        },
    ),
    Tool(
        name="todo_batch",
        description="Create, update, set status on or delete up to 100 todos. "
        "Reports total/succeeded/failed and per-item errors.",
        inputSchema=_batch_schema("todo", TASK_STATUSES),
    ),
]
