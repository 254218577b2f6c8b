"""Handlers for todo tools, including the due-today view and the scoped clear."""

import json
from typing import Any, Dict

from llm_memory.core import LLMMemory
from llm_memory.mcp.handlers.common import (
    handle_batch,
    record_response,
    records_response,
    validate_batch,
)
from llm_memory.mcp.sanitize import (
    sanitize_array,
    sanitize_string,
    validate_bool,
    validate_enum,
    validate_key,
    validate_limit,
    validate_number,
    validate_scope,
)
from llm_memory.types import PRIORITY_MEDIUM, VALID_TASK_STATUS_VALUES

TASK_STATUSES = sorted(VALID_TASK_STATUS_VALUES)

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_todo_create(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["title"] = sanitize_string(arguments.get("title"), "title", 200, required=True)
    sanitized["code"] = sanitize_string(arguments.get("code"), "code", 64, required=False) or None
    sanitized["description"] = sanitize_string(
        arguments.get("description"), "description", 5000, required=False
    )
    sanitized["priority"] = int(
        validate_number(arguments.get("priority"), "priority", 1, 4, PRIORITY_MEDIUM)
    )
    sanitized["due_date"] = (
        sanitize_string(arguments.get("due_date"), "due_date", 40, required=False) or None
    )
    sanitized["tags"] = sanitize_array(arguments.get("tags"), "tags", 100, 20)
    sanitized["is_global"] = validate_bool(arguments.get("is_global"), "is_global")
    return sanitized


def validate_todo_key(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"key": validate_key(arguments.get("key")), "scope": validate_scope(arguments.get("scope"))}


def validate_todo_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "scope": validate_scope(arguments.get("scope")),
        "status": validate_enum(arguments.get("status"), "status", TASK_STATUSES),
        "limit": validate_limit(arguments.get("limit"), 50),
    }


def validate_todo_scope_only(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"scope": validate_scope(arguments.get("scope"))}


def validate_todo_update(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = validate_todo_key(arguments)
    changes: Dict[str, Any] = {}
    if "title" in arguments:
        changes["title"] = sanitize_string(arguments["title"], "title", 200, required=False)
    if "code" in arguments:
        changes["code"] = sanitize_string(arguments["code"], "code", 64, required=False) or None
    if "description" in arguments:
        changes["description"] = sanitize_string(
            arguments["description"], "description", 5000, required=False
        )
    if "priority" in arguments:
        changes["priority"] = int(validate_number(arguments["priority"], "priority", 1, 4))
    if "status" in arguments:
        changes["status"] = validate_enum(arguments["status"], "status", TASK_STATUSES)
    if "due_date" in arguments:
        changes["due_date"] = (
            sanitize_string(arguments["due_date"], "due_date", 40, required=False) or None
        )
    if "tags" in arguments:
        changes["tags"] = sanitize_array(arguments["tags"], "tags", 100, 20)
    if "is_global" in arguments:
        changes["is_global"] = validate_bool(arguments["is_global"], "is_global")
    if not changes:
        raise ValueError("no fields to update")
    sanitized["changes"] = changes
    return sanitized


def validate_todo_set_status(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = validate_todo_key(arguments)
    sanitized["status"] = validate_enum(
        arguments.get("status"), "status", TASK_STATUSES, required=True
    )
    return sanitized


def validate_todo_final(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = validate_todo_scope_only(arguments)
    if arguments.get("confirm") is not True:
        raise ValueError("confirm must be true to delete todos")
    return sanitized


def validate_todo_batch(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return validate_batch(arguments, TASK_STATUSES)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_todo_create(args: Dict[str, Any], m: LLMMemory) -> str:
    todo = m.todo_create(
        title=args["title"],
        code=args.get("code"),
        description=args.get("description", ""),
        priority=args.get("priority", PRIORITY_MEDIUM),
        due_date=args.get("due_date"),
        tags=args.get("tags") or None,
        is_global=args.get("is_global", False),
    )
    return f"Todo added: [{todo.id}] {todo.title}"


def handle_todo_get(args: Dict[str, Any], m: LLMMemory) -> str:
    return record_response(m, m.todo_get(args["key"], scope=args.get("scope")))


def handle_todo_list(args: Dict[str, Any], m: LLMMemory) -> str:
    todos = m.todo_list(scope=args.get("scope"), status=args.get("status"), limit=args.get("limit"))
    return records_response(m, todos, "No todos in scope.")


def handle_todo_today(args: Dict[str, Any], m: LLMMemory) -> str:
    return records_response(m, m.todo_today(scope=args.get("scope")), "Nothing due today.")


def handle_todo_update(args: Dict[str, Any], m: LLMMemory) -> str:
    todo = m.todo_update(args["key"], scope=args.get("scope"), **args["changes"])
    return f"Todo updated: [{todo.id}] {todo.title} ({todo.status})"


def handle_todo_set_status(args: Dict[str, Any], m: LLMMemory) -> str:
    todo = m.todo_set_status(args["key"], args["status"], scope=args.get("scope"))
    return f"Todo {todo.status}: [{todo.id}] {todo.title}"


def handle_todo_delete(args: Dict[str, Any], m: LLMMemory) -> str:
    record_id = m.todo_delete(args["key"], scope=args.get("scope"))
    return f"Todo deleted: {record_id}"


def handle_todo_final(args: Dict[str, Any], m: LLMMemory) -> str:
    return json.dumps({"deleted": m.todo_final(scope=args.get("scope"))})


def handle_todo_batch(args: Dict[str, Any], m: LLMMemory) -> str:
    return handle_batch(args, m, "todo")


# ---------------------------------------------------------------------------
# Registry dicts
# ---------------------------------------------------------------------------

HANDLERS = {
    "todo_create": handle_todo_create,
    "todo_get": handle_todo_get,
    "todo_list": handle_todo_list,
    "todo_today": handle_todo_today,
    "todo_update": handle_todo_update,
    "todo_set_status": handle_todo_set_status,
    "todo_delete": handle_todo_delete,
    "todo_final": handle_todo_final,
    "todo_batch": handle_todo_batch,
}

VALIDATORS = {
    "todo_create": validate_todo_create,
    "todo_get": validate_todo_key,
    "todo_list": validate_todo_list,
    "todo_today": validate_todo_scope_only,
    "todo_update": validate_todo_update,
    "todo_set_status": validate_todo_set_status,
    "todo_delete": validate_todo_key,
    "todo_final": validate_todo_final,
    "todo_batch": validate_todo_batch,
}
