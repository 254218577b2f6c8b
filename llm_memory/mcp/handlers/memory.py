"""Handlers for memory tools: create, get, list, search, update, archive, delete, batch."""

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
    validate_key,
    validate_limit,
    validate_number,
    validate_scope,
)
from llm_memory.types import PRIORITY_MEDIUM, VALID_MEMORY_STATUS_VALUES

MEMORY_STATUSES = sorted(VALID_MEMORY_STATUS_VALUES)

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_memory_create(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["title"] = sanitize_string(arguments.get("title"), "title", 200, required=True)
    sanitized["content"] = sanitize_string(arguments.get("content"), "content", 50000, required=True)
    sanitized["code"] = sanitize_string(arguments.get("code"), "code", 64, required=False) or None
    sanitized["category"] = (
        sanitize_string(arguments.get("category"), "category", 50, required=False) or "default"
    )
    sanitized["priority"] = int(
        validate_number(arguments.get("priority"), "priority", 1, 4, PRIORITY_MEDIUM)
    )
    sanitized["tags"] = sanitize_array(arguments.get("tags"), "tags", 100, 20)
    sanitized["is_global"] = validate_bool(arguments.get("is_global"), "is_global")
    return sanitized


def validate_memory_key(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"key": validate_key(arguments.get("key")), "scope": validate_scope(arguments.get("scope"))}


def validate_memory_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["scope"] = validate_scope(arguments.get("scope"))
    sanitized["category"] = (
        sanitize_string(arguments.get("category"), "category", 50, required=False) or None
    )
    sanitized["include_archived"] = validate_bool(
        arguments.get("include_archived"), "include_archived"
    )
    sanitized["limit"] = validate_limit(arguments.get("limit"), 50)
    return sanitized


def validate_memory_search(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["keyword"] = sanitize_string(arguments.get("keyword"), "keyword", 200, required=True)
    sanitized["scope"] = validate_scope(arguments.get("scope"))
    sanitized["include_archived"] = validate_bool(
        arguments.get("include_archived"), "include_archived"
    )
    sanitized["limit"] = validate_limit(arguments.get("limit"), 20)
    return sanitized


def validate_memory_update(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = validate_memory_key(arguments)
    changes: Dict[str, Any] = {}
    if "title" in arguments:
        changes["title"] = sanitize_string(arguments["title"], "title", 200, required=False)
    if "content" in arguments:
        changes["content"] = sanitize_string(arguments["content"], "content", 50000, required=False)
    if "code" in arguments:
        changes["code"] = sanitize_string(arguments["code"], "code", 64, required=False) or None
    if "category" in arguments:
        changes["category"] = sanitize_string(arguments["category"], "category", 50, required=False)
    if "priority" in arguments:
        changes["priority"] = int(validate_number(arguments["priority"], "priority", 1, 4))
    if "tags" in arguments:
        changes["tags"] = sanitize_array(arguments["tags"], "tags", 100, 20)
    if "is_global" in arguments:
        changes["is_global"] = validate_bool(arguments["is_global"], "is_global")
    if not changes:
        raise ValueError("no fields to update")
    sanitized["changes"] = changes
    return sanitized


def validate_memory_batch(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return validate_batch(arguments, MEMORY_STATUSES)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_memory_create(args: Dict[str, Any], m: LLMMemory) -> str:
    memory = m.memory_create(
        title=args["title"],
        content=args["content"],
        code=args.get("code"),
        category=args.get("category", "default"),
        priority=args.get("priority", PRIORITY_MEDIUM),
        tags=args.get("tags") or None,
        is_global=args.get("is_global", False),
    )
    return f"Memory saved: [{memory.id}] {memory.title}"


def handle_memory_get(args: Dict[str, Any], m: LLMMemory) -> str:
    return record_response(m, m.memory_get(args["key"], scope=args.get("scope")))


def handle_memory_list(args: Dict[str, Any], m: LLMMemory) -> str:
    memories = m.memory_list(
        scope=args.get("scope"),
        category=args.get("category"),
        include_archived=args.get("include_archived", False),
        limit=args.get("limit"),
    )
    return records_response(m, memories, "No memories in scope.")


def handle_memory_search(args: Dict[str, Any], m: LLMMemory) -> str:
    memories = m.memory_search(
        args["keyword"],
        scope=args.get("scope"),
        include_archived=args.get("include_archived", False),
        limit=args.get("limit"),
    )
    return records_response(m, memories, f"No memories match '{args['keyword']}'.")


def handle_memory_update(args: Dict[str, Any], m: LLMMemory) -> str:
    memory = m.memory_update(args["key"], scope=args.get("scope"), **args["changes"])
    return f"Memory updated: [{memory.id}] {memory.title}"


def handle_memory_archive(args: Dict[str, Any], m: LLMMemory) -> str:
    memory = m.memory_archive(args["key"], scope=args.get("scope"))
    return f"Memory archived: [{memory.id}] {memory.title}"


def handle_memory_delete(args: Dict[str, Any], m: LLMMemory) -> str:
    record_id = m.memory_delete(args["key"], scope=args.get("scope"))
    return f"Memory deleted: {record_id}"


def handle_memory_batch(args: Dict[str, Any], m: LLMMemory) -> str:
    return handle_batch(args, m, "memory")


# ---------------------------------------------------------------------------
# Registry dicts
# ---------------------------------------------------------------------------

HANDLERS = {
    "memory_create": handle_memory_create,
    "memory_get": handle_memory_get,
    "memory_list": handle_memory_list,
    "memory_search": handle_memory_search,
    "memory_update": handle_memory_update,
    "memory_archive": handle_memory_archive,
    "memory_delete": handle_memory_delete,
    "memory_batch": handle_memory_batch,
}

VALIDATORS = {
    "memory_create": validate_memory_create,
    "memory_get": validate_memory_key,
    "memory_list": validate_memory_list,
    "memory_search": validate_memory_search,
    "memory_update": validate_memory_update,
    "memory_archive": validate_memory_key,
    "memory_delete": validate_memory_key,
    "memory_batch": validate_memory_batch,
}
