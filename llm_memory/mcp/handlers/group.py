"""Handlers for group tools: create, list, add/remove path, delete, current, scope."""

import json
from typing import Any, Dict

from llm_memory.core import LLMMemory
from llm_memory.mcp.sanitize import sanitize_string

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def _group_ref(arguments: Dict[str, Any]) -> str:
    return sanitize_string(arguments.get("group"), "group", 100, required=True).strip()


def validate_group_create(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["name"] = sanitize_string(arguments.get("name"), "name", 100, required=True)
    sanitized["description"] = sanitize_string(
        arguments.get("description"), "description", 1000, required=False
    )
    return sanitized


def validate_group_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {}


def validate_group_path(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["group"] = _group_ref(arguments)
    sanitized["path"] = sanitize_string(arguments.get("path"), "path", 4096, required=False) or None
    return sanitized


def validate_group_delete(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"group": _group_ref(arguments)}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_group_create(args: Dict[str, Any], m: LLMMemory) -> str:
    group = m.group_create(args["name"], args.get("description", ""))
    return f"Group created: {group.name} (id {group.id})"


def handle_group_list(args: Dict[str, Any], m: LLMMemory) -> str:
    groups = m.group_list()
    if not groups:
        return "No groups."
    return json.dumps([g.to_dict() for g in groups], indent=2, default=str)


def handle_group_add_path(args: Dict[str, Any], m: LLMMemory) -> str:
    record = m.group_add_path(args["group"], args.get("path"))
    return f"{record.path} is in group {args['group']}"


def handle_group_remove_path(args: Dict[str, Any], m: LLMMemory) -> str:
    if m.group_remove_path(args["group"], args.get("path")):
        return f"Path removed from {args['group']}"
    return f"Path was not in {args['group']}"


def handle_group_delete(args: Dict[str, Any], m: LLMMemory) -> str:
    m.group_delete(args["group"])
    return f"Group deleted: {args['group']} (records kept)"


def handle_group_current(args: Dict[str, Any], m: LLMMemory) -> str:
    group = m.group_current()
    if group is None:
        return "Current directory is not in a group."
    return json.dumps(group.to_dict(), indent=2, default=str)


def handle_scope_show(args: Dict[str, Any], m: LLMMemory) -> str:
    return json.dumps(m.scope_context().to_dict(), indent=2)


# ---------------------------------------------------------------------------
# Registry dicts
# ---------------------------------------------------------------------------

HANDLERS = {
    "group_create": handle_group_create,
    "group_list": handle_group_list,
    "group_add_path": handle_group_add_path,
    "group_remove_path": handle_group_remove_path,
    "group_delete": handle_group_delete,
    "group_current": handle_group_current,
    "scope_show": handle_scope_show,
}

VALIDATORS = {
    "group_create": validate_group_create,
    "group_list": validate_group_list,
    "group_add_path": validate_group_path,
    "group_remove_path": validate_group_path,
    "group_delete": validate_group_delete,
    "group_current": validate_group_list,
    "scope_show": validate_group_list,
}
