"""Helpers shared by the record tool handlers: JSON rendering and batch dispatch."""

import json
from typing import Any, Dict, Iterable, List

from llm_memory.core import LLMMemory
from llm_memory.mcp.sanitize import (
    validate_batch_items,
    validate_enum,
    validate_key,
    validate_number,
    validate_scope,
)
from llm_memory.types import BatchResult, record_to_dict

BATCH_ACTIONS = ["create", "update", "set_status", "delete"]


def record_json(m: LLMMemory, record: Any, ctx=None) -> Dict[str, Any]:
    data = record_to_dict(record)
    data["scope"] = m.describe_scope(record, ctx)
    return data


def records_response(m: LLMMemory, records: Iterable[Any], empty: str) -> str:
    records = list(records)
    if not records:
        return empty
    ctx = m.scope_context()
    return json.dumps([record_json(m, r, ctx) for r in records], indent=2, default=str)


def record_response(m: LLMMemory, record: Any) -> str:
    return json.dumps(record_json(m, record), indent=2, default=str)


def batch_response(result: BatchResult) -> str:
    """Counts plus the ordered per-item errors."""
    return json.dumps(result.to_dict(), indent=2)


def validate_batch(arguments: Dict[str, Any], statuses: List[str]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["action"] = validate_enum(
        arguments.get("action"), "action", BATCH_ACTIONS, required=True
    )
    items = validate_batch_items(arguments.get("items"))
    if sanitized["action"] in ("set_status", "delete"):
        items = [validate_key(item, f"items[{i}]") for i, item in enumerate(items)]
        sanitized["status"] = validate_enum(
            arguments.get("status"),
            "status",
            statuses,
            required=sanitized["action"] == "set_status",
        )
    sanitized["items"] = items
    sanitized["scope"] = validate_scope(arguments.get("scope"))
    sanitized["timeout"] = validate_number(arguments.get("timeout"), "timeout", 0.1, 600)
    return sanitized


def handle_batch(args: Dict[str, Any], m: LLMMemory, kind: str) -> str:
    action = args["action"]
    deadline = args.get("timeout")
    if action == "create":
        result = getattr(m, f"{kind}_batch_create")(args["items"], deadline=deadline)
    elif action == "update":
        result = getattr(m, f"{kind}_batch_update")(
            args["items"], scope=args.get("scope"), deadline=deadline
        )
    elif action == "set_status":
        result = getattr(m, f"{kind}_batch_set_status")(
            args["items"], args["status"], scope=args.get("scope"), deadline=deadline
        )
    else:
        result = getattr(m, f"{kind}_batch_delete")(
            args["items"], scope=args.get("scope"), deadline=deadline
        )
    return batch_response(result)
