"""Handlers for plan tools."""

from typing import Any, Dict

from llm_memory.core import LLMMemory
from llm_memory.mcp.handlers.common import (
    handle_batch,
    record_response,
    records_response,
    validate_batch,
)
from llm_memory.mcp.sanitize import (
    sanitize_string,
    validate_bool,
    validate_enum,
    validate_key,
    validate_limit,
    validate_number,
    validate_scope,
)
from llm_memory.types import VALID_TASK_STATUS_VALUES

TASK_STATUSES = sorted(VALID_TASK_STATUS_VALUES)

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_plan_create(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["title"] = sanitize_string(arguments.get("title"), "title", 200, required=True)
    sanitized["code"] = sanitize_string(arguments.get("code"), "code", 64, required=False) or None
    sanitized["description"] = sanitize_string(
        arguments.get("description"), "description", 5000, required=False
    )
    sanitized["content"] = sanitize_string(arguments.get("content"), "content", 50000, required=False)
    sanitized["is_global"] = validate_bool(arguments.get("is_global"), "is_global")
    return sanitized


def validate_plan_key(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"key": validate_key(arguments.get("key")), "scope": validate_scope(arguments.get("scope"))}


def validate_plan_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "scope": validate_scope(arguments.get("scope")),
        "status": validate_enum(arguments.get("status"), "status", TASK_STATUSES),
        "limit": validate_limit(arguments.get("limit"), 50),
    }


def validate_plan_update(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = validate_plan_key(arguments)
    changes: Dict[str, Any] = {}
    if "title" in arguments:
        changes["title"] = sanitize_string(arguments["title"], "title", 200, required=False)
    if "code" in arguments:
        changes["code"] = sanitize_string(arguments["code"], "code", 64, required=False) or None
    if "description" in arguments:
        changes["description"] = sanitize_string(
            arguments["description"], "description", 5000, required=False
        )
    if "content" in arguments:
        changes["content"] = sanitize_string(arguments["content"], "content", 50000, required=False)
    if "progress" in arguments:
        changes["progress"] = int(validate_number(arguments["progress"], "progress", 0, 100))
    if "is_global" in arguments:
        changes["is_global"] = validate_bool(arguments["is_global"], "is_global")
    if not changes:
        raise ValueError("no fields to update")
    sanitized["changes"] = changes
    return sanitized


def validate_plan_set_status(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = validate_plan_key(arguments)
    sanitized["status"] = validate_enum(
        arguments.get("status"), "status", TASK_STATUSES, required=True
    )
    return sanitized


def validate_plan_batch(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return validate_batch(arguments, TASK_STATUSES)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_plan_create(args: Dict[str, Any], m: LLMMemory) -> str:
    plan = m.plan_create(
        title=args["title"],
        code=args.get("code"),
        description=args.get("description", ""),
        content=args.get("content", ""),
        is_global=args.get("is_global", False),
    )
    return f"Plan created: [{plan.id}] {plan.title}"


def handle_plan_get(args: Dict[str, Any], m: LLMMemory) -> str:
    return record_response(m, m.plan_get(args["key"], scope=args.get("scope")))


def handle_plan_list(args: Dict[str, Any], m: LLMMemory) -> str:
    plans = m.plan_list(scope=args.get("scope"), status=args.get("status"), limit=args.get("limit"))
    return records_response(m, plans, "No plans in scope.")


def handle_plan_update(args: Dict[str, Any], m: LLMMemory) -> str:
    plan = m.plan_update(args["key"], scope=args.get("scope"), **args["changes"])
    return f"Plan updated: [{plan.id}] {plan.title} ({plan.status}, {plan.progress}%)"


def handle_plan_set_status(args: Dict[str, Any], m: LLMMemory) -> str:
    plan = m.plan_set_status(args["key"], args["status"], scope=args.get("scope"))
    return f"Plan {plan.status}: [{plan.id}] {plan.title}"


def handle_plan_delete(args: Dict[str, Any], m: LLMMemory) -> str:
    record_id = m.plan_delete(args["key"], scope=args.get("scope"))
    return f"Plan deleted: {record_id}"


def handle_plan_batch(args: Dict[str, Any], m: LLMMemory) -> str:
    return handle_batch(args, m, "plan")


# ---------------------------------------------------------------------------
# Registry dicts
# ---------------------------------------------------------------------------

HANDLERS = {
    "plan_create": handle_plan_create,
    "plan_get": handle_plan_get,
    "plan_list": handle_plan_list,
    "plan_update": handle_plan_update,
    "plan_set_status": handle_plan_set_status,
    "plan_delete": handle_plan_delete,
    "plan_batch": handle_plan_batch,
}

VALIDATORS = {
    "plan_create": validate_plan_create,
    "plan_get": validate_plan_key,
    "plan_list": validate_plan_list,
    "plan_update": validate_plan_update,
    "plan_set_status": validate_plan_set_status,
    "plan_delete": validate_plan_key,
    "plan_batch": validate_plan_batch,
}
