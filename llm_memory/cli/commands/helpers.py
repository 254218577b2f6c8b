"""Shared helper functions for CLI commands."""

import json
import re
import sys
from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from llm_memory.types import PRIORITY_NAMES, BatchResult, Key, ScopeContext, record_to_dict

if TYPE_CHECKING:
    from llm_memory import LLMMemory

SCOPE_CHOICES = ["personal", "group", "global", "all"]


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters)")

    # Remove null bytes and control characters except newlines
    sanitized = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)

    return sanitized


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def parse_key(value: str) -> Key:
    """Numeric strings are ids, anything else is a code."""
    value = validate_input(value, "key", 100).strip()
    return int(value) if value.isdigit() else value


def parse_tags(values: Optional[Iterable[str]]) -> Optional[List[str]]:
    if not values:
        return None
    tags: List[str] = []
    for value in values:
        tags.extend(t.strip() for t in validate_input(value, "tag", 200).split(",") if t.strip())
    return tags


def read_json_array(path: Optional[str]) -> List[Any]:
    """Read a JSON array from ``path`` or stdin (``None`` / ``-``)."""
    if not path or path == "-":
        raw = sys.stdin.read()
    else:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON input: {e}")
    if not isinstance(data, list):
        raise ValueError("Batch input must be a JSON array")
    return data


def print_batch_result(result: BatchResult, as_json: bool = False) -> None:
    """Show counts and the ordered per-item errors."""
    if as_json:
        print_json(result.to_dict())
        return
    print(f"Total: {result.total}  Succeeded: {result.succeeded}  Failed: {result.failed}")
    for error in result.errors:
        print(f"  ✗ {error}")


def record_json(m: "LLMMemory", record: Any, ctx: ScopeContext) -> dict:
    data = record_to_dict(record)
    data["scope"] = m.describe_scope(record, ctx)
    return data


def record_line(m: "LLMMemory", record: Any, ctx: ScopeContext) -> str:
    """One-line summary used by list commands."""
    label = m.describe_scope(record, ctx)
    code = f" {record.code}" if record.code else ""
    parts = [label]
    priority = getattr(record, "priority", None)
    if priority is not None:
        parts.append(PRIORITY_NAMES.get(priority, str(priority)))
    status = getattr(record, "status", None)
    if status:
        parts.append(status)
    if getattr(record, "is_overdue", False):
        parts.append("overdue")
    return f"[{record.id}]{code} {record.title} ({', '.join(parts)})"


def print_records(m: "LLMMemory", records: List[Any], as_json: bool, empty: str) -> None:
    ctx = m.scope_context()
    if as_json:
        print_json([record_json(m, r, ctx) for r in records])
        return
    if not records:
        print(empty)
        return
    for record in records:
        print(f"  {record_line(m, record, ctx)}")


def print_record(m: "LLMMemory", record: Any, as_json: bool) -> None:
    ctx = m.scope_context()
    if as_json:
        print_json(record_json(m, record, ctx))
        return
    print(record_line(m, record, ctx))
    for name, value in record_to_dict(record).items():
        if name in ("id", "title", "code") or value in (None, "", []):
            continue
        if name == "path_id" and record.is_global:
            continue
        print(f"  {name}: {value}")


def add_batch_parser(sub, kind: str, statuses: List[str]) -> None:
    """Register ``<kind> batch {create,update,status,delete}``."""
    p_batch = sub.add_parser("batch", help=f"Batch {kind} operations (JSON array input)")
    p_batch.add_argument("batch_action", choices=["create", "update", "status", "delete"])
    p_batch.add_argument(
        "--file", "-f", help="JSON file (default: stdin). Create/update take objects, "
        "status/delete take keys"
    )
    p_batch.add_argument("--status", choices=statuses, help="Target status (batch status)")
    p_batch.add_argument("--scope", "-s", choices=SCOPE_CHOICES, help="Restrict to scope")
    p_batch.add_argument("--timeout", type=float, help="Abort the batch after N seconds")
    p_batch.add_argument("--json", "-j", action="store_true")


def run_batch(args, m: "LLMMemory", kind: str) -> BatchResult:
    """Dispatch a batch subcommand to ``m.<kind>_batch_*``."""
    items = read_json_array(args.file)
    deadline = args.timeout
    if args.batch_action == "create":
        result = getattr(m, f"{kind}_batch_create")(items, deadline=deadline)
    elif args.batch_action == "update":
        result = getattr(m, f"{kind}_batch_update")(items, scope=args.scope, deadline=deadline)
    elif args.batch_action == "status":
        if not args.status:
            raise ValueError("--status is required for batch status")
        result = getattr(m, f"{kind}_batch_set_status")(
            items, args.status, scope=args.scope, deadline=deadline
        )
    else:
        result = getattr(m, f"{kind}_batch_delete")(items, scope=args.scope, deadline=deadline)
    print_batch_result(result, args.json)
    return result
