"""Scope-aware single-record operations shared by memories, plans and todos.

Each entity module describes itself with an ``EntitySpec``; the functions
here do the lookups and mutations against any spec. They all run on an open
connection so the batch executor can wrap each call in a savepoint, and
every lookup is constrained by a ``VisibilityFilter``: a row outside the
filter behaves exactly like a missing row.
"""

import json
import logging
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from llm_memory.errors import RecordNotFoundError, ValidationFailed
from llm_memory.types import (
    PRIORITY_LOW,
    PRIORITY_URGENT,
    Key,
    Patch,
    ScopeContext,
    TaskStatus,
    VisibilityFilter,
    parse_datetime,
)

from .schema import validate_table_name
from .visibility import apply_visibility_filter

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[a-z][a-z0-9\-]*[a-z0-9]$")
CODE_MIN_LENGTH = 3
CODE_MAX_LENGTH = 64
MAX_TITLE_LENGTH = 200
MAX_TAGS = 20
MAX_ID = 2**63 - 1


@dataclass(frozen=True)
class EntitySpec:
    """Describes one entity table to the generic record operations.

    Attributes:
        kind: Singular name used in messages ("memory", "plan", "todo").
        table: Table name (must be in the schema allow-list).
        row_to_record: Converts a row to the entity dataclass.
        create_type: Dataclass accepted by batch create (built from dicts).
        patch_type: Patch dataclass accepted by batch update.
        create_columns: Validates a create item, returns column values
            (without id, scope columns or timestamps).
        patch_columns: Validates patch changes against the current row,
            returns the columns to update.
        status_columns: Validates a status transition against the current
            row, returns the columns to update.
        statuses: Accepted status values.
        order_by: Default ORDER BY clause for listings.
    """

    kind: str
    table: str
    row_to_record: Callable[[sqlite3.Row], Any]
    create_type: type
    patch_type: type
    create_columns: Callable[[Any], Dict[str, Any]]
    patch_columns: Callable[[sqlite3.Row, Dict[str, Any], str], Dict[str, Any]]
    status_columns: Callable[[sqlite3.Row, str, str], Dict[str, Any]]
    statuses: FrozenSet[str]
    order_by: str = "created_at DESC, id DESC"


# === Serialization helpers ===


def _to_json(data: Any) -> Optional[str]:
    if data is None:
        return None
    return json.dumps(data)


def _from_json(s: Optional[str]) -> Any:
    if not s:
        return None
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        return None


# === Field validators ===


def require_text(field: str, value: Any, max_length: Optional[int] = None) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationFailed(field, "required")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationFailed(field, f"too long (max {max_length} characters)")
    return value


def optional_text(field: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationFailed(field, "must be a string")
    return value.strip()


def validate_code(value: Any) -> Optional[str]:
    """Normalize an optional code; None or blank means "no code"."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed("code", "must be a string")
    code = value.strip()
    if not code:
        return None
    if len(code) < CODE_MIN_LENGTH:
        raise ValidationFailed("code", f"too short (min {CODE_MIN_LENGTH} characters)")
    if len(code) > CODE_MAX_LENGTH:
        raise ValidationFailed("code", f"too long (max {CODE_MAX_LENGTH} characters)")
    if not CODE_PATTERN.match(code):
        raise ValidationFailed(
            "code",
            "must start with a lowercase letter and use only lowercase letters, digits and hyphens",
        )
    return code


def validate_priority(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValidationFailed("priority", "must be an integer")
    if not PRIORITY_LOW <= value <= PRIORITY_URGENT:
        raise ValidationFailed("priority", f"must be between {PRIORITY_LOW} and {PRIORITY_URGENT}")
    return value


def validate_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed("tags", "must be a list of strings")
    tags: List[str] = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValidationFailed("tags", "must be a list of strings")
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    if len(tags) > MAX_TAGS:
        raise ValidationFailed("tags", f"too many (max {MAX_TAGS})")
    return tags


def to_stored_date(value: datetime) -> str:
    """UTC, second precision, so stored dates compare correctly as text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def validate_date(field: str, value: Any) -> Optional[str]:
    """Accept a datetime or ISO string; return the stored ISO form."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_stored_date(value)
    if not isinstance(value, str):
        raise ValidationFailed(field, "must be an ISO date")
    try:
        return to_stored_date(parse_datetime(value.strip()))
    except ValueError:
        raise ValidationFailed(field, "must be an ISO date")


def validate_bool(field: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValidationFailed(field, "must be a boolean")


def check_task_transition(current: str, target: str) -> None:
    """Reject task status moves that make no sense.

    A cancelled task cannot be completed, and a completed task cannot be
    started or cancelled. Reopening (back to pending) is always allowed.
    """
    if current == target:
        return
    if current == TaskStatus.CANCELLED.value and target == TaskStatus.COMPLETED.value:
        raise ValidationFailed("status", "cannot complete a cancelled task")
    if current == TaskStatus.COMPLETED.value and target in (
        TaskStatus.IN_PROGRESS.value,
        TaskStatus.CANCELLED.value,
    ):
        raise ValidationFailed("status", f"cannot move a completed task to {target}")


# === Keys and scope ===


def key_clause(key: Key) -> Tuple[str, Any]:
    """Column and value addressing ``key``: digits are ids, anything else a code."""
    if isinstance(key, bool):
        raise ValidationFailed("key", "must be an id or a code")
    if isinstance(key, int):
        if key <= 0:
            raise ValidationFailed("key", "must be a positive id")
        if key > MAX_ID:
            raise ValidationFailed("key", "out of range")
        return "id", key
    if isinstance(key, str):
        stripped = key.strip()
        if not stripped:
            raise ValidationFailed("key", "required")
        if stripped.isdigit():
            return key_clause(int(stripped))
        return "code", stripped
    raise ValidationFailed("key", "must be an id or a code")


def scope_columns(is_global: Any, ctx: ScopeContext) -> Tuple[int, int]:
    """(global, path_id) for a new record created from ``ctx``.

    Global records still store the creator's path id for audit. A
    non-global record needs a known path.
    """
    if validate_bool("global", is_global):
        return 1, max(ctx.path_id, 0)
    if ctx.path_id <= 0:
        raise ValidationFailed("scope", "requires a known working directory (or set global)")
    return 0, ctx.path_id


def _ensure_code_free(
    conn: sqlite3.Connection, spec: EntitySpec, code: str, exclude_id: Optional[int] = None
) -> None:
    table = validate_table_name(spec.table)
    row = conn.execute(f"SELECT id FROM {table} WHERE code = ?", (code,)).fetchone()
    if row is not None and row["id"] != exclude_id:
        raise ValidationFailed("code", "already exists")


# === Reads ===


def fetch_visible(
    conn: sqlite3.Connection, spec: EntitySpec, key: Key, vfilter: VisibilityFilter
) -> Optional[sqlite3.Row]:
    table = validate_table_name(spec.table)
    column, value = key_clause(key)
    vis_sql, vis_params = apply_visibility_filter(vfilter)
    return conn.execute(
        f"SELECT * FROM {table} WHERE {column} = ? AND {vis_sql}",
        [value, *vis_params],
    ).fetchone()


def require_visible(
    conn: sqlite3.Connection, spec: EntitySpec, key: Key, vfilter: VisibilityFilter
) -> sqlite3.Row:
    row = fetch_visible(conn, spec, key, vfilter)
    if row is None:
        raise RecordNotFoundError(spec.kind, key)
    return row


def fetch_by_id(conn: sqlite3.Connection, spec: EntitySpec, record_id: int) -> Optional[sqlite3.Row]:
    """Unfiltered lookup; only for re-reading a row the caller just mutated."""
    table = validate_table_name(spec.table)
    return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()


def get_record(connect_fn: Callable, spec: EntitySpec, key: Key, vfilter: VisibilityFilter) -> Any:
    """Load one visible record as its dataclass. Raises ``RecordNotFoundError``."""
    with connect_fn() as conn:
        row = require_visible(conn, spec, key, vfilter)
    return spec.row_to_record(row)


def list_visible(
    conn: sqlite3.Connection,
    spec: EntitySpec,
    vfilter: VisibilityFilter,
    where: str = "",
    params: Sequence[Any] = (),
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[sqlite3.Row]:
    """Rows visible under ``vfilter``, optionally narrowed by ``where``."""
    table = validate_table_name(spec.table)
    vis_sql, vis_params = apply_visibility_filter(vfilter)
    sql = f"SELECT * FROM {table} WHERE {vis_sql}"
    args: List[Any] = list(vis_params)
    if where:
        sql += f" AND ({where})"
        args.extend(params)
    sql += f" ORDER BY {order_by or spec.order_by}"
    if limit is not None:
        sql += " LIMIT ?"
        args.append(limit)
    return conn.execute(sql, args).fetchall()


# === Mutations ===


def create_record(
    conn: sqlite3.Connection,
    spec: EntitySpec,
    record_id: int,
    now: str,
    item: Any,
    ctx: ScopeContext,
) -> int:
    """Validate and insert one record. Raises ``ValidationFailed``."""
    columns = spec.create_columns(item)
    is_global, path_id = scope_columns(getattr(item, "is_global", False), ctx)
    if columns.get("code"):
        _ensure_code_free(conn, spec, columns["code"])

    columns.update(
        {
            "id": record_id,
            "global": is_global,
            "path_id": path_id,
            "created_at": now,
            "updated_at": now,
        }
    )
    table = validate_table_name(spec.table)
    names = list(columns)
    conn.execute(
        f"INSERT INTO {table} ({', '.join(names)}) VALUES ({', '.join('?' for _ in names)})",
        [columns[n] for n in names],
    )
    return record_id


def _update_columns(
    conn: sqlite3.Connection, spec: EntitySpec, record_id: int, columns: Dict[str, Any], now: str
) -> None:
    table = validate_table_name(spec.table)
    columns = dict(columns)
    columns["updated_at"] = now
    assignments = ", ".join(f"{name} = ?" for name in columns)
    conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        [*columns.values(), record_id],
    )


def update_record(
    conn: sqlite3.Connection,
    spec: EntitySpec,
    patch: Patch,
    vfilter: VisibilityFilter,
    now: str,
    ctx: Optional[ScopeContext] = None,
) -> int:
    """Apply the fields present in ``patch`` to a visible record.

    Absent fields are left untouched. Turning a global record private binds
    it to its stored path, or to ``ctx``'s path when it has none.
    """
    row = require_visible(conn, spec, patch.key, vfilter)
    changes = patch.changes()

    scope_change = {}
    if "is_global" in changes:
        make_global = validate_bool("global", changes.pop("is_global"))
        if make_global:
            scope_change["global"] = 1
        else:
            path_id = row["path_id"]
            if path_id <= 0 and ctx is not None:
                path_id = ctx.path_id
            if path_id <= 0:
                raise ValidationFailed("scope", "requires a known working directory (or set global)")
            scope_change.update({"global": 0, "path_id": path_id})

    columns = spec.patch_columns(row, changes, now)
    columns.update(scope_change)

    if "code" in columns and columns["code"]:
        _ensure_code_free(conn, spec, columns["code"], exclude_id=row["id"])

    if columns:
        _update_columns(conn, spec, row["id"], columns, now)
    return row["id"]


def set_status(
    conn: sqlite3.Connection,
    spec: EntitySpec,
    key: Key,
    status: str,
    vfilter: VisibilityFilter,
    now: str,
) -> int:
    """Move a visible record to ``status``, stamping timestamps as needed."""
    if status not in spec.statuses:
        raise ValidationFailed("status", f"must be one of {', '.join(sorted(spec.statuses))}")
    row = require_visible(conn, spec, key, vfilter)
    columns = spec.status_columns(row, status, now)
    if columns:
        _update_columns(conn, spec, row["id"], columns, now)
    return row["id"]


def delete_record(
    conn: sqlite3.Connection, spec: EntitySpec, key: Key, vfilter: VisibilityFilter
) -> int:
    """Delete a visible record. Zero rows affected counts as not found."""
    table = validate_table_name(spec.table)
    column, value = key_clause(key)
    vis_sql, vis_params = apply_visibility_filter(vfilter)
    row = conn.execute(
        f"SELECT id FROM {table} WHERE {column} = ? AND {vis_sql}",
        [value, *vis_params],
    ).fetchone()
    if row is None:
        raise RecordNotFoundError(spec.kind, key)
    cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row["id"],))
    if cursor.rowcount == 0:
        raise RecordNotFoundError(spec.kind, key)
    return row["id"]
