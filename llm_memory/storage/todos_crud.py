"""Todo records: prioritized tasks with an optional due date."""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from llm_memory.errors import ValidationFailed
from llm_memory.types import (
    VALID_TASK_STATUS_VALUES,
    TaskStatus,
    Todo,
    TodoCreate,
    TodoPatch,
    VisibilityFilter,
    parse_datetime,
)

from .records import (
    MAX_TITLE_LENGTH,
    EntitySpec,
    _from_json,
    _to_json,
    check_task_transition,
    list_visible,
    optional_text,
    require_text,
    to_stored_date,
    validate_code,
    validate_date,
    validate_priority,
    validate_tags,
)
from .schema import validate_table_name
from .visibility import apply_visibility_filter

logger = logging.getLogger(__name__)


def _row_to_todo(row: sqlite3.Row) -> Todo:
    return Todo(
        id=row["id"],
        title=row["title"],
        code=row["code"],
        description=row["description"],
        priority=row["priority"],
        status=row["status"],
        due_date=parse_datetime(row["due_date"]),
        completed_at=parse_datetime(row["completed_at"]),
        tags=_from_json(row["tags"]) or [],
        is_global=bool(row["global"]),
        path_id=row["path_id"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def _create_columns(item: TodoCreate) -> Dict[str, Any]:
    return {
        "title": require_text("title", item.title, MAX_TITLE_LENGTH),
        "code": validate_code(item.code),
        "description": optional_text("description", item.description),
        "priority": validate_priority(item.priority),
        "status": TaskStatus.PENDING.value,
        "due_date": validate_date("due_date", item.due_date),
        "tags": _to_json(validate_tags(item.tags)),
    }


def _status_columns(row: sqlite3.Row, status: str, now: str) -> Dict[str, Any]:
    current = row["status"]
    check_task_transition(current, status)
    if current == status:
        return {}
    columns: Dict[str, Any] = {"status": status}
    if status == TaskStatus.COMPLETED.value:
        columns["completed_at"] = now
    elif current == TaskStatus.COMPLETED.value:
        columns["completed_at"] = None
    return columns


def _patch_columns(row: sqlite3.Row, changes: Dict[str, Any], now: str) -> Dict[str, Any]:
    columns: Dict[str, Any] = {}
    if "title" in changes:
        columns["title"] = require_text("title", changes["title"], MAX_TITLE_LENGTH)
    if "code" in changes:
        columns["code"] = validate_code(changes["code"])
    if "description" in changes:
        columns["description"] = optional_text("description", changes["description"])
    if "priority" in changes:
        columns["priority"] = validate_priority(changes["priority"])
    if "due_date" in changes:
        columns["due_date"] = validate_date("due_date", changes["due_date"])
    if "tags" in changes:
        columns["tags"] = _to_json(validate_tags(changes["tags"]))
    if "status" in changes:
        status = changes["status"]
        if status not in VALID_TASK_STATUS_VALUES:
            raise ValidationFailed(
                "status", f"must be one of {', '.join(sorted(VALID_TASK_STATUS_VALUES))}"
            )
        columns.update(_status_columns(row, status, now))
    return columns


TODO_SPEC = EntitySpec(
    kind="todo",
    table="todos",
    row_to_record=_row_to_todo,
    create_type=TodoCreate,
    patch_type=TodoPatch,
    create_columns=_create_columns,
    patch_columns=_patch_columns,
    status_columns=_status_columns,
    statuses=VALID_TASK_STATUS_VALUES,
    order_by="priority DESC, due_date IS NULL, due_date, created_at DESC, id DESC",
)


def list_todos(
    connect_fn: Callable,
    vfilter: VisibilityFilter,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Todo]:
    where = ""
    params: List[Any] = []
    if status:
        if status not in VALID_TASK_STATUS_VALUES:
            raise ValidationFailed(
                "status", f"must be one of {', '.join(sorted(VALID_TASK_STATUS_VALUES))}"
            )
        where = "status = ?"
        params.append(status)
    with connect_fn() as conn:
        rows = list_visible(conn, TODO_SPEC, vfilter, where, params, limit=limit)
    return [_row_to_todo(r) for r in rows]


def list_due_today(
    connect_fn: Callable,
    vfilter: VisibilityFilter,
    today: Optional[datetime] = None,
) -> List[Todo]:
    """Visible todos whose due date falls on the local calendar day ``today``."""
    local_now = (today or datetime.now().astimezone()).astimezone()
    start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    with connect_fn() as conn:
        rows = list_visible(
            conn,
            TODO_SPEC,
            vfilter,
            "due_date IS NOT NULL AND due_date >= ? AND due_date < ?",
            [to_stored_date(start), to_stored_date(end)],
        )
    return [_row_to_todo(r) for r in rows]


def delete_all_in_scope(conn: sqlite3.Connection, vfilter: VisibilityFilter) -> int:
    """Delete every non-global todo visible under ``vfilter``.

    Global todos are never removed this way, whatever the filter.
    """
    table = validate_table_name(TODO_SPEC.table)
    vis_sql, vis_params = apply_visibility_filter(vfilter)
    cursor = conn.execute(f"DELETE FROM {table} WHERE global = 0 AND {vis_sql}", vis_params)
    logger.info(f"Deleted {cursor.rowcount} todos in scope")
    return cursor.rowcount

