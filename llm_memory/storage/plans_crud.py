"""Plan records.

A plan's ``progress`` (0-100) and ``status`` move together: progress 0 is
pending, 1-99 in progress and 100 completed. Setting either one keeps the
other consistent and stamps ``start_date`` / ``end_date``.
"""

import logging
import sqlite3
from typing import Any, Callable, Dict, List, Optional

from llm_memory.errors import ValidationFailed
from llm_memory.types import (
    VALID_TASK_STATUS_VALUES,
    Plan,
    PlanCreate,
    PlanPatch,
    TaskStatus,
    VisibilityFilter,
    parse_datetime,
)

from .records import (
    MAX_TITLE_LENGTH,
    EntitySpec,
    check_task_transition,
    list_visible,
    optional_text,
    require_text,
    validate_code,
)

logger = logging.getLogger(__name__)


def _row_to_plan(row: sqlite3.Row) -> Plan:
    return Plan(
        id=row["id"],
        title=row["title"],
        code=row["code"],
        description=row["description"],
        content=row["content"],
        status=row["status"],
        progress=row["progress"],
        start_date=parse_datetime(row["start_date"]),
        end_date=parse_datetime(row["end_date"]),
        is_global=bool(row["global"]),
        path_id=row["path_id"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def validate_progress(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationFailed("progress", "must be an integer")
    try:
        progress = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed("progress", "must be an integer")
    if not 0 <= progress <= 100:
        raise ValidationFailed("progress", "must be between 0 and 100")
    return progress


def status_for_progress(progress: int) -> str:
    if progress <= 0:
        return TaskStatus.PENDING.value
    if progress >= 100:
        return TaskStatus.COMPLETED.value
    return TaskStatus.IN_PROGRESS.value


def _create_columns(item: PlanCreate) -> Dict[str, Any]:
    return {
        "title": require_text("title", item.title, MAX_TITLE_LENGTH),
        "code": validate_code(item.code),
        "description": optional_text("description", item.description),
        "content": optional_text("content", item.content),
        "status": TaskStatus.PENDING.value,
        "progress": 0,
    }


def _progress_columns(row: sqlite3.Row, progress: int, now: str) -> Dict[str, Any]:
    if row["status"] == TaskStatus.CANCELLED.value:
        raise ValidationFailed("progress", "cannot change progress of a cancelled plan")
    status = status_for_progress(progress)
    columns: Dict[str, Any] = {"progress": progress, "status": status}
    if status != TaskStatus.PENDING.value and not row["start_date"]:
        columns["start_date"] = now
    if status == TaskStatus.COMPLETED.value:
        if row["status"] != TaskStatus.COMPLETED.value:
            columns["end_date"] = now
    else:
        columns["end_date"] = None
    return columns


def _patch_columns(row: sqlite3.Row, changes: Dict[str, Any], now: str) -> Dict[str, Any]:
    columns: Dict[str, Any] = {}
    if "title" in changes:
        columns["title"] = require_text("title", changes["title"], MAX_TITLE_LENGTH)
    if "code" in changes:
        columns["code"] = validate_code(changes["code"])
    if "description" in changes:
        columns["description"] = optional_text("description", changes["description"])
    if "content" in changes:
        columns["content"] = optional_text("content", changes["content"])
    if "progress" in changes:
        columns.update(_progress_columns(row, validate_progress(changes["progress"]), now))
    return columns


def _status_columns(row: sqlite3.Row, status: str, now: str) -> Dict[str, Any]:
    current = row["status"]
    check_task_transition(current, status)
    if current == status:
        return {}

    columns: Dict[str, Any] = {"status": status}
    if status == TaskStatus.IN_PROGRESS.value:
        if not row["start_date"]:
            columns["start_date"] = now
    elif status == TaskStatus.COMPLETED.value:
        columns["progress"] = 100
        columns["end_date"] = now
        if not row["start_date"]:
            columns["start_date"] = now
    elif status == TaskStatus.PENDING.value:
        columns["progress"] = 0
        if current == TaskStatus.COMPLETED.value:
            columns["end_date"] = None
    return columns


PLAN_SPEC = EntitySpec(
    kind="plan",
    table="plans",
    row_to_record=_row_to_plan,
    create_type=PlanCreate,
    patch_type=PlanPatch,
    create_columns=_create_columns,
    patch_columns=_patch_columns,
    status_columns=_status_columns,
    statuses=VALID_TASK_STATUS_VALUES,
)


def list_plans(
    connect_fn: Callable,
    vfilter: VisibilityFilter,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Plan]:
    where = ""
    params: List[Any] = []
    if status:
        if status not in VALID_TASK_STATUS_VALUES:
            raise ValidationFailed("status", f"must be one of {', '.join(sorted(VALID_TASK_STATUS_VALUES))}")
        where = "status = ?"
        params.append(status)
    with connect_fn() as conn:
        rows = list_visible(conn, PLAN_SPEC, vfilter, where, params, limit=limit)
    return [_row_to_plan(r) for r in rows]
