"""Memory records: notes with a category, priority and tags.

Memories are either active or archived. Archiving is a status transition,
so it goes through the same batch status path as plans and todos.
"""

import logging
import sqlite3
from typing import Any, Callable, Dict, List, Optional

from llm_memory.errors import ValidationFailed
from llm_memory.types import (
    VALID_MEMORY_STATUS_VALUES,
    Memory,
    MemoryCreate,
    MemoryPatch,
    MemoryStatus,
    VisibilityFilter,
    parse_datetime,
)

from .records import (
    MAX_TITLE_LENGTH,
    EntitySpec,
    _from_json,
    _to_json,
    list_visible,
    optional_text,
    require_text,
    validate_code,
    validate_priority,
    validate_tags,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "default"
MAX_CATEGORY_LENGTH = 50


def _row_to_memory(row: sqlite3.Row) -> Memory:
    return Memory(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        code=row["code"],
        category=row["category"],
        priority=row["priority"],
        tags=_from_json(row["tags"]) or [],
        status=row["status"],
        is_global=bool(row["global"]),
        path_id=row["path_id"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def _category(value: Any) -> str:
    category = optional_text("category", value) or DEFAULT_CATEGORY
    if len(category) > MAX_CATEGORY_LENGTH:
        raise ValidationFailed("category", f"too long (max {MAX_CATEGORY_LENGTH} characters)")
    return category


def _create_columns(item: MemoryCreate) -> Dict[str, Any]:
    return {
        "title": require_text("title", item.title, MAX_TITLE_LENGTH),
        "content": require_text("content", item.content),
        "code": validate_code(item.code),
        "category": _category(item.category),
        "priority": validate_priority(item.priority),
        "tags": _to_json(validate_tags(item.tags)),
        "status": MemoryStatus.ACTIVE.value,
    }


def _patch_columns(row: sqlite3.Row, changes: Dict[str, Any], now: str) -> Dict[str, Any]:
    columns: Dict[str, Any] = {}
    if "title" in changes:
        columns["title"] = require_text("title", changes["title"], MAX_TITLE_LENGTH)
    if "content" in changes:
        columns["content"] = require_text("content", changes["content"])
    if "code" in changes:
        columns["code"] = validate_code(changes["code"])
    if "category" in changes:
        columns["category"] = _category(changes["category"])
    if "priority" in changes:
        columns["priority"] = validate_priority(changes["priority"])
    if "tags" in changes:
        columns["tags"] = _to_json(validate_tags(changes["tags"]))
    return columns


def _status_columns(row: sqlite3.Row, status: str, now: str) -> Dict[str, Any]:
    if row["status"] == status:
        return {}
    return {"status": status}


MEMORY_SPEC = EntitySpec(
    kind="memory",
    table="memories",
    row_to_record=_row_to_memory,
    create_type=MemoryCreate,
    patch_type=MemoryPatch,
    create_columns=_create_columns,
    patch_columns=_patch_columns,
    status_columns=_status_columns,
    statuses=VALID_MEMORY_STATUS_VALUES,
    order_by="priority DESC, created_at DESC, id DESC",
)


def list_memories(
    connect_fn: Callable,
    vfilter: VisibilityFilter,
    category: Optional[str] = None,
    include_archived: bool = False,
    limit: Optional[int] = None,
) -> List[Memory]:
    """Visible memories, highest priority first."""
    where: List[str] = []
    params: List[Any] = []
    if category:
        where.append("category = ?")
        params.append(category.strip())
    if not include_archived:
        where.append("status = ?")
        params.append(MemoryStatus.ACTIVE.value)

    with connect_fn() as conn:
        rows = list_visible(conn, MEMORY_SPEC, vfilter, " AND ".join(where), params, limit=limit)
    return [_row_to_memory(r) for r in rows]


def search_memories(
    connect_fn: Callable,
    vfilter: VisibilityFilter,
    keyword: str,
    include_archived: bool = False,
    limit: Optional[int] = None,
) -> List[Memory]:
    """Case-insensitive substring search over title, content and tags."""
    keyword = (keyword or "").strip()
    if not keyword:
        raise ValidationFailed("keyword", "required")
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"

    where = (
        "(title LIKE ? ESCAPE '\\' OR content LIKE ? ESCAPE '\\' OR tags LIKE ? ESCAPE '\\')"
    )
    params: List[Any] = [pattern, pattern, pattern]
    if not include_archived:
        where += " AND status = ?"
        params.append(MemoryStatus.ACTIVE.value)

    with connect_fn() as conn:
        rows = list_visible(conn, MEMORY_SPEC, vfilter, where, params, limit=limit)
    logger.debug(f"Memory search {keyword!r} matched {len(rows)} rows")
    return [_row_to_memory(r) for r in rows]
