"""Batch mutation executor.

Runs a homogeneous list of create / update / status / delete requests for one
entity type inside a single write transaction. Each item gets its own
savepoint: a validation or business failure rolls back just that item and is
reported in the result, while any other ``sqlite3`` error aborts the whole
transaction and propagates as ``StorageFailure``.
"""

import logging
import sqlite3
from typing import Any, Callable, Optional, Sequence

from llm_memory.errors import (
    BatchTooLargeError,
    EmptyBatchError,
    LLMMemoryError,
    StorageFailure,
    ValidationFailed,
)
from llm_memory.types import (
    MAX_BATCH_SIZE,
    BatchResult,
    Key,
    Patch,
    ScopeContext,
    VisibilityFilter,
)

from .records import EntitySpec, create_record, delete_record, set_status, update_record

logger = logging.getLogger(__name__)

_SAVEPOINT = "batch_item"


def check_batch_size(items: Sequence[Any], limit: int = MAX_BATCH_SIZE) -> None:
    """Reject empty and oversized batches before anything is touched."""
    if not items:
        raise EmptyBatchError()
    if len(items) > limit:
        raise BatchTooLargeError(len(items), limit)


def _item_message(error: Exception) -> str:
    if isinstance(error, sqlite3.IntegrityError):
        text = str(error)
        if "UNIQUE" in text and ".code" in text:
            return "code already exists"
        return f"constraint failed ({text})"
    return str(error)


def _as_create(spec: EntitySpec, item: Any) -> Any:
    if isinstance(item, spec.create_type):
        return item
    return spec.create_type.from_dict(item)


def _as_patch(spec: EntitySpec, item: Any) -> Patch:
    if isinstance(item, spec.patch_type):
        return item
    return spec.patch_type.from_dict(item)


class BatchExecutor:
    """Executes batches against one storage.

    Args:
        connect_fn: Context manager factory ``connect_fn(write=bool, deadline=float)``.
        id_fn: Returns a fresh snowflake id.
        now_fn: Returns current UTC timestamp as ISO string.
        max_size: Largest accepted batch.
    """

    def __init__(
        self,
        connect_fn: Callable,
        id_fn: Callable[[], int],
        now_fn: Callable[[], str],
        max_size: int = MAX_BATCH_SIZE,
    ):
        self._connect = connect_fn
        self._new_id = id_fn
        self._now = now_fn
        self.max_size = max_size

    def _run(
        self,
        spec: EntitySpec,
        action: str,
        items: Sequence[Any],
        apply: Callable[[sqlite3.Connection, Any, str], Optional[int]],
        deadline: Optional[float] = None,
    ) -> BatchResult:
        result = BatchResult(total=len(items))
        with self._connect(write=True, deadline=deadline) as conn:
            now = self._now()
            for position, item in enumerate(items, start=1):
                conn.execute(f"SAVEPOINT {_SAVEPOINT}")
                try:
                    record_id = apply(conn, item, now)
                except StorageFailure:
                    raise
                except (LLMMemoryError, ValueError, sqlite3.IntegrityError) as e:
                    conn.execute(f"ROLLBACK TO SAVEPOINT {_SAVEPOINT}")
                    conn.execute(f"RELEASE SAVEPOINT {_SAVEPOINT}")
                    message = _item_message(e)
                    result.record_failure(position, message)
                    logger.debug(f"Batch {spec.kind} {action} item {position} failed: {message}")
                    continue
                conn.execute(f"RELEASE SAVEPOINT {_SAVEPOINT}")
                result.record_success(record_id)

        log = logger.warning if result.failed else logger.info
        log(
            f"Batch {spec.kind} {action}: {result.succeeded}/{result.total} succeeded"
            f", {result.failed} failed"
        )
        return result

    def batch_create(
        self,
        spec: EntitySpec,
        items: Sequence[Any],
        ctx: ScopeContext,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        """Insert each valid item with a fresh id; invalid items are skipped.

        Items may be ``spec.create_type`` instances or plain dicts.
        """
        check_batch_size(items, self.max_size)

        def apply(conn, item, now):
            return create_record(conn, spec, self._new_id(), now, _as_create(spec, item), ctx)

        return self._run(spec, "create", items, apply, deadline)

    def batch_update(
        self,
        spec: EntitySpec,
        patches: Sequence[Any],
        vfilter: VisibilityFilter,
        ctx: Optional[ScopeContext] = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        """Apply only the fields present in each patch to visible records."""
        check_batch_size(patches, self.max_size)

        def apply(conn, item, now):
            return update_record(conn, spec, _as_patch(spec, item), vfilter, now, ctx)

        return self._run(spec, "update", patches, apply, deadline)

    def batch_set_status(
        self,
        spec: EntitySpec,
        keys: Sequence[Key],
        status: str,
        vfilter: VisibilityFilter,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        """Move each visible record to ``status``.

        An unknown status is a caller error and is rejected up front.
        """
        check_batch_size(keys, self.max_size)
        status = getattr(status, "value", status)
        if status not in spec.statuses:
            raise ValidationFailed("status", f"must be one of {', '.join(sorted(spec.statuses))}")

        def apply(conn, key, now):
            return set_status(conn, spec, key, status, vfilter, now)

        return self._run(spec, f"set-status {status}", keys, apply, deadline)

    def batch_delete(
        self,
        spec: EntitySpec,
        keys: Sequence[Key],
        vfilter: VisibilityFilter,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        """Delete each visible record; missing rows count as failures."""
        check_batch_size(keys, self.max_size)

        def apply(conn, key, now):
            return delete_record(conn, spec, key, vfilter)

        return self._run(spec, "delete", keys, apply, deadline)

