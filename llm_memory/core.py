"""
llm-memory core - scoped memories, plans and todos.

This module provides the main LLMMemory class, the single entry point used by
the CLI and the MCP server. Every call resolves a fresh ScopeContext from the
working directory, so group and path changes made by other processes are
picked up immediately.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from llm_memory.config import Settings
from llm_memory.errors import ValidationFailed
from llm_memory.features import GroupsMixin, MemoriesMixin, PlansMixin, TodosMixin
from llm_memory.scope import ScopeResolver, build_visibility_filter
from llm_memory.scope import describe_scope as _describe_scope
from llm_memory.storage import SQLiteStorage
from llm_memory.storage.records import (
    EntitySpec,
    create_record,
    delete_record,
    fetch_by_id,
    get_record,
    set_status,
    update_record,
)
from llm_memory.types import BatchResult, Key, Patch, Scope, ScopeContext, VisibilityFilter, utc_now

logger = logging.getLogger(__name__)


class LLMMemory(GroupsMixin, MemoriesMixin, PlansMixin, TodosMixin):
    """Scoped note storage for one working directory.

    Examples:
        mem = LLMMemory()  # settings from the environment, scope from cwd
        mem.memory_create("Build", "make release", code="build-notes")
        mem.memory_list(scope="personal")

        # Explicit database and directory (tests, tools)
        mem = LLMMemory(storage=SQLiteStorage(db_path), working_directory="/repo")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[SQLiteStorage] = None,
        working_directory: Optional[Union[str, Path]] = None,
    ):
        """Initialize LLMMemory.

        Args:
            settings: Runtime settings. Read from the environment if None.
            storage: Storage to use. Built from ``settings`` if None.
            working_directory: Directory that defines the caller's scope.
                Defaults to the process working directory at call time.
        """
        if storage is None:
            settings = settings or Settings.from_env()
            storage = SQLiteStorage(settings=settings)
        self._storage = storage
        self.settings = storage.settings
        self.working_directory = str(working_directory) if working_directory else None
        self._resolver = ScopeResolver(storage.paths, storage.groups, storage.transaction)

        logger.debug(
            f"LLMMemory initialized with database {storage.db_path}, "
            f"working directory {self.working_directory or '<cwd>'}"
        )

    @property
    def storage(self) -> SQLiteStorage:
        return self._storage

    # =========================================================================
    # SCOPE
    # =========================================================================

    def scope_context(self) -> ScopeContext:
        """Resolve the caller's ScopeContext. Not cached."""
        return self._resolver.resolve(self.working_directory)

    def visibility(
        self, scope: Union[Scope, str, None] = None, ctx: Optional[ScopeContext] = None
    ) -> VisibilityFilter:
        return build_visibility_filter(scope, ctx or self.scope_context())

    def describe_scope(self, record: Any, ctx: Optional[ScopeContext] = None) -> str:
        """``personal`` / ``group`` / ``global`` label for a record."""
        return _describe_scope(record, ctx or self.scope_context())

    # =========================================================================
    # SINGLE-RECORD OPERATIONS (shared by the entity mixins)
    # =========================================================================

    def _create(self, spec: EntitySpec, item: Any) -> Any:
        ctx = self.scope_context()
        with self._storage.transaction(write=True) as conn:
            try:
                record_id = create_record(
                    conn, spec, self._storage.ids.generate(), utc_now(), item, ctx
                )
            except sqlite3.IntegrityError as e:
                raise ValidationFailed("code", "already exists") from e
            row = fetch_by_id(conn, spec, record_id)
        logger.debug(f"Created {spec.kind} {record_id}")
        return spec.row_to_record(row)

    def _get(self, spec: EntitySpec, key: Key, scope: Union[Scope, str, None] = None) -> Any:
        return get_record(self._storage.transaction, spec, key, self.visibility(scope))

    def _update(self, spec: EntitySpec, patch: Patch, scope: Union[Scope, str, None] = None) -> Any:
        ctx = self.scope_context()
        vfilter = build_visibility_filter(scope, ctx)
        with self._storage.transaction(write=True) as conn:
            try:
                record_id = update_record(conn, spec, patch, vfilter, utc_now(), ctx)
            except sqlite3.IntegrityError as e:
                raise ValidationFailed("code", "already exists") from e
            row = fetch_by_id(conn, spec, record_id)
        return spec.row_to_record(row)

    def _set_status(
        self, spec: EntitySpec, key: Key, status: str, scope: Union[Scope, str, None] = None
    ) -> Any:
        vfilter = self.visibility(scope)
        with self._storage.transaction(write=True) as conn:
            record_id = set_status(conn, spec, key, status, vfilter, utc_now())
            row = fetch_by_id(conn, spec, record_id)
        return spec.row_to_record(row)

    def _delete(self, spec: EntitySpec, key: Key, scope: Union[Scope, str, None] = None) -> int:
        vfilter = self.visibility(scope)
        with self._storage.transaction(write=True) as conn:
            record_id = delete_record(conn, spec, key, vfilter)
        logger.debug(f"Deleted {spec.kind} {record_id}")
        return record_id

    # =========================================================================
    # BATCH OPERATIONS (shared by the entity mixins)
    # =========================================================================

    def _batch_create(
        self, spec: EntitySpec, items: Sequence[Any], deadline: Optional[float] = None
    ) -> BatchResult:
        return self._storage.batch.batch_create(spec, items, self.scope_context(), deadline)

    def _batch_update(
        self,
        spec: EntitySpec,
        items: Sequence[Any],
        scope: Union[Scope, str, None] = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        ctx = self.scope_context()
        return self._storage.batch.batch_update(
            spec, items, build_visibility_filter(scope, ctx), ctx, deadline
        )

    def _batch_set_status(
        self,
        spec: EntitySpec,
        keys: Sequence[Key],
        status: str,
        scope: Union[Scope, str, None] = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._storage.batch.batch_set_status(
            spec, keys, status, self.visibility(scope), deadline
        )

    def _batch_delete(
        self,
        spec: EntitySpec,
        keys: Sequence[Key],
        scope: Union[Scope, str, None] = None,
        deadline: Optional[float] = None,
    ) -> BatchResult:
        return self._storage.batch.batch_delete(spec, keys, self.visibility(scope), deadline)

    def _resolve_path(self, path: Optional[str]) -> str:
        """Explicit path, else the configured working directory, else cwd."""
        if path:
            return path
        if self.working_directory:
            return self.working_directory
        ctx = self.scope_context()
        if not ctx.current_path:
            raise ValidationFailed("path", "required (working directory unavailable)")
        return ctx.current_path
