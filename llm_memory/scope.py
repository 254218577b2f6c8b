"""Scope resolution and visibility filter construction.

``ScopeResolver.resolve`` turns a working directory into a ``ScopeContext``;
``build_visibility_filter`` turns a scope keyword plus that context into the
``VisibilityFilter`` applied to every query. Contexts are computed per request
and never cached, since path and group membership can change between calls.
"""

import logging
import os
from typing import Any, Callable, Optional, Union

from llm_memory.storage.groups import GroupRegistry
from llm_memory.storage.paths import PathRegistry
from llm_memory.types import Scope, ScopeContext, VisibilityFilter, merge_path_ids

logger = logging.getLogger(__name__)


class ScopeResolver:
    """Resolve the caller's identity from a working directory.

    Args:
        paths: Path registry (normalization and upsert).
        groups: Group registry (membership lookup).
        connect_fn: Context manager factory ``connect_fn(write=bool)``.
    """

    def __init__(self, paths: PathRegistry, groups: GroupRegistry, connect_fn: Callable):
        self._paths = paths
        self._groups = groups
        self._connect = connect_fn

    def resolve(self, working_directory: Optional[str] = None) -> ScopeContext:
        """Build the ScopeContext for ``working_directory`` (default: the process cwd).

        A first-time path is registered so it always yields a usable path id.
        When no working directory can be determined the result is the
        global-only context; this never raises for that case.
        """
        raw = working_directory
        if raw is None:
            try:
                raw = os.getcwd()
            except OSError as e:
                logger.warning(f"Working directory unavailable ({e}); scope limited to global data")
                return ScopeContext.global_only()
        if not str(raw).strip():
            logger.warning("Empty working directory; scope limited to global data")
            return ScopeContext.global_only()

        canonical = self._paths.normalize(str(raw))
        with self._connect(write=True) as conn:
            record = self._paths.ensure_in(conn, canonical)
            membership = self._groups.membership(conn, record.id)

        if membership is None:
            return ScopeContext(path_id=record.id, current_path=canonical)

        group_id, group_name, sibling_ids = membership
        return ScopeContext(
            path_id=record.id,
            group_path_ids=sibling_ids,
            include_global=True,
            current_path=canonical,
            group_id=group_id,
            group_name=group_name,
        )


def build_visibility_filter(
    scope: Union[Scope, str, None], ctx: ScopeContext
) -> VisibilityFilter:
    """Derive the visibility filter for a scope keyword.

    Rules, first match wins:

    - ``global``: global rows only
    - ``personal``: rows of ``ctx.path_id``; nothing when the path is unknown
    - ``group``: rows of the group's paths; nothing without a group
    - ``all`` / unspecified: global rows plus the path and group rows. With
      neither a path nor a group this degrades to global-only.

    Unknown keywords parse as ``global``. Non-global rows are only ever
    admitted through a non-empty set of path ids.
    """
    parsed = Scope.parse(scope)

    if parsed is Scope.GLOBAL:
        return VisibilityFilter(include_global=True)

    if parsed is Scope.PERSONAL:
        if ctx.path_id > 0:
            return VisibilityFilter(include_non_global=True, path_ids=frozenset({ctx.path_id}))
        return VisibilityFilter()

    if parsed is Scope.GROUP:
        if ctx.group_path_ids:
            return VisibilityFilter(include_non_global=True, path_ids=ctx.group_path_ids)
        return VisibilityFilter()

    path_ids = merge_path_ids(ctx.path_id, ctx.group_path_ids)
    if not path_ids:
        logger.debug("No path or group in scope; 'all' limited to global data")
    return VisibilityFilter(
        include_global=True,
        include_non_global=bool(path_ids),
        path_ids=path_ids,
    )


def describe_scope(record: Any, ctx: ScopeContext) -> str:
    """Display label for where a record lives relative to the caller."""
    if record.is_global:
        return Scope.GLOBAL.value
    if ctx.path_id > 0 and record.path_id == ctx.path_id:
        return Scope.PERSONAL.value
    if record.path_id in ctx.group_path_ids:
        return Scope.GROUP.value
    return "other"
