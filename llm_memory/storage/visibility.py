"""Translate a VisibilityFilter into a SQL predicate."""

from typing import List, Tuple

from llm_memory.types import VisibilityFilter

# Always-false predicate used when the filter admits nothing
MATCH_NOTHING = "1 = 0"


def apply_visibility_filter(vfilter: VisibilityFilter, alias: str = "") -> Tuple[str, List[int]]:
    """Build the WHERE fragment and parameters for ``vfilter``.

    The fragment is a disjunction of ``global = 1`` (when globals are
    included) and ``global = 0 AND path_id IN (...)`` (when non-global rows
    are included). With neither clause active the fragment is ``1 = 0`` so a
    query built from it returns no rows instead of scanning the table.

    Args:
        vfilter: The request's visibility filter.
        alias: Optional table alias to qualify columns with.

    Returns:
        ``(sql, params)``; ``sql`` is parenthesized and safe to AND into a
        larger WHERE clause.
    """
    prefix = f"{alias}." if alias else ""
    clauses: List[str] = []
    params: List[int] = []

    if vfilter.include_global:
        clauses.append(f"{prefix}global = 1")

    if vfilter.include_non_global and vfilter.path_ids:
        ids = sorted(vfilter.path_ids)
        placeholders = ", ".join("?" for _ in ids)
        clauses.append(f"({prefix}global = 0 AND {prefix}path_id IN ({placeholders}))")
        params.extend(ids)

    if not clauses:
        return f"({MATCH_NOTHING})", []
    return "(" + " OR ".join(clauses) + ")", params
