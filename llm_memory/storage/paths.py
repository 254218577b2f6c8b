"""Path registry: the set of canonical working directories ever seen.

All functions receive dependencies explicitly (connection factory, id
generator, clock) so the registry can be driven from any storage wiring.
"""

import logging
import os
import sqlite3
from typing import Callable, List, Optional

from llm_memory.types import PathRecord, parse_datetime

logger = logging.getLogger(__name__)


def normalize_path(raw_path: str, resolve_symlinks: bool = False) -> str:
    """Canonicalize a directory path.

    Expands ``~``, makes the path absolute and collapses ``.``/``..``.
    If normalization fails the raw string is returned unchanged so callers
    degrade instead of aborting.
    """
    try:
        expanded = os.path.expanduser(raw_path)
        if resolve_symlinks:
            return os.path.realpath(expanded)
        return os.path.normpath(os.path.abspath(expanded))
    except (OSError, ValueError, TypeError) as e:
        logger.warning(f"Could not normalize path {raw_path!r}: {e}")
        return raw_path


def row_to_path(row: sqlite3.Row) -> PathRecord:
    return PathRecord(
        id=row["id"],
        path=row["path"],
        last_seen_at=parse_datetime(row["last_seen_at"]),
        created_at=parse_datetime(row["created_at"]),
    )


class PathRegistry:
    """Insert-or-touch registry of canonical paths.

    Args:
        connect_fn: Context manager factory ``connect_fn(write=bool)`` yielding
            a connection inside a transaction.
        id_fn: Returns a fresh snowflake id.
        now_fn: Returns current UTC timestamp as ISO string.
        resolve_symlinks: Resolve symlinks during normalization.
    """

    def __init__(
        self,
        connect_fn: Callable,
        id_fn: Callable[[], int],
        now_fn: Callable[[], str],
        resolve_symlinks: bool = False,
    ):
        self._connect = connect_fn
        self._new_id = id_fn
        self._now = now_fn
        self.resolve_symlinks = resolve_symlinks

    def normalize(self, raw_path: str) -> str:
        return normalize_path(raw_path, self.resolve_symlinks)

    def ensure(self, raw_path: str) -> PathRecord:
        """Return the Path for ``raw_path``, creating it on first sight.

        Existing rows get ``last_seen_at`` bumped (last write wins). The upsert
        is a single statement, so concurrent callers for the same path end up
        sharing one row.
        """
        path = self.normalize(raw_path)
        with self._connect(write=True) as conn:
            return self.ensure_in(conn, path)

    def ensure_in(self, conn: sqlite3.Connection, canonical_path: str) -> PathRecord:
        """Upsert an already-normalized path inside an open transaction."""
        now = self._now()
        conn.execute(
            """
            INSERT INTO paths (id, path, last_seen_at, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET last_seen_at = excluded.last_seen_at
            """,
            (self._new_id(), canonical_path, now, now),
        )
        row = conn.execute("SELECT * FROM paths WHERE path = ?", (canonical_path,)).fetchone()
        return row_to_path(row)

    def find_by_path(self, raw_path: str) -> Optional[PathRecord]:
        path = self.normalize(raw_path)
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM paths WHERE path = ?", (path,)).fetchone()
        return row_to_path(row) if row else None

    def exists(self, raw_path: str) -> bool:
        return self.find_by_path(raw_path) is not None

    def get(self, path_id: int) -> Optional[PathRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM paths WHERE id = ?", (path_id,)).fetchone()
        return row_to_path(row) if row else None

    def list_recent(self, limit: int = 10) -> List[PathRecord]:
        """Paths ordered by most recent sighting."""
        if limit <= 0:
            limit = 10
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM paths ORDER BY last_seen_at DESC, id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [row_to_path(r) for r in rows]

    def delete(self, path_id: int) -> bool:
        """Delete a path row and its group membership.

        Records bound to the path keep their ``path_id`` and are no longer
        reachable from any working directory.
        """
        with self._connect(write=True) as conn:
            conn.execute("DELETE FROM group_paths WHERE path_id = ?", (path_id,))
            cursor = conn.execute("DELETE FROM paths WHERE id = ?", (path_id,))
            return cursor.rowcount > 0
