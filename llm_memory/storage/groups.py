"""Group registry: named groups of paths sharing private data.

The core invariant is that a path belongs to at most one group. It is held by
the UNIQUE index on ``group_paths.path_id`` together with a check-and-insert
performed inside one immediate write transaction.
"""

import logging
import sqlite3
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from llm_memory.errors import (
    DuplicateNameError,
    GroupNotFoundError,
    PathAlreadyInGroupError,
    ValidationFailed,
)
from llm_memory.types import Group, PathRecord, parse_datetime

from .paths import PathRegistry
from .records import MAX_ID

logger = logging.getLogger(__name__)

MAX_GROUP_NAME_LENGTH = 100


def row_to_group(row: sqlite3.Row, paths: Optional[List[str]] = None) -> Group:
    return Group(
        id=row["id"],
        name=row["name"],
        description=row["description"] or "",
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
        paths=paths or [],
    )


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("name", "required")
    if len(name) > MAX_GROUP_NAME_LENGTH:
        raise ValidationFailed("name", f"too long (max {MAX_GROUP_NAME_LENGTH} characters)")
    return name


class GroupRegistry:
    """Groups and path membership.

    Args:
        connect_fn: Context manager factory ``connect_fn(write=bool)``.
        id_fn: Returns a fresh snowflake id.
        now_fn: Returns current UTC timestamp as ISO string.
        paths: Registry used to canonicalize and upsert member paths.
    """

    def __init__(
        self,
        connect_fn: Callable,
        id_fn: Callable[[], int],
        now_fn: Callable[[], str],
        paths: PathRegistry,
    ):
        self._connect = connect_fn
        self._new_id = id_fn
        self._now = now_fn
        self._paths = paths

    # === Groups ===

    def create_group(self, name: str, description: str = "") -> Group:
        """Create a group. Names are trimmed and compared exactly."""
        name = _clean_name(name)
        description = (description or "").strip()
        now = self._now()
        group_id = self._new_id()

        with self._connect(write=True) as conn:
            if conn.execute("SELECT 1 FROM path_groups WHERE name = ?", (name,)).fetchone():
                raise DuplicateNameError(name)
            try:
                conn.execute(
                    """INSERT INTO path_groups (id, name, description, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (group_id, name, description, now, now),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateNameError(name) from e
            row = conn.execute("SELECT * FROM path_groups WHERE id = ?", (group_id,)).fetchone()

        logger.debug(f"Created group {name} ({group_id})")
        return row_to_group(row)

    def update_group(
        self,
        group_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Group:
        """Rename a group and/or change its description."""
        with self._connect(write=True) as conn:
            row = self._require_group(conn, group_id)
            new_name = row["name"] if name is None else _clean_name(name)
            new_description = row["description"] if description is None else description.strip()

            if new_name != row["name"]:
                clash = conn.execute(
                    "SELECT 1 FROM path_groups WHERE name = ? AND id != ?", (new_name, group_id)
                ).fetchone()
                if clash:
                    raise DuplicateNameError(new_name)

            conn.execute(
                "UPDATE path_groups SET name = ?, description = ?, updated_at = ? WHERE id = ?",
                (new_name, new_description, self._now(), group_id),
            )
            return self._load_group(conn, group_id)

    def delete_group(self, group_id: int) -> None:
        """Delete a group and its path associations.

        Records scoped to the member paths are left untouched; only the
        grouping relationship goes away.
        """
        with self._connect(write=True) as conn:
            row = self._require_group(conn, group_id)
            conn.execute("DELETE FROM group_paths WHERE group_id = ?", (group_id,))
            conn.execute("DELETE FROM path_groups WHERE id = ?", (group_id,))
        logger.debug(f"Deleted group {row['name']} ({group_id})")

    def get_group(self, group_id: int) -> Optional[Group]:
        if not 0 < group_id <= MAX_ID:
            return None
        with self._connect() as conn:
            return self._load_group(conn, group_id)

    def get_group_by_name(self, name: str) -> Optional[Group]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM path_groups WHERE name = ?", ((name or "").strip(),)
            ).fetchone()
            return self._load_group(conn, row["id"]) if row else None

    def list_groups(self) -> List[Group]:
        """All groups ordered by name, with their member paths."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM path_groups ORDER BY name").fetchall()
            members: Dict[int, List[str]] = {}
            for m in conn.execute(
                """SELECT gp.group_id, p.path FROM group_paths gp
                   JOIN paths p ON p.id = gp.path_id
                   ORDER BY p.path"""
            ):
                members.setdefault(m["group_id"], []).append(m["path"])
        return [row_to_group(r, members.get(r["id"], [])) for r in rows]

    # === Membership ===

    def add_path(self, group_id: int, raw_path: str) -> PathRecord:
        """Add a path to a group.

        Re-adding a path to its own group is a no-op. A path owned by another
        group raises ``PathAlreadyInGroupError`` and nothing is written, not
        even the path row.
        """
        path = self._paths.normalize(raw_path)
        with self._connect(write=True) as conn:
            self._require_group(conn, group_id)
            record = self._paths.ensure_in(conn, path)

            owner = self._owner_of(conn, record.id)
            if owner is not None:
                owner_id, owner_name = owner
                if owner_id == group_id:
                    return record
                raise PathAlreadyInGroupError(path, owner_name)

            try:
                conn.execute(
                    "INSERT INTO group_paths (id, group_id, path_id) VALUES (?, ?, ?)",
                    (self._new_id(), group_id, record.id),
                )
            except sqlite3.IntegrityError as e:
                # Another writer claimed the path between our check and insert
                owner = self._owner_of(conn, record.id)
                owner_name = owner[1] if owner else "unknown"
                raise PathAlreadyInGroupError(path, owner_name) from e

        logger.debug(f"Added {path} to group {group_id}")
        return record

    def remove_path(self, group_id: int, raw_path: str) -> bool:
        """Remove a path from a group. Returns False when there was nothing to remove."""
        path = self._paths.normalize(raw_path)
        with self._connect(write=True) as conn:
            row = conn.execute("SELECT id FROM paths WHERE path = ?", (path,)).fetchone()
            if row is None:
                return False
            cursor = conn.execute(
                "DELETE FROM group_paths WHERE group_id = ? AND path_id = ?",
                (group_id, row["id"]),
            )
            return cursor.rowcount > 0

    def find_group_by_path(self, raw_path: str) -> Optional[Group]:
        """Group owning ``raw_path``, looked up through the association table."""
        path = self._paths.normalize(raw_path)
        with self._connect() as conn:
            row = conn.execute(
                """SELECT gp.group_id FROM group_paths gp
                   JOIN paths p ON p.id = gp.path_id
                   WHERE p.path = ?""",
                (path,),
            ).fetchone()
            return self._load_group(conn, row["group_id"]) if row else None

    def list_path_ids(self, group_id: int) -> FrozenSet[int]:
        with self._connect() as conn:
            return self._path_ids(conn, group_id)

    def membership(
        self, conn: sqlite3.Connection, path_id: int
    ) -> Optional[Tuple[int, str, FrozenSet[int]]]:
        """(group id, group name, sibling path ids) for a path, or None."""
        owner = self._owner_of(conn, path_id)
        if owner is None:
            return None
        group_id, group_name = owner
        return group_id, group_name, self._path_ids(conn, group_id)

    # === Internals ===

    def _require_group(self, conn: sqlite3.Connection, group_id: int) -> sqlite3.Row:
        row = conn.execute("SELECT * FROM path_groups WHERE id = ?", (group_id,)).fetchone()
        if row is None:
            raise GroupNotFoundError(group_id)
        return row

    def _owner_of(self, conn: sqlite3.Connection, path_id: int) -> Optional[Tuple[int, str]]:
        row = conn.execute(
            """SELECT g.id, g.name FROM group_paths gp
               JOIN path_groups g ON g.id = gp.group_id
               WHERE gp.path_id = ?""",
            (path_id,),
        ).fetchone()
        return (row["id"], row["name"]) if row else None

    def _path_ids(self, conn: sqlite3.Connection, group_id: int) -> FrozenSet[int]:
        rows = conn.execute(
            "SELECT path_id FROM group_paths WHERE group_id = ?", (group_id,)
        ).fetchall()
        return frozenset(r["path_id"] for r in rows)

    def _load_group(self, conn: sqlite3.Connection, group_id: int) -> Optional[Group]:
        row = conn.execute("SELECT * FROM path_groups WHERE id = ?", (group_id,)).fetchone()
        if row is None:
            return None
        paths = [
            r["path"]
            for r in conn.execute(
                """SELECT p.path FROM group_paths gp
                   JOIN paths p ON p.id = gp.path_id
                   WHERE gp.group_id = ? ORDER BY p.path""",
                (group_id,),
            )
        ]
        return row_to_group(row, paths)
