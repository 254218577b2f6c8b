"""Database schema for llm-memory SQLite storage.

Contains:
- Schema DDL (SCHEMA)
- Schema version tracking (SCHEMA_VERSION)
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Database initialization (init_db)
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Allowed table names for SQL queries (prevents SQL injection via table names)
ALLOWED_TABLES = frozenset(
    {
        "schema_version",
        "paths",
        "path_groups",
        "group_paths",
        "memories",
        "plans",
        "todos",
    }
)


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Args:
        table: Table name to validate

    Returns:
        The validated table name

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Canonical working directories (tenant keys)
CREATE TABLE IF NOT EXISTS paths (
    id INTEGER PRIMARY KEY,
    path TEXT NOT NULL UNIQUE,
    last_seen_at TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_paths_last_seen ON paths(last_seen_at);

-- Named groups of paths
CREATE TABLE IF NOT EXISTS path_groups (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Path membership; a path belongs to at most one group
CREATE TABLE IF NOT EXISTS group_paths (
    id INTEGER PRIMARY KEY,
    group_id INTEGER NOT NULL REFERENCES path_groups(id) ON DELETE CASCADE,
    path_id INTEGER NOT NULL UNIQUE REFERENCES paths(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_group_paths_group ON group_paths(group_id);

-- Memories (notes with category and tags)
CREATE TABLE IF NOT EXISTS memories (
    id INTEGER PRIMARY KEY,
    code TEXT UNIQUE,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'default',
    priority INTEGER NOT NULL DEFAULT 2,
    tags TEXT,  -- JSON array
    status TEXT NOT NULL DEFAULT 'active',
    global INTEGER NOT NULL DEFAULT 0,
    path_id INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (global = 1 OR path_id > 0)
);
CREATE INDEX IF NOT EXISTS idx_memories_scope ON memories(global, path_id);
CREATE INDEX IF NOT EXISTS idx_memories_category ON memories(category);

-- Plans
CREATE TABLE IF NOT EXISTS plans (
    id INTEGER PRIMARY KEY,
    code TEXT UNIQUE,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'pending',
    progress INTEGER NOT NULL DEFAULT 0,
    start_date TEXT,
    end_date TEXT,
    global INTEGER NOT NULL DEFAULT 0,
    path_id INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (global = 1 OR path_id > 0),
    CHECK (progress BETWEEN 0 AND 100)
);
CREATE INDEX IF NOT EXISTS idx_plans_scope ON plans(global, path_id);

-- Todos
CREATE TABLE IF NOT EXISTS todos (
    id INTEGER PRIMARY KEY,
    code TEXT UNIQUE,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    priority INTEGER NOT NULL DEFAULT 2,
    status TEXT NOT NULL DEFAULT 'pending',
    due_date TEXT,
    completed_at TEXT,
    tags TEXT,  -- JSON array
    global INTEGER NOT NULL DEFAULT 0,
    path_id INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (global = 1 OR path_id > 0)
);
CREATE INDEX IF NOT EXISTS idx_todos_scope ON todos(global, path_id);
CREATE INDEX IF NOT EXISTS idx_todos_due ON todos(due_date);
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables and record the schema version."""
    conn.executescript(SCHEMA)
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row else None
    if current is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.debug(f"Initialized schema version {SCHEMA_VERSION}")
    elif current > SCHEMA_VERSION:
        logger.warning(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}"
        )
