"""Environment-driven settings for llm-memory.

Settings are read once at process start (``Settings.from_env``) and passed
explicitly to the storage layer and entry points.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_HOME_DIRNAME = ".llm-memory"
DEFAULT_DB_FILENAME = "memory.db"
DEFAULT_BUSY_TIMEOUT_MS = 5000
MAX_NODE_ID = 1023

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str, min_val: int, max_val: Optional[int] = None) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if parsed < min_val or (max_val is not None and parsed > max_val):
        bounds = f">= {min_val}" if max_val is None else f"between {min_val} and {max_val}"
        raise ValueError(f"{name} must be {bounds}, got {parsed}")
    return parsed


def get_home(env: Optional[Mapping[str, str]] = None) -> Path:
    """Return the data directory, falling back to the temp dir if home is not writable."""
    env = os.environ if env is None else env
    explicit = env.get("LLM_MEMORY_HOME")
    if explicit:
        return Path(explicit).expanduser()

    default_home = Path.home() / DEFAULT_HOME_DIRNAME
    try:
        default_home.mkdir(parents=True, exist_ok=True)
        return default_home
    except OSError as e:
        # Sandboxed/container/CI environments
        fallback = Path(tempfile.gettempdir()) / DEFAULT_HOME_DIRNAME
        logger.warning(f"Cannot write to {default_home} ({e}), falling back to {fallback}")
        return fallback


@dataclass(frozen=True)
class Settings:
    """Runtime settings.

    Attributes:
        db_path: SQLite database file.
        node_id: Snowflake node id override (None = derive from the machine).
        busy_timeout_ms: How long a writer waits on a locked database.
        resolve_symlinks: Resolve symlinks when canonicalizing paths.
        log_level: Level used by the CLI and MCP entry points.
    """

    db_path: Path
    node_id: Optional[int] = None
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
    resolve_symlinks: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env

        db = env.get("LLM_MEMORY_DB")
        db_path = Path(db).expanduser() if db else get_home(env) / DEFAULT_DB_FILENAME

        node_id = None
        if env.get("LLM_MEMORY_NODE_ID"):
            node_id = _parse_int("LLM_MEMORY_NODE_ID", env["LLM_MEMORY_NODE_ID"], 0, MAX_NODE_ID)

        busy_timeout_ms = DEFAULT_BUSY_TIMEOUT_MS
        if env.get("LLM_MEMORY_BUSY_TIMEOUT_MS"):
            busy_timeout_ms = _parse_int(
                "LLM_MEMORY_BUSY_TIMEOUT_MS", env["LLM_MEMORY_BUSY_TIMEOUT_MS"], 0
            )

        resolve_symlinks = _parse_bool(
            "LLM_MEMORY_RESOLVE_SYMLINKS", env.get("LLM_MEMORY_RESOLVE_SYMLINKS", "")
        )

        log_level = env.get("LLM_MEMORY_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"LLM_MEMORY_LOG_LEVEL is not a logging level: {log_level!r}")

        return cls(
            db_path=db_path,
            node_id=node_id,
            busy_timeout_ms=busy_timeout_ms,
            resolve_symlinks=resolve_symlinks,
            log_level=log_level,
        )
