"""SQLite-backed storage for llm-memory.

One ``SQLiteStorage`` per process. Connections are opened per operation;
write transactions are serialized in-process by a lock and across processes
by ``BEGIN IMMEDIATE``. Readers run concurrently under WAL.
"""

import contextlib
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Iterator, Optional

from llm_memory.config import Settings
from llm_memory.errors import LLMMemoryError, StorageFailure
from llm_memory.types import utc_now

from .batch import BatchExecutor
from .groups import GroupRegistry
from .paths import PathRegistry
from .schema import init_db
from .snowflake import IDGenerator

logger = logging.getLogger(__name__)

# Progress handler granularity (SQLite VM instructions between deadline checks)
DEADLINE_CHECK_INTERVAL = 1000


class SQLiteStorage:
    """SQLite storage wiring for the registries and the batch executor.

    Args:
        db_path: Database file. Defaults to ``settings.db_path``.
        settings: Runtime settings; read from the environment when omitted.
        id_generator: Snowflake source shared by every component. Built from
            ``settings.node_id`` when omitted.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        settings: Optional[Settings] = None,
        id_generator: Optional[IDGenerator] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.db_path = Path(db_path).expanduser() if db_path else self.settings.db_path
        self.ids = id_generator or IDGenerator(self.settings.node_id)
        self._write_lock = threading.RLock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.paths = PathRegistry(
            connect_fn=self._connect,
            id_fn=self.ids.generate,
            now_fn=self._now,
            resolve_symlinks=self.settings.resolve_symlinks,
        )
        self.groups = GroupRegistry(
            connect_fn=self._connect,
            id_fn=self.ids.generate,
            now_fn=self._now,
            paths=self.paths,
        )
        self.batch = BatchExecutor(
            connect_fn=self._connect,
            id_fn=self.ids.generate,
            now_fn=self._now,
        )

        self._init_db()

    def _now(self) -> str:
        return utc_now()

    def _init_db(self):
        # executescript manages its own transaction, so bypass _connect
        with self._write_lock:
            conn = self._get_conn()
            try:
                init_db(conn)
            except sqlite3.Error as e:
                logger.error(f"Could not initialize database {self.db_path}: {e}")
                raise StorageFailure(f"Could not initialize database: {e}", cause=e) from e
            finally:
                conn.close()
        logger.debug(f"Opened database at {self.db_path}")

    def _get_conn(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode; transactions are explicit."""
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.settings.busy_timeout_ms / 1000,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={int(self.settings.busy_timeout_ms)}")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextlib.contextmanager
    def _connect(
        self, write: bool = False, deadline: Optional[float] = None
    ) -> Iterator[sqlite3.Connection]:
        """Context manager that handles transactions AND closes connection.

        - ``write=True`` takes the in-process write lock and opens the
          transaction with ``BEGIN IMMEDIATE``
        - commit on success, rollback on any exception
        - ``sqlite3`` errors are re-raised as ``StorageFailure``
        - ``deadline`` is a number of seconds after which running statements
          are interrupted

        Write transactions must not be nested on one thread: the inner
        connection would wait on the outer one's database lock.
        """
        lock = self._write_lock if write else contextlib.nullcontext()
        with lock:
            try:
                conn = self._get_conn()
            except sqlite3.Error as e:
                logger.error(f"Could not open database {self.db_path}: {e}")
                raise StorageFailure(f"Could not open database: {e}", cause=e) from e

            if deadline is not None:
                expires = time.monotonic() + deadline
                conn.set_progress_handler(
                    lambda: 1 if time.monotonic() > expires else 0,
                    DEADLINE_CHECK_INTERVAL,
                )

            try:
                conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
                yield conn
                if conn.in_transaction:
                    conn.execute("COMMIT")
            except LLMMemoryError as e:
                logger.debug(f"Transaction failed, rolling back: {e}")
                self._rollback(conn)
                raise
            except sqlite3.Error as e:
                logger.error(f"Storage error, rolling back: {e}")
                self._rollback(conn)
                raise StorageFailure(f"Storage error: {e}", cause=e) from e
            except Exception as e:
                logger.debug(f"Transaction failed, rolling back: {e}")
                self._rollback(conn)
                raise
            finally:
                conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error as e:
                logger.warning(f"Rollback failed: {e}")

    def transaction(self, write: bool = False, deadline: Optional[float] = None):
        """Public access to a managed transaction for composite operations."""
        return self._connect(write=write, deadline=deadline)

    def close(self):
        """Connections are per-operation; nothing persistent to close."""
        pass
