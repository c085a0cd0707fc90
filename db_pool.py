"""Bounded SQLite connection pool shared by the attempt store."""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from queue import Empty, Full, Queue
from typing import Generator

logger = logging.getLogger(__name__)


class SQLiteConnectionPool:
    """Thread-safe pool handing out at most ``max_connections`` connections."""

    def __init__(self, database: str, max_connections: int = 5):
        self.database = database
        self.max_connections = max_connections
        self._idle: Queue[sqlite3.Connection] = Queue(maxsize=max_connections)
        self._lock = threading.Lock()
        self._opened = 0

    def _open(self) -> sqlite3.Connection:
        # Handlers run in FastAPI's thread pool, so connections move between threads.
        conn = sqlite3.connect(self.database, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        try:
            return self._idle.get(block=False)
        except Empty:
            pass
        with self._lock:
            if self._opened < self.max_connections:
                self._opened += 1
                logger.debug("Opened SQLite connection %d/%d for %s", self._opened, self.max_connections, self.database)
                return self._open()
        return self._idle.get(block=True)

    def _discard(self, conn: sqlite3.Connection) -> None:
        try:
            conn.close()
        except sqlite3.Error as exc:
            logger.warning("Failed to close pooled connection: %s", exc)
        with self._lock:
            self._opened -= 1

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Borrow a connection; uncommitted work is rolled back on return."""
        conn = self._acquire()
        try:
            yield conn
        finally:
            try:
                conn.rollback()
                self._idle.put(conn, block=False)
            except (sqlite3.Error, Full) as exc:
                logger.error("Error returning connection to pool: %s", exc)
                self._discard(conn)

    def close_all(self) -> None:
        """Close every idle connection, e.g. when re-pointing the store."""
        while True:
            try:
                conn = self._idle.get(block=False)
            except Empty:
                break
            self._discard(conn)
