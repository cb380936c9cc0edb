"""Fixed-size pool of SQLite connections for concurrent project analyses."""

import queue
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

import structlog

from smelltracker.storage.config import DatabaseConfig
from smelltracker.storage.persistence import PersistenceError, connect

logger = structlog.get_logger(__name__)


class ConnectionPool:
    """Hands out at most ``pool_size`` connections; borrowers block when exhausted."""

    def __init__(self, config: Optional[DatabaseConfig] = None) -> None:
        self.config = config or DatabaseConfig()
        self._idle: "queue.LifoQueue[sqlite3.Connection]" = queue.LifoQueue()
        self._all: List[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def size(self) -> int:
        """Number of connections opened so far."""
        return len(self._all)

    def acquire(self, timeout: Optional[float] = None) -> sqlite3.Connection:
        """Borrow a connection, opening one if the pool is not full.

        Args:
            timeout: Seconds to wait for a free connection, None to wait forever

        Raises:
            PersistenceError: If the pool is closed or no connection frees up in time
        """
        if self._closed:
            raise PersistenceError("Connection pool is closed")

        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if len(self._all) < self.config.pool_size:
                conn = connect(self.config)
                self._all.append(conn)
                logger.debug("opened_pooled_connection", size=len(self._all))
                return conn

        try:
            return self._idle.get(timeout=timeout)
        except queue.Empty as e:
            raise PersistenceError(f"No database connection available after {timeout}s") from e

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a borrowed connection to the pool."""
        if conn.in_transaction:
            conn.rollback()
        self._idle.put(conn)

    @contextmanager
    def connection(self, timeout: Optional[float] = None) -> Iterator[sqlite3.Connection]:
        """Borrow a connection for the duration of a ``with`` block."""
        conn = self.acquire(timeout=timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close every connection opened by the pool."""
        self._closed = True
        with self._lock:
            for conn in self._all:
                conn.close()
            self._all = []
        logger.debug("closed_connection_pool")

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
