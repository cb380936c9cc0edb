"""Buffered, transactional access to the smell event database."""

import sqlite3
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from smelltracker.storage.config import DatabaseConfig
from smelltracker.storage.schema import schema_statements

logger = structlog.get_logger(__name__)

Statement = Tuple[str, Sequence[Any]]


class PersistenceError(Exception):
    """Raised when the database is unavailable or rejects a write."""


class Persistence(ABC):
    """Event sink contract: buffered writes, atomic flush, point queries."""

    @abstractmethod
    def add_statements(self, *statements: Statement) -> None:
        """Buffer parameterized statements for the next commit."""

    @abstractmethod
    def commit(self) -> int:
        """Persist every buffered statement atomically and clear the buffer.

        Returns:
            Number of statements executed
        """

    @abstractmethod
    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a read query and return its rows as dicts."""

    @abstractmethod
    def initialize(self) -> None:
        """Create the database schema if necessary."""

    @abstractmethod
    def close(self) -> None:
        """Release the database connection."""


def connect(config: DatabaseConfig) -> sqlite3.Connection:
    """Open a configured SQLite connection.

    Args:
        config: Database configuration

    Raises:
        PersistenceError: If the database cannot be opened
    """
    config.ensure_parent_dir()
    try:
        if config.in_memory:
            # Shared cache so pooled connections see the same in-memory database
            conn = sqlite3.connect(
                "file:smelltracker?mode=memory&cache=shared",
                uri=True,
                timeout=config.timeout,
                check_same_thread=False,
            )
        else:
            conn = sqlite3.connect(
                str(config.path),
                timeout=config.timeout,
                check_same_thread=False,
            )
            conn.execute(f"PRAGMA journal_mode={config.journal_mode}")
        conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.Error as e:
        raise PersistenceError(f"Unable to open database {config.path}: {e}") from e
    conn.row_factory = sqlite3.Row
    return conn


class SQLitePersistence(Persistence):
    """SQLite implementation of the event sink.

    Statements are buffered by ``add_statements`` and executed in a single
    transaction by ``commit``; a failing statement rolls the whole batch back.
    """

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        connection: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Initialize persistence.

        Args:
            config: Database configuration. If None, loads from environment.
            connection: Borrowed connection (e.g. from a pool); it is not closed by ``close``
        """
        self.config = config or DatabaseConfig()
        self._connection = connection
        self._owns_connection = connection is None
        self._buffer: List[Statement] = []

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create the connection.

        Lazy initialization - connection is opened on first access.
        """
        if self._connection is None:
            self._connection = connect(self.config)
        return self._connection

    @property
    def pending(self) -> int:
        """Number of buffered statements."""
        return len(self._buffer)

    def add_statements(self, *statements: Statement) -> None:
        for statement in statements:
            sql, params = statement
            self._buffer.append((sql, tuple(params)))

    def commit(self) -> int:
        if not self._buffer:
            return 0

        statements, self._buffer = self._buffer, []
        conn = self.connection
        try:
            with conn:
                for sql, params in statements:
                    conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.error("statement_batch_failed", error=str(e), statements=len(statements))
            raise PersistenceError(f"Unable to persist {len(statements)} statements: {e}") from e
        return len(statements)

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        try:
            rows = self.connection.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e
        return [dict(row) for row in rows]

    def initialize(self) -> None:
        conn = self.connection
        try:
            with conn:
                for statement in schema_statements():
                    conn.execute(statement)
        except sqlite3.Error as e:
            raise PersistenceError(f"Unable to initialize schema: {e}") from e
        logger.info("initialized_schema", database=str(self.config.path))

    def close(self) -> None:
        if self._buffer:
            logger.warning("discarding_uncommitted_statements", statements=len(self._buffer))
            self._buffer = []
        if self._connection is not None and self._owns_connection:
            self._connection.close()
        self._connection = None

    def __enter__(self) -> "SQLitePersistence":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
