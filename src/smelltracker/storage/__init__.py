"""Storage layer for commits, smells and lifecycle events."""

from smelltracker.storage.config import DatabaseConfig
from smelltracker.storage.event_store import ProjectStore, SmellStore
from smelltracker.storage.persistence import (
    Persistence,
    PersistenceError,
    SQLitePersistence,
    Statement,
)
from smelltracker.storage.pool import ConnectionPool
from smelltracker.storage.queries import EventQueries
from smelltracker.storage.schema import SCHEMA_VERSION, schema_statements

__all__ = [
    "ConnectionPool",
    "DatabaseConfig",
    "EventQueries",
    "Persistence",
    "PersistenceError",
    "ProjectStore",
    "SCHEMA_VERSION",
    "SQLitePersistence",
    "SmellStore",
    "Statement",
    "schema_statements",
]
