"""
elbtal_backup.db

SQL driver layer used by the database-backed record source.

This package provides:

- A backend-agnostic connection abstraction:
      * DBConnection
      * DBPool (short-lived connections and read-only snapshots)

- Helper functions for safe SQL execution and row mapping

- Concrete database backends:
      * SQLiteBackend   (local development + tests)
      * PostgresBackend (direct connection to the hosted database;
                         import from .postgres_backend, needs psycopg2)
"""

from .connection import DBConnection, DBPool
from .sqlite_backend import SQLiteBackend
from .backend_base import DBBackend
from .helpers import (
    quote_identifier,
    placeholders,
    safe_execute,
    safe_fetch_all,
    row_to_dict,
)

__all__ = [
    # Connection / Pool
    "DBConnection",
    "DBPool",

    # Backends
    "SQLiteBackend",
    "DBBackend",

    # Helpers
    "quote_identifier",
    "placeholders",
    "safe_execute",
    "safe_fetch_all",
    "row_to_dict",
]
