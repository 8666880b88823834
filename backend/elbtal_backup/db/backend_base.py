"""
Base class for the SQL drivers behind DBRecordSource.

A backend exposes:

    backend.connect()          -> raw DB-API connection
    backend.helpers            -> module providing safe_execute, row_to_dict, ...
    backend.placeholder        -> parameter marker ("?" sqlite, "%s" psycopg2)
    backend.begin_read_snapshot(conn) -> open a read-only transaction
    backend.init_schema(conn)  -> optional bootstrap of the local tables
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class DBBackend(ABC):
    """
    Abstract SQL backend.

    Subclasses pick their own constructor: SQLiteBackend(db_path),
    PostgresBackend(dsn).
    """

    placeholder: str = "?"

    @property
    @abstractmethod
    def helpers(self) -> Any:
        raise NotImplementedError

    @abstractmethod
    def connect(self) -> Any:
        """
        Open a new raw connection. Callers close it.
        """
        raise NotImplementedError

    @abstractmethod
    def begin_read_snapshot(self, conn: Any) -> None:
        """
        Start a read-only transaction on a fresh raw connection so later
        reads on it share one view of the data.
        """
        raise NotImplementedError

    def init_schema(self, conn: Any) -> None:
        """
        Hosted databases already carry the schema; only local drivers
        override this.
        """
        return None


__all__ = [
    "DBBackend",
]
