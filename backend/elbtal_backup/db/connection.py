"""
Connections for the SQL record source.

DBPool hands out two kinds of connection:

    pool.connection()     one query or one committed write
    pool.read_snapshot()  a read-only transaction; every read inside it
                          sees the tables as of its first query

An export holds one read snapshot from FETCHING_RECORDS through
ENUMERATING_DOCUMENTS, so the document list matches the exported rows
while the dashboard keeps writing.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)


class DBConnection:
    """
    Raw DB-API connection plus the backend that opened it.

    Rows come back as plain dicts whatever the driver's row type.
    Connections handed out by read_snapshot() refuse to commit.
    """

    def __init__(self, raw_conn: Any, backend: Any, *, read_only: bool = False):
        self.raw = raw_conn
        self.backend = backend
        self.read_only = read_only

    def execute(self, query: str, params: Optional[Sequence[Any]] = None):
        return self.backend.helpers.safe_execute(self.raw, query, params)

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[dict]:
        helpers = self.backend.helpers
        return [helpers.row_to_dict(r) for r in helpers.safe_fetch_all(self.raw, query, params)]

    def commit(self) -> None:
        if self.read_only:
            raise RuntimeError("Read snapshots cannot commit")
        try:
            self.raw.commit()
        except Exception as e:
            raise RuntimeError(f"Commit failed: {e}") from e

    def rollback(self) -> None:
        try:
            self.raw.rollback()
        except Exception:
            logger.debug("Rollback failed", exc_info=True)

    def close(self) -> None:
        try:
            self.raw.close()
        except Exception:
            logger.debug("Close failed", exc_info=True)


class DBPool:
    """
    Connection factory over one backend. Every connection is opened on
    demand and closed when its block ends.
    """

    def __init__(self, backend: Any):
        self.backend = backend

    def get(self, *, read_only: bool = False) -> DBConnection:
        return DBConnection(self.backend.connect(), self.backend, read_only=read_only)

    @contextlib.contextmanager
    def connection(self) -> Iterator[DBConnection]:
        """
        Short-lived connection; uncommitted work is rolled back on error.
        """
        conn = self.get()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def read_snapshot(self) -> Iterator[DBConnection]:
        """
        Read-only transaction, always rolled back.
        """
        conn = self.get(read_only=True)
        try:
            self.backend.begin_read_snapshot(conn.raw)
            yield conn
        finally:
            conn.rollback()
            conn.close()
