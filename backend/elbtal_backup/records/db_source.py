"""
DB-backed record source.
"""

from __future__ import annotations

import contextlib
import json
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..db.connection import DBConnection, DBPool
from ..db.helpers import placeholders, quote_identifier


def _bind(value: Any) -> Any:
    return json.dumps(value) if isinstance(value, (dict, list)) else value


class DBRecordSource:
    """
    Record source over a SQL backend (SQLite or Postgres).

    Table and column names are validated by quote_identifier; values are
    always bound as parameters using the backend's placeholder style.
    dict / list values are stored as JSON text on insert and update.

    Inside read_snapshot() every read issued by the same thread goes
    through the snapshot connection. Writes always use their own
    connection.
    """

    def __init__(self, pool: DBPool):
        self.pool = pool
        self._local = threading.local()

    @property
    def _marker(self) -> str:
        return getattr(self.pool.backend, "placeholder", "?")

    @staticmethod
    def _order_clause(order_by: Optional[str], descending: bool) -> str:
        if not order_by:
            return ""
        direction = "DESC" if descending else "ASC"
        return f" ORDER BY {quote_identifier(order_by)} {direction}"

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def read_snapshot(self) -> Iterator["DBRecordSource"]:
        """
        Run the reads of the enclosed block in one read-only transaction.
        Nested calls reuse the outer snapshot.
        """
        if getattr(self._local, "snapshot", None) is not None:
            yield self
            return

        with self.pool.read_snapshot() as conn:
            self._local.snapshot = conn
            try:
                yield self
            finally:
                self._local.snapshot = None

    @contextlib.contextmanager
    def _reading(self) -> Iterator[DBConnection]:
        snapshot = getattr(self._local, "snapshot", None)
        if snapshot is not None:
            yield snapshot
            return
        with self.pool.connection() as conn:
            yield conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def select_all(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        query = f"SELECT * FROM {quote_identifier(table)}"
        query += self._order_clause(order_by, descending)

        with self._reading() as conn:
            return conn.fetch_all(query)

    def select_in(
        self,
        table: str,
        column: str,
        values: Iterable[Any],
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        values = list(values)
        if not values:
            return []

        query = (
            f"SELECT * FROM {quote_identifier(table)} "
            f"WHERE {quote_identifier(column)} IN ({placeholders(len(values), self._marker)})"
        )
        query += self._order_clause(order_by, descending)

        with self._reading() as conn:
            return conn.fetch_all(query, values)

    def select_column(
        self,
        table: str,
        column: str,
        *,
        not_null: bool = False,
    ) -> List[Any]:
        col = quote_identifier(column)
        query = f"SELECT {col} FROM {quote_identifier(table)}"
        if not_null:
            query += f" WHERE {col} IS NOT NULL"

        with self._reading() as conn:
            rows = conn.fetch_all(query)
        return [r[column] for r in rows]

    def select_where(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        query = (
            f"SELECT * FROM {quote_identifier(table)} "
            f"WHERE {quote_identifier(column)} = {self._marker}"
        )
        with self._reading() as conn:
            return conn.fetch_all(query, (value,))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        cols = list(row.keys())
        query = (
            f"INSERT INTO {quote_identifier(table)} "
            f"({', '.join(quote_identifier(c) for c in cols)}) "
            f"VALUES ({placeholders(len(cols), self._marker)})"
        )

        with self.pool.connection() as conn:
            conn.execute(query, [_bind(v) for v in row.values()])
            conn.commit()
        return dict(row)

    def update_where(self, table: str, column: str, value: Any, changes: Dict[str, Any]) -> int:
        cols = [c for c in changes if c != column]
        if not cols:
            return 0

        assignments = ", ".join(f"{quote_identifier(c)} = {self._marker}" for c in cols)
        query = (
            f"UPDATE {quote_identifier(table)} SET {assignments} "
            f"WHERE {quote_identifier(column)} = {self._marker}"
        )

        with self.pool.connection() as conn:
            cur = conn.execute(query, [_bind(changes[c]) for c in cols] + [value])
            conn.commit()
            return max(cur.rowcount, 0)

    def delete_where(self, table: str, column: str, value: Any) -> int:
        query = (
            f"DELETE FROM {quote_identifier(table)} "
            f"WHERE {quote_identifier(column)} = {self._marker}"
        )
        with self.pool.connection() as conn:
            cur = conn.execute(query, (value,))
            conn.commit()
            return max(cur.rowcount, 0)
