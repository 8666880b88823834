"""
Record source interface.

A record source answers the handful of relational queries the export and
backup functions need. It stands in for the hosted database client, so
the orchestrator can be driven by:

    - DBRecordSource       (SQLite / Postgres through elbtal_backup.db)
    - SupabaseRecordSource (PostgREST over HTTP)
    - in-memory fakes in tests

Drivers raise RuntimeError on query failure; callers decide whether that
is structural.

A source may also offer read_snapshot(), a context manager under which
its reads share one consistent view (DBRecordSource does; PostgREST has
no cross-request transactions).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol


class RecordSource(Protocol):
    """
    Structural interface for relational queries.
    """

    def select_all(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        """`select * from <table> order by <order_by> desc`."""
        ...

    def select_in(
        self,
        table: str,
        column: str,
        values: Iterable[Any],
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        """Rows whose `column` is one of `values`. Empty values -> []."""
        ...

    def select_column(
        self,
        table: str,
        column: str,
        *,
        not_null: bool = False,
    ) -> List[Any]:
        """Values of a single column, optionally skipping NULLs."""
        ...

    def select_where(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        """Rows whose `column` equals `value`."""
        ...

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored."""
        ...

    def update_where(self, table: str, column: str, value: Any, changes: Dict[str, Any]) -> int:
        """Set `changes` on rows whose `column` equals `value`; returns the row count."""
        ...

    def delete_where(self, table: str, column: str, value: Any) -> int:
        """Delete matching rows and return how many were removed."""
        ...
