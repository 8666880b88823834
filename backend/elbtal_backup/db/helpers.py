"""
Shared SQL helper utilities for the record-source drivers.

These wrappers ensure:
    - query errors surface with the offending statement attached
    - rows come back as plain ordered dicts on every backend
    - table / column names are validated before being spliced into SQL

Backends import this module as `.helpers`
"""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ----------------------------------------------------------------------
# Identifiers / placeholders
# ----------------------------------------------------------------------

def quote_identifier(name: str) -> str:
    """
    Validate a table or column name and return it double-quoted.

    Only plain identifiers are accepted; anything else raises ValueError.
    Double quotes are valid identifier quoting for both SQLite and Postgres.
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def placeholders(count: int, marker: str) -> str:
    """
    Build a comma separated placeholder list, e.g. "?, ?, ?".
    """
    return ", ".join([marker] * count)


# ----------------------------------------------------------------------
# Execution helpers
# ----------------------------------------------------------------------

def safe_execute(conn: Any, query: str, params: Optional[Sequence[Any]] = None):
    """
    Execute a single SQL statement and return the raw cursor.

    Raises
    ------
    RuntimeError
        Wrapped driver error with the query and parameters attached.
    """
    cur = conn.cursor()
    try:
        cur.execute(query, tuple(params or ()))
    except Exception as e:
        raise RuntimeError(
            f"DB execute failed: {e} | Query: {query!r} | Params: {params!r}"
        ) from e
    return cur


def safe_fetch_all(conn: Any, query: str, params: Optional[Sequence[Any]] = None):
    """
    Execute a SELECT query and fetch all rows (backend-specific row objects).
    """
    cur = safe_execute(conn, query, params)
    return cur.fetchall()


# ----------------------------------------------------------------------
# Row mapping
# ----------------------------------------------------------------------

def row_to_dict(row: Any) -> dict:
    """
    Convert sqlite3.Row or psycopg2 RealDictRow to a plain dict.

    Column order is preserved, which the CSV serializer relies on for
    its header row.
    """
    if row is None:
        return {}

    # sqlite3.Row, psycopg2.extras.RealDictRow, etc.
    if hasattr(row, "keys"):
        return {k: row[k] for k in row.keys()}

    return dict(enumerate(row))


__all__ = [
    "quote_identifier",
    "placeholders",
    "safe_execute",
    "safe_fetch_all",
    "row_to_dict",
]
