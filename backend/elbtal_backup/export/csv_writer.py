"""
CSV rendering for record sets.

records_to_csv() turns a list of row mappings into CSV text:

    - header row = keys of the first row, in order
    - one line per row, columns in header order, "\n" separated,
      no trailing newline
    - None / missing keys render as empty fields
      (a row whose only field is empty is written as "" so the line is
      not blank; csv readers still read it back as the empty string)
    - fields containing a comma, double quote or line break are quoted
      with embedded quotes doubled
    - timestamps render as ISO-8601, JSON columns (dict / list) as
      compact JSON, everything else via str()

An empty record set renders as the empty string.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime, time
from typing import Any, Mapping, Optional, Sequence

from ..errors import SerializationError


def render_value(value: Any) -> Optional[str]:
    """
    Render one scalar for CSV output. Returns None for empty fields.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def records_to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Render a homogeneous record set as CSV text.

    Raises
    ------
    SerializationError
        If a row is not a mapping or a value cannot be rendered.
    """
    if not rows:
        return ""

    first = rows[0]
    if not isinstance(first, Mapping):
        raise SerializationError(f"Row 0 is not a mapping: {type(first).__name__}")
    headers = list(first.keys())

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)

    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise SerializationError(f"Row {i} is not a mapping: {type(row).__name__}")
        try:
            writer.writerow([render_value(row.get(h)) for h in headers])
        except (TypeError, ValueError, csv.Error) as exc:
            raise SerializationError(f"Row {i} could not be rendered: {exc}") from exc

    # csv.writer terminates every row; the last terminator is dropped.
    return buf.getvalue()[:-1]


__all__ = [
    "render_value",
    "records_to_csv",
]
