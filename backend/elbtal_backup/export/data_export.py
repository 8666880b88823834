"""
Inline CSV data export.

Returns contact requests and property applications as CSV strings inside
one JSON document, for the dashboard's "CSV only" download.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..errors import ExportError, RecordFetchError
from ..records.base import RecordSource
from ..records.models import CONTACT_REQUESTS, PROPERTY_APPLICATIONS
from .csv_writer import records_to_csv


def export_data(
    source: RecordSource,
    *,
    clock: Optional[Callable[[], datetime]] = None,
) -> Dict[str, Any]:
    """
    Build the export-data payload:

        {
            "timestamp": "...",
            "contact_requests":      {"count": n, "csv": "..."},
            "property_applications": {"count": n, "csv": "..."}
        }

    Raises RecordFetchError if either query fails.
    """
    now = (clock or (lambda: datetime.now(timezone.utc)))()

    payload: Dict[str, Any] = {"timestamp": now.isoformat()}
    for table in (CONTACT_REQUESTS, PROPERTY_APPLICATIONS):
        try:
            rows = list(source.select_all(table, order_by="created_at", descending=True))
        except ExportError:
            raise
        except Exception as exc:
            raise RecordFetchError(f"Fetching {table} failed: {exc}") from exc
        payload[table] = {"count": len(rows), "csv": records_to_csv(rows)}

    return payload


__all__ = ["export_data"]
