"""
Supabase (PostgREST) record source.

Talks to `<SUPABASE_URL>/rest/v1/<table>` with the service-role key, the
same API the dashboard's hosted functions reach through the JS client.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

logger = logging.getLogger(__name__)

# PostgREST puts filters in the query string; long IN lists are split.
IN_CHUNK_SIZE = 100


def _in_filter(values: List[Any]) -> str:
    quoted = []
    for v in values:
        s = str(v).replace("\\", "\\\\").replace('"', '\\"')
        quoted.append(f'"{s}"')
    return f"in.({','.join(quoted)})"


class SupabaseRecordSource:
    """
    Record source backed by the PostgREST API of a Supabase project.

    Parameters
    ----------
    url:
        Project URL, e.g. "https://abc.supabase.co".
    service_key:
        Service-role key; sent as `apikey` and bearer token.
    timeout:
        Per-request timeout in seconds.
    session:
        Optional requests.Session (tests inject one).
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if not url:
            raise ValueError("SupabaseRecordSource requires a project URL")
        self.base = url.rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        })

    # ------------------------------------------------------------------
    # HTTP helper
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        """
        Issue one PostgREST call and return the decoded JSON body.

        Raises RuntimeError with the status and a body excerpt on failure.
        """
        url = f"{self.base}/{table}"
        headers = {"Prefer": prefer} if prefer else None
        resp = self.session.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=headers,
            timeout=self.timeout,
        )
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise RuntimeError(
                f"PostgREST {method} {table} failed: {exc} :: {resp.text[:400]}"
            ) from exc

        if not resp.content:
            return []
        return resp.json()

    @staticmethod
    def _order(order_by: Optional[str], descending: bool) -> Dict[str, str]:
        if not order_by:
            return {}
        return {"order": f"{order_by}.{'desc' if descending else 'asc'}"}

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
        params = {"select": "*", **self._order(order_by, descending)}
        return list(self._request("GET", table, params=params))

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
        rows: List[Dict[str, Any]] = []
        for start in range(0, len(values), IN_CHUNK_SIZE):
            chunk = values[start:start + IN_CHUNK_SIZE]
            params = {
                "select": "*",
                column: _in_filter(chunk),
                **self._order(order_by, descending),
            }
            rows.extend(self._request("GET", table, params=params))

        if order_by and len(values) > IN_CHUNK_SIZE:
            # Chunks are ordered individually; merge them. None sorts last.
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: str(r[order_by]), reverse=descending)
            rows = present + missing
        return rows

    def select_column(
        self,
        table: str,
        column: str,
        *,
        not_null: bool = False,
    ) -> List[Any]:
        params = {"select": column}
        if not_null:
            params[column] = "not.is.null"
        rows = self._request("GET", table, params=params)
        return [r.get(column) for r in rows]

    def select_where(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        params = {"select": "*", column: f"eq.{value}"}
        return list(self._request("GET", table, params=params))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request(
            "POST",
            table,
            json_body=row,
            prefer="return=representation",
        )
        if isinstance(data, list) and data:
            return data[0]
        return dict(row)

    def update_where(self, table: str, column: str, value: Any, changes: Dict[str, Any]) -> int:
        body = {k: v for k, v in changes.items() if k != column}
        if not body:
            return 0
        data = self._request(
            "PATCH",
            table,
            params={column: f"eq.{value}"},
            json_body=body,
            prefer="return=representation",
        )
        return len(data) if isinstance(data, list) else 0

    def delete_where(self, table: str, column: str, value: Any) -> int:
        data = self._request(
            "DELETE",
            table,
            params={column: f"eq.{value}"},
            prefer="return=representation",
        )
        return len(data) if isinstance(data, list) else 0
