"""
Shared fixtures: in-memory record source and object store.
"""

from __future__ import annotations

import contextlib
import io
import zipfile
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytest

from elbtal_backup.export.orchestrator import ExportOrchestrator
from elbtal_backup.object_store.base import ObjectNotFoundError, ObjectStoreConfig

FIXED_NOW = datetime(2024, 5, 1, 10, 20, 30, tzinfo=timezone.utc)


# ----------------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------------

class FakeRecordSource:
    """
    Tables as lists of dicts. Queries on a table in `fail_tables` raise.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.fail_tables: set = set()
        self.queries: List[tuple] = []
        self.snapshots = 0
        self._in_snapshot = False

    @contextlib.contextmanager
    def read_snapshot(self):
        self.snapshots += 1
        self._in_snapshot = True
        try:
            yield self
        finally:
            self._in_snapshot = False

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        self.queries.append(("select", table, self._in_snapshot))
        if table in self.fail_tables:
            raise RuntimeError(f"relation {table} is unavailable")
        return [dict(r) for r in self.tables.get(table, [])]

    @staticmethod
    def _order(rows, order_by, descending):
        if not order_by:
            return rows
        return sorted(rows, key=lambda r: str(r.get(order_by) or ""), reverse=descending)

    def select_all(self, table, *, order_by=None, descending=True):
        return self._order(self._rows(table), order_by, descending)

    def select_in(self, table, column, values, *, order_by=None, descending=True):
        wanted = set(values)
        if not wanted:
            return []
        rows = [r for r in self._rows(table) if r.get(column) in wanted]
        return self._order(rows, order_by, descending)

    def select_column(self, table, column, *, not_null=False):
        values = [r.get(column) for r in self._rows(table)]
        return [v for v in values if v is not None] if not_null else values

    def select_where(self, table, column, value):
        return [r for r in self._rows(table) if r.get(column) == value]

    def insert(self, table, row):
        if table in self.fail_tables:
            raise RuntimeError(f"insert into {table} failed")
        self.tables.setdefault(table, []).append(dict(row))
        return dict(row)

    def update_where(self, table, column, value, changes):
        if table in self.fail_tables:
            raise RuntimeError(f"update of {table} failed")
        matched = [r for r in self.tables.get(table, []) if r.get(column) == value]
        for r in matched:
            r.update(changes)
        return len(matched)

    def delete_where(self, table, column, value):
        rows = self.tables.get(table, [])
        keep = [r for r in rows if r.get(column) != value]
        self.tables[table] = keep
        return len(rows) - len(keep)


class FakeObjectStore:
    """
    Objects keyed by (bucket, key). `failures` maps (bucket, key) to the
    exception download() raises for it.
    """

    def __init__(self, objects: Optional[Dict[tuple, bytes]] = None):
        self.config = ObjectStoreConfig(base_path="memory://")
        self.objects: Dict[tuple, bytes] = dict(objects or {})
        self.failures: Dict[tuple, Exception] = {}
        self.fail_remove = False
        self.downloads: List[tuple] = []

    def download(self, bucket: str, key: str) -> bytes:
        self.downloads.append((bucket, key))
        if (bucket, key) in self.failures:
            raise self.failures[(bucket, key)]
        if (bucket, key) not in self.objects:
            raise ObjectNotFoundError(f"Object not found: {bucket}/{key}")
        return self.objects[(bucket, key)]

    def upload(self, bucket: str, key: str, data: bytes, *, content_type: str = "application/octet-stream") -> None:
        if (bucket, key) in self.objects:
            raise FileExistsError(f"Object already exists: {bucket}/{key}")
        self.objects[(bucket, key)] = bytes(data)

    def remove(self, bucket: str, keys: Iterable[str]) -> None:
        if self.fail_remove:
            raise ConnectionError("storage unavailable")
        for key in keys:
            self.objects.pop((bucket, key), None)

    def list(self, bucket: str, prefix: str = "") -> List[str]:
        return sorted(k for b, k in self.objects if b == bucket and k.startswith(prefix))

    def create_signed_url(self, bucket: str, key: str, expires_in: int) -> str:
        if (bucket, key) not in self.objects:
            raise ObjectNotFoundError(f"Object not found: {bucket}/{key}")
        return f"https://storage.test/{bucket}/{key}?expires_in={expires_in}"


# ----------------------------------------------------------------------
# Row builders
# ----------------------------------------------------------------------

def contact_request(cid: str, created_at: str, **extra: Any) -> Dict[str, Any]:
    row = {
        "id": cid,
        "created_at": created_at,
        "vorname": "Erika",
        "nachname": "Mustermann",
        "email": f"{cid}@example.org",
        "telefon": "040 123456",
        "nachricht": "Ich interessiere mich für die Wohnung.",
    }
    row.update(extra)
    return row


def lead_document(
    did: str,
    contact_request_id: str,
    created_at: str,
    *,
    document_type: str = "ausweis",
    file_name: Optional[str] = None,
) -> Dict[str, Any]:
    file_name = file_name or f"{did}.pdf"
    return {
        "id": did,
        "contact_request_id": contact_request_id,
        "document_type": document_type,
        "file_name": file_name,
        "file_path": f"{contact_request_id}/{did}/{file_name}",
        "created_at": created_at,
    }


def user_document(did: str, user_id: str, uploaded_at: str, *, document_type: str = "gehaltsnachweis") -> Dict[str, Any]:
    return {
        "id": did,
        "user_id": user_id,
        "document_type": document_type,
        "file_name": f"{did}.pdf",
        "file_path": f"{user_id}/{did}.pdf",
        "uploaded_at": uploaded_at,
    }


def property_application(aid: str, user_id: Optional[str], created_at: str) -> Dict[str, Any]:
    return {
        "id": aid,
        "created_at": created_at,
        "user_id": user_id,
        "vorname": "Max",
        "nachname": "Muster",
        "email": f"{aid}@example.org",
        "telefon": "040 654321",
    }


def read_zip(content: bytes) -> Dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(content)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def source() -> FakeRecordSource:
    return FakeRecordSource()


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def make_orchestrator(source, store):
    def _make(**kwargs) -> ExportOrchestrator:
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        kwargs.setdefault("sleep", lambda _s: None)
        return ExportOrchestrator(source, store, **kwargs)

    return _make
