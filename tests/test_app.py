"""
HTTP surface: archive responses, CORS, error bodies, backup-system actions.
"""

import re

import pytest
from fastapi.testclient import TestClient

from elbtal_backup.app import create_app
from elbtal_backup.config import ExportConfig
from elbtal_backup.core import ExportServices

from conftest import contact_request, lead_document, read_zip

FULL_BACKUP = "/functions/v1/full-backup"
LEADS_EXPORT = "/functions/v1/leads-export-with-documents"
EXPORT_DATA = "/functions/v1/export-data"
BACKUP_SYSTEM = "/functions/v1/backup-system"
LEADS_IMPORT = "/functions/v1/leads-import-with-documents"


@pytest.fixture
def client(source, store):
    source.tables["contact_requests"] = [contact_request("c1", "2024-04-01T09:00:00")]
    source.tables["lead_documents"] = [lead_document("d1", "c1", "2024-04-03T10:00:00")]
    store.objects[("lead-documents", "c1/d1/d1.pdf")] = b"lead-1"
    services = ExportServices(source=source, store=store, config=ExportConfig())
    return TestClient(create_app(services))


def _assert_cors(resp):
    assert resp.headers["access-control-allow-origin"] == "*"
    assert resp.headers["access-control-allow-headers"] == (
        "authorization, x-client-info, apikey, content-type"
    )


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_full_backup_returns_zip(client):
    resp = client.post(FULL_BACKUP)

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/zip"
    assert re.fullmatch(
        r'attachment; filename="elbtal_full_backup_\d{4}-\d{2}-\d{2}\.zip"',
        resp.headers["content-disposition"],
    )
    assert int(resp.headers["content-length"]) == len(resp.content)
    _assert_cors(resp)

    files = read_zip(resp.content)
    assert files["documents/lead_documents/c1/ausweis/d1.pdf"] == b"lead-1"
    assert list(files)[-1] == "backup_info.json"


def test_leads_export_accepts_cutoff_date(client):
    resp = client.post(LEADS_EXPORT, json={"cutoff_date": "2024-01-01"})

    assert resp.status_code == 200
    assert 'filename="leads_export_' in resp.headers["content-disposition"]
    assert "export_info.json" in read_zip(resp.content)


def test_query_failure_returns_json_500(client, source):
    source.fail_tables.add("contact_requests")

    resp = client.post(FULL_BACKUP)

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Backup failed"
    assert "contact_requests" in body["message"]
    _assert_cors(resp)


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"text"'])
def test_malformed_body_is_structural_failure(client, raw):
    resp = client.post(
        LEADS_EXPORT,
        content=raw,
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 500
    assert resp.json()["error"] == "Export failed"


def test_preflight_without_origin(client):
    resp = client.options(FULL_BACKUP)

    assert resp.status_code == 200
    assert resp.text == "ok"
    _assert_cors(resp)


def test_browser_preflight(client):
    resp = client.options(
        LEADS_EXPORT,
        headers={
            "Origin": "https://admin.elbtal.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert resp.status_code == 200
    _assert_cors(resp)


def test_export_data(client):
    resp = client.post(EXPORT_DATA)

    assert resp.status_code == 200
    body = resp.json()
    assert body["contact_requests"]["count"] == 1
    assert body["contact_requests"]["csv"].startswith("id,created_at")
    assert body["property_applications"]["count"] == 0
    _assert_cors(resp)


def test_export_data_failure(client, source):
    source.fail_tables.add("property_applications")

    resp = client.post(EXPORT_DATA)

    assert resp.status_code == 500
    assert resp.json()["error"] == "Export failed"


# ----------------------------------------------------------------------
# backup-system
# ----------------------------------------------------------------------

def test_backup_system_invalid_action(client):
    resp = client.post(BACKUP_SYSTEM, json={"action": "explode"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid action"}
    _assert_cors(resp)


def test_backup_system_lifecycle(client, store):
    assert client.post(BACKUP_SYSTEM, json={"action": "list_backups"}).json() == {"backups": []}

    created = client.post(BACKUP_SYSTEM, json={"action": "create_backup"}).json()
    assert created["success"] is True
    backup_id = created["backup_id"]

    backups = client.post(BACKUP_SYSTEM, json={"action": "list_backups"}).json()["backups"]
    assert [b["id"] for b in backups] == [backup_id]
    assert store.list("backups") == [backups[0]["file_path"]]

    download = client.post(
        BACKUP_SYSTEM, json={"action": "download_backup", "backup_id": backup_id}
    ).json()
    assert download["download_url"].endswith("expires_in=3600")
    assert download["file_name"] == backups[0]["file_name"]

    deleted = client.post(BACKUP_SYSTEM, json={"action": "delete_backup", "backup_id": backup_id})
    assert deleted.json() == {"success": True, "message": "Backup deleted successfully"}
    assert store.list("backups") == []


def test_backup_system_unknown_backup(client):
    for action in ("download_backup", "delete_backup"):
        resp = client.post(BACKUP_SYSTEM, json={"action": action, "backup_id": "missing"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Backup not found"}


def test_backup_system_create_failure(client, source):
    source.fail_tables.add("backup_records")

    resp = client.post(BACKUP_SYSTEM, json={"action": "create_backup"})

    assert resp.status_code == 500
    assert resp.json()["success"] is False


def test_backup_system_malformed_body(client):
    resp = client.post(BACKUP_SYSTEM, content="not json", headers={"content-type": "application/json"})

    assert resp.status_code == 500
    assert list(resp.json()) == ["error"]


# ----------------------------------------------------------------------
# leads-import-with-documents
# ----------------------------------------------------------------------

def test_leads_import_upload(client, source, store):
    exported = client.post(LEADS_EXPORT).content
    source.tables["contact_requests"] = []
    source.tables["lead_documents"] = []
    store.objects.clear()

    resp = client.post(LEADS_IMPORT, files={"zipFile": ("leads.zip", exported, "application/zip")})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["details"]["contactRequests"] == {"inserted": 1, "updated": 0, "skipped": 0}
    assert body["details"]["files"]["uploaded"] == 1
    assert store.objects[("lead-documents", "c1/d1/d1.pdf")] == b"lead-1"
    _assert_cors(resp)


def test_leads_import_without_file(client):
    resp = client.post(LEADS_IMPORT)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Import failed", "error": "No ZIP file provided"}
    _assert_cors(resp)


def test_leads_import_preflight(client):
    resp = client.options(LEADS_IMPORT)

    assert resp.status_code == 200
    _assert_cors(resp)
