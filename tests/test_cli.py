"""
Command line export against a SQLite database and a local object store.
"""

import json

import pytest

from elbtal_backup.cli import main
from elbtal_backup.config import ExportConfig
from elbtal_backup.core import build_services

from conftest import contact_request, lead_document, read_zip


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("ELBTAL_RECORD_BACKEND", "sqlite")
    monkeypatch.setenv("ELBTAL_DB_URI", str(tmp_path / "elbtal.db"))
    monkeypatch.setenv("ELBTAL_STORE_BACKEND", "local")
    monkeypatch.setenv("ELBTAL_OBJECT_STORE_ROOT", str(tmp_path / "objects"))

    services = build_services(ExportConfig(
        db_uri=str(tmp_path / "elbtal.db"),
        object_store_root=str(tmp_path / "objects"),
    ))
    services.source.insert("contact_requests", contact_request("c1", "2024-04-01T09:00:00"))
    services.source.insert("lead_documents", lead_document("d1", "c1", "2024-04-03T10:00:00"))
    services.store.upload("lead-documents", "c1/d1/d1.pdf", b"lead-1")
    return tmp_path


def test_export_writes_archive_and_prints_manifest(env, capsys):
    out = env / "exports" / "leads.zip"

    assert main(["export", "leads-export", "-o", str(out)]) == 0

    files = read_zip(out.read_bytes())
    assert files["documents/lead_documents/c1/ausweis/d1.pdf"] == b"lead-1"

    printed = capsys.readouterr().out
    manifest = json.loads(printed[: printed.rindex("}") + 1])
    assert manifest["successful_downloads"] == 1
    assert manifest["export_kind"] == "leads_with_documents"


def test_export_failure_exit_code(env, monkeypatch, capsys):
    monkeypatch.setenv("ELBTAL_RECORD_BACKEND", "supabase")
    monkeypatch.setenv("SUPABASE_URL", "http://127.0.0.1:9")
    monkeypatch.setenv("ELBTAL_REQUEST_TIMEOUT_S", "0.5")

    assert main(["export", "full-backup", "-o", str(env / "x.zip")]) == 1
    assert "FETCHING_RECORDS" in capsys.readouterr().err


def test_unknown_plan_rejected():
    with pytest.raises(SystemExit):
        main(["export", "everything"])


def test_import_own_export_updates_and_skips(env, capsys):
    out = env / "leads.zip"
    assert main(["export", "leads-export", "-o", str(out)]) == 0
    capsys.readouterr()

    assert main(["import", str(out)]) == 0

    body = json.loads(capsys.readouterr().out)
    assert body["details"]["contactRequests"]["updated"] == 1
    assert body["details"]["leadDocuments"]["skipped"] == 1
    assert body["details"]["files"]["skipped"] == 1


def test_import_missing_archive_exit_code(env, capsys):
    assert main(["import", str(env / "nope.zip")]) == 1
    assert "[import] failed" in capsys.readouterr().err
