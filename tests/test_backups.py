"""
Stored backups: create, list, download, delete and retention.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from elbtal_backup.errors import BackupNotFoundError, ExportError
from elbtal_backup.export.backups import SIGNED_URL_TTL_S, BackupManager

from conftest import contact_request, read_zip


@pytest.fixture
def manager(source, store, make_orchestrator):
    source.tables["contact_requests"] = [contact_request("c1", "2024-04-01T09:00:00")]
    start = datetime(2024, 5, 1, 2, 0, 0, tzinfo=timezone.utc)
    ticks = itertools.count()
    ids = itertools.count(1)
    return BackupManager(
        orchestrator=make_orchestrator(),
        source=source,
        store=store,
        retention=2,
        clock=lambda: start + timedelta(hours=next(ticks)),
        id_factory=lambda: f"b{next(ids)}",
    )


def test_create_backup_stores_archive_and_record(manager, source, store):
    record = manager.create_backup()

    assert record["id"] == "b1"
    assert record["file_path"] == "daily/backup-2024-05-01T02-00-00+00-00.zip"
    assert record["file_name"] == "backup-2024-05-01T02-00-00+00-00.zip"
    assert record["backup_type"] == "manual"
    assert record["status"] == "completed"
    assert record["includes_database"] is True
    assert record["metadata"]["manifest"]["total_contact_requests"] == 1

    content = store.objects[("backups", record["file_path"])]
    assert record["file_size"] == len(content)
    assert "backup_info.json" in read_zip(content)
    assert len(source.tables["backup_records"]) == 1


def test_list_backups_newest_first(manager):
    manager.create_backup()
    manager.create_backup()

    assert [b["id"] for b in manager.list_backups()] == ["b2", "b1"]


def test_retention_prunes_oldest(manager, source, store):
    first = manager.create_backup()
    manager.create_backup()
    manager.create_backup()

    assert [b["id"] for b in manager.list_backups()] == ["b3", "b2"]
    assert ("backups", first["file_path"]) not in store.objects
    assert store.list("backups") == sorted(
        b["file_path"] for b in source.tables["backup_records"]
    )


def test_download_backup_returns_signed_url(manager):
    record = manager.create_backup()

    info = manager.download_backup(record["id"])

    assert info["file_name"] == record["file_name"]
    assert info["file_size"] == record["file_size"]
    assert info["download_url"].endswith(f"expires_in={SIGNED_URL_TTL_S}")


def test_unknown_backup_raises_not_found(manager):
    with pytest.raises(BackupNotFoundError):
        manager.download_backup("missing")
    with pytest.raises(BackupNotFoundError):
        manager.delete_backup("missing")
    with pytest.raises(BackupNotFoundError):
        manager.get_backup("")


def test_delete_survives_storage_failure(manager, source, store):
    record = manager.create_backup()
    store.fail_remove = True

    manager.delete_backup(record["id"])

    assert manager.list_backups() == []
    assert ("backups", record["file_path"]) in store.objects


def test_record_insert_failure_is_export_error(manager, source, store):
    source.fail_tables.add("backup_records")

    with pytest.raises(ExportError):
        manager.create_backup()
    assert store.list("backups") == []


def test_record_insert_failure_survives_cleanup_failure(manager, source, store):
    source.fail_tables.add("backup_records")
    store.fail_remove = True

    with pytest.raises(ExportError, match="Failed to record backup"):
        manager.create_backup()
