"""
BackupManager - stored backups of the full export.

Connects the export pipeline with the object store and the
backup_records table:

    1) build a full-backup archive with the orchestrator
    2) store it in the `backups` bucket under daily/backup-<ts>.zip
    3) record it in backup_records
    4) prune everything beyond the retention count
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from ..errors import BackupNotFoundError, ExportError
from ..object_store.base import ObjectStore
from ..records.base import RecordSource
from ..records.models import (
    BACKUP_RECORDS,
    BACKUPS_BUCKET,
    CONTACT_REQUESTS,
    LEAD_DOCUMENTS,
    LEAD_DOCUMENTS_BUCKET,
    PROPERTY_APPLICATIONS,
    USER_DOCUMENTS,
    USER_DOCUMENTS_BUCKET,
)
from .orchestrator import ExportOrchestrator
from .paths import build_backup_key
from .plans import FullBackupPlan

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_S = 3600


def _normalize_record(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    SQLite stores metadata as JSON text and flags as 0/1; hand callers the
    same shapes PostgREST returns.
    """
    out = dict(row)
    meta = out.get("metadata")
    if isinstance(meta, str):
        try:
            out["metadata"] = json.loads(meta)
        except ValueError:
            logger.warning("backup %s has unreadable metadata", out.get("id"))
    for flag in ("includes_database", "includes_storage"):
        if flag in out and out[flag] is not None:
            out[flag] = bool(out[flag])
    return out


@dataclass
class BackupManager:
    """
    High-level backup operations bound to one record source and store.
    """

    orchestrator: ExportOrchestrator
    source: RecordSource
    store: ObjectStore
    retention: int = 10
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc))
    id_factory: Callable[[], str] = field(default=lambda: str(uuid.uuid4()))

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_backup(self) -> Dict[str, Any]:
        """
        Build, store and record a full backup. Returns the new record.
        """
        result = self.orchestrator.run(FullBackupPlan())
        created_at = self.clock()
        key = build_backup_key(created_at)
        file_name = key.rsplit("/", 1)[-1]

        try:
            self.store.upload(BACKUPS_BUCKET, key, result.content, content_type="application/zip")
        except Exception as exc:
            raise ExportError(f"Failed to upload backup: {exc}") from exc

        record = {
            "id": self.id_factory(),
            "file_name": file_name,
            "file_path": key,
            "file_size": result.size,
            "backup_type": "manual",
            "status": "completed",
            "includes_database": True,
            "includes_storage": True,
            "metadata": {
                "created_by": "admin",
                "tables_included": [CONTACT_REQUESTS, PROPERTY_APPLICATIONS, USER_DOCUMENTS, LEAD_DOCUMENTS],
                "storage_buckets": [LEAD_DOCUMENTS_BUCKET, USER_DOCUMENTS_BUCKET],
                "manifest": result.manifest.to_dict(),
            },
            "backup_date": created_at.isoformat(),
            "created_at": created_at.isoformat(),
        }

        try:
            stored = self.source.insert(BACKUP_RECORDS, record)
        except Exception as exc:
            # Pruning only sees recorded backups; drop the unrecorded file.
            try:
                self.store.remove(BACKUPS_BUCKET, [key])
            except Exception as remove_exc:
                logger.warning("Failed to remove unrecorded backup %s: %s", key, remove_exc)
            raise ExportError(f"Failed to record backup: {exc}") from exc

        logger.info("Stored backup %s (%d bytes) at %s/%s", record["id"], result.size, BACKUPS_BUCKET, key)
        self.prune()
        return _normalize_record(stored)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_backups(self) -> List[Dict[str, Any]]:
        rows = self.source.select_all(BACKUP_RECORDS, order_by="created_at", descending=True)
        return [_normalize_record(r) for r in rows]

    def get_backup(self, backup_id: str) -> Dict[str, Any]:
        rows = self.source.select_where(BACKUP_RECORDS, "id", backup_id) if backup_id else []
        if not rows:
            raise BackupNotFoundError("Backup not found")
        return _normalize_record(rows[0])

    def download_backup(self, backup_id: str) -> Dict[str, Any]:
        backup = self.get_backup(backup_id)
        try:
            url = self.store.create_signed_url(BACKUPS_BUCKET, backup["file_path"], SIGNED_URL_TTL_S)
        except Exception as exc:
            raise ExportError(f"Failed to generate download URL: {exc}") from exc
        return {
            "download_url": url,
            "file_name": backup["file_name"],
            "file_size": backup.get("file_size"),
        }

    # ------------------------------------------------------------------
    # Delete / retention
    # ------------------------------------------------------------------

    def delete_backup(self, backup_id: str) -> None:
        backup = self.get_backup(backup_id)
        try:
            self.store.remove(BACKUPS_BUCKET, [backup["file_path"]])
        except Exception as exc:
            # The record is still removed; an orphaned file is harmless.
            logger.warning("Failed to delete backup file %s: %s", backup["file_path"], exc)

        try:
            self.source.delete_where(BACKUP_RECORDS, "id", backup_id)
        except Exception as exc:
            raise ExportError(f"Failed to delete backup record: {exc}") from exc

    def prune(self) -> List[str]:
        """
        Delete backups beyond the newest `retention`. Returns removed ids.
        """
        removed: List[str] = []
        for old in self.list_backups()[self.retention:]:
            try:
                self.delete_backup(old["id"])
                removed.append(old["id"])
            except ExportError as exc:
                logger.warning("Failed to prune backup %s: %s", old["id"], exc)
        return removed


__all__ = [
    "BackupManager",
    "SIGNED_URL_TTL_S",
]
