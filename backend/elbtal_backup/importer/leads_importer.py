"""
Leads importer - load a leads export back into the back office.

Reads an archive produced by the leads export (or a full backup):

    data/contact_requests.csv     required
    data/lead_documents.csv       optional
    data/user_documents.csv       optional (data/user_documents_metadata.csv
                                  in full backups)
    documents/...                 the downloaded files

and writes it through a RecordSource and an ObjectStore:

    - contact requests are upserted by id (inserted or updated)
    - document rows are inserted; rows whose id already exists are skipped
    - each document's file is uploaded to its bucket under file_path;
      files already present in the store are skipped

Per-row and per-file problems are counted and collected in `errors`; only
an unreadable archive or a missing contact_requests.csv fails the import.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..errors import ArchiveImportError
from ..object_store.base import ObjectStore
from ..records.base import RecordSource
from ..records.models import (
    CONTACT_REQUESTS,
    LEAD_DOCUMENTS,
    USER_DOCUMENTS,
    DocumentReference,
    RecordSet,
)
from ..export.paths import allocate_document_entry_path, build_csv_entry_path

logger = logging.getLogger(__name__)

USER_DOCUMENT_ENTRIES = ("user_documents", "user_documents_metadata")


# ----------------------------------------------------------------------
# Result
# ----------------------------------------------------------------------

@dataclass
class TableCounts:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


@dataclass
class FileCounts:
    uploaded: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass
class ImportResult:
    """
    Counters and collected errors of one import.
    """

    contact_requests: TableCounts = field(default_factory=TableCounts)
    lead_documents: TableCounts = field(default_factory=TableCounts)
    user_documents: TableCounts = field(default_factory=TableCounts)
    files: FileCounts = field(default_factory=FileCounts)
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        contacts = self.contact_requests.inserted + self.contact_requests.updated
        return (
            f"Import completed: {contacts} contacts, "
            f"{self.lead_documents.inserted} lead docs, "
            f"{self.user_documents.inserted} user docs"
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Response body of the import endpoint (camelCase keys, as the
        dashboard reads them).
        """
        return {
            "success": True,
            "message": self.message,
            "details": {
                "contactRequests": asdict(self.contact_requests),
                "leadDocuments": asdict(self.lead_documents),
                "userDocuments": asdict(self.user_documents),
                "files": asdict(self.files),
            },
            "errors": list(self.errors),
        }


# ----------------------------------------------------------------------
# CSV
# ----------------------------------------------------------------------

def read_csv_rows(text: str) -> RecordSet:
    """
    Parse CSV text written by records_to_csv. Empty fields become None.
    """
    if not text.strip():
        return []
    rows = []
    for raw in csv.DictReader(io.StringIO(text)):
        rows.append({
            k: (v if v != "" else None)
            for k, v in raw.items()
            if k is not None
        })
    return rows


# ----------------------------------------------------------------------
# Importer
# ----------------------------------------------------------------------

class LeadsImporter:
    """
    Loads export archives into one record source and object store.
    """

    def __init__(self, source: RecordSource, store: ObjectStore):
        self.source = source
        self.store = store

    def import_archive(self, content: bytes) -> ImportResult:
        try:
            zf = zipfile.ZipFile(io.BytesIO(content))
        except zipfile.BadZipFile as exc:
            raise ArchiveImportError(f"Uploaded file is not a ZIP archive: {exc}") from exc

        with zf:
            names = set(zf.namelist())
            contacts_entry = build_csv_entry_path("contact_requests")
            if contacts_entry not in names:
                raise ArchiveImportError("No contact requests data found in import")

            contacts = self._read_rows(zf, names, "contact_requests")
            lead_docs = self._read_rows(zf, names, "lead_documents")
            user_docs: RecordSet = []
            for name in USER_DOCUMENT_ENTRIES:
                user_docs = self._read_rows(zf, names, name)
                if user_docs:
                    break

            logger.info(
                "Importing %d contact requests, %d lead documents, %d user documents",
                len(contacts), len(lead_docs), len(user_docs),
            )

            result = ImportResult()
            for row in contacts:
                self._upsert(CONTACT_REQUESTS, row, result.contact_requests, result.errors, update=True)
            for row in lead_docs:
                self._upsert(LEAD_DOCUMENTS, row, result.lead_documents, result.errors, update=False)
            for row in user_docs:
                self._upsert(USER_DOCUMENTS, row, result.user_documents, result.errors, update=False)

            self._upload_files(zf, names, lead_docs, user_docs, result)

        logger.info("%s (%d errors)", result.message, len(result.errors))
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _read_rows(zf: zipfile.ZipFile, names: Set[str], name: str) -> RecordSet:
        entry = build_csv_entry_path(name)
        if entry not in names:
            return []
        try:
            return read_csv_rows(zf.read(entry).decode("utf-8"))
        except (UnicodeDecodeError, csv.Error) as exc:
            raise ArchiveImportError(f"{entry} could not be read: {exc}") from exc

    def _upsert(
        self,
        table: str,
        row: Dict[str, Any],
        counts: TableCounts,
        errors: List[str],
        *,
        update: bool,
    ) -> None:
        row_id = row.get("id")
        if not row_id:
            counts.skipped += 1
            errors.append(f"Row without id in {table}")
            return

        try:
            if self.source.select_where(table, "id", row_id):
                if not update:
                    counts.skipped += 1
                    return
                self.source.update_where(table, "id", row_id, row)
                counts.updated += 1
            else:
                self.source.insert(table, row)
                counts.inserted += 1
        except Exception as exc:
            counts.skipped += 1
            errors.append(f"Failed to import {table} row {row_id}: {exc}")
            logger.warning("Failed to import %s row %s: %s", table, row_id, exc)

    def _upload_files(
        self,
        zf: zipfile.ZipFile,
        names: Set[str],
        lead_docs: RecordSet,
        user_docs: RecordSet,
        result: ImportResult,
    ) -> None:
        # Same order and de-duplication as the export, so each document
        # resolves to the entry path the export gave it.
        taken: Set[str] = set()
        seen = set()
        for category, rows in ((LEAD_DOCUMENTS, lead_docs), (USER_DOCUMENTS, user_docs)):
            for row in rows:
                ref = self._reference(category, row, result)
                if ref is None or (ref.category, ref.id) in seen:
                    continue
                seen.add((ref.category, ref.id))

                path = allocate_document_entry_path(ref, taken.__contains__)
                if path not in names:
                    # The export could not download this one.
                    result.files.skipped += 1
                    continue
                taken.add(path)
                self._upload(zf, path, ref, row.get("content_type"), result)

    @staticmethod
    def _reference(category: str, row: Dict[str, Any], result: ImportResult) -> Optional[DocumentReference]:
        try:
            return DocumentReference.from_row(category, row)
        except (KeyError, ValueError) as exc:
            result.files.failed += 1
            result.errors.append(f"Unusable {category} row {row.get('id')}: {exc!r}")
            return None

    def _upload(
        self,
        zf: zipfile.ZipFile,
        path: str,
        ref: DocumentReference,
        content_type: Optional[str],
        result: ImportResult,
    ) -> None:
        try:
            self.store.upload(
                ref.bucket,
                ref.file_path,
                zf.read(path),
                content_type=content_type or "application/octet-stream",
            )
        except FileExistsError:
            result.files.skipped += 1
            return
        except Exception as exc:
            result.files.failed += 1
            result.errors.append(f"Failed to upload {ref.bucket}/{ref.file_path}: {exc}")
            logger.warning("Failed to upload %s/%s: %s", ref.bucket, ref.file_path, exc)
            return
        result.files.uploaded += 1


__all__ = [
    "TableCounts",
    "FileCounts",
    "ImportResult",
    "LeadsImporter",
    "read_csv_rows",
]
