"""
Path and file-name builders for export archives and stored backups.

All archive paths are POSIX-style ("a/b/c") with no leading slashes.
"""

from __future__ import annotations

import posixpath
from datetime import date, datetime
from typing import Callable, Iterator

from ..records.models import DocumentReference


def _segment(value: str) -> str:
    """
    Make one path segment safe: no separators, never empty or "..".
    """
    value = str(value).replace("/", "_").replace("\\", "_").strip()
    if value in ("", ".", ".."):
        return "_"
    return value


# ----------------------------------------------------------------------
# Archive entries
# ----------------------------------------------------------------------

def build_csv_entry_path(name: str) -> str:
    """
    Example:
        name = "contact_requests"
        -> "data/contact_requests.csv"
    """
    return f"data/{_segment(name)}.csv"


def build_document_entry_path(
    ref: DocumentReference,
    *,
    disambiguate: bool = False,
    counter: int = 1,
) -> str:
    """
    Archive path of a downloaded document.

    Example:
        category = "lead_documents", owner_key = "c1",
        document_type = "ausweis", file_name = "scan.pdf"
        -> "documents/lead_documents/c1/ausweis/scan.pdf"

    With disambiguate=True the file name is prefixed with the document id
    ("d7_scan.pdf"), for two references that would otherwise share a path.
    A counter above 1 also suffixes the stem ("d7_scan_2.pdf").
    """
    file_name = _segment(ref.file_name)
    if disambiguate or counter > 1:
        file_name = f"{_segment(ref.id)}_{file_name}"
    if counter > 1:
        stem, ext = posixpath.splitext(file_name)
        file_name = f"{stem}_{counter}{ext}"
    return (
        f"documents/{_segment(ref.category)}/{_segment(ref.owner_key)}/"
        f"{_segment(ref.document_type)}/{file_name}"
    )


def document_entry_candidates(ref: DocumentReference) -> Iterator[str]:
    """
    Archive paths for a document in order of preference: the plain path,
    the id-prefixed path, then id-prefixed paths numbered from 2 upwards.
    """
    yield build_document_entry_path(ref)
    yield build_document_entry_path(ref, disambiguate=True)
    counter = 2
    while True:
        yield build_document_entry_path(ref, counter=counter)
        counter += 1


def allocate_document_entry_path(ref: DocumentReference, is_taken: Callable[[str], bool]) -> str:
    """
    First candidate path for `ref` that `is_taken` reports as free.

    The export and the importer both call this in enumeration order, so
    the importer finds each document under the path the export gave it.
    """
    return next(p for p in document_entry_candidates(ref) if not is_taken(p))


# ----------------------------------------------------------------------
# Download names / storage keys
# ----------------------------------------------------------------------

def build_export_filename(prefix: str, day: date) -> str:
    """
    Example:
        prefix = "leads_export", day = 2024-05-01
        -> "leads_export_2024-05-01.zip"
    """
    return f"{prefix}_{day.isoformat()}.zip"


def build_backup_key(created_at: datetime) -> str:
    """
    Storage key for a stored backup; ":" and "." in the timestamp become "-".

    Example:
        2024-05-01T10:20:30.123456+00:00
        -> "daily/backup-2024-05-01T10-20-30-123456+00-00.zip"
    """
    stamp = created_at.isoformat().replace(":", "-").replace(".", "-")
    return f"daily/backup-{stamp}.zip"


__all__ = [
    "build_csv_entry_path",
    "build_document_entry_path",
    "document_entry_candidates",
    "allocate_document_entry_path",
    "build_export_filename",
    "build_backup_key",
]
