"""
Error taxonomy for the export / backup pipeline.

Two kinds of failure exist:

    - structural : the whole run is invalid (a query failed, the request
                   body is malformed, the archive cannot be written, the
                   caller went away). These are raised and end the run.

    - per-object : one document could not be downloaded. These are never
                   raised; they are counted in the export manifest.

Everything raised by this package derives from ExportError so the HTTP
layer can map it onto a single 500 response.
"""

from __future__ import annotations

from typing import Optional


class ExportError(Exception):
    """
    Base class for structural export failures.

    Attributes
    ----------
    state:
        Name of the orchestrator state the failure happened in, if known.
    """

    def __init__(self, message: str, *, state: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.state = state


class InvalidRequestError(ExportError):
    """The request body could not be parsed into a JSON object."""


class RecordFetchError(ExportError):
    """A record-set query against the relational store failed."""


class DocumentEnumerationError(ExportError):
    """Document metadata for the export could not be queried."""


class SerializationError(ExportError):
    """A record set could not be rendered as CSV."""


class ArchiveError(ExportError):
    """The archive could not be assembled or written."""


class DuplicateEntryError(ArchiveError):
    """An archive entry path was registered twice."""


class ArchiveFinalizedError(ArchiveError):
    """The archive was already finalized."""


class ExportCancelledError(ExportError):
    """The run was cancelled before all documents were downloaded."""


class BackupNotFoundError(ExportError):
    """No stored backup exists for the requested id."""


class ArchiveImportError(ExportError):
    """An uploaded archive is unreadable or lacks its contact requests."""


__all__ = [
    "ExportError",
    "InvalidRequestError",
    "RecordFetchError",
    "DocumentEnumerationError",
    "SerializationError",
    "ArchiveError",
    "DuplicateEntryError",
    "ArchiveFinalizedError",
    "ExportCancelledError",
    "BackupNotFoundError",
    "ArchiveImportError",
]
