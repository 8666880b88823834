"""
Base object store interface.

Object stores hold the binary files the back office manages, grouped in
buckets:
    - lead-documents  (uploaded for a contact request)
    - user-documents  (uploaded by an applicant)
    - backups         (stored backup archives)

Concrete implementations:
    - LocalFSObjectStore       (local filesystem, one directory per bucket)
    - SupabaseStorageObjectStore (Supabase Storage over HTTP)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Protocol


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------

@dataclass
class ObjectStoreConfig:
    """
    Configuration for an object store backend.

    Parameters
    ----------
    base_path : str
        Root directory (local) or project URL (supabase).
    read_only : bool
        If True, write operations raise PermissionError.
    """
    base_path: str
    read_only: bool = False


class ObjectNotFoundError(FileNotFoundError):
    """The requested object does not exist in the bucket."""


# ----------------------------------------------------------------------
# Protocol (interface)
# ----------------------------------------------------------------------

class ObjectStore(Protocol):
    """
    Interface used by the export pipeline and the backup manager.

    Keys are POSIX-style paths inside a bucket, e.g.
        bucket="lead-documents", key="<contact_request_id>/ausweis.pdf"
    """

    config: ObjectStoreConfig

    def download(self, bucket: str, key: str) -> bytes:
        """Return the object's bytes; raise on any failure."""
        raise NotImplementedError

    def upload(self, bucket: str, key: str, data: bytes, *, content_type: str = "application/octet-stream") -> None:
        """Store a new object. Existing keys are not overwritten."""
        raise NotImplementedError

    def remove(self, bucket: str, keys: Iterable[str]) -> None:
        """Delete objects; missing keys are ignored."""
        raise NotImplementedError

    def list(self, bucket: str, prefix: str = "") -> List[str]:
        """List keys under a prefix, sorted."""
        raise NotImplementedError

    def create_signed_url(self, bucket: str, key: str, expires_in: int) -> str:
        """Return a time-limited download URL for the object."""
        raise NotImplementedError
