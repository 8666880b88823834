"""
Local filesystem object store backend.

Buckets map to subdirectories under `config.base_path`, keys to files
inside them. Intended for local development, offline restores, and tests.

Example mapping:
    bucket = "lead-documents", key = "abc/ausweis.pdf"
    real_path = "<base_path>/lead-documents/abc/ausweis.pdf"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from .base import ObjectNotFoundError, ObjectStoreConfig


class LocalFSObjectStore:
    """
    Local filesystem implementation of ObjectStore.
    """

    def __init__(self, config: ObjectStoreConfig):
        self.config = config
        os.makedirs(self.config.base_path, exist_ok=True)

    # ------------------------------------------------------------------
    # Key resolution
    # ------------------------------------------------------------------

    def _resolve(self, bucket: str, key: str) -> str:
        """
        Translate (bucket, key) into a physical path under base_path.

        Ensures:
          - no leading slash
          - no Windows backslashes
          - no path traversal out of the bucket
        """
        bucket = bucket.strip("/").replace("\\", "/")
        key = key.strip("/").replace("\\", "/")
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise ValueError(f"Invalid bucket name: {bucket!r}")

        root = os.path.abspath(os.path.join(self.config.base_path, bucket))
        path = os.path.abspath(os.path.join(root, key))
        if not path.startswith(root + os.sep):
            raise ValueError(f"Suspicious key outside bucket: {key}")

        return path

    def _check_writable(self) -> None:
        if self.config.read_only:
            raise PermissionError("ObjectStore is in read-only mode")

    # ------------------------------------------------------------------
    # Core interface
    # ------------------------------------------------------------------

    def exists(self, bucket: str, key: str) -> bool:
        return os.path.isfile(self._resolve(bucket, key))

    def download(self, bucket: str, key: str) -> bytes:
        path = self._resolve(bucket, key)
        if not os.path.isfile(path):
            raise ObjectNotFoundError(f"Object not found: {bucket}/{key}")
        with open(path, "rb") as f:
            return f.read()

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> None:
        self._check_writable()

        path = self._resolve(bucket, key)
        if os.path.exists(path):
            raise FileExistsError(f"Object already exists: {bucket}/{key}")
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    def remove(self, bucket: str, keys: Iterable[str]) -> None:
        self._check_writable()

        for key in keys:
            path = self._resolve(bucket, key)
            if os.path.exists(path):
                os.remove(path)

    def list(self, bucket: str, prefix: str = "") -> List[str]:
        root = os.path.abspath(os.path.join(self.config.base_path, bucket.strip("/")))
        start = self._resolve(bucket, prefix) if prefix.strip("/") else root

        if not os.path.exists(start):
            return []

        result: List[str] = []
        for dirpath, _, files in os.walk(start):
            for file in files:
                full_path = os.path.join(dirpath, file)
                result.append(os.path.relpath(full_path, root).replace("\\", "/"))

        return sorted(result)

    def create_signed_url(self, bucket: str, key: str, expires_in: int) -> str:
        """
        Local files do not expire; the file:// URI is returned as-is.
        """
        path = self._resolve(bucket, key)
        if not os.path.isfile(path):
            raise ObjectNotFoundError(f"Object not found: {bucket}/{key}")
        return Path(path).as_uri()
