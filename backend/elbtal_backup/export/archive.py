"""
In-memory ZIP assembly for exports.

ArchiveBuilder collects named entries (text or bytes) and writes them
into a ZIP archive in insertion order. Every member gets the same fixed
timestamp and permissions, so identical entries always produce
identical archive bytes.
"""

from __future__ import annotations

import io
import posixpath
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, List, Union

from ..errors import ArchiveError, ArchiveFinalizedError, DuplicateEntryError


# Earliest timestamp the ZIP format can store.
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)

Content = Union[str, bytes, bytearray, memoryview]


def normalize_entry_path(path: str) -> str:
    """
    Normalise an archive member path to POSIX form without a leading slash.

    Rejects empty paths, directory paths and ".." segments.
    """
    if not isinstance(path, str):
        raise ArchiveError(f"Entry path must be a string, got {type(path).__name__}")

    raw = path.replace("\\", "/").lstrip("/")
    if not raw or raw.endswith("/"):
        raise ArchiveError(f"Invalid entry path: {path!r}")
    if ".." in raw.split("/"):
        raise ArchiveError(f"Entry path escapes archive root: {path!r}")

    return posixpath.normpath(raw)


class ArchiveBuilder:
    """
    Deterministic ZIP builder for one export run.

    Parameters
    ----------
    compression :
        zipfile compression constant (default ZIP_DEFLATED).
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression
        self._entries: Dict[str, bytes] = {}
        self._finalized = False

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def add_entry(self, path: str, content: Content) -> str:
        """
        Register content at a path. Text is stored as UTF-8.

        Returns the normalised path.

        Raises
        ------
        DuplicateEntryError
            If the path was already registered.
        ArchiveFinalizedError
            If finalize() has already run.
        """
        if self._finalized:
            raise ArchiveFinalizedError("Archive already finalized")

        key = normalize_entry_path(path)
        if key in self._entries:
            raise DuplicateEntryError(f"Duplicate archive entry: {key}")

        if isinstance(content, str):
            data = content.encode("utf-8")
        elif isinstance(content, (bytes, bytearray, memoryview)):
            data = bytes(content)
        else:
            raise ArchiveError(
                f"Unsupported content type for {key}: {type(content).__name__}"
            )

        self._entries[key] = data
        return key

    def has_entry(self, path: str) -> bool:
        return normalize_entry_path(path) in self._entries

    @property
    def paths(self) -> List[str]:
        return list(self._entries.keys())

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _write(self, fp: BinaryIO) -> None:
        if self._finalized:
            raise ArchiveFinalizedError("Archive already finalized")

        try:
            with zipfile.ZipFile(fp, "w", self.compression) as zf:
                for name, data in self._entries.items():
                    info = zipfile.ZipInfo(name, date_time=FIXED_DATE_TIME)
                    info.compress_type = self.compression
                    info.external_attr = 0o644 << 16
                    zf.writestr(info, data)
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            raise ArchiveError(f"Failed to write archive: {exc}") from exc

        self._finalized = True

    def finalize(self) -> bytes:
        """
        Produce the archive bytes. Terminal: no entries may follow.
        """
        buf = io.BytesIO()
        self._write(buf)
        return buf.getvalue()

    def write_to_fileobj(self, fp: BinaryIO) -> None:
        """
        Finalize into an open binary file-like object. The caller owns fp.
        """
        self._write(fp)

    def write_to_path(self, zip_path: Union[str, Path]) -> Path:
        """
        Finalize into a file path and return it.
        """
        zip_path = Path(zip_path)
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        with zip_path.open("wb") as f:
            self._write(f)
        return zip_path


__all__ = [
    "ArchiveBuilder",
    "normalize_entry_path",
    "FIXED_DATE_TIME",
]
