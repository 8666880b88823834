"""
Export manifest helpers.

The manifest is the last entry of every export archive
(backup_info.json / export_info.json). It records:

    - created_at            ISO-8601 UTC timestamp of the run
    - total_<record set>    row counts of every exported set
    - successful_downloads  documents written into the archive
    - failed_downloads      documents that could not be fetched
    - export_kind           full_backup_with_documents | leads_with_documents
    - duration_ms           wall time of the run

successful_downloads + failed_downloads always equals the number of
documents attempted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional


JsonDict = Dict[str, Any]


@dataclass
class ExportManifest:
    """
    Thin wrapper around the raw manifest JSON.

    All fields are stored in `data`; the properties cover the keys the
    pipeline itself reads back.
    """

    data: JsonDict = field(default_factory=dict)

    # - - - Typed properties - - -

    @property
    def export_kind(self) -> Optional[str]:
        v = self.data.get("export_kind")
        return str(v) if v is not None else None

    @property
    def created_at(self) -> Optional[str]:
        v = self.data.get("created_at")
        return str(v) if v is not None else None

    @property
    def successful_downloads(self) -> int:
        return int(self.data.get("successful_downloads", 0))

    @property
    def failed_downloads(self) -> int:
        return int(self.data.get("failed_downloads", 0))

    @property
    def attempted_downloads(self) -> int:
        return self.successful_downloads + self.failed_downloads

    # - - - Convenience methods - - -

    def to_dict(self) -> JsonDict:
        return self.data

    def to_json(self) -> str:
        """
        Serialise with stable formatting (2-space indent, insertion order).
        """
        return json.dumps(self.data, indent=2, ensure_ascii=False, default=str)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ExportManifest":
        return cls(data=dict(d))

    @classmethod
    def from_json(cls, text: str) -> "ExportManifest":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Manifest JSON must be an object")
        return cls.from_dict(data)


def build_manifest(
    *,
    export_kind: str,
    created_at: datetime,
    counts: Mapping[str, int],
    successful_downloads: int,
    failed_downloads: int,
    duration_ms: int,
) -> ExportManifest:
    """
    Assemble the manifest for one finished run.
    """
    data: JsonDict = {"created_at": created_at.isoformat()}
    for name, count in counts.items():
        data[f"total_{name}"] = int(count)
    data["successful_downloads"] = int(successful_downloads)
    data["failed_downloads"] = int(failed_downloads)
    data["export_kind"] = export_kind
    data["duration_ms"] = int(duration_ms)
    return ExportManifest(data=data)


__all__ = [
    "ExportManifest",
    "build_manifest",
]
