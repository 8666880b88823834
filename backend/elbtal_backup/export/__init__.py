"""
elbtal_backup.export

Export pipeline for the back office.

This package provides:

    - records_to_csv     : record set -> CSV text
    - ArchiveBuilder     : deterministic in-memory ZIP builder
    - ObjectFetcher      : per-document download with isolated failures
    - ExportManifest     : summary written as the last archive entry

    - FullBackupPlan / LeadsExportPlan:
          what each export contains

    - ExportOrchestrator : runs a plan end to end
    - export_data        : inline CSV export as JSON
    - BackupManager      : stored backups (create / list / download / delete)
"""

from .csv_writer import records_to_csv, render_value
from .archive import ArchiveBuilder
from .fetcher import FetchResult, ObjectFetcher
from .manifest import ExportManifest, build_manifest
from .plans import ExportKind, ExportPlan, FullBackupPlan, LeadsExportPlan
from .orchestrator import ExportOrchestrator, ExportResult, ExportState
from .data_export import export_data
from .backups import BackupManager

__all__ = [
    # CSV
    "records_to_csv",
    "render_value",

    # Archive
    "ArchiveBuilder",

    # Documents
    "FetchResult",
    "ObjectFetcher",

    # Manifest
    "ExportManifest",
    "build_manifest",

    # Plans / orchestration
    "ExportKind",
    "ExportPlan",
    "FullBackupPlan",
    "LeadsExportPlan",
    "ExportOrchestrator",
    "ExportResult",
    "ExportState",

    # Sibling functions
    "export_data",
    "BackupManager",
]
