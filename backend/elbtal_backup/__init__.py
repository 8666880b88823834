"""
elbtal_backup

Top-level package initializer for the Elbtal back-office backup service.

This module does not contain any logic.
It exposes configuration utilities and ensures the package loads cleanly.

Submodules include:
    - db/            (SQLite / Postgres drivers)
    - records/       (record sources: SQL, Supabase REST)
    - object_store/  (document buckets: local filesystem, Supabase Storage)
    - export/        (CSV, archive, fetcher, orchestrator, stored backups)
    - app            (FastAPI endpoints)
    - cli            (command line)

This root package exports only the global config loader for convenience.
"""

from .config import ExportConfig, load_config

__all__ = [
    "ExportConfig",
    "load_config",
]
