from __future__ import annotations

"""
Core façade for the backup service.

ExportServices is the single entrypoint used by:

    - the HTTP API (one instance per process, shared by handlers),
    - the command line,
    - tests (constructed directly with in-memory fakes).

It wraps:

    - the record source (SQLite / Postgres / Supabase REST)
    - the object store (local filesystem / Supabase Storage)
    - the download policy from ExportConfig
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Optional

from .config import ExportConfig, load_config
from .db import DBPool, SQLiteBackend
from .export.backups import BackupManager
from .export.orchestrator import Emitter, ExportOrchestrator
from .importer.leads_importer import LeadsImporter
from .object_store.base import ObjectStore, ObjectStoreConfig
from .object_store.local_fs import LocalFSObjectStore
from .object_store.supabase_storage import SupabaseStorageObjectStore
from .records.base import RecordSource
from .records.db_source import DBRecordSource
from .records.rest_source import SupabaseRecordSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Façade
# ---------------------------------------------------------------------------

@dataclass
class ExportServices:
    """
    Wired record source + object store + settings.

    Attributes
    ----------
    source:
        RecordSource used by every export.
    store:
        ObjectStore holding document buckets and stored backups.
    config:
        ExportConfig the services were built from.
    """

    source: RecordSource
    store: ObjectStore
    config: ExportConfig = field(default_factory=ExportConfig)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: Optional[ExportConfig] = None,
        *,
        init_schema: bool = True,
    ) -> "ExportServices":
        """
        Build services from an ExportConfig (environment by default).
        """
        cfg = config or load_config()

        if cfg.enable_logging:
            logging.basicConfig(level=logging.INFO)
            logger.info("Initializing export services with config: %s", _redacted(cfg))

        return cls(
            source=_create_record_source(cfg, init_schema=init_schema),
            store=_create_object_store(cfg),
            config=cfg,
        )

    # ------------------------------------------------------------------
    # Pipeline objects
    # ------------------------------------------------------------------

    def orchestrator(self, *, emit: Optional[Emitter] = None) -> ExportOrchestrator:
        return ExportOrchestrator(
            self.source,
            self.store,
            workers=self.config.download_workers,
            attempts=self.config.download_attempts,
            backoff_s=self.config.retry_backoff_s,
            emit=emit,
        )

    def backup_manager(self) -> BackupManager:
        return BackupManager(
            orchestrator=self.orchestrator(),
            source=self.source,
            store=self.store,
            retention=self.config.backup_retention,
        )

    def importer(self) -> LeadsImporter:
        return LeadsImporter(self.source, self.store)


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def _redacted(cfg: ExportConfig) -> ExportConfig:
    return replace(cfg, supabase_service_key="***" if cfg.supabase_service_key else "")


def _create_record_source(cfg: ExportConfig, *, init_schema: bool) -> RecordSource:
    backend_name = cfg.record_backend.lower()

    if backend_name == "supabase":
        return SupabaseRecordSource(
            cfg.supabase_url,
            cfg.supabase_service_key,
            timeout=cfg.request_timeout_s,
        )

    if backend_name == "sqlite":
        backend = SQLiteBackend(cfg.db_uri)
    elif backend_name == "postgres":
        from .db.postgres_backend import PostgresBackend

        backend = PostgresBackend(cfg.db_uri)
    else:
        raise ValueError(f"Unknown record backend: {cfg.record_backend!r}")

    if init_schema:
        conn = backend.connect()
        try:
            backend.init_schema(conn)
        finally:
            conn.close()

    return DBRecordSource(DBPool(backend))


def _create_object_store(cfg: ExportConfig) -> ObjectStore:
    store_name = cfg.store_backend.lower()

    if store_name == "local":
        return LocalFSObjectStore(
            ObjectStoreConfig(base_path=os.path.abspath(cfg.object_store_root))
        )
    if store_name == "supabase":
        return SupabaseStorageObjectStore(
            ObjectStoreConfig(base_path=cfg.supabase_url),
            cfg.supabase_service_key,
            timeout=cfg.request_timeout_s,
        )
    raise ValueError(f"Unknown object store backend: {cfg.store_backend!r}")


def build_services(
    config: Optional[ExportConfig] = None,
    *,
    init_schema: bool = True,
) -> ExportServices:
    """
    Convenience constructor used by the API and the command line.
    """
    return ExportServices.from_config(config, init_schema=init_schema)


__all__ = [
    "ExportServices",
    "build_services",
]
