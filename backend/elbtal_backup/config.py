"""
Global configuration settings for the Elbtal backup service.

This module centralizes configuration for:

    - record source selection (sqlite, postgres, supabase REST)
    - object store selection (local filesystem, supabase storage)
    - document download strategy (workers, retry attempts, backoff)
    - backup retention
    - feature flags (logging, etc.)

It provides:
    ExportConfig   – structured config object
    load_config()  – load from environment variables or defaults
"""

from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass
class ExportConfig:
    """
    Canonical configuration for the elbtal_backup service.

    Attributes
    ----------
    record_backend:
        Where rows come from: "sqlite", "postgres" or "supabase".

    db_uri:
        - For SQLite: path to the .db file (e.g. "./elbtal.db").
        - For Postgres: a full DSN string.
        Unused for "supabase".

    store_backend:
        Where documents live: "local" or "supabase".

    object_store_root:
        Directory holding the buckets of the local object store.

    supabase_url, supabase_service_key:
        Project URL and service-role key used by the supabase drivers.

    download_workers:
        Number of concurrent document downloads. 1 means sequential.

    download_attempts:
        Attempts per document. 1 means a single try, no retry.

    retry_backoff_s:
        Base delay between attempts; doubled after each failure.

    request_timeout_s:
        Timeout for HTTP calls made by the supabase drivers.

    backup_retention:
        Number of stored backups kept by the backup-system endpoint.

    enable_logging:
        Whether to configure INFO-level logging on startup.
    """

    record_backend: str = "sqlite"
    db_uri: str = "elbtal.db"

    store_backend: str = "local"
    object_store_root: str = "./object_store_data"

    supabase_url: str = ""
    supabase_service_key: str = ""

    download_workers: int = 1
    download_attempts: int = 1
    retry_backoff_s: float = 0.5
    request_timeout_s: float = 30.0

    backup_retention: int = 10

    enable_logging: bool = False


def load_config() -> ExportConfig:
    """
    Load ExportConfig from environment variables, falling back to defaults.

    Recognized variables:
        ELBTAL_RECORD_BACKEND      (sqlite|postgres|supabase)
        ELBTAL_DB_URI              (path or DSN)
        ELBTAL_STORE_BACKEND       (local|supabase)
        ELBTAL_OBJECT_STORE_ROOT   (directory path)
        SUPABASE_URL
        SUPABASE_SERVICE_ROLE_KEY
        ELBTAL_DOWNLOAD_WORKERS    (int >= 1)
        ELBTAL_DOWNLOAD_ATTEMPTS   (int >= 1)
        ELBTAL_RETRY_BACKOFF_S     (float seconds)
        ELBTAL_REQUEST_TIMEOUT_S   (float seconds)
        ELBTAL_BACKUP_RETENTION    (int >= 1)
        ELBTAL_ENABLE_LOGGING      ("true" / "false" / "1" / "0")

    Returns
    -------
    ExportConfig
    """

    def _env_flag(name: str, default: bool) -> bool:
        val = os.getenv(name)
        if val is None:
            return default
        return val.strip().lower() in ("1", "true", "yes", "on")

    def _env_int(name: str, default: int) -> int:
        val = os.getenv(name)
        if val is None or not val.strip():
            return default
        return max(1, int(val))

    def _env_float(name: str, default: float) -> float:
        val = os.getenv(name)
        if val is None or not val.strip():
            return default
        return float(val)

    return ExportConfig(
        record_backend=os.getenv("ELBTAL_RECORD_BACKEND", "sqlite"),
        db_uri=os.getenv("ELBTAL_DB_URI", "elbtal.db"),

        store_backend=os.getenv("ELBTAL_STORE_BACKEND", "local"),
        object_store_root=os.getenv(
            "ELBTAL_OBJECT_STORE_ROOT",
            "./object_store_data"
        ),

        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),

        download_workers=_env_int("ELBTAL_DOWNLOAD_WORKERS", 1),
        download_attempts=_env_int("ELBTAL_DOWNLOAD_ATTEMPTS", 1),
        retry_backoff_s=_env_float("ELBTAL_RETRY_BACKOFF_S", 0.5),
        request_timeout_s=_env_float("ELBTAL_REQUEST_TIMEOUT_S", 30.0),

        backup_retention=_env_int("ELBTAL_BACKUP_RETENTION", 10),

        enable_logging=_env_flag(
            "ELBTAL_ENABLE_LOGGING",
            default=False
        ),
    )
