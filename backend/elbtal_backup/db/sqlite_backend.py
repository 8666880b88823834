"""
SQLite backend for the record source.

Used for:
    - local development
    - tests
    - offline copies of the production tables

Implements:
    - connect()
    - helpers
    - init_schema()

The schema mirrors the columns of the hosted tables that the export and
backup functions read; it is not a migration source for production.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from . import helpers
from .backend_base import DBBackend


# ----------------------------------------------------------------------
# Local schema
# ----------------------------------------------------------------------

SQL_SCHEMA = """
CREATE TABLE IF NOT EXISTS contact_requests (
    id           TEXT PRIMARY KEY,
    created_at   TEXT NOT NULL,
    updated_at   TEXT,
    property_id  TEXT,
    anrede       TEXT,
    vorname      TEXT NOT NULL,
    nachname     TEXT NOT NULL,
    email        TEXT NOT NULL,
    telefon      TEXT NOT NULL,
    strasse      TEXT,
    nummer       TEXT,
    plz          TEXT,
    ort          TEXT,
    nachricht    TEXT NOT NULL,
    status       TEXT,
    lead_label   TEXT,
    lead_stage   TEXT
);

CREATE TABLE IF NOT EXISTS property_applications (
    id                    TEXT PRIMARY KEY,
    created_at            TEXT NOT NULL,
    updated_at            TEXT,
    user_id               TEXT,
    property_id           TEXT,
    vorname               TEXT NOT NULL,
    nachname              TEXT NOT NULL,
    email                 TEXT NOT NULL,
    telefon               TEXT NOT NULL,
    adresse               TEXT,
    postleitzahl          TEXT,
    ort                   TEXT,
    geburtsdatum          TEXT,
    geburtsort            TEXT,
    staatsangehoerigkeit  TEXT,
    nettoeinkommen        REAL,
    einzugsdatum          TEXT,
    nachricht             TEXT,
    status                TEXT DEFAULT 'pending'
);

CREATE TABLE IF NOT EXISTS lead_documents (
    id                  TEXT PRIMARY KEY,
    contact_request_id  TEXT NOT NULL,
    document_type       TEXT NOT NULL,
    file_name           TEXT NOT NULL,
    file_path           TEXT NOT NULL,
    file_size           INTEGER,
    content_type        TEXT,
    uploaded_by         TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT,
    FOREIGN KEY (contact_request_id) REFERENCES contact_requests(id)
);

CREATE INDEX IF NOT EXISTS idx_lead_documents_contact_request
    ON lead_documents(contact_request_id);

CREATE TABLE IF NOT EXISTS user_documents (
    id             TEXT PRIMARY KEY,
    user_id        TEXT NOT NULL,
    document_type  TEXT NOT NULL,
    file_name      TEXT NOT NULL,
    file_path      TEXT NOT NULL,
    file_size      INTEGER,
    content_type   TEXT,
    uploaded_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_user_documents_user
    ON user_documents(user_id);

CREATE TABLE IF NOT EXISTS backup_records (
    id                 TEXT PRIMARY KEY,
    file_name          TEXT NOT NULL,
    file_path          TEXT NOT NULL,
    file_size          INTEGER,
    backup_type        TEXT NOT NULL DEFAULT 'manual',
    status             TEXT NOT NULL DEFAULT 'completed',
    includes_database  INTEGER NOT NULL DEFAULT 1,
    includes_storage   INTEGER NOT NULL DEFAULT 1,
    metadata           TEXT,
    backup_date        TEXT NOT NULL,
    created_at         TEXT NOT NULL
);
"""


# ----------------------------------------------------------------------
# Backend implementation
# ----------------------------------------------------------------------

class SQLiteBackend(DBBackend):
    """
    Minimal SQLite backend.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file.
    """

    placeholder = "?"

    def __init__(self, db_path: str):
        self.path = Path(db_path)
        self._helpers = helpers

    @property
    def helpers(self):
        return self._helpers

    def connect(self) -> sqlite3.Connection:
        """
        Open a SQLite3 connection with sqlite3.Row rows.

        check_same_thread is disabled because the HTTP layer runs each
        export in a worker thread; every connection is still used by one
        thread at a time.
        """
        conn = sqlite3.connect(str(self.path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def begin_read_snapshot(self, conn) -> None:
        """
        Deferred transaction on a query_only connection. The snapshot is
        taken at the first read; in WAL mode writers are not blocked.
        """
        conn.execute("PRAGMA query_only = ON;")
        conn.execute("BEGIN")

    def init_schema(self, conn) -> None:
        """
        Create tables and indices if they do not exist and switch the file
        to WAL so export snapshots and writes can overlap. Idempotent.
        """
        conn.execute("PRAGMA journal_mode = WAL;")
        cur = conn.cursor()
        cur.executescript(SQL_SCHEMA)
        conn.commit()
