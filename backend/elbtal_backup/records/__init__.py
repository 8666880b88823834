"""
elbtal_backup.records

Relational side of the export pipeline: the RecordSource interface, its
SQL and PostgREST implementations, and the table / bucket names shared
by the export and backup code.
"""

from .base import RecordSource
from .db_source import DBRecordSource
from .rest_source import SupabaseRecordSource
from .models import (
    Row,
    RecordSet,
    DocumentReference,
    DOCUMENT_CATEGORIES,
    CONTACT_REQUESTS,
    PROPERTY_APPLICATIONS,
    LEAD_DOCUMENTS,
    USER_DOCUMENTS,
    BACKUP_RECORDS,
    LEAD_DOCUMENTS_BUCKET,
    USER_DOCUMENTS_BUCKET,
    BACKUPS_BUCKET,
)

__all__ = [
    "RecordSource",
    "DBRecordSource",
    "SupabaseRecordSource",
    "Row",
    "RecordSet",
    "DocumentReference",
    "DOCUMENT_CATEGORIES",
    "CONTACT_REQUESTS",
    "PROPERTY_APPLICATIONS",
    "LEAD_DOCUMENTS",
    "USER_DOCUMENTS",
    "BACKUP_RECORDS",
    "LEAD_DOCUMENTS_BUCKET",
    "USER_DOCUMENTS_BUCKET",
    "BACKUPS_BUCKET",
]
