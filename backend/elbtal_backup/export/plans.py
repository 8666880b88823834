"""
Export plans: which record sets an export contains and which documents
it downloads.

Two plans exist:

    FullBackupPlan   (full_backup_with_documents)
        contact_requests, property_applications, user_documents,
        lead_documents; every document in both document tables.

    LeadsExportPlan  (leads_with_documents)
        contact_requests; lead documents of those requests plus the
        documents of every user who filed a property application.

A plan only talks to the RecordSource. Wrapping driver errors into
structural errors is the orchestrator's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..records.base import RecordSource
from ..records.models import (
    CONTACT_REQUESTS,
    LEAD_DOCUMENTS,
    PROPERTY_APPLICATIONS,
    USER_DOCUMENTS,
    DocumentReference,
    RecordSet,
)


class ExportKind(str, Enum):
    FULL_BACKUP = "full_backup_with_documents"
    LEADS_EXPORT = "leads_with_documents"


@dataclass(frozen=True)
class RecordQuery:
    """
    One `select * from <table> order by <order_by> desc` query.

    `name` is the CSV entry name (data/<name>.csv); `count_key` is the
    manifest counter (total_<count_key>).
    """

    name: str
    table: str
    order_by: str
    count_key: str


@dataclass
class EnumeratedDocuments:
    """
    Result of the enumeration step.

    metadata:
        Document metadata record sets queried during enumeration, keyed by
        CSV entry name. Empty for plans that already exported them.
    references:
        Documents to download, in download order.
    counts:
        Manifest counters contributed by enumeration.
    """

    metadata: Dict[str, RecordSet] = field(default_factory=dict)
    references: List[DocumentReference] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)


def _references(category: str, rows: RecordSet) -> List[DocumentReference]:
    return [DocumentReference.from_row(category, row) for row in rows]


class ExportPlan:
    """
    Base class for export plans.
    """

    kind: ExportKind
    filename_prefix: str
    manifest_name: str
    queries: List[RecordQuery] = []

    def fetch_records(self, source: RecordSource) -> Dict[str, RecordSet]:
        """
        Run every query of the plan, keyed by CSV entry name, in order.
        """
        return {
            q.name: list(source.select_all(q.table, order_by=q.order_by, descending=True))
            for q in self.queries
        }

    def record_counts(self, records: Dict[str, RecordSet]) -> Dict[str, int]:
        return {q.count_key: len(records.get(q.name, [])) for q in self.queries}

    def enumerate_documents(
        self,
        source: RecordSource,
        records: Dict[str, RecordSet],
    ) -> EnumeratedDocuments:
        raise NotImplementedError


class FullBackupPlan(ExportPlan):
    """
    Everything the back office holds about leads and applicants.
    """

    kind = ExportKind.FULL_BACKUP
    filename_prefix = "elbtal_full_backup"
    manifest_name = "backup_info.json"
    queries = [
        RecordQuery("contact_requests", CONTACT_REQUESTS, "created_at", "contact_requests"),
        RecordQuery("property_applications", PROPERTY_APPLICATIONS, "created_at", "property_applications"),
        RecordQuery("user_documents_metadata", USER_DOCUMENTS, "uploaded_at", "user_documents"),
        RecordQuery("lead_documents", LEAD_DOCUMENTS, "created_at", "lead_documents"),
    ]

    def enumerate_documents(self, source, records):
        refs = _references(LEAD_DOCUMENTS, records.get("lead_documents", []))
        refs += _references(USER_DOCUMENTS, records.get("user_documents_metadata", []))
        return EnumeratedDocuments(references=refs)


class LeadsExportPlan(ExportPlan):
    """
    Leads with their documents.

    cutoff_date is accepted from the request body but does not filter
    anything yet; it is kept so callers can already send it.
    """

    kind = ExportKind.LEADS_EXPORT
    filename_prefix = "leads_export"
    manifest_name = "export_info.json"
    queries = [
        RecordQuery("contact_requests", CONTACT_REQUESTS, "created_at", "contact_requests"),
    ]

    def __init__(self, cutoff_date: Optional[Any] = None):
        self.cutoff_date = cutoff_date

    def enumerate_documents(self, source, records):
        contact_ids = [row["id"] for row in records.get("contact_requests", [])]
        if not contact_ids:
            return EnumeratedDocuments(counts={"lead_documents": 0, "user_documents": 0})

        lead_docs = list(source.select_in(
            LEAD_DOCUMENTS, "contact_request_id", contact_ids, order_by="created_at",
        ))

        # Applications without a user contribute no documents.
        user_ids = list(dict.fromkeys(
            uid for uid in source.select_column(PROPERTY_APPLICATIONS, "user_id", not_null=True)
            if uid is not None
        ))
        user_docs: RecordSet = []
        if user_ids:
            user_docs = list(source.select_in(
                USER_DOCUMENTS, "user_id", user_ids, order_by="uploaded_at",
            ))

        return EnumeratedDocuments(
            metadata={"lead_documents": lead_docs, "user_documents": user_docs},
            references=_references(LEAD_DOCUMENTS, lead_docs) + _references(USER_DOCUMENTS, user_docs),
            counts={"lead_documents": len(lead_docs), "user_documents": len(user_docs)},
        )


__all__ = [
    "ExportKind",
    "RecordQuery",
    "EnumeratedDocuments",
    "ExportPlan",
    "FullBackupPlan",
    "LeadsExportPlan",
]
