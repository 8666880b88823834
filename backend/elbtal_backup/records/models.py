from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


# ----------------------------------------------------------------------
# Rows
# ----------------------------------------------------------------------

Row = Mapping[str, Any]
RecordSet = List[Dict[str, Any]]


# ----------------------------------------------------------------------
# Tables and buckets
# ----------------------------------------------------------------------

CONTACT_REQUESTS = "contact_requests"
PROPERTY_APPLICATIONS = "property_applications"
LEAD_DOCUMENTS = "lead_documents"
USER_DOCUMENTS = "user_documents"
BACKUP_RECORDS = "backup_records"

LEAD_DOCUMENTS_BUCKET = "lead-documents"
USER_DOCUMENTS_BUCKET = "user-documents"
BACKUPS_BUCKET = "backups"

# category -> (bucket, owner column, timestamp column)
DOCUMENT_CATEGORIES: Dict[str, tuple] = {
    LEAD_DOCUMENTS: (LEAD_DOCUMENTS_BUCKET, "contact_request_id", "created_at"),
    USER_DOCUMENTS: (USER_DOCUMENTS_BUCKET, "user_id", "uploaded_at"),
}


# ----------------------------------------------------------------------
# Document reference
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentReference:
    id: str
    category: str
    owner_key: str
    document_type: str
    file_name: str
    file_path: str
    uploaded_at: Optional[str] = None

    @property
    def bucket(self) -> str:
        return DOCUMENT_CATEGORIES[self.category][0]

    @classmethod
    def from_row(cls, category: str, row: Row) -> "DocumentReference":
        """
        Build a reference from a lead_documents or user_documents row.
        """
        if category not in DOCUMENT_CATEGORIES:
            raise ValueError(f"Unknown document category: {category!r}")
        _, owner_col, ts_col = DOCUMENT_CATEGORIES[category]
        uploaded = row.get(ts_col)
        return cls(
            id=str(row["id"]),
            category=category,
            owner_key=str(row.get(owner_col)),
            document_type=str(row.get("document_type") or "other"),
            file_name=str(row["file_name"]),
            file_path=str(row["file_path"]),
            uploaded_at=str(uploaded) if uploaded is not None else None,
        )
