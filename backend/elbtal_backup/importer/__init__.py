"""
elbtal_backup.importer

Loads export archives back into the record source and object store.

Primary entrypoints:

    - LeadsImporter : archive -> upserted rows + uploaded documents
    - ImportResult  : per-table and per-file counters plus errors
"""

from .leads_importer import FileCounts, ImportResult, LeadsImporter, TableCounts, read_csv_rows

__all__ = [
    "LeadsImporter",
    "ImportResult",
    "TableCounts",
    "FileCounts",
    "read_csv_rows",
]
