"""
Export orchestrator
===================

Runs one export plan end to end:

    FETCHING_RECORDS → SERIALIZING → ENUMERATING_DOCUMENTS → DOWNLOADING
                     → FINALIZING → DONE

Structural failures (a query, CSV rendering, or writing the archive) end
the run in FAILED and raise an ExportError. A document that cannot be
downloaded is only counted; DOWNLOADING never fails the run. A set cancel
event stops the remaining downloads and ends the run in CANCELLED.

When the record source offers read_snapshot(), FETCHING_RECORDS through
ENUMERATING_DOCUMENTS run inside it, so the document list always matches
the exported rows.

Downloads are sequential unless `workers > 1`, in which case a bounded
thread pool fetches ahead. Either way entries are added to the archive in
enumeration order, so the archive layout and the counters do not depend
on which download finishes first. Sequential is the default because the
storage API is the bottleneck and one request at a time is what the
hosted quota tolerates.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import (
    ArchiveError,
    DocumentEnumerationError,
    ExportCancelledError,
    ExportError,
    RecordFetchError,
)
from ..object_store.base import ObjectStore
from ..records.base import RecordSource
from ..records.models import DocumentReference
from .archive import ArchiveBuilder
from .csv_writer import records_to_csv
from .fetcher import FetchResult, ObjectFetcher
from .manifest import ExportManifest, build_manifest
from .paths import allocate_document_entry_path, build_csv_entry_path, build_export_filename
from .plans import EnumeratedDocuments, ExportPlan

logger = logging.getLogger(__name__)

Emitter = Callable[[str, Dict[str, Any]], None]


class ExportState(str, Enum):
    FETCHING_RECORDS = "FETCHING_RECORDS"
    SERIALIZING = "SERIALIZING"
    ENUMERATING_DOCUMENTS = "ENUMERATING_DOCUMENTS"
    DOWNLOADING = "DOWNLOADING"
    FINALIZING = "FINALIZING"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass
class ExportResult:
    """
    Finished archive plus what the HTTP layer needs to send it.
    """

    content: bytes
    filename: str
    manifest: ExportManifest
    entries: List[str]
    states: List[ExportState] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.content)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _safe_emit(emit: Emitter, kind: str, payload: Dict[str, Any]) -> None:
    """Guarded emit so a bad listener cannot break the export."""
    try:
        emit(kind, payload)
    except Exception:
        logger.exception("Export event listener failed for %s", kind)


class ExportOrchestrator:
    """
    Coordinates record fetching, CSV rendering, document downloads and
    archive assembly for one plan at a time.

    Parameters
    ----------
    source:
        Relational query service.
    store:
        Object store holding the document buckets.
    workers:
        Maximum concurrent downloads (1 = sequential).
    attempts, backoff_s:
        Per-document retry policy passed to ObjectFetcher.
    clock:
        Returns the run's creation time (UTC); injected for tests.
    emit:
        Optional listener called as emit(kind, payload) on every state
        change and failed download.
    """

    def __init__(
        self,
        source: RecordSource,
        store: ObjectStore,
        *,
        workers: int = 1,
        attempts: int = 1,
        backoff_s: float = 0.5,
        clock: Callable[[], datetime] = _utcnow,
        emit: Optional[Emitter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.source = source
        self.store = store
        self.workers = max(1, int(workers))
        self.fetcher = ObjectFetcher(store, attempts=attempts, backoff_s=backoff_s, sleep=sleep)
        self.clock = clock
        self.emit = emit or (lambda *_: None)

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def run(
        self,
        plan: ExportPlan,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        created_at = self.clock()
        started = time.monotonic()
        states: List[ExportState] = []
        builder = ArchiveBuilder()

        def enter(state: ExportState) -> None:
            states.append(state)
            logger.info("[export:%s] %s", plan.kind.value, state.value)
            _safe_emit(self.emit, "state", {"kind": plan.kind.value, "state": state.value})

        def fail(exc: ExportError, state: ExportState) -> ExportError:
            exc.state = exc.state or state.value
            enter(ExportState.FAILED)
            logger.error("[export:%s] failed in %s: %s", plan.kind.value, state.value, exc)
            return exc

        # Records and document metadata come from one consistent read
        # where the source supports it.
        with contextlib.ExitStack() as snapshot:
            # 1) Records
            enter(ExportState.FETCHING_RECORDS)
            try:
                snapshot.enter_context(self._read_snapshot())
                records = plan.fetch_records(self.source)
            except ExportError as exc:
                raise fail(exc, ExportState.FETCHING_RECORDS)
            except Exception as exc:
                raise fail(
                    RecordFetchError(f"Record fetch failed: {exc}"),
                    ExportState.FETCHING_RECORDS,
                ) from exc

            for name, rows in records.items():
                logger.info("[export:%s] found %d %s", plan.kind.value, len(rows), name)

            # 2) CSV entries
            enter(ExportState.SERIALIZING)
            try:
                self._add_csv_entries(builder, records)
            except ExportError as exc:
                raise fail(exc, ExportState.SERIALIZING)

            # 3) Documents to download
            enter(ExportState.ENUMERATING_DOCUMENTS)
            try:
                enumerated = self._enumerate(plan, records)
                self._add_csv_entries(builder, enumerated.metadata)
            except ExportError as exc:
                raise fail(exc, ExportState.ENUMERATING_DOCUMENTS)

        # 4) Downloads (never FAILED)
        enter(ExportState.DOWNLOADING)
        try:
            successful, failed = self._download_all(
                plan, enumerated.references, builder, cancel_event
            )
        except ExportCancelledError as exc:
            exc.state = ExportState.DOWNLOADING.value
            enter(ExportState.CANCELLED)
            logger.warning("[export:%s] cancelled: %s", plan.kind.value, exc)
            raise

        logger.info(
            "[export:%s] document download complete: %d successful, %d failed",
            plan.kind.value, successful, failed,
        )

        # 5) Manifest + archive
        enter(ExportState.FINALIZING)
        counts = plan.record_counts(records)
        counts.update(enumerated.counts)
        manifest = build_manifest(
            export_kind=plan.kind.value,
            created_at=created_at,
            counts=counts,
            successful_downloads=successful,
            failed_downloads=failed,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        try:
            builder.add_entry(plan.manifest_name, manifest.to_json())
            entries = builder.paths
            content = builder.finalize()
        except ExportError as exc:
            raise fail(exc, ExportState.FINALIZING)

        enter(ExportState.DONE)
        logger.info("[export:%s] archive complete: %d bytes", plan.kind.value, len(content))

        return ExportResult(
            content=content,
            filename=build_export_filename(plan.filename_prefix, created_at.date()),
            manifest=manifest,
            entries=entries,
            states=states,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _read_snapshot(self):
        read_snapshot = getattr(self.source, "read_snapshot", None)
        if read_snapshot is None:
            return contextlib.nullcontext()
        return read_snapshot()

    @staticmethod
    def _add_csv_entries(builder: ArchiveBuilder, record_sets: Dict[str, List[Dict[str, Any]]]) -> None:
        # Empty sets produce no file.
        for name, rows in record_sets.items():
            if rows:
                builder.add_entry(build_csv_entry_path(name), records_to_csv(rows))

    def _enumerate(self, plan: ExportPlan, records) -> EnumeratedDocuments:
        try:
            enumerated = plan.enumerate_documents(self.source, records)
        except ExportError:
            raise
        except Exception as exc:
            raise DocumentEnumerationError(f"Document enumeration failed: {exc}") from exc

        seen = set()
        unique: List[DocumentReference] = []
        for ref in enumerated.references:
            key = (ref.category, ref.id)
            if key in seen:
                continue
            seen.add(key)
            unique.append(ref)
        enumerated.references = unique

        logger.info(
            "[export:%s] %d documents to download", plan.kind.value, len(unique)
        )
        return enumerated

    def _download_all(
        self,
        plan: ExportPlan,
        refs: List[DocumentReference],
        builder: ArchiveBuilder,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[int, int]:
        def task(ref: DocumentReference) -> Optional[FetchResult]:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self.fetcher.fetch(ref.bucket, ref.file_path)

        if self.workers > 1 and len(refs) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.workers, len(refs)),
                thread_name_prefix="export-download",
            ) as pool:
                return self._collect(plan, refs, pool.map(task, refs), builder)

        return self._collect(plan, refs, map(task, refs), builder)

    def _collect(
        self,
        plan: ExportPlan,
        refs: List[DocumentReference],
        results: Iterable[Optional[FetchResult]],
        builder: ArchiveBuilder,
    ) -> Tuple[int, int]:
        successful = 0
        failed = 0

        for ref, result in zip(refs, results):
            if result is None:
                raise ExportCancelledError(
                    f"Export cancelled after {successful + failed} of {len(refs)} documents"
                )

            if not result.ok:
                failed += 1
                self._document_failed(plan, ref, result.error)
                continue

            path = allocate_document_entry_path(ref, builder.has_entry)
            try:
                builder.add_entry(path, result.content or b"")
            except ArchiveError as exc:
                # Counted against the document; the run goes on.
                failed += 1
                self._document_failed(plan, ref, exc.message)
                continue
            successful += 1

            if successful % 5 == 0:
                logger.info("[export:%s] downloaded %d documents...", plan.kind.value, successful)

        return successful, failed

    def _document_failed(self, plan: ExportPlan, ref: DocumentReference, error: Optional[str]) -> None:
        _safe_emit(self.emit, "document_failed", {
            "kind": plan.kind.value,
            "category": ref.category,
            "document_id": ref.id,
            "path": ref.file_path,
            "error": error,
        })


__all__ = [
    "ExportState",
    "ExportResult",
    "ExportOrchestrator",
]
