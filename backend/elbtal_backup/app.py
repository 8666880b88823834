from __future__ import annotations

"""
Elbtal back-office backup API

Routes mirror the hosted function names used by the admin dashboard:

    POST /functions/v1/full-backup
    POST /functions/v1/leads-export-with-documents
    POST /functions/v1/export-data
    POST /functions/v1/backup-system
    POST /functions/v1/leads-import-with-documents   (multipart, field "zipFile")

Archive exports run the blocking pipeline in a worker thread; a watcher
task sets the run's cancel event when the client disconnects.
"""

import asyncio
import contextlib
import json
import threading
import time
import traceback
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from .core import ExportServices, build_services
from .errors import ArchiveImportError, BackupNotFoundError, ExportError, InvalidRequestError
from .export.data_export import export_data
from .export.plans import ExportPlan, FullBackupPlan, LeadsExportPlan

# ============================================================================
# Constants
# ============================================================================

FUNCTIONS_PREFIX = "/functions/v1"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

DISCONNECT_POLL_S = 0.25

# ============================================================================
# Helpers
# ============================================================================

def _log(msg: str, **extra: Any) -> None:
    """
    Centralised structured logging.

    All logs go through here so we can easily tweak format or sink later.
    """
    try:
        print(json.dumps({"msg": msg, **extra}, ensure_ascii=False, default=str))
    except Exception:
        print(f"{msg} {extra}")


def _emit_bridge(kind: str, payload: Dict[str, Any]) -> None:
    """
    Orchestrator events -> log lines:

        [export:state]
        [export:document_failed]
    """
    _log(f"[export:{kind}]", **payload)


def _error_response(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=CORS_HEADERS)


async def _read_body(request: Request) -> Dict[str, Any]:
    """
    Parse an optional JSON object body. Empty means {}.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise InvalidRequestError(f"Request body is not valid JSON: {exc}") from exc
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


async def _watch_disconnect(request: Request, cancel_event: threading.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            _log("[http] client disconnected", path=request.url.path)
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_S)


# ============================================================================
# App factory
# ============================================================================

def create_app(services: Optional[ExportServices] = None) -> FastAPI:
    """
    Build the FastAPI app. Services are built from the environment unless
    given (tests pass in-memory fakes).
    """
    services = services or build_services()

    app = FastAPI(
        title="Elbtal Backup API",
        version="1.0.0",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS", "GET"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        _log("[http] request", method=request.method, path=request.url.path)
        try:
            resp = await call_next(request)
        except Exception as exc:
            _log("[http] error", error=str(exc), traceback=traceback.format_exc())
            raise
        for name, value in CORS_HEADERS.items():
            resp.headers[name] = value
        _log(
            "[http] response",
            path=request.url.path,
            duration_ms=int((time.time() - start) * 1000),
            status_code=getattr(resp, "status_code", None),
        )
        return resp

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"status": "ok", "time": time.time()}

    # ------------------------------------------------------------------
    # Preflight
    # ------------------------------------------------------------------

    async def preflight():
        return Response(content="ok", headers=CORS_HEADERS)

    for name in (
        "full-backup",
        "leads-export-with-documents",
        "export-data",
        "backup-system",
        "leads-import-with-documents",
    ):
        app.add_api_route(f"{FUNCTIONS_PREFIX}/{name}", preflight, methods=["OPTIONS"])

    # ------------------------------------------------------------------
    # Archive exports
    # ------------------------------------------------------------------

    async def run_archive_export(
        request: Request,
        make_plan: Callable[[Dict[str, Any]], ExportPlan],
        *,
        label: str,
        error_title: str,
    ) -> Response:
        cancel_event = threading.Event()
        try:
            body = await _read_body(request)
            plan = make_plan(body)
            _log(f"[api] {label} starting", export_kind=plan.kind.value)

            orchestrator = services.orchestrator(emit=_emit_bridge)
            watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
            try:
                result = await run_in_threadpool(orchestrator.run, plan, cancel_event=cancel_event)
            finally:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher
        except ExportError as exc:
            _log(f"[api] {label} failed", error=exc.message, state=exc.state)
            return _error_response(500, {"error": error_title, "message": exc.message})
        except Exception as exc:
            _log(f"[api] {label} failed", error=str(exc), traceback=traceback.format_exc())
            return _error_response(500, {"error": error_title, "message": str(exc)})

        _log(
            f"[api] {label} complete",
            filename=result.filename,
            size=result.size,
            successful_downloads=result.manifest.successful_downloads,
            failed_downloads=result.manifest.failed_downloads,
        )
        return Response(
            content=result.content,
            media_type="application/zip",
            headers={
                **CORS_HEADERS,
                "Content-Disposition": f'attachment; filename="{result.filename}"',
            },
        )

    @app.post(f"{FUNCTIONS_PREFIX}/full-backup")
    async def full_backup(request: Request):
        return await run_archive_export(
            request,
            lambda body: FullBackupPlan(),
            label="full_backup",
            error_title="Backup failed",
        )

    @app.post(f"{FUNCTIONS_PREFIX}/leads-export-with-documents")
    async def leads_export_with_documents(request: Request):
        return await run_archive_export(
            request,
            lambda body: LeadsExportPlan(cutoff_date=body.get("cutoff_date")),
            label="leads_export",
            error_title="Export failed",
        )

    # ------------------------------------------------------------------
    # JSON data export
    # ------------------------------------------------------------------

    @app.post(f"{FUNCTIONS_PREFIX}/export-data")
    async def export_data_route(request: Request):
        try:
            await _read_body(request)
            payload = await run_in_threadpool(export_data, services.source)
        except ExportError as exc:
            _log("[api] export_data failed", error=exc.message)
            return _error_response(500, {"error": "Export failed", "message": exc.message})

        _log(
            "[api] export_data complete",
            contact_requests=payload["contact_requests"]["count"],
            property_applications=payload["property_applications"]["count"],
        )
        return JSONResponse(payload, headers=CORS_HEADERS)

    # ------------------------------------------------------------------
    # Stored backups
    # ------------------------------------------------------------------

    @app.post(f"{FUNCTIONS_PREFIX}/backup-system")
    async def backup_system(request: Request):
        try:
            body = await _read_body(request)
        except InvalidRequestError as exc:
            # Unlike the export routes this one answers without "message".
            return _error_response(500, {"error": exc.message})

        action = body.get("action")
        backup_id = body.get("backup_id") or ""
        manager = services.backup_manager()
        _log("[api] backup_system", action=action, backup_id=backup_id or None)

        if action == "create_backup":
            try:
                record = await run_in_threadpool(manager.create_backup)
            except Exception as exc:
                _log("[api] backup creation failed", error=str(exc))
                return _error_response(500, {"success": False, "error": str(exc)})
            return JSONResponse(
                {
                    "success": True,
                    "backup_id": record["id"],
                    "message": "Backup created successfully",
                },
                headers=CORS_HEADERS,
            )

        handlers = {
            "list_backups": lambda: {"backups": manager.list_backups()},
            "download_backup": lambda: manager.download_backup(backup_id),
            "delete_backup": lambda: (
                manager.delete_backup(backup_id)
                or {"success": True, "message": "Backup deleted successfully"}
            ),
        }
        handler = handlers.get(action)
        if handler is None:
            return _error_response(400, {"error": "Invalid action"})

        try:
            payload = await run_in_threadpool(handler)
        except BackupNotFoundError:
            return _error_response(404, {"error": "Backup not found"})
        except Exception as exc:
            _log("[api] backup_system failed", action=action, error=str(exc))
            message = exc.message if isinstance(exc, ExportError) else str(exc)
            return _error_response(500, {"error": message})

        return JSONResponse(payload, headers=CORS_HEADERS)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    @app.post(f"{FUNCTIONS_PREFIX}/leads-import-with-documents")
    async def leads_import_with_documents(
        zip_file: Optional[UploadFile] = File(None, alias="zipFile"),
    ):
        try:
            if zip_file is None:
                raise ArchiveImportError("No ZIP file provided")
            content = await zip_file.read()
            _log("[api] leads_import starting", filename=zip_file.filename, size=len(content))
            result = await run_in_threadpool(services.importer().import_archive, content)
        except ExportError as exc:
            _log("[api] leads_import failed", error=exc.message)
            return _error_response(
                500, {"success": False, "message": "Import failed", "error": exc.message}
            )
        except Exception as exc:
            _log("[api] leads_import failed", error=str(exc), traceback=traceback.format_exc())
            return _error_response(
                500, {"success": False, "message": "Import failed", "error": str(exc)}
            )

        payload = result.to_dict()
        _log("[api] leads_import complete", details=payload["details"], errors=len(result.errors))
        return JSONResponse(payload, headers=CORS_HEADERS)

    return app


__all__ = [
    "CORS_HEADERS",
    "create_app",
]
