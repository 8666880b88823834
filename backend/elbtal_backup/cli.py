"""
Command line entry point.

    elbtal-backup export full-backup [-o PATH]
    elbtal-backup export leads-export [-o PATH] [--cutoff-date DATE]
    elbtal-backup import ARCHIVE
    elbtal-backup serve [--host HOST] [--port PORT]

`export` writes the archive to disk and prints its manifest; `import`
loads such an archive back and prints the counters; `serve` runs the
HTTP API with uvicorn.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ExportError

PLAN_NAMES = ("full-backup", "leads-export")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elbtal-backup",
        description="Export back-office records and documents as ZIP archives",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Build an archive and write it to disk")
    export.add_argument("plan", choices=PLAN_NAMES)
    export.add_argument(
        "-o", "--output",
        type=str,
        default="",
        help="Archive path (default: the download file name in the current directory)",
    )
    export.add_argument(
        "--cutoff-date",
        type=str,
        default=None,
        help="Accepted for leads-export; currently not applied",
    )

    imp = sub.add_parser("import", help="Load an export archive into the records and object store")
    imp.add_argument("archive", type=str, help="ZIP written by `export leads-export` or `export full-backup`")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _run_export(args: argparse.Namespace) -> int:
    from .core import build_services
    from .export.plans import FullBackupPlan, LeadsExportPlan

    services = build_services()
    if args.plan == "full-backup":
        plan = FullBackupPlan()
    else:
        plan = LeadsExportPlan(cutoff_date=args.cutoff_date)

    def emit(kind, payload):
        if kind == "document_failed":
            print(f"[export] failed: {payload.get('path')} ({payload.get('error')})", file=sys.stderr)

    try:
        result = services.orchestrator(emit=emit).run(plan)
    except ExportError as exc:
        print(f"[export] {args.plan} failed in {exc.state}: {exc.message}", file=sys.stderr)
        return 1

    out = Path(args.output or result.filename)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.content)

    print(result.manifest.to_json())
    print(f"[export] Saved {result.size} bytes to {out}")
    return 0


def _run_import(args: argparse.Namespace) -> int:
    from .core import build_services

    try:
        content = Path(args.archive).read_bytes()
        result = build_services().importer().import_archive(content)
    except (OSError, ExportError) as exc:
        print(f"[import] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("elbtal_backup.app:create_app", factory=True, host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "export":
        return _run_export(args)
    if args.command == "import":
        return _run_import(args)
    return _run_serve(args)


if __name__ == "__main__":
    sys.exit(main())
