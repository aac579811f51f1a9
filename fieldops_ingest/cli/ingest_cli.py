"""
Command-line interface for the ingestion pipeline.

Usage:
    python -m fieldops_ingest.cli.ingest_cli <command> [options]

Results are printed to stdout as JSON. Connection settings come from the
environment (optionally a .env file); ``--db-*`` options override them.
"""

import argparse
import json
import mimetypes
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic import ValidationError as ConfigValidationError

from fieldops_ingest.batch.pipeline import IngestPipeline
from fieldops_ingest.batch.preview import validate_upload_file
from fieldops_ingest.config import IngestConfig
from fieldops_ingest.core.errors import IngestError
from fieldops_ingest.core.models.staging import IncomingFile
from fieldops_ingest.core.models.undo import UndoScope
from fieldops_ingest.observability.logger import get_logger
from fieldops_ingest.observability.metrics import start_metrics_server

logger = get_logger(__name__)

# CLI option -> environment variable read by IngestConfig.from_env
ENV_OVERRIDES = {
    "db_host": "DB_HOST",
    "db_port": "DB_PORT",
    "db_name": "DB_NAME",
    "db_user": "DB_USER",
    "db_password": "DB_PASSWORD",
    "storage_backend": "STORAGE_BACKEND",
    "bucket": "STORAGE_BUCKET",
    "local_root": "LOCAL_STORAGE_ROOT",
    "profiles": "INGEST_SOURCE_PROFILES",
}


def load_config(args) -> IngestConfig:
    """
    Build configuration from the environment plus command-line overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        IngestConfig
    """
    if args.env_file:
        load_dotenv(args.env_file, override=False)
    environ = dict(os.environ)
    for option, variable in ENV_OVERRIDES.items():
        value = getattr(args, option, None)
        if value is not None:
            environ[variable] = str(value)
    return IngestConfig.from_env(environ=environ)


def emit(result) -> None:
    if isinstance(result, BaseModel):
        print(result.model_dump_json(indent=2))
    else:
        print(json.dumps(result, indent=2, default=str))


def open_pipeline(args) -> IngestPipeline:
    config = load_config(args)
    return IngestPipeline.from_config(config)


def read_incoming_files(paths: list[str]) -> list[IncomingFile]:
    files = []
    for raw in paths:
        path = Path(raw)
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {raw}")
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        files.append(IncomingFile(name=path.name, content=path.read_bytes(), content_type=content_type))
    return files


def init_db_command(args):
    """Create the batch and raw-row tables if they do not exist."""
    with open_pipeline(args) as pipeline:
        pipeline.init_db()
    logger.info("Database schema is ready")
    emit({"ok": True})


def upload_command(args):
    """Stage local files as a new upload set."""
    files = read_incoming_files(args.files)
    with open_pipeline(args) as pipeline:
        result = pipeline.upload(files, args.source_system, args.fiscal_ref_date)
    if result.counts.failed:
        logger.warning(f"{result.counts.failed} of {result.counts.received} file(s) failed to upload")
    emit(result)


def validate_command(args):
    """Check the single-worksheet rule for local files (no stores touched)."""
    results = {}
    for raw in args.files:
        path = Path(raw)
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {raw}")
        results[path.name] = validate_upload_file(path.name, path.read_bytes()).model_dump()
    emit(results)
    if not all(r["ok"] for r in results.values()):
        sys.exit(1)


def preview_command(args):
    """Preview how a staged upload set would commit."""
    with open_pipeline(args) as pipeline:
        result = pipeline.preview(args.upload_set_id, args.fiscal_month_anchor, args.source_system)
    emit(result)


def commit_command(args):
    """Commit a staged upload set."""
    with open_pipeline(args) as pipeline:
        result = pipeline.commit(
            args.fiscal_month_anchor,
            upload_set_id=args.upload_set_id,
            batch_id=args.batch_id,
            source_system=args.source_system,
            timeout=args.timeout,
        )
    logger.info(f"Commit finished with status {result.status}: {result.rows} row(s)")
    emit(result)


def undo_command(args):
    """Undo a commit."""
    with open_pipeline(args) as pipeline:
        result = pipeline.undo(
            upload_set_id=args.upload_set_id,
            batch_id=args.batch_id,
            fiscal_month_anchor=args.fiscal_month_anchor,
            scope=args.scope,
        )
    emit(result)


def status_command(args):
    """Show the batch record of an upload set."""
    with open_pipeline(args) as pipeline:
        batch = pipeline.status(upload_set_id=args.upload_set_id, batch_id=args.batch_id)
    emit(batch)


COMMANDS = {
    "init-db": init_db_command,
    "upload": upload_command,
    "validate": validate_command,
    "preview": preview_command,
    "commit": commit_command,
    "undo": undo_command,
    "status": status_command,
}


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    """Database and storage overrides shared by every store-backed command."""
    parser.add_argument("--db-host", help="Database host (default: $DB_HOST or localhost)")
    parser.add_argument("--db-port", type=int, help="Database port (default: $DB_PORT or 5432)")
    parser.add_argument("--db-name", help="Database name (default: $DB_NAME or datawarehouse)")
    parser.add_argument("--db-user", help="Database user (default: $DB_USER or pipeline)")
    parser.add_argument("--db-password", help="Database password (default: $DB_PASSWORD)")
    parser.add_argument(
        "--storage-backend",
        choices=["supabase", "local"],
        help="Object storage backend (default: $STORAGE_BACKEND or supabase)",
    )
    parser.add_argument("--bucket", help="Storage bucket (default: $STORAGE_BUCKET)")
    parser.add_argument("--local-root", help="Root directory for the local storage backend")
    parser.add_argument("--profiles", help="Source profiles YAML file")


def add_batch_key_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--upload-set-id", help="Upload set identifier")
    group.add_argument("--batch-id", help="Batch identifier")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Field-operations spreadsheet ingestion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create tables
  python -m fieldops_ingest.cli.ingest_cli init-db

  # Stage two exports for the fiscal month containing 2025-03-25
  python -m fieldops_ingest.cli.ingest_cli upload --source-system ontrac \\
      --fiscal-ref-date 2025-03-25 keystone.xlsx beltway.xlsx

  # Check the single-worksheet rule before uploading
  python -m fieldops_ingest.cli.ingest_cli validate keystone.xlsx

  # Preview, then commit
  python -m fieldops_ingest.cli.ingest_cli preview --upload-set-id <uuid> \\
      --fiscal-month-anchor 2025-04-21
  python -m fieldops_ingest.cli.ingest_cli commit --upload-set-id <uuid> \\
      --fiscal-month-anchor 2025-04-21 --timeout 300

  # Remove committed rows and artifacts
  python -m fieldops_ingest.cli.ingest_cli undo --upload-set-id <uuid> --scope all
        """,
    )
    parser.add_argument("--env-file", help="Load environment variables from this .env file")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    add_connection_arguments(init_parser)

    upload_parser = subparsers.add_parser("upload", help="Stage files as a new upload set")
    upload_parser.add_argument("--source-system", default="ontrac", help="Source system (default: ontrac)")
    upload_parser.add_argument(
        "--fiscal-ref-date",
        help="Reference date used to compute the fiscal month anchor (default: today, UTC)",
    )
    upload_parser.add_argument("files", nargs="+", help="Files to upload (.xlsx or .csv)")
    add_connection_arguments(upload_parser)

    validate_parser = subparsers.add_parser("validate", help="Check files for exactly one worksheet")
    validate_parser.add_argument("files", nargs="+", help="Files to check")

    preview_parser = subparsers.add_parser("preview", help="Preview a staged upload set")
    preview_parser.add_argument("--upload-set-id", required=True, help="Upload set identifier")
    preview_parser.add_argument("--fiscal-month-anchor", required=True, help="Fiscal month anchor (YYYY-MM-DD)")
    preview_parser.add_argument("--source-system", help="Source system (default: from the batch record)")
    add_connection_arguments(preview_parser)

    commit_parser = subparsers.add_parser("commit", help="Commit a staged upload set")
    add_batch_key_arguments(commit_parser)
    commit_parser.add_argument("--fiscal-month-anchor", required=True, help="Fiscal month anchor (YYYY-MM-DD)")
    commit_parser.add_argument("--source-system", help="Source system (default: from the batch record)")
    commit_parser.add_argument("--timeout", type=float, help="Cancel the commit after this many seconds")
    add_connection_arguments(commit_parser)

    undo_parser = subparsers.add_parser("undo", help="Undo a commit")
    add_batch_key_arguments(undo_parser)
    undo_parser.add_argument(
        "--fiscal-month-anchor",
        help="Anchor used to locate artifacts when the batch has no manifest path",
    )
    undo_parser.add_argument(
        "--scope",
        default=UndoScope.COMMIT.value,
        choices=[s.value for s in UndoScope],
        help="raw: rows only; commit/all: rows and artifacts (default: commit)",
    )
    add_connection_arguments(undo_parser)

    status_parser = subparsers.add_parser("status", help="Show a batch record")
    add_batch_key_arguments(status_parser)
    add_connection_arguments(status_parser)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.metrics_port:
        start_metrics_server(args.metrics_port)
        logger.info(f"Metrics available on port {args.metrics_port}")

    try:
        COMMANDS[args.command](args)
    except IngestError as e:
        logger.error(f"{args.command} failed: {e}", extra={"error_code": e.code})
        emit({"ok": False, "error": str(e), "code": e.code})
        sys.exit(1)
    except (ConfigValidationError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
