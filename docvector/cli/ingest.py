"""Standalone CLI for adding documents to (and removing them from) the store.

Usage::

    python -m docvector.cli.ingest file report.pdf \\
        --name "Q3 report" --description "Quarterly results" --scope acme

    python -m docvector.cli.ingest directory ./uploads --scope acme

    python -m docvector.cli.ingest delete 2f1c...-document-id

The declared format is guessed from the file name unless ``--format`` is
given (a MIME type such as ``application/pdf`` or a kind name such as
``pdf``).
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

import structlog

from docvector.config.loader import load_settings
from docvector.config.settings import Settings
from docvector.utils.errors import DocVectorError
from docvector.utils.logging import configure_logging

logger = structlog.get_logger(logger_name=__name__)

# Suffixes the platform MIME table may not know.
_SUFFIX_FORMATS: dict[str, str] = {
    ".md": "text",
    ".markdown": "text",
    ".txt": "text",
    ".docx": "docx",
    ".xlsx": "excel",
    ".xls": "application/vnd.ms-excel",
    ".webp": "image/webp",
}


def guess_format(path: Path) -> str:
    """Return the declared format for ``path`` (MIME type or kind name)."""
    suffix_format = _SUFFIX_FORMATS.get(path.suffix.lower())
    if suffix_format is not None:
        return suffix_format
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or path.suffix.lstrip(".").lower()


async def _handle_file(args: argparse.Namespace, app_settings: Settings) -> int:
    """Ingest one file."""
    from docvector.main import build_ingestion_service, build_vector_store

    path = Path(args.path)
    declared_format = args.format or guess_format(path)
    print(f"Ingesting {path} as {declared_format}")

    store = await build_vector_store(app_settings)
    service = build_ingestion_service(app_settings, store)
    result = await service.ingest(
        data=path.read_bytes(),
        declared_format=declared_format,
        name=args.name or path.stem,
        description=args.description,
        scope_id=args.scope,
        file_name=path.name,
    )

    print("\nIngestion complete:")
    print(f"  Document ID:    {result.document_id}")
    print(f"  Kind:           {result.source_kind.value}")
    print(f"  Chunks created: {result.chunks_created}")
    print(f"  Batches:        {result.batch_count}")
    print(f"  Total tokens:   {result.total_tokens}")
    print(f"  AI analysis:    {'yes' if result.summary_used else 'no'}")
    print(f"  Time:           {result.ingestion_time:.2f}s")
    for warning in result.warnings:
        print(f"  Warning:        {warning}")
    return 0


async def _handle_directory(args: argparse.Namespace, app_settings: Settings) -> int:
    """Ingest every file in a directory concurrently."""
    from docvector.main import build_ingestion_service, build_vector_store
    from docvector.models.document import IngestionRequest

    directory = Path(args.path)
    files = sorted(p for p in directory.iterdir() if p.is_file() and not p.name.startswith("."))
    if not files:
        print(f"No files found in {directory}")
        return 0

    description = args.description or f"Imported from {directory.name}"
    requests = [
        IngestionRequest(
            data=path.read_bytes(),
            declared_format=guess_format(path),
            name=path.stem,
            description=description,
            scope_id=args.scope,
            file_name=path.name,
        )
        for path in files
    ]

    store = await build_vector_store(app_settings)
    service = build_ingestion_service(app_settings, store)
    outcomes = await service.ingest_many(requests, concurrency=app_settings.ingestion_concurrency)

    failures = 0
    for path, outcome in zip(files, outcomes):
        if isinstance(outcome, DocVectorError):
            failures += 1
            print(f"  FAILED  {path.name}: {outcome}")
        else:
            print(f"  OK      {path.name}: {outcome.chunks_created} chunks ({outcome.document_id})")

    print(f"\nDirectory ingestion complete: {len(files) - failures} ok, {failures} failed")
    return 1 if failures else 0


async def _handle_delete(args: argparse.Namespace, app_settings: Settings) -> int:
    """Delete a document and its embeddings."""
    from docvector.main import build_vector_store

    store = await build_vector_store(app_settings)
    if await store.get_document(args.document_id) is None:
        print(f"Document {args.document_id} not found", file=sys.stderr)
        return 1
    removed = await store.delete_document(args.document_id)
    print(f"Deleted document {args.document_id} ({removed} embeddings)")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m docvector.cli.ingest",
        description="Add documents to the docvector store.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="YAML config file (default: %(default)s)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    # -- file --
    file_parser = subparsers.add_parser("file", help="Ingest a single file")
    file_parser.add_argument("path", help="Path to the file")
    file_parser.add_argument("--name", help="Document name (default: file stem)")
    file_parser.add_argument("--description", required=True, help="Document description")
    file_parser.add_argument("--scope", required=True, help="Scope (tenant/subject) identifier")
    file_parser.add_argument(
        "--format", help="MIME type or kind (pdf, docx, excel, image, text)"
    )

    # -- directory --
    dir_parser = subparsers.add_parser("directory", help="Ingest all files in a directory")
    dir_parser.add_argument("path", help="Directory path")
    dir_parser.add_argument("--scope", required=True, help="Scope (tenant/subject) identifier")
    dir_parser.add_argument("--description", help="Description applied to every file")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a stored document")
    delete_parser.add_argument("document_id", help="Identifier printed at ingestion")

    return parser


_HANDLERS = {
    "file": _handle_file,
    "directory": _handle_directory,
    "delete": _handle_delete,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = load_settings(args.config)
    configure_logging(app_settings.log_level)

    try:
        exit_code = asyncio.run(_HANDLERS[args.command](args, app_settings))
    except DocVectorError as exc:
        logger.error("cli_command_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
