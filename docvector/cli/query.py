"""Standalone CLI for similarity queries against the store.

Usage::

    python -m docvector.cli.query "what were the Q3 results?" --scope acme

Thresholds and ``--top-k`` default to the configured retrieval settings.
Pass ``--post-threshold none`` to disable the post-filter.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from docvector.config.loader import load_settings
from docvector.config.settings import Settings
from docvector.utils.errors import DocVectorError
from docvector.utils.logging import configure_logging

logger = structlog.get_logger(logger_name=__name__)

_PREVIEW_CHARS = 240


def _optional_float(value: str) -> float | None:
    if value.lower() in ("none", "off", ""):
        return None
    return float(value)


async def _run_query(args: argparse.Namespace, app_settings: Settings) -> int:
    from docvector.main import build_retrieval_service, build_vector_store

    store = await build_vector_store(app_settings)
    service = build_retrieval_service(app_settings, store)

    post_threshold = (
        app_settings.retrieval_post_filter_similarity
        if args.post_threshold is None
        else _optional_float(args.post_threshold)
    )
    results = await service.retrieve(
        query=args.text,
        top_k=args.top_k or app_settings.retrieval_top_k,
        similarity_threshold=(
            args.threshold
            if args.threshold is not None
            else app_settings.retrieval_min_similarity
        ),
        scope_id=args.scope,
        post_filter_threshold=post_threshold,
    )

    if not results:
        print("No matching chunks.")
        return 0

    for rank, result in enumerate(results, start=1):
        preview = " ".join(result.content.split())[:_PREVIEW_CHARS]
        print(f"{rank}. [{result.similarity:.3f}] {result.resource_id}")
        print(f"   {preview}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m docvector.cli.query",
        description="Rank stored chunks by similarity to a query.",
    )
    parser.add_argument("text", help="Query text")
    parser.add_argument("--scope", help="Only search documents in this scope")
    parser.add_argument("--top-k", type=int, dest="top_k", help="Maximum results")
    parser.add_argument(
        "--threshold", type=float, help="Keep results scoring strictly above this"
    )
    parser.add_argument(
        "--post-threshold",
        dest="post_threshold",
        help="Stricter cut applied after ranking, or 'none'",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="YAML config file (default: %(default)s)"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for similarity queries."""
    args = _build_parser().parse_args(argv)
    app_settings = load_settings(args.config)
    configure_logging(app_settings.log_level)

    try:
        exit_code = asyncio.run(_run_query(args, app_settings))
    except DocVectorError as exc:
        logger.error("cli_query_failed", error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
