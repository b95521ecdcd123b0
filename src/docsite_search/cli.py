"""Command-line entry point: build the search index or query an existing one."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import json
import logging
from pathlib import Path
import sys

from docsite_search.config import Settings
from docsite_search.observability.context import start_run
from docsite_search.observability.logging import configure_logging
from docsite_search.observability.metrics import write_metrics
from docsite_search.search.engine import IndexLoadError, SearchIndexLoader, file_index_fetcher
from docsite_search.search.indexer import IndexBuildResult, SearchIndexBuilder
from docsite_search.search.indexing_utils import build_indexing_context
from docsite_search.search.models import SearchHit


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_argument_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsite-search",
        description="Build and query the documentation site's search index",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=settings.log_json,
        help="Emit structured JSON logs on stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Scan the content tree and write the index file")
    build.add_argument(
        "--content-root",
        type=Path,
        default=settings.content_root,
        help=f"Content tree to scan (default: {settings.content_root})",
    )
    build.add_argument(
        "--output",
        type=Path,
        default=settings.output_path,
        help=f"Index file to write (default: {settings.output_path})",
    )
    build.add_argument(
        "--allow-missing-root",
        action="store_true",
        help="Exit successfully with an empty index when the content root does not exist",
    )

    query = subparsers.add_parser("query", help="Run a fuzzy query against a built index")
    query.add_argument("text", help="Query text")
    query.add_argument(
        "--index",
        type=Path,
        default=settings.output_path,
        help=f"Index file to load (default: {settings.output_path})",
    )
    query.add_argument(
        "--limit",
        type=int,
        default=settings.result_limit,
        help=f"Maximum results (default: {settings.result_limit})",
    )
    query.add_argument("--json", action="store_true", help="Print results as JSON lines")

    for command in (build, query):
        command.add_argument(
            "--metrics-file",
            type=Path,
            default=None,
            help="Also write Prometheus metrics for this run to a textfile-collector file",
        )
    return parser


def _print_build_summary(result: IndexBuildResult) -> None:
    sys.stdout.write(f"Search index: {result.documents_indexed} pages indexed\n")
    for record in result.records:
        sys.stdout.write(f"   - {record.category}: {record.title}\n")


def run_build(args: argparse.Namespace, settings: Settings) -> int:
    context = build_indexing_context(settings, content_root=args.content_root)
    builder = SearchIndexBuilder(context)
    result = builder.scan()

    try:
        builder.write(result.records, args.output)
    except OSError as exc:
        logger.error("Could not write search index to %s: %s", args.output, exc)
        return EXIT_FAILURE

    _print_build_summary(result)
    if result.errors:
        logger.warning("%d content files could not be read", len(result.errors))

    if result.root_missing and not args.allow_missing_root:
        logger.error("Content root not found: %s", context.content_root)
        return EXIT_FAILURE
    return EXIT_OK


def _format_hit(hit: SearchHit) -> str:
    marker = "#" if hit.item.is_heading else "-"
    return f"{marker} {hit.item.title}  [{hit.breadcrumb}]  {hit.item.href}  score={hit.score:.3f}"


async def _run_query_async(args: argparse.Namespace, settings: Settings) -> list[SearchHit]:
    loader = SearchIndexLoader(
        file_index_fetcher(args.index),
        threshold=settings.fuzzy_threshold,
        distance=settings.fuzzy_distance,
    )
    structure = await loader.load()
    return structure.search(args.text, limit=args.limit)


def run_query(args: argparse.Namespace, settings: Settings) -> int:
    if args.limit < 1:
        logger.error("--limit must be >= 1")
        return EXIT_FAILURE

    try:
        hits = asyncio.run(_run_query_async(args, settings))
    except IndexLoadError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    if not args.text.strip():
        sys.stdout.write("Enter a query\n")
        return EXIT_OK
    if not hits:
        sys.stdout.write("No results\n")
        return EXIT_OK

    for hit in hits:
        if args.json:
            payload = hit.item.model_dump()
            payload["score"] = hit.score
            sys.stdout.write(json.dumps(payload, ensure_ascii=False, sort_keys=True) + "\n")
        else:
            sys.stdout.write(_format_hit(hit) + "\n")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    settings = Settings()
    parser = build_argument_parser(settings)
    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_output=args.log_json)
    start_run(args.command)

    if args.command == "build":
        exit_code = run_build(args, settings)
    else:
        exit_code = run_query(args, settings)

    if args.metrics_file is not None:
        try:
            write_metrics(args.metrics_file)
        except OSError as exc:
            logger.error("Could not write metrics to %s: %s", args.metrics_file, exc)
            return EXIT_FAILURE
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
