# =============================================================================
# kbindex/cli/index.py -- Knowledge-Base Index CLI
# =============================================================================
#
# Operator CLI for the incremental embedding index: scan the knowledge-base
# folder, add or remove single documents, run searches, and watch the folder
# for changes.
#
# Supported subcommands:
#
#   scan      -- Index every supported file not indexed yet
#   reprocess -- Clear the index and re-index the whole folder
#   add       -- Index (or re-index) one file
#   remove    -- Remove every chunk of one source document
#   search    -- Run a similarity search and print the top results
#   stats     -- Show record and source counts
#   clear     -- Empty the index
#   watch     -- Scan once, then keep the index in sync until interrupted
#
# Usage examples:
#   python -m kbindex.cli scan
#   python -m kbindex.cli add --file ./knowledge-base/handbook.pdf
#   python -m kbindex.cli search --query "refund policy" --limit 3
#   python -m kbindex.cli clear --yes
# =============================================================================

"""Standalone CLI for managing the kbindex knowledge-base index."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from kbindex.config.loader import load_config
from kbindex.config.settings import Settings
from kbindex.models.index import DirectoryScanResult
from kbindex.utils.errors import KnowledgeIndexError
from kbindex.utils.logging import configure_logging

_DROPPED_MESSAGE = "Another index operation is in progress; request dropped."


def _build_index(app_settings: Settings):  # noqa: ANN202
    """Construct the full knowledge index (needs an embedding provider)."""
    from kbindex.main import build_knowledge_index

    return build_knowledge_index(app_settings)


def _print_scan(result: DirectoryScanResult) -> None:
    print("\nScan complete:")
    print(f"  Files processed: {result.processed_files}")
    print(f"  Files skipped:   {result.skipped_files}")
    print(f"  Files failed:    {len(result.failed_files)}")
    print(f"  Chunks indexed:  {result.chunks_indexed}")
    for name in result.failed_files:
        print(f"    failed: {name}")
    for summary in result.summaries:
        if summary.chunks_failed:
            print(
                f"    partial: {summary.source} "
                f"({summary.chunks_succeeded}/{summary.chunks_total} chunks)"
            )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_scan(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    await index.start(scan=False, watch=False)
    print(f"Scanning: {args.path or index.knowledge_base_path}")
    result = await index.process_directory(args.path)
    if result is None:
        print(_DROPPED_MESSAGE, file=sys.stderr)
        return 1
    _print_scan(result)
    return 0


async def _handle_reprocess(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    await index.start(scan=False, watch=False)
    print(f"Reprocessing: {args.path or index.knowledge_base_path}")
    result = await index.reprocess_all(args.path)
    if result is None:
        print(_DROPPED_MESSAGE, file=sys.stderr)
        return 1
    _print_scan(result)
    return 0


async def _handle_add(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    await index.start(scan=False, watch=False)
    print(f"Indexing: {args.file}")
    summary = await index.process_document(args.file, args.name)
    if summary is None:
        print(_DROPPED_MESSAGE, file=sys.stderr)
        return 1
    print("\nDocument indexed:")
    print(f"  Source:          {summary.source}")
    print(f"  Chunks total:    {summary.chunks_total}")
    print(f"  Chunks indexed:  {summary.chunks_succeeded}")
    print(f"  Chunks failed:   {summary.chunks_failed}")
    return 0


async def _handle_remove(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    await index.start(scan=False, watch=False)
    removed = await index.remove_by_source(args.name)
    if removed is None:
        print(_DROPPED_MESSAGE, file=sys.stderr)
        return 1
    print(f"Removed {removed} chunks of '{args.name}'.")
    return 0


async def _handle_search(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    await index.start(scan=False, watch=False)
    results = await index.search(args.query, args.limit)
    if not results:
        print("No results.")
        return 0

    for rank, result in enumerate(results, start=1):
        meta = result.metadata
        print(
            f"{rank}. {meta.source} [chunk {meta.chunk_index + 1}/{meta.total_chunks}] "
            f"similarity={result.similarity:.3f}"
        )
        preview = result.content if len(result.content) <= 200 else result.content[:200] + "..."
        print(f"   {preview}")
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    """Display index statistics; only the snapshot is read."""
    from kbindex.providers.index_store.json_index_store import JsonIndexStore

    store = JsonIndexStore(app_settings.snapshot_path)
    await store.load()
    stats = store.get_stats()

    print("Index Statistics")
    print("=" * 40)
    print(f"  Snapshot:        {app_settings.snapshot_path}")
    print(f"  Total chunks:    {stats.document_count}")
    print(f"  Total sources:   {stats.source_count}")
    if stats.sources:
        print("\n  Sources:")
        for name in stats.sources:
            print(f"    {name}")
    return 0


async def _handle_clear(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    await index.start(scan=False, watch=False)
    count = index.stats().document_count
    if count == 0:
        print("Index is already empty.")
        return 0

    if not args.yes:
        confirm = input(f"  Delete all {count} chunks? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    if not await index.clear():
        print(_DROPPED_MESSAGE, file=sys.stderr)
        return 1
    print(f"Deleted {count} chunks.")
    return 0


async def _handle_watch(args: argparse.Namespace, index) -> int:  # noqa: ANN001
    result = await index.start(scan=True, watch=True)
    if result is not None:
        _print_scan(result)
    print(f"\nWatching {index.knowledge_base_path} (Ctrl+C to stop)")
    await index.watcher.wait()
    return 0


# ---------------------------------------------------------------------------
# Parser / entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the index CLI."""
    parser = argparse.ArgumentParser(
        prog="kbindex",
        description="Manage the kbindex knowledge-base embedding index.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML configuration file (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Index commands")

    scan_parser = subparsers.add_parser("scan", help="Index new files in the knowledge base")
    scan_parser.add_argument("--path", default=None, help="Directory (default: KNOWLEDGE_BASE_PATH)")

    reprocess_parser = subparsers.add_parser(
        "reprocess", help="Clear the index and re-index every file"
    )
    reprocess_parser.add_argument(
        "--path", default=None, help="Directory (default: KNOWLEDGE_BASE_PATH)"
    )

    add_parser = subparsers.add_parser("add", help="Index (or re-index) one file")
    add_parser.add_argument("--file", required=True, help="Path to the document")
    add_parser.add_argument("--name", default=None, help="Source name (default: file name)")

    remove_parser = subparsers.add_parser("remove", help="Remove one source document")
    remove_parser.add_argument("--name", required=True, help="Source name (file name)")

    search_parser = subparsers.add_parser("search", help="Similarity search")
    search_parser.add_argument("--query", required=True, help="Natural-language query")
    search_parser.add_argument(
        "--limit", type=int, default=None, help="Number of results (default: SEARCH_DEFAULT_LIMIT)"
    )

    subparsers.add_parser("stats", help="Show index statistics")

    clear_parser = subparsers.add_parser("clear", help="Delete every indexed chunk")
    clear_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    subparsers.add_parser("watch", help="Scan, then watch the knowledge base for changes")

    return parser


_HANDLERS = {
    "scan": _handle_scan,
    "reprocess": _handle_reprocess,
    "add": _handle_add,
    "remove": _handle_remove,
    "search": _handle_search,
    "clear": _handle_clear,
    "watch": _handle_watch,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    if args.command == "stats":
        return await _handle_stats(app_settings)

    index = _build_index(app_settings)
    try:
        return await _HANDLERS[args.command](args, index)
    finally:
        await index.close()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Loads settings from the YAML file, ``.env`` and the environment,
    configures logging, and dispatches to the subcommand handler.  A
    :class:`KnowledgeIndexError` is printed as its user message with exit
    code 1.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        app_settings = load_config(Path(args.config))
        configure_logging(log_level=app_settings.log_level)
        exit_code = asyncio.run(_run(args, app_settings))
    except KnowledgeIndexError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    except KeyboardInterrupt:
        print("\nStopped.")
        exit_code = 0

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
