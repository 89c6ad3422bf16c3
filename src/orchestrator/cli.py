"""
Takeoff Search CLI
==================

Command-line interface for searching construction documents, building
takeoffs and running batch indexing.

Commands:
    search        - Ranked excerpts for a query
    takeoff       - Search, then aggregate results into a material list
    batch         - Embed and index pages from a JSONL file (resumable)
    verify-member - Cross-check a structural member with the vision service
    cache-stats   - Show result store status

Usage:
    python -m src.orchestrator.cli search "beam schedule" --discipline Structural
    python -m src.orchestrator.cli takeoff "framing materials" --sheet S-201 --json
    python -m src.orchestrator.cli batch data/pages.jsonl --reset
    python -m src.orchestrator.cli verify-member W18x106
    python -m src.orchestrator.cli cache-stats
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..cache import get_cache
from ..config import get_settings
from ..search import SearchQuery, OpenAIEmbedder, PgVectorIndex, EmbeddingError, VectorIndexError
from ..takeoff import group_by_category
from .batch import BatchEnrichmentRunner
from .checkpoint import default_store
from .logging_config import setup_logging_from_config
from .services import build_services

logger = logging.getLogger(__name__)


def _query_from_args(args) -> SearchQuery:
    return SearchQuery(
        query_text=args.query,
        discipline=args.discipline,
        drawing_type=args.drawing_type,
        project=args.project,
        sheet_numbers=tuple(args.sheet or ()),
        top_k=args.top_k,
    )


def cmd_search(args):
    """Run a search and print ranked excerpts."""
    services = build_services(get_settings(), use_query_cache=not args.no_cache)
    try:
        response = services.search(_query_from_args(args))
    finally:
        services.close()

    if args.json:
        print(json.dumps(response.to_dict(), indent=2, default=str))
        return 0 if response.success else 1

    if not response.success:
        print(f"ERROR: Search failed: {response.error}")
        return 1

    print("=" * 60)
    print(f"SEARCH: {args.query}")
    print("=" * 60)
    print(f"Intent: {response.intent.value}  Reranked: {response.reranked}  Cached: {response.cached}")
    print()

    if not response.results:
        print("No results.")
        return 0

    for i, result in enumerate(response.results, 1):
        print(f"{i}. {result.drawing_number or '?'} ({result.drawing_type}) score {result.score:.0f}")
        excerpt = result.text.replace("\n", " ")
        print(f"   {excerpt[:160]}{'...' if len(excerpt) > 160 else ''}")
        if result.cross_references:
            refs = ", ".join(r.reference for r in result.cross_references)
            print(f"   See: {refs}")
        print()

    return 0


def cmd_takeoff(args):
    """Search, then synthesize a material takeoff."""
    services = build_services(get_settings(), use_query_cache=not args.no_cache)
    try:
        response = services.search(_query_from_args(args))
    finally:
        services.close()

    if not response.success:
        print(f"ERROR: Search failed: {response.error}")
        return 1

    takeoffs = services.synthesizer.synthesize(response.results)

    if args.json:
        print(json.dumps([t.to_dict() for t in takeoffs], indent=2, default=str))
        return 0

    print("=" * 60)
    print(f"MATERIAL TAKEOFF: {args.query}")
    print("=" * 60)
    print(f"{len(response.results)} excerpts, {len(takeoffs)} lines")
    print()

    for category, lines in group_by_category(takeoffs).items():
        print(f"{category}:")
        for t in lines:
            qty = f"{t.quantity:g} {t.unit or ''}".strip() if t.quantity is not None else "-"
            area = f"  area {t.area} sq ft" if t.area else ""
            print(f"  - {t.material}: {qty}{area}  [{', '.join(t.sources)}]")
            if t.specification and args.verbose:
                print(f"      spec: {t.specification.splitlines()[0]}")
        print()

    return 0


def cmd_batch(args):
    """Index pages from a JSONL file."""
    settings = get_settings()
    path = Path(args.pages)
    if not path.exists():
        print(f"ERROR: {path} not found")
        return 1

    checkpoint = default_store(args.checkpoint_dir or settings.batch.checkpoint_dir, name=args.name)
    if args.reset:
        checkpoint.reset()

    index = PgVectorIndex(settings.index)
    index.ensure_schema(settings.embedding.dimensions)

    embedder = OpenAIEmbedder(settings.embedding)
    runner = BatchEnrichmentRunner(
        embedder=embedder,
        index=index,
        checkpoint=checkpoint,
        config=settings.batch,
    )

    try:
        report = runner.run_file(path, limit=args.limit)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print("=" * 60)
        print("BATCH COMPLETE")
        print("=" * 60)
        print(f"Processed: {report.processed}")
        print(f"Skipped:   {report.skipped}")
        print(f"Failed:    {report.failed}")
        print(f"Truncated: {report.truncated}")
        print(f"Duration:  {report.duration_seconds:.1f} seconds")
        print(f"Embedding: {embedder.total_tokens} tokens (~${embedder.estimated_cost:.4f})")
        print(f"Checkpoint: {checkpoint.path}")

    return 1 if report.failed else 0


def cmd_verify_member(args):
    """Cross-check one structural member."""
    services = build_services(get_settings(), use_query_cache=False)
    try:
        if services.lookups is None:
            print("ERROR: Vision verifier not configured. Set VISION_VERIFIER_URL in .env")
            return 1
        result = services.lookups.verify_member(args.designation)
    finally:
        services.close()

    if args.json:
        print(json.dumps(result, indent=2, default=str))
        return 0 if result["verified"] else 1

    icon = "✓" if result["verified"] else "✗"
    print(f"{icon} {result['designation']} on sheet {result['sheet'] or 'unknown'}")
    if result["excerpt"]:
        print(f"   {result['excerpt']}")
    for issue in result["discrepancies"]:
        print(f"   ! {issue}")
    return 0 if result["verified"] else 1


def cmd_cache_stats(args):
    """Show result store status."""
    store = get_cache(get_settings().cache)
    stats = store.get_stats()
    store.close()

    if args.json:
        print(json.dumps(stats, indent=2, default=str))
        return 0

    for key, value in stats.items():
        print(f"{key:20} {value}")
    return 0


def _add_query_arguments(parser):
    parser.add_argument("query", help="Search text")
    parser.add_argument("--discipline", help="Filter: discipline (e.g. Structural)")
    parser.add_argument("--drawing-type", dest="drawing_type", help="Filter: drawing type (e.g. Plan)")
    parser.add_argument("--project", help="Filter: project name")
    parser.add_argument("--sheet", action="append", help="Sheet number to keep (repeatable)")
    parser.add_argument("--top-k", dest="top_k", type=int, default=None, help="Results to return")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the query result cache")
    parser.add_argument("--json", action="store_true", help="Output as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="takeoff-search",
        description="Construction document search and material takeoff",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    search_parser = subparsers.add_parser("search", help="Search construction documents")
    _add_query_arguments(search_parser)

    takeoff_parser = subparsers.add_parser("takeoff", help="Search and synthesize a material takeoff")
    _add_query_arguments(takeoff_parser)

    batch_parser = subparsers.add_parser("batch", help="Index pages from a JSONL file")
    batch_parser.add_argument("pages", help="Path to pages JSONL")
    batch_parser.add_argument("--name", default="enrichment", help="Checkpoint name (default: enrichment)")
    batch_parser.add_argument("--checkpoint-dir", dest="checkpoint_dir", help="Override CHECKPOINT_DIR")
    batch_parser.add_argument("--limit", type=int, help="Stop after this many pages")
    batch_parser.add_argument("--reset", action="store_true", help="Discard checkpoint and start over")
    batch_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    verify_parser = subparsers.add_parser("verify-member", help="Verify a member against the drawings")
    verify_parser.add_argument("designation", help="Member designation (e.g. W18x106)")
    verify_parser.add_argument("--json", action="store_true", help="Output as JSON")

    stats_parser = subparsers.add_parser("cache-stats", help="Show result store status")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging_from_config(settings.logging, level_override="DEBUG" if args.verbose else None)

    if args.command is None:
        parser.print_help()
        return 1

    if getattr(args, "top_k", "unset") is None:
        args.top_k = settings.search.top_k

    commands = {
        "search": cmd_search,
        "takeoff": cmd_takeoff,
        "batch": cmd_batch,
        "verify-member": cmd_verify_member,
        "cache-stats": cmd_cache_stats,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except (EmbeddingError, VectorIndexError) as e:
        print(f"ERROR: {e}")
        logger.debug("Command failed", exc_info=True)
        return 1
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
