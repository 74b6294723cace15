"""
Pulse: AI news aggregator entry point.
CLI interface over PulseService: run one ingestion, then query the collection.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .config import get_settings
from .pipeline import PulseService
from .schemas import CATEGORY_LABELS, Category

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def _dump(payload) -> str:
    if isinstance(payload, list):
        return json.dumps([p.model_dump(mode="json") for p in payload], indent=2)
    return payload.model_dump_json(indent=2)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pulse AI news aggregator",
        epilog=(
            "list, search and trending read the collection saved by earlier runs "
            "(DATABASE_URL). With PERSISTENCE_BACKEND=memory every invocation starts empty."
        ),
    )
    parser.add_argument("--json", action="store_true", help="Print raw JSON results")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run one ingestion across all active sources")

    p_list = sub.add_parser("list", help="List records collected by earlier runs")
    p_list.add_argument(
        "--category", default=None,
        choices=["all"] + [c.value for c in Category],
        help="Only show one category",
    )
    p_list.add_argument("--page", type=int, default=1)
    p_list.add_argument("--page-size", type=int, default=None)

    p_search = sub.add_parser("search", help="Full-text search over the collection")
    p_search.add_argument("query")

    p_trending = sub.add_parser("trending", help="Top title keywords of the last 48h")
    p_trending.add_argument("--limit", type=int, default=None)

    sub.add_parser("audit", help="Dry-run reachability check of every source")
    return parser


async def cli_main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface for running ingestion and queries."""
    args = build_parser().parse_args(argv)
    service = PulseService.from_settings(get_settings())

    if args.command == "run":
        result = await service.run_ingestion()
        if args.json:
            print(_dump(result))
        else:
            status = "OK" if result.success else "DEGRADED"
            print(f"Status: {status}")
            print(f"Records ingested: {result.records_ingested} ({result.records_added} new)")
            print(f"Total in collection: {result.total_in_collection}")
            for outcome in result.sources:
                detail = outcome.error or f"{outcome.count} records"
                print(f"   - {outcome.source_name}: {detail}")
            if result.error:
                print(f"\n⚠️ {result.error}")
        return 0 if result.success else 1

    if args.command == "list":
        page = service.list_records(args.category, args.page, args.page_size)
        if args.json:
            print(_dump(page))
        else:
            print(f"Page {page.page}/{page.total_pages} ({page.total} records)")
            for r in page.records:
                label = CATEGORY_LABELS[r.category]
                print(f"  [{r.published_at:%Y-%m-%d %H:%M}] {r.title}  ({r.source_name}, {label})")
        return 0

    if args.command == "search":
        found = service.search_records(args.query)
        if args.json:
            print(_dump(found))
        else:
            print(f"{found.total_matches} matches for '{found.query}'")
            for r in found.records:
                print(f"  {r.title}  <{r.url}>")
        return 0

    if args.command == "trending":
        trending = service.get_trending(args.limit)
        if args.json:
            print(_dump(trending))
        else:
            for entry in trending:
                print(f"  {entry.count:>4}  {entry.keyword}")
        return 0

    if args.command == "audit":
        audits = await service.audit_sources()
        if args.json:
            print(_dump(audits))
        else:
            for a in audits:
                detail = f" ({a.error})" if a.error else ""
                print(f"  [{a.status.value}] {a.name}: {a.item_count} items, {a.response_time_ms}ms{detail}")
        return 0

    return 2


def main():
    """Entry point for CLI."""
    sys.exit(asyncio.run(cli_main()))


if __name__ == "__main__":
    main()
