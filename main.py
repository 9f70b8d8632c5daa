"""CLI entrypoint for browsing the catalog with matched cover images."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import TextIO

from dotenv import load_dotenv

from batch import DEFAULT_BUDGET, CoverState, CoverUpdate, resolve_all
from catalog import filter_catalog, load_catalog
from cover_cache import CoverCache, ttls_from_env
from csv_sink import write_cover_rows
from live_search import DEBOUNCE_SECONDS, LIVE_SEARCH_DISPLAY, LiveSearchController
from matching import ScoringPolicy, strip_markup
from models import SearchCandidate
from naver_client import search_candidates
from resolver import COVER_SEARCH_DISPLAY, CoverResolver
from storage import open_store


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Browse the book catalog with Naver cover images")
    sub = parser.add_subparsers(dest="mode")

    covers = sub.add_parser("covers", help="Filter the catalog and resolve cover images (default)")
    covers.add_argument("--track", default="", help="Exact track filter")
    covers.add_argument("--major", default="", help="Exact major filter")
    covers.add_argument("--query", default="", help="Keyword filter over all record fields")
    covers.add_argument(
        "--budget",
        type=int,
        default=None,
        help=f"Maximum cover lookups for this run (MAX_COVER_LOOKUPS, default {DEFAULT_BUDGET})",
    )
    covers.add_argument("--catalog", default=None, help="Catalog JSON path (CATALOG_PATH)")
    covers.add_argument("--output", default=None, help="CSV output path (CSV_OUTPUT_PATH)")
    covers.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print which records would be looked up, without searches or writes",
    )

    sub.add_parser("live", help="Read queries from stdin and run debounced live searches")

    argv = list(sys.argv[1:] if argv is None else argv)
    # "covers" is the default mode when no subcommand is given.
    if not argv or argv[0] not in {"covers", "live", "-h", "--help"}:
        argv = ["covers", *argv]
    return parser.parse_args(argv)


def build_resolver() -> CoverResolver:
    """Wire cache, store and scoring policy from the environment."""
    cache = CoverCache(open_store(), **ttls_from_env())
    display = int(os.getenv("COVER_SEARCH_DISPLAY", str(COVER_SEARCH_DISPLAY)))
    return CoverResolver(cache, search=search_candidates, policy=ScoringPolicy.from_env(), display=display)


def run_covers(
    track: str,
    major: str,
    query: str,
    budget: int,
    dry_run: bool,
    catalog_path: str | None = None,
    output_path: str | None = None,
) -> list[CoverUpdate]:
    """Run one filter + cover resolution pass."""
    budget = max(0, budget)
    records = load_catalog(catalog_path)
    visible = filter_catalog(records, track=track, major=major, query=query)
    logging.info(
        "Catalog filter: total=%s visible=%s track=%r major=%r query=%r",
        len(records),
        len(visible),
        track,
        major,
        query,
    )

    if dry_run:
        for record in visible[:budget]:
            logging.info("[dry-run] Would look up cover: %s", record.title)
        logging.info(
            "[dry-run] would look up %s records, %s left not attempted",
            min(budget, len(visible)),
            max(len(visible) - budget, 0),
        )
        return []

    resolver = build_resolver()
    interval = float(os.getenv("COVER_LOOKUP_INTERVAL_SECONDS", "0"))
    updates = resolve_all(
        visible,
        resolver.resolve,
        budget=budget,
        on_update=_log_update,
        interval_seconds=interval,
    )
    logging.info("Cover searches issued this run: %s", resolver.searches_issued)
    write_cover_rows(updates, csv_path=output_path)
    return updates


def run_live(stream: TextIO, out: TextIO) -> None:
    """Feed each stdin line to a live search controller; flush the last one at EOF."""
    delay = int(os.getenv("LIVE_SEARCH_DEBOUNCE_MS", str(int(DEBOUNCE_SECONDS * 1000)))) / 1000
    display = int(os.getenv("LIVE_SEARCH_DISPLAY", str(LIVE_SEARCH_DISPLAY)))

    def print_results(query: str, items: list[SearchCandidate], error: str | None) -> None:
        if not query:
            return
        if error:
            print(f"[{query}] search failed: {error}", file=out)
            return
        if not items:
            print(f"[{query}] no results", file=out)
            return
        for item in items:
            author = strip_markup(item.author) or "-"
            publisher = strip_markup(item.publisher) or "-"
            print(f"[{query}] {strip_markup(item.title)} / {author} / {publisher}", file=out)

    controller = LiveSearchController(print_results, delay_seconds=delay, display=display)
    try:
        for line in stream:
            controller.schedule(line)
        controller.flush()
    finally:
        controller.close()


def _log_update(update: CoverUpdate) -> None:
    if update.state is CoverState.FOUND:
        logging.info("Cover found: %s -> %s", update.record.title, update.cover.image)
    elif update.state is CoverState.NOT_FOUND:
        logging.info("No cover: %s", update.record.title)
    elif update.state is CoverState.NOT_ATTEMPTED:
        logging.debug("Cover not attempted: %s", update.record.title)


def main(argv: list[str] | None = None) -> None:
    """Initialize config and execute the selected mode."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    if args.mode == "live":
        run_live(sys.stdin, sys.stdout)
        return

    budget = args.budget
    if budget is None:
        budget = int(os.getenv("MAX_COVER_LOOKUPS", str(DEFAULT_BUDGET)))
    run_covers(
        track=args.track,
        major=args.major,
        query=args.query,
        budget=budget,
        dry_run=args.dry_run,
        catalog_path=args.catalog,
        output_path=args.output,
    )


if __name__ == "__main__":
    main()
