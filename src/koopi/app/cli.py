from __future__ import annotations

import argparse
import logging
import random
import sys
from typing import List, Optional, Sequence

from ..config.settings import (
    HTML_CACHE,
    IMAGE_CACHE,
    INPUT_CSV,
    LOCK_FILE,
    MAX_IN_FLIGHT,
    MAX_SCRAPED_PAGES,
    MAX_WORKERS,
    OUTPUT_CSV,
    OUTPUT_JSON,
    POLITE_DELAY,
    RATE_SLOTS,
    REQ_TIMEOUT,
    ScrapeConfig,
)
from ..errors import KoopiError
from ..ingestion.orchestrator import RunSummary, run_scrape
from ..storage.housekeeping import clean_cache
from ..utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

COMMANDS = ("scrape", "clear-cache")


def _add_scrape_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input", default=str(INPUT_CSV), help="Work list CSV (category,query,pages)")
    p.add_argument("--cache-dir", default=str(HTML_CACHE), help="HTML cache directory")
    p.add_argument("--image-dir", default=str(IMAGE_CACHE), help="Image cache directory")
    p.add_argument("--csv", default=str(OUTPUT_CSV), help="Output CSV path")
    p.add_argument("--json", default=str(OUTPUT_JSON), help="Output JSON path")
    p.add_argument("--lock-file", default=str(LOCK_FILE), help="Singleton lock file")
    p.add_argument("--max-tasks", type=int, default=MAX_SCRAPED_PAGES, help="Max pages per run")
    p.add_argument("--workers", type=int, default=MAX_WORKERS, help="Worker threads")
    p.add_argument("--in-flight", type=int, default=MAX_IN_FLIGHT, help="Max simultaneous requests")
    p.add_argument("--rate-slots", type=int, default=RATE_SLOTS, help="Politeness tokens")
    p.add_argument("--min-delay", type=float, default=POLITE_DELAY[0], help="Min delay after a request (s)")
    p.add_argument("--max-delay", type=float, default=POLITE_DELAY[1], help="Max delay after a request (s)")
    p.add_argument("--timeout", type=float, default=REQ_TIMEOUT, help="HTTP timeout (s)")
    p.add_argument("--user-agent", default=None, help="Fixed User-Agent instead of a random pick")
    p.add_argument("--no-images", action="store_true", help="Skip image prefetching")
    p.add_argument("--seed", type=int, default=None, help="Seed for shuffle, delays and UA pick")
    p.add_argument("--debug", action="store_true", help="Verbose logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="koopi", description="kupi.cz discount crawler")
    subparsers = parser.add_subparsers(dest="command")

    scrape_parser = subparsers.add_parser("scrape", help="Crawl, dedupe and write CSV/JSON (default)")
    _add_scrape_args(scrape_parser)

    clear_parser = subparsers.add_parser("clear-cache", help="Expire old HTML cache pages")
    clear_parser.add_argument("--cache-dir", default=str(HTML_CACHE), help="HTML cache directory")
    clear_parser.add_argument("--max-age-days", type=float, default=5, help="Delete files older than this")
    clear_parser.add_argument("--sample-age-days", type=float, default=2, help="Sample pool age threshold")
    clear_parser.add_argument("--sample-size", type=int, default=50, help="Random files to delete from the pool")
    clear_parser.add_argument("--pool-size", type=int, default=1000, help="Sample pool size")
    clear_parser.add_argument("--seed", type=int, default=None)
    clear_parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def config_from_args(args: argparse.Namespace) -> ScrapeConfig:
    return ScrapeConfig(
        input_csv=args.input,
        cache_dir=args.cache_dir,
        image_dir=args.image_dir,
        output_csv=args.csv,
        output_json=args.json,
        lock_file=args.lock_file,
        max_tasks=args.max_tasks,
        workers=args.workers,
        max_in_flight=args.in_flight,
        rate_slots=args.rate_slots,
        timeout=args.timeout,
        delay_range=(args.min_delay, args.max_delay),
        user_agent=args.user_agent,
        fetch_images=not args.no_images,
        seed=args.seed,
    )


def log_summary(summary: RunSummary) -> None:
    stats = summary.fetch
    logger.info(
        "[summary] tasks=%d cache_hits=%d network=%d failures=%d skipped=%d images=%d images_skipped=%d",
        summary.tasks, stats.cache_hits, stats.network_fetches, stats.failures,
        stats.skipped, stats.images_downloaded, stats.images_skipped,
    )
    logger.info("[summary] scraped=%d unique=%d cancelled=%s", summary.scraped, summary.unique, summary.cancelled)
    if summary.output.markets:
        logger.info("[summary] markets: %s", summary.output.market_summary())


def _normalize_argv(argv: Sequence[str]) -> List[str]:
    argv = list(argv)
    if not argv or argv[0] not in COMMANDS + ("-h", "--help"):
        argv.insert(0, "scrape")
    return argv


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    if args.command == "clear-cache":
        removed = clean_cache(
            args.cache_dir,
            max_age_days=args.max_age_days,
            sample_age_days=args.sample_age_days,
            sample_size=args.sample_size,
            pool_size=args.pool_size,
            rng=random.Random(args.seed),
        )
        logger.info("[count] removed cache files: %d", len(removed))
        return 0

    try:
        config = config_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        summary = run_scrape(config)
    except KoopiError as exc:
        logger.error("%s", exc)
        return exc.exit_code
    log_summary(summary)
    return 0
