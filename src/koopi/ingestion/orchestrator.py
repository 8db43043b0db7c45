from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional

from ..config.rules import USER_AGENTS
from ..config.settings import ScrapeConfig
from ..models import Offer
from ..processing.dedupe import dedupe_offers
from ..storage.repository import OutputStats, collect_stats, sort_offers, write_csv, write_json
from ..utils.logging import get_logger
from .fetcher import CacheAsideFetcher, HtmlCache, ImageCache, SessionFactory, make_session
from .lock import SingletonLock
from .scheduler import FetchStats, RunContext, cancel_on_signals
from .worklist import FetchTask, build_work_list, read_input

logger = get_logger(__name__)


@dataclass
class RunSummary:
    tasks: int = 0
    scraped: int = 0
    unique: int = 0
    cancelled: bool = False
    written: bool = False
    fetch: FetchStats = field(default_factory=FetchStats)
    output: OutputStats = field(default_factory=OutputStats)


def pick_user_agent(config: ScrapeConfig, rng: random.Random) -> str:
    return config.user_agent or rng.choice(USER_AGENTS)


def _worker(fetcher: CacheAsideFetcher, context: RunContext, task: FetchTask) -> int:
    offers = fetcher.fetch(task)
    total = context.accumulator.add(task.seq, offers)
    if offers:
        logger.debug("[%s] page %d: +%d offers, %d collected", task.query, task.page, len(offers), total)
    return len(offers)


def crawl(
    context: RunContext,
    tasks: List[FetchTask],
    session_factory: SessionFactory = make_session,
) -> List[Offer]:
    """Run every task on the worker pool and return the accumulated offers.

    Returns only after all workers have finished.
    """
    config = context.config
    html_cache = HtmlCache(config.cache_dir)
    image_cache = ImageCache(config.image_dir, config.timeout) if config.fetch_images else None
    fetcher = CacheAsideFetcher(context, html_cache, image_cache, session_factory=session_factory)

    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        futures = {executor.submit(_worker, fetcher, context, task): task for task in tasks}
        for fut in as_completed(futures):
            task = futures[fut]
            try:
                fut.result()
            except Exception:
                context.stats.incr("failures")
                logger.exception("[%s] task failed: %s", task.query, task.url)

    return context.accumulator.offers()


def run_scrape(
    config: ScrapeConfig,
    rng: Optional[random.Random] = None,
    session_factory: SessionFactory = make_session,
    install_signals: bool = True,
) -> RunSummary:
    """One complete crawl: lock, work list, fetch, dedupe, sort, write."""
    rng = rng or random.Random(config.seed)
    summary = RunSummary()

    with SingletonLock(config.lock_file, config.lock_max_age):
        rows = read_input(config.input_csv)
        tasks = build_work_list(rows, max_tasks=config.max_tasks, rng=rng)
        summary.tasks = len(tasks)
        if not tasks:
            logger.info("Nothing to scrape.")
            return summary

        user_agent = pick_user_agent(config, rng)
        logger.debug("User-Agent for this run: %s", user_agent)
        context = RunContext.create(config, user_agent, rng=rng)
        summary.fetch = context.stats
        logger.info("Scraping %d pages with %d workers", len(tasks), config.workers)

        if install_signals:
            with cancel_on_signals(context.cancel_event):
                collected = crawl(context, tasks, session_factory)
        else:
            collected = crawl(context, tasks, session_factory)

        summary.cancelled = context.cancelled
        if summary.cancelled:
            logger.warning("Run cancelled; writing the %d offers collected so far", len(collected))

        offers = sort_offers(dedupe_offers(collected))
        summary.scraped = len(collected)
        summary.unique = len(offers)
        summary.output = collect_stats(offers)
        logger.info("Markets: %s", summary.output.market_summary())

        write_csv(offers, config.output_csv)
        write_json(offers, summary.output.markets, config.output_json)
        summary.written = True
        logger.info("Scraping finished: %d unique items", summary.unique)

    return summary
