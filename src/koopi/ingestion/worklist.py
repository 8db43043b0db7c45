from __future__ import annotations

import csv
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import quote_plus

from ..config.settings import KOOPI_SEARCH_URL, KOOPI_SUBPAGE, MAX_SCRAPED_PAGES
from ..errors import InputFileError
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class InputRow:
    category: str
    query: str
    pages: int


@dataclass(frozen=True)
class FetchTask:
    url: str
    cache_key: str
    category: str
    query: str
    page: int
    seq: int  # position before shuffling


def read_input(path: Path) -> List[InputRow]:
    """Read ``category,query,pages`` rows; any malformed row aborts the run."""
    path = Path(path)
    try:
        with path.open("r", newline="", encoding="utf-8-sig") as f:
            raw_rows = list(csv.reader(f))
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise InputFileError(f"{path}: cannot read input: {exc}") from exc

    rows: List[InputRow] = []
    for lineno, raw in enumerate(raw_rows, 1):
        if not raw or all(not cell.strip() for cell in raw):
            continue
        if len(raw) < 3:
            raise InputFileError(f"{path}:{lineno}: expected 3 columns, got {len(raw)}")
        category, query, pages_raw = (cell.strip() for cell in raw[:3])
        try:
            pages = int(pages_raw)
        except ValueError:
            raise InputFileError(f"{path}:{lineno}: page count {pages_raw!r} is not a number") from None
        if pages < 0:
            raise InputFileError(f"{path}:{lineno}: negative page count {pages}")
        rows.append(InputRow(category=category, query=query, pages=pages))

    logger.debug("Read %d input rows from %s", len(rows), path)
    return rows


def search_url(query: str, page: int) -> str:
    url = KOOPI_SEARCH_URL + quote_plus(query)
    if page > 1:
        url += f"{KOOPI_SUBPAGE}{page}"
    return url


def cache_key(query: str, page: int) -> str:
    """'kuřecí prsa', 2 -> 'kuřecí-prsa-2.html' (stable across runs)."""
    slug = query.replace(" ", "-").replace("/", "-").replace("\\", "-")
    return f"{slug}-{page}.html"


def expand_rows(rows: Iterable[InputRow]) -> List[FetchTask]:
    tasks: List[FetchTask] = []
    for row in rows:
        for page in range(1, row.pages + 1):
            tasks.append(
                FetchTask(
                    url=search_url(row.query, page),
                    cache_key=cache_key(row.query, page),
                    category=row.category,
                    query=row.query,
                    page=page,
                    seq=len(tasks),
                )
            )
    return tasks


def build_work_list(
    rows: Iterable[InputRow],
    max_tasks: int = MAX_SCRAPED_PAGES,
    rng: Optional[random.Random] = None,
) -> List[FetchTask]:
    """Expand rows into page tasks, shuffle them and cap the list at ``max_tasks``."""
    rng = rng or random.Random()
    tasks = expand_rows(rows)
    rng.shuffle(tasks)
    if len(tasks) > max_tasks:
        logger.info("Work list capped: %d of %d pages kept", max_tasks, len(tasks))
        tasks = tasks[:max_tasks]
    return tasks
