from __future__ import annotations

import random
import time
from pathlib import Path
from typing import List, Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)

DAY = 86400.0


def _cache_files(cache_dir: Path) -> List[Path]:
    return sorted(p for p in cache_dir.rglob("*") if p.is_file())


def _older_than(path: Path, days: float, now: float) -> bool:
    try:
        return now - path.stat().st_mtime > days * DAY
    except FileNotFoundError:
        return False


def _remove(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Cannot remove cache file %s: %s", path, exc)
        return False
    return True


def clean_cache(
    cache_dir: Path,
    max_age_days: float = 5,
    sample_age_days: float = 2,
    sample_size: int = 50,
    pool_size: int = 1000,
    now: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> List[Path]:
    """Expire old HTML cache pages.

    Everything older than ``max_age_days`` goes. From what is left, up to
    ``sample_size`` random files taken from the first ``pool_size`` files
    older than ``sample_age_days`` go too, so the cache refreshes a little
    on every run instead of all at once.

    Returns the removed paths.
    """
    cache_dir = Path(cache_dir)
    if not cache_dir.is_dir():
        logger.info("Cache directory %s does not exist; nothing to clean", cache_dir)
        return []

    now = time.time() if now is None else now
    rng = rng or random.Random()
    removed: List[Path] = []

    for path in _cache_files(cache_dir):
        if _older_than(path, max_age_days, now) and _remove(path):
            removed.append(path)
    expired = len(removed)

    pool = [p for p in _cache_files(cache_dir) if _older_than(p, sample_age_days, now)][:pool_size]
    rng.shuffle(pool)
    for path in pool[:sample_size]:
        if _remove(path):
            removed.append(path)

    logger.info(
        "Cache cleanup in %s: %d expired, %d sampled",
        cache_dir, expired, len(removed) - expired,
    )
    return removed
