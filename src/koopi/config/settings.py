from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

KOOPI_HOME_URL = "https://www.kupi.cz"
KOOPI_IMAGE_URL = "https://img.kupi.cz"
KOOPI_SEARCH_URL = "https://www.kupi.cz/hledej?f="
KOOPI_SUBPAGE = "&page="

INPUT_CSV = Path("scrape.csv")
HTML_CACHE = Path("../cache")
IMAGE_CACHE = Path("../images")
OUTPUT_CSV = Path("koopi.csv")
OUTPUT_JSON = Path("koopi.json")

LOCK_FILE = Path("/tmp/koopi.lock")
LOCK_MAX_AGE = 60 * 60  # seconds

MAX_SCRAPED_PAGES = 500
MAX_WORKERS = 6
# A network request holds a politeness token for its whole lifetime, so with
# RATE_SLOTS below MAX_IN_FLIGHT the token pool is the binding limit and the
# in-flight cap only matters when --rate-slots is raised above it.
MAX_IN_FLIGHT = 4
RATE_SLOTS = 3
REQ_TIMEOUT = 10.0  # seconds
POLITE_DELAY = (7.0, 27.0)  # seconds, drawn uniformly after every request
CANCEL_POLL_INTERVAL = 0.25


@dataclass
class ScrapeConfig:
    input_csv: Path = INPUT_CSV
    cache_dir: Path = HTML_CACHE
    image_dir: Path = IMAGE_CACHE
    output_csv: Path = OUTPUT_CSV
    output_json: Path = OUTPUT_JSON
    lock_file: Path = LOCK_FILE
    lock_max_age: float = LOCK_MAX_AGE
    max_tasks: int = MAX_SCRAPED_PAGES
    workers: int = MAX_WORKERS
    max_in_flight: int = MAX_IN_FLIGHT
    rate_slots: int = RATE_SLOTS
    timeout: float = REQ_TIMEOUT
    delay_range: Tuple[float, float] = POLITE_DELAY
    poll_interval: float = CANCEL_POLL_INTERVAL
    user_agent: Optional[str] = None  # None -> random pick from rules.USER_AGENTS
    fetch_images: bool = True
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("input_csv", "cache_dir", "image_dir", "output_csv", "output_json", "lock_file"):
            setattr(self, name, Path(getattr(self, name)))
        lo, hi = self.delay_range
        lo = max(0.0, float(lo))
        self.delay_range = (lo, max(lo, float(hi)))
        if self.workers < 1 or self.max_in_flight < 1 or self.rate_slots < 1:
            raise ValueError("workers, max_in_flight and rate_slots must be >= 1")
        if self.max_tasks < 0:
            raise ValueError("max_tasks must be >= 0")
