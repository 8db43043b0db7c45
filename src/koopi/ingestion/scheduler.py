from __future__ import annotations

import random
import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..config.settings import (
    CANCEL_POLL_INTERVAL,
    MAX_IN_FLIGHT,
    POLITE_DELAY,
    RATE_SLOTS,
    ScrapeConfig,
)
from ..models import Offer
from ..utils.logging import get_logger

logger = get_logger(__name__)


class Scheduler:
    """Two independent limits on the network path.

    ``in_flight`` bounds simultaneous open requests; ``politeness`` tokens
    bound how often requests fire, because a token is held until a random
    delay after its request has finished. Every wait gives up when
    ``cancel_event`` is set.
    """

    def __init__(
        self,
        max_in_flight: int = MAX_IN_FLIGHT,
        rate_slots: int = RATE_SLOTS,
        delay_range: Tuple[float, float] = POLITE_DELAY,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = CANCEL_POLL_INTERVAL,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.in_flight_slots = threading.BoundedSemaphore(max_in_flight)
        self.politeness_tokens = threading.BoundedSemaphore(rate_slots)
        self.delay_range = delay_range
        self.cancel_event = cancel_event or threading.Event()
        self.poll_interval = poll_interval
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def acquire(self, semaphore: threading.Semaphore) -> bool:
        while not self.cancel_event.is_set():
            if semaphore.acquire(timeout=self.poll_interval):
                if self.cancel_event.is_set():
                    semaphore.release()
                    return False
                return True
        return False

    def next_delay(self) -> float:
        lo, hi = self.delay_range
        with self._rng_lock:
            return self._rng.uniform(lo, hi)

    def polite_sleep(self, delay: Optional[float] = None) -> bool:
        """Sleep unless cancelled first. Returns False when interrupted."""
        delay = self.next_delay() if delay is None else delay
        if delay <= 0:
            return not self.cancel_event.is_set()
        interrupted = self.cancel_event.wait(delay)
        return not interrupted

    @contextmanager
    def in_flight(self) -> Iterator[bool]:
        granted = self.acquire(self.in_flight_slots)
        try:
            yield granted
        finally:
            if granted:
                self.in_flight_slots.release()

    @contextmanager
    def politeness_token(self, label: str = "") -> Iterator[bool]:
        granted = self.acquire(self.politeness_tokens)
        try:
            yield granted
        finally:
            if granted:
                try:
                    if not self.polite_sleep():
                        logger.info("[%s] politeness delay interrupted", label)
                finally:
                    self.politeness_tokens.release()


class Accumulator:
    """Offers collected by all workers, appended one task batch at a time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batches: Dict[int, List[Offer]] = {}
        self._total = 0

    def add(self, seq: int, offers: List[Offer]) -> int:
        with self._lock:
            self._batches.setdefault(seq, []).extend(offers)
            self._total += len(offers)
            return self._total

    def __len__(self) -> int:
        with self._lock:
            return self._total

    def offers(self) -> List[Offer]:
        """All offers ordered by task sequence (stable across runs)."""
        with self._lock:
            return [offer for seq in sorted(self._batches) for offer in self._batches[seq]]


@dataclass
class FetchStats:
    cache_hits: int = 0
    network_fetches: int = 0
    failures: int = 0
    skipped: int = 0
    images_downloaded: int = 0
    images_skipped: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def incr(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)


@dataclass
class RunContext:
    """Everything a run shares between its workers."""

    config: ScrapeConfig
    cancel_event: threading.Event
    scheduler: Scheduler
    user_agent: str
    accumulator: Accumulator = field(default_factory=Accumulator)
    stats: FetchStats = field(default_factory=FetchStats)

    @classmethod
    def create(
        cls,
        config: ScrapeConfig,
        user_agent: str,
        rng: Optional[random.Random] = None,
    ) -> "RunContext":
        cancel_event = threading.Event()
        scheduler = Scheduler(
            max_in_flight=config.max_in_flight,
            rate_slots=config.rate_slots,
            delay_range=config.delay_range,
            cancel_event=cancel_event,
            poll_interval=config.poll_interval,
            rng=rng,
        )
        return cls(
            config=config,
            cancel_event=cancel_event,
            scheduler=scheduler,
            user_agent=user_agent,
        )

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


@contextmanager
def cancel_on_signals(
    cancel_event: threading.Event,
    signals: Tuple[int, ...] = (signal.SIGINT, signal.SIGTERM),
) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into a one-shot cancellation of the run."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame) -> None:
        if cancel_event.is_set():
            logger.debug("Signal %s ignored, shutdown already in progress", signum)
            return
        logger.warning("Interrupted (signal %s); finishing cached pages, abandoning network fetches", signum)
        cancel_event.set()

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
