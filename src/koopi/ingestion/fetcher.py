from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote, urlparse

import requests
from bs4 import BeautifulSoup

from ..config.rules import DEFAULT_HEADERS
from ..errors import FetchError
from ..models import Offer
from ..processing.extract import extract_offers, parse_document
from ..utils.logging import get_logger
from .scheduler import RunContext
from .worklist import FetchTask

logger = get_logger(__name__)

SessionFactory = Callable[[str], requests.Session]


def make_session(user_agent: str) -> requests.Session:
    s = requests.Session()
    s.headers.update(DEFAULT_HEADERS)
    s.headers["User-Agent"] = user_agent
    return s


def _write_atomic(path: Path, content: bytes) -> None:
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    try:
        tmp.write_bytes(content)
        os.replace(tmp, path)
    finally:
        tmp.unlink(missing_ok=True)


class HtmlCache:
    """Raw search pages on disk, one file per cache key, never expired here."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)

    def path_for(self, key: str) -> Path:
        return self.base_dir / key

    def load(self, key: str) -> Optional[bytes]:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("[%s] cache file unreadable: %s", key, exc)
            return None

    def save(self, key: str, content: bytes) -> bool:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            _write_atomic(self.path_for(key), content)
        except OSError as exc:
            logger.error("[%s] error saving to cache %s: %s", key, self.base_dir, exc)
            return False
        return True


def image_basename(url: str) -> str:
    return os.path.basename(unquote(urlparse(url).path))


class ImageCache:
    """Product images kept for the offline WebP conversion step.

    A file with the same basename counts as already downloaded.
    """

    def __init__(self, base_dir: Path, timeout: float) -> None:
        self.base_dir = Path(base_dir)
        self.timeout = timeout

    def path_for(self, url: str) -> Optional[Path]:
        name = image_basename(url)
        if not name or name in (".", ".."):
            return None
        return self.base_dir / name

    def prefetch(self, url: str, session: requests.Session) -> bool:
        """Download ``url`` unless cached. Returns True when a file was written."""
        if not url:
            return False
        path = self.path_for(url)
        if path is None or path.exists():
            return False

        logger.debug("downloading image %s", url)
        try:
            resp = session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("[%s] error downloading image: %s", url, exc)
            return False
        if resp.status_code != 200:
            logger.warning("[%s] failed to download image, code: %d", url, resp.status_code)
            return False

        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            _write_atomic(path, resp.content)
        except OSError as exc:
            logger.warning("[%s] error saving image: %s", path.name, exc)
            return False
        return True


class CacheAsideFetcher:
    """Fetch one work-list task: disk cache first, rate-limited network second."""

    def __init__(
        self,
        context: RunContext,
        html_cache: HtmlCache,
        image_cache: Optional[ImageCache] = None,
        session_factory: SessionFactory = make_session,
    ) -> None:
        self.context = context
        self.html_cache = html_cache
        self.image_cache = image_cache
        self.session_factory = session_factory
        self._local = threading.local()

    def session(self) -> requests.Session:
        if not hasattr(self._local, "session"):
            self._local.session = self.session_factory(self.context.user_agent)
        return self._local.session

    def _from_cache(self, task: FetchTask) -> Optional[BeautifulSoup]:
        content = self.html_cache.load(task.cache_key)
        if content is None:
            return None
        try:
            return parse_document(content)
        except Exception as exc:
            logger.warning("[%s] error parsing cached document %s: %s", task.query, task.cache_key, exc)
            return None

    def _download(self, task: FetchTask) -> bytes:
        try:
            resp = self.session().get(task.url, timeout=self.context.config.timeout)
        except requests.RequestException as exc:
            raise FetchError(f"request failed: {exc}", url=task.url) from exc
        if resp.status_code != 200:
            raise FetchError(
                f"request code {resp.status_code} {resp.reason or ''}".strip(),
                url=task.url,
                status=resp.status_code,
            )
        return resp.content

    def _from_network(self, task: FetchTask) -> Optional[BeautifulSoup]:
        """Issue the request; the caller must hold a politeness token."""
        scheduler = self.context.scheduler
        with scheduler.in_flight() as slot:
            if not slot or scheduler.cancelled:
                self.context.stats.incr("skipped")
                return None
            logger.info("[%s] scrape %s", task.query, task.url)
            self.context.stats.incr("network_fetches")
            try:
                body = self._download(task)
            except FetchError as exc:
                self.context.stats.incr("failures")
                logger.warning("[%s] %s (%s)", task.query, exc, exc.url)
                return None

        self.html_cache.save(task.cache_key, body)
        try:
            return parse_document(body)
        except Exception as exc:
            self.context.stats.incr("failures")
            logger.warning("[%s] error creating document from %s: %s", task.query, task.url, exc)
            return None

    def prefetch_images(self, offers: List[Offer]) -> None:
        if self.image_cache is None:
            return
        seen: Dict[str, None] = {}
        for offer in offers:
            if offer.image_url and offer.image_url not in seen:
                seen[offer.image_url] = None
        for url in seen:
            # no new requests once the run is cancelled, cached pages included
            if self.context.cancelled:
                self.context.stats.incr("images_skipped")
                continue
            if self.image_cache.prefetch(url, self.session()):
                self.context.stats.incr("images_downloaded")

    def _process(self, task: FetchTask, document: BeautifulSoup, source: str) -> List[Offer]:
        offers = extract_offers(document, task.category, task.query)
        self.prefetch_images(offers)
        if offers:
            logger.info("[%s] extracted %d items (%s)", task.query, len(offers), source)
        else:
            logger.info("[%s] extracted 0 items (%s) %s", task.query, source, task.url)
        return offers

    def fetch(self, task: FetchTask) -> List[Offer]:
        document = self._from_cache(task)
        if document is not None:
            self.context.stats.incr("cache_hits")
            return self._process(task, document, "cache")

        with self.context.scheduler.politeness_token(task.query) as token:
            if not token:
                self.context.stats.incr("skipped")
                return []
            document = self._from_network(task)
            if document is None:
                return []
            return self._process(task, document, "network")
