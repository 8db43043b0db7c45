"""Tests for koopi.ingestion.fetcher — cache-aside page and image fetching."""

from unittest import mock

import pytest
import requests

from conftest import JOGURT_URL_1, JOGURT_URL_2, FakeResponse, FakeSession
from koopi.ingestion.fetcher import (
    CacheAsideFetcher,
    HtmlCache,
    ImageCache,
    image_basename,
    make_session,
)
from koopi.ingestion.scheduler import RunContext
from koopi.ingestion.worklist import InputRow, expand_rows
from koopi.processing.extract import extract_offers, parse_document


@pytest.fixture
def tasks():
    return expand_rows([InputRow("Dairy", "jogurt", 2)])


def _fetcher(config, session, image_cache=None):
    context = RunContext.create(config, "koopi-test/1.0")
    html_cache = HtmlCache(config.cache_dir)
    return CacheAsideFetcher(context, html_cache, image_cache, session_factory=lambda ua: session)


# ============================================================================
# HtmlCache
# ============================================================================
class TestHtmlCache:
    def test_roundtrip(self, tmp_path):
        cache = HtmlCache(tmp_path / "cache")
        assert cache.load("jogurt-1.html") is None
        assert cache.save("jogurt-1.html", b"<html></html>")
        assert cache.load("jogurt-1.html") == b"<html></html>"
        assert list((tmp_path / "cache").iterdir()) == [tmp_path / "cache" / "jogurt-1.html"]

    def test_save_failure_reported(self, tmp_path):
        blocker = tmp_path / "cache"
        blocker.write_text("not a directory", encoding="utf-8")
        assert not HtmlCache(blocker).save("jogurt-1.html", b"x")


# ============================================================================
# CacheAsideFetcher
# ============================================================================
class TestCacheHit:
    def test_no_network_and_same_records(self, scrape_config, tasks, jogurt_page):
        HtmlCache(scrape_config.cache_dir).save(tasks[0].cache_key, jogurt_page)
        session = FakeSession(error=AssertionError("network used"))
        fetcher = _fetcher(scrape_config, session)

        offers = fetcher.fetch(tasks[0])

        assert session.calls == []
        assert offers == extract_offers(parse_document(jogurt_page), "Dairy", "jogurt")
        assert fetcher.context.stats.cache_hits == 1
        assert fetcher.context.stats.network_fetches == 0

    def test_cache_hit_ignores_cancellation(self, scrape_config, tasks, jogurt_page):
        HtmlCache(scrape_config.cache_dir).save(tasks[0].cache_key, jogurt_page)
        fetcher = _fetcher(scrape_config, FakeSession())
        fetcher.context.cancel_event.set()
        assert len(fetcher.fetch(tasks[0])) == 3

    def test_cancelled_cache_hit_downloads_no_images(self, scrape_config, tasks, jogurt_page):
        HtmlCache(scrape_config.cache_dir).save(tasks[0].cache_key, jogurt_page)
        session = FakeSession({IMG: b"img"})
        fetcher = _fetcher(scrape_config, session, ImageCache(scrape_config.image_dir, timeout=1.0))
        fetcher.context.cancel_event.set()

        assert len(fetcher.fetch(tasks[0])) == 3
        assert session.calls == []
        assert not scrape_config.image_dir.exists()
        assert fetcher.context.stats.images_skipped == 2
        assert fetcher.context.stats.images_downloaded == 0

    def test_hit_bypasses_limiters(self, scrape_config, tasks, jogurt_page):
        HtmlCache(scrape_config.cache_dir).save(tasks[0].cache_key, jogurt_page)
        fetcher = _fetcher(scrape_config, FakeSession())
        scheduler = fetcher.context.scheduler
        with mock.patch.object(scheduler, "acquire", side_effect=AssertionError("limiter used")):
            assert len(fetcher.fetch(tasks[0])) == 3


class TestCacheMiss:
    def test_fetches_and_stores_verbatim(self, scrape_config, tasks, jogurt_session, jogurt_page):
        fetcher = _fetcher(scrape_config, jogurt_session)

        offers = fetcher.fetch(tasks[0])

        assert jogurt_session.calls == [JOGURT_URL_1]
        assert len(offers) == 3
        assert (scrape_config.cache_dir / "jogurt-1.html").read_bytes() == jogurt_page
        assert fetcher.context.stats.network_fetches == 1

    def test_empty_result_page(self, scrape_config, tasks, jogurt_session):
        fetcher = _fetcher(scrape_config, jogurt_session)
        assert fetcher.fetch(tasks[1]) == []
        assert jogurt_session.calls == [JOGURT_URL_2]
        assert (scrape_config.cache_dir / "jogurt-2.html").exists()

    def test_non_200_returns_nothing(self, scrape_config, tasks):
        session = FakeSession({JOGURT_URL_1: FakeResponse(503, b"busy", "Service Unavailable")})
        fetcher = _fetcher(scrape_config, session)

        assert fetcher.fetch(tasks[0]) == []
        assert not (scrape_config.cache_dir / "jogurt-1.html").exists()
        assert fetcher.context.stats.failures == 1

    def test_transport_error_returns_nothing(self, scrape_config, tasks):
        session = FakeSession(error=requests.ConnectionError("connection reset"))
        fetcher = _fetcher(scrape_config, session)
        assert fetcher.fetch(tasks[0]) == []
        assert fetcher.context.stats.failures == 1

    def test_cancelled_issues_no_request(self, scrape_config, tasks, jogurt_session):
        fetcher = _fetcher(scrape_config, jogurt_session)
        fetcher.context.cancel_event.set()
        assert fetcher.fetch(tasks[0]) == []
        assert jogurt_session.calls == []
        assert fetcher.context.stats.skipped == 1

    def test_unparseable_cache_file_refetched(self, scrape_config, tasks, jogurt_session):
        fetcher = _fetcher(scrape_config, jogurt_session)
        with mock.patch.object(fetcher, "_from_cache", return_value=None):
            assert len(fetcher.fetch(tasks[0])) == 3
        assert jogurt_session.calls == [JOGURT_URL_1]

    def test_cache_write_failure_not_fatal(self, scrape_config, tasks, jogurt_session):
        scrape_config.cache_dir.write_text("not a directory", encoding="utf-8")
        fetcher = _fetcher(scrape_config, jogurt_session)
        assert len(fetcher.fetch(tasks[0])) == 3

    def test_session_per_thread(self, scrape_config):
        created = []

        def factory(ua):
            created.append(ua)
            return FakeSession()

        context = RunContext.create(scrape_config, "koopi-test/1.0")
        fetcher = CacheAsideFetcher(context, HtmlCache(scrape_config.cache_dir), session_factory=factory)
        assert fetcher.session() is fetcher.session()
        assert created == ["koopi-test/1.0"]


# ============================================================================
# images
# ============================================================================
IMG = "https://img.kupi.cz/kupi/thumbs/jogurt-bily-hollandia_1.jpg"


class TestImageCache:
    def test_basename(self):
        assert image_basename(IMG) == "jogurt-bily-hollandia_1.jpg"
        assert image_basename("") == ""

    def test_downloads_once(self, tmp_path):
        cache = ImageCache(tmp_path / "images", timeout=1.0)
        session = FakeSession({IMG: b"\xff\xd8jpeg"})
        assert cache.prefetch(IMG, session)
        assert (tmp_path / "images" / "jogurt-bily-hollandia_1.jpg").read_bytes() == b"\xff\xd8jpeg"
        assert not cache.prefetch(IMG, session)
        assert session.calls == [IMG]

    def test_empty_url_skipped(self, tmp_path):
        session = FakeSession()
        assert not ImageCache(tmp_path, timeout=1.0).prefetch("", session)
        assert session.calls == []

    def test_failed_download_skipped(self, tmp_path):
        cache = ImageCache(tmp_path / "images", timeout=1.0)
        assert not cache.prefetch(IMG, FakeSession())
        assert not cache.prefetch(IMG, FakeSession(error=requests.Timeout("slow")))
        assert not (tmp_path / "images").exists()

    def test_fetch_prefetches_images(self, scrape_config, tasks, jogurt_page):
        HtmlCache(scrape_config.cache_dir).save(tasks[0].cache_key, jogurt_page)
        session = FakeSession({IMG: b"img"})
        fetcher = _fetcher(scrape_config, session, ImageCache(scrape_config.image_dir, timeout=1.0))

        fetcher.fetch(tasks[0])

        # two rows share one image; the Milko png is not served and is skipped
        assert session.calls.count(IMG) == 1
        assert (scrape_config.image_dir / "jogurt-bily-hollandia_1.jpg").exists()
        assert fetcher.context.stats.images_downloaded == 1


class TestMakeSession:
    def test_headers(self):
        s = make_session("koopi-test/1.0")
        assert s.headers["User-Agent"] == "koopi-test/1.0"
        assert s.headers["Accept-Language"].startswith("cs-CZ")
