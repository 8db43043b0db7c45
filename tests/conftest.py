"""Shared fixtures for the koopi test suite."""

import sys
import threading
from pathlib import Path

import pytest

# Ensure src/ is on the path so "import koopi" works when running from repo root.
repo_root = Path(__file__).resolve().parents[1]
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Reconfigure stdout/stderr so Czech log lines never break the run.
try:
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")
except Exception:
    pass

from koopi.config.settings import ScrapeConfig  # noqa: E402
from koopi.models import Offer  # noqa: E402

FIXTURES = Path(__file__).resolve().parent / "fixtures"

JOGURT_URL_1 = "https://www.kupi.cz/hledej?f=jogurt"
JOGURT_URL_2 = "https://www.kupi.cz/hledej?f=jogurt&page=2"


# ---------------------------------------------------------------------------
# Fake HTTP
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, status_code=200, content=b"", reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason


class FakeSession:
    """Serves canned responses by URL and records every request."""

    def __init__(self, pages=None, error=None):
        self.pages = dict(pages or {})
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, timeout=None, **kwargs):
        with self._lock:
            self.calls.append(url)
        if self.error is not None:
            raise self.error
        if url not in self.pages:
            return FakeResponse(404, b"", "Not Found")
        resp = self.pages[url]
        if isinstance(resp, FakeResponse):
            return resp
        return FakeResponse(200, resp)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def jogurt_page():
    """Search page with two active groups (3 rows), one inactive and one denylisted group."""
    return (FIXTURES / "kupi_jogurt_1.html").read_bytes()


@pytest.fixture
def empty_page():
    return (FIXTURES / "kupi_empty.html").read_bytes()


@pytest.fixture
def jogurt_session(jogurt_page, empty_page):
    return FakeSession({JOGURT_URL_1: jogurt_page, JOGURT_URL_2: empty_page})


@pytest.fixture
def scrape_config(tmp_path):
    """Config pointing every path into tmp_path, with no politeness delay."""
    return ScrapeConfig(
        input_csv=tmp_path / "scrape.csv",
        cache_dir=tmp_path / "cache",
        image_dir=tmp_path / "images",
        output_csv=tmp_path / "koopi.csv",
        output_json=tmp_path / "koopi.json",
        lock_file=tmp_path / "koopi.lock",
        delay_range=(0.0, 0.0),
        poll_interval=0.01,
        timeout=1.0,
        user_agent="koopi-test/1.0",
        fetch_images=False,
        seed=7,
    )


@pytest.fixture
def sample_offers():
    """A few offers across markets, including two of the same generic product."""
    return [
        Offer(
            category="Dairy", query="mléko", name="Mléko polotučné", price="19.90 Kč",
            price_per_unit="19.90 Kč / 1 l", discount="-33 %", volume="1 l",
            market="Albert", validity="platí do neděle",
            url="https://www.kupi.cz/sleva/mleko-polotucne",
            image_url="https://img.kupi.cz/kupi/thumbs/mleko-polotucne_2.jpg",
        ),
        Offer(
            category="Dairy", query="mléko", name="Mléko polotučné", price="21.90 Kč",
            price_per_unit="21.90 Kč / 1 l", discount="-25 %", volume="1 l",
            market="Kaufland", validity="platí do středy",
            url="https://www.kupi.cz/sleva/mleko-polotucne",
            image_url="https://img.kupi.cz/kupi/thumbs/mleko-polotucne_2.jpg",
        ),
        Offer(
            category="Drinks", query="pivo", name="Pivo Plzeň", price="29.90 Kč",
            discount="-20 %", volume="0.5 l", note="zálohovaná lahev", subcat="lahev",
            market="Čepro", url="https://www.kupi.cz/sleva/pivo-plzen",
            image_url="https://img.kupi.cz/img/no_img/no_discounts.png",
        ),
        Offer(
            category="Bakery", query="chléb", name="Chléb kmínový", price="24.90 Kč",
            volume="1200 g", market="Billa", url="https://www.kupi.cz/sleva/chleb",
            image_url="",
        ),
    ]
