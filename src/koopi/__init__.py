"""koopi — discount crawler for kupi.cz, the Czech flyer aggregator.

Public API surface — import submodules directly for full access:
  koopi.config.rules           — denylist, note rewrites, user agents
  koopi.config.settings        — URLs, default paths, ScrapeConfig
  koopi.ingestion.orchestrator — one complete crawl
  koopi.processing.extract     — offers from a search result page
  koopi.storage.repository     — CSV / JSON export
  koopi.app.cli                — CLI entry point
"""

from .config.settings import ScrapeConfig
from .ingestion.orchestrator import run_scrape
from .models import Offer
from .processing.dedupe import dedupe_offers
from .processing.extract import extract_offers

__version__ = "0.3.0"


def main():
    """CLI entry point."""
    from .app.main import main as _main
    return _main()


__all__ = [
    "ScrapeConfig",
    "Offer",
    "run_scrape",
    "extract_offers",
    "dedupe_offers",
    "main",
]
