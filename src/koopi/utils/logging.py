"""Centralized logging configuration for koopi.

Usage in any module:
    from koopi.utils.logging import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

_CONFIGURED = False

LOG_DIR = Path(__file__).resolve().parents[3] / "logs"
LOG_FILE = LOG_DIR / "koopi.log"
ROOT_LOGGER = "koopi"

# Czech product names must not crash a cp1250/ascii console
class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that gracefully handles encoding errors."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            stream = self.stream
            encoding = getattr(stream, "encoding", None) or "utf-8"
            try:
                stream.write(msg + self.terminator)
            except UnicodeEncodeError:
                safe_msg = msg.encode(encoding, errors="backslashreplace").decode(
                    encoding, errors="backslashreplace"
                )
                stream.write(safe_msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Path] = None,
) -> None:
    """Configure the ``koopi`` logger (console + file).

    Handlers are attached only once. Later calls with an explicit ``level``
    just adjust the level of the logger and its console handler.
    """
    global _CONFIGURED
    root = logging.getLogger(ROOT_LOGGER)
    if _CONFIGURED:
        if level is not None:
            root.setLevel(level)
            for handler in root.handlers:
                if isinstance(handler, SafeStreamHandler):
                    handler.setLevel(level)
        return
    _CONFIGURED = True

    level = logging.INFO if level is None else level
    root.setLevel(level)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = SafeStreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(fmt)
    root.addHandler(console)

    target = log_file or LOG_FILE
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(target, encoding="utf-8", delay=True)
        fh.setLevel(logging.DEBUG)  # file captures everything
        fh.setFormatter(fmt)
        root.addHandler(fh)
    except OSError:
        # read-only checkout (cron container): console only
        pass


def get_logger(name: str) -> logging.Logger:
    """Return a logger, configuring the ``koopi`` namespace on first use."""
    setup_logging()
    return logging.getLogger(name)
