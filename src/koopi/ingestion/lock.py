from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional

import psutil

from ..config.settings import LOCK_FILE, LOCK_MAX_AGE
from ..errors import LockUnavailableError
from ..utils.logging import get_logger

logger = get_logger(__name__)


def is_process_running(pid: int) -> bool:
    if pid <= 0:
        return False
    return psutil.pid_exists(pid)


class SingletonLock:
    """PID lock file that keeps a second crawler from running concurrently.

    A lock older than ``max_age`` seconds is a zombie and gets replaced; so is
    a lock whose PID cannot be parsed or is no longer running.
    """

    def __init__(
        self,
        path: Path = LOCK_FILE,
        max_age: float = LOCK_MAX_AGE,
        pid: Optional[int] = None,
    ) -> None:
        self.path = Path(path)
        self.max_age = max_age
        self.pid = os.getpid() if pid is None else pid

    def _read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self) -> bool:
        tmp = self.path.with_name(f"{self.path.name}.{self.pid}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(str(self.pid), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            logger.error("Failed to create lock file %s: %s", self.path, exc)
            tmp.unlink(missing_ok=True)
            return False
        logger.info("Created lock file %s with PID %d", self.path, self.pid)
        return True

    def acquire(self) -> bool:
        try:
            content = self._read()
        except OSError as exc:
            logger.error("Failed to read lock file %s: %s", self.path, exc)
            return False

        if content is None:
            return self._write()

        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return self._write()

        if age > self.max_age:
            logger.warning(
                "Lock file %s is %.0fs old (limit %.0fs); removing zombie lock",
                self.path, age, self.max_age,
            )
            try:
                self.path.unlink(missing_ok=True)
            except OSError as exc:
                logger.error("Failed to remove old lock file %s: %s", self.path, exc)
                return False
            return self._write()

        try:
            locked_pid = int(content.strip())
        except ValueError:
            locked_pid = None

        if locked_pid is not None and is_process_running(locked_pid):
            if locked_pid == self.pid:
                logger.warning("Lock file %s already holds our PID %d; proceeding", self.path, self.pid)
                return True
            logger.error("Lock file %s belongs to running PID %d; aborting run", self.path, locked_pid)
            return False

        logger.warning(
            "Lock file %s holds PID %r which is not running (or invalid); overwriting",
            self.path, content.strip(),
        )
        return self._write()

    def release(self) -> None:
        try:
            content = self._read()
        except OSError as exc:
            logger.error("Failed to read lock file %s for verification: %s", self.path, exc)
            return

        if content is None or content.strip() != str(self.pid):
            logger.warning(
                "Could not verify lock file %s (missing or owned by another process); left in place",
                self.path,
            )
            return

        try:
            self.path.unlink()
        except OSError as exc:
            logger.error("Failed to remove lock file %s: %s", self.path, exc)
            return
        logger.info("Lock file %s removed", self.path)

    def __enter__(self) -> "SingletonLock":
        if not self.acquire():
            raise LockUnavailableError(f"could not acquire lock {self.path}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
