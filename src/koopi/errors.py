"""Exception hierarchy.

Fatal errors abort the run and map to a process exit code; ``FetchError`` is
task-local and never leaves the fetcher.
"""


class KoopiError(Exception):
    exit_code = 1


class LockUnavailableError(KoopiError):
    """Another live process owns the lock, or the lock file cannot be written."""

    exit_code = 1


class InputFileError(KoopiError):
    """The work-list input is missing, unreadable or malformed."""

    exit_code = 2


class OutputWriteError(KoopiError):
    """Writing the CSV or JSON export failed."""

    exit_code = 3


class FetchError(KoopiError):
    def __init__(self, message: str, url: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
