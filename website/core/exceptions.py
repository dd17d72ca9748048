"""Exception types shared by the content engine and the web layer."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes for unrecoverable startup failures."""

    OK = 0
    DIRECTORY_SETUP_FAILED = 1
    HASH_ALGORITHM_MISSING = 2
    WATCH_SERVICE_FAILED = 3
    WATCH_REGISTRATION_FAILED = 4
    STORE_UNAVAILABLE = 5


class WebsiteError(Exception):
    """Base class for all application errors."""


class FatalStartupError(WebsiteError):
    """Raised when the engine cannot uphold its sync guarantee at startup."""

    exit_code: ExitCode = ExitCode.DIRECTORY_SETUP_FAILED

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class AlgorithmUnavailableError(FatalStartupError):
    """Raised when the configured digest algorithm is missing."""

    exit_code = ExitCode.HASH_ALGORITHM_MISSING


class WatchInitError(FatalStartupError):
    """Raised when a directory watch cannot be opened or registered."""

    exit_code = ExitCode.WATCH_REGISTRATION_FAILED


class StoreError(WebsiteError):
    """Raised when a content store query fails (as opposed to finding nothing)."""


class IngestionError(WebsiteError):
    """Raised when a single file cannot be ingested."""


class MaterializationError(WebsiteError):
    """Raised when a blog body cannot be read or rendered for serving."""
