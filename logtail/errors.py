"""
Error taxonomy for the tailing engine.

Transient errors are absorbed by the paginator / tail loop, fatal errors
abort the run and surface to the command line with their ``kind``.
"""

from __future__ import annotations

from typing import Optional


class LogTailError(Exception):
    """Base class for every error raised by logtail."""


class ConfigError(LogTailError):
    """Configuration could not be loaded or validated."""


class QueryError(LogTailError):
    """A search request against the remote API failed."""


class TransientQueryError(QueryError):
    """Rate limit, timeout or server error – safe to retry.

    ``retry_after`` carries the server's hint (in seconds) when it gave one.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, retry_after: Optional[float] = None):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class FatalQueryError(QueryError):
    """Auth failure, malformed query or unusable response – never retried."""

    kind = "fatal"

    def __init__(self, message: str, *, kind: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.status = status


class InvalidWindow(FatalQueryError):
    kind = "invalid_window"


class PaginationOverflow(FatalQueryError):
    """More pages than the configured safety bound for a single cycle."""

    kind = "overflow"


class PartitionWriteError(LogTailError):
    """A destination could not be opened or written."""

    def __init__(self, destination: str, cause: Exception):
        super().__init__(f"cannot write to {destination!r}: {cause}")
        self.destination = destination
        self.cause = cause
