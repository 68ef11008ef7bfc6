"""
Core interfaces for the tailing engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .models import SearchPage, TimeWindow


class QueryClient(ABC):
    """One page of a paginated log search.

    Implementations perform exactly one round trip per :meth:`search` call
    and never retry; retry policy lives in the paginator.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this client."""
        pass

    @abstractmethod
    async def search(self, query: str, window: TimeWindow, cursor: Optional[str] = None) -> SearchPage:
        """Fetch the page identified by ``cursor`` (first page when ``None``).

        Raises :class:`~logtail.errors.TransientQueryError` or
        :class:`~logtail.errors.FatalQueryError`.
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass

    async def __aenter__(self) -> "QueryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class Sink(ABC):
    """An append-only destination for formatted lines."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Destination identifier."""
        pass

    @abstractmethod
    def write(self, line: str) -> None:
        """Append ``line`` followed by a newline."""
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.flush()
