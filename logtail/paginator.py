"""
Paginator – drains every page of one polling cycle.

Transient page failures are retried in place (same cursor) with exponential
back-off and jitter; fatal failures propagate untouched.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, List, Optional

from .errors import InvalidWindow, PaginationOverflow, TransientQueryError
from .interfaces import QueryClient
from .models import LogEvent, SearchPage, TimeWindow

logger = logging.getLogger(__name__)


class Paginator:
    """Follow page cursors until the API reports the last page."""

    def __init__(
        self,
        client: QueryClient,
        *,
        max_pages: int = 100,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_pages < 1 or max_attempts < 1:
            raise ValueError("max_pages and max_attempts must be positive")
        self._client = client
        self._max_pages = max_pages
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep

    def backoff(self, attempt: int, error: TransientQueryError) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""
        if error.retry_after is not None:
            return min(max(error.retry_after, 0.0), self._max_delay)
        exponential = min(self._base_delay * 2 ** (attempt - 1), self._max_delay)
        jitter = random.uniform(0, self._base_delay)
        return exponential + jitter

    async def drain(self, query: str, window: TimeWindow) -> List[LogEvent]:
        """Return every event of ``window`` in API order."""
        if window.is_empty:
            raise InvalidWindow(f"empty search window {window}")

        events: List[LogEvent] = []
        cursor: Optional[str] = None
        pages = 0
        while True:
            page = await self._fetch_page(query, window, cursor)
            pages += 1
            events.extend(page.events)
            cursor = page.next_cursor
            if cursor is None:
                break
            if pages >= self._max_pages:
                raise PaginationOverflow(
                    f"query still paginating after {pages} pages for window {window}; "
                    "narrow the query or raise max_pages"
                )

        logger.debug("Drained %d pages, %d events for %s", pages, len(events), window)
        return events

    async def _fetch_page(self, query: str, window: TimeWindow, cursor: Optional[str]) -> SearchPage:
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._client.search(query, window, cursor)
            except TransientQueryError as e:
                if attempt == self._max_attempts:
                    logger.error("Search failed after %d attempts: %s", attempt, e)
                    raise
                delay = self.backoff(attempt, e)
                logger.warning(
                    "Search failed (attempt %d/%d – will retry in %.1fs): %s",
                    attempt,
                    self._max_attempts,
                    delay,
                    str(e).splitlines()[0] if str(e) else e.__class__.__name__,
                )
                await self._sleep(delay)

        # Should never hit here
        raise RuntimeError("Unreachable retry loop")
