"""datadog.client – async :class:`QueryClient` for the Datadog Logs v2 API.

One :meth:`DatadogLogsClient.search` call is one ``POST`` to
``/api/v2/logs/events/search``.  Pagination uses the ``meta.page.after``
cursor, fed back as ``page.cursor`` on the next request.  When a response
reports an exhausted rate-limit budget the client waits for the advertised
reset before sending its next request.
"""
from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ...errors import FatalQueryError, InvalidWindow
from ...infra.http import HttpClient
from ...interfaces import QueryClient
from ...models import LogEvent, RateLimitStatus, SearchPage, TimeWindow

logger = logging.getLogger(__name__)

__all__ = ["DatadogLogsClient"]


# --------------------------------------------------------------------------- #
SEARCH_PATH = "/api/v2/logs/events/search"
PAGE_LIMIT = 1000  # upstream maximum
RESET_JITTER_S = 1.0


def _rfc3339(instant: datetime) -> str:
    return instant.isoformat().replace("+00:00", "Z")


# --------------------------------------------------------------------------- #
class DatadogLogsClient(QueryClient):
    """Search Datadog logs one page at a time."""

    name = "DatadogLogsClient"

    # ------------------------------------------------------------------- #
    def __init__(
        self,
        *,
        domain: str,
        api_key: str,
        app_key: str,
        page_limit: int = PAGE_LIMIT,
        timeout: float = 30.0,
        scheme: str = "https",
        http: Optional[HttpClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._url = f"{scheme}://{domain}{SEARCH_PATH}"
        self._page_limit = page_limit
        self._sleep = sleep
        self._resume_at: Optional[float] = None

        self._http = http or HttpClient(
            timeout=timeout,
            default_headers={
                "Accept": "application/json",
                "DD-API-KEY": api_key,
                "DD-APPLICATION-KEY": app_key,
            },
        )

    @property
    def url(self) -> str:
        return self._url

    async def close(self) -> None:
        await self._http.close()

    # ------------------------------------------------------------------- #
    def build_request(self, query: str, window: TimeWindow, cursor: Optional[str]) -> Dict[str, Any]:
        page: Dict[str, Any] = {"limit": self._page_limit}
        if cursor is not None:
            page["cursor"] = cursor
        return {
            "filter": {
                "from": _rfc3339(window.start),
                "to": _rfc3339(window.end),
                "query": query,
            },
            "page": page,
            "sort": "timestamp",
        }

    async def search(self, query: str, window: TimeWindow, cursor: Optional[str] = None) -> SearchPage:
        if window.is_empty:
            raise InvalidWindow(f"empty search window {window}")

        await self._respect_rate_limit()

        body = self.build_request(query, window, cursor)
        logger.debug("POST %s – window=%s cursor=%s", self._url, window, cursor)
        payload, rate_limit = await self._http.post_json(self._url, body)
        self._note_rate_limit(rate_limit)

        page = self.parse_page(payload)
        logger.debug("Page returned %d events, next cursor %s", len(page.events), page.next_cursor)
        return page.model_copy(update={"rate_limit": rate_limit})

    # ------------------------------------------------------------------- #
    @staticmethod
    def parse_page(payload: Any) -> SearchPage:
        """Decode a search response body into a :class:`SearchPage`."""
        if not isinstance(payload, dict):
            raise FatalQueryError("search response is not a JSON object", kind="response")

        data = payload.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise FatalQueryError("log query data is not a list", kind="response")

        events: List[LogEvent] = []
        for raw in data:
            if not isinstance(raw, dict) or not isinstance(raw.get("id"), str):
                raise FatalQueryError("log event without a string id", kind="response")
            events.append(LogEvent.from_api(raw))

        after = ((payload.get("meta") or {}).get("page") or {}).get("after")
        return SearchPage(events=events, next_cursor=after or None)

    # ------------------------------------------------------------------- #
    def _note_rate_limit(self, status: Optional[RateLimitStatus]) -> None:
        if status is None or not status.exhausted:
            self._resume_at = None
            return
        reset = status.reset if status.reset is not None else status.period or 0.0
        self._resume_at = time.monotonic() + reset
        logger.info(
            "Rate-limit budget of %s requests exhausted, next request in %.1fs", status.limit or "?", reset
        )

    async def _respect_rate_limit(self) -> None:
        if self._resume_at is None:
            return
        wait = self._resume_at - time.monotonic()
        self._resume_at = None
        if wait > 0:
            wait += random.uniform(0, RESET_JITTER_S)
            logger.debug("Waiting %.1fs for rate-limit reset", wait)
            await self._sleep(wait)
