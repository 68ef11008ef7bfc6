"""
http.py – Async HTTP client built on *aiohttp* that classifies failures
          into transient / fatal query errors and reads rate-limit headers.

Retrying is left to the caller (see :mod:`logtail.paginator`).
"""

from __future__ import annotations

import asyncio
import email.utils
import logging
import time
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp

from ..errors import FatalQueryError, TransientQueryError
from ..models import RateLimitStatus

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = (408, 429, 500, 502, 503, 504)
AUTH_STATUSES = (401, 403)


class HttpClient:
    """
    Thin wrapper over *aiohttp.ClientSession* adding:

    * per-instance default headers (credentials live in one place)
    * mapping of HTTP / network failures onto the query error taxonomy
    * transparent parsing of *Retry-After* and *x-ratelimit-** headers
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._timeout = timeout
        self._own_session: Optional[aiohttp.ClientSession] = None
        self._default_headers: Dict[str, str] = dict(default_headers or {})

    # ---------------------------------------------- #
    # Session management
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._own_session is None or self._own_session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._own_session = aiohttp.ClientSession(timeout=timeout)
        return self._own_session

    async def close(self) -> None:
        if self._own_session and not self._own_session.closed:
            await self._own_session.close()
            self._own_session = None

    # ---------------------------------------------- #
    # Internal helpers
    @staticmethod
    def _parse_retry_after(header_val: str | None) -> Optional[float]:
        """Return seconds given a Retry-After header value."""
        if not header_val:
            return None
        header_val = header_val.strip()
        # seconds
        if header_val.isdigit():
            return float(header_val)
        # HTTP-date
        try:
            retry_at = email.utils.parsedate_to_datetime(header_val).timestamp()
        except (TypeError, ValueError):
            return None
        return max(0.0, retry_at - time.time())

    @staticmethod
    def parse_rate_limit(headers: Mapping[str, str]) -> Optional[RateLimitStatus]:
        """Read the ``x-ratelimit-*`` headers; ``None`` when none are present."""

        def _num(key: str, cast):
            raw = headers.get(key)
            if raw is None:
                return None
            try:
                return cast(raw.strip())
            except ValueError:
                logger.debug("Ignoring unparsable %s header: %r", key, raw)
                return None

        values = {
            "limit": _num("x-ratelimit-limit", int),
            "period": _num("x-ratelimit-period", float),
            "remaining": _num("x-ratelimit-remaining", int),
            "reset": _num("x-ratelimit-reset", float),
        }
        if all(v is None for v in values.values()):
            return None
        return RateLimitStatus(**values)

    async def _request(self, method: str, url: str, **kwargs) -> Tuple[Any, Optional[RateLimitStatus]]:
        """Perform one request; return the decoded JSON body and rate-limit status."""
        session = await self._ensure_session()
        kwargs["headers"] = {**self._default_headers, **kwargs.pop("headers", {})}

        try:
            async with session.request(method, url, **kwargs) as resp:
                rate_limit = self.parse_rate_limit(resp.headers)
                if resp.status >= 400:
                    detail = (await resp.text())[:500]
                    raise self._classify(resp.status, resp.headers, rate_limit, detail)
                try:
                    body = await resp.json(content_type=None)
                except ValueError as e:
                    raise FatalQueryError(f"response is not valid JSON: {e}", kind="response", status=resp.status) from e
                return body, rate_limit
        except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError, asyncio.TimeoutError) as e:
            raise TransientQueryError(f"{method} {url} failed: {e.__class__.__name__}: {e}") from e

    def _classify(self, status: int, headers: Mapping[str, str], rate_limit: Optional[RateLimitStatus], detail: str):
        if status in TRANSIENT_STATUSES:
            retry_after = self._parse_retry_after(headers.get("Retry-After"))
            if retry_after is None and rate_limit is not None and status == 429:
                retry_after = rate_limit.reset
            return TransientQueryError(f"HTTP {status}: {detail}", status=status, retry_after=retry_after)
        if status in AUTH_STATUSES:
            return FatalQueryError(f"HTTP {status}: {detail}", kind="auth", status=status)
        if 400 <= status < 500:
            return FatalQueryError(f"HTTP {status}: {detail}", kind="query", status=status)
        return TransientQueryError(f"HTTP {status}: {detail}", status=status)

    # ---------------------------------------------- #
    # Public helpers
    async def post_json(self, url: str, data: Any, **kwargs) -> Tuple[Any, Optional[RateLimitStatus]]:
        return await self._request("POST", url, json=data, **kwargs)
