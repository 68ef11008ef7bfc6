"""
Deduplication of events returned by overlapping polling windows.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from .models import LogEvent

logger = logging.getLogger(__name__)


class RecentEventCache:
    """Event ids seen recently, each with the instant it was observed at."""

    def __init__(self) -> None:
        self._seen: Dict[str, datetime] = {}

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def add(self, event_id: str, observed_at: datetime) -> None:
        self._seen[event_id] = observed_at

    def expire(self, before: datetime) -> int:
        """Drop every entry observed strictly before ``before``."""
        stale = [event_id for event_id, seen_at in self._seen.items() if seen_at < before]
        for event_id in stale:
            del self._seen[event_id]
        return len(stale)


class Deduplicator:
    """Filters out events whose id was already emitted during this run.

    The retention horizon is ``2 * max(overlap, observed inter-cycle gap)``,
    never reaching past the start of the next window to be queried.
    """

    def __init__(self, overlap: timedelta, cache: Optional[RecentEventCache] = None) -> None:
        self._overlap = overlap
        self._cache = cache if cache is not None else RecentEventCache()
        self._last_poll: Optional[datetime] = None
        self._max_gap = timedelta(0)
        self.dropped = 0

    @property
    def cache(self) -> RecentEventCache:
        return self._cache

    def filter(self, events: Iterable[LogEvent], now: datetime) -> List[LogEvent]:
        """Return the unseen events, in order, and remember their ids."""
        fresh: List[LogEvent] = []
        for event in events:
            if event.id in self._cache:
                self.dropped += 1
                continue
            self._cache.add(event.id, event.timestamp or now)
            fresh.append(event)
        return fresh

    def expire(self, now: datetime, window_start: datetime) -> int:
        """Forget ids that can no longer be returned by the next query."""
        if self._last_poll is not None:
            self._max_gap = max(self._max_gap, now - self._last_poll)
        self._last_poll = now

        horizon = 2 * max(self._overlap, self._max_gap)
        cutoff = min(now - horizon, window_start)
        removed = self._cache.expire(cutoff)
        if removed:
            logger.debug("Expired %d cached event ids older than %s", removed, cutoff.isoformat())
        return removed
