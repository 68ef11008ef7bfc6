"""
TailLoop – the polling state machine.

    INITIALIZING -> POLLING -> SLEEPING -> POLLING -> ... -> TERMINATED   (tailing)
    INITIALIZING -> POLLING -> TERMINATED                                  (one-shot)

Each successful cycle drains the current window, drops already-emitted
events, routes / formats / writes the rest, then moves the window start
up to the newest confirmed event (minus ``overlap``).  A cycle that fails
transiently leaves the window where it was; a fatal error ends the run.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from .dedup import Deduplicator
from .errors import FatalQueryError, TransientQueryError
from .formatter import Formatter
from .models import LogEvent, TailResult, TimeWindow, as_utc, utcnow
from .paginator import Paginator
from .router import PartitionRouter
from .sink_manager import SinkManager

logger = logging.getLogger(__name__)


class TailState(Enum):
    INITIALIZING = "initializing"
    POLLING = "polling"
    SLEEPING = "sleeping"
    TERMINATED = "terminated"


class TailLoop:
    """Drive repeated searches and feed their results to the sinks."""

    def __init__(
        self,
        *,
        query: str,
        paginator: Paginator,
        router: PartitionRouter,
        formatter: Formatter,
        sinks: SinkManager,
        history: timedelta,
        from_timestamp: Optional[datetime] = None,
        poll_interval: float = 5.0,
        overlap: timedelta = timedelta(seconds=10),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._query = query
        self._paginator = paginator
        self._router = router
        self._formatter = formatter
        self._sinks = sinks
        self._history = history
        self._from = as_utc(from_timestamp) if from_timestamp is not None else None
        self._poll_interval = poll_interval
        self._overlap = overlap
        self._clock = clock
        self._dedup = Deduplicator(overlap)
        self._stop = asyncio.Event()
        self._state = TailState.INITIALIZING
        self._next_start: Optional[datetime] = None
        self._fixed_window: Optional[TimeWindow] = None
        self._result = TailResult()

    # ---------------------------------------------- #
    @property
    def state(self) -> TailState:
        return self._state

    @property
    def one_shot(self) -> bool:
        return self._from is not None

    @property
    def next_start(self) -> Optional[datetime]:
        return self._next_start

    @property
    def result(self) -> TailResult:
        return self._result

    def stop(self) -> None:
        """Request termination; honoured while sleeping and before each poll."""
        if not self._stop.is_set():
            logger.info("Stop requested")
        self._stop.set()

    # ---------------------------------------------- #
    def _initialize(self) -> None:
        self._state = TailState.INITIALIZING
        if self._from is not None:
            end = self._from + self._history
            # an empty one-shot window is rejected by the paginator as InvalidWindow
            self._fixed_window = TimeWindow(start=self._from, end=max(end, self._from))
            logger.info("One-shot search over %s", self._fixed_window)
        else:
            self._next_start = self._clock() - self._history
            logger.info("Tailing from %s", self._next_start.isoformat())

    def _window(self, now: datetime) -> TimeWindow:
        if self._fixed_window is not None:
            return self._fixed_window
        return TimeWindow(start=self._next_start, end=max(now, self._next_start))

    def _advance(self, window: TimeWindow, events: List[LogEvent]) -> None:
        if self._fixed_window is not None:
            return
        stamps = [e.timestamp for e in events if e.timestamp is not None]
        last_seen = max(stamps) if stamps else window.end
        # re-query a trailing slice so late-indexed events are not lost
        candidate = min(last_seen, window.end - self._overlap)
        self._next_start = max(window.start, candidate)

    # ---------------------------------------------- #
    async def run(self) -> TailResult:
        """Run until stopped, a fatal error, or the one-shot pass completes."""
        self._initialize()
        try:
            while not self._stop.is_set():
                self._state = TailState.POLLING
                completed = await self._poll()
                if completed and self.one_shot:
                    break
                self._state = TailState.SLEEPING
                if await self._sleep():
                    break
        except FatalQueryError as e:
            logger.error("Fatal %s error, stopping: %s", e.kind, e)
            self._result.ok = False
            self._result.error_kind = e.kind
            self._result.error_message = str(e)
        finally:
            self._state = TailState.TERMINATED
            self._sinks.close_all()
            logger.info(
                "Terminated after %d cycles, %d events written",
                self._result.cycles,
                self._result.events_written,
            )
        return self._result

    async def _sleep(self) -> bool:
        """Wait one poll interval; ``True`` when a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _poll(self) -> bool:
        now = self._clock()
        window = self._window(now)
        if window.is_empty and not self.one_shot:
            logger.debug("Window %s is empty, skipping cycle", window)
            return False

        try:
            events = await self._paginator.drain(self._query, window)
        except TransientQueryError as e:
            logger.warning("Skipping cycle for %s, will retry the same window: %s", window, e)
            return False

        fresh = self._dedup.filter(events, now)
        written = 0
        for event in fresh:
            destination = self._router.route(event)
            if self._sinks.write(destination, self._formatter.format(event)):
                written += 1

        self._advance(window, events)
        if self._next_start is not None:
            self._dedup.expire(now, self._next_start)

        self._result.cycles += 1
        self._result.events_written += written
        self._result.duplicates_dropped += len(events) - len(fresh)
        logger.info(
            "Returned %d events, %d new, %d written; total written: %d",
            len(events),
            len(fresh),
            written,
            self._result.events_written,
        )
        return True
