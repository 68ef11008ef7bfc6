"""Test doubles: scripted query client, controllable clock, event factory."""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from logtail.interfaces import QueryClient
from logtail.models import LogEvent, SearchPage, TimeWindow

T0 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Instant ``seconds`` after T0."""
    return T0 + timedelta(seconds=seconds)


def make_event(event_id: str, seconds: Optional[float] = None, **attributes) -> LogEvent:
    raw = {"id": event_id, "type": "log", "attributes": dict(attributes)}
    if seconds is not None:
        raw["attributes"]["timestamp"] = at(seconds).isoformat().replace("+00:00", "Z")
    return LogEvent.from_api(raw)


class FakeQueryClient(QueryClient):
    """Answers each search with ``handler(call_index, query, window, cursor)``."""

    name = "FakeQueryClient"

    def __init__(self, handler: Callable[[int, str, TimeWindow, Optional[str]], SearchPage]):
        self._handler = handler
        self.calls: List[Tuple[str, TimeWindow, Optional[str]]] = []
        self.closed = False

    async def search(self, query, window, cursor=None):
        self.calls.append((query, window, cursor))
        return self._handler(len(self.calls) - 1, query, window, cursor)

    async def close(self):
        self.closed = True

    @property
    def windows(self) -> List[TimeWindow]:
        return [w for _, w, _ in self.calls]


class SteppingClock:
    """Returns the given instants in order, then keeps returning the last one."""

    def __init__(self, *instants: datetime):
        self._instants = list(instants)
        self._index = 0

    def __call__(self) -> datetime:
        value = self._instants[min(self._index, len(self._instants) - 1)]
        self._index += 1
        return value


async def no_sleep(_delay: float) -> None:
    return None


