"""
SinkManager – owns every open destination for the lifetime of a run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, TextIO

from .errors import PartitionWriteError
from .interfaces import Sink
from .sinks import FileSink, StreamSink

logger = logging.getLogger(__name__)


@dataclass
class _Health:
    failures: int = 0
    dropped: int = 0
    degraded: bool = False
    last_warning: Optional[float] = None


class SinkManager:
    """Lazily opens destinations and appends formatted lines to them.

    In ``file`` mode each destination id is a file name under ``output_dir``;
    in ``stdout`` mode every destination shares one :class:`StreamSink`.
    A destination that fails ``max_failures`` times in a row is degraded:
    its lines are dropped and a warning is logged at most every
    ``warn_interval`` seconds.
    """

    def __init__(
        self,
        mode: str = "file",
        *,
        output_dir: Path = Path("."),
        stream: Optional[TextIO] = None,
        max_failures: int = 3,
        warn_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if mode not in ("file", "stdout"):
            raise ValueError(f"unknown output mode: {mode!r}")
        self._mode = mode
        self._output_dir = Path(output_dir)
        self._stream_sink = StreamSink(stream) if mode == "stdout" else None
        self._max_failures = max_failures
        self._warn_interval = warn_interval
        self._clock = clock
        self._sinks: Dict[str, Sink] = {}
        self._health: Dict[str, _Health] = {}
        self._closed = False

    @property
    def destinations(self) -> Dict[str, Sink]:
        return dict(self._sinks)

    def path_for(self, destination: str) -> Path:
        safe = destination.replace("/", "_").replace("\\", "_").replace("\0", "_")
        if safe in ("", ".", ".."):
            safe = "_"
        return self._output_dir / safe

    def _sink_for(self, destination: str) -> Sink:
        sink = self._sinks.get(destination)
        if sink is None:
            if self._stream_sink is not None:
                sink = self._stream_sink
            else:
                sink = FileSink(self.path_for(destination))
            self._sinks[destination] = sink
        return sink

    def write(self, destination: str, line: str) -> bool:
        """Append ``line`` to ``destination``; ``False`` when the line was dropped."""
        health = self._health.setdefault(destination, _Health())
        if health.degraded:
            health.dropped += 1
            self._warn_degraded(destination, health)
            return False

        try:
            self._sink_for(destination).write(line)
        except (OSError, ValueError) as e:
            # ValueError covers unencodable text and unusable file names
            health.failures += 1
            health.dropped += 1
            logger.error("Dropping line: %s", PartitionWriteError(destination, e))
            if health.failures >= self._max_failures:
                health.degraded = True
                logger.warning(
                    "Destination %r failed %d times in a row, dropping its lines from now on",
                    destination,
                    health.failures,
                )
                self._discard(destination)
            return False

        health.failures = 0
        return True

    def _warn_degraded(self, destination: str, health: _Health) -> None:
        now = self._clock()
        if health.last_warning is None or now - health.last_warning >= self._warn_interval:
            health.last_warning = now
            logger.warning("Destination %r is degraded, %d lines dropped so far", destination, health.dropped)

    def _discard(self, destination: str) -> None:
        sink = self._sinks.pop(destination, None)
        if sink is not None and sink is not self._stream_sink:
            try:
                sink.close()
            except OSError as e:
                logger.error(f"Failed to close {sink.name}: {e}")

    def dropped(self, destination: str) -> int:
        health = self._health.get(destination)
        return health.dropped if health else 0

    def close_all(self) -> None:
        """Flush and release every destination; safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        for destination in list(self._sinks):
            self._discard(destination)
        if self._stream_sink is not None:
            try:
                self._stream_sink.flush()
            except (OSError, ValueError) as e:
                logger.error(f"Failed to flush stdout: {e}")
        logger.debug("All destinations closed")
