"""
Destination writing to an already-open text stream (standard output).
"""

import sys
from typing import Optional, TextIO

from ..interfaces import Sink


class StreamSink(Sink):
    """Writes lines to ``stream``; the stream itself is never closed."""

    name = "stdout"

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # resolved lazily so a replaced sys.stdout is honoured
        return self._stream if self._stream is not None else sys.stdout

    def write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def flush(self) -> None:
        self.stream.flush()

    def close(self) -> None:
        self.flush()
