"""
Append-only file destination.
"""

import logging
from pathlib import Path
from typing import Optional, TextIO

from ..interfaces import Sink


logger = logging.getLogger(__name__)


class FileSink(Sink):
    """UTF-8 text file opened in append mode on first write."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None

    @property
    def name(self) -> str:
        return str(self.path)

    @property
    def is_open(self) -> bool:
        return self._fh is not None

    def open(self) -> None:
        if self._fh is None:
            self._fh = open(self.path, "a", encoding="utf-8", newline="\n")
            logger.info(f"Started writing to file: {self.path}")

    def write(self, line: str) -> None:
        self.open()
        self._fh.write(line + "\n")
        self._fh.flush()

    def flush(self) -> None:
        if self._fh is not None:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            finally:
                self._fh = None
            logger.info(f"Finished writing to file: {self.path}")
