"""
Partition routing – which destination an event is written to.
"""

from __future__ import annotations

from typing import Optional

from .fieldpath import FieldPath
from .models import LogEvent

STDOUT_DESTINATION = "-"


class PartitionRouter:
    """Map events to destination ids via an optional split-key path.

    Without a split key every event goes to ``default``.  With one, the
    resolved scalar value names the destination; events lacking the key
    (or carrying a non-scalar / empty value there) go to ``default``.
    """

    def __init__(self, key_path: Optional[FieldPath], default: str) -> None:
        self._key_path = key_path
        self._default = default

    @classmethod
    def for_stream(cls) -> "PartitionRouter":
        return cls(None, STDOUT_DESTINATION)

    @property
    def default(self) -> str:
        return self._default

    def route(self, event: LogEvent) -> str:
        if self._key_path is None:
            return self._default
        value = self._key_path.resolve(event.body)
        if isinstance(value, (dict, list)) or value is None:
            return self._default
        key = value if isinstance(value, str) else str(value)
        return key or self._default
