"""
Rendering events into output lines.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .fieldpath import FieldPath
from .models import FormatSpec, LogEvent, StructuredFormat, TemplateFormat

logger = logging.getLogger(__name__)


class Formatter:
    """Turn an event into exactly one line of text (no trailing newline)."""

    def __init__(self, spec: FormatSpec) -> None:
        self._spec = spec
        self._paths: Tuple[FieldPath, ...] = ()
        if isinstance(spec, TemplateFormat):
            self._paths = tuple(FieldPath.parse(p) for p in spec.paths)

    @property
    def spec(self) -> FormatSpec:
        return self._spec

    def format(self, event: LogEvent) -> str:
        if isinstance(self._spec, StructuredFormat):
            # JSON escapes control characters, so this is always one line
            return json.dumps(event.body, separators=(",", ":"), ensure_ascii=False)
        slots = [path.resolve_text(event.body) or "" for path in self._paths]
        return _single_line(" ".join(slots))


def _single_line(text: str) -> str:
    return text.replace("\r", "\\r").replace("\n", "\\n")


def load_format_file(path: Optional[Path]) -> TemplateFormat:
    """Read one field path per line; blank lines are ignored.

    A missing ``path`` or a file without any path yields the default template.
    """
    if path is None:
        return TemplateFormat()
    paths: List[str] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                paths.append(str(FieldPath.parse(line)))
    if not paths:
        logger.info("Format file %s is empty, using default template", path)
    return TemplateFormat(paths=paths)
