"""
Field paths over decoded JSON event trees.

A path is a dot separated list of segments (``attributes.tags.pod_name``).
Mapping nodes are indexed by key, list nodes by integer segment; any other
step resolves to "absent".  Tag lists (``["pod_name:web-1", ...]``) are
unpacked into mappings once, on decode, so tags are addressable like any
other field.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional, Tuple

_MISSING = object()


class FieldPath:
    """Parsed, immutable field path."""

    __slots__ = ("_segments",)

    def __init__(self, segments: Iterable[str]):
        self._segments: Tuple[str, ...] = tuple(segments)
        if not self._segments or any(not s for s in self._segments):
            raise ValueError(f"invalid field path: {'.'.join(self._segments)!r}")

    @classmethod
    def parse(cls, text: str) -> "FieldPath":
        return cls(text.strip().split("."))

    @property
    def segments(self) -> Tuple[str, ...]:
        return self._segments

    def __str__(self) -> str:
        return ".".join(self._segments)

    def __repr__(self) -> str:
        return f"FieldPath({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FieldPath) and other._segments == self._segments

    def __hash__(self) -> int:
        return hash(self._segments)

    # ---------------------------------------------- #
    def resolve(self, tree: Any) -> Optional[Any]:
        """Return the node at this path, or ``None`` when absent or null."""
        node = tree
        for segment in self._segments:
            node = _step(node, segment)
            if node is _MISSING:
                return None
        return node

    def resolve_text(self, tree: Any) -> Optional[str]:
        """Resolve and render the node as text (``None`` when absent)."""
        value = self.resolve(tree)
        if value is None:
            return None
        return render_value(value)


def _step(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment, _MISSING)
    if isinstance(node, list):
        try:
            index = int(segment)
        except ValueError:
            return _MISSING
        if -len(node) <= index < len(node):
            return node[index]
    return _MISSING


def render_value(value: Any) -> str:
    """Strings as-is, every other JSON node in its compact JSON encoding."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def unpack_tags(tags: Iterable[Any]) -> Dict[str, str]:
    """Turn ``["k:v", "flag"]`` into ``{"k": "v", "flag": ""}``.

    Split on the first colon only; the first occurrence of a key wins.
    """
    unpacked: Dict[str, str] = {}
    for tag in tags:
        if not isinstance(tag, str):
            continue
        key, _, value = tag.partition(":")
        unpacked.setdefault(key, value)
    return unpacked


def unpack_event_tags(event: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``event`` whose ``attributes.tags`` list is a mapping."""
    attributes = event.get("attributes")
    if not isinstance(attributes, dict) or not isinstance(attributes.get("tags"), list):
        return event
    return {
        **event,
        "attributes": {**attributes, "tags": unpack_tags(attributes["tags"])},
    }
