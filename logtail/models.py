"""
Core data models for the tailing engine.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from .fieldpath import unpack_event_tags

_DATETIME = TypeAdapter(datetime)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 string (or epoch number) into a UTC datetime."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return as_utc(_DATETIME.validate_python(value))
    except ValidationError:
        return None


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class LogEvent(BaseModel):
    """One decoded search hit. ``body`` is the full event, tags unpacked."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: Optional[datetime] = None
    body: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "LogEvent":
        body = unpack_event_tags(raw)
        attributes = body.get("attributes")
        ts = parse_instant(attributes.get("timestamp")) if isinstance(attributes, dict) else None
        return cls(id=raw["id"], timestamp=ts, body=body)


class TimeWindow(BaseModel):
    """Half-open time range ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _ordered(self) -> "TimeWindow":
        if self.start > self.end:
            raise ValueError(f"window start {self.start.isoformat()} is after end {self.end.isoformat()}")
        return self

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


class RateLimitStatus(BaseModel):
    """Values of the ``x-ratelimit-*`` response headers."""

    model_config = ConfigDict(frozen=True)

    limit: Optional[int] = None
    period: Optional[float] = None
    remaining: Optional[int] = None
    reset: Optional[float] = None

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0


class SearchPage(BaseModel):
    """One page of search results plus the cursor for the next one."""

    model_config = ConfigDict(frozen=True)

    events: List[LogEvent] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    rate_limit: Optional[RateLimitStatus] = None


# --------------------------------------------------------------------------- #
# Output formats

DEFAULT_TEMPLATE = ("attributes.timestamp", "attributes.status", "attributes.message")


class StructuredFormat(BaseModel):
    """Whole event as one line of JSON."""

    model_config = ConfigDict(frozen=True)


class TemplateFormat(BaseModel):
    """Selected fields, space separated, in the listed order."""

    model_config = ConfigDict(frozen=True)

    paths: List[str] = Field(default_factory=lambda: list(DEFAULT_TEMPLATE))

    @field_validator("paths")
    @classmethod
    def _default_when_empty(cls, value: List[str]) -> List[str]:
        return value or list(DEFAULT_TEMPLATE)


FormatSpec = Union[StructuredFormat, TemplateFormat]


class TailResult(BaseModel):
    """Outcome of a :class:`~logtail.tail_loop.TailLoop` run."""

    ok: bool = True
    cycles: int = 0
    events_written: int = 0
    duplicates_dropped: int = 0
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
