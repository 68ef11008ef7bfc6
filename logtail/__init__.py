"""
logtail – continuously re-emit remote log search results to local files or stdout.
"""

__version__ = "0.3.0"

from .errors import (  # noqa: E402
    ConfigError,
    FatalQueryError,
    InvalidWindow,
    LogTailError,
    PaginationOverflow,
    PartitionWriteError,
    QueryError,
    TransientQueryError,
)
from .models import LogEvent, SearchPage, StructuredFormat, TailResult, TemplateFormat, TimeWindow  # noqa: E402
from .tail_loop import TailLoop, TailState  # noqa: E402

__all__ = [
    "ConfigError",
    "FatalQueryError",
    "InvalidWindow",
    "LogEvent",
    "LogTailError",
    "PaginationOverflow",
    "PartitionWriteError",
    "QueryError",
    "SearchPage",
    "StructuredFormat",
    "TailLoop",
    "TailResult",
    "TailState",
    "TemplateFormat",
    "TimeWindow",
    "TransientQueryError",
]
