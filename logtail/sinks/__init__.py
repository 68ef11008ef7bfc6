"""Output destinations."""

from .file_sink import FileSink  # noqa: F401
from .stream_sink import StreamSink  # noqa: F401
