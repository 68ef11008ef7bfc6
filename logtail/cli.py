"""
Command line entry point: ``logtail QUERY [options]``.

Tail Datadog logs to files (one per split-key value) or to stdout.
Credentials are read from ``DD_API_KEY`` / ``DD_APP_KEY`` (a local ``.env``
file is honoured).  Logging goes to stderr so stdout stays clean in
``--output-mode stdout``.
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from . import __version__
from .config import TailConfig, load_config
from .errors import ConfigError
from .fieldpath import FieldPath
from .formatter import Formatter, load_format_file
from .interfaces import QueryClient
from .models import StructuredFormat, TailResult, parse_instant
from .paginator import Paginator
from .plugins.datadog import DatadogLogsClient
from .router import PartitionRouter
from .sink_manager import SinkManager
from .tail_loop import TailLoop

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def _rfc3339(value: str):
    instant = parse_instant(value)
    if instant is None:
        raise argparse.ArgumentTypeError(f"not an RFC 3339 timestamp: {value!r}")
    return instant


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="logtail", description="Tail datadog logs to files, or stdout")
    p.add_argument("query", help='query string, as used in the UI, e.g. "service:my-service"')
    p.add_argument("-d", "--domain", help="API domain (default: api.datadoghq.eu)")
    p.add_argument(
        "-o",
        "--output-mode",
        choices=("file", "stdout"),
        help="file: partition events into files by --split-key; stdout: write everything to stdout",
    )
    p.add_argument(
        "-k",
        "--split-key",
        help="field path used to partition events into files, e.g. attributes.tags.pod_name "
        "(tags are unpacked into a mapping)",
    )
    p.add_argument("-f", "--default-output", help="file for events without the split key (default: output.log)")
    p.add_argument("--output-dir", type=Path, help="directory output files are created in")
    p.add_argument("--format-file", type=Path, help="newline separated field paths to print, space joined")
    p.add_argument(
        "-s", "--structured", action="store_true", default=None, help="write each event as one line of JSON"
    )
    p.add_argument(
        "-H",
        "--history",
        dest="history_seconds",
        type=int,
        help="seconds of history to start tailing from (default: 60); with --from, the width of the search",
    )
    p.add_argument(
        "-t",
        "--from",
        dest="from_timestamp",
        type=_rfc3339,
        help='search once from this RFC 3339 instant instead of tailing, e.g. "2021-01-01T00:00:00Z"',
    )
    p.add_argument("--poll-interval", type=float, help="seconds to sleep between polls (default: 5)")
    p.add_argument("--config", type=Path, help="YAML file with default option values")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_args(argv: Optional[List[str]] = None):
    """Return ``(overrides, config_path)`` from the command line."""
    ns = build_parser().parse_args(argv)
    overrides: Dict[str, Any] = {
        k: v for k, v in vars(ns).items() if k not in ("config", "verbose") and v is not None
    }
    if ns.verbose:
        overrides["log_level"] = "DEBUG"
    return overrides, ns.config


def setup_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


# ---------------------------------------------- #
def build_client(config: TailConfig) -> DatadogLogsClient:
    return DatadogLogsClient(
        domain=config.domain,
        api_key=config.api_key.get_secret_value(),
        app_key=config.app_key.get_secret_value(),
        page_limit=config.page_limit,
        timeout=config.request_timeout,
    )


def build_loop(config: TailConfig, client: QueryClient, *, stream: Optional[TextIO] = None) -> TailLoop:
    """Wire the engine together from an immutable configuration."""
    try:
        spec = StructuredFormat() if config.structured else load_format_file(config.format_file)
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot load format file {config.format_file}: {e}") from e

    if config.output_mode == "stdout":
        router = PartitionRouter.for_stream()
    else:
        key = FieldPath.parse(config.split_key) if config.split_key else None
        router = PartitionRouter(key, config.default_output)

    paginator = Paginator(
        client,
        max_pages=config.max_pages,
        max_attempts=config.max_attempts,
        base_delay=config.base_delay,
        max_delay=config.max_delay,
    )
    return TailLoop(
        query=config.query,
        paginator=paginator,
        router=router,
        formatter=Formatter(spec),
        sinks=SinkManager(config.output_mode, output_dir=config.output_dir, stream=stream),
        history=timedelta(seconds=config.history_seconds),
        from_timestamp=config.from_timestamp,
        poll_interval=config.poll_interval,
        overlap=timedelta(seconds=config.overlap_seconds),
    )


def _install_signal_handlers(tail: TailLoop) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, tail.stop)
        except (NotImplementedError, RuntimeError):
            # e.g. Windows event loops, or not running in the main thread
            logger.debug("Cannot install handler for %s", sig)


async def run_tail(config: TailConfig) -> TailResult:
    async with build_client(config) as client:
        tail = build_loop(config, client)
        _install_signal_handlers(tail)
        return await tail.run()


def main(argv: Optional[List[str]] = None) -> int:
    overrides, config_path = parse_args(argv)
    try:
        config = load_config(overrides, config_path=config_path)
    except ConfigError as e:
        print(f"error [config]: {e}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(config.log_level)
    logger.info(
        "Starting logtail – query=%r domain=%s mode=%s",
        config.query,
        config.domain,
        "one-shot" if config.one_shot else "tailing",
    )

    try:
        result = asyncio.run(run_tail(config))
    except ConfigError as e:
        print(f"error [config]: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_OK

    if not result.ok:
        print(f"error [{result.error_kind}]: {result.error_message}", file=sys.stderr)
        return EXIT_FATAL
    return EXIT_OK


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())
