"""Structured logging for modsync.

Everything logs through ``structlog.get_logger(__name__)`` and ends up in the
standard library ``logging`` tree, so levels, handlers and per-component
filtering are plain ``logging`` configuration.

Verbosity, most to least quiet:
- INFO (20): Run start/end and phase boundaries (default)
- VERBOSE (15): One line per plan entry
- DEBUG (10): Individual renames, deletes, writes and downloads
- TRACE (5): Everything

Run-scoped fields (session id, instance path) are carried in structlog's
contextvars and merged into every event by ``merge_contextvars``.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, reset_contextvars

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Only loggers under this package are affected by --log-filter
_PACKAGE_MARKER = "modsync"


class LogContext:
    """
    Bind fields to every log event emitted inside the block.

    Nested contexts override outer values and restore them on exit.

    Usage:
        with LogContext(session_id="3f2a91c0", instance="/games/pack"):
            logger.info("Starting update")
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = bind_contextvars(**self.fields)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        reset_contextvars(**self._tokens)
        self._tokens = {}


def get_log_level(level: str) -> int:
    """
    Translate a level name into its numeric value.

    Unknown names fall back to INFO.
    """
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def _build_handlers(log_file: str | Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    return handlers


def _mute_other_components(log_filter: str) -> None:
    """Raise every package logger not named in ``log_filter`` to WARNING."""
    wanted = [part.strip() for part in log_filter.split(",") if part.strip()]
    for name in list(logging.root.manager.loggerDict):
        if _PACKAGE_MARKER not in name:
            continue
        if not any(component in name for component in wanted):
            logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
    log_filter: str | None = None,
) -> None:
    """
    Configure structlog and the standard library root logger.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        level: TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR or CRITICAL
        json_logs: Render one JSON object per line instead of console output
        log_file: Also write to this file (parent directories are created)
        log_filter: Comma-separated component names to keep below WARNING,
            e.g. "reconciler,fetcher"
    """
    numeric_level = get_log_level(level)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=_build_handlers(log_file),
        force=True,
    )
    logging.getLogger().setLevel(numeric_level)

    if log_filter:
        _mute_other_components(log_filter)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
