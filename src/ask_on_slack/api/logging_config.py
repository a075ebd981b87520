"""Logging set-up for the CLI entry points.

stdout carries the MCP stdio stream, so logs go to stderr or, when a log
file is given, are appended to that file instead.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

import structlog

from ask_on_slack.core.domain.errors import ConfigError


def _configure_structlog(level: int, sink: TextIO) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sink.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sink),
        cache_logger_on_first_use=False,
    )


@contextmanager
def configure_logging(level: str = "INFO", log_file: str | None = None) -> Iterator[None]:
    """Route structlog and stdlib logging to stderr or ``log_file``.

    The file is opened on enter and closed on every exit path.

    Raises:
        ConfigError: The log file cannot be opened.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if log_file:
        try:
            sink: TextIO = open(log_file, "a", encoding="utf-8", buffering=1)
        except OSError as exc:
            raise ConfigError(f"Failed to create log file {log_file}: {exc}") from exc
    else:
        sink = sys.stderr

    handler = logging.StreamHandler(sink)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(numeric_level)
    _configure_structlog(numeric_level, sink)

    logger = structlog.get_logger()
    if log_file:
        logger.info("logging.file_configured", log_file=log_file)
    logger.info("logging.level_configured", level=level.upper())
    try:
        yield
    finally:
        root.removeHandler(handler)
        root.setLevel(previous_level)
        handler.flush()
        _configure_structlog(numeric_level, sys.stderr)
        if log_file:
            sink.close()
