"""Structured logging setup using structlog.

The parsing core itself never configures logging; it only emits events
through ``structlog.get_logger()``.  Host processes (and the CLI) call
:func:`setup_logging` once at start-up.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

from .config import LoggingConfig

HANDLER_NAME = "umbrella_mime"

_PRE_CHAIN: tuple[Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
)


def build_formatter(use_json: bool) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering JSON lines, or coloured console output."""
    renderer: Processor = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def _install(handler: logging.Handler, level: str) -> None:
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    json: bool | None = None,
    level: str | None = None,
) -> logging.Handler:
    """Configure structlog and attach one stderr handler to the root logger.

    Parameters
    ----------
    config:
        Settings to read defaults from; a fresh :class:`LoggingConfig`
        (environment-driven) when omitted.
    json:
        Overrides ``config.json_output``.
    level:
        Overrides ``config.level`` (e.g. ``"DEBUG"``; case-insensitive).

    Calling it again swaps the previously installed handler; handlers
    added by the host application are left alone.  Returns the new handler.
    """
    config = config or LoggingConfig()
    use_json = config.json_output if json is None else json

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stderr keeps stdout free for the CLI's JSON output
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(build_formatter(use_json))
    _install(handler, (level or config.level).upper())
    return handler
