"""Structured logging setup for choomd."""

import logging
import os
import sys

import structlog

LOG_LEVEL_ENV = "CHOOMD_LOG_LEVEL"
LOG_FORMATS = ("console", "json")


def resolve_level(level_name: str | None = None) -> int:
    """Resolve a level name, falling back to ``CHOOMD_LOG_LEVEL`` and then INFO."""
    if not level_name:
        level_name = os.getenv(LOG_LEVEL_ENV) or "INFO"
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level_name: str | None = None, log_format: str = "console") -> None:
    """
    Route structlog through the standard library logging to stderr.

    Args:
        level_name: DEBUG, INFO, WARNING or ERROR. Defaults to the
            environment, then INFO.
        log_format: ``console`` for human readable lines, ``json`` for one
            JSON object per line.
    """
    level = resolve_level(level_name)
    logging.basicConfig(
        handlers=[logging.StreamHandler(sys.stderr)],
        level=level,
        format="%(message)s",
        force=True,
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
