# src/terraform_buildkite/core/logging.py
"""Structured logging via structlog.

Console output is tuned for CI logs: level and event first, key=value
fields after, no timestamps (the CI agent adds its own).
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    *,
    stream: TextIO | None = None,
    colors: bool = True,
) -> None:
    """Configure the structlog pipeline for this process.

    Args:
        level: Minimum stdlib level number to emit
        stream: Destination for rendered lines (stdout by default)
        colors: Colourise console output
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a structlog logger, optionally bound to initial context."""
    if name is not None:
        initial_values.setdefault("logger", name)
    return structlog.get_logger(**initial_values)
