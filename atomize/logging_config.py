"""
Logging for the atomize CLI and library.

Everything goes to stderr: stdout belongs to the CLI's JSON result. The
default level is WARNING so a normal run prints only the JSON; each -v on
the command line lowers it one step (INFO, then DEBUG). ATOMIZE_LOG_LEVEL
and ATOMIZE_LOG_FORMAT=json override from the environment.

HTTP client chatter from the LLM providers stays at WARNING unless the
level is DEBUG. Every event carries app="atomize" so lines stay
attributable when a caller embeds the library.

Usage:
    from atomize.logging_config import get_logger, setup_logging

    setup_logging(verbosity_to_level(args.verbose))
    logger = get_logger(__name__)
    logger.info(f"Created task {task.id}")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

APP_NAME = "atomize"
DEFAULT_LEVEL = "WARNING"
LEVEL_ENV = "ATOMIZE_LOG_LEVEL"
FORMAT_ENV = "ATOMIZE_LOG_FORMAT"

# Loggers of the HTTP stacks under the LLM providers
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "urllib3")

VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")


def verbosity_to_level(verbose: int) -> str | None:
    """Map a -v count to a level name; None when no flag was given."""
    if verbose <= 0:
        return None
    return VERBOSITY_LEVELS[min(verbose, len(VERBOSITY_LEVELS) - 1)]


def add_app_name(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def setup_logging(level: str | None = None, json_output: bool | None = None) -> int:
    """
    Configure structlog over stdlib logging on stderr.

    An explicit level wins over ATOMIZE_LOG_LEVEL. Returns the numeric
    level applied to the root logger.
    """
    if level is None:
        level = os.environ.get(LEVEL_ENV, DEFAULT_LEVEL)

    if json_output is None:
        json_output = os.environ.get(FORMAT_ENV, "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_app_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    quiet_level = logging.NOTSET if numeric_level <= logging.DEBUG else max(numeric_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    return numeric_level


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["get_logger", "setup_logging", "verbosity_to_level"]
