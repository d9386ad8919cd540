"""Structured logging configuration using structlog.

Provides JSON logging for production and human-readable text for development.
Each computation run gets a run ID so that its log lines can be correlated.
"""

import logging
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional
from uuid import uuid4

import structlog

from .config import Config, config

# Context variable for run ID (visible to worker threads via copied contexts)
run_id_ctx: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

# user:password@ section of a database URL
_URL_PASSWORD = re.compile(r"(://[^:/@]+:)[^@]+(@)")


def add_run_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add run_id from context to log event."""
    run_id = run_id_ctx.get()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def mask_sensitive_data(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask database passwords in log events."""
    for key in ["url", "db_connection_string", "event"]:
        value = event_dict.get(key)
        if isinstance(value, str) and "://" in value:
            event_dict[key] = _URL_PASSWORD.sub(r"\1***\2", value)
    return event_dict


def configure_logging(cfg: Optional[Config] = None) -> None:
    """Configure structlog with appropriate processors for environment.

    Uses JSON format for production (LOG_FORMAT=json) and
    human-readable text for development (LOG_FORMAT=text).

    Args:
        cfg: Config to read LOG_LEVEL/LOG_FORMAT from (global config if omitted)
    """
    cfg = cfg or config
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_run_id,
        mask_sensitive_data,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if cfg.log_format == "json":
        # JSON format for production - structured, machine-parseable
        renderers: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Text format for development - human-readable
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Plain logging.getLogger(__name__) calls in library modules go through
    # the same processor chain via the formatter
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )

    log_level = getattr(logging, cfg.log_level, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog BoundLogger
    """
    return structlog.get_logger(name)


@contextmanager
def run_context(run_id: Optional[str] = None) -> Iterator[str]:
    """Bind a run ID to every log line emitted inside the block.

    Args:
        run_id: Explicit run ID; a random one is generated if omitted

    Yields:
        The run ID in effect
    """
    run_id = run_id or uuid4().hex[:12]
    token = run_id_ctx.set(run_id)
    try:
        yield run_id
    finally:
        run_id_ctx.reset(token)


def get_run_id() -> Optional[str]:
    """Get the current run ID from context.

    Returns:
        Current run ID or None if not inside a run
    """
    return run_id_ctx.get()
