# Structured logging with per-commit correlation IDs

import logging
import os
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

# Context variable for the correlation ID of the running commit
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> str:
    """Get or create correlation ID for the current context"""
    corr_id = correlation_id_ctx.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        correlation_id_ctx.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: Optional[str]) -> None:
    """Set (or reset with None) the correlation ID for the current context"""
    correlation_id_ctx.set(corr_id)


def new_correlation_id() -> str:
    """Start a fresh correlation ID, e.g. at the beginning of a commit"""
    corr_id = str(uuid.uuid4())
    correlation_id_ctx.set(corr_id)
    return corr_id


def add_correlation_id(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add correlation ID to log event"""
    corr_id = correlation_id_ctx.get()
    if corr_id:
        event_dict["correlation_id"] = corr_id
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Setup structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines; False renders a console format

    Note:
        When CLOUDSEARCH_INDEXER_LOG_STDERR=1, log lines go to stderr so a
        host that owns stdout keeps it clean.
    """
    stream = sys.stderr if os.environ.get("CLOUDSEARCH_INDEXER_LOG_STDERR") else sys.stdout
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, log_level.upper()),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_correlation_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)
