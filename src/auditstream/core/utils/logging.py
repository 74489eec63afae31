"""
Structured logging utilities.

Provides logging setup plus a context manager for timed operation logging
with error tracking and metadata.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from collections.abc import Callable  # noqa: TCH003
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from auditstream.core.config.logging_config import LoggingConfig

logger = structlog.get_logger(__name__)


def configure_logging(logging_config: LoggingConfig) -> None:
    """
    Configure stdlib logging and route structlog through it.

    Args:
        logging_config: Level, format and optional file path.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if logging_config.file_path:
        handlers.append(logging.FileHandler(logging_config.file_path, encoding="utf-8"))

    logging.basicConfig(
        level=logging_config.level.upper(),
        format=logging_config.format,
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def log_operation(
    operation: str,
    subject_ids: dict[str, str] | None = None,
    **context: Any,
) -> Any:  # AsyncGenerator[None, None]
    """
    Context manager for structured operation logging.

    Logs operation start, completion, and errors with timing information.

    Args:
        operation: Name of the operation being performed
        subject_ids: Dictionary of subject identifiers (e.g., {"channel": "auth"})
        **context: Additional context to include in logs

    Example:
        async with log_operation("event_stream", channel="auth", client=host):
            async for chunk in stream:
                ...
    """
    start_time = time.time()
    log_context = {
        "operation": operation,
        **(subject_ids or {}),
        **context,
    }

    logger.info(f"Starting {operation}", **log_context)

    try:
        yield
    except (asyncio.CancelledError, GeneratorExit):
        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(f"{operation} cancelled after {latency_ms}ms", **log_context, latency_ms=latency_ms)
        raise
    except Exception as e:
        latency_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"{operation} failed after {latency_ms}ms",
            **log_context,
            error=str(e),
            latency_ms=latency_ms,
            exc_info=True,
        )
        raise
    else:
        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(f"{operation} completed in {latency_ms}ms", **log_context, latency_ms=latency_ms)


def log_structured(
    logger_obj: Any,
    event: str,
    level: str = "info",
    **context: Any,
) -> None:
    """
    Lightweight structured logging helper.

    Args:
        logger_obj: structlog or stdlib logger instance to use.
        event: Event/operation name.
        level: Logging level (info|warning|error).
        **context: Arbitrary key/value metadata.
    """
    log_fn: Callable[..., Any] = getattr(logger_obj, level, logger_obj.info)
    if isinstance(logger_obj, logging.Logger):
        log_fn(event, extra=context)
    else:
        log_fn(event, **context)
