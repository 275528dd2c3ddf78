"""
Structured logging configuration for prospect-brief.

Console output goes through rich in development and JSON lines otherwise.

The correlation id lives in a context variable and is bound into structlog's
context, so every event of one analysis carries it and concurrent analyses
(one task each) never see each other's id.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Tag the current task's log events with a correlation id.

    Generates a fresh id when none is given. Only the calling task and tasks
    it spawns afterwards see the new value.
    """
    value = correlation_id or new_correlation_id()
    _correlation_id.set(value)
    structlog.contextvars.bind_contextvars(correlation_id=value)
    return value


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)
    structlog.contextvars.unbind_contextvars("correlation_id")


def setup_logging(debug: bool = False, rich_output: bool = True) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        debug: Enable debug level logging
        rich_output: Rich console rendering; JSON lines when False
    """
    level = logging.DEBUG if debug else logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.set_exc_info,
    ]

    if rich_output:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True, exception_formatter=structlog.dev.rich_traceback
            )
        )
        handler: logging.Handler = RichHandler(console=Console(stderr=True), show_path=False)
    else:
        processors.append(structlog.processors.JSONRenderer())
        handler = logging.StreamHandler(sys.stderr)

    # Third-party libraries (httpx, mcp, uvicorn) log through stdlib
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)

    # stdout is reserved for command output
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
