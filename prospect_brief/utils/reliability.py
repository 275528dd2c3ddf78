"""
Reliability patterns for prospect-brief.

Remote tool calls get a bounded number of attempts with linear backoff. When
the attempts run out the failure becomes an ``{"error": ...}`` value so one
unavailable data source degrades its own section of the payload instead of
aborting the whole analysis.
"""

import asyncio
import inspect
import logging
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional, Protocol

import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_incrementing,
)

logger = structlog.get_logger(__name__)


class ToolClient(Protocol):
    """Anything that can invoke a named remote tool."""

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Any: ...


async def call_tool_with_retry(
    client: ToolClient,
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
    retries: int = 2,
    backoff_seconds: float = 0.4,
) -> Any:
    """
    Call a remote tool, retrying failures with linear backoff.

    Args:
        client: Tool client to invoke
        name: Remote tool name
        arguments: Tool arguments
        retries: Extra attempts after the first one
        backoff_seconds: Wait before retry ``n`` is ``n * backoff_seconds``

    Returns:
        The tool payload, or ``{"error": message}`` once attempts are exhausted
    """
    arguments = arguments or {}
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(0, retries) + 1),
        wait=wait_incrementing(start=backoff_seconds, increment=backoff_seconds),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                return await client.call_tool(name, arguments)
    except Exception as e:  # noqa: BLE001
        error = str(e) or type(e).__name__

    logger.warning("tool_call_failed", tool=name, attempts=retries + 1, error=error)
    return {"error": error}


async def pause(seconds: float) -> None:
    """Fixed pause between sequential tool calls."""
    if seconds > 0:
        await asyncio.sleep(seconds)


def track_performance(operation_name: str):
    """
    Decorator to track performance metrics for operations.

    Works for plain functions and coroutine functions.

    Args:
        operation_name: Name of the operation for logging
    """

    def decorator(func: Callable) -> Callable:
        def _started() -> float:
            start_time = time.time()
            logger.debug("operation_started", operation=operation_name)
            return start_time

        def _finished(start_time: float, error: Optional[Exception] = None) -> None:
            duration = round(time.time() - start_time, 3)
            if error is None:
                logger.info(
                    "operation_completed",
                    operation=operation_name,
                    duration_seconds=duration,
                    status="success",
                )
            else:
                logger.error(
                    "operation_failed",
                    operation=operation_name,
                    duration_seconds=duration,
                    status="failed",
                    error=str(error),
                    error_type=type(error).__name__,
                )

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = _started()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _finished(start_time, e)
                    raise
                _finished(start_time)
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = _started()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _finished(start_time, e)
                raise
            _finished(start_time)
            return result

        return wrapper

    return decorator
