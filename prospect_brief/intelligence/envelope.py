"""Tool-result envelope unwrapping and error passthrough."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, Mapping


def error_payload(message: Any) -> Dict[str, Any]:
    """Canonical failure value propagated in place of a payload."""
    return {"error": message}


def is_error(value: Any) -> bool:
    """True when ``value`` is an error payload."""
    return isinstance(value, Mapping) and bool(value.get("error"))


def unwrap_tool(value: Any) -> Any:
    """
    Strip the tool-result envelope down to the substantive payload.

    Non-mappings are returned as-is. A mapping with an ``error`` collapses to
    ``{"error": ...}`` and drops everything else. Otherwise ``structuredContent``
    wins over ``data``, which wins over the value itself.
    """
    if not isinstance(value, Mapping) or not value:
        return value
    if value.get("error"):
        return error_payload(value["error"])
    if value.get("structuredContent"):
        return value["structuredContent"]
    if value.get("data"):
        return value["data"]
    return value


def compactor(func: Callable) -> Callable:
    """
    Unwrap the raw payload passed as first argument and short-circuit errors.

    The wrapped function only ever sees unwrapped, non-error payloads.
    """

    @wraps(func)
    def wrapper(raw: Any, *args, **kwargs):
        payload = unwrap_tool(raw)
        if is_error(payload):
            return payload
        return func(payload, *args, **kwargs)

    return wrapper
