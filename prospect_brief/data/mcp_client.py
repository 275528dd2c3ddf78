"""
MCP tool client over the streamable-HTTP transport.

One client session is opened per analysis and closed when the analysis is
done; tool calls on it are issued one at a time.
"""

from __future__ import annotations

import json
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from ..core.exceptions import ConfigurationError, ToolCallError

logger = structlog.get_logger(__name__)


def _text_content(result: Any) -> str:
    parts = []
    for item in getattr(result, "content", None) or []:
        text = getattr(item, "text", None)
        if isinstance(text, str):
            parts.append(text)
    return "\n".join(parts)


def decode_tool_result(name: str, result: Any) -> Any:
    """
    Payload of a ``CallToolResult``.

    Structured content when the server sends it, otherwise JSON parsed from
    the text content, otherwise the raw text under ``text``.
    """
    if getattr(result, "isError", False):
        raise ToolCallError(name, _text_content(result) or "tool reported an error")

    structured = getattr(result, "structuredContent", None)
    if structured is not None:
        return structured

    text = _text_content(result)
    try:
        return json.loads(text)
    except ValueError:
        return {"text": text}


class MCPToolClient:
    """Async context manager wrapping an MCP ``ClientSession``."""

    def __init__(self, url: Optional[str], timeout_seconds: float = 30.0):
        if not url:
            raise ConfigurationError("HG_MCP_URL is not set")
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None

    async def __aenter__(self) -> "MCPToolClient":
        self._stack = AsyncExitStack()
        try:
            read, write, _ = await self._stack.enter_async_context(
                streamablehttp_client(self.url, timeout=timedelta(seconds=self.timeout_seconds))
            )
            self._session = await self._stack.enter_async_context(ClientSession(read, write))
            await self._session.initialize()
        except BaseException:
            await self._stack.aclose()
            raise
        logger.debug("mcp_session_opened", url=self.url)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        stack, self._stack, self._session = self._stack, None, None
        if stack is None:
            return
        try:
            await stack.aclose()
        except Exception as e:  # noqa: BLE001
            # Closing is best effort once the analysis has its data
            logger.debug("mcp_session_close_failed", error=str(e))

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ToolCallError("session", "MCP session is not open")
        return self._session

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        result = await self._require_session().call_tool(name, arguments=arguments)
        return decode_tool_result(name, result)

    async def list_tools(self) -> List[str]:
        listing = await self._require_session().list_tools()
        return [tool.name for tool in listing.tools]
