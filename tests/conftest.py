"""Configure pytest fixtures and environment for prospect-brief tests."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from prospect_brief.core import config as config_module
from prospect_brief.core.config import (
    CompactionConfig,
    LLMConfig,
    MCPConfig,
    ResolverConfig,
    ServerConfig,
    Settings,
)
from prospect_brief.core.exceptions import ToolCallError
from prospect_brief.core.logging import clear_correlation_id

from tests.sample_data import TOOL_RESPONSES

ENV_VARS = (
    "HG_MCP_URL",
    "LLM_API_URL",
    "LLM_API_KEY",
    "LLM_MODEL",
    "LLM_INPUT_COST_PER_1K",
    "LLM_OUTPUT_COST_PER_1K",
    "TOOL_RETRIES",
    "DOMAIN_PUBLIC_SUFFIX",
    "DEBUG",
)


class FakeToolClient:
    """
    In-memory tool client.

    ``responses`` maps tool names to payloads (or callables taking the
    arguments). ``failures`` maps tool names to how many calls fail before
    succeeding; a negative count fails forever.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        failures: Optional[Dict[str, int]] = None,
    ):
        self.responses = dict(responses or {})
        self.failures = dict(failures or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        self.calls.append((name, dict(arguments)))
        remaining = self.failures.get(name, 0)
        if remaining:
            if remaining > 0:
                self.failures[name] = remaining - 1
            raise ToolCallError(name, "upstream unavailable")
        response = self.responses.get(name, {})
        return response(arguments) if callable(response) else response

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def arguments_for(self, name: str) -> List[Dict[str, Any]]:
        return [args for called, args in self.calls if called == name]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep real environment variables and the settings singleton out of tests."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config_module, "settings", None)
    yield
    clear_correlation_id()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with no pauses or backoff and a dummy tool server URL."""
    return Settings(
        mcp=MCPConfig(
            url="http://mcp.test/mcp",
            tool_retries=2,
            retry_backoff_seconds=0,
            tool_pause_seconds=0,
            catalog_pause_seconds=0,
        ),
        llm=LLMConfig(api_url=None, api_key=None, model=None),
        compaction=CompactionConfig(),
        resolver=ResolverConfig(),
        server=ServerConfig(),
    )


@pytest.fixture
def tool_client() -> FakeToolClient:
    return FakeToolClient(TOOL_RESPONSES)


@pytest.fixture
def make_tool_client():
    """Factory for tool clients with custom responses and failures."""
    return FakeToolClient
