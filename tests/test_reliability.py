"""
Test suite for reliability patterns and error handling.

Validates bounded tool-call retries, error values and performance tracking.
"""

import asyncio
import time

import pytest

from prospect_brief.utils.reliability import call_tool_with_retry, pause, track_performance


def call(client, name="company_fai", arguments=None, **kwargs):
    kwargs.setdefault("backoff_seconds", 0)
    return asyncio.run(call_tool_with_retry(client, name, arguments, **kwargs))


class TestCallToolWithRetry:
    """Test retry behaviour of remote tool calls."""

    def test_success_first_try(self, make_tool_client):
        client = make_tool_client({"company_fai": {"departments": []}})
        assert call(client, arguments={"companyDomain": "acme.com"}) == {"departments": []}
        assert client.calls == [("company_fai", {"companyDomain": "acme.com"})]

    def test_recovers_after_failures(self, make_tool_client):
        client = make_tool_client({"company_fai": {"ok": True}}, failures={"company_fai": 2})
        assert call(client, retries=2) == {"ok": True}
        assert len(client.calls) == 3

    def test_exhaustion_returns_error_value(self, make_tool_client):
        client = make_tool_client(failures={"company_fai": -1})
        result = call(client, retries=2)

        assert result == {"error": "company_fai: upstream unavailable"}
        assert len(client.calls) == 3

    def test_zero_retries_single_attempt(self, make_tool_client):
        client = make_tool_client(failures={"company_fai": -1})
        assert "error" in call(client, retries=0)
        assert len(client.calls) == 1

    def test_missing_arguments_default_to_empty(self, make_tool_client):
        client = make_tool_client()
        call(client, name="list_vendors")
        assert client.calls == [("list_vendors", {})]

    def test_exception_without_message_uses_type_name(self):
        class Broken:
            async def call_tool(self, name, arguments):
                raise TimeoutError()

        assert call(Broken(), retries=0) == {"error": "TimeoutError"}

    def test_linear_backoff(self, make_tool_client):
        client = make_tool_client(failures={"company_fai": -1})

        started = time.monotonic()
        call(client, retries=2, backoff_seconds=0.05)

        # waits of 0.05 then 0.10
        assert time.monotonic() - started >= 0.12


class TestPause:
    def test_pause(self):
        started = time.monotonic()
        asyncio.run(pause(0.05))
        assert time.monotonic() - started >= 0.04

    def test_non_positive_pause_returns(self):
        asyncio.run(pause(0))
        asyncio.run(pause(-1))


class TestPerformanceTracking:
    def test_sync_function(self):
        @track_performance("sync_op")
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    def test_async_function(self):
        @track_performance("async_op")
        async def double(x):
            return x * 2

        assert asyncio.run(double(4)) == 8

    def test_errors_propagate(self):
        @track_performance("failing_op")
        async def fail():
            raise ValueError("nope")

        with pytest.raises(ValueError):
            asyncio.run(fail())
