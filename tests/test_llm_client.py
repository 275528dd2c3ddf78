"""Tests for the chat-completion client and cost estimation."""

from unittest.mock import Mock, patch

import pytest
import requests

from prospect_brief.core.config import LLMConfig
from prospect_brief.data.llm_client import NOT_CONFIGURED, LLMClient, estimate_llm_cost


@pytest.fixture
def llm_config():
    return LLMConfig(
        api_url="https://llm.test/v1/chat/completions",
        api_key="sk-test",
        model="brief-model",
    )


def _response(status_code=200, payload=None, text=""):
    response = Mock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload
    return response


class TestComplete:
    def test_not_configured(self):
        client = LLMClient(LLMConfig(api_url=None, api_key=None, model=None))
        with patch("requests.post") as post:
            assert client.complete("hi") == {"error": NOT_CONFIGURED}
        post.assert_not_called()

    def test_request_body(self, llm_config):
        payload = {"choices": [{"message": {"content": "{}"}}]}
        with patch("requests.post", return_value=_response(payload=payload)) as post:
            assert LLMClient(llm_config).complete("Describe Acme") == {"content": "{}"}

        args, kwargs = post.call_args
        assert args[0] == "https://llm.test/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"] == {
            "model": "brief-model",
            "messages": [
                {"role": "system", "content": "You are a senior B2B sales strategist."},
                {"role": "user", "content": "Describe Acme"},
            ],
            "temperature": 0.2,
        }

    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"choices": [{"text": "legacy"}]}, "legacy"),
            ({"output_text": "responses api"}, "responses api"),
            ({"choices": []}, ""),
            ({}, ""),
        ],
    )
    def test_content_fallbacks(self, llm_config, payload, expected):
        with patch("requests.post", return_value=_response(payload=payload)):
            assert LLMClient(llm_config).complete("x") == {"content": expected}

    def test_http_error(self, llm_config):
        with patch("requests.post", return_value=_response(500, text="upstream down")):
            assert LLMClient(llm_config).complete("x") == {
                "error": "LLM request failed: upstream down"
            }

    def test_transport_error(self, llm_config):
        with patch("requests.post", side_effect=requests.ConnectionError("refused")):
            assert LLMClient(llm_config).complete("x") == {"error": "LLM request failed: refused"}

    def test_invalid_json_body(self, llm_config):
        response = _response()
        response.json.side_effect = ValueError("not json")
        with patch("requests.post", return_value=response):
            assert "error" in LLMClient(llm_config).complete("x")


class TestEstimateCost:
    def test_missing_usage(self):
        assert estimate_llm_cost(None) is None

    def test_provider_cost_wins(self):
        usage = {"prompt_tokens": 1000, "completion_tokens": 500, "total_cost": "0.0123"}
        result = estimate_llm_cost(usage, 1.0, 2.0)

        assert result.total_tokens == 1500
        assert result.cost_usd == pytest.approx(0.0123)
        assert result.cost_source == "provider"

    def test_configured_prices(self):
        usage = {"input_tokens": 2000, "output_tokens": 1000, "total_tokens": 3100}
        result = estimate_llm_cost(usage, 0.5, 1.5)

        assert (result.prompt_tokens, result.completion_tokens) == (2000, 1000)
        assert result.total_tokens == 3100
        assert result.cost_usd == pytest.approx(2.5)
        assert result.cost_source == "configured"

    def test_unknown_cost(self):
        result = estimate_llm_cost({"prompt_tokens": 10, "completion_tokens": 5})
        assert result.cost_usd is None
        assert result.cost_source == "unknown"

    def test_unparseable_provider_cost_falls_back(self):
        result = estimate_llm_cost({"prompt_tokens": 1000, "cost": "n/a"}, 1.0, None)
        assert result.cost_usd == pytest.approx(1.0)
        assert result.cost_source == "configured"
