"""OpenAI-compatible chat-completions helper with usage and cost logging."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

import requests
import structlog

from ..core.config import LLMConfig
from ..intelligence.coalesce import as_number, dig, first_list, first_present

logger = structlog.get_logger(__name__)

NOT_CONFIGURED = "LLM not configured. Set LLM_API_URL, LLM_API_KEY, and LLM_MODEL."


@dataclass
class LLMUsage:
    """Token counts and cost for one completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: Optional[float] = None
    cost_source: str = "unknown"  # provider|configured|unknown

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _reported_cost(usage: Mapping[str, Any]) -> Optional[float]:
    cost = as_number(first_present(usage, "total_cost", "totalCost", "cost"), None)
    return None if cost is None else float(cost)


def estimate_llm_cost(
    usage: Optional[Mapping[str, Any]],
    input_cost_per_1k: Optional[float] = None,
    output_cost_per_1k: Optional[float] = None,
) -> Optional[LLMUsage]:
    """
    Token counts plus the best available cost figure.

    Provider-reported cost wins; otherwise the configured per-1K prices are
    applied; otherwise the cost is unknown. Returns None without usage data.
    """
    if not isinstance(usage, Mapping):
        return None

    prompt = int(as_number(first_present(usage, "prompt_tokens", "input_tokens")))
    completion = int(as_number(first_present(usage, "completion_tokens", "output_tokens")))
    total = int(as_number(usage.get("total_tokens"), prompt + completion))
    result = LLMUsage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)

    reported = _reported_cost(usage)
    if reported is not None:
        result.cost_usd, result.cost_source = reported, "provider"
    elif input_cost_per_1k or output_cost_per_1k:
        result.cost_usd = (prompt / 1000) * (input_cost_per_1k or 0) + (completion / 1000) * (
            output_cost_per_1k or 0
        )
        result.cost_source = "configured"
    return result


def _completion_text(data: Any) -> str:
    choices = first_list(data, "choices")
    choice = choices[0] if choices else None
    return (
        dig(choice, "message", "content")
        or first_present(choice, "text")
        or first_present(data, "output_text")
        or ""
    )


class LLMClient:
    """Posts chat completions to a configured OpenAI-compatible endpoint."""

    def __init__(self, config: Optional[LLMConfig] = None, session: Optional[Any] = None):
        self.config = config or LLMConfig()
        self._http = session or requests

    @property
    def model(self) -> Optional[str]:
        return self.config.model

    def complete(self, prompt: str) -> Dict[str, Any]:
        """
        Run one completion.

        Returns ``{"content": text}`` or ``{"error": message}``.
        """
        if not self.config.configured:
            return {"error": NOT_CONFIGURED}

        body = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": self.config.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
        }
        try:
            response = self._http.post(
                self.config.api_url,
                json=body,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("llm_request_failed", error=str(e))
            return {"error": f"LLM request failed: {e}"}

        if not response.ok:
            logger.warning("llm_request_failed", status_code=response.status_code)
            return {"error": f"LLM request failed: {response.text}"}

        try:
            data = response.json()
        except ValueError:
            return {"error": "LLM response was not valid JSON."}

        self._log_usage(dig(data, "usage"))
        return {"content": _completion_text(data)}

    def _log_usage(self, usage: Any) -> None:
        estimate = estimate_llm_cost(
            usage, self.config.input_cost_per_1k, self.config.output_cost_per_1k
        )
        if estimate is None:
            logger.info("llm_usage", model=self.model, cost="n/a (missing usage data)")
            return
        logger.info("llm_usage", model=self.model, **estimate.to_dict())
