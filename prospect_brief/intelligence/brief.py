"""
Sales call brief generation from a compact company payload.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping, Optional

import structlog

from ..core.exceptions import LLMError
from ..data.llm_client import LLMClient
from ..utils.reliability import track_performance

logger = structlog.get_logger(__name__)

INVALID_JSON = "LLM response was not valid JSON."

BRIEF_PROMPT = """You will receive compact company data.
Return STRICTLY valid JSON (no markdown, no extra text), with EXACTLY this structure:
{
  "sales_thesis": {
    "primary_angle": "...",
    "why_now": "...",
    "business_impact": ["...", "..."]
  },
  "company_snapshot": {
    "what_matters_for_sales": ["...", "..."]
  },
  "key_pains_ranked": [
    {
      "pain": "...",
      "real_world_effect": "...",
      "sales_leverage": "..."
    }
  ],
  "challenger_talk_track": {
    "opening_statement": "...",
    "assumptions": ["...", "..."],
    "questions": ["...", "..."]
  },
  "recommended_next_step": {
    "positioning": "...",
    "format": "...",
    "outcome": "...",
    "why_it_converts": "..."
  },
  "product_recommendations": {
    "primary_fit": "...",
    "recommended_products": [
      {
        "product": "...",
        "vendor": "...",
        "category": "...",
        "why_fit": "...",
        "proof_points": ["..."]
      }
    ]
  }
}
RULES:
- Assertive, opinionated, closing-oriented tone (Challenger Sale).
- Forbidden words: "likely", "potential", "may".
- Max 3 pains. Max 5-6 questions.
- If data is missing, make an explicit, defensible assumption.
- Write in English.
- Product recommendations must be sales-ready and tied to the signals in the data.
- Use sales_signals for ICP prioritization, qualification, and GTM credibility.
- Use product_signals to ground product matches and proof points.
Company: {name} ({domain})
Compact data:
{data}"""

_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def build_brief_prompt(
    compact: Mapping[str, Any], domain: str, name: Optional[str] = None
) -> str:
    # str.replace, not format(): the template is full of literal braces
    return (
        BRIEF_PROMPT.replace("{name}", name or "Unknown")
        .replace("{domain}", domain)
        .replace("{data}", json.dumps(compact, ensure_ascii=False, default=str))
    )


def parse_brief_json(text: Optional[str]) -> Dict[str, Any]:
    """
    Extract the JSON object from a model reply.

    Handles code fences and surrounding prose by falling back to the
    outermost ``{...}`` span.

    Raises:
        LLMError: when no JSON object can be decoded.
    """
    if not text:
        raise LLMError("Empty payload")

    candidate = text.strip()
    if candidate.startswith("```"):
        for part in candidate.split("```"):
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            if part.startswith("{"):
                candidate = part
                break

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        match = _OBJECT_SPAN.search(candidate)
        if not match:
            raise LLMError("Could not extract JSON from payload")
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise LLMError("Could not extract JSON from payload", {"reason": str(e)})

    if not isinstance(parsed, dict):
        raise LLMError("Payload is not a JSON object")
    return parsed


@track_performance("brief_generation")
def generate_brief(
    compact: Mapping[str, Any],
    domain: str,
    name: Optional[str] = None,
    llm: Optional[LLMClient] = None,
) -> Dict[str, Any]:
    """
    Ask the model for a sales brief.

    Returns the parsed brief, the LLM layer's ``{"error"}`` payload, or
    ``{"error": INVALID_JSON, "raw": text}`` when the reply is not JSON.
    """
    llm = llm or LLMClient()
    result = llm.complete(build_brief_prompt(compact, domain, name))
    if result.get("error"):
        return {"error": result["error"]}

    text = result.get("content") or ""
    try:
        return parse_brief_json(text)
    except LLMError as e:
        logger.warning("brief_parse_failed", domain=domain, error=e.message)
        return {"error": INVALID_JSON, "raw": text}
