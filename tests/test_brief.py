"""Tests for sales brief prompt construction and reply parsing."""

import json

import pytest

from prospect_brief.core.exceptions import LLMError
from prospect_brief.intelligence.brief import (
    INVALID_JSON,
    build_brief_prompt,
    generate_brief,
    parse_brief_json,
)

COMPACT = {"company": {"name": "Acme Corp"}, "tech_highlights": {"languages_tools": []}}


class StubLLM:
    """Returns a canned completion and records prompts."""

    def __init__(self, result):
        self.result = result
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return self.result


class TestBuildBriefPrompt:
    def test_company_line_and_data(self):
        prompt = build_brief_prompt(COMPACT, "acme.com", "Acme")
        assert "Company: Acme (acme.com)" in prompt
        assert prompt.endswith("Compact data:\n" + json.dumps(COMPACT, ensure_ascii=False))

    def test_unknown_name(self):
        assert "Company: Unknown (acme.com)" in build_brief_prompt(COMPACT, "acme.com", None)

    def test_structure_and_rules(self):
        prompt = build_brief_prompt(COMPACT, "acme.com")
        for key in (
            "sales_thesis",
            "company_snapshot",
            "key_pains_ranked",
            "challenger_talk_track",
            "recommended_next_step",
            "product_recommendations",
        ):
            assert f'"{key}"' in prompt
        assert 'Forbidden words: "likely", "potential", "may".' in prompt
        assert "Max 3 pains." in prompt


class TestParseBriefJson:
    def test_plain_object(self):
        assert parse_brief_json('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert parse_brief_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        text = 'Here is the brief:\n{"a": {"b": [1, 2]}}\nGood luck!'
        assert parse_brief_json(text) == {"a": {"b": [1, 2]}}

    @pytest.mark.parametrize("text", ["", None, "no json here", "{broken", "[1, 2]"])
    def test_failures_raise(self, text):
        with pytest.raises(LLMError):
            parse_brief_json(text)


class TestGenerateBrief:
    def test_returns_parsed_brief(self):
        llm = StubLLM({"content": '{"sales_thesis": {"primary_angle": "Consolidate"}}'})
        brief = generate_brief(COMPACT, "acme.com", "Acme", llm)

        assert brief == {"sales_thesis": {"primary_angle": "Consolidate"}}
        assert "Company: Acme (acme.com)" in llm.prompts[0]

    def test_llm_error_passed_through(self):
        llm = StubLLM({"error": "LLM request failed: 500"})
        assert generate_brief(COMPACT, "acme.com", None, llm) == {"error": "LLM request failed: 500"}

    def test_invalid_json_keeps_raw_text(self):
        llm = StubLLM({"content": "I cannot help with that."})
        assert generate_brief(COMPACT, "acme.com", None, llm) == {
            "error": INVALID_JSON,
            "raw": "I cannot help with that.",
        }
