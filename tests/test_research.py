"""Tests for the end-to-end company analysis workflow."""

import asyncio

import pytest

from prospect_brief.core.exceptions import DomainResolutionError
from prospect_brief.core.logging import get_correlation_id, set_correlation_id
from prospect_brief.intelligence import research
from prospect_brief.intelligence.models import ResolutionStrategy
from prospect_brief.intelligence.research import (
    NO_PRODUCT_SEED,
    analyze_company,
    run_company_analysis,
    seed_products,
)
from tests import sample_data

EXPECTED_CALL_ORDER = [
    "company_firmographic",
    "company_technographic",
    "company_fai",
    "company_spend",
    "company_contracts",
    "company_cloud_spend",
    "list_product_categories",
    "list_vendors",
    "list_product_attributes",
    "list_intent_topics",
    "get_product_information",
    "get_product_reviews",
]


def analyze(client, query, settings):
    return asyncio.run(run_company_analysis(query, client, settings))


class TestRunCompanyAnalysis:
    def test_direct_domain_full_run(self, tool_client, fast_settings):
        analysis = analyze(tool_client, "acme.com", fast_settings)

        assert analysis.company_domain == "acme.com"
        assert analysis.company_name is None
        assert analysis.resolution_strategy is ResolutionStrategy.DIRECT
        assert tool_client.names == EXPECTED_CALL_ORDER

        compact = analysis.compact
        assert compact["company"]["name"] == "Acme Corp"
        assert compact["tech_highlights"]["languages_tools"][0]["product"] == "Okta"
        assert compact["product_signals"]["product_info"]["name"] == "Okta"
        assert compact["product_signals"]["product_reviews"]["rating"] == 4.5

    def test_call_arguments(self, tool_client, fast_settings):
        analyze(tool_client, "acme.com", fast_settings)

        for tool in EXPECTED_CALL_ORDER[:6]:
            assert tool_client.arguments_for(tool)[0]["companyDomain"] == "acme.com"
        assert tool_client.arguments_for("company_spend") == [
            {"companyDomain": "acme.com", "spendCategory": "Security"}
        ]
        assert tool_client.arguments_for("list_vendors") == [{}]
        assert tool_client.arguments_for("get_product_information") == [{"productName": "Okta"}]
        assert tool_client.arguments_for("get_product_reviews") == [{"productName": "Okta"}]

    def test_name_resolved_through_directory(self, tool_client, fast_settings):
        analysis = analyze(tool_client, "Acme", fast_settings)

        assert analysis.company_domain == "acme.com"
        assert analysis.company_name == "Acme"
        assert analysis.resolution_strategy is ResolutionStrategy.DIRECTORY
        assert tool_client.names[0] == "search_companies"
        assert analysis.to_dict()["company_name"] == "Acme"

    def test_unresolved_domain_issues_no_company_calls(self, make_tool_client, fast_settings):
        client = make_tool_client()
        with pytest.raises(DomainResolutionError) as excinfo:
            analyze(client, "!!!", fast_settings)

        assert excinfo.value.query == "!!!"
        assert client.names == ["search_companies", "web_search"]

    def test_missing_seed_product(self, make_tool_client, fast_settings):
        responses = dict(sample_data.TOOL_RESPONSES, company_technographic={"products": []})
        client = make_tool_client(responses)
        analysis = analyze(client, "acme.com", fast_settings)

        seed_error = {"error": NO_PRODUCT_SEED}
        assert analysis.compact["product_signals"]["product_info"] == seed_error
        assert analysis.compact["product_signals"]["product_reviews"] == seed_error
        assert "get_product_information" not in client.names
        assert "get_product_reviews" not in client.names

    def test_failing_tool_degrades_its_section_only(self, make_tool_client, fast_settings):
        client = make_tool_client(sample_data.TOOL_RESPONSES, failures={"company_cloud_spend": -1})
        analysis = analyze(client, "acme.com", fast_settings)

        failure = {"error": "company_cloud_spend: upstream unavailable"}
        tech = analysis.compact["tech_highlights"]
        assert tech["cloud_stack_top_spend"] == failure
        assert tech["recent_adoptions"] == failure
        assert tech["languages_tools"]
        assert client.names.count("company_cloud_spend") == 3

    def test_spend_category_from_settings(self, tool_client, fast_settings):
        fast_settings.compaction.spend_category = "Cloud"
        analyze(tool_client, "acme.com", fast_settings)
        assert tool_client.arguments_for("company_spend")[0]["spendCategory"] == "Cloud"


class TestAnalyzeCompany:
    @pytest.fixture
    def session(self, monkeypatch, tool_client):
        opened = []

        class Session:
            def __init__(self, url, timeout_seconds):
                opened.append(url)

            async def __aenter__(self):
                return tool_client

            async def __aexit__(self, *exc_info):
                return None

        monkeypatch.setattr(research, "MCPToolClient", Session)
        return opened

    def test_keeps_existing_correlation_id(self, session, fast_settings):
        async def run():
            set_correlation_id("req-7")
            await analyze_company("acme.com", fast_settings)
            return get_correlation_id()

        assert asyncio.run(run()) == "req-7"
        assert session == ["http://mcp.test/mcp"]

    def test_assigns_correlation_id_when_missing(self, session, fast_settings):
        async def run():
            analysis = await analyze_company("acme.com", fast_settings)
            return analysis, get_correlation_id()

        analysis, correlation_id = asyncio.run(run())
        assert analysis.company_domain == "acme.com"
        assert correlation_id


class TestSeedProducts:
    def test_top_product(self):
        assert seed_products(sample_data.TECHNOGRAPHIC) == ["Okta", "Snowflake"]

    def test_error_or_empty(self):
        assert seed_products({"error": "boom"}) == []
        assert seed_products(None) == []
