"""
End-to-end company analysis: resolve the domain, pull every data category
from the tool server and compact it.

Tool calls are made one at a time with a fixed pause between them to stay
under upstream rate limits. Any single call that keeps failing becomes an
error payload in its own section of the result.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from ..core.config import Settings, get_settings
from ..core.exceptions import DomainResolutionError
from ..core.logging import get_correlation_id, set_correlation_id
from ..data.mcp_client import MCPToolClient
from ..utils.reliability import ToolClient, call_tool_with_retry, pause, track_performance
from .compact import build_compact_payload, compact_technographic
from .domain_resolver import resolve_company_domain
from .envelope import error_payload, is_error
from .models import CompanyAnalysis, RawPayloadBundle

logger = structlog.get_logger(__name__)

NO_PRODUCT_SEED = "No product seed available."

# (bundle field, tool name) in call order
COMPANY_TOOLS = (
    ("firmographic", "company_firmographic"),
    ("technographic", "company_technographic"),
    ("fai", "company_fai"),
    ("security_spend", "company_spend"),
    ("contracts", "company_contracts"),
    ("cloud_spend", "company_cloud_spend"),
)
CATALOG_TOOLS = (
    ("product_categories", "list_product_categories"),
    ("product_vendors", "list_vendors"),
    ("product_attributes", "list_product_attributes"),
    ("intent_topics", "list_intent_topics"),
)


def seed_products(technographic: Any, limit: int = 2) -> List[str]:
    """Top product names of the technographic payload."""
    rows = compact_technographic(technographic, limit)
    if not isinstance(rows, list):
        return []
    return [row["product"] for row in rows if row.get("product")]


class CompanyResearcher:
    """Runs the tool-call plan for one resolved company."""

    def __init__(self, client: ToolClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    async def _call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        mcp = self.settings.mcp
        payload = await call_tool_with_retry(
            self.client, name, arguments, mcp.tool_retries, mcp.retry_backoff_seconds
        )
        logger.debug("tool_call_completed", tool=name, ok=not is_error(payload))
        return payload

    async def collect(self, domain: str) -> RawPayloadBundle:
        """Fetch the twelve raw payloads for ``domain``."""
        mcp = self.settings.mcp
        raw: Dict[str, Any] = {}

        for field_name, tool in COMPANY_TOOLS:
            arguments: Dict[str, Any] = {"companyDomain": domain}
            if tool == "company_spend":
                arguments["spendCategory"] = self.settings.compaction.spend_category
            raw[field_name] = await self._call(tool, arguments)
            await pause(mcp.tool_pause_seconds)

        for field_name, tool in CATALOG_TOOLS:
            raw[field_name] = await self._call(tool, {})
            await pause(mcp.catalog_pause_seconds)

        seeds = seed_products(raw["technographic"])
        if seeds:
            raw["product_info"] = await self._call(
                "get_product_information", {"productName": seeds[0]}
            )
            await pause(mcp.catalog_pause_seconds)
            raw["product_reviews"] = await self._call(
                "get_product_reviews", {"productName": seeds[0]}
            )
        else:
            raw["product_info"] = error_payload(NO_PRODUCT_SEED)
            raw["product_reviews"] = error_payload(NO_PRODUCT_SEED)

        return RawPayloadBundle(**raw)

    @track_performance("company_analysis")
    async def analyze(self, query: str) -> CompanyAnalysis:
        """
        Resolve ``query`` and build the compact payload.

        Raises:
            DomainResolutionError: when no strategy yields a domain; no
                company tool is called in that case.
        """
        mcp = self.settings.mcp
        resolved = await resolve_company_domain(
            self.client,
            query,
            public_suffix=self.settings.resolver.public_suffix,
            web_search_limit=self.settings.resolver.web_search_limit,
            retries=mcp.tool_retries,
            backoff_seconds=mcp.retry_backoff_seconds,
        )
        if not resolved.resolved:
            raise DomainResolutionError(query)

        logger.info(
            "company_resolved",
            query=query,
            domain=resolved.domain,
            name=resolved.name,
            strategy=resolved.strategy.value,
        )

        bundle = await self.collect(resolved.domain)
        return CompanyAnalysis(
            query=query,
            company_domain=resolved.domain,
            company_name=resolved.name,
            resolution_strategy=resolved.strategy,
            compact=build_compact_payload(bundle, self.settings.compaction),
        )


async def run_company_analysis(
    query: str, client: ToolClient, settings: Optional[Settings] = None
) -> CompanyAnalysis:
    """Analyze one company using an already-open tool client."""
    return await CompanyResearcher(client, settings).analyze(query)


async def analyze_company(query: str, settings: Optional[Settings] = None) -> CompanyAnalysis:
    """Open a tool-server session, analyze one company and close the session."""
    settings = settings or get_settings()
    if get_correlation_id() is None:
        set_correlation_id()
    async with MCPToolClient(settings.mcp.url, settings.mcp.timeout_seconds) as client:
        return await run_company_analysis(query, client, settings)


async def list_remote_tools(settings: Optional[Settings] = None) -> List[str]:
    settings = settings or get_settings()
    async with MCPToolClient(settings.mcp.url, settings.mcp.timeout_seconds) as client:
        return await client.list_tools()
