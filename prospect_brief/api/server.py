"""FastAPI application wiring for the company analysis service."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..core.config import Settings, get_settings
from ..core.exceptions import DomainResolutionError
from ..core.logging import set_correlation_id
from ..data.llm_client import LLMClient
from ..intelligence.brief import generate_brief
from ..intelligence.models import CompanyAnalysis
from ..intelligence.research import analyze_company

logger = structlog.get_logger(__name__)

AnalyzeFn = Callable[[str, Settings], Awaitable[CompanyAnalysis]]
BriefFn = Callable[[Dict[str, Any], str, Optional[str]], Dict[str, Any]]

CORRELATION_HEADER = "X-Correlation-ID"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def build_app(
    settings: Optional[Settings] = None,
    analyze: Optional[AnalyzeFn] = None,
    brief: Optional[BriefFn] = None,
) -> FastAPI:
    """Create a configured FastAPI instance."""
    settings = settings or get_settings()
    llm_client = LLMClient(settings.llm)
    analyze = analyze or analyze_company

    def default_brief(compact: Dict[str, Any], domain: str, name: Optional[str]) -> Dict[str, Any]:
        return generate_brief(compact, domain, name, llm_client)

    brief = brief or default_brief
    max_body = settings.server.max_body_bytes

    app = FastAPI(title="Prospect Brief Service", version="0.1.0")

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "model": llm_client.model,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/api/analysis")
    async def create_analysis(request: Request) -> JSONResponse:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_body:
            return _error(413, "Payload too large.")
        raw = await request.body()
        if len(raw) > max_body:
            return _error(413, "Payload too large.")

        try:
            data = json.loads(raw) if raw else {}
        except ValueError:
            return _error(400, "Missing query.")
        query = data.get("query") if isinstance(data, dict) else None
        query = query.strip() if isinstance(query, str) else ""
        if not query:
            return _error(400, "Missing query.")

        # One id per request; the handler runs in its own task
        correlation_id = set_correlation_id()
        try:
            analysis = await analyze(query, settings)
            result = analysis.to_dict()
            result["brief"] = await run_in_threadpool(
                brief, analysis.compact, analysis.company_domain, analysis.company_name
            )
        except DomainResolutionError as e:
            logger.warning("analysis_unresolved", query=query)
            response = _error(422, e.message)
        except Exception as e:  # noqa: BLE001
            logger.error("analysis_failed", query=query, error=str(e), error_type=type(e).__name__)
            response = _error(500, str(e) or "Server error.")
        else:
            response = JSONResponse(status_code=200, content=result)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    return app
