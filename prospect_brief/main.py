"""
Main application entry point for prospect-brief.

Provides the CLI for domain resolution, company analysis, brief generation
and the HTTP service.
"""

import asyncio
import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .core.config import get_settings, print_configuration_summary, validate_required_settings
from .core.exceptions import ConfigurationError, DomainResolutionError, ProspectBriefError
from .core.logging import set_correlation_id, setup_logging
from .data.llm_client import LLMClient
from .data.mcp_client import MCPToolClient
from .intelligence.brief import generate_brief
from .intelligence.domain_resolver import extract_domain, resolve_company_domain
from .intelligence.models import ResolutionStrategy, ResolvedDomain
from .intelligence.research import analyze_company, list_remote_tools

# Status output on stderr, JSON results on stdout
console = Console(stderr=True)


def _fail(ctx, label: str, error: Exception) -> None:
    console.print(f"[red]{label}:[/red] {error}")
    if ctx.obj and ctx.obj.get("debug"):
        import traceback

        console.print(traceback.format_exc())
    sys.exit(1)


def _require(workflow: str) -> None:
    missing = validate_required_settings(workflow)
    if missing:
        raise ConfigurationError(f"Missing: {', '.join(missing)}", {"missing": missing})


def _emit(payload: dict, output: Optional[str] = None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        console.print(f"[green]Saved to {output}[/green]")
    else:
        click.echo(text)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines instead of rich output")
@click.option("--correlation-id", help="Set correlation ID for request tracing")
@click.pass_context
def main(ctx, debug: bool, json_logs: bool, correlation_id: Optional[str]):
    """Company research and sales call briefs from a remote data tool server.

    Resolves a company name or URL to its domain, pulls firmographic,
    technographic, spend and catalog data, and compacts it into a payload
    small enough for an LLM prompt.
    """
    ctx.ensure_object(dict)

    setup_logging(debug=debug, rich_output=not json_logs)

    if correlation_id:
        set_correlation_id(correlation_id)

    ctx.obj["debug"] = debug
    ctx.obj["correlation_id"] = correlation_id


async def _resolve(query: str) -> ResolvedDomain:
    settings = get_settings()
    direct = extract_domain(query, settings.resolver.public_suffix)
    if direct:
        return ResolvedDomain(domain=direct, strategy=ResolutionStrategy.DIRECT)

    _require("analysis")
    async with MCPToolClient(settings.mcp.url, settings.mcp.timeout_seconds) as client:
        return await resolve_company_domain(
            client,
            query,
            public_suffix=settings.resolver.public_suffix,
            web_search_limit=settings.resolver.web_search_limit,
            retries=settings.mcp.tool_retries,
            backoff_seconds=settings.mcp.retry_backoff_seconds,
        )


@main.command()
@click.argument("query")
@click.pass_context
def resolve(ctx, query: str):
    """Resolve QUERY (name, URL or hostname) to a company domain."""
    try:
        resolved = asyncio.run(_resolve(query))
        if not resolved.resolved:
            raise DomainResolutionError(query)
        _emit({"query": query, **resolved.to_dict()})
    except ConfigurationError as e:
        _fail(ctx, "Configuration Error", e)
    except ProspectBriefError as e:
        _fail(ctx, "Resolution Error", e)
    except Exception as e:
        _fail(ctx, "Unexpected Error", e)


@main.command()
@click.argument("query")
@click.option("--brief", "with_brief", is_flag=True, help="Also generate a sales call brief")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write JSON to a file")
@click.pass_context
def research(ctx, query: str, with_brief: bool, output: Optional[str]):
    """Run the full company analysis for QUERY and print the compact payload."""
    try:
        _require("brief" if with_brief else "analysis")
        settings = get_settings()

        console.print(f"[blue]Analyzing[/blue] {query}")
        analysis = asyncio.run(analyze_company(query, settings))
        result = analysis.to_dict()

        if with_brief:
            console.print("[blue]Generating brief[/blue]")
            result["brief"] = generate_brief(
                analysis.compact,
                analysis.company_domain,
                analysis.company_name,
                LLMClient(settings.llm),
            )
            if result["brief"].get("error"):
                console.print(f"[yellow]Brief unavailable:[/yellow] {result['brief']['error']}")

        _emit(result, output)
    except ConfigurationError as e:
        _fail(ctx, "Configuration Error", e)
    except DomainResolutionError as e:
        _fail(ctx, "Resolution Error", e)
    except ProspectBriefError as e:
        _fail(ctx, "Workflow Error", e)
    except Exception as e:
        _fail(ctx, "Unexpected Error", e)


@main.command()
@click.pass_context
def tools(ctx):
    """List the tools exposed by the remote tool server."""
    try:
        _require("analysis")
        names = asyncio.run(list_remote_tools(get_settings()))

        table = Table(title="Remote Tools")
        table.add_column("#", style="dim")
        table.add_column("Tool", style="cyan")
        for i, name in enumerate(names, 1):
            table.add_row(str(i), name)
        console.print(table)
    except ConfigurationError as e:
        _fail(ctx, "Configuration Error", e)
    except Exception as e:
        _fail(ctx, "Tool Listing Error", e)


@main.command()
@click.option("--host", help="Bind address (default: HOST)")
@click.option("--port", type=int, help="Port (default: PORT)")
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int]):
    """Run the HTTP analysis service."""
    import uvicorn

    from .api.server import build_app

    settings = get_settings()
    host = host or settings.server.host
    port = port or settings.server.port

    missing = validate_required_settings("analysis")
    if missing:
        console.print(f"[yellow]Warning:[/yellow] missing {', '.join(missing)}")

    console.print(f"[green]Company analysis service on http://{host}:{port}[/green]")
    uvicorn.run(build_app(settings), host=host, port=port, reload=False)


@main.command()
@click.pass_context
def config(ctx):
    """Display current configuration."""
    try:
        console.print("[blue]prospect-brief Configuration[/blue]")

        missing = validate_required_settings("brief")
        if missing:
            console.print("[red]Configuration Issues:[/red]")
            for item in missing:
                console.print(f"  • Missing: {item}")
            console.print()
        else:
            console.print("[green]Configuration Valid[/green]")
            console.print()

        print_configuration_summary()

        sys.exit(0 if not missing else 1)

    except Exception as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
