"""
Configuration management for prospect-brief.

Provides centralized, validated configuration from environment variables
with proper type checking and defaults.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_CONFIG = SettingsConfigDict(
    env_prefix="",
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=False,
    populate_by_name=True,
    extra="ignore",
)


def _parse_bool(v) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "y")
    return bool(v)


class MCPConfig(BaseSettings):
    """Remote tool server (MCP) configuration."""

    url: Optional[str] = Field(default=None, alias="HG_MCP_URL")
    timeout_seconds: float = Field(default=30.0, alias="MCP_TIMEOUT_SECONDS")

    # Retry and pacing
    tool_retries: int = Field(default=2, alias="TOOL_RETRIES")
    retry_backoff_seconds: float = Field(default=0.4, alias="TOOL_RETRY_BACKOFF_SECONDS")
    tool_pause_seconds: float = Field(default=0.35, alias="TOOL_PAUSE_SECONDS")
    catalog_pause_seconds: float = Field(default=0.2, alias="CATALOG_PAUSE_SECONDS")

    model_config = _ENV_CONFIG


class LLMConfig(BaseSettings):
    """Chat-completion endpoint configuration."""

    api_url: Optional[str] = Field(default=None, alias="LLM_API_URL")
    api_key: Optional[str] = Field(default=None, alias="LLM_API_KEY")
    model: Optional[str] = Field(default=None, alias="LLM_MODEL")
    temperature: float = Field(default=0.2, alias="LLM_TEMPERATURE")
    timeout_seconds: float = Field(default=60.0, alias="LLM_TIMEOUT_SECONDS")
    system_prompt: str = Field(
        default="You are a senior B2B sales strategist.", alias="LLM_SYSTEM_PROMPT"
    )

    # Pricing used when the provider does not report a cost
    input_cost_per_1k: Optional[float] = Field(default=None, alias="LLM_INPUT_COST_PER_1K")
    output_cost_per_1k: Optional[float] = Field(default=None, alias="LLM_OUTPUT_COST_PER_1K")

    @field_validator("input_cost_per_1k", "output_cost_per_1k", mode="before")
    @classmethod
    def parse_cost(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_key and self.model)

    model_config = _ENV_CONFIG


class CompactionConfig(BaseSettings):
    """Top-N caps and thresholds applied by the payload assembler."""

    tech_top_n: int = Field(default=15, alias="TECH_TOP_N")
    cloud_per_service_top_n: int = Field(default=5, alias="CLOUD_PER_SERVICE_TOP_N")
    cloud_min_monthly_spend: float = Field(default=1000, alias="CLOUD_MIN_MONTHLY_SPEND")
    recent_adoption_cutoff: str = Field(default="2024-01-01", alias="RECENT_ADOPTION_CUTOFF")
    recent_adoptions_cap: int = Field(default=10, alias="RECENT_ADOPTIONS_CAP")
    fai_top_n: int = Field(default=4, alias="FAI_TOP_N")
    spend_top_n: int = Field(default=5, alias="SPEND_TOP_N")
    contracts_top_n: int = Field(default=5, alias="CONTRACTS_TOP_N")
    product_list_top_n: int = Field(default=12, alias="PRODUCT_LIST_TOP_N")
    spend_category: str = Field(default="Security", alias="SPEND_CATEGORY")

    model_config = _ENV_CONFIG


class ResolverConfig(BaseSettings):
    """Domain resolver configuration."""

    public_suffix: bool = Field(default=False, alias="DOMAIN_PUBLIC_SUFFIX")
    web_search_limit: int = Field(default=5, alias="WEB_SEARCH_LIMIT")

    @field_validator("public_suffix", mode="before")
    @classmethod
    def parse_public_suffix(cls, v):
        return _parse_bool(v)

    model_config = _ENV_CONFIG


class ServerConfig(BaseSettings):
    """HTTP service runtime."""

    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    max_body_bytes: int = Field(default=1024 * 1024, alias="MAX_BODY_BYTES")

    model_config = _ENV_CONFIG


class Settings(BaseSettings):
    """Main application settings."""

    environment: str = Field(default="production", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    mcp: MCPConfig = Field(default_factory=MCPConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("debug", mode="before")
    @classmethod
    def parse_debug(cls, v):
        return _parse_bool(v)

    model_config = _ENV_CONFIG


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def validate_required_settings(
    for_workflow: str = "analysis", config: Optional[Settings] = None
) -> List[str]:
    """
    Validate that required settings are present for specific workflows.

    Args:
        for_workflow: Workflow name ("analysis", "brief", or "minimal")
        config: Settings to check (defaults to the global instance)

    Returns:
        List of missing required settings
    """
    config = config or get_settings()
    missing: List[str] = []

    if for_workflow in ("analysis", "brief"):
        if not config.mcp.url:
            missing.append("HG_MCP_URL")

    if for_workflow == "brief":
        if not config.llm.api_url:
            missing.append("LLM_API_URL")
        if not config.llm.api_key:
            missing.append("LLM_API_KEY")
        if not config.llm.model:
            missing.append("LLM_MODEL")

    return missing


def print_configuration_summary(config: Optional[Settings] = None) -> None:
    """Print a summary of the current configuration for debugging."""
    config = config or get_settings()
    limits = config.compaction
    print("=== prospect-brief Configuration Summary ===")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print()
    print(f"MCP Server: {'✓' if config.mcp.url else '✗'}")
    print(f"  Retries: {config.mcp.tool_retries} (backoff {config.mcp.retry_backoff_seconds}s)")
    print(f"  Pause: {config.mcp.tool_pause_seconds}s / catalog {config.mcp.catalog_pause_seconds}s")
    print(f"LLM: {'✓' if config.llm.configured else '✗'} {config.llm.model or ''}".rstrip())
    print(f"Public suffix domains: {'✓' if config.resolver.public_suffix else '✗'}")
    print()
    print("Compaction limits:")
    print(f"  Technologies: {limits.tech_top_n}")
    print(
        f"  Cloud spend: {limits.cloud_per_service_top_n}/service, "
        f">= ${limits.cloud_min_monthly_spend:,.0f}/month"
    )
    print(f"  Recent adoptions: since {limits.recent_adoption_cutoff}, max {limits.recent_adoptions_cap}")
    print(f"  Departments: {limits.fai_top_n}")
    print(f"  {limits.spend_category} spend rows: {limits.spend_top_n}")
    print(f"  Contracts: {limits.contracts_top_n}")
    print(f"  Catalog lists: {limits.product_list_top_n}")
    print("=" * 44)
