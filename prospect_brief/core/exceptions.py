"""
Custom exceptions for prospect-brief.

Upstream tool failures are carried as ``{"error": ...}`` values once they pass
the retry layer; exceptions are reserved for failures that must stop an
analysis or that the retry layer itself needs to see.
"""

from typing import Any, Dict, Optional


class ProspectBriefError(Exception):
    """Base exception for all prospect-brief errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ProspectBriefError):
    """Raised when required settings are missing or invalid."""

    pass


class DataAccessError(ProspectBriefError):
    """Base class for remote data access errors."""

    pass


class ToolCallError(DataAccessError):
    """A remote MCP tool call failed or reported an error result."""

    def __init__(self, tool: str, message: str, **kwargs):
        super().__init__(f"{tool}: {message}", **kwargs)
        self.tool = tool


class LLMError(DataAccessError):
    """Chat-completion endpoint errors."""

    pass


class DomainResolutionError(ProspectBriefError):
    """No strategy could turn the query into a company domain."""

    def __init__(self, query: str, **kwargs):
        super().__init__("Could not resolve company domain from query.", **kwargs)
        self.query = query
