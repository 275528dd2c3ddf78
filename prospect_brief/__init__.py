"""Company research and sales call briefs from an MCP data tool server."""

__version__ = "0.1.0"
