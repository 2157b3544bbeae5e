"""ARCH AI MCP Server: read-only crypto search tools for agent runtimes."""

__version__ = "1.0.0"
