"""MCP Sync - keep MCP server configs in step across AI clients."""

__version__ = "0.4.0"
