"""MCP server for the MemOS cloud memory API."""

__version__ = "1.0.0"
