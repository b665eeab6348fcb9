"""MCP tool server exposing Azure Data Explorer (Kusto) queries, functions and schemas."""

__version__ = "0.1.0"
