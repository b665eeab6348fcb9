"""MCP tools, response models and error payloads."""
