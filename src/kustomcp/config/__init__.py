"""Configuration models for the Kusto MCP server."""

from __future__ import annotations

from kustomcp.config.serving_models import (
    OperationClass,
    QueryLimitsConfig,
    ServingConfig,
    TimeoutConfig,
)

__all__ = ["OperationClass", "QueryLimitsConfig", "ServingConfig", "TimeoutConfig"]
