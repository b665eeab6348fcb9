"""Shared application services for Kusto MCP surfaces."""

from __future__ import annotations

from kustomcp.serving.services.query_service import KustoQueryService, ServiceObservability

__all__ = ["KustoQueryService", "ServiceObservability"]
