"""Serving surfaces exposing Kusto clusters via the MCP protocol."""

from kustomcp.serving.services.factory import KustoClientProvider, build_query_service
from kustomcp.serving.services.query_service import KustoQueryService

__all__ = [
    "KustoClientProvider",
    "KustoQueryService",
    "build_query_service",
]
