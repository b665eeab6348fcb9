"""Query execution backend: timeouts, result shaping, limits and function contracts."""

from __future__ import annotations

from kustomcp.serving.backend.analyzer import QueryAnalysis, analyze_query
from kustomcp.serving.backend.executor import KustoExecutor, TimeoutGovernedExecutor
from kustomcp.serving.backend.limits import GovernedResult, govern_result
from kustomcp.serving.backend.transform import TabularResult, transform_response

__all__ = [
    "GovernedResult",
    "KustoExecutor",
    "QueryAnalysis",
    "TabularResult",
    "TimeoutGovernedExecutor",
    "analyze_query",
    "govern_result",
    "transform_response",
]
