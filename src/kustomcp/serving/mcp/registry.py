"""MCP tool registration and error-to-problem mapping."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Annotated

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from kustomcp.config.serving_models import ServingConfig
from kustomcp.serving.mcp import errors
from kustomcp.serving.mcp.models import ProblemDetail
from kustomcp.serving.services.query_service import KustoQueryService

LOG = logging.getLogger("kustomcp.serving.mcp.registry")

BETA_TOOLS = frozenset({"list-tables", "call-function", "get-table-schema"})

ClusterUrl = Annotated[
    str,
    Field(description="Kusto cluster URL, e.g. https://help.kusto.windows.net"),
]
Database = Annotated[str, Field(description="Database to run against")]
ToolPayload = dict[str, object] | dict[str, ProblemDetail]


def _wrap(tool: Callable[..., ToolPayload]) -> Callable[..., ToolPayload]:
    """
    Wrap a service-facing tool to normalize McpError into ProblemDetail payloads.

    Returns
    -------
    Callable[..., ToolPayload]
        Wrapped tool function that emits dict payloads.
    """

    @functools.wraps(tool)
    def _inner(*args: object, **kwargs: object) -> ToolPayload:
        try:
            return tool(*args, **kwargs)
        except errors.McpError as exc:
            LOG.warning("Tool %s failed: %s (%s)", tool.__name__, exc, exc.code)
            return {"error": exc.detail.model_dump()}

    return _inner


def _register_query_tools(mcp: FastMCP, service: KustoQueryService, *, beta: bool) -> None:
    """Register query and function execution tools."""

    @mcp.tool(name="run-query")
    @_wrap
    def run_query(
        kusto_cluster_url: ClusterUrl,
        database: Database,
        query: Annotated[str, Field(description="KQL query to execute")],
    ) -> ToolPayload:
        """
        Execute a KQL query and return governed tabular results.

        Large results carry suggestions or warnings and are truncated above the
        configured hard limit; prefer time filters and '| take N'.
        """
        resp = service.run_query(cluster_url=kusto_cluster_url, database=database, query=query)
        return resp.model_dump(mode="json")

    if not beta:
        return

    @mcp.tool(name="call-function")
    @_wrap
    def call_function(
        kusto_cluster_url: ClusterUrl,
        database: Database,
        function_name: Annotated[str, Field(description="Name of the stored function to execute")],
        parameters: Annotated[
            dict[str, object] | None,
            Field(description="Arguments to pass to the function as key-value pairs"),
        ] = None,
        pipeline: Annotated[
            str | None,
            Field(
                description=(
                    "Additional KQL operations to apply after the function call, "
                    "starting with '|'"
                )
            ),
        ] = None,
    ) -> ToolPayload:
        """
        Call a stored function with bound parameters and an optional pipeline.

        Use get-function-schema first to see required parameters.
        """
        resp = service.call_function(
            cluster_url=kusto_cluster_url,
            database=database,
            function_name=function_name,
            parameters=parameters,
            pipeline=pipeline,
        )
        return resp.model_dump(mode="json")


def _register_schema_tools(mcp: FastMCP, service: KustoQueryService, *, beta: bool) -> None:
    """Register listing and schema discovery tools."""

    @mcp.tool(name="list-functions")
    @_wrap
    def list_functions(kusto_cluster_url: ClusterUrl, database: Database) -> ToolPayload:
        """List stored functions in a database with folders and descriptions."""
        resp = service.list_functions(cluster_url=kusto_cluster_url, database=database)
        return resp.model_dump(mode="json")

    @mcp.tool(name="list-databases")
    @_wrap
    def list_databases(kusto_cluster_url: ClusterUrl) -> ToolPayload:
        """List databases available on a cluster."""
        resp = service.list_databases(cluster_url=kusto_cluster_url)
        return resp.model_dump(mode="json")

    @mcp.tool(name="get-function-schema")
    @_wrap
    def get_function_schema(
        kusto_cluster_url: ClusterUrl,
        database: Database,
        function_name: Annotated[str, Field(description="Name of the function to get schema for")],
    ) -> ToolPayload:
        """Return a stored function's parameters and output columns."""
        resp = service.get_function_schema(
            cluster_url=kusto_cluster_url, database=database, function_name=function_name
        )
        return resp.model_dump(mode="json")

    if not beta:
        return

    @mcp.tool(name="list-tables")
    @_wrap
    def list_tables(kusto_cluster_url: ClusterUrl, database: Database) -> ToolPayload:
        """List tables in a database with folders and descriptions."""
        resp = service.list_tables(cluster_url=kusto_cluster_url, database=database)
        return resp.model_dump(mode="json")

    @mcp.tool(name="get-table-schema")
    @_wrap
    def get_table_schema(
        kusto_cluster_url: ClusterUrl,
        database: Database,
        table_name: Annotated[str, Field(description="Name of the table to get schema for")],
    ) -> ToolPayload:
        """Return a table's ordered columns; 'found' is false for unknown tables."""
        resp = service.get_table_schema(
            cluster_url=kusto_cluster_url, database=database, table_name=table_name
        )
        return resp.model_dump(mode="json")


def register_tools(mcp: FastMCP, service: KustoQueryService, cfg: ServingConfig) -> None:
    """
    Register all MCP tools on the given FastMCP instance.

    Parameters
    ----------
    mcp:
        FastMCP instance to register tools against.
    service:
        Query service executing every tool.
    cfg:
        Serving configuration; beta tools are registered only when enabled.
    """
    beta = cfg.enable_beta_tools
    _register_query_tools(mcp, service, beta=beta)
    _register_schema_tools(mcp, service, beta=beta)
    if beta:
        LOG.info("Beta tools enabled: %s", ", ".join(sorted(BETA_TOOLS)))


__all__ = ["BETA_TOOLS", "register_tools"]
