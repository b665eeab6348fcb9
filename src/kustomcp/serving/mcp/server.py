"""MCP server exposing governed Kusto query tools."""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal

from mcp.server.fastmcp import FastMCP

from kustomcp.config.serving_models import ServingConfig
from kustomcp.serving.backend.executor import KustoExecutor
from kustomcp.serving.mcp.registry import register_tools
from kustomcp.serving.services.factory import KustoClientProvider, build_query_service

Transport = Literal["stdio", "streamable-http"]


def create_mcp_server(
    cfg: ServingConfig | None = None,
    *,
    clients: Callable[[str], KustoExecutor] | None = None,
    host: str = "127.0.0.1",
    port: int = 3000,
) -> tuple[FastMCP, Callable[[], None]]:
    """
    Create the MCP server instance plus shutdown hook.

    Parameters
    ----------
    cfg:
        Optional pre-loaded ServingConfig. When omitted, environment variables are used.
    clients:
        Optional cluster-URL to client lookup; a caching provider is used by default.
    host, port:
        Bind address for the streamable HTTP transport.

    Returns
    -------
    tuple[FastMCP, Callable[[], None]]
        Configured MCP server and shutdown callback.
    """
    config = cfg or ServingConfig.from_env()
    provider = KustoClientProvider() if clients is None else None
    service = build_query_service(config, clients=clients or provider)
    server = FastMCP("KustoMCP", json_response=True, host=host, port=port)
    register_tools(server, service, config)

    def _close() -> None:
        if provider is not None:
            provider.close()

    return server, _close


def main(
    transport: Transport = "stdio",
    *,
    cfg: ServingConfig | None = None,
    host: str = "127.0.0.1",
    port: int = 3000,
) -> None:
    """
    Run the Kusto MCP server.

    By default this uses stdio transport, which is what local MCP clients
    expect; ``streamable-http`` serves the MCP endpoint over HTTP.
    """
    server, close = create_mcp_server(cfg, host=host, port=port)
    try:
        server.run(transport=transport)
    finally:
        close()


if __name__ == "__main__":
    main()
