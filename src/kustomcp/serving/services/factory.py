"""Factories for building Kusto clients and the shared query service."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from azure.identity import DefaultAzureCredential
from azure.kusto.data import KustoClient, KustoConnectionStringBuilder

from kustomcp.config.serving_models import ServingConfig
from kustomcp.serving.backend.executor import KustoExecutor
from kustomcp.serving.mcp import errors
from kustomcp.serving.services.query_service import KustoQueryService, ServiceObservability

LOG = logging.getLogger("kustomcp.serving.services.factory")


def normalize_cluster_url(cluster_url: str) -> str:
    """
    Normalize a cluster URL for connection and caching.

    Parameters
    ----------
    cluster_url:
        Cluster address with or without scheme, e.g. ``help.kusto.windows.net``.

    Returns
    -------
    str
        ``https://`` URL without a trailing slash.

    Raises
    ------
    errors.McpError
        When the URL is empty.
    """
    trimmed = cluster_url.strip().rstrip("/")
    if not trimmed:
        message = "kusto_cluster_url must not be empty"
        raise errors.invalid_argument(message)
    if "://" not in trimmed:
        trimmed = f"https://{trimmed}"
    return trimmed


def _default_client_factory(cluster_url: str) -> KustoExecutor:
    kcsb = KustoConnectionStringBuilder.with_azure_token_credential(
        cluster_url, DefaultAzureCredential()
    )
    return KustoClient(kcsb)


@dataclass
class KustoClientProvider:
    """
    Thread-safe cache of authenticated clients keyed by normalized cluster URL.

    Clients are built lazily with ``DefaultAzureCredential`` on first use.
    """

    client_factory: Callable[[str], KustoExecutor] = _default_client_factory
    _clients: dict[str, KustoExecutor] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __call__(self, cluster_url: str) -> KustoExecutor:
        """
        Return the cached client for a cluster, creating it on first use.

        Returns
        -------
        KustoExecutor
            Client bound to the cluster.
        """
        url = normalize_cluster_url(cluster_url)
        with self._lock:
            client = self._clients.get(url)
            if client is None:
                LOG.info("Creating Kusto client for %s", url)
                client = self.client_factory(url)
                self._clients[url] = client
            return client

    def close(self) -> None:
        """Close and forget every cached client."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            close = getattr(client, "close", None)
            if callable(close):
                close()


def get_observability_from_config(cfg: ServingConfig) -> ServiceObservability | None:
    """
    Derive service observability settings from configuration flags.

    Returns
    -------
    ServiceObservability | None
        Enabled observability config when toggled on; otherwise ``None``.
    """
    if not cfg.enable_observability:
        return None
    return ServiceObservability(enabled=True)


def build_query_service(
    cfg: ServingConfig,
    *,
    clients: Callable[[str], KustoExecutor] | None = None,
    observability: ServiceObservability | None = None,
) -> KustoQueryService:
    """
    Construct the query service from configuration.

    Parameters
    ----------
    cfg:
        Validated serving configuration.
    clients:
        Cluster-URL to client lookup; defaults to a ``KustoClientProvider``.
    observability:
        Optional observability override; derived from ``cfg`` when omitted.

    Returns
    -------
    KustoQueryService
        Service bound to the client lookup and configuration.
    """
    return KustoQueryService(
        clients=clients or KustoClientProvider(),
        config=cfg,
        observability=observability or get_observability_from_config(cfg),
    )


__all__ = [
    "KustoClientProvider",
    "build_query_service",
    "get_observability_from_config",
    "normalize_cluster_url",
]
