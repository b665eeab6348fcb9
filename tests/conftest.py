"""Pytest configuration for the Kusto MCP test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from kustomcp.config.serving_models import ServingConfig
from kustomcp.serving.services.query_service import KustoQueryService
from tests._helpers.fakes import FakeKustoClient

CONFIG_ENV_VARS = (
    "QUERY_WARNING_THRESHOLD",
    "QUERY_SOFT_LIMIT",
    "QUERY_HARD_LIMIT",
    "QUERY_TIMEOUT_DEFAULT",
    "QUERY_TIMEOUT_METADATA",
    "QUERY_TIMEOUT_QUERY",
    "QUERY_TIMEOUT_MAXIMUM",
    "ENABLE_BETA_TOOLS",
    "KUSTO_MCP_OBSERVABILITY",
    "PORT",
)


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from configuration variables set in the host environment.

    Yields
    ------
    None
        Control to the test with the variables removed.
    """
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def fake_client() -> FakeKustoClient:
    """Provide an empty fake Kusto client.

    Returns
    -------
    FakeKustoClient
        Client with no canned responses.
    """
    return FakeKustoClient()


@pytest.fixture
def service(fake_client: FakeKustoClient) -> KustoQueryService:
    """Provide a query service bound to the fake client for every cluster.

    Returns
    -------
    KustoQueryService
        Service with default configuration.
    """
    return KustoQueryService(clients=lambda _url: fake_client, config=ServingConfig())
