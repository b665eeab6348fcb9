"""Timeout-governed execution of statements against a Kusto cluster."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Protocol

from azure.kusto.data import ClientRequestProperties
from azure.kusto.data.response import KustoResponseDataSet

from kustomcp.config.serving_models import OperationClass, TimeoutConfig
from kustomcp.serving.mcp import errors

LOG = logging.getLogger("kustomcp.serving.backend.executor")

TIMEOUT_INDICATORS = ("timeout", "timed out", "request timed out", "query timeout")
QUERY_TIMEOUT_HINT = "Consider adding time filters, limits, or reducing data scope."
DEFAULT_TIMEOUT_HINT = "Try again or contact administrator if this persists."


class KustoExecutor(Protocol):
    """Authenticated handle bound to one cluster; satisfied by ``KustoClient``."""

    def execute(
        self,
        database: str | None,
        query: str,
        properties: ClientRequestProperties | None = None,
    ) -> KustoResponseDataSet:
        """Run a query or management command."""
        ...


def is_timeout_error(exc: BaseException) -> bool:
    """
    Return True when an upstream error reads like a timeout.

    Returns
    -------
    bool
        Whether any timeout indicator occurs in the error text.
    """
    text = str(exc).lower()
    return any(indicator in text for indicator in TIMEOUT_INDICATORS)


def format_seconds(timeout_ms: int) -> str:
    """
    Render a millisecond timeout as seconds, e.g. ``30000 -> "30s"``.

    Returns
    -------
    str
        Human-readable seconds.
    """
    return f"{timeout_ms / 1000:g}s"


def format_parameter_value(value: object) -> str:
    """
    Render a Python value as the literal text Kusto parses for a query parameter.

    Parameters
    ----------
    value:
        Caller-supplied or fabricated argument value.

    Returns
    -------
    str
        Literal text suitable for ``ClientRequestProperties.set_parameter``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        moment = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return f"datetime({moment.astimezone(UTC).isoformat().replace('+00:00', 'Z')})"
    if isinstance(value, timedelta):
        return f"timespan({value.total_seconds():g}s)"
    if isinstance(value, (dict, list, tuple)):
        return f"dynamic({json.dumps(value, default=str)})"
    if value is None:
        return "dynamic(null)"
    return str(value)


class TimeoutGovernedExecutor:
    """Issue statements with operation-class timeouts and rewrite timeout failures."""

    def __init__(self, client: KustoExecutor, timeouts: TimeoutConfig) -> None:
        self._client = client
        self._timeouts = timeouts

    @property
    def timeouts(self) -> TimeoutConfig:
        """Timeout configuration applied to every request."""
        return self._timeouts

    def execute(
        self,
        database: str | None,
        statement: str,
        operation_class: OperationClass,
        parameters: Mapping[str, object] | None = None,
    ) -> KustoResponseDataSet:
        """
        Run one statement with the effective timeout for its operation class.

        Parameters
        ----------
        database:
            Target database, or ``None`` for cluster-level commands.
        statement:
            Query text or management command.
        operation_class:
            ``metadata``, ``query`` or ``default``; selects the timeout.
        parameters:
            Named values bound out-of-band through the request properties.

        Returns
        -------
        KustoResponseDataSet
            Raw response from the cluster.

        Raises
        ------
        errors.McpError
            ``kusto.timeout`` when the upstream error indicates a timeout.
        """
        timeout_ms = self._timeouts.for_operation(operation_class)
        properties = ClientRequestProperties()
        properties.set_option(
            ClientRequestProperties.request_timeout_option_name,
            timedelta(milliseconds=timeout_ms),
        )
        for name, value in (parameters or {}).items():
            properties.set_parameter(name, format_parameter_value(value))

        start = time.perf_counter()
        LOG.debug(
            "executing %s statement database=%s length=%d timeout_ms=%d",
            operation_class,
            database,
            len(statement),
            timeout_ms,
        )
        try:
            response = self._client.execute(database, statement, properties)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if not is_timeout_error(exc):
                LOG.debug(
                    "%s statement failed after %.1fms: %s", operation_class, elapsed_ms, exc
                )
                raise
            LOG.warning(
                "Query timeout occurred database=%s length=%d timeout_ms=%d operation=%s",
                database,
                len(statement),
                timeout_ms,
                operation_class,
            )
            hint = QUERY_TIMEOUT_HINT if operation_class == "query" else DEFAULT_TIMEOUT_HINT
            message = f"Query timeout after {format_seconds(timeout_ms)}. {hint} Original: {exc}"
            raise errors.timeout_exceeded(
                message, timeout_ms=timeout_ms, operation_class=operation_class
            ) from exc
        LOG.debug(
            "%s statement completed in %.1fms",
            operation_class,
            (time.perf_counter() - start) * 1000,
        )
        return response


__all__ = [
    "KustoExecutor",
    "TimeoutGovernedExecutor",
    "format_parameter_value",
    "format_seconds",
    "is_timeout_error",
]
