"""Timeout-governed execution and parameter literal rendering."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from azure.kusto.data import ClientRequestProperties

from kustomcp.config.serving_models import TimeoutConfig
from kustomcp.serving.backend.executor import (
    TimeoutGovernedExecutor,
    format_parameter_value,
    format_seconds,
    is_timeout_error,
)
from tests._helpers.expect import expect_equal, expect_problem, expect_true
from tests._helpers.fakes import FakeKustoClient, make_response

TIMEOUTS = TimeoutConfig(default=15_000, metadata=30_000, query=60_000, maximum=120_000)


def _timeout_of(client: FakeKustoClient) -> object:
    properties = client.calls[-1].properties
    if properties is None:
        pytest.fail("request properties were not supplied")
    return properties.get_option(ClientRequestProperties.request_timeout_option_name, None)


@pytest.mark.parametrize(
    ("operation_class", "expected_ms"),
    [("metadata", 30_000), ("query", 60_000), ("default", 15_000)],
)
def test_server_timeout_follows_operation_class(operation_class: str, expected_ms: int) -> None:
    """The servertimeout option reflects the operation class."""
    client = FakeKustoClient(responses=[make_response([{"x": 1}])])
    executor = TimeoutGovernedExecutor(client, TIMEOUTS)
    executor.execute("db", "T | take 1", operation_class)  # type: ignore[arg-type]
    expect_equal(_timeout_of(client), timedelta(milliseconds=expected_ms))
    expect_equal(client.calls[-1].database, "db")


def test_metadata_timeout_is_reported_in_seconds() -> None:
    """An upstream 'Request timed out' becomes a timeout problem naming 30s."""
    client = FakeKustoClient(responses=[RuntimeError("Request timed out")])
    executor = TimeoutGovernedExecutor(client, TIMEOUTS)
    exc = expect_problem(
        lambda: executor.execute("db", ".show tables", "metadata"), "kusto.timeout"
    )
    detail = exc.detail.detail or ""
    expect_true(detail.startswith("Query timeout after 30s."), message=detail)
    expect_true(detail.endswith("Original: Request timed out"), message=detail)
    expect_equal(exc.detail.status, 504)
    expect_equal(exc.detail.data, {"timeout_ms": 30_000, "operation_class": "metadata"})


def test_query_timeout_uses_query_hint() -> None:
    """Query-class timeouts suggest narrowing the query."""
    client = FakeKustoClient(responses=[RuntimeError("Query timeout exceeded")])
    executor = TimeoutGovernedExecutor(client, TIMEOUTS)
    exc = expect_problem(lambda: executor.execute("db", "T", "query"), "kusto.timeout")
    expect_true(
        "Consider adding time filters" in (exc.detail.detail or ""),
        message=f"missing hint in {exc.detail.detail!r}",
    )


def test_other_errors_propagate_unchanged() -> None:
    """Non-timeout failures are re-raised as-is."""
    client = FakeKustoClient(responses=[RuntimeError("Semantic error: unknown table")])
    executor = TimeoutGovernedExecutor(client, TIMEOUTS)
    with pytest.raises(RuntimeError, match="Semantic error"):
        executor.execute("db", "Nope", "query")


def test_parameters_are_bound_on_request_properties() -> None:
    """Named parameters travel on the request properties, not in the text."""
    client = FakeKustoClient(responses=[make_response([])])
    executor = TimeoutGovernedExecutor(client, TIMEOUTS)
    executor.execute("db", "declare query_parameters(n:long);\nF(n)", "query", {"n": 5})
    properties = client.calls[-1].properties
    if properties is None:
        pytest.fail("request properties were not supplied")
    expect_equal(properties.get_parameter("n", None), "5")
    expect_true("5" not in client.calls[-1].query, message="value leaked into query text")


def test_timeout_detection_is_case_insensitive() -> None:
    """Timeout indicators match regardless of case."""
    expect_true(is_timeout_error(RuntimeError("TIMED OUT waiting")), message="upper case")
    expect_true(not is_timeout_error(RuntimeError("access denied")), message="unrelated error")


def test_format_seconds() -> None:
    """Milliseconds render as compact seconds."""
    expect_equal(format_seconds(30_000), "30s")
    expect_equal(format_seconds(1_500), "1.5s")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, "true"),
        (42, "42"),
        (1.5, "1.5"),
        ("abc", "abc"),
        (None, "dynamic(null)"),
        ({"a": [1, 2]}, 'dynamic({"a": [1, 2]})'),
        (timedelta(hours=1), "timespan(3600s)"),
        (datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC), "datetime(2024-01-02T03:04:05Z)"),
        (
            datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2))),
            "datetime(2024-01-02T03:04:05Z)",
        ),
        (datetime(2024, 1, 2, 3, 4, 5), "datetime(2024-01-02T03:04:05Z)"),
    ],
)
def test_format_parameter_value(value: object, expected: str) -> None:
    """Python values render as Kusto literal text."""
    expect_equal(format_parameter_value(value), expected)
