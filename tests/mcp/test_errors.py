"""Problem detail construction for MCP errors."""

from __future__ import annotations

import json
import logging

import pytest

from kustomcp.serving.mcp import errors
from tests._helpers.expect import expect_equal, expect_true


@pytest.mark.parametrize(
    ("error", "code", "status"),
    [
        (errors.invalid_argument("bad"), "kusto.invalid_argument", 400),
        (errors.missing_parameter("a"), "kusto.missing_parameter", 400),
        (errors.invalid_pipeline("bad"), "kusto.invalid_pipeline", 400),
        (errors.forbidden_operation(".drop"), "kusto.forbidden_operation", 400),
        (errors.not_found("gone"), "kusto.not_found", 404),
        (
            errors.timeout_exceeded("slow", timeout_ms=1000, operation_class="query"),
            "kusto.timeout",
            504,
        ),
        (errors.upstream_failure("boom"), "kusto.upstream_failure", 502),
    ],
)
def test_constructors_assign_codes_and_status(
    error: errors.McpError, code: str, status: int
) -> None:
    """Each constructor yields a stable code, status and namespaced type."""
    expect_equal(error.code, code)
    expect_equal(error.detail.status, status)
    expect_equal(error.detail.type, f"{errors.PROBLEM_BASE}/{code}")


def test_str_is_concise() -> None:
    """String form joins title and detail."""
    expect_equal(
        str(errors.not_found("Function 'F' not found")), "Not found: Function 'F' not found"
    )


def test_log_problem_emits_json(caplog: pytest.LogCaptureFixture) -> None:
    """Problems are logged as a single JSON line."""
    logger = logging.getLogger("kustomcp.tests")
    pd = errors.problem("cli.failure", "CLI command failed", "boom", extras={"command": "serve"})
    with caplog.at_level(logging.ERROR, logger="kustomcp.tests"):
        errors.log_problem(logger, pd)
    payload = json.loads(caplog.records[-1].getMessage())
    expect_equal(payload["code"], "cli.failure")
    expect_equal(payload["data"], {"command": "serve"})
    expect_true("status" not in payload, message="unset fields omitted")
