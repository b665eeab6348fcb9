"""MCP error taxonomy and helpers for Problem Details responses."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from kustomcp.serving.mcp.models import ProblemDetail

PROBLEM_BASE = "https://problems.kustomcp.dev"


@dataclass
class McpError(Exception):
    """Base MCP error carrying a ProblemDetail payload."""

    detail: ProblemDetail

    def __str__(self) -> str:
        """
        Return a concise string for logging/diagnostics.

        Returns
        -------
        str
            Concise representation of the problem.
        """
        return f"{self.detail.title}: {self.detail.detail or ''}".strip()

    @property
    def code(self) -> str | None:
        """Stable problem code, e.g. ``kusto.timeout``."""
        return self.detail.code


def _problem(
    code: str,
    title: str,
    message: str,
    *,
    status: int,
    data: dict[str, object] | None = None,
) -> McpError:
    return McpError(
        detail=ProblemDetail(
            type=f"{PROBLEM_BASE}/{code}",
            title=title,
            detail=message,
            status=status,
            code=code,
            data=data,
        )
    )


def invalid_argument(message: str) -> McpError:
    """
    Construct an invalid-argument problem.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem("kusto.invalid_argument", "Invalid argument", message, status=400)


def missing_parameter(name: str) -> McpError:
    """
    Construct a problem for a required function parameter the caller omitted.

    Returns
    -------
    McpError
        Error naming the missing parameter.
    """
    return _problem(
        "kusto.missing_parameter",
        "Missing parameter",
        f"Required parameter '{name}' is missing",
        status=400,
        data={"parameter": name},
    )


def invalid_pipeline(message: str) -> McpError:
    """
    Construct a problem for a malformed pipeline suffix.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem("kusto.invalid_pipeline", "Invalid pipeline", message, status=400)


def forbidden_operation(operation: str) -> McpError:
    """
    Construct a problem for a mutating command found in caller-supplied text.

    Returns
    -------
    McpError
        Error naming the rejected operation.
    """
    return _problem(
        "kusto.forbidden_operation",
        "Forbidden operation",
        f"Operation '{operation}' not allowed",
        status=400,
        data={"operation": operation},
    )


def not_found(message: str) -> McpError:
    """
    Construct a not-found problem.

    Returns
    -------
    McpError
        Error wrapping a ProblemDetail payload.
    """
    return _problem("kusto.not_found", "Not found", message, status=404)


def timeout_exceeded(message: str, *, timeout_ms: int, operation_class: str) -> McpError:
    """
    Construct a problem for a request that exceeded its server timeout.

    Returns
    -------
    McpError
        Error carrying the effective timeout and operation class.
    """
    return _problem(
        "kusto.timeout",
        "Timeout exceeded",
        message,
        status=504,
        data={"timeout_ms": timeout_ms, "operation_class": operation_class},
    )


def upstream_failure(message: str) -> McpError:
    """
    Construct a problem for any other failure reported by the cluster.

    Returns
    -------
    McpError
        Error wrapping the original message.
    """
    return _problem("kusto.upstream_failure", "Upstream failure", message, status=502)


def problem(
    code: str,
    title: str,
    detail: str,
    *,
    status: int | None = None,
    extras: dict[str, object] | None = None,
) -> ProblemDetail:
    """
    Create a ProblemDetail outside the tool path, e.g. for CLI failures.

    Returns
    -------
    ProblemDetail
        Problem payload typed under the project namespace.
    """
    return ProblemDetail(
        type=f"{PROBLEM_BASE}/{code}",
        title=title,
        detail=detail,
        status=status,
        code=code,
        data=extras,
    )


def log_problem(logger: logging.Logger | logging.LoggerAdapter, detail: ProblemDetail) -> None:
    """Emit a Problem Detail as a structured error log."""
    logger.error(json.dumps(detail.model_dump(exclude_none=True), default=str))
