"""Minimal expectation helpers to avoid assert statements in tests."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from kustomcp.serving.mcp.errors import McpError

T = TypeVar("T")


def _prefix(label: str | None) -> str:
    return f"{label}: " if label else ""


def expect_true(condition: object, *, message: str | None = None) -> None:
    """
    Raise AssertionError when condition is falsy.

    Raises
    ------
    AssertionError
        If ``condition`` evaluates to ``False``.
    """
    if bool(condition):
        return
    failure_message = message or "Expected condition to be true"
    raise AssertionError(failure_message)


def expect_equal(actual: T, expected: T, *, label: str | None = None) -> None:
    """
    Assert equality with an optional label.

    Raises
    ------
    AssertionError
        If ``actual`` and ``expected`` differ.
    """
    if actual == expected:
        return
    failure_message = f"{_prefix(label)}expected {expected!r}, got {actual!r}"
    raise AssertionError(failure_message)


def expect_in(member: T, container: Iterable[T], *, label: str | None = None) -> None:
    """
    Assert that member is present in container.

    Raises
    ------
    AssertionError
        If ``member`` is not found.
    """
    if member in container:
        return
    failure_message = f"{_prefix(label)}{member!r} not found in {container!r}"
    raise AssertionError(failure_message)


def expect_problem(func: Callable[[], object], code: str) -> McpError:
    """
    Run ``func`` and require it to raise an McpError with the given problem code.

    Returns
    -------
    McpError
        The raised error, for further inspection.

    Raises
    ------
    AssertionError
        If nothing is raised or the code differs.
    """
    try:
        func()
    except McpError as exc:
        if exc.code != code:
            failure_message = f"expected problem {code!r}, got {exc.code!r}: {exc}"
            raise AssertionError(failure_message) from exc
        return exc
    failure_message = f"expected problem {code!r}, but no error was raised"
    raise AssertionError(failure_message)
