"""Stored-function contracts: parameter parsing, argument checks and invocation building."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Literal

from kustomcp.serving.backend.transform import DYNAMIC_TYPE
from kustomcp.serving.mcp import errors
from kustomcp.serving.mcp.models import FunctionParameter

LOG = logging.getLogger("kustomcp.serving.backend.functions")

FORBIDDEN_PIPELINE_COMMANDS = (".set", ".drop", ".create", ".alter", ".delete")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())
_QUOTES = frozenset({"'", '"'})

ResolutionStatus = Literal["resolved", "degraded"]


@dataclass(frozen=True)
class ParameterResolution:
    """
    Outcome of parsing a declared parameter list.

    ``degraded`` means the text could not be parsed and ``parameters`` is empty
    because the contract is unknown, not because the function takes none.
    """

    status: ResolutionStatus
    parameters: tuple[FunctionParameter, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class Invocation:
    """
    A stored-function call plus the values bound to its declared query parameters.

    ``declaration`` holds the ``declare query_parameters(...)`` statement when
    any value is bound; ``statement`` joins it with the call and pipeline.
    """

    call: str
    parameters: dict[str, object] = field(default_factory=dict)
    declaration: str | None = None
    pipeline: str | None = None

    @property
    def statement(self) -> str:
        """Full statement text sent to the cluster."""
        parts = [self.declaration, self.call, self.pipeline]
        return "\n".join(part for part in parts if part)


def _split_top_level(text: str, delimiter: str, *, maxsplit: int = -1) -> list[str]:
    """
    Split on a delimiter that is not nested in brackets or quotes.

    Returns
    -------
    list[str]
        Untrimmed parts.

    Raises
    ------
    ValueError
        When brackets or quotes are unbalanced.
    """
    parts: list[str] = []
    current: list[str] = []
    stack: list[str] = []
    quote: str | None = None
    escaped = False
    for char in text:
        if quote is not None:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS:
            if not stack or stack.pop() != char:
                message = f"unbalanced '{char}' in {text!r}"
                raise ValueError(message)
        elif char == delimiter and not stack and maxsplit != 0:
            parts.append("".join(current))
            current = []
            maxsplit -= 1
            continue
        current.append(char)
    if quote is not None or stack:
        message = f"unterminated quote or bracket in {text!r}"
        raise ValueError(message)
    parts.append("".join(current))
    return parts


def _parse_entry(entry: str) -> FunctionParameter:
    pieces = _split_top_level(entry, "=", maxsplit=1)
    declaration = pieces[0].strip()
    default_value = pieces[1].strip() if len(pieces) > 1 else None
    if default_value == "":
        message = f"empty default value in {entry!r}"
        raise ValueError(message)

    name, sep, type_name = declaration.partition(":")
    name = name.strip()
    type_name = type_name.strip()
    if not _IDENTIFIER.match(name):
        message = f"invalid parameter name in {entry!r}"
        raise ValueError(message)
    if sep and not type_name:
        message = f"empty parameter type in {entry!r}"
        raise ValueError(message)

    return FunctionParameter(
        name=name,
        type=type_name or DYNAMIC_TYPE,
        has_default_value=default_value is not None,
        default_value=default_value,
    )


def parse_function_parameters(text: str | None) -> ParameterResolution:
    """
    Parse a declaration such as ``(a: string, b: long = 5)``.

    Parameters
    ----------
    text:
        Parameter list as reported by ``.show function``.

    Returns
    -------
    ParameterResolution
        ``resolved`` with the parameters in declaration order, or ``degraded``
        with no parameters when any entry is malformed.
    """
    stripped = (text or "").strip()
    if stripped.startswith("(") and stripped.endswith(")"):
        stripped = stripped[1:-1]
    if not stripped.strip():
        return ParameterResolution(status="resolved")

    try:
        entries = [part.strip() for part in _split_top_level(stripped, ",")]
        parameters = tuple(_parse_entry(entry) for entry in entries if entry)
    except ValueError as exc:
        LOG.warning("Failed to parse function parameters %r: %s", text, exc)
        return ParameterResolution(status="degraded", error=str(exc))
    return ParameterResolution(status="resolved", parameters=parameters)


def resolve_parameters(text: str | None) -> list[FunctionParameter]:
    """
    Parse a parameter declaration, degrading to an empty list on malformed input.

    Returns
    -------
    list[FunctionParameter]
        Declared parameters; empty for ``()`` or unparseable text.
    """
    return list(parse_function_parameters(text).parameters)


def require_function_name(name: str) -> str:
    """
    Validate a function name before it is interpolated into a statement.

    Returns
    -------
    str
        The trimmed name.

    Raises
    ------
    errors.McpError
        When the name is not a plain identifier.
    """
    trimmed = name.strip()
    if not _IDENTIFIER.match(trimmed):
        message = f"Invalid function name: {name!r}"
        raise errors.invalid_argument(message)
    return trimmed


def verify_arguments(
    parameters: Sequence[FunctionParameter], supplied: Mapping[str, object]
) -> None:
    """
    Ensure every parameter without a default has a supplied value.

    Raises
    ------
    errors.McpError
        ``kusto.missing_parameter`` naming the first missing parameter.
    """
    for param in parameters:
        if param.name not in supplied and not param.has_default_value:
            raise errors.missing_parameter(param.name)


def validate_pipeline(pipeline: str) -> str:
    """
    Check a caller-supplied pipeline suffix.

    Mutating commands are rejected first, then suffixes that do not start
    with ``|``.

    Returns
    -------
    str
        The trimmed pipeline.

    Raises
    ------
    errors.McpError
        ``kusto.forbidden_operation`` or ``kusto.invalid_pipeline``.
    """
    trimmed = pipeline.strip()
    lowered = trimmed.lower()
    for command in FORBIDDEN_PIPELINE_COMMANDS:
        if command in lowered:
            raise errors.forbidden_operation(command)
    if not trimmed.startswith("|"):
        message = "Pipeline must start with '|'"
        raise errors.invalid_pipeline(message)
    return trimmed


def _call_statement(
    function_name: str,
    parameters: Sequence[FunctionParameter],
    values: Mapping[str, object],
) -> Invocation:
    declarations: list[str] = []
    call_args: list[str] = []
    bound: dict[str, object] = {}
    skipped_default = False
    for param in parameters:
        if param.name not in values:
            skipped_default = True
            continue
        declarations.append(f"{param.name}:{param.type}")
        # Positional binding breaks once a defaulted parameter was skipped.
        call_args.append(f"{param.name}={param.name}" if skipped_default else param.name)
        bound[param.name] = values[param.name]

    call = f"{function_name}({', '.join(call_args)})"
    if not declarations:
        return Invocation(call=call)
    declaration = f"declare query_parameters({', '.join(declarations)});"
    return Invocation(call=call, parameters=bound, declaration=declaration)


def build_invocation(
    function_name: str,
    parameters: Sequence[FunctionParameter],
    supplied: Mapping[str, object],
    pipeline: str | None = None,
) -> Invocation:
    """
    Build a parameterized call of a stored function.

    Supplied values are bound out-of-band via ``declare query_parameters``;
    omitted defaulted parameters are left to the store's defaults.

    Parameters
    ----------
    function_name:
        Stored function to invoke.
    parameters:
        Declared parameters of the function.
    supplied:
        Caller arguments keyed by parameter name.
    pipeline:
        Optional suffix such as ``| where x > 1 | take 10``.

    Returns
    -------
    Invocation
        Statement text and bound values.

    Raises
    ------
    errors.McpError
        For a forbidden or malformed pipeline, an invalid function name or a
        missing required parameter.
    """
    validated_pipeline = validate_pipeline(pipeline) if pipeline else None
    name = require_function_name(function_name)
    verify_arguments(parameters, supplied)
    values = {param.name: supplied[param.name] for param in parameters if param.name in supplied}
    invocation = _call_statement(name, parameters, values)
    if validated_pipeline is None:
        return invocation
    return replace(invocation, pipeline=validated_pipeline)


def fabricate_value(type_name: str) -> object:
    """
    Produce a placeholder argument for a synthetic dry-run of a function.

    Returns
    -------
    object
        A value of roughly the declared type.
    """
    lowered = type_name.lower()
    if "string" in lowered:
        return "fake_string"
    if "datetime" in lowered:
        return datetime.now(UTC)
    if "int" in lowered or "long" in lowered:
        return 1
    if "real" in lowered or "double" in lowered:
        return 1.0
    if "bool" in lowered:
        return True
    if "timespan" in lowered:
        return "1h"
    return "fake_value"


def dry_run_invocation(
    function_name: str, parameters: Sequence[FunctionParameter]
) -> Invocation:
    """
    Build a call that fills every required parameter with a fabricated value.

    Returns
    -------
    Invocation
        Statement invoking the function plus the fabricated bindings.
    """
    name = require_function_name(function_name)
    values = {
        param.name: fabricate_value(param.type)
        for param in parameters
        if not param.has_default_value
    }
    return _call_statement(name, parameters, values)


__all__ = [
    "FORBIDDEN_PIPELINE_COMMANDS",
    "Invocation",
    "ParameterResolution",
    "build_invocation",
    "dry_run_invocation",
    "fabricate_value",
    "parse_function_parameters",
    "require_function_name",
    "resolve_parameters",
    "validate_pipeline",
    "verify_arguments",
]
