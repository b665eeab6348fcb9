"""Serving configuration for the Kusto MCP server."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

OperationClass = Literal["metadata", "query", "default"]

MAX_HARD_LIMIT = 100_000
MAX_TIMEOUT_MS = 600_000


def _parse_env_flag(value: str | None, *, default: bool) -> bool:
    """
    Interpret a string environment value as a boolean.

    Parameters
    ----------
    value:
        Raw environment variable value or None.
    default:
        Value to return when the environment variable is unset.

    Returns
    -------
    bool
        Parsed boolean flag.
    """
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_int(name: str, default: int) -> int:
    """
    Read an integer environment variable.

    Returns
    -------
    int
        Parsed value, or ``default`` when the variable is unset.

    Raises
    ------
    ValueError
        When the variable is set to a non-integer value.
    """
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        message = f"{name} must be an integer, got: {raw!r}"
        raise ValueError(message) from exc


class QueryLimitsConfig(BaseModel):
    """Row-count tiers applied to every tabular result."""

    model_config = ConfigDict(frozen=True)

    warning_threshold: int = Field(
        default=1000,
        description="Rows above which a 'consider limiting' suggestion is attached.",
    )
    soft_limit: int = Field(
        default=5000,
        description="Rows above which a large-result warning is attached.",
    )
    hard_limit: int = Field(
        default=50_000,
        description="Maximum rows returned; larger results are truncated.",
    )

    @model_validator(mode="after")
    def _validate_ordering(self) -> QueryLimitsConfig:
        """
        Enforce ``0 < warning_threshold < soft_limit < hard_limit``.

        Returns
        -------
        QueryLimitsConfig
            The validated limits.

        Raises
        ------
        ValueError
            When the thresholds are out of order or out of range.
        """
        if self.warning_threshold <= 0 or self.warning_threshold > self.hard_limit:
            message = (
                f"QUERY_WARNING_THRESHOLD must be between 1 and {self.hard_limit}, "
                f"got: {self.warning_threshold}"
            )
            raise ValueError(message)
        if self.soft_limit <= self.warning_threshold or self.soft_limit > self.hard_limit:
            message = (
                f"QUERY_SOFT_LIMIT must be between {self.warning_threshold} and "
                f"{self.hard_limit}, got: {self.soft_limit}"
            )
            raise ValueError(message)
        if self.hard_limit <= self.soft_limit or self.hard_limit > MAX_HARD_LIMIT:
            message = (
                f"QUERY_HARD_LIMIT must be between {self.soft_limit} and {MAX_HARD_LIMIT}, "
                f"got: {self.hard_limit}"
            )
            raise ValueError(message)
        return self


class TimeoutConfig(BaseModel):
    """Per-operation-class server timeouts, in milliseconds."""

    model_config = ConfigDict(frozen=True)

    default: int = Field(default=30_000, description="Timeout for unclassified requests.")
    metadata: int = Field(default=30_000, description="Timeout for management commands.")
    query: int = Field(default=60_000, description="Timeout for user queries and functions.")
    maximum: int = Field(default=120_000, description="Upper bound applied to every timeout.")

    @model_validator(mode="after")
    def _validate_bounds(self) -> TimeoutConfig:
        """
        Ensure every timeout is positive and bounded by ``maximum``.

        Returns
        -------
        TimeoutConfig
            The validated timeouts.

        Raises
        ------
        ValueError
            When a timeout is non-positive or exceeds its bound.
        """
        if self.maximum <= 0 or self.maximum > MAX_TIMEOUT_MS:
            message = (
                f"QUERY_TIMEOUT_MAXIMUM must be between 1 and {MAX_TIMEOUT_MS} (10 minutes), "
                f"got: {self.maximum}"
            )
            raise ValueError(message)
        for name, value in (
            ("QUERY_TIMEOUT_DEFAULT", self.default),
            ("QUERY_TIMEOUT_METADATA", self.metadata),
            ("QUERY_TIMEOUT_QUERY", self.query),
        ):
            if value <= 0 or value > self.maximum:
                message = f"{name} must be between 1 and {self.maximum}, got: {value}"
                raise ValueError(message)
        return self

    def for_operation(self, operation_class: OperationClass) -> int:
        """
        Return the effective timeout for an operation class.

        Parameters
        ----------
        operation_class:
            One of ``metadata``, ``query`` or ``default``.

        Returns
        -------
        int
            ``min(configured timeout, maximum)`` in milliseconds.
        """
        return min(getattr(self, operation_class), self.maximum)


class ServingConfig(BaseModel):
    """
    Runtime settings for the MCP server.

    Loaded once at process start; invalid values are fatal startup errors.
    """

    model_config = ConfigDict(frozen=True)

    query_limits: QueryLimitsConfig = Field(default_factory=QueryLimitsConfig)
    query_timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    enable_beta_tools: bool = Field(
        default=False,
        description="Register list-tables, call-function and get-table-schema.",
    )
    enable_observability: bool = Field(
        default=False,
        description="Emit one structured log line per service call.",
    )

    @classmethod
    def from_env(cls) -> ServingConfig:
        """
        Construct a ServingConfig from environment variables.

        Returns
        -------
        ServingConfig
            Validated configuration populated from environment values.
        """
        limits = QueryLimitsConfig(
            warning_threshold=_parse_env_int("QUERY_WARNING_THRESHOLD", 1000),
            soft_limit=_parse_env_int("QUERY_SOFT_LIMIT", 5000),
            hard_limit=_parse_env_int("QUERY_HARD_LIMIT", 50_000),
        )
        timeouts = TimeoutConfig(
            default=_parse_env_int("QUERY_TIMEOUT_DEFAULT", 30_000),
            metadata=_parse_env_int("QUERY_TIMEOUT_METADATA", 30_000),
            query=_parse_env_int("QUERY_TIMEOUT_QUERY", 60_000),
            maximum=_parse_env_int("QUERY_TIMEOUT_MAXIMUM", 120_000),
        )
        return cls(
            query_limits=limits,
            query_timeout=timeouts,
            enable_beta_tools=_parse_env_flag(os.environ.get("ENABLE_BETA_TOOLS"), default=False),
            enable_observability=_parse_env_flag(
                os.environ.get("KUSTO_MCP_OBSERVABILITY"), default=False
            ),
        )


__all__ = [
    "MAX_HARD_LIMIT",
    "MAX_TIMEOUT_MS",
    "OperationClass",
    "QueryLimitsConfig",
    "ServingConfig",
    "TimeoutConfig",
]
