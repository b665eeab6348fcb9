"""Tiered row-count governance applied to tabular results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kustomcp.config.serving_models import QueryLimitsConfig
from kustomcp.serving.backend.analyzer import QueryAnalysis, analyze_query
from kustomcp.serving.backend.transform import TabularResult
from kustomcp.serving.mcp.models import Column, QueryResult, RiskLevel, RowDict

LOG = logging.getLogger("kustomcp.serving.backend.limits")


@dataclass(frozen=True)
class GovernedResult:
    """Result of applying the warning/soft/hard tiers to a tabular result."""

    columns: list[Column] = field(default_factory=list)
    rows: list[RowDict] = field(default_factory=list)
    warning: str | None = None
    suggestion: str | None = None
    truncated: bool = False
    original_row_count: int | None = None
    risk: RiskLevel = "low"

    def to_query_result(self, *, execution_time_ms: float) -> QueryResult:
        """
        Build the transport response model.

        Parameters
        ----------
        execution_time_ms:
            Wall-clock duration of the whole operation.

        Returns
        -------
        QueryResult
            Response model with ``row_count`` derived from the rows.
        """
        return QueryResult(
            columns=self.columns,
            rows=self.rows,
            row_count=len(self.rows),
            execution_time_ms=round(execution_time_ms, 3),
            warning=self.warning,
            suggestion=self.suggestion,
            truncated=self.truncated,
            original_row_count=self.original_row_count,
        )


def _with_suggestions(message: str, analysis: QueryAnalysis) -> str:
    if not analysis.suggestions:
        return message
    return f"{message} {' '.join(analysis.suggestions)}"


def govern_result(
    result: TabularResult,
    limits: QueryLimitsConfig,
    *,
    query: str | None = None,
) -> GovernedResult:
    """
    Apply row-count tiers, attach advisories and truncate oversized results.

    Parameters
    ----------
    result:
        Normalized columns and rows.
    limits:
        Warning, soft and hard thresholds.
    query:
        Statement that produced the rows; analysis is skipped when omitted.

    Returns
    -------
    GovernedResult
        Rows (truncated above ``hard_limit``) with suggestion or warning text.
    """
    row_count = len(result.rows)
    analysis = analyze_query(query) if query else QueryAnalysis()

    if row_count <= limits.warning_threshold:
        return GovernedResult(
            columns=result.columns,
            rows=result.rows,
            suggestion=analysis.suggestions[0] if analysis.suggestions else None,
            risk=analysis.risk,
        )

    if row_count <= limits.soft_limit:
        message = (
            f"Query returned {row_count} rows. Consider adding "
            f"'take {limits.warning_threshold}' for better performance."
        )
        return GovernedResult(
            columns=result.columns,
            rows=result.rows,
            suggestion=_with_suggestions(message, analysis),
            risk=analysis.risk,
        )

    if row_count <= limits.hard_limit:
        message = (
            f"Large result set: {row_count} rows ({analysis.risk} risk). Consider using "
            "time filters or aggregations to reduce data volume."
        )
        return GovernedResult(
            columns=result.columns,
            rows=result.rows,
            warning=_with_suggestions(message, analysis),
            risk=analysis.risk,
        )

    LOG.warning(
        "Query result truncated due to size limits original=%d truncated=%d risk=%s",
        row_count,
        limits.hard_limit,
        analysis.risk,
    )
    message = f"Results truncated at {limits.hard_limit} rows (original: {row_count} rows)."
    return GovernedResult(
        columns=result.columns,
        rows=result.rows[: limits.hard_limit],
        warning=_with_suggestions(message, analysis),
        truncated=True,
        original_row_count=row_count,
        risk=analysis.risk,
    )


__all__ = ["GovernedResult", "govern_result"]
