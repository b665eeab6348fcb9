"""Heuristic risk analysis of query text."""

from __future__ import annotations

import re
from dataclasses import dataclass

from kustomcp.serving.mcp.models import RiskLevel

DIRECT_SCAN_SUGGESTION = "Direct table queries may return large datasets. Add filters and limits."
LIMIT_SUGGESTION = "Consider adding '| take N' to limit results."
TIME_FILTER_SUGGESTION = "Consider adding time filters for better performance."
FILTER_ORDER_SUGGESTION = "Move 'where' clauses before aggregations for better performance."

# Stages that narrow a scan when they immediately follow the source table.
_NARROWING_OPERATORS = frozenset({"where", "filter", "take", "limit", "top", "sample"})

_LEADING_IDENTIFIER = re.compile(r"^\s*[A-Za-z_][A-Za-z0-9_]*\s*(?:\|\s*(?P<op>[A-Za-z-]+)|$)")
_LIMIT_CLAUSE = re.compile(r"\|\s*(?:take|limit)\s+\d+", re.IGNORECASE)
_AGO_FILTER = re.compile(r"where.*ago\(", re.IGNORECASE)
_TIME_COLUMN = re.compile(r"timegenerated|timestamp")

_RISK_ORDER: dict[RiskLevel, int] = {"low": 0, "medium": 1, "high": 2}


@dataclass(frozen=True)
class QueryAnalysis:
    """Advisory suggestions and coarse risk tier for one query."""

    suggestions: tuple[str, ...] = ()
    risk: RiskLevel = "low"


def _raise_risk(current: RiskLevel, candidate: RiskLevel) -> RiskLevel:
    return candidate if _RISK_ORDER[candidate] > _RISK_ORDER[current] else current


def _is_direct_scan(query: str) -> bool:
    match = _LEADING_IDENTIFIER.match(query)
    if match is None:
        return False
    operator = match.group("op")
    return operator is None or operator.lower() not in _NARROWING_OPERATORS


def _where_after_summarize(normalized: str) -> bool:
    where_at = normalized.find("| where")
    summarize_at = normalized.find("| summarize")
    return where_at != -1 and summarize_at != -1 and where_at > summarize_at


def analyze_query(query: str) -> QueryAnalysis:
    """
    Inspect query text and return suggestions with a risk tier.

    Rules apply additively, in order, and never lower the risk:

    1. a bare table reference not immediately narrowed is a direct scan (high);
    2. no ``take``/``limit`` with a row count (at least medium);
    3. no ``ago()`` filter and no timestamp-like column;
    4. the first ``where`` stage placed after the first ``summarize``.

    Parameters
    ----------
    query:
        Query text as supplied by the caller.

    Returns
    -------
    QueryAnalysis
        Suggestions in rule order plus the resulting risk tier.
    """
    stripped = query.strip()
    normalized = stripped.lower()
    suggestions: list[str] = []
    risk: RiskLevel = "low"

    if _is_direct_scan(stripped):
        suggestions.append(DIRECT_SCAN_SUGGESTION)
        risk = _raise_risk(risk, "high")

    if _LIMIT_CLAUSE.search(stripped) is None:
        suggestions.append(LIMIT_SUGGESTION)
        risk = _raise_risk(risk, "medium")

    if _AGO_FILTER.search(stripped) is None and _TIME_COLUMN.search(normalized) is None:
        suggestions.append(TIME_FILTER_SUGGESTION)

    if _where_after_summarize(normalized):
        suggestions.append(FILTER_ORDER_SUGGESTION)

    return QueryAnalysis(suggestions=tuple(suggestions), risk=risk)


__all__ = [
    "DIRECT_SCAN_SUGGESTION",
    "FILTER_ORDER_SUGGESTION",
    "LIMIT_SUGGESTION",
    "TIME_FILTER_SUGGESTION",
    "QueryAnalysis",
    "analyze_query",
]
