"""Normalize Kusto responses into columns and row dictionaries."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from azure.kusto.data.response import KustoResponseDataSet

from kustomcp.serving.mcp.models import Column, RowDict

LOG = logging.getLogger("kustomcp.serving.backend.transform")

DYNAMIC_TYPE = "dynamic"
LARGE_RESULT_ROWS = 1000
SLOW_TRANSFORM_MS = 100.0


@dataclass(frozen=True)
class TabularResult:
    """Columns plus rows extracted from a primary result table."""

    columns: list[Column] = field(default_factory=list)
    rows: list[RowDict] = field(default_factory=list)


def transform_response(response: KustoResponseDataSet) -> TabularResult:
    """
    Convert the primary result table of a response into a TabularResult.

    Parameters
    ----------
    response:
        Raw response returned by the cluster.

    Returns
    -------
    TabularResult
        Columns and rows in store order; empty when there is no primary table.
    """
    start = time.perf_counter()
    primary_results = getattr(response, "primary_results", None) or []
    if not primary_results:
        return TabularResult()
    table = primary_results[0]

    columns = [
        Column(
            name=getattr(col, "column_name", None) or "",
            type=getattr(col, "column_type", None) or DYNAMIC_TYPE,
        )
        for col in table.columns
    ]
    rows: list[RowDict] = [dict(row.to_dict()) for row in table.rows]

    elapsed_ms = (time.perf_counter() - start) * 1000
    if len(rows) > LARGE_RESULT_ROWS or elapsed_ms > SLOW_TRANSFORM_MS:
        LOG.debug(
            "transform completed rows=%d columns=%d elapsed_ms=%.1f",
            len(rows),
            len(columns),
            elapsed_ms,
        )
    return TabularResult(columns=columns, rows=rows)


__all__ = ["DYNAMIC_TYPE", "TabularResult", "transform_response"]
