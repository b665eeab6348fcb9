"""Typed MCP response models and error payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

RowDict = dict[str, object]
RiskLevel = Literal["low", "medium", "high"]


class ProblemDetail(BaseModel):
    """Problem Details payload for MCP error responses."""

    type: str = Field(default="about:blank")
    title: str
    detail: str | None = None
    status: int | None = None
    code: str | None = None
    data: dict[str, object] | None = None


class Column(BaseModel):
    """One output column of a tabular result."""

    name: str
    type: str


class QueryResult(BaseModel):
    """
    Governed tabular result returned by query and function tools.

    Rows keep the store's native Python values (datetime, timedelta, Decimal,
    nested dynamic values); they are converted to JSON-safe values only when
    the model is dumped in JSON mode at the transport boundary.
    """

    columns: list[Column] = Field(default_factory=list)
    rows: list[RowDict] = Field(default_factory=list)
    row_count: int = 0
    execution_time_ms: float = 0.0
    warning: str | None = None
    suggestion: str | None = None
    truncated: bool = False
    original_row_count: int | None = None

    @model_validator(mode="after")
    def _check_counts(self) -> QueryResult:
        """
        Keep ``row_count`` consistent with ``rows`` and truncation metadata.

        Returns
        -------
        QueryResult
            The validated result.

        Raises
        ------
        ValueError
            When the counts disagree.
        """
        if self.row_count != len(self.rows):
            message = f"row_count {self.row_count} does not match {len(self.rows)} rows"
            raise ValueError(message)
        if self.truncated and (
            self.original_row_count is None or self.original_row_count <= self.row_count
        ):
            message = "truncated results must report an original_row_count above row_count"
            raise ValueError(message)
        return self


class FunctionParameter(BaseModel):
    """Declared parameter of a stored function."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "dynamic"
    has_default_value: bool = False
    default_value: str | None = None


class OutputColumn(BaseModel):
    """Output column of a stored function, with an optional description."""

    name: str
    type: str
    description: str | None = None


class FunctionSchemaResponse(BaseModel):
    """Parameters and discovered output shape of a stored function."""

    name: str
    parameters: list[FunctionParameter] = Field(default_factory=list)
    output_schema: list[OutputColumn] = Field(default_factory=list)
    execution_time_ms: float = 0.0


class TableSchema(BaseModel):
    """Ordered column list of a table."""

    name: str
    columns: list[Column] = Field(default_factory=list)


class TableSchemaResponse(BaseModel):
    """Table schema lookup; ``found`` is False when the table does not exist."""

    table_name: str
    found: bool
    table: TableSchema | None = None
    execution_time_ms: float = 0.0


class TableSummary(BaseModel):
    """Row of the table listing."""

    name: str
    database_name: str | None = None
    folder: str | None = None
    description: str | None = None


class FunctionSummary(BaseModel):
    """Row of the function listing."""

    name: str
    folder: str | None = None
    description: str | None = None


class DatabaseSummary(BaseModel):
    """Row of the database listing."""

    name: str
    description: str | None = None


class TableListResponse(BaseModel):
    """Tables visible in a database."""

    tables: list[TableSummary] = Field(default_factory=list)
    execution_time_ms: float = 0.0


class FunctionListResponse(BaseModel):
    """Stored functions visible in a database."""

    functions: list[FunctionSummary] = Field(default_factory=list)
    execution_time_ms: float = 0.0


class DatabaseListResponse(BaseModel):
    """Databases visible on a cluster."""

    databases: list[DatabaseSummary] = Field(default_factory=list)
    execution_time_ms: float = 0.0


__all__ = [
    "Column",
    "DatabaseListResponse",
    "DatabaseSummary",
    "FunctionListResponse",
    "FunctionParameter",
    "FunctionSchemaResponse",
    "FunctionSummary",
    "OutputColumn",
    "ProblemDetail",
    "QueryResult",
    "RiskLevel",
    "RowDict",
    "TableListResponse",
    "TableSchema",
    "TableSchemaResponse",
    "TableSummary",
]
