"""Transport-agnostic Kusto query application service."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TypeVar

from kustomcp.config.serving_models import OperationClass, ServingConfig
from kustomcp.serving.backend.executor import KustoExecutor, TimeoutGovernedExecutor
from kustomcp.serving.backend.functions import (
    build_invocation,
    parse_function_parameters,
    require_function_name,
)
from kustomcp.serving.backend.limits import govern_result
from kustomcp.serving.backend.schema_queries import (
    function_details_statement,
    function_parameters_statement,
    list_databases_statement,
    list_functions_statement,
    list_tables_statement,
    output_columns,
    output_schema_statement,
    require_table_name,
    table_schema_statement,
)
from kustomcp.serving.backend.transform import DYNAMIC_TYPE, TabularResult, transform_response
from kustomcp.serving.mcp import errors
from kustomcp.serving.mcp.models import (
    Column,
    DatabaseListResponse,
    DatabaseSummary,
    FunctionListResponse,
    FunctionParameter,
    FunctionSchemaResponse,
    FunctionSummary,
    OutputColumn,
    QueryResult,
    TableListResponse,
    TableSchema,
    TableSchemaResponse,
    TableSummary,
)

LOG = logging.getLogger("kustomcp.serving.services.query")

ClientLookup = Callable[[str], KustoExecutor]

T = TypeVar("T")


@dataclass
class ServiceCallMetrics:
    """Structured metrics describing a service invocation."""

    name: str
    duration_ms: float
    cluster: str | None = None
    database: str | None = None
    rows: int | None = None
    truncated: bool | None = None
    error: str | None = None


@dataclass
class ServiceCallContext:
    """Context propagated into observability signals."""

    cluster: str | None = None
    database: str | None = None


@dataclass
class ServiceObservability:
    """Configuration for service-level observability."""

    enabled: bool = False
    logger: logging.Logger = field(default_factory=lambda: LOG)

    def record(self, metrics: ServiceCallMetrics) -> None:
        """
        Emit a structured log line for a service call.

        Parameters
        ----------
        metrics:
            Call metrics describing the invocation outcome.
        """
        if not self.enabled or not self.logger.isEnabledFor(logging.INFO):
            return
        payload: dict[str, object] = {
            "name": metrics.name,
            "duration_ms": round(metrics.duration_ms, 2),
        }
        if metrics.cluster is not None:
            payload["cluster"] = metrics.cluster
        if metrics.database is not None:
            payload["database"] = metrics.database
        if metrics.rows is not None:
            payload["rows"] = metrics.rows
        if metrics.truncated is not None:
            payload["truncated"] = metrics.truncated
        if metrics.error is not None:
            payload["error"] = metrics.error
        self.logger.info("service_call %s", payload)


def _extract_row_count(result: object) -> int | None:
    """
    Derive a row count from the response shapes the service returns.

    Returns
    -------
    int | None
        Row count when inferrable; otherwise ``None``.
    """
    if isinstance(result, QueryResult):
        return result.row_count
    if isinstance(result, TableListResponse):
        return len(result.tables)
    if isinstance(result, FunctionListResponse):
        return len(result.functions)
    if isinstance(result, DatabaseListResponse):
        return len(result.databases)
    return None


def _extract_truncated(result: object) -> bool | None:
    if isinstance(result, QueryResult):
        return result.truncated
    return None


def _observe_call(
    observability: ServiceObservability | None,
    *,
    name: str,
    context: ServiceCallContext | None,
    func: Callable[[], T],
) -> T:
    """
    Execute a callable while capturing observability signals.

    Returns
    -------
    T
        Result returned by the wrapped callable.
    """
    start = time.perf_counter()
    cluster = context.cluster if context is not None else None
    database = context.database if context is not None else None
    try:
        result = func()
    except Exception as exc:
        duration_ms = (time.perf_counter() - start) * 1000
        if observability is not None:
            code = exc.code if isinstance(exc, errors.McpError) else None
            observability.record(
                ServiceCallMetrics(
                    name=name,
                    duration_ms=duration_ms,
                    cluster=cluster,
                    database=database,
                    error=code or exc.__class__.__name__,
                )
            )
        raise
    duration_ms = (time.perf_counter() - start) * 1000
    if observability is not None:
        observability.record(
            ServiceCallMetrics(
                name=name,
                duration_ms=duration_ms,
                cluster=cluster,
                database=database,
                rows=_extract_row_count(result),
                truncated=_extract_truncated(result),
            )
        )
    return result


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


def _schema_columns(raw: object) -> list[Column]:
    """
    Decode the ``Schema`` cell of a table-schema row.

    Returns
    -------
    list[Column]
        Columns in table order.
    """
    if isinstance(raw, str):
        raw = json.loads(raw) if raw.strip() else []
    if not isinstance(raw, list):
        return []
    return [
        Column(
            name=str(entry.get("name") or ""),
            type=str(entry.get("type") or DYNAMIC_TYPE),
        )
        for entry in raw
        if isinstance(entry, Mapping)
    ]


@dataclass
class KustoQueryService:
    """
    Application service executing governed queries against Kusto clusters.

    Every public operation times itself, converts unexpected store failures
    into ``kusto.upstream_failure`` problems and, when enabled, records one
    observability line.
    """

    clients: ClientLookup
    config: ServingConfig = field(default_factory=ServingConfig)
    observability: ServiceObservability | None = None

    def _call(
        self,
        name: str,
        func: Callable[[], T],
        *,
        cluster: str | None = None,
        database: str | None = None,
    ) -> T:
        """
        Invoke an operation with error normalization and observability tracking.

        Returns
        -------
        T
            Result returned by the wrapped callable.

        Raises
        ------
        errors.McpError
            For every failure; foreign exceptions become upstream failures.
        """
        def _guarded() -> T:
            try:
                return func()
            except errors.McpError:
                raise
            except Exception as exc:
                LOG.debug("%s failed with %s", name, exc.__class__.__name__, exc_info=True)
                raise errors.upstream_failure(str(exc)) from exc

        return _observe_call(
            self.observability,
            name=name,
            context=ServiceCallContext(cluster=cluster, database=database),
            func=_guarded,
        )

    def _executor(self, cluster_url: str) -> TimeoutGovernedExecutor:
        return TimeoutGovernedExecutor(self.clients(cluster_url), self.config.query_timeout)

    def _fetch(
        self,
        cluster_url: str,
        database: str | None,
        statement: str,
        operation_class: OperationClass,
        parameters: Mapping[str, object] | None = None,
    ) -> TabularResult:
        response = self._executor(cluster_url).execute(
            database, statement, operation_class, parameters
        )
        return transform_response(response)

    def _function_parameters(
        self, cluster_url: str, database: str, function_name: str, statement: str
    ) -> tuple[str, list[FunctionParameter], bool]:
        """
        Fetch and parse the declared parameters of a stored function.

        Returns
        -------
        tuple[str, list[FunctionParameter], bool]
            Stored function name (the requested name when the statement does
            not project ``Name``), parameters and whether the declaration
            parsed cleanly.

        Raises
        ------
        errors.McpError
            ``kusto.not_found`` when the function does not exist.
        """
        result = self._fetch(cluster_url, database, statement, "metadata")
        if not result.rows:
            message = f"Function '{function_name}' not found in database '{database}'"
            raise errors.not_found(message)
        row = result.rows[0]
        stored_name = _optional_text(row.get("Name")) or function_name
        resolution = parse_function_parameters(_optional_text(row.get("Parameters")))
        return stored_name, list(resolution.parameters), resolution.status == "resolved"

    def run_query(self, *, cluster_url: str, database: str, query: str) -> QueryResult:
        """
        Execute a caller-supplied query with the query timeout and row tiers.

        Parameters
        ----------
        cluster_url:
            Target cluster.
        database:
            Target database.
        query:
            Query text, sent unmodified.

        Returns
        -------
        QueryResult
            Governed result with advisories.
        """

        def _run() -> QueryResult:
            start = time.perf_counter()
            result = self._fetch(cluster_url, database, query, "query")
            governed = govern_result(result, self.config.query_limits, query=query)
            return governed.to_query_result(execution_time_ms=_elapsed_ms(start))

        return self._call("run_query", _run, cluster=cluster_url, database=database)

    def call_function(
        self,
        *,
        cluster_url: str,
        database: str,
        function_name: str,
        parameters: Mapping[str, object] | None = None,
        pipeline: str | None = None,
    ) -> QueryResult:
        """
        Invoke a stored function with bound parameters and an optional pipeline.

        The declared parameters are fetched once, required arguments verified,
        then the parameterized statement is executed with the query timeout.

        Parameters
        ----------
        cluster_url:
            Target cluster.
        database:
            Target database.
        function_name:
            Stored function to call.
        parameters:
            Arguments keyed by parameter name.
        pipeline:
            Optional suffix beginning with ``|``.

        Returns
        -------
        QueryResult
            Governed result of the call.

        Raises
        ------
        errors.McpError
            For a missing function or parameter, a rejected pipeline, a
            timeout or an upstream failure.
        """
        supplied = dict(parameters or {})

        def _run() -> QueryResult:
            start = time.perf_counter()
            name = require_function_name(function_name)
            _, declared, resolved = self._function_parameters(
                cluster_url, database, name, function_parameters_statement(name)
            )
            if not resolved and supplied:
                message = (
                    f"Could not parse the parameter declaration of '{name}'; "
                    "arguments cannot be bound"
                )
                raise errors.invalid_argument(message)
            unknown = sorted(set(supplied) - {param.name for param in declared})
            if unknown:
                LOG.debug("Ignoring undeclared arguments for %s: %s", name, unknown)
            invocation = build_invocation(name, declared, supplied, pipeline)
            result = self._fetch(
                cluster_url, database, invocation.statement, "query", invocation.parameters
            )
            governed = govern_result(
                result, self.config.query_limits, query=invocation.statement
            )
            return governed.to_query_result(execution_time_ms=_elapsed_ms(start))

        return self._call("call_function", _run, cluster=cluster_url, database=database)

    def list_tables(self, *, cluster_url: str, database: str) -> TableListResponse:
        """
        List the tables of a database ordered by name.

        Returns
        -------
        TableListResponse
            Table summaries; empty when the database has none.
        """

        def _run() -> TableListResponse:
            start = time.perf_counter()
            result = self._fetch(cluster_url, database, list_tables_statement(), "metadata")
            tables = [
                TableSummary(
                    name=str(row.get("TableName") or ""),
                    database_name=_optional_text(row.get("DatabaseName")),
                    folder=_optional_text(row.get("Folder")),
                    description=_optional_text(row.get("DocString")),
                )
                for row in result.rows
            ]
            return TableListResponse(tables=tables, execution_time_ms=_elapsed_ms(start))

        return self._call("list_tables", _run, cluster=cluster_url, database=database)

    def list_functions(self, *, cluster_url: str, database: str) -> FunctionListResponse:
        """
        List the stored functions of a database ordered by name.

        Returns
        -------
        FunctionListResponse
            Function summaries; empty when the database has none.
        """

        def _run() -> FunctionListResponse:
            start = time.perf_counter()
            result = self._fetch(cluster_url, database, list_functions_statement(), "metadata")
            functions = [
                FunctionSummary(
                    name=str(row.get("Name") or ""),
                    folder=_optional_text(row.get("Folder")),
                    description=_optional_text(row.get("DocString")),
                )
                for row in result.rows
            ]
            return FunctionListResponse(functions=functions, execution_time_ms=_elapsed_ms(start))

        return self._call("list_functions", _run, cluster=cluster_url, database=database)

    def list_databases(self, *, cluster_url: str) -> DatabaseListResponse:
        """
        List the databases visible on a cluster ordered by name.

        Returns
        -------
        DatabaseListResponse
            Database summaries; the pretty name is used as description.
        """

        def _run() -> DatabaseListResponse:
            start = time.perf_counter()
            result = self._fetch(cluster_url, None, list_databases_statement(), "metadata")
            databases = [
                DatabaseSummary(
                    name=str(row.get("DatabaseName") or ""),
                    description=_optional_text(row.get("PrettyName")),
                )
                for row in result.rows
            ]
            return DatabaseListResponse(databases=databases, execution_time_ms=_elapsed_ms(start))

        return self._call("list_databases", _run, cluster=cluster_url)

    def get_table_schema(
        self, *, cluster_url: str, database: str, table_name: str
    ) -> TableSchemaResponse:
        """
        Return the ordered columns of a table.

        Returns
        -------
        TableSchemaResponse
            ``found=False`` when the table does not exist.
        """

        def _run() -> TableSchemaResponse:
            start = time.perf_counter()
            name = require_table_name(table_name)
            result = self._fetch(cluster_url, database, table_schema_statement(name), "metadata")
            columns = _schema_columns(result.rows[0].get("Schema")) if result.rows else []
            if not columns:
                LOG.debug("Table %s not found in %s", name, database)
                return TableSchemaResponse(
                    table_name=name, found=False, execution_time_ms=_elapsed_ms(start)
                )
            return TableSchemaResponse(
                table_name=name,
                found=True,
                table=TableSchema(name=name, columns=columns),
                execution_time_ms=_elapsed_ms(start),
            )

        return self._call("get_table_schema", _run, cluster=cluster_url, database=database)

    def _discover_output_schema(
        self,
        cluster_url: str,
        database: str,
        function_name: str,
        parameters: list[FunctionParameter],
    ) -> list[OutputColumn]:
        invocation = output_schema_statement(function_name, parameters)
        try:
            result = self._fetch(
                cluster_url, database, invocation.statement, "metadata", invocation.parameters
            )
        except Exception as exc:  # noqa: BLE001 - surface empty output schema on errors
            LOG.warning("Failed to discover output schema for %s: %s", function_name, exc)
            return []
        return output_columns(result.rows)

    def get_function_schema(
        self, *, cluster_url: str, database: str, function_name: str
    ) -> FunctionSchemaResponse:
        """
        Return the declared parameters and discovered output columns of a function.

        Output columns come from a dry-run with fabricated arguments; when the
        dry-run fails the output schema is empty rather than an error.

        Returns
        -------
        FunctionSchemaResponse
            Parameters in declaration order and output columns.

        Raises
        ------
        errors.McpError
            ``kusto.not_found`` when the function does not exist.
        """

        def _run() -> FunctionSchemaResponse:
            start = time.perf_counter()
            name = require_function_name(function_name)
            stored_name, declared, _ = self._function_parameters(
                cluster_url, database, name, function_details_statement(name)
            )
            output_schema = self._discover_output_schema(
                cluster_url, database, stored_name, declared
            )
            return FunctionSchemaResponse(
                name=stored_name,
                parameters=declared,
                output_schema=output_schema,
                execution_time_ms=_elapsed_ms(start),
            )

        return self._call("get_function_schema", _run, cluster=cluster_url, database=database)


__all__ = [
    "ClientLookup",
    "KustoQueryService",
    "ServiceCallContext",
    "ServiceCallMetrics",
    "ServiceObservability",
]
