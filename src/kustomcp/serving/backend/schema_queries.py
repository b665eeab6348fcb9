"""Management and introspection statements used for schema discovery."""

from __future__ import annotations

import re
from collections.abc import Sequence

from kustomcp.serving.backend.functions import (
    Invocation,
    dry_run_invocation,
    require_function_name,
)
from kustomcp.serving.mcp import errors
from kustomcp.serving.mcp.models import FunctionParameter, OutputColumn, RowDict

_TABLE_NAME = re.compile(r"^[\w][\w .\-]*$")

LIST_TABLES_STATEMENT = (
    ".show tables | project Folder, TableName, DatabaseName, DocString | order by TableName asc"
)
LIST_FUNCTIONS_STATEMENT = ".show functions | project Folder, Name, DocString | order by Name asc"
LIST_DATABASES_STATEMENT = (
    ".show databases | project DatabaseName, PrettyName | order by DatabaseName asc"
)


def require_table_name(name: str) -> str:
    """
    Validate a table name before it is quoted into a management command.

    Returns
    -------
    str
        The trimmed name.

    Raises
    ------
    errors.McpError
        When the name contains characters that would escape the quoting.
    """
    trimmed = name.strip()
    if not _TABLE_NAME.match(trimmed):
        message = f"Invalid table name: {name!r}"
        raise errors.invalid_argument(message)
    return trimmed


def list_tables_statement() -> str:
    """Return the command listing tables ordered by name."""
    return LIST_TABLES_STATEMENT


def list_functions_statement() -> str:
    """Return the command listing stored functions ordered by name."""
    return LIST_FUNCTIONS_STATEMENT


def list_databases_statement() -> str:
    """Return the command listing databases ordered by name."""
    return LIST_DATABASES_STATEMENT


def table_schema_statement(table: str) -> str:
    """
    Build the command returning one row ``{TableName, Schema: [{name, type}]}``.

    A table that does not exist yields no rows.

    Parameters
    ----------
    table:
        Table name; validated before interpolation.

    Returns
    -------
    str
        Management command text.
    """
    name = require_table_name(table)
    return (
        f".show table ['{name}'] schema as json\n"
        "| extend cols = todynamic(Schema).OrderedColumns\n"
        "| mv-expand col = cols\n"
        f'| project TableName = "{name}", name = tostring(col.Name), '
        "type = tostring(col.CslType)\n"
        "| summarize TableName = any(TableName), "
        "Schema = make_list(bag_pack('name', name, 'type', type))"
    )


def function_parameters_statement(function_name: str) -> str:
    """Return the command fetching the declared parameters of a stored function."""
    return f".show function {require_function_name(function_name)} | project Parameters"


def function_details_statement(function_name: str) -> str:
    """Return the command fetching the name and parameters of a stored function."""
    return f".show function {require_function_name(function_name)} | project Name, Parameters"


def output_schema_statement(
    function_name: str, parameters: Sequence[FunctionParameter]
) -> Invocation:
    """
    Build a dry-run that reports the output columns of a stored function.

    Required parameters are bound to fabricated values and the call is piped
    through ``getschema``. Column descriptions come from ``ColumnDictionary``
    when it exists: entries scoped to the function win over global entries.

    Parameters
    ----------
    function_name:
        Stored function to probe.
    parameters:
        Its declared parameters.

    Returns
    -------
    Invocation
        Statement plus the fabricated parameter bindings.
    """
    probe = dry_run_invocation(function_name, parameters)
    name = require_function_name(function_name)
    body = (
        "let schemaColumns =\n"
        f"    {probe.call}\n"
        "    | getschema\n"
        "    | project ColumnName, ColumnType;\n"
        "let columnDescriptions =\n"
        "    union kind=outer isfuzzy=true\n"
        f'        (ColumnDictionary | where TableName == "{name}" '
        "| project ColumnName, Description, priority=int(1)),\n"
        "        (ColumnDictionary | where isempty(TableName) "
        "| project ColumnName, Description, priority=int(0)),\n"
        "        (datatable(ColumnName:string, Description:string, priority:int)[]);\n"
        "let prioritizedDescriptions =\n"
        "    columnDescriptions\n"
        "    | summarize arg_max(priority, *) by ColumnName\n"
        "    | project ColumnName, Description;\n"
        "schemaColumns\n"
        "| lookup kind=leftouter prioritizedDescriptions on ColumnName"
    )
    return Invocation(call=body, parameters=probe.parameters, declaration=probe.declaration)


def output_columns(rows: Sequence[RowDict]) -> list[OutputColumn]:
    """
    Map ``getschema`` rows onto output columns.

    Returns
    -------
    list[OutputColumn]
        Columns in schema order; blank descriptions are dropped.
    """
    columns: list[OutputColumn] = []
    for row in rows:
        description = row.get("Description")
        columns.append(
            OutputColumn(
                name=str(row.get("ColumnName") or ""),
                type=str(row.get("ColumnType") or "dynamic"),
                description=str(description) if description else None,
            )
        )
    return columns


__all__ = [
    "function_details_statement",
    "function_parameters_statement",
    "list_databases_statement",
    "list_functions_statement",
    "list_tables_statement",
    "output_columns",
    "output_schema_statement",
    "require_table_name",
    "table_schema_statement",
]
