"""Management and introspection statements."""

from __future__ import annotations

from kustomcp.serving.backend.schema_queries import (
    function_details_statement,
    function_parameters_statement,
    list_databases_statement,
    list_functions_statement,
    list_tables_statement,
    output_columns,
    output_schema_statement,
    table_schema_statement,
)
from kustomcp.serving.mcp.models import FunctionParameter, OutputColumn
from tests._helpers.expect import expect_equal, expect_problem, expect_true


def test_listing_statements_are_ordered_by_name() -> None:
    """Listing commands sort by their name column."""
    expect_true(list_tables_statement().endswith("order by TableName asc"), message="tables")
    expect_true(list_functions_statement().endswith("order by Name asc"), message="functions")
    expect_true(list_databases_statement().endswith("order by DatabaseName asc"), message="dbs")


def test_table_schema_statement_quotes_name() -> None:
    """The table name is bracket-quoted and the schema is reshaped into one row."""
    statement = table_schema_statement("Storm Events")
    expect_true(
        statement.startswith(".show table ['Storm Events'] schema as json"), message=statement
    )
    expect_true("make_list(bag_pack('name', name, 'type', type))" in statement, message=statement)


def test_table_name_injection_is_rejected() -> None:
    """Names that would break out of the quoting are rejected."""
    expect_problem(
        lambda: table_schema_statement("T'] | .drop table X //"), "kusto.invalid_argument"
    )
    expect_problem(lambda: table_schema_statement(""), "kusto.invalid_argument")


def test_function_statements_validate_name() -> None:
    """Function metadata commands interpolate only plain identifiers."""
    expect_equal(function_parameters_statement("MyFn"), ".show function MyFn | project Parameters")
    expect_equal(
        function_details_statement("MyFn"), ".show function MyFn | project Name, Parameters"
    )
    expect_problem(lambda: function_details_statement("MyFn | take 1"), "kusto.invalid_argument")


def test_output_schema_statement_declares_fabricated_arguments() -> None:
    """Required parameters are declared and bound with fabricated values."""
    params = [
        FunctionParameter(name="n", type="long"),
        FunctionParameter(name="s", type="string", has_default_value=True, default_value="'x'"),
    ]
    invocation = output_schema_statement("MyFn", params)
    statement = invocation.statement
    expect_true(
        statement.startswith("declare query_parameters(n:long);\nlet schemaColumns ="),
        message=statement,
    )
    expect_true("    MyFn(n)\n    | getschema" in statement, message=statement)
    expect_true('where TableName == "MyFn"' in statement, message=statement)
    expect_true("arg_max(priority, *) by ColumnName" in statement, message=statement)
    expect_equal(invocation.parameters, {"n": 1})


def test_output_schema_statement_without_parameters() -> None:
    """Parameterless functions need no declaration."""
    invocation = output_schema_statement("MyFn", [])
    expect_true(
        invocation.statement.startswith("let schemaColumns =\n    MyFn()"),
        message=invocation.statement,
    )
    expect_equal(invocation.parameters, {})


def test_output_columns_drop_blank_descriptions() -> None:
    """Descriptions are attached only when present."""
    rows = [
        {"ColumnName": "State", "ColumnType": "string", "Description": "US state"},
        {"ColumnName": "Count", "ColumnType": "long", "Description": ""},
        {"ColumnName": "Extra", "ColumnType": "dynamic", "Description": None},
    ]
    expect_equal(
        output_columns(rows),
        [
            OutputColumn(name="State", type="string", description="US state"),
            OutputColumn(name="Count", type="long"),
            OutputColumn(name="Extra", type="dynamic"),
        ],
    )
