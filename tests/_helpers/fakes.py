"""Typed fakes mimicking the azure-kusto-data client and response objects."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from azure.kusto.data import ClientRequestProperties


@dataclass(frozen=True)
class FakeColumn:
    """Column descriptor exposing ``column_name``/``column_type`` like the SDK."""

    column_name: str
    column_type: str = "string"


@dataclass
class FakeRow:
    """Result row supporting ``to_dict``."""

    values: dict[str, object]

    def to_dict(self) -> dict[str, object]:
        """
        Return the row as a column-name mapping.

        Returns
        -------
        dict[str, object]
            Copy of the row values.
        """
        return dict(self.values)


@dataclass
class FakeTable:
    """Primary result table with columns and rows."""

    columns: list[FakeColumn] = field(default_factory=list)
    rows: list[FakeRow] = field(default_factory=list)


@dataclass
class FakeResponse:
    """Response data set exposing ``primary_results``."""

    primary_results: list[FakeTable] = field(default_factory=list)


def make_response(
    rows: Sequence[dict[str, object]],
    columns: Sequence[tuple[str, str]] | None = None,
) -> FakeResponse:
    """
    Build a single-table response from row dictionaries.

    Columns default to the keys of the first row, typed as ``string``.

    Returns
    -------
    FakeResponse
        Response whose primary table holds the rows.
    """
    if columns is None:
        columns = [(name, "string") for name in (rows[0] if rows else {})]
    return FakeResponse(
        primary_results=[
            FakeTable(
                columns=[FakeColumn(name, col_type) for name, col_type in columns],
                rows=[FakeRow(dict(row)) for row in rows],
            )
        ]
    )


@dataclass(frozen=True)
class RecordedCall:
    """One ``execute`` invocation captured by FakeKustoClient."""

    database: str | None
    query: str
    properties: ClientRequestProperties | None


Handler = Callable[[str | None, str], FakeResponse]


@dataclass
class FakeKustoClient:
    """
    In-memory stand-in for ``KustoClient.execute``.

    Responses are served by ``handler`` when given, otherwise popped from
    ``responses`` in order. Queued exceptions are raised instead of returned.
    """

    responses: list[FakeResponse | Exception] = field(default_factory=list)
    handler: Handler | None = None
    calls: list[RecordedCall] = field(default_factory=list)

    def execute(
        self,
        database: str | None,
        query: str,
        properties: ClientRequestProperties | None = None,
    ) -> FakeResponse:
        """
        Record the call and return the next canned response.

        Returns
        -------
        FakeResponse
            Canned response.

        Raises
        ------
        Exception
            When the next queued item is an exception.
        """
        self.calls.append(RecordedCall(database=database, query=query, properties=properties))
        if self.handler is not None:
            return self.handler(database, query)
        if not self.responses:
            message = f"No canned response for query: {query}"
            raise AssertionError(message)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item
