"""Simple query builder for catalog queries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import TextClause, bindparam, text

if TYPE_CHECKING:
    from collections.abc import Iterable

SCHEMAS_PARAMETER = "schema_names"


def select(*columns: str) -> Query:
    """Start a SELECT query with the given columns."""
    return Query(columns or ("*",))


def aliased(columns: Iterable[str], aliases: dict[str, str]) -> tuple[str, ...]:
    """Select source columns under the field names of a row type."""
    reverse = {field: source for source, field in aliases.items()}
    return tuple(
        f"{reverse[column]} AS {column}" if column in reverse else column
        for column in columns
    )


class Query:
    """A fluent SELECT query builder."""

    def __init__(self, columns: tuple[str, ...]) -> None:
        """Initialize with column names."""
        self._columns = columns
        self._table: str | None = None
        self._where: list[str] = []
        self._order_by: list[str] = []

    def from_(self, table: str) -> Query:
        """Set the FROM clause."""
        self._table = table
        return self

    def where(self, *conditions: str) -> Query:
        """Add a WHERE condition."""
        self._where.extend(conditions)
        return self

    def in_schemas(self, column: str) -> Query:
        """Restrict the query to rows whose column names a requested schema."""
        return self.where(f"{column} IN :{SCHEMAS_PARAMETER}")

    def order_by(self, *columns: str) -> Query:
        """Add ORDER BY columns."""
        self._order_by.extend(columns)
        return self

    def __str__(self) -> str:
        """Convert the query to SQL string."""
        if not self._table:
            msg = "FROM clause is required"
            raise ValueError(msg)

        query = f"SELECT {', '.join(self._columns)} FROM {self._table}"  # noqa: S608
        if self._where:
            query += f" WHERE {' AND '.join(self._where)}"
        if self._order_by:
            query += f" ORDER BY {', '.join(self._order_by)}"

        return query

    def statement(self) -> TextClause:
        """Return an executable statement binding the schema list, if used."""
        statement = text(str(self))
        if f":{SCHEMAS_PARAMETER}" in str(self):
            statement = statement.bindparams(
                bindparam(SCHEMAS_PARAMETER, expanding=True),
            )
        return statement
