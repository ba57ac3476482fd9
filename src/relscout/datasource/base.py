"""Interfaces for read-only access to customer databases."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol

import sqlglot
from sqlglot import expressions as exp
from sqlglot.errors import SqlglotError

from relscout.core.errors import ReadOnlyQueryError

_QUERY_TYPES = (exp.Select, exp.Union, exp.Intersect, exp.Except, exp.Subquery)
_FORBIDDEN_TYPES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Merge,
    exp.Drop,
    exp.Create,
    exp.Alter,
    exp.TruncateTable,
    exp.Command,
    exp.Into,
)

# SQLAlchemy dialect name -> sqlglot dialect
SQLGLOT_DIALECTS = {
    "postgresql": "postgres",
    "mssql": "tsql",
    "sqlite": "sqlite",
    "mysql": "mysql",
    "duckdb": "duckdb",
}


class QueryExecutor(Protocol):
    """Runs read-only SQL against one customer database.

    Implementations must be safe to call from several worker threads.
    """

    def execute(self, sql: str) -> list[tuple[Any, ...]]:
        """Run a read-only statement and return all rows.

        Raises:
            ReadOnlyQueryError: If the statement could modify data
        """
        ...


class DatasourceConnector(Protocol):
    """Opens query executors for a project's datasources."""

    def connect(
        self, project_id: str, datasource_id: str
    ) -> AbstractContextManager[QueryExecutor]:
        """Open an executor; closed when the context exits.

        Raises:
            DatasourceConnectionError: If no connection can be opened
        """
        ...


def ensure_read_only(sql: str, dialect: str | None = None) -> str:
    """Validate that ``sql`` is a single query that cannot modify data.

    The statement is parsed with sqlglot. It must be a SELECT or set
    operation, and no write, DDL or SELECT ... INTO node may appear anywhere
    in it, including inside CTEs. Unparsable SQL is rejected.

    Returns:
        The statement without a trailing semicolon
    """
    try:
        statements = [s for s in sqlglot.parse(sql, read=dialect) if s is not None]
    except SqlglotError as e:
        raise ReadOnlyQueryError(sql) from e

    if len(statements) != 1:
        raise ReadOnlyQueryError(sql)
    statement = statements[0]
    if not isinstance(statement, _QUERY_TYPES) or statement.find(*_FORBIDDEN_TYPES):
        raise ReadOnlyQueryError(sql)
    return sql.strip().rstrip(";").strip()
