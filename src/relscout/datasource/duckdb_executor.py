"""DuckDB query executor."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import duckdb

from relscout.core.errors import DatasourceConnectionError
from relscout.datasource.base import ensure_read_only


class DuckDBQueryExecutor:
    """Read-only executor over a DuckDB database.

    Each call runs on its own cursor, so one executor can be shared across
    worker threads.

    Usage:
        with DuckDBQueryExecutor.open("customer.duckdb") as executor:
            rows = executor.execute("SELECT 1")
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection, owns_connection: bool = False):
        self._conn = conn
        self._owns_connection = owns_connection
        self._close_lock = threading.Lock()
        self._closed = False

    @classmethod
    def open(cls, path: str | Path, read_only: bool = True) -> DuckDBQueryExecutor:
        """Open a DuckDB file.

        Raises:
            DatasourceConnectionError: If the database cannot be opened
        """
        try:
            conn = duckdb.connect(str(path), read_only=read_only)
        except duckdb.Error as e:
            raise DatasourceConnectionError(f"Failed to open DuckDB database {path}: {e}") from e
        return cls(conn, owns_connection=True)

    def execute(self, sql: str) -> list[tuple[Any, ...]]:
        statement = ensure_read_only(sql, dialect="duckdb")
        cursor = self._conn.cursor()
        try:
            return cursor.execute(statement).fetchall()
        finally:
            cursor.close()

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            if self._owns_connection:
                self._conn.close()

    def __enter__(self) -> DuckDBQueryExecutor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
