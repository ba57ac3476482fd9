"""Query executor for any database SQLAlchemy can reach."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from relscout.core.errors import DatasourceConnectionError
from relscout.datasource.base import SQLGLOT_DIALECTS, ensure_read_only


class SqlAlchemyQueryExecutor:
    """Read-only executor over a pooled SQLAlchemy engine.

    Connections are checked out per call, so the executor is thread-safe.
    """

    def __init__(self, engine: Engine, owns_engine: bool = False):
        self._engine = engine
        self._owns_engine = owns_engine
        # Unknown backends parse with the generic dialect
        self._sqlglot_dialect = SQLGLOT_DIALECTS.get(engine.dialect.name)

    @classmethod
    def open(cls, url: str, pool_size: int = 5, **engine_kwargs: Any) -> SqlAlchemyQueryExecutor:
        """Create an engine and verify it can connect.

        Raises:
            DatasourceConnectionError: If the database is unreachable
        """
        try:
            if not url.startswith("sqlite"):
                engine_kwargs.setdefault("pool_size", pool_size)
            engine = create_engine(url, pool_pre_ping=True, **engine_kwargs)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise DatasourceConnectionError(f"Failed to connect to datasource: {e}") from e
        return cls(engine, owns_engine=True)

    def execute(self, sql: str) -> list[tuple[Any, ...]]:
        statement = ensure_read_only(sql, dialect=self._sqlglot_dialect)
        with self._engine.connect() as conn:
            result = conn.execute(text(statement))
            rows = [tuple(row) for row in result]
            conn.rollback()
        return rows

    def close(self) -> None:
        if self._owns_engine:
            self._engine.dispose()

    def __enter__(self) -> SqlAlchemyQueryExecutor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
