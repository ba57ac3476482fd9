"""Datasource registry: maps datasource ids to connection settings."""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Literal

from pydantic import BaseModel

from relscout.core.errors import DatasourceConnectionError
from relscout.core.logging import get_logger
from relscout.datasource.base import QueryExecutor
from relscout.datasource.duckdb_executor import DuckDBQueryExecutor
from relscout.datasource.sqlalchemy_executor import SqlAlchemyQueryExecutor

logger = get_logger(__name__)


class DatasourceConfig(BaseModel):
    """How to reach one customer database.

    kind:
    - duckdb: uri is a file path
    - sqlalchemy: uri is a SQLAlchemy URL (postgresql+psycopg://..., mssql+pyodbc://...)
    """

    kind: Literal["duckdb", "sqlalchemy"]
    uri: str
    pool_size: int = 5


class DatasourceRegistry:
    """DatasourceConnector over an in-process registry of datasource configs.

    Usage:
        registry = DatasourceRegistry()
        registry.register("proj", "ds", DatasourceConfig(kind="duckdb", uri="shop.duckdb"))

        with registry.connect("proj", "ds") as executor:
            executor.execute("SELECT 1")
    """

    def __init__(self) -> None:
        self._configs: dict[tuple[str, str], DatasourceConfig] = {}
        self._lock = threading.Lock()

    def register(self, project_id: str, datasource_id: str, config: DatasourceConfig) -> None:
        with self._lock:
            self._configs[(project_id, datasource_id)] = config

    def get(self, project_id: str, datasource_id: str) -> DatasourceConfig | None:
        with self._lock:
            return self._configs.get((project_id, datasource_id))

    @contextmanager
    def connect(self, project_id: str, datasource_id: str) -> Generator[QueryExecutor]:
        """Open a read-only executor for the datasource.

        Raises:
            DatasourceConnectionError: If the datasource is unknown or unreachable
        """
        config = self.get(project_id, datasource_id)
        if config is None:
            raise DatasourceConnectionError(
                f"Unknown datasource {datasource_id}",
                project_id=project_id,
                datasource_id=datasource_id,
            )

        executor: DuckDBQueryExecutor | SqlAlchemyQueryExecutor
        try:
            if config.kind == "duckdb":
                executor = DuckDBQueryExecutor.open(config.uri)
            else:
                executor = SqlAlchemyQueryExecutor.open(config.uri, pool_size=config.pool_size)
        except DatasourceConnectionError as e:
            e.project_id = project_id
            e.datasource_id = datasource_id
            raise

        logger.debug("datasource_connected", kind=config.kind)
        try:
            yield executor
        finally:
            executor.close()
