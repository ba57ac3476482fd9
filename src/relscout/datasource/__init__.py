"""Read-only access to customer databases."""

from relscout.datasource.base import DatasourceConnector, QueryExecutor, ensure_read_only
from relscout.datasource.duckdb_executor import DuckDBQueryExecutor
from relscout.datasource.registry import DatasourceConfig, DatasourceRegistry
from relscout.datasource.sqlalchemy_executor import SqlAlchemyQueryExecutor

__all__ = [
    "DatasourceConfig",
    "DatasourceConnector",
    "DatasourceRegistry",
    "DuckDBQueryExecutor",
    "QueryExecutor",
    "SqlAlchemyQueryExecutor",
    "ensure_read_only",
]
