"""Access to schema metadata produced by earlier stages."""

from __future__ import annotations

from typing import Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from relscout.core.connections import ConnectionManager
from relscout.core.errors import SchemaUnavailableError
from relscout.core.logging import get_logger
from relscout.schema.db_models import SchemaColumn, SchemaForeignKey, SchemaTable
from relscout.schema.models import ColumnFeatures, ColumnProfile, DeclaredForeignKey

logger = get_logger(__name__)


class SchemaMetadataReader(Protocol):
    """Read-only access to column metadata and declared constraints."""

    def load_columns(self, project_id: str, datasource_id: str) -> list[ColumnProfile]:
        """Load every column of the datasource.

        Raises:
            SchemaUnavailableError: If metadata cannot be loaded at all
        """
        ...

    def load_declared_foreign_keys(
        self, project_id: str, datasource_id: str
    ) -> list[DeclaredForeignKey]:
        """Load foreign keys declared by the customer database."""
        ...


class SqlAlchemySchemaReader:
    """SchemaMetadataReader backed by the metadata store.

    An empty datasource yields empty lists; only store failures raise.
    """

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    def load_columns(self, project_id: str, datasource_id: str) -> list[ColumnProfile]:
        stmt = (
            select(SchemaColumn, SchemaTable)
            .join(SchemaTable, SchemaColumn.table_id == SchemaTable.table_id)
            .where(
                SchemaTable.project_id == project_id,
                SchemaTable.datasource_id == datasource_id,
            )
            .order_by(
                SchemaTable.table_name, SchemaColumn.column_position, SchemaColumn.column_name
            )
        )
        try:
            with self.manager.session_scope() as session:
                rows = session.execute(stmt).all()
                profiles = [_to_profile(column, table) for column, table in rows]
        except SQLAlchemyError as e:
            raise SchemaUnavailableError(
                f"Failed to load columns: {e}",
                project_id=project_id,
                datasource_id=datasource_id,
            ) from e

        logger.debug("schema_columns_loaded", count=len(profiles))
        return profiles

    def load_declared_foreign_keys(
        self, project_id: str, datasource_id: str
    ) -> list[DeclaredForeignKey]:
        stmt = (
            select(SchemaForeignKey)
            .where(
                SchemaForeignKey.project_id == project_id,
                SchemaForeignKey.datasource_id == datasource_id,
            )
            .order_by(SchemaForeignKey.source_table, SchemaForeignKey.source_column)
        )
        try:
            with self.manager.session_scope() as session:
                fks = [
                    DeclaredForeignKey(
                        source_table=fk.source_table,
                        source_column=fk.source_column,
                        target_table=fk.target_table,
                        target_column=fk.target_column,
                        constraint_name=fk.constraint_name,
                    )
                    for fk in session.execute(stmt).scalars()
                ]
        except SQLAlchemyError as e:
            raise SchemaUnavailableError(
                f"Failed to load declared foreign keys: {e}",
                project_id=project_id,
                datasource_id=datasource_id,
            ) from e

        return fks


def _parse_features(column: SchemaColumn, table: SchemaTable) -> ColumnFeatures | None:
    if not column.features:
        return None
    try:
        return ColumnFeatures.model_validate(column.features)
    except ValidationError as e:
        # Invalid hints are dropped; the column itself is still profiled
        logger.warning(
            "column_features_invalid",
            column=f"{table.table_name}.{column.column_name}",
            error=str(e),
        )
        return None


def _to_profile(column: SchemaColumn, table: SchemaTable) -> ColumnProfile:
    features = _parse_features(column, table)
    samples = tuple(str(v) for v in (column.sample_values or []) if v is not None)[:10]
    return ColumnProfile(
        table_name=table.table_name,
        column_name=column.column_name,
        data_type=column.data_type,
        schema_name=table.schema_name,
        is_primary_key=column.is_primary_key,
        is_unique=column.is_unique,
        is_joinable=column.is_joinable,
        distinct_count=column.distinct_count,
        null_rate=column.null_rate,
        sample_values=samples,
        features=features,
    )
