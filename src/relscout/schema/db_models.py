"""SQLAlchemy models for customer schema metadata.

Written by the schema import and column feature stages; read by
SqlAlchemySchemaReader.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from relscout.storage import Base


class SchemaTable(Base):
    """Tables of a customer datasource."""

    __tablename__ = "schema_tables"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "datasource_id", "table_name", name="uq_schema_table_name"
        ),
    )

    table_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    project_id: Mapped[str] = mapped_column(String, nullable=False)
    datasource_id: Mapped[str] = mapped_column(String, nullable=False)
    schema_name: Mapped[str | None] = mapped_column(String)
    table_name: Mapped[str] = mapped_column(String, nullable=False)
    row_count: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )

    columns: Mapped[list[SchemaColumn]] = relationship(
        back_populates="table", cascade="all, delete-orphan"
    )


class SchemaColumn(Base):
    """Columns of a customer table, with profile stats and extracted features."""

    __tablename__ = "schema_columns"
    __table_args__ = (UniqueConstraint("table_id", "column_name", name="uq_schema_column_name"),)

    column_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    table_id: Mapped[str] = mapped_column(
        ForeignKey("schema_tables.table_id", ondelete="CASCADE"), nullable=False
    )
    column_name: Mapped[str] = mapped_column(String, nullable=False)
    column_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    data_type: Mapped[str] = mapped_column(String, nullable=False)

    is_primary_key: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_joinable: Mapped[bool | None] = mapped_column(Boolean)

    # Profile stats
    distinct_count: Mapped[int | None] = mapped_column(Integer)
    null_rate: Mapped[float | None] = mapped_column(Float)
    sample_values: Mapped[list[Any] | None] = mapped_column(JSON)

    # ColumnFeatures as JSON
    features: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    table: Mapped[SchemaTable] = relationship(back_populates="columns")


class SchemaForeignKey(Base):
    """Foreign key constraints declared in the customer database."""

    __tablename__ = "schema_foreign_keys"

    fk_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    project_id: Mapped[str] = mapped_column(String, nullable=False)
    datasource_id: Mapped[str] = mapped_column(String, nullable=False)
    constraint_name: Mapped[str | None] = mapped_column(String)

    source_table: Mapped[str] = mapped_column(String, nullable=False)
    source_column: Mapped[str] = mapped_column(String, nullable=False)
    target_table: Mapped[str] = mapped_column(String, nullable=False)
    target_column: Mapped[str] = mapped_column(String, nullable=False)


Index("idx_schema_tables_datasource", SchemaTable.project_id, SchemaTable.datasource_id)
Index(
    "idx_schema_foreign_keys_datasource",
    SchemaForeignKey.project_id,
    SchemaForeignKey.datasource_id,
)


__all__ = ["SchemaTable", "SchemaColumn", "SchemaForeignKey"]
