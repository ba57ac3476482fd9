"""Column metadata models.

These are produced by earlier pipeline stages (profiling, column feature
extraction) and read by relationship discovery. Discovery never modifies them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from relscout.core.models.base import ColumnRef


class ColumnFeatures(BaseModel):
    """Semantic features extracted for a column by an earlier stage.

    Vocabulary:
    - purpose: identifier, timestamp, flag, measure, enum, text, json
    - role: primary_key, foreign_key, attribute, measure
    - classification_path: timestamp, boolean, enum, uuid, external_id,
      numeric, text, json, unknown
    """

    model_config = ConfigDict(frozen=True)

    purpose: str | None = None
    role: str | None = None
    classification_path: str | None = None
    semantic_description: str | None = None

    # Identifier resolution (set when the earlier stage resolved a FK target)
    fk_target_table: str | None = None
    fk_target_column: str | None = None
    fk_confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ColumnProfile(BaseModel):
    """Read-only view of one column of the customer schema."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    column_name: str
    data_type: str
    schema_name: str | None = None

    is_primary_key: bool = False
    is_unique: bool = False
    is_joinable: bool | None = None

    distinct_count: int | None = None
    null_rate: float | None = None
    sample_values: tuple[str, ...] = Field(default=(), max_length=10)

    features: ColumnFeatures | None = None

    @property
    def ref(self) -> ColumnRef:
        return ColumnRef(table_name=self.table_name, column_name=self.column_name)

    @property
    def qualified_name(self) -> str:
        return f"{self.table_name}.{self.column_name}"

    @property
    def is_unique_key(self) -> bool:
        """Whether the column can be referenced by a foreign key."""
        return self.is_primary_key or self.is_unique


class DeclaredForeignKey(BaseModel):
    """A foreign key constraint declared by the customer database itself."""

    model_config = ConfigDict(frozen=True)

    source_table: str
    source_column: str
    target_table: str
    target_column: str
    constraint_name: str | None = None

    @property
    def source(self) -> ColumnRef:
        return ColumnRef(table_name=self.source_table, column_name=self.source_column)

    @property
    def target(self) -> ColumnRef:
        return ColumnRef(table_name=self.target_table, column_name=self.target_column)
