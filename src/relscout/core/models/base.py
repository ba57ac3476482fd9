"""Types shared by the schema, datasource and relationships packages."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Result[T](BaseModel):
    """Outcome of an operation whose failure is expected and reportable.

    Oracle calls and provider requests return these; exceptions stay for
    failures the caller cannot act on.
    """

    success: bool
    value: T | None = None
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, value: T, warnings: list[str] | None = None) -> Result[T]:
        return cls(success=True, value=value, warnings=warnings or [])

    @classmethod
    def fail(cls, error: str) -> Result[T]:
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """The value; raises ValueError carrying the error for a failed result."""
        if not self.success or self.value is None:
            raise ValueError(f"Result failed: {self.error}")
        return self.value


class Cardinality(str, Enum):
    """Written source:target, so N:1 means many source rows per target row."""

    ONE_TO_ONE = "1:1"
    MANY_TO_ONE = "N:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_MANY = "N:M"

    @classmethod
    def parse(cls, value: str | None) -> Cardinality | None:
        """Case-insensitive lookup; None for anything unrecognised."""
        normalized = (value or "").strip().upper()
        return next((member for member in cls if member.value == normalized), None)


class Provenance(str, Enum):
    """Which evidence tier decided a relationship."""

    DB_CONSTRAINT = "db_constraint"
    COLUMN_FEATURES = "column_features"
    ORACLE_INFERENCE = "oracle_inference"


class ColumnRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    table_name: str
    column_name: str

    def __str__(self) -> str:
        return f"{self.table_name}.{self.column_name}"


# (current, total, message)
ProgressCallback = Callable[[int, int, str], None]
