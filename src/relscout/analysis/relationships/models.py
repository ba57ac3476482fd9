"""Relationship discovery models.

Models for:
- JoinStatistics: ground-truth join facts for one candidate
- RelationshipCandidate: directed source column -> target column pair
- OracleRequest / ValidationVerdict: the semantic oracle's input and answer
- ValidationOutcome: one validator output slot
- ValidatedRelationship / RejectedCandidate: what the orchestrator persists
- DiscoveryResult: run summary returned to the caller

Join statistics are populated by analysis/relationships/collector.py.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from relscout.core.models.base import Cardinality, ColumnRef, Provenance
from relscout.schema.models import ColumnProfile

CandidateKey = tuple[str, str, str, str]


class JoinStatistics(BaseModel):
    """Join facts gathered from the customer database.

    None means the value was not collected (query failed or not run).
    """

    join_count: int | None = None  # source rows that found a match
    source_matched: int | None = None  # distinct matching source values
    target_matched: int | None = None  # distinct target values that were matched
    orphan_count: int | None = None  # distinct source values with no match
    reverse_orphan_count: int | None = None  # distinct target values never referenced

    @property
    def is_complete(self) -> bool:
        return None not in (
            self.join_count,
            self.source_matched,
            self.target_matched,
            self.orphan_count,
            self.reverse_orphan_count,
        )

    @property
    def orphan_ratio(self) -> float | None:
        """Share of distinct non-null source values without a match."""
        if self.source_matched is None or self.orphan_count is None:
            return None
        total = self.source_matched + self.orphan_count
        if total == 0:
            return None
        return self.orphan_count / total


class RelationshipCandidate(BaseModel):
    """A potential foreign key: source column referencing target column.

    Created by the collector for type-compatible pairs only, enriched in
    place with statistics, then treated as immutable by the validator.
    """

    source: ColumnProfile
    target: ColumnProfile

    statistics: JoinStatistics = Field(default_factory=JoinStatistics)

    # Live per-column facts
    source_samples: list[str] = Field(default_factory=list)
    target_samples: list[str] = Field(default_factory=list)
    source_distinct_count: int | None = None
    source_null_rate: float | None = None
    target_distinct_count: int | None = None
    target_null_rate: float | None = None

    statistics_errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _not_self_referential(self) -> RelationshipCandidate:
        if (
            self.source.table_name == self.target.table_name
            and self.source.column_name == self.target.column_name
        ):
            raise ValueError(f"Self-referential candidate: {self.source.qualified_name}")
        return self

    @property
    def key(self) -> CandidateKey:
        return (
            self.source.table_name,
            self.source.column_name,
            self.target.table_name,
            self.target.column_name,
        )

    @property
    def label(self) -> str:
        return f"{self.source.qualified_name} -> {self.target.qualified_name}"


class OracleRequest(BaseModel):
    """Everything the semantic oracle sees about one candidate.

    Built purely from the candidate; no database access.
    """

    model_config = ConfigDict(frozen=True)

    source_table: str
    source_column: str
    source_type: str
    source_is_primary_key: bool = False
    source_distinct_count: int | None = None
    source_null_rate: float | None = None
    source_samples: list[str] = Field(default_factory=list)
    source_purpose: str | None = None
    source_role: str | None = None
    source_description: str | None = None

    target_table: str
    target_column: str
    target_type: str
    target_is_primary_key: bool = False
    target_is_unique: bool = False
    target_distinct_count: int | None = None
    target_null_rate: float | None = None
    target_samples: list[str] = Field(default_factory=list)

    statistics: JoinStatistics = Field(default_factory=JoinStatistics)

    @classmethod
    def from_candidate(cls, candidate: RelationshipCandidate) -> OracleRequest:
        source, target = candidate.source, candidate.target
        features = source.features
        return cls(
            source_table=source.table_name,
            source_column=source.column_name,
            source_type=source.data_type,
            source_is_primary_key=source.is_primary_key,
            source_distinct_count=_first_set(
                candidate.source_distinct_count, source.distinct_count
            ),
            source_null_rate=_first_set(candidate.source_null_rate, source.null_rate),
            source_samples=candidate.source_samples or list(source.sample_values),
            source_purpose=features.purpose if features else None,
            source_role=features.role if features else None,
            source_description=features.semantic_description if features else None,
            target_table=target.table_name,
            target_column=target.column_name,
            target_type=target.data_type,
            target_is_primary_key=target.is_primary_key,
            target_is_unique=target.is_unique,
            target_distinct_count=_first_set(
                candidate.target_distinct_count, target.distinct_count
            ),
            target_null_rate=_first_set(candidate.target_null_rate, target.null_rate),
            target_samples=candidate.target_samples or list(target.sample_values),
            statistics=candidate.statistics,
        )


class ValidationVerdict(BaseModel):
    """The semantic oracle's judgment of one candidate."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    confidence: float = Field(ge=0.0, le=1.0)
    cardinality: Cardinality | None = None
    reasoning: str = ""
    source_role: str | None = None


class ValidationStatus(str, Enum):
    """Final state of a validator output slot."""

    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


class ValidationOutcome(BaseModel):
    """Validator output for the candidate at ``index`` of the input batch."""

    index: int
    candidate: RelationshipCandidate
    status: ValidationStatus
    verdict: ValidationVerdict | None = None
    error: str | None = None


class ValidatedRelationship(BaseModel):
    """An accepted relationship, ready to persist."""

    source: ColumnRef
    target: ColumnRef
    provenance: Provenance
    cardinality: Cardinality
    confidence: float = Field(ge=0.0, le=1.0)
    source_role: str | None = None
    description: str | None = None
    reasoning: str | None = None

    # True when a higher-precedence tier resolved it without the oracle
    trusted: bool = False
    verdict: ValidationVerdict | None = None
    statistics: JoinStatistics | None = None

    @property
    def key(self) -> CandidateKey:
        return (
            self.source.table_name,
            self.source.column_name,
            self.target.table_name,
            self.target.column_name,
        )

    @property
    def label(self) -> str:
        return f"{self.source} -> {self.target}"


class RejectedCandidate(BaseModel):
    """Audit record for a candidate that was considered and rejected."""

    source: ColumnRef
    target: ColumnRef
    provenance: Provenance
    reason: str
    confidence: float | None = None

    @property
    def key(self) -> CandidateKey:
        return (
            self.source.table_name,
            self.source.column_name,
            self.target.table_name,
            self.target.column_name,
        )


class DiscoveryResult(BaseModel):
    """Summary of one discovery run. Returned to the caller, never persisted."""

    candidates_evaluated: int = 0
    relationships_created: int = 0
    relationships_rejected: int = 0
    candidates_failed: int = 0

    # Breakdown of relationships_created by tier
    preserved_db_fks: int = 0
    preserved_column_fks: int = 0
    inferred_relationships: int = 0

    duration_seconds: float = 0.0
    cancelled: bool = False


def _first_set[T](*values: T | None) -> T | None:
    for value in values:
        if value is not None:
            return value
    return None
