"""SQLAlchemy models for discovered relationships.

DiscoveredRelationship is the primary read path for downstream consumers.
RejectedRelationshipCandidate is an internal audit trail and is never
returned alongside accepted relationships.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from relscout.storage import Base


class DiscoveredRelationship(Base):
    """Accepted foreign key relationships.

    provenance values:
    - 'db_constraint': declared by the customer database
    - 'column_features': resolved by column feature extraction, confirmed by join stats
    - 'oracle_inference': accepted by the semantic oracle
    """

    __tablename__ = "discovered_relationships"
    __table_args__ = (
        UniqueConstraint(
            "project_id",
            "datasource_id",
            "source_table",
            "source_column",
            "target_table",
            "target_column",
            name="uq_discovered_relationship_columns",
        ),
    )

    relationship_id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid4())
    )
    project_id: Mapped[str] = mapped_column(String, nullable=False)
    datasource_id: Mapped[str] = mapped_column(String, nullable=False)

    source_table: Mapped[str] = mapped_column(String, nullable=False)
    source_column: Mapped[str] = mapped_column(String, nullable=False)
    target_table: Mapped[str] = mapped_column(String, nullable=False)
    target_column: Mapped[str] = mapped_column(String, nullable=False)

    cardinality: Mapped[str] = mapped_column(String, nullable=False)  # '1:1', 'N:1', '1:N', 'N:M'
    provenance: Mapped[str] = mapped_column(String, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    source_role: Mapped[str | None] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text)
    reasoning: Mapped[str | None] = mapped_column(Text)
    is_trusted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # JoinStatistics snapshot
    evidence: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class RejectedRelationshipCandidate(Base):
    """Candidates that were considered and rejected, with the reason."""

    __tablename__ = "rejected_relationship_candidates"

    rejection_id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid4())
    )
    project_id: Mapped[str] = mapped_column(String, nullable=False)
    datasource_id: Mapped[str] = mapped_column(String, nullable=False)

    source_table: Mapped[str] = mapped_column(String, nullable=False)
    source_column: Mapped[str] = mapped_column(String, nullable=False)
    target_table: Mapped[str] = mapped_column(String, nullable=False)
    target_column: Mapped[str] = mapped_column(String, nullable=False)

    provenance: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float | None] = mapped_column(Float)

    rejected_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )


Index(
    "idx_discovered_relationships_datasource",
    DiscoveredRelationship.project_id,
    DiscoveredRelationship.datasource_id,
)
Index(
    "idx_rejected_candidates_datasource",
    RejectedRelationshipCandidate.project_id,
    RejectedRelationshipCandidate.datasource_id,
)


__all__ = ["DiscoveredRelationship", "RejectedRelationshipCandidate"]
