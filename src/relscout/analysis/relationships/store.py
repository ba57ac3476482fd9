"""Persistence of discovery results."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select

from relscout.analysis.relationships.db_models import (
    DiscoveredRelationship,
    RejectedRelationshipCandidate,
)
from relscout.analysis.relationships.models import RejectedCandidate, ValidatedRelationship
from relscout.core.connections import ConnectionManager
from relscout.core.logging import get_logger
from relscout.core.models.base import Cardinality, ColumnRef, Provenance

logger = get_logger(__name__)


class RelationshipStore(Protocol):
    """Where accepted relationships and rejection audit records go."""

    def upsert_relationship(
        self, project_id: str, datasource_id: str, relationship: ValidatedRelationship
    ) -> None:
        """Insert or update the relationship for its (source, target) column pair."""
        ...

    def record_rejection(
        self, project_id: str, datasource_id: str, rejection: RejectedCandidate
    ) -> None:
        """Append a rejection to the audit trail."""
        ...

    def list_relationships(
        self, project_id: str, datasource_id: str
    ) -> list[ValidatedRelationship]:
        """Accepted relationships only."""
        ...

    def list_rejections(self, project_id: str, datasource_id: str) -> list[RejectedCandidate]:
        ...


class SqlAlchemyRelationshipStore:
    """RelationshipStore backed by the metadata store."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    def upsert_relationship(
        self, project_id: str, datasource_id: str, relationship: ValidatedRelationship
    ) -> None:
        stmt = select(DiscoveredRelationship).where(
            DiscoveredRelationship.project_id == project_id,
            DiscoveredRelationship.datasource_id == datasource_id,
            DiscoveredRelationship.source_table == relationship.source.table_name,
            DiscoveredRelationship.source_column == relationship.source.column_name,
            DiscoveredRelationship.target_table == relationship.target.table_name,
            DiscoveredRelationship.target_column == relationship.target.column_name,
        )
        evidence = (
            relationship.statistics.model_dump() if relationship.statistics is not None else None
        )

        with self.manager.session_scope() as session:
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                record = DiscoveredRelationship(
                    project_id=project_id,
                    datasource_id=datasource_id,
                    source_table=relationship.source.table_name,
                    source_column=relationship.source.column_name,
                    target_table=relationship.target.table_name,
                    target_column=relationship.target.column_name,
                )
                session.add(record)

            record.cardinality = relationship.cardinality.value
            record.provenance = relationship.provenance.value
            record.confidence = relationship.confidence
            record.source_role = relationship.source_role
            record.description = relationship.description
            record.reasoning = relationship.reasoning
            record.is_trusted = relationship.trusted
            record.evidence = evidence

    def record_rejection(
        self, project_id: str, datasource_id: str, rejection: RejectedCandidate
    ) -> None:
        with self.manager.session_scope() as session:
            session.add(
                RejectedRelationshipCandidate(
                    project_id=project_id,
                    datasource_id=datasource_id,
                    source_table=rejection.source.table_name,
                    source_column=rejection.source.column_name,
                    target_table=rejection.target.table_name,
                    target_column=rejection.target.column_name,
                    provenance=rejection.provenance.value,
                    reason=rejection.reason,
                    confidence=rejection.confidence,
                )
            )

    def list_relationships(
        self, project_id: str, datasource_id: str
    ) -> list[ValidatedRelationship]:
        stmt = (
            select(DiscoveredRelationship)
            .where(
                DiscoveredRelationship.project_id == project_id,
                DiscoveredRelationship.datasource_id == datasource_id,
            )
            .order_by(
                DiscoveredRelationship.source_table,
                DiscoveredRelationship.source_column,
                DiscoveredRelationship.target_table,
                DiscoveredRelationship.target_column,
            )
        )
        with self.manager.session_scope() as session:
            return [
                ValidatedRelationship(
                    source=ColumnRef(table_name=r.source_table, column_name=r.source_column),
                    target=ColumnRef(table_name=r.target_table, column_name=r.target_column),
                    provenance=Provenance(r.provenance),
                    cardinality=Cardinality(r.cardinality),
                    confidence=r.confidence,
                    source_role=r.source_role,
                    description=r.description,
                    reasoning=r.reasoning,
                    trusted=r.is_trusted,
                )
                for r in session.execute(stmt).scalars()
            ]

    def list_rejections(self, project_id: str, datasource_id: str) -> list[RejectedCandidate]:
        stmt = (
            select(RejectedRelationshipCandidate)
            .where(
                RejectedRelationshipCandidate.project_id == project_id,
                RejectedRelationshipCandidate.datasource_id == datasource_id,
            )
            .order_by(
                RejectedRelationshipCandidate.rejected_at,
                RejectedRelationshipCandidate.source_table,
                RejectedRelationshipCandidate.source_column,
            )
        )
        with self.manager.session_scope() as session:
            return [
                RejectedCandidate(
                    source=ColumnRef(table_name=r.source_table, column_name=r.source_column),
                    target=ColumnRef(table_name=r.target_table, column_name=r.target_column),
                    provenance=Provenance(r.provenance),
                    reason=r.reason,
                    confidence=r.confidence,
                )
                for r in session.execute(stmt).scalars()
            ]
