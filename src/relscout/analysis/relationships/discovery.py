"""Relationship discovery orchestration.

Resolves foreign keys for one datasource in three precedence tiers, each
finished before the next starts:

1. Declared constraints: accepted unconditionally, no oracle call
2. Column features: high-confidence FK targets resolved by an earlier stage,
   re-checked against join statistics only, no oracle call
3. Open inference: candidate collection and semantic validation for every
   source column not resolved above

Accepted relationships are upserted into the RelationshipStore; rejections
go to its audit trail.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Sequence
from contextlib import ExitStack
from dataclasses import dataclass, field

from relscout.analysis.relationships.collector import CandidateCollector
from relscout.analysis.relationships.config import DiscoveryConfig
from relscout.analysis.relationships.joins import compute_join_statistics, infer_cardinality
from relscout.analysis.relationships.models import (
    CandidateKey,
    DiscoveryResult,
    JoinStatistics,
    RejectedCandidate,
    RelationshipCandidate,
    ValidatedRelationship,
    ValidationOutcome,
    ValidationStatus,
    ValidationVerdict,
)
from relscout.analysis.relationships.store import RelationshipStore
from relscout.analysis.relationships.validator import RelationshipValidator, SemanticOracle
from relscout.core.errors import (
    DatasourceConnectionError,
    DiscoveryCancelledError,
    SchemaUnavailableError,
    ValidationBatchError,
)
from relscout.core.logging import get_logger, log_context
from relscout.core.models.base import Cardinality, ColumnRef, ProgressCallback, Provenance
from relscout.core.progress import report_progress, scaled_progress
from relscout.datasource.base import DatasourceConnector, QueryExecutor
from relscout.schema.models import ColumnProfile, DeclaredForeignKey
from relscout.schema.reader import SchemaMetadataReader

logger = get_logger(__name__)

PROGRESS_TOTAL = 100
ACCEPTABLE_FEATURE_CARDINALITIES = (Cardinality.MANY_TO_ONE, Cardinality.ONE_TO_ONE)


@dataclass
class _RunState:
    """Decisions accumulated during one run, keyed by column pair."""

    accepted: dict[CandidateKey, ValidatedRelationship] = field(default_factory=dict)
    rejected: list[RejectedCandidate] = field(default_factory=list)
    resolved_sources: set[ColumnRef] = field(default_factory=set)
    preserved_db_fks: int = 0
    preserved_column_fks: int = 0
    inferred: int = 0

    def accept(self, relationship: ValidatedRelationship) -> bool:
        if relationship.key in self.accepted:
            return False
        self.accepted[relationship.key] = relationship
        return True


def describe_role(column_name: str, table_name: str, source_role: str | None) -> str | None:
    """Human-readable description of a source column's role, if it has one."""
    if not source_role:
        return None
    return f"The {column_name} in {table_name} represents the {source_role}."


class RelationshipDiscoveryService:
    """Discovers and persists foreign key relationships for a datasource.

    Usage:
        service = RelationshipDiscoveryService(
            schema_reader=SqlAlchemySchemaReader(manager),
            connector=registry,
            oracle=create_oracle(),
            store=SqlAlchemyRelationshipStore(manager),
        )
        result = service.discover_relationships("proj", "ds", on_progress=print)
    """

    def __init__(
        self,
        schema_reader: SchemaMetadataReader,
        connector: DatasourceConnector,
        oracle: SemanticOracle,
        store: RelationshipStore,
        config: DiscoveryConfig | None = None,
    ):
        self.schema_reader = schema_reader
        self.connector = connector
        self.store = store
        self.config = config or DiscoveryConfig()
        self.collector = CandidateCollector(schema_reader, connector, self.config)
        self.validator = RelationshipValidator(oracle, self.config)

    def discover_relationships(
        self,
        project_id: str,
        datasource_id: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> DiscoveryResult:
        """Run all three tiers and persist the outcome.

        Args:
            project_id: Project identifier
            datasource_id: Datasource identifier
            on_progress: Receives (current, 100, message) on the calling thread
            cancel_event: Cooperative cancellation signal

        Returns:
            Run summary. ``cancelled`` is True when validation was cut short
            after some verdicts were already in; those are persisted.

        Raises:
            SchemaUnavailableError: If column metadata cannot be loaded
            DatasourceConnectionError: If the customer database cannot be reached
            DiscoveryCancelledError: If cancelled before any validation completed
        """
        cancel = cancel_event or threading.Event()
        start_time = time.time()

        with log_context(project_id=project_id, datasource_id=datasource_id):
            if cancel.is_set():
                raise DiscoveryCancelledError("Discovery cancelled before start")

            logger.info("relationship_discovery_started")
            report_progress(on_progress, 0, PROGRESS_TOTAL, "Preserving declared foreign keys")

            columns, declared = self._load_schema(project_id, datasource_id)
            state = _RunState()
            candidates: list[RelationshipCandidate] = []
            outcomes: list[ValidationOutcome] = []
            failed = 0

            with ExitStack() as stack:
                executor = self._open_executor(stack, project_id, datasource_id)

                self._preserve_declared_fks(executor, columns, declared, state)
                report_progress(
                    on_progress, 10, PROGRESS_TOTAL, "Preserving column feature foreign keys"
                )

                self._preserve_column_feature_fks(executor, columns, state)
                report_progress(on_progress, 20, PROGRESS_TOTAL, "Collecting candidates")

                candidates = self.collector.collect_candidates(
                    project_id,
                    datasource_id,
                    scaled_progress(on_progress, 20, 50, PROGRESS_TOTAL),
                    executor=executor,
                    exclude_sources=state.resolved_sources,
                    columns=columns,
                    cancel_event=cancel,
                )
                if cancel.is_set():
                    raise DiscoveryCancelledError("Discovery cancelled during candidate collection")

                report_progress(
                    on_progress, 50, PROGRESS_TOTAL, f"Validating {len(candidates)} candidates"
                )
                try:
                    outcomes = self.validator.validate_candidates(
                        candidates,
                        scaled_progress(on_progress, 50, 90, PROGRESS_TOTAL),
                        cancel,
                    )
                except ValidationBatchError as e:
                    logger.error("relationship_validation_batch_failed", error=str(e))
                    failed = len(candidates)

            report_progress(on_progress, 90, PROGRESS_TOTAL, "Storing relationships")

            skipped = 0
            for outcome in outcomes:
                if outcome.status == ValidationStatus.RESOLVED:
                    assert outcome.verdict is not None
                    self._apply_verdict(outcome.candidate, outcome.verdict, state)
                elif outcome.status == ValidationStatus.FAILED:
                    failed += 1
                else:
                    skipped += 1

            self._persist(project_id, datasource_id, state)

            result = DiscoveryResult(
                candidates_evaluated=len(candidates),
                relationships_created=len(state.accepted),
                relationships_rejected=len(state.rejected),
                candidates_failed=failed,
                preserved_db_fks=state.preserved_db_fks,
                preserved_column_fks=state.preserved_column_fks,
                inferred_relationships=state.inferred,
                duration_seconds=time.time() - start_time,
                cancelled=skipped > 0,
            )

            logger.info(
                "relationship_discovery_complete",
                candidates=result.candidates_evaluated,
                created=result.relationships_created,
                rejected=result.relationships_rejected,
                failed=result.candidates_failed,
                preserved_db_fks=result.preserved_db_fks,
                preserved_column_fks=result.preserved_column_fks,
                cancelled=result.cancelled,
                duration_seconds=round(result.duration_seconds, 2),
            )
            report_progress(on_progress, 100, PROGRESS_TOTAL, "Complete")
            return result

    def _load_schema(
        self, project_id: str, datasource_id: str
    ) -> tuple[list[ColumnProfile], list[DeclaredForeignKey]]:
        try:
            columns = self.schema_reader.load_columns(project_id, datasource_id)
            declared = self.schema_reader.load_declared_foreign_keys(project_id, datasource_id)
        except SchemaUnavailableError:
            raise
        except Exception as e:
            raise SchemaUnavailableError(
                f"Failed to load schema metadata: {e}",
                project_id=project_id,
                datasource_id=datasource_id,
            ) from e
        return columns, declared

    def _open_executor(
        self, stack: ExitStack, project_id: str, datasource_id: str
    ) -> QueryExecutor:
        try:
            return stack.enter_context(self.connector.connect(project_id, datasource_id))
        except DatasourceConnectionError:
            raise
        except Exception as e:
            raise DatasourceConnectionError(
                f"Failed to connect to datasource: {e}",
                project_id=project_id,
                datasource_id=datasource_id,
            ) from e

    def _preserve_declared_fks(
        self,
        executor: QueryExecutor,
        columns: Sequence[ColumnProfile],
        declared: Sequence[DeclaredForeignKey],
        state: _RunState,
    ) -> None:
        by_ref = {column.ref: column for column in columns}

        for fk in declared:
            source = by_ref.get(fk.source)
            target = by_ref.get(fk.target)
            if source is None or target is None:
                logger.debug(
                    "declared_fk_skipped_unknown_column",
                    source=str(fk.source),
                    target=str(fk.target),
                )
                continue

            stats, errors = compute_join_statistics(executor, source, target)
            for error in errors:
                logger.warning(
                    "declared_fk_statistics_failed",
                    source=source.qualified_name,
                    target=target.qualified_name,
                    error=str(error),
                )
            cardinality = infer_cardinality(stats) or Cardinality.MANY_TO_ONE

            relationship = ValidatedRelationship(
                source=fk.source,
                target=fk.target,
                provenance=Provenance.DB_CONSTRAINT,
                cardinality=cardinality,
                confidence=1.0,
                trusted=True,
                statistics=stats,
            )
            state.resolved_sources.add(fk.source)
            if state.accept(relationship):
                state.preserved_db_fks += 1

        logger.info("declared_fks_preserved", count=state.preserved_db_fks)

    def _preserve_column_feature_fks(
        self,
        executor: QueryExecutor,
        columns: Sequence[ColumnProfile],
        state: _RunState,
    ) -> None:
        threshold = self.config.column_inference_min_confidence
        rejected_before = len(state.rejected)

        for source in sorted(columns, key=lambda c: (c.table_name, c.column_name)):
            features = source.features
            if features is None or not features.fk_target_table:
                continue
            if features.fk_confidence is None or features.fk_confidence < threshold:
                continue
            if source.ref in state.resolved_sources:
                continue

            target = self._resolve_feature_target(source, columns)
            if target is None:
                logger.debug(
                    "column_feature_fk_target_unresolved",
                    source=source.qualified_name,
                    target_table=features.fk_target_table,
                    target_column=features.fk_target_column,
                )
                continue

            state.resolved_sources.add(source.ref)
            if source.ref == target.ref:
                continue

            stats, errors = compute_join_statistics(executor, source, target)
            reason = self._check_feature_fk(target, stats, [str(e) for e in errors])
            if reason is not None:
                logger.info(
                    "column_feature_fk_rejected",
                    source=source.qualified_name,
                    target=target.qualified_name,
                    reason=reason,
                )
                state.rejected.append(
                    RejectedCandidate(
                        source=source.ref,
                        target=target.ref,
                        provenance=Provenance.COLUMN_FEATURES,
                        reason=reason,
                        confidence=features.fk_confidence,
                    )
                )
                continue

            cardinality = infer_cardinality(stats)
            assert cardinality is not None
            relationship = ValidatedRelationship(
                source=source.ref,
                target=target.ref,
                provenance=Provenance.COLUMN_FEATURES,
                cardinality=cardinality,
                confidence=features.fk_confidence,
                description=features.semantic_description,
                trusted=True,
                statistics=stats,
            )
            if state.accept(relationship):
                state.preserved_column_fks += 1

        logger.info(
            "column_feature_fks_preserved",
            count=state.preserved_column_fks,
            rejected=len(state.rejected) - rejected_before,
        )

    def _resolve_feature_target(
        self, source: ColumnProfile, columns: Sequence[ColumnProfile]
    ) -> ColumnProfile | None:
        """Find the target column named by the source's features.

        The target table may be schema-qualified. Without an explicit target
        column, the target table's single primary key column is used.
        """
        features = source.features
        assert features is not None and features.fk_target_table
        schema_name, _, table_name = features.fk_target_table.rpartition(".")

        table_columns = [
            c
            for c in columns
            if c.table_name == table_name and (not schema_name or c.schema_name == schema_name)
        ]
        if not table_columns:
            return None

        if features.fk_target_column:
            for column in table_columns:
                if column.column_name == features.fk_target_column:
                    return column
            return None

        primary_keys = [c for c in table_columns if c.is_primary_key]
        if len(primary_keys) != 1:
            return None
        return primary_keys[0]

    def _check_feature_fk(
        self, target: ColumnProfile, stats: JoinStatistics, errors: list[str]
    ) -> str | None:
        """Return why a column-feature FK fails its statistics check, or None if it passes."""
        if not target.is_unique_key:
            return "target is not a primary key or unique column"
        if stats.join_count is None or stats.source_matched is None or stats.orphan_count is None:
            detail = "; ".join(errors) if errors else "missing values"
            return f"join statistics unavailable: {detail}"
        if stats.source_matched == 0:
            return "no source values match the target"

        orphan_ratio = stats.orphan_ratio or 0.0
        if orphan_ratio > self.config.max_orphan_ratio:
            return (
                f"orphan ratio {orphan_ratio:.2f} exceeds {self.config.max_orphan_ratio:.2f} "
                f"({stats.orphan_count} unmatched source values)"
            )

        cardinality = infer_cardinality(stats)
        if cardinality not in ACCEPTABLE_FEATURE_CARDINALITIES:
            return f"cardinality {cardinality} is not N:1 or 1:1"
        return None

    def _apply_verdict(
        self,
        candidate: RelationshipCandidate,
        verdict: ValidationVerdict,
        state: _RunState,
    ) -> None:
        """Turn one oracle verdict into an acceptance or a rejection."""
        source, target = candidate.source.ref, candidate.target.ref
        bar = self.config.min_acceptance_confidence

        reason: str | None = None
        if not verdict.accepted:
            reason = verdict.reasoning or "rejected by semantic oracle"
        elif verdict.confidence < bar:
            reason = f"low confidence ({verdict.confidence:.2f} < {bar:.2f}): {verdict.reasoning}"

        if reason is not None:
            logger.debug(
                "relationship_rejected",
                source=str(source),
                target=str(target),
                confidence=verdict.confidence,
                reason=reason,
            )
            state.rejected.append(
                RejectedCandidate(
                    source=source,
                    target=target,
                    provenance=Provenance.ORACLE_INFERENCE,
                    reason=reason,
                    confidence=verdict.confidence,
                )
            )
            return

        cardinality = (
            verdict.cardinality
            or infer_cardinality(candidate.statistics)
            or Cardinality.MANY_TO_ONE
        )
        relationship = ValidatedRelationship(
            source=source,
            target=target,
            provenance=Provenance.ORACLE_INFERENCE,
            cardinality=cardinality,
            confidence=verdict.confidence,
            source_role=verdict.source_role,
            description=describe_role(source.column_name, source.table_name, verdict.source_role),
            reasoning=verdict.reasoning,
            verdict=verdict,
            statistics=candidate.statistics,
        )
        if state.accept(relationship):
            state.inferred += 1

    def _persist(self, project_id: str, datasource_id: str, state: _RunState) -> None:
        for relationship in state.accepted.values():
            self.store.upsert_relationship(project_id, datasource_id, relationship)
        for rejection in state.rejected:
            self.store.record_rejection(project_id, datasource_id, rejection)

        logger.info(
            "relationships_stored",
            accepted=len(state.accepted),
            rejected=len(state.rejected),
        )
