"""Foreign key candidate collection.

Builds a statistically enriched, type-safe set of candidates:

1. Sources: columns whose extracted features mark them as identifiers or
   references (never column names)
2. Targets: primary key or unique columns only
3. Pairs: sources x targets, minus self-pairs and type-incompatible pairs
4. Statistics: join counts, orphans, reverse orphans, samples and per-column
   distinct counts from the customer database

No numeric thresholds are applied here. Accepting or rejecting a candidate
is the validator's job.
"""

from __future__ import annotations

import threading
from collections.abc import Collection, Generator, Sequence
from contextlib import contextmanager

from relscout.analysis.relationships.config import DiscoveryConfig
from relscout.analysis.relationships.joins import (
    ColumnStats,
    compute_join_statistics,
    fetch_column_stats,
    fetch_sample_values,
)
from relscout.analysis.relationships.models import RelationshipCandidate
from relscout.analysis.relationships.types import are_types_compatible, is_excluded_source_type
from relscout.core.errors import DatasourceConnectionError, StatisticsCollectionError
from relscout.core.logging import get_logger
from relscout.core.models.base import ColumnRef, ProgressCallback
from relscout.core.progress import report_progress
from relscout.core.workers import run_bounded
from relscout.datasource.base import DatasourceConnector, QueryExecutor
from relscout.schema.models import ColumnProfile
from relscout.schema.reader import SchemaMetadataReader

logger = get_logger(__name__)

# Feature vocabulary
ROLE_FOREIGN_KEY = "foreign_key"
PURPOSE_IDENTIFIER = "identifier"
SOURCE_CLASSIFICATION_PATHS = frozenset({"uuid", "external_id"})
EXCLUDED_CLASSIFICATION_PATHS = frozenset({"timestamp", "boolean", "json"})

PROGRESS_STEPS = 5
PROGRESS_BATCH = 100


class _ColumnFacts:
    """Per-run cache of live samples and stats, keyed by column."""

    def __init__(self) -> None:
        self.samples: dict[ColumnRef, list[str]] = {}
        self.stats: dict[ColumnRef, ColumnStats] = {}
        self.errors: dict[ColumnRef, list[str]] = {}


def is_excluded_source(column: ColumnProfile) -> bool:
    """Primary keys and temporal/boolean/JSON columns never hold foreign keys."""
    if column.is_primary_key:
        return True
    if is_excluded_source_type(column.data_type):
        return True
    features = column.features
    return features is not None and features.classification_path in EXCLUDED_CLASSIFICATION_PATHS


def is_qualified_source(column: ColumnProfile) -> bool:
    """Whether earlier analysis marks the column as a likely reference."""
    if column.is_joinable:
        return True
    features = column.features
    if features is None:
        return False
    return (
        features.role == ROLE_FOREIGN_KEY
        or features.purpose == PURPOSE_IDENTIFIER
        or features.classification_path in SOURCE_CLASSIFICATION_PATHS
    )


def _sort_key(column: ColumnProfile) -> tuple[str, str]:
    return (column.table_name, column.column_name)


class CandidateCollector:
    """Collects foreign key candidates for one datasource.

    Usage:
        collector = CandidateCollector(schema_reader, connector, DiscoveryConfig())
        candidates = collector.collect_candidates(project_id, datasource_id)
    """

    def __init__(
        self,
        schema_reader: SchemaMetadataReader,
        connector: DatasourceConnector | None = None,
        config: DiscoveryConfig | None = None,
    ):
        self.schema_reader = schema_reader
        self.connector = connector
        self.config = config or DiscoveryConfig()

    def identify_fk_sources(
        self,
        columns: Sequence[ColumnProfile],
        exclude: Collection[ColumnRef] = (),
    ) -> list[ColumnProfile]:
        """Columns that may reference another table, sorted by table then column."""
        excluded = set(exclude)
        sources = [
            column
            for column in columns
            if not is_excluded_source(column)
            and is_qualified_source(column)
            and column.ref not in excluded
        ]
        return sorted(sources, key=_sort_key)

    def identify_fk_targets(self, columns: Sequence[ColumnProfile]) -> list[ColumnProfile]:
        """Columns that may be referenced: primary keys and unique columns."""
        return sorted((c for c in columns if c.is_unique_key), key=_sort_key)

    def generate_candidate_pairs(
        self, sources: Sequence[ColumnProfile], targets: Sequence[ColumnProfile]
    ) -> list[RelationshipCandidate]:
        """Cross sources with targets, dropping self-pairs and incompatible types."""
        candidates: list[RelationshipCandidate] = []
        for source in sources:
            for target in targets:
                if (
                    source.table_name == target.table_name
                    and source.column_name == target.column_name
                ):
                    continue
                if not are_types_compatible(source.data_type, target.data_type):
                    logger.debug(
                        "candidate_type_mismatch",
                        source=source.qualified_name,
                        source_type=source.data_type,
                        target=target.qualified_name,
                        target_type=target.data_type,
                    )
                    continue
                candidates.append(RelationshipCandidate(source=source, target=target))
        return candidates

    def collect_statistics(
        self,
        executor: QueryExecutor,
        candidates: Sequence[RelationshipCandidate],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Enrich candidates in place with join statistics and column facts.

        A failing query is logged and recorded in the candidate's
        statistics_errors; the candidate keeps whatever data was collected.
        """
        if not candidates:
            return

        facts = self._collect_column_facts(executor, candidates, cancel_event)

        total = len(candidates)

        def on_complete(slot: object, settled: int) -> None:
            if total > PROGRESS_BATCH and settled % PROGRESS_BATCH == 0:
                report_progress(
                    on_progress,
                    4,
                    PROGRESS_STEPS,
                    f"Analyzing candidates: {settled}/{total}",
                )

        slots = run_bounded(
            list(candidates),
            lambda candidate: compute_join_statistics(executor, candidate.source, candidate.target),
            max_workers=self.config.statistics_concurrency,
            cancel_event=cancel_event,
            on_complete=on_complete,
            thread_name_prefix="relscout-stats",
        )

        for slot in slots:
            candidate = slot.item
            self._apply_column_facts(candidate, facts)
            if slot.value is not None:
                stats, errors = slot.value
                candidate.statistics = stats
                for error in errors:
                    self._record_error(candidate, error)
            elif slot.error is not None:
                self._record_error(candidate, slot.error)

    def collect_candidates(
        self,
        project_id: str,
        datasource_id: str,
        on_progress: ProgressCallback | None = None,
        *,
        executor: QueryExecutor | None = None,
        exclude_sources: Collection[ColumnRef] = (),
        columns: Sequence[ColumnProfile] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[RelationshipCandidate]:
        """Collect statistically enriched candidates for a datasource.

        Args:
            project_id: Project identifier
            datasource_id: Datasource identifier
            on_progress: Callback receiving (step, 5, message)
            executor: Query executor to use; opened from the connector when omitted
            exclude_sources: Source columns already resolved elsewhere
            columns: Pre-loaded column metadata; loaded from the reader when omitted
            cancel_event: Stops statistics collection when set

        Returns:
            Candidates in deterministic order (source, then target)

        Raises:
            SchemaUnavailableError: If column metadata cannot be loaded
            DatasourceConnectionError: If no executor is given and none can be opened
        """
        report_progress(on_progress, 0, PROGRESS_STEPS, "Loading schema metadata")
        if columns is None:
            columns = self.schema_reader.load_columns(project_id, datasource_id)

        sources = self.identify_fk_sources(columns, exclude=exclude_sources)
        report_progress(
            on_progress, 1, PROGRESS_STEPS, f"Found {len(sources)} potential FK sources"
        )

        targets = self.identify_fk_targets(columns)
        report_progress(
            on_progress, 2, PROGRESS_STEPS, f"Found {len(targets)} FK targets (PKs/unique)"
        )

        candidates = self.generate_candidate_pairs(sources, targets)
        report_progress(
            on_progress, 3, PROGRESS_STEPS, f"Generated {len(candidates)} candidate pairs"
        )

        logger.info(
            "candidate_pairs_generated",
            columns=len(columns),
            sources=len(sources),
            targets=len(targets),
            candidates=len(candidates),
        )

        if candidates:
            with self._executor_scope(project_id, datasource_id, executor) as active:
                self.collect_statistics(active, candidates, on_progress, cancel_event)

        failed = sum(1 for c in candidates if c.statistics_errors)
        logger.info(
            "candidate_collection_complete",
            candidates=len(candidates),
            with_statistics_errors=failed,
        )
        report_progress(
            on_progress, 5, PROGRESS_STEPS, f"Collected {len(candidates)} candidates"
        )
        return candidates

    @contextmanager
    def _executor_scope(
        self, project_id: str, datasource_id: str, executor: QueryExecutor | None
    ) -> Generator[QueryExecutor]:
        if executor is not None:
            yield executor
            return
        if self.connector is None:
            raise DatasourceConnectionError(
                "No query executor or datasource connector configured",
                project_id=project_id,
                datasource_id=datasource_id,
            )
        with self.connector.connect(project_id, datasource_id) as opened:
            yield opened

    def _collect_column_facts(
        self,
        executor: QueryExecutor,
        candidates: Sequence[RelationshipCandidate],
        cancel_event: threading.Event | None,
    ) -> _ColumnFacts:
        facts = _ColumnFacts()
        columns: dict[ColumnRef, ColumnProfile] = {}
        for candidate in candidates:
            columns.setdefault(candidate.source.ref, candidate.source)
            columns.setdefault(candidate.target.ref, candidate.target)

        limit = self.config.sample_limit

        def fetch(column: ColumnProfile) -> tuple[list[str] | None, ColumnStats | None, list[str]]:
            errors: list[str] = []
            samples: list[str] | None = None
            stats: ColumnStats | None = None
            try:
                samples = fetch_sample_values(executor, column, limit)
            except StatisticsCollectionError as e:
                errors.append(str(e))
            try:
                stats = fetch_column_stats(executor, column)
            except StatisticsCollectionError as e:
                errors.append(str(e))
            return samples, stats, errors

        slots = run_bounded(
            list(columns.values()),
            fetch,
            max_workers=self.config.statistics_concurrency,
            cancel_event=cancel_event,
            thread_name_prefix="relscout-stats",
        )
        for slot in slots:
            ref = slot.item.ref
            if slot.value is None:
                if slot.error is not None:
                    facts.errors[ref] = [str(slot.error)]
                continue
            samples, stats, errors = slot.value
            if samples is not None:
                facts.samples[ref] = samples
            if stats is not None:
                facts.stats[ref] = stats
            if errors:
                facts.errors[ref] = errors
                for error in errors:
                    logger.warning("column_statistics_failed", column=str(ref), error=error)
        return facts

    def _apply_column_facts(self, candidate: RelationshipCandidate, facts: _ColumnFacts) -> None:
        source_ref, target_ref = candidate.source.ref, candidate.target.ref

        candidate.source_samples = list(facts.samples.get(source_ref, []))
        candidate.target_samples = list(facts.samples.get(target_ref, []))

        source_stats = facts.stats.get(source_ref)
        if source_stats is not None:
            candidate.source_distinct_count = source_stats.distinct_count
            candidate.source_null_rate = source_stats.null_rate
        target_stats = facts.stats.get(target_ref)
        if target_stats is not None:
            candidate.target_distinct_count = target_stats.distinct_count
            candidate.target_null_rate = target_stats.null_rate

        for ref in (source_ref, target_ref):
            candidate.statistics_errors.extend(facts.errors.get(ref, []))

    def _record_error(self, candidate: RelationshipCandidate, error: BaseException) -> None:
        candidate.statistics_errors.append(str(error))
        logger.warning(
            "candidate_statistics_failed",
            source=candidate.source.qualified_name,
            target=candidate.target.qualified_name,
            error=str(error),
        )
