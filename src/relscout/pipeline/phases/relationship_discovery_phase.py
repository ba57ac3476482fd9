"""Relationship discovery phase implementation.

Runs the foreign key discovery engine for one datasource:
- Declared database constraints (always trusted)
- Column feature FK hints confirmed by join statistics
- Semantic oracle validation of the remaining candidates
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import func, select

from relscout.analysis.relationships.config import DiscoveryConfig
from relscout.analysis.relationships.discovery import RelationshipDiscoveryService
from relscout.analysis.relationships.store import SqlAlchemyRelationshipStore
from relscout.analysis.relationships.validator import SemanticOracle
from relscout.core.config import get_settings
from relscout.core.errors import DiscoveryCancelledError, DiscoveryError
from relscout.core.logging import get_logger
from relscout.pipeline.base import PhaseContext, PhaseResult
from relscout.pipeline.phases.base import BasePhase
from relscout.schema.db_models import SchemaTable
from relscout.schema.reader import SqlAlchemySchemaReader

logger = get_logger(__name__)


def _default_oracle() -> SemanticOracle:
    from relscout.llm import create_oracle

    return create_oracle()


class RelationshipDiscoveryPhase(BasePhase):
    """Foreign key discovery phase.

    Produces the datasource's relationship graph. Config overrides in
    ``ctx.config`` use the DiscoveryConfig field names.
    """

    def __init__(
        self,
        oracle: SemanticOracle | None = None,
        oracle_factory: Callable[[], SemanticOracle] = _default_oracle,
    ):
        self._oracle = oracle
        self._oracle_factory = oracle_factory

    @property
    def name(self) -> str:
        return "relationship_discovery"

    @property
    def description(self) -> str:
        return "Foreign key relationship discovery"

    @property
    def dependencies(self) -> list[str]:
        return ["column_features"]

    @property
    def outputs(self) -> list[str]:
        return ["relationships"]

    def should_skip(self, ctx: PhaseContext) -> str | None:
        """Skip when the datasource has no schema metadata."""
        stmt = select(func.count(SchemaTable.table_id)).where(
            SchemaTable.project_id == ctx.project_id,
            SchemaTable.datasource_id == ctx.datasource_id,
        )
        with ctx.manager.session_scope() as session:
            table_count = session.execute(stmt).scalar() or 0

        if table_count == 0:
            return "No tables found for datasource"
        return None

    def _run(self, ctx: PhaseContext) -> PhaseResult:
        """Run discovery and summarize the outcome."""
        config = self._discovery_config(ctx)
        oracle = self._oracle or self._oracle_factory()

        service = RelationshipDiscoveryService(
            schema_reader=SqlAlchemySchemaReader(ctx.manager),
            connector=ctx.connector,
            oracle=oracle,
            store=SqlAlchemyRelationshipStore(ctx.manager),
            config=config,
        )

        try:
            result = service.discover_relationships(
                ctx.project_id,
                ctx.datasource_id,
                on_progress=ctx.on_progress,
                cancel_event=ctx.cancel_event,
            )
        except DiscoveryCancelledError as e:
            return PhaseResult.skipped(f"Relationship discovery cancelled: {e}")
        except DiscoveryError as e:
            return PhaseResult.failed(f"Relationship discovery failed: {e}")

        outputs = {"relationships": result.model_dump()}

        if result.cancelled:
            return PhaseResult.skipped(
                "Relationship discovery cancelled during validation", outputs=outputs
            )

        warnings = []
        if result.candidates_failed:
            warnings.append(f"{result.candidates_failed} candidates could not be validated")

        return PhaseResult.success(
            outputs=outputs,
            duration=result.duration_seconds,
            records_processed=result.candidates_evaluated,
            records_created=result.relationships_created,
            warnings=warnings,
        )

    def _discovery_config(self, ctx: PhaseContext) -> DiscoveryConfig:
        base = DiscoveryConfig.from_settings(get_settings())
        overrides = {k: v for k, v in ctx.config.items() if k in DiscoveryConfig.model_fields}
        if not overrides:
            return base
        return DiscoveryConfig.model_validate({**base.model_dump(), **overrides})
