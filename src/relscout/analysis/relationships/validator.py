"""Semantic validation of foreign key candidates.

Each candidate is judged by a SemanticOracle. Candidates are validated
concurrently on a bounded pool; output slot i always belongs to input i.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Protocol

from relscout.analysis.relationships.config import DiscoveryConfig
from relscout.analysis.relationships.models import (
    OracleRequest,
    RelationshipCandidate,
    ValidationOutcome,
    ValidationStatus,
    ValidationVerdict,
)
from relscout.core.errors import (
    DiscoveryCancelledError,
    OracleError,
    ValidationBatchError,
)
from relscout.core.logging import get_logger
from relscout.core.models.base import ProgressCallback, Result
from relscout.core.progress import report_progress
from relscout.core.workers import SlotStatus, WorkSlot, run_bounded

logger = get_logger(__name__)


class SemanticOracle(Protocol):
    """Judges whether a candidate is a real foreign key.

    Must be safe to call from several threads at once.
    """

    def evaluate(self, request: OracleRequest) -> Result[ValidationVerdict]:
        """Return a verdict, or a failed Result when no verdict could be produced."""
        ...


class RelationshipValidator:
    """Validates candidates through a semantic oracle.

    Usage:
        validator = RelationshipValidator(oracle, DiscoveryConfig(validation_concurrency=5))
        outcomes = validator.validate_candidates(candidates, on_progress=report)
    """

    def __init__(self, oracle: SemanticOracle, config: DiscoveryConfig | None = None):
        self.oracle = oracle
        self.config = config or DiscoveryConfig()

    def validate_candidate(self, candidate: RelationshipCandidate) -> ValidationVerdict:
        """Ask the oracle about one candidate.

        Raises:
            OracleError: If the oracle fails or its answer cannot be used
        """
        request = OracleRequest.from_candidate(candidate)
        try:
            result = self.oracle.evaluate(request)
        except OracleError:
            raise
        except Exception as e:
            raise OracleError(f"Oracle call failed: {e}", candidate_label=candidate.label) from e

        if not result.success or result.value is None:
            raise OracleError(
                result.error or "Oracle returned no verdict", candidate_label=candidate.label
            )

        verdict = result.value
        logger.debug(
            "relationship_validated",
            source=candidate.source.qualified_name,
            target=candidate.target.qualified_name,
            accepted=verdict.accepted,
            confidence=verdict.confidence,
            cardinality=verdict.cardinality.value if verdict.cardinality else None,
        )
        return verdict

    def validate_candidates(
        self,
        candidates: Sequence[RelationshipCandidate],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[ValidationOutcome]:
        """Validate a batch concurrently.

        Args:
            candidates: Candidates to validate
            on_progress: Receives (completed, total, message) on the calling thread
            cancel_event: Stops dispatching new work when set

        Returns:
            One outcome per candidate, in input order

        Raises:
            ValidationBatchError: If every candidate failed
            DiscoveryCancelledError: If cancelled before any validation completed
        """
        total = len(candidates)
        if total == 0:
            return []

        interval = self.config.progress_interval

        def on_complete(
            slot: WorkSlot[RelationshipCandidate, ValidationVerdict], settled: int
        ) -> None:
            if slot.status == SlotStatus.FAILED:
                logger.warning(
                    "relationship_validation_failed",
                    source=slot.item.source.qualified_name,
                    target=slot.item.target.qualified_name,
                    error=str(slot.error),
                )
            if settled % interval == 0 or settled == total:
                report_progress(
                    on_progress, settled, total, f"Validated {settled}/{total} candidates"
                )

        slots = run_bounded(
            list(candidates),
            self.validate_candidate,
            max_workers=self.config.validation_concurrency,
            cancel_event=cancel_event,
            on_complete=on_complete,
            thread_name_prefix="relscout-validate",
        )

        outcomes = [_to_outcome(slot) for slot in slots]

        resolved = sum(1 for o in outcomes if o.status == ValidationStatus.RESOLVED)
        failed = sum(1 for o in outcomes if o.status == ValidationStatus.FAILED)
        skipped = total - resolved - failed

        if skipped and resolved == 0 and failed == 0:
            raise DiscoveryCancelledError(
                f"Validation cancelled before any of {total} candidates completed"
            )

        if failed == total:
            raise ValidationBatchError(total, [o.error or "" for o in outcomes])

        logger.info(
            "relationship_validation_complete",
            total=total,
            resolved=resolved,
            failed=failed,
            skipped=skipped,
        )
        return outcomes


def _to_outcome(slot: WorkSlot[RelationshipCandidate, ValidationVerdict]) -> ValidationOutcome:
    if slot.status == SlotStatus.COMPLETED:
        return ValidationOutcome(
            index=slot.index,
            candidate=slot.item,
            status=ValidationStatus.RESOLVED,
            verdict=slot.value,
        )
    if slot.status == SlotStatus.FAILED:
        return ValidationOutcome(
            index=slot.index,
            candidate=slot.item,
            status=ValidationStatus.FAILED,
            error=str(slot.error),
        )
    return ValidationOutcome(
        index=slot.index,
        candidate=slot.item,
        status=ValidationStatus.SKIPPED,
        error="cancelled",
    )
