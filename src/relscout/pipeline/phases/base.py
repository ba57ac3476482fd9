"""Shared run wrapper for pipeline phases."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from relscout.core.logging import get_logger, log_context
from relscout.pipeline.base import PhaseContext, PhaseResult

logger = get_logger(__name__)


class BasePhase(ABC):
    """Phase with logging context, timing and a last-resort error guard.

    Subclasses provide the four descriptive properties and ``_run``.
    Unexpected exceptions from ``_run`` become a failed PhaseResult so the
    scheduler never sees them.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def dependencies(self) -> list[str]: ...

    @property
    @abstractmethod
    def outputs(self) -> list[str]: ...

    def run(self, ctx: PhaseContext) -> PhaseResult:
        start = time.monotonic()
        with log_context(
            phase=self.name, project_id=ctx.project_id, datasource_id=ctx.datasource_id
        ):
            logger.info("phase_started")
            try:
                result = self._run(ctx)
            except Exception as e:
                logger.exception("phase_failed", error=str(e))
                return PhaseResult.failed(str(e), duration=time.monotonic() - start)

            if not result.duration_seconds:
                result.duration_seconds = time.monotonic() - start
            logger.info(
                "phase_finished",
                status=result.status.value,
                duration_seconds=round(result.duration_seconds, 2),
            )
            return result

    @abstractmethod
    def _run(self, ctx: PhaseContext) -> PhaseResult: ...

    def should_skip(self, ctx: PhaseContext) -> str | None:
        """Reason to skip this phase, or None to run it."""
        return None
