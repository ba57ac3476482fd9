"""Phase contract between relscout and a host pipeline scheduler.

The scheduler builds a PhaseContext per datasource, checks ``should_skip``,
then calls ``run`` and stores the PhaseResult outputs under the phase name
for later phases.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from relscout.core.connections import ConnectionManager
    from relscout.core.models.base import ProgressCallback
    from relscout.datasource.base import DatasourceConnector


class PhaseStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PhaseContext:
    """What a phase gets to work with for one datasource."""

    manager: ConnectionManager  # metadata store
    connector: DatasourceConnector  # customer database, read-only
    project_id: str
    datasource_id: str

    # Keyed by phase name, then output key
    previous_outputs: dict[str, dict[str, Any]] = field(default_factory=dict)

    # Per-run overrides, keyed by setting name
    config: dict[str, Any] = field(default_factory=dict)

    cancel_event: threading.Event = field(default_factory=threading.Event)
    on_progress: ProgressCallback | None = None

    def get_output(self, phase_name: str, key: str, default: Any = None) -> Any:
        return self.previous_outputs.get(phase_name, {}).get(key, default)


@dataclass
class PhaseResult:
    """Outcome of one phase run.

    ``error`` holds the failure message for FAILED and the reason for SKIPPED.
    A skipped run may still carry partial outputs.
    """

    status: PhaseStatus
    outputs: dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    records_processed: int = 0
    records_created: int = 0

    @classmethod
    def success(
        cls,
        outputs: dict[str, Any] | None = None,
        duration: float = 0.0,
        records_processed: int = 0,
        records_created: int = 0,
        warnings: list[str] | None = None,
    ) -> PhaseResult:
        return cls(
            status=PhaseStatus.COMPLETED,
            outputs=outputs or {},
            duration_seconds=duration,
            records_processed=records_processed,
            records_created=records_created,
            warnings=warnings or [],
        )

    @classmethod
    def failed(cls, error: str, duration: float = 0.0) -> PhaseResult:
        return cls(status=PhaseStatus.FAILED, error=error, duration_seconds=duration)

    @classmethod
    def skipped(cls, reason: str, outputs: dict[str, Any] | None = None) -> PhaseResult:
        return cls(status=PhaseStatus.SKIPPED, error=reason, outputs=outputs or {})


class Phase(Protocol):
    """A schedulable unit of work.

    ``dependencies`` name the phases whose outputs must exist before this
    one runs; ``outputs`` name the keys this phase adds to previous_outputs.
    """

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def dependencies(self) -> list[str]: ...

    @property
    def outputs(self) -> list[str]: ...

    def run(self, ctx: PhaseContext) -> PhaseResult:
        """Execute the phase; must not raise."""
        ...

    def should_skip(self, ctx: PhaseContext) -> str | None:
        """Reason to skip, or None to run."""
        ...
