"""Host pipeline integration."""

from relscout.pipeline.base import Phase, PhaseContext, PhaseResult, PhaseStatus

__all__ = ["Phase", "PhaseContext", "PhaseResult", "PhaseStatus"]
