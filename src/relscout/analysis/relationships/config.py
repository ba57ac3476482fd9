"""Tuning knobs for a discovery run."""

from __future__ import annotations

from pydantic import BaseModel, Field

from relscout.core.config import Settings


class DiscoveryConfig(BaseModel):
    """Configuration passed to the collector, validator and orchestrator.

    Components read these values only from the instance they are given.
    """

    validation_concurrency: int = Field(default=5, ge=1)
    statistics_concurrency: int = Field(default=1, ge=1)

    # Oracle acceptances below this are rejected
    min_acceptance_confidence: float = Field(default=0.7, ge=0.0, le=1.0)

    # Column features tier
    column_inference_min_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    max_orphan_ratio: float = Field(default=0.0, ge=0.0, le=1.0)

    sample_limit: int = Field(default=10, ge=0, le=10)
    progress_interval: int = Field(default=5, ge=1, le=5)  # completions between reports

    @classmethod
    def from_settings(cls, settings: Settings) -> DiscoveryConfig:
        return cls(
            validation_concurrency=settings.validation_concurrency,
            statistics_concurrency=settings.statistics_concurrency,
            min_acceptance_confidence=settings.min_acceptance_confidence,
            column_inference_min_confidence=settings.column_inference_min_confidence,
            max_orphan_ratio=settings.max_orphan_ratio,
            sample_limit=settings.sample_limit,
            progress_interval=settings.progress_interval,
        )
