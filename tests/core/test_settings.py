"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from relscout.analysis.relationships.config import DiscoveryConfig
from relscout.core.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.validation_concurrency == 5
    assert settings.min_acceptance_confidence == 0.7
    assert settings.column_inference_min_confidence == 0.8
    assert settings.max_orphan_ratio == 0.0
    assert settings.statistics_concurrency == 1
    assert settings.sample_limit == 10


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("RELSCOUT_VALIDATION_CONCURRENCY", "12")
    monkeypatch.setenv("RELSCOUT_MIN_ACCEPTANCE_CONFIDENCE", "0.85")

    settings = Settings(_env_file=None)

    assert settings.validation_concurrency == 12
    assert settings.min_acceptance_confidence == 0.85


def test_discovery_config_from_settings():
    settings = Settings(_env_file=None, validation_concurrency=3, max_orphan_ratio=0.1)

    config = DiscoveryConfig.from_settings(settings)

    assert config.validation_concurrency == 3
    assert config.max_orphan_ratio == 0.1
    assert config.min_acceptance_confidence == settings.min_acceptance_confidence


@pytest.mark.parametrize("interval", [0, 6])
def test_progress_interval_bounds(interval):
    with pytest.raises(ValidationError):
        DiscoveryConfig(progress_interval=interval)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, progress_interval=interval)
