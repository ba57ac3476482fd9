"""Tests for LLM configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from relscout.llm.config import FeatureConfig, LLMConfig, load_llm_config

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


def test_load_llm_config():
    """Test loading LLM configuration from YAML."""
    config = load_llm_config(CONFIG_DIR / "llm.yaml")

    assert config.active_provider in config.providers
    assert config.limits.max_output_tokens_per_request > 0
    assert config.privacy.max_sample_values == 10


def test_llm_config_has_anthropic():
    """Test that Anthropic provider is configured."""
    config = load_llm_config(CONFIG_DIR / "llm.yaml")

    provider = config.providers["anthropic"]
    assert provider.api_key_env == "ANTHROPIC_API_KEY"
    assert provider.default_model
    assert "fast" in provider.models
    assert "balanced" in provider.models


def test_relationship_validation_feature_enabled():
    config = load_llm_config(CONFIG_DIR / "llm.yaml")

    feature = config.features.relationship_validation
    assert feature.enabled
    assert feature.prompt_file == "relationship_validation"


def test_sensitive_patterns_configured():
    config = load_llm_config(CONFIG_DIR / "llm.yaml")

    assert ".*password.*" in config.privacy.sensitive_patterns


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_llm_config(tmp_path / "llm.yaml")


def test_invalid_config(tmp_path):
    path = tmp_path / "llm.yaml"
    path.write_text(yaml.safe_dump({"active_provider": "anthropic"}))

    with pytest.raises(ValidationError):
        load_llm_config(path)


def test_unknown_active_provider():
    config = LLMConfig(providers={}, active_provider="openai")

    with pytest.raises(ValueError, match="not configured"):
        _ = config.active_provider_config


def test_feature_defaults():
    feature = FeatureConfig()

    assert feature.enabled
    assert feature.model_tier == "balanced"


def test_provider_options_carry_timeout():
    config = load_llm_config(CONFIG_DIR / "llm.yaml")

    options = config.provider_options()

    assert options["api_key_env"] == "ANTHROPIC_API_KEY"
    assert options["timeout_seconds"] == 60
    assert options["models"]["fast"]
