"""Typed view of config/llm.yaml."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class ProviderConfig(BaseModel):
    api_key_env: str  # Name of the environment variable, never the key itself
    default_model: str
    models: dict[str, str]  # tier -> model


class FeatureConfig(BaseModel):
    enabled: bool = True
    model_tier: str = "balanced"
    prompt_file: str | None = None
    description: str = ""


class LLMFeatures(BaseModel):
    relationship_validation: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(prompt_file="relationship_validation")
    )


class LLMLimits(BaseModel):
    max_output_tokens_per_request: int = 1024
    request_timeout_seconds: float = 60.0


class LLMPrivacy(BaseModel):
    """What column samples may leave the process."""

    max_sample_values: int = 10
    sensitive_patterns: list[str] = Field(default_factory=list)  # regexes on column names


class LLMConfig(BaseModel):
    version: str = "1.0.0"
    providers: dict[str, ProviderConfig]
    active_provider: str
    features: LLMFeatures = Field(default_factory=LLMFeatures)
    limits: LLMLimits = Field(default_factory=LLMLimits)
    privacy: LLMPrivacy = Field(default_factory=LLMPrivacy)

    @property
    def active_provider_config(self) -> ProviderConfig:
        if self.active_provider not in self.providers:
            raise ValueError(
                f"Active provider '{self.active_provider}' is not configured. "
                f"Configured providers: {sorted(self.providers)}"
            )
        return self.providers[self.active_provider]

    def provider_options(self) -> dict[str, Any]:
        """Constructor options for the active provider, including the request timeout."""
        return {
            **self.active_provider_config.model_dump(),
            "timeout_seconds": self.limits.request_timeout_seconds,
        }


def load_llm_config(config_path: Path | None = None) -> LLMConfig:
    """Parse llm.yaml (``config/llm.yaml`` relative to the working directory by default).

    Raises:
        FileNotFoundError: The file does not exist
        pydantic.ValidationError: Required sections are missing or mistyped
    """
    path = config_path or Path("config/llm.yaml")
    if not path.is_file():
        raise FileNotFoundError(f"LLM config not found: {path}")
    return LLMConfig(**yaml.safe_load(path.read_text()))
