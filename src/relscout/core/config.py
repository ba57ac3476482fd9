"""Process-wide settings read from RELSCOUT_* environment variables and .env."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_config_dir() -> Path:
    """The repository's config/ directory when running from a checkout, else ./config."""
    checkout_config = Path(__file__).resolve().parents[3] / "config"
    return checkout_config if checkout_config.is_dir() else Path("config")


class Settings(BaseSettings):
    """Defaults for every run; DiscoveryConfig.from_settings copies the discovery knobs."""

    model_config = SettingsConfigDict(
        env_prefix="RELSCOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Metadata store (SQLAlchemy) holding column metadata and discovered relationships
    metadata_database_url: str = Field(
        default="sqlite:///./relscout.db",
        description="SQLAlchemy URL for the metadata store (postgresql+psycopg://... in prod)",
    )

    config_path: Path = Field(
        default_factory=_find_config_dir,
        description="Path to configuration files (llm.yaml, prompts/)",
    )

    # Validation
    validation_concurrency: int = Field(
        default=5,
        ge=1,
        description="Number of concurrent semantic oracle calls",
    )
    min_acceptance_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Oracle acceptances below this confidence are treated as rejections",
    )

    # Column feature precedence tier
    column_inference_min_confidence: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Minimum prior-stage FK confidence for the column-features tier",
    )
    max_orphan_ratio: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Largest orphan ratio the column-features tier still accepts",
    )

    # Statistics collection
    statistics_concurrency: int = Field(
        default=1,
        ge=1,
        description="Workers used for per-candidate join statistics (1 = sequential)",
    )
    sample_limit: int = Field(default=10, ge=0, le=10)

    progress_interval: int = Field(default=5, ge=1, le=5)  # completions between reports

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # 'json' or 'console'


@lru_cache
def get_settings() -> Settings:
    return Settings()
