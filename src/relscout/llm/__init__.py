"""LLM integration: configuration, prompts, providers and the semantic oracle.

Usage:
    from relscout.llm import create_oracle

    oracle = create_oracle()  # reads config/llm.yaml and the provider's API key
"""

from relscout.core.config import Settings, get_settings
from relscout.llm.config import LLMConfig, load_llm_config
from relscout.llm.oracle import LLMRelationshipOracle, parse_verdict
from relscout.llm.privacy import DataSampler
from relscout.llm.prompts import PromptRenderer
from relscout.llm.providers import LLMProvider, create_provider


def create_oracle(
    settings: Settings | None = None,
    provider: LLMProvider | None = None,
) -> LLMRelationshipOracle:
    """Build the LLM-backed oracle from configuration files.

    Args:
        settings: Application settings; defaults to get_settings()
        provider: Pre-built provider; created from llm.yaml when omitted

    Returns:
        Ready-to-use oracle
    """
    settings = settings or get_settings()
    config = load_llm_config(settings.config_path / "llm.yaml")

    if provider is None:
        provider = create_provider(config.active_provider, config.provider_options())

    renderer = PromptRenderer(settings.config_path / "prompts")
    return LLMRelationshipOracle(config, provider, renderer, DataSampler(config.privacy))


__all__ = [
    "DataSampler",
    "LLMConfig",
    "LLMRelationshipOracle",
    "PromptRenderer",
    "create_oracle",
    "load_llm_config",
    "parse_verdict",
]
