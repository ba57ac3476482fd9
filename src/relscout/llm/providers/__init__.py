"""LLM providers. Only Anthropic is wired up."""

from typing import Any

from relscout.llm.providers.base import LLMProvider, LLMRequest, LLMResponse

__all__ = ["LLMProvider", "LLMRequest", "LLMResponse", "SUPPORTED_PROVIDERS", "create_provider"]

SUPPORTED_PROVIDERS = ("anthropic",)


def create_provider(provider_name: str, provider_config: dict[str, Any]) -> LLMProvider:
    """Instantiate the provider named in llm.yaml.

    Raises:
        ValueError: Unknown provider, or the provider's API key is missing
    """
    if provider_name not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unknown LLM provider: {provider_name}. "
            f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    from relscout.llm.providers.anthropic import AnthropicConfig, AnthropicProvider

    return AnthropicProvider(AnthropicConfig(**provider_config))
