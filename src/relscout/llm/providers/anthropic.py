"""Claude over the synchronous Anthropic Messages API."""

import os
from typing import Any

import anthropic

from relscout.core.logging import get_logger
from relscout.core.models.base import Result
from relscout.llm.config import ProviderConfig
from relscout.llm.providers.base import LLMProvider, LLMRequest, LLMResponse

logger = get_logger(__name__)

# Appended to the system prompt; the Messages API has no JSON response mode
JSON_ONLY_INSTRUCTION = (
    "Respond with valid JSON only. "
    "Do not use markdown code blocks or any other formatting. "
    "Your entire response should be parseable as JSON."
)


class AnthropicConfig(ProviderConfig):
    timeout_seconds: float = 60.0


class AnthropicProvider(LLMProvider):
    """One shared ``anthropic.Anthropic`` client for all worker threads."""

    def __init__(self, config: AnthropicConfig, client: anthropic.Anthropic | None = None):
        """
        Raises:
            ValueError: No client was given and the API key variable is unset
        """
        self.config = config
        if client is None:
            api_key = os.getenv(config.api_key_env)
            if not api_key:
                raise ValueError(
                    f"Missing environment variable: {config.api_key_env}. "
                    "Export it or add it to .env."
                )
            client = anthropic.Anthropic(api_key=api_key, timeout=config.timeout_seconds)
        self.client = client

    def _system_prompt(self, request: LLMRequest) -> str | None:
        parts = [request.system_prompt] if request.system_prompt else []
        if request.response_format == "json":
            parts.append(JSON_ONLY_INSTRUCTION)
        return "\n\n".join(parts) or None

    def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        model = request.model or self.config.default_model
        params: dict[str, Any] = {
            "model": model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        system = self._system_prompt(request)
        if system:
            params["system"] = system

        try:
            response = self.client.messages.create(**params)
        except anthropic.APIError as e:
            logger.warning("anthropic_api_error", model=model, error=str(e))
            return Result.fail(f"Anthropic API error: {e}")

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text:
            block_types = [block.type for block in response.content]
            return Result.fail(f"No text content in response. Content blocks: {block_types}")

        return Result.ok(
            LLMResponse(
                content=text,
                model=response.model,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )
        )

    def get_model_for_tier(self, tier: str) -> str:
        """Model for ``tier``; unknown tiers use the default model."""
        return self.config.models.get(tier, self.config.default_model)
