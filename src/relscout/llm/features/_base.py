"""Shared plumbing for features that call the configured LLM."""

from relscout.core.logging import get_logger
from relscout.core.models import Result
from relscout.llm.config import FeatureConfig, LLMConfig
from relscout.llm.prompts import PromptRenderer
from relscout.llm.providers.base import LLMProvider, LLMRequest, LLMResponse

logger = get_logger(__name__)


class LLMFeature:
    """A prompt-driven capability configured under ``features.<feature_name>`` in llm.yaml."""

    feature_name: str = ""

    def __init__(self, config: LLMConfig, provider: LLMProvider, prompt_renderer: PromptRenderer):
        self.config = config
        self.provider = provider
        self.renderer = prompt_renderer

    @property
    def feature_config(self) -> FeatureConfig:
        feature = getattr(self.config.features, self.feature_name, None)
        if feature is None:
            raise ValueError(f"Feature '{self.feature_name}' is not configured")
        return feature

    def _call_llm(
        self, system_prompt: str, user_prompt: str, temperature: float, model_tier: str
    ) -> Result[LLMResponse]:
        """One JSON-mode completion on the tier's model, capped at the configured output size."""
        result = self.provider.complete(
            LLMRequest(
                prompt=user_prompt,
                system_prompt=system_prompt,
                model=self.provider.get_model_for_tier(model_tier),
                max_tokens=self.config.limits.max_output_tokens_per_request,
                temperature=temperature,
                response_format="json",
            )
        )
        if result.success and result.value is not None:
            logger.debug(
                "llm_call_complete",
                feature=self.feature_name,
                model=result.value.model,
                total_tokens=result.value.total_tokens,
            )
        return result
