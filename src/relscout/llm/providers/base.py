"""Provider interface for the LLM-backed oracle."""

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel

from relscout.core.models import Result

ResponseFormat = Literal["json", "text"]


class LLMRequest(BaseModel):
    """One completion call: a user message plus optional system instructions."""

    prompt: str
    system_prompt: str | None = None
    model: str | None = None  # Provider default when None
    max_tokens: int = 1024
    temperature: float = 0.0
    response_format: ResponseFormat = "json"


class LLMResponse(BaseModel):
    """Text returned by a provider, with token usage."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMProvider(ABC):
    """A chat-completion backend.

    The validator calls ``complete`` from its worker threads, so
    implementations must not keep per-call state on the instance.
    """

    @abstractmethod
    def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        """Run one completion. API failures come back as a failed Result, not an exception."""

    @abstractmethod
    def get_model_for_tier(self, tier: str) -> str:
        """Resolve a configured tier ('fast', 'balanced') to a concrete model name."""
