"""LLM-backed features."""

from relscout.llm.features._base import LLMFeature

__all__ = ["LLMFeature"]
