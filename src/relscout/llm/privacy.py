"""Data privacy for sample values sent to the LLM.

1. Limits sample values to the configured maximum
2. Redacts columns whose names match sensitive patterns
"""

import re

from relscout.llm.config import LLMPrivacy

REDACTED = "<REDACTED>"


class DataSampler:
    """Prepare column sample values for an LLM prompt with privacy controls."""

    def __init__(self, config: LLMPrivacy):
        self.config = config
        self._patterns = [re.compile(p, re.IGNORECASE) for p in config.sensitive_patterns]

    def prepare_samples(self, column_name: str, values: list[str]) -> list[str]:
        """Cap and, for sensitive columns, redact a column's sample values.

        Args:
            column_name: Column the values belong to
            values: Raw sample values

        Returns:
            Values safe to include in a prompt
        """
        limit = self.config.max_sample_values
        if self.is_sensitive(column_name):
            return [REDACTED] * min(3, limit, len(values))
        return values[:limit]

    def is_sensitive(self, column_name: str) -> bool:
        """Check if column name matches sensitive patterns."""
        return any(pattern.match(column_name) for pattern in self._patterns)
