"""Tests for sample value privacy controls."""

from relscout.llm.config import LLMPrivacy
from relscout.llm.privacy import REDACTED, DataSampler


def make_sampler(max_sample_values: int = 10) -> DataSampler:
    return DataSampler(
        LLMPrivacy(
            max_sample_values=max_sample_values,
            sensitive_patterns=[".*password.*", ".*email.*", "ssn"],
        )
    )


class TestDataSampler:
    """Tests for DataSampler."""

    def test_caps_sample_count(self):
        sampler = make_sampler(max_sample_values=3)

        assert sampler.prepare_samples("user_id", ["1", "2", "3", "4", "5"]) == ["1", "2", "3"]

    def test_redacts_sensitive_columns(self):
        sampler = make_sampler()

        samples = sampler.prepare_samples("contact_email", ["a@x.com", "b@x.com", "c", "d"])

        assert samples == [REDACTED] * 3

    def test_redaction_respects_sample_count(self):
        sampler = make_sampler()

        assert sampler.prepare_samples("Password_Hash", ["x"]) == [REDACTED]
        assert sampler.prepare_samples("password", []) == []

    def test_patterns_match_from_start_case_insensitive(self):
        sampler = make_sampler()

        assert sampler.is_sensitive("SSN_last4")
        assert sampler.is_sensitive("USER_EMAIL")
        assert not sampler.is_sensitive("user_ssn")
        assert not sampler.is_sensitive("account_id")
