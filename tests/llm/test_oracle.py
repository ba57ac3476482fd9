"""Tests for the LLM-backed relationship oracle."""

import json
from pathlib import Path

import pytest

from relscout.analysis.relationships.models import JoinStatistics, OracleRequest
from relscout.core.config import Settings
from relscout.core.errors import OracleResponseError
from relscout.core.models.base import Cardinality, Result
from relscout.llm import create_oracle
from relscout.llm.config import load_llm_config
from relscout.llm.oracle import LLMRelationshipOracle, parse_verdict, strip_code_fence
from relscout.llm.privacy import REDACTED
from relscout.llm.prompts import PromptRenderer
from relscout.llm.providers.anthropic import AnthropicProvider
from relscout.llm.providers.base import LLMProvider, LLMRequest, LLMResponse

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


class FakeProvider(LLMProvider):
    """Provider returning a canned reply and recording requests."""

    def __init__(self, content: str = "", error: str | None = None):
        self.content = content
        self.error = error
        self.requests: list[LLMRequest] = []

    def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        self.requests.append(request)
        if self.error:
            return Result.fail(self.error)
        return Result.ok(
            LLMResponse(content=self.content, model="fake", input_tokens=10, output_tokens=5)
        )

    def get_model_for_tier(self, tier: str) -> str:
        return f"fake-{tier}"


def reply(**fields) -> str:
    data = {"is_valid_fk": True, "confidence": 0.9, "cardinality": "N:1", "reasoning": "ok"}
    data.update(fields)
    return json.dumps(data)


@pytest.fixture
def request_() -> OracleRequest:
    return OracleRequest(
        source_table="orders",
        source_column="user_id",
        source_type="INTEGER",
        source_distinct_count=10,
        source_null_rate=0.05,
        source_samples=["1", "2", "3"],
        source_purpose="identifier",
        target_table="users",
        target_column="id",
        target_type="BIGINT",
        target_is_primary_key=True,
        target_samples=["1", "2"],
        statistics=JoinStatistics(
            join_count=20,
            source_matched=9,
            target_matched=9,
            orphan_count=1,
            reverse_orphan_count=1,
        ),
    )


def make_oracle(provider: LLMProvider) -> LLMRelationshipOracle:
    config = load_llm_config(CONFIG_DIR / "llm.yaml")
    return LLMRelationshipOracle(config, provider, PromptRenderer(CONFIG_DIR / "prompts"))


class TestParseVerdict:
    """Tests for reply parsing."""

    def test_plain_json(self):
        verdict = parse_verdict(reply(source_role="customer"))

        assert verdict.accepted
        assert verdict.confidence == 0.9
        assert verdict.cardinality == Cardinality.MANY_TO_ONE
        assert verdict.reasoning == "ok"
        assert verdict.source_role == "customer"

    def test_code_fence(self):
        verdict = parse_verdict(f"```json\n{reply()}\n```")

        assert verdict.accepted

    def test_prose_around_object(self):
        verdict = parse_verdict(f"Here is my answer: {reply(is_valid_fk=False)} Thanks.")

        assert not verdict.accepted

    def test_lowercase_cardinality(self):
        assert parse_verdict(reply(cardinality="n:1")).cardinality == Cardinality.MANY_TO_ONE

    def test_invalid_cardinality_defaults_for_accepted(self):
        assert parse_verdict(reply(cardinality="many")).cardinality == Cardinality.MANY_TO_ONE

    def test_invalid_cardinality_dropped_for_rejected(self):
        verdict = parse_verdict(reply(is_valid_fk=False, cardinality="many"))

        assert verdict.cardinality is None

    def test_confidence_is_clamped(self):
        assert parse_verdict(reply(confidence=1.4)).confidence == 1.0
        assert parse_verdict(reply(confidence=-0.2)).confidence == 0.0

    def test_missing_optional_fields(self):
        verdict = parse_verdict('{"is_valid_fk": false}')

        assert verdict.confidence == 0.0
        assert verdict.reasoning == ""
        assert verdict.source_role is None

    @pytest.mark.parametrize(
        "content",
        [
            "not json at all",
            "[1, 2, 3]",
            '{"confidence": 0.9}',
            '{"is_valid_fk": "yes"}',
            '{"is_valid_fk": true, "confidence": "high"}',
        ],
    )
    def test_unusable_replies(self, content):
        with pytest.raises(OracleResponseError) as excinfo:
            parse_verdict(content)

        assert excinfo.value.raw_response == content

    def test_strip_code_fence_leaves_plain_text(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


class TestLLMRelationshipOracle:
    """Tests for LLMRelationshipOracle.evaluate."""

    def test_evaluate(self, request_):
        provider = FakeProvider(reply(source_role="buyer"))
        oracle = make_oracle(provider)

        result = oracle.evaluate(request_)

        assert result.success
        assert result.value.accepted
        assert result.value.source_role == "buyer"

        [llm_request] = provider.requests
        assert llm_request.model == "fake-balanced"
        assert llm_request.temperature == 0.0
        assert llm_request.response_format == "json"
        assert "database schema analyst" in llm_request.system_prompt
        assert "**orders.user_id**" in llm_request.prompt
        assert "**9** of **10** distinct source values" in llm_request.prompt
        assert "(90.0% match rate)" in llm_request.prompt
        assert "- `3`" in llm_request.prompt

    def test_provider_failure(self, request_):
        oracle = make_oracle(FakeProvider(error="rate limited"))

        result = oracle.evaluate(request_)

        assert not result.success
        assert result.error == "rate limited"

    def test_unparsable_reply(self, request_):
        oracle = make_oracle(FakeProvider("I think so"))

        result = oracle.evaluate(request_)

        assert not result.success
        assert result.error.startswith("Failed to parse relationship validation response")

    def test_disabled_feature(self, request_):
        provider = FakeProvider(reply())
        oracle = make_oracle(provider)
        oracle.config.features.relationship_validation.enabled = False

        result = oracle.evaluate(request_)

        assert not result.success
        assert provider.requests == []

    def test_context_redacts_sensitive_samples(self, request_):
        oracle = make_oracle(FakeProvider())
        sensitive = request_.model_copy(
            update={"source_column": "owner_email", "source_samples": ["a@x.com", "b@x.com"]}
        )

        context = oracle.build_context(sensitive)

        assert context["source_samples"] == f"- `{REDACTED}`\n- `{REDACTED}`"
        assert "a@x.com" not in context["source_samples"]

    def test_context_without_statistics(self, request_):
        oracle = make_oracle(FakeProvider())
        bare = request_.model_copy(
            update={"statistics": JoinStatistics(), "target_samples": [], "source_null_rate": None}
        )

        context = oracle.build_context(bare)

        assert context["join_analysis"] == "(join statistics unavailable)"
        assert context["target_samples"] == "(no sample values)"
        assert context["source_null_rate"] == "unknown"


class TestCreateOracle:
    """Tests for the oracle factory."""

    def test_with_provider(self):
        provider = FakeProvider()

        oracle = create_oracle(Settings(_env_file=None, config_path=CONFIG_DIR), provider)

        assert oracle.provider is provider
        assert oracle.renderer.prompts_dir == CONFIG_DIR / "prompts"

    def test_builds_anthropic_provider(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")

        oracle = create_oracle(Settings(_env_file=None, config_path=CONFIG_DIR))

        assert isinstance(oracle.provider, AnthropicProvider)
        assert oracle.provider.config.timeout_seconds == 60.0

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            create_oracle(Settings(_env_file=None, config_path=CONFIG_DIR))
