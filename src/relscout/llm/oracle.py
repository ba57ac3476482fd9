"""LLM-backed semantic oracle for relationship validation."""

from __future__ import annotations

import json
from typing import Any

from relscout.analysis.relationships.models import OracleRequest, ValidationVerdict
from relscout.core.errors import OracleResponseError
from relscout.core.logging import get_logger
from relscout.core.models.base import Cardinality, Result
from relscout.llm.config import LLMConfig
from relscout.llm.features._base import LLMFeature
from relscout.llm.privacy import DataSampler
from relscout.llm.prompts import PromptRenderer
from relscout.llm.providers.base import LLMProvider

logger = get_logger(__name__)

PROMPT_NAME = "relationship_validation"


def strip_code_fence(content: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```), if any."""
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def parse_verdict(content: str) -> ValidationVerdict:
    """Parse the model's JSON reply into a verdict.

    Cardinality is upper-cased; an unknown value becomes N:1 for accepted
    verdicts and is dropped for rejections.

    Raises:
        OracleResponseError: If the reply is not a usable JSON object
    """
    text = strip_code_fence(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Some replies wrap the object in prose
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise OracleResponseError("Response is not valid JSON", raw_response=content) from None
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise OracleResponseError(
                f"Response is not valid JSON: {e}", raw_response=content
            ) from e

    if not isinstance(data, dict):
        raise OracleResponseError("Response JSON is not an object", raw_response=content)

    is_valid = data.get("is_valid_fk")
    if not isinstance(is_valid, bool):
        raise OracleResponseError("Missing or non-boolean 'is_valid_fk'", raw_response=content)

    raw_confidence = data.get("confidence", 0.0)
    try:
        confidence = float(raw_confidence)
    except (TypeError, ValueError) as e:
        raise OracleResponseError(
            f"Invalid confidence: {raw_confidence!r}", raw_response=content
        ) from e
    confidence = min(max(confidence, 0.0), 1.0)

    raw_cardinality = data.get("cardinality")
    cardinality = Cardinality.parse(raw_cardinality if isinstance(raw_cardinality, str) else None)
    if cardinality is None and is_valid:
        logger.debug("invalid_cardinality_defaulted", received=raw_cardinality)
        cardinality = Cardinality.MANY_TO_ONE

    source_role = data.get("source_role")
    return ValidationVerdict(
        accepted=is_valid,
        confidence=confidence,
        cardinality=cardinality,
        reasoning=str(data.get("reasoning") or ""),
        source_role=str(source_role) if source_role else None,
    )


def _percent(numerator: int | None, denominator: int | None) -> str:
    if numerator is None or not denominator:
        return "n/a"
    return f"{numerator / denominator * 100:.1f}%"


def _value(value: Any) -> str:
    return "unknown" if value is None else str(value)


def _null_rate(rate: float | None) -> str:
    return "unknown" if rate is None else f"{rate * 100:.1f}%"


def _samples_block(samples: list[str]) -> str:
    if not samples:
        return "(no sample values)"
    return "\n".join(f"- `{sample}`" for sample in samples)


def _join_analysis_block(request: OracleRequest) -> str:
    stats = request.statistics
    lines: list[str] = []

    if stats.source_matched is not None and stats.orphan_count is not None:
        source_total = stats.source_matched + stats.orphan_count
        lines.append(
            f"- **{stats.source_matched}** of **{source_total}** distinct source values exist "
            f"in target ({_percent(stats.source_matched, source_total)} match rate)"
        )
        lines.append(
            f"- **{stats.orphan_count}** source values have no match "
            f"({_percent(stats.orphan_count, source_total)} orphan rate)"
        )

    if stats.target_matched is not None and stats.reverse_orphan_count is not None:
        target_total = stats.target_matched + stats.reverse_orphan_count
        lines.append(
            f"- **{stats.target_matched}** of **{target_total}** target values are referenced "
            f"({_percent(stats.target_matched, target_total)} coverage)"
        )
        lines.append(f"- **{stats.reverse_orphan_count}** target values are never referenced")

    if stats.join_count is not None:
        lines.append(f"- **{stats.join_count}** total rows matched when joining")

    if not lines:
        return "(join statistics unavailable)"
    return "\n".join(lines)


class LLMRelationshipOracle(LLMFeature):
    """SemanticOracle that asks an LLM whether a candidate is a foreign key.

    Stateless per call; safe to use from the validator's worker threads.
    """

    feature_name = "relationship_validation"

    def __init__(
        self,
        config: LLMConfig,
        provider: LLMProvider,
        prompt_renderer: PromptRenderer,
        sampler: DataSampler | None = None,
    ):
        super().__init__(config, provider, prompt_renderer)
        self.sampler = sampler or DataSampler(config.privacy)

    def evaluate(self, request: OracleRequest) -> Result[ValidationVerdict]:
        feature_config = self.feature_config
        if not feature_config.enabled:
            return Result.fail("Relationship validation is disabled in config")

        system_prompt, user_prompt, temperature = self.renderer.render_split(
            feature_config.prompt_file or PROMPT_NAME, self.build_context(request)
        )

        response_result = self._call_llm(
            system_prompt, user_prompt, temperature, feature_config.model_tier
        )
        if not response_result.success or response_result.value is None:
            return Result.fail(response_result.error or "LLM call failed")

        try:
            verdict = parse_verdict(response_result.value.content)
        except OracleResponseError as e:
            logger.warning(
                "relationship_verdict_unparsable",
                source=f"{request.source_table}.{request.source_column}",
                target=f"{request.target_table}.{request.target_column}",
                error=str(e),
            )
            return Result.fail(f"Failed to parse relationship validation response: {e}")

        return Result.ok(verdict)

    def build_context(self, request: OracleRequest) -> dict[str, Any]:
        """Prompt variables for one request."""
        source_samples = self.sampler.prepare_samples(
            request.source_column, request.source_samples
        )
        target_samples = self.sampler.prepare_samples(
            request.target_column, request.target_samples
        )
        return {
            "source_table": request.source_table,
            "source_column": request.source_column,
            "source_type": request.source_type,
            "source_is_primary_key": request.source_is_primary_key,
            "source_distinct_count": _value(request.source_distinct_count),
            "source_null_rate": _null_rate(request.source_null_rate),
            "source_purpose": request.source_purpose or "unknown",
            "source_role": request.source_role or "unknown",
            "source_description": request.source_description or "none",
            "source_samples": _samples_block(source_samples),
            "target_table": request.target_table,
            "target_column": request.target_column,
            "target_type": request.target_type,
            "target_is_primary_key": request.target_is_primary_key,
            "target_is_unique": request.target_is_unique,
            "target_distinct_count": _value(request.target_distinct_count),
            "target_null_rate": _null_rate(request.target_null_rate),
            "target_samples": _samples_block(target_samples),
            "join_analysis": _join_analysis_block(request),
        }
