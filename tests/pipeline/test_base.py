"""Tests for pipeline base types."""

import threading

from relscout.pipeline.base import PhaseContext, PhaseResult, PhaseStatus
from relscout.pipeline.phases.base import BasePhase


class TestPhaseResult:
    """Tests for PhaseResult."""

    def test_success(self):
        result = PhaseResult.success(
            outputs={"key": "value"},
            duration=1.5,
            records_processed=100,
            records_created=50,
        )
        assert result.status == PhaseStatus.COMPLETED
        assert result.outputs == {"key": "value"}
        assert result.duration_seconds == 1.5
        assert result.records_processed == 100
        assert result.records_created == 50
        assert result.error is None
        assert result.warnings == []

    def test_failed(self):
        result = PhaseResult.failed("Something went wrong", duration=0.5)
        assert result.status == PhaseStatus.FAILED
        assert result.error == "Something went wrong"
        assert result.duration_seconds == 0.5

    def test_skipped(self):
        result = PhaseResult.skipped("Already done")
        assert result.status == PhaseStatus.SKIPPED
        assert result.error == "Already done"
        assert result.outputs == {}

    def test_skipped_keeps_partial_outputs(self):
        result = PhaseResult.skipped("Cancelled", outputs={"relationships": {}})
        assert result.outputs == {"relationships": {}}


class TestPhaseContext:
    """Tests for PhaseContext."""

    def test_get_output(self):
        ctx = PhaseContext(
            manager=None,
            connector=None,
            project_id="p",
            datasource_id="d",
            previous_outputs={"column_features": {"columns": 12}},
        )

        assert ctx.get_output("column_features", "columns") == 12
        assert ctx.get_output("column_features", "missing", 0) == 0
        assert ctx.get_output("profiling", "columns") is None

    def test_each_context_gets_its_own_cancel_event(self):
        first = PhaseContext(manager=None, connector=None, project_id="p", datasource_id="d")
        second = PhaseContext(manager=None, connector=None, project_id="p", datasource_id="d")

        assert isinstance(first.cancel_event, threading.Event)
        assert first.cancel_event is not second.cancel_event


class ExplodingPhase(BasePhase):
    @property
    def name(self) -> str:
        return "exploding"

    @property
    def description(self) -> str:
        return "Always raises"

    @property
    def dependencies(self) -> list[str]:
        return []

    @property
    def outputs(self) -> list[str]:
        return []

    def _run(self, ctx: PhaseContext) -> PhaseResult:
        raise RuntimeError("boom")


class TestBasePhase:
    """Tests for BasePhase error handling."""

    def test_unexpected_error_becomes_failed_result(self):
        ctx = PhaseContext(manager=None, connector=None, project_id="p", datasource_id="d")

        result = ExplodingPhase().run(ctx)

        assert result.status == PhaseStatus.FAILED
        assert result.error == "boom"
        assert result.duration_seconds >= 0

    def test_never_skips_by_default(self):
        ctx = PhaseContext(manager=None, connector=None, project_id="p", datasource_id="d")

        assert ExplodingPhase().should_skip(ctx) is None
