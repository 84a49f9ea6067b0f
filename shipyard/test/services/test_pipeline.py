"""Tests for stage sequencing."""

from __future__ import annotations

import pytest

from shipyard.output.console import MockConsole
from shipyard.services.errors import StepFailed, UnknownOperation
from shipyard.services.pipeline import (
    DeliveryPipeline,
    PipelinePlan,
    StageFn,
    StageResult,
    StageStatus,
)


def _stages(names: list[str], fail_at: str | None, calls: list[str]) -> dict[str, StageFn]:
    def make(name: str) -> StageFn:
        def stage(plan: PipelinePlan) -> StageResult:
            calls.append(name)
            if name == fail_at:
                return StageResult.failed(name, StepFailed(step=name, returncode=2))
            return StageResult.passed(name, f"{name} done")

        return stage

    return {name: make(name) for name in names}


@pytest.mark.parametrize("n", [1, 3, 6])
def test_failure_at_stage_k_attempts_exactly_k(n: int) -> None:
    names = [f"s{i}" for i in range(1, n + 1)]
    for k in range(1, n + 1):
        calls: list[str] = []
        pipeline = DeliveryPipeline(
            stages=_stages(names, f"s{k}", calls), console=MockConsole()
        )

        run = pipeline.run(PipelinePlan(operation="op", stages=tuple(names)))

        assert calls == names[:k]
        assert run.attempted == tuple(names[:k])
        assert not run.success
        assert run.outcome is not None
        assert run.outcome.failed_stage == f"s{k}"
        assert run.outcome.reason == f"s{k} failed (exit 2)"
        assert run.outcome.error == StepFailed(step=f"s{k}", returncode=2)


def test_all_stages_pass() -> None:
    calls: list[str] = []
    console = MockConsole()
    names = ["clean", "build", "package"]
    run = DeliveryPipeline(stages=_stages(names, None, calls), console=console).run(
        PipelinePlan(operation="release-package", stages=tuple(names))
    )

    assert run.success
    assert calls == names
    assert [r.status for r in run.results] == [StageStatus.PASSED] * 3
    assert console.messages[0] == "[1/3] clean"
    assert "OK build done" in console.messages


def test_skipped_stage_does_not_stop_pipeline() -> None:
    calls: list[str] = []
    stages = _stages(["a", "c"], None, calls)
    stages["b"] = lambda plan: StageResult.skipped("b", "TEAM_ID not set")
    console = MockConsole()

    run = DeliveryPipeline(stages=stages, console=console).run(
        PipelinePlan(operation="op", stages=("a", "b", "c"))
    )

    assert run.success
    assert calls == ["a", "c"]
    assert run.results[1].ok
    assert "warning: skipped: TEAM_ID not set" in console.messages


def test_unknown_stage_fails_before_anything_runs() -> None:
    calls: list[str] = []
    run = DeliveryPipeline(stages=_stages(["a"], None, calls), console=MockConsole()).run(
        PipelinePlan(operation="op", stages=("a", "typo"))
    )

    assert calls == []
    assert run.attempted == ()
    assert run.outcome is not None
    assert isinstance(run.outcome.error, UnknownOperation)
    assert run.outcome.error.kind == "stage"


def test_plan_is_immutable() -> None:
    plan = PipelinePlan(operation="op", stages=("a",))
    with pytest.raises(AttributeError):
        plan.stages = ("b",)  # type: ignore[misc]
