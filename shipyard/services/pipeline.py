"""Stage sequencing for delivery operations.

A ``PipelinePlan`` is an immutable, ordered list of stage names. The
pipeline runs them strictly in order and stops at the first failed
stage: later stages are never attempted and there is no retry.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from shipyard.output.console import ConsoleProtocol
from shipyard.services.errors import DeliveryError, UnknownOperation, describe

__all__ = [
    "Configuration",
    "DeliveryPipeline",
    "PipelinePlan",
    "PipelineRun",
    "RunOutcome",
    "StageFn",
    "StageResult",
    "StageStatus",
]


class Configuration(StrEnum):
    DEBUG = "debug"
    RELEASE = "release"


class StageStatus(StrEnum):
    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class StageResult:
    """Outcome of one stage.

    Attributes:
        stage: Stage name
        status: Passed, skipped (advisory), or failed
        message: Human-readable diagnostic
        error: Set when the stage failed
        artifact: Path produced by the stage, if any
    """

    stage: str
    status: StageStatus
    message: str
    error: DeliveryError | None = None
    artifact: Path | None = None

    @property
    def ok(self) -> bool:
        return self.status != StageStatus.FAILED

    @classmethod
    def passed(cls, stage: str, message: str, artifact: Path | None = None) -> StageResult:
        return cls(stage=stage, status=StageStatus.PASSED, message=message, artifact=artifact)

    @classmethod
    def skipped(cls, stage: str, message: str) -> StageResult:
        return cls(stage=stage, status=StageStatus.SKIPPED, message=message)

    @classmethod
    def failed(cls, stage: str, error: DeliveryError) -> StageResult:
        message, _ = describe(error)
        return cls(stage=stage, status=StageStatus.FAILED, message=message, error=error)


@dataclass(frozen=True, slots=True)
class PipelinePlan:
    operation: str
    stages: tuple[str, ...]
    configuration: Configuration = Configuration.DEBUG
    version: str | None = None


@dataclass(frozen=True, slots=True)
class RunOutcome:
    success: bool
    failed_stage: str | None = None
    reason: str | None = None
    error: DeliveryError | None = None


def _empty_results() -> list[StageResult]:
    return []


@dataclass(slots=True)
class PipelineRun:
    """Immutable plan plus the mutable record of what happened."""

    plan: PipelinePlan
    results: list[StageResult] = field(default_factory=_empty_results)
    outcome: RunOutcome | None = None

    @property
    def attempted(self) -> tuple[str, ...]:
        return tuple(r.stage for r in self.results)

    @property
    def success(self) -> bool:
        return self.outcome is not None and self.outcome.success


StageFn = Callable[[PipelinePlan], StageResult]


class DeliveryPipeline:
    def __init__(self, *, stages: Mapping[str, StageFn], console: ConsoleProtocol) -> None:
        self._stages = stages
        self._console = console

    def run(self, plan: PipelinePlan) -> PipelineRun:
        run = PipelineRun(plan=plan)

        unknown = [name for name in plan.stages if name not in self._stages]
        if unknown:
            error = UnknownOperation(
                name=unknown[0], available=tuple(sorted(self._stages)), kind="stage"
            )
            run.outcome = RunOutcome(
                success=False, failed_stage=unknown[0], reason=describe(error)[0], error=error
            )
            return run

        total = len(plan.stages)
        for index, name in enumerate(plan.stages, start=1):
            self._console.header(f"[{index}/{total}] {name}")
            result = self._stages[name](plan)
            run.results.append(result)

            match result.status:
                case StageStatus.PASSED:
                    self._console.success(result.message)
                case StageStatus.SKIPPED:
                    self._console.warning(f"skipped: {result.message}")
                case StageStatus.FAILED:
                    run.outcome = RunOutcome(
                        success=False,
                        failed_stage=name,
                        reason=result.message,
                        error=result.error,
                    )
                    return run

        run.outcome = RunOutcome(success=True)
        return run
