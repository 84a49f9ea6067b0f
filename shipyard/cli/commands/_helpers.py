"""Shared helpers for CLI commands."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType
from typing import TYPE_CHECKING, NoReturn

import typer

from shipyard.core.errors import ErrorCode
from shipyard.core.result import Err, Result
from shipyard.output.console import Style
from shipyard.output.errors import delivery_error_exit_code, print_delivery_error
from shipyard.services.errors import DeliveryError
from shipyard.services.notary import CancelToken
from shipyard.services.operations import OperationSpec, plan
from shipyard.services.pipeline import DeliveryPipeline, PipelineRun
from shipyard.services.stages import ReleaseStages

if TYPE_CHECKING:
    from shipyard.cli.context import CLIContext


def exit_on_error[T](result: Result[T, DeliveryError], ctx: CLIContext) -> T:
    """Return the value of an Ok result, or print the error and exit.

    The exit code is derived from the error type.
    """
    if isinstance(result, Err):
        print_delivery_error(result.error, ctx.console)
        raise typer.Exit(code=delivery_error_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)


@contextmanager
def cancel_on_interrupt(token: CancelToken) -> Iterator[None]:
    """Turn the first Ctrl-C into a cancellation request.

    A second Ctrl-C falls through to the previous handler. Outside the
    main thread signals cannot be installed and this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: FrameType | None) -> None:
        if token.cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        token.cancel()

    signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def run_operation(ctx: CLIContext, spec: OperationSpec, version: str | None = None) -> int:
    """Plan and run one operation; return the process exit code."""
    planned = plan(spec, version)
    if isinstance(planned, Err):
        print_delivery_error(planned.error, ctx.console)
        return delivery_error_exit_code(planned.error)

    stages = ReleaseStages(
        root=ctx.root,
        settings=ctx.settings,
        credentials=ctx.credentials,
        console=ctx.console,
        runner=ctx.runner,
        platform=ctx.platform,
        cancel=ctx.cancel,
    )
    pipeline = DeliveryPipeline(stages=stages.registry(), console=ctx.console)

    with cancel_on_interrupt(ctx.cancel):
        run = pipeline.run(planned.value)

    return report_run(ctx, run)


def report_run(ctx: CLIContext, run: PipelineRun) -> int:
    console = ctx.console
    console.newline()
    outcome = run.outcome
    if outcome is not None and outcome.success:
        console.success(f"{run.plan.operation} completed")
        return int(ErrorCode.OK)

    total = len(run.plan.stages)
    console.print(
        f"{run.plan.operation} stopped at {outcome.failed_stage if outcome else '?'} "
        f"({len(run.attempted)}/{total} stages attempted)",
        Style.ERROR,
    )
    if outcome is None or outcome.error is None:
        console.error(outcome.reason if outcome and outcome.reason else "pipeline failed")
        return int(ErrorCode.BUILD_ERROR)
    print_delivery_error(outcome.error, console)
    return delivery_error_exit_code(outcome.error)
