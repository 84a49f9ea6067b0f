"""One command per operation, plus ``run`` for script-style selectors."""

from __future__ import annotations

import typer

from shipyard.cli.commands._helpers import exit_on_error, exit_with_code, run_operation
from shipyard.cli.context import build_context
from shipyard.services.operations import OPERATIONS, Operation, OperationSpec, resolve_operation


def _spec(operation: Operation) -> OperationSpec:
    return next(s for s in OPERATIONS if s.operation == operation)


def _execute(operation: Operation, version: str | None = None) -> None:
    ctx = build_context()
    code = run_operation(ctx, _spec(operation), version)
    if code:
        exit_with_code(code)


def verify() -> None:
    """Verify setup and dependencies."""
    _execute(Operation.VERIFY)


def debug_run() -> None:
    """Build debug app and run."""
    _execute(Operation.DEBUG_RUN)


def debug_package() -> None:
    """Build debug app and package."""
    _execute(Operation.DEBUG_PACKAGE)


def debug_install() -> None:
    """Build debug app, package and install locally."""
    _execute(Operation.DEBUG_INSTALL)


def release_run() -> None:
    """Build release app and run."""
    _execute(Operation.RELEASE_RUN)


def release_package() -> None:
    """Build release app and package."""
    _execute(Operation.RELEASE_PACKAGE)


def release_install() -> None:
    """Build release app, package and install locally."""
    _execute(Operation.RELEASE_INSTALL)


def deliver(
    version: str | None = typer.Argument(None, help="Version to release, e.g. 1.3.0"),
) -> None:
    """Bump version, build release, sign, notarize and deliver."""
    _execute(Operation.DELIVER, version)


def deliver_push(
    version: str | None = typer.Argument(None, help="Version to release, e.g. 1.3.0"),
) -> None:
    """Bump version with commit/push, build release, sign, notarize and deliver."""
    _execute(Operation.DELIVER_PUSH, version)


def run(
    selector: str = typer.Argument(..., help="Operation name, --long or -short form"),
    version: str | None = typer.Argument(None, help="Version for deliver operations"),
) -> None:
    """Run an operation by name, e.g. `run --deliver 1.3.0` or `run -rp`."""
    ctx = build_context()
    spec = exit_on_error(resolve_operation(selector), ctx)
    code = run_operation(ctx, spec, version)
    if code:
        exit_with_code(code)
