"""Upload command - send the store package to App Store Connect."""

from __future__ import annotations

from pathlib import Path

import typer

from shipyard.cli.commands._helpers import cancel_on_interrupt, exit_on_error, exit_with_code
from shipyard.cli.context import CLIContext, build_context
from shipyard.core.result import Err
from shipyard.output.console import Style
from shipyard.output.errors import delivery_error_exit_code, print_delivery_error
from shipyard.services.notary import SubmissionStatus, UploadMode
from shipyard.services.upload import UploadReport, UploadService

_NEXT_STEPS = (
    "1. Check App Store Connect for your uploaded build",
    "2. Complete the submission process in App Store Connect",
    "3. Add metadata, screenshots, and descriptions",
    "4. Submit for review",
)

_ALTERNATIVES = (
    "Transporter app (from the Mac App Store)",
    "Xcode Organizer (Window > Organizer)",
)


def upload(
    ipa: Path | None = typer.Option(None, "--ipa", help="IPA to upload (default: latest in Build/)"),
    method: str = typer.Option(
        "auto", "--method", "-m", help="Upload backend: auto, altool or notarytool"
    ),
    verify_only: bool = typer.Option(
        False, "--verify-only", help="Validate package and credentials, do not upload"
    ),
) -> None:
    """Upload the App Store package (tries altool, then notarytool)."""
    ctx = build_context()
    mode = exit_on_error(UploadMode.parse(method), ctx)
    ctx.console.header(f"Uploading {ctx.settings.app.name} to App Store Connect")

    service = UploadService(
        root=ctx.root,
        settings=ctx.settings,
        credentials=ctx.credentials,
        console=ctx.console,
        runner=ctx.runner,
        cancel=ctx.cancel,
    )
    with cancel_on_interrupt(ctx.cancel):
        result = service.run(ipa=ipa, mode=mode, verify_only=verify_only)

    if isinstance(result, Err):
        print_delivery_error(result.error, ctx.console)
        _print_alternatives(ctx)
        exit_with_code(delivery_error_exit_code(result.error))
    _print_summary(ctx, result.value)


def _print_summary(ctx: CLIContext, report: UploadReport) -> None:
    console = ctx.console
    console.newline()
    if report.record is None:
        console.success(f"{report.validation.artifact.path.name} is ready to upload")
        return

    record = report.record
    if record.status == SubmissionStatus.ACCEPTED:
        reference = f" ({record.submission_id})" if record.submission_id else ""
        console.success(f"Upload completed via {record.backend}{reference}")

    console.print("Next steps:", Style.BOLD)
    for step in _NEXT_STEPS:
        console.print(f"  {step}", Style.DIM)


def _print_alternatives(ctx: CLIContext) -> None:
    ctx.console.newline()
    ctx.console.print("Alternative upload methods:", Style.BOLD)
    for alt in _ALTERNATIVES:
        ctx.console.print(f"  {alt}", Style.DIM)
