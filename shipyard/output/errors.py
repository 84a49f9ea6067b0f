"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shipyard.core.errors import ErrorCode
from shipyard.output.console import Style
from shipyard.services.errors import (
    AppRecordMissing,
    ArtifactNotFound,
    CorruptArchive,
    CredentialsIncomplete,
    DeliveryError,
    MissingParameter,
    NoBackendAvailable,
    ProbeRejected,
    ProbeUnreachable,
    StepFailed,
    SubmissionCancelled,
    SubmissionError,
    SubmissionInvalid,
    SubmissionTimeout,
    ToolNotFound,
    UnknownOperation,
    UploadRejected,
    describe,
)

if TYPE_CHECKING:
    from shipyard.output.console import ConsoleProtocol

__all__ = ["delivery_error_exit_code", "print_delivery_error"]


def print_delivery_error(error: DeliveryError, console: ConsoleProtocol) -> None:
    """Print an error, its hint, and any captured tool output."""
    message, hint = describe(error)
    console.error(message)

    match error:
        case NoBackendAvailable(probes=probes):
            for probe in probes:
                detail = f" ({probe.detail})" if probe.detail else ""
                console.print(f"  {probe.backend}: {probe.status}{detail}", Style.DIM)
        case SubmissionInvalid(log=log):
            console.print("notarization log:", Style.BOLD)
            console.detail(log)
        case AppRecordMissing(app_name=app_name, bundle_id=bundle_id):
            for step in _app_record_steps(app_name, bundle_id):
                console.print(f"  {step}", Style.DIM)
        case UploadRejected(errors=errors):
            for line in errors:
                console.print(f"  {line}", Style.DIM)
        case SubmissionError(output=output) | StepFailed(output=output):
            console.detail(output)
        case _:
            pass

    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def delivery_error_exit_code(error: DeliveryError) -> int:
    """Get the process exit code for an error."""
    match error:
        case MissingParameter() | UnknownOperation():
            return int(ErrorCode.USER_ERROR)
        case ToolNotFound() | CredentialsIncomplete():
            return int(ErrorCode.ENV_ERROR)
        case StepFailed():
            return int(ErrorCode.BUILD_ERROR)
        case ArtifactNotFound() | CorruptArchive():
            return int(ErrorCode.IO_ERROR)
        case (
            ProbeRejected()
            | ProbeUnreachable()
            | NoBackendAvailable()
            | SubmissionError()
            | SubmissionInvalid()
            | SubmissionTimeout()
            | SubmissionCancelled()
            | AppRecordMissing()
            | UploadRejected()
        ):
            return int(ErrorCode.SERVICE_ERROR)
    return int(ErrorCode.BUILD_ERROR)


def _app_record_steps(app_name: str, bundle_id: str) -> list[str]:
    return [
        "1. Go to https://appstoreconnect.apple.com",
        "2. Open 'My Apps' and click '+' to add a new app",
        "3. Select 'macOS' as platform",
        f"4. Name: {app_name}, Bundle ID: {bundle_id}, SKU: any unique identifier",
        "5. Click 'Create', then run the upload again",
    ]
