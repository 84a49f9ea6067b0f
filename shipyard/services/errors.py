"""Error types for the delivery pipeline.

One frozen dataclass per failure the orchestrator can report. They are
plain data; ``describe`` turns any of them into a message and an
optional remediation hint, and ``shipyard.output.errors`` decides how
they are printed and which exit code they map to.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shipyard.services.notary.backends import ProbeOutcome


@dataclass(frozen=True, slots=True)
class MissingParameter:
    operation: str
    parameter: str
    usage: str | None = None


@dataclass(frozen=True, slots=True)
class UnknownOperation:
    name: str
    available: tuple[str, ...]
    kind: str = "operation"


@dataclass(frozen=True, slots=True)
class ToolNotFound:
    tool: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ArtifactNotFound:
    path: Path
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class CorruptArchive:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class CredentialsIncomplete:
    requirement: str
    missing: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ProbeRejected:
    backend: str
    detail: str = ""


@dataclass(frozen=True, slots=True)
class ProbeUnreachable:
    backend: str
    detail: str = ""


@dataclass(frozen=True, slots=True)
class NoBackendAvailable:
    probes: tuple[ProbeOutcome, ...]


@dataclass(frozen=True, slots=True)
class SubmissionError:
    """The tool failed before a tracking identifier was obtained (or while polling)."""

    backend: str
    reason: str
    output: str = ""


@dataclass(frozen=True, slots=True)
class SubmissionInvalid:
    """The service reviewed the submission and rejected it."""

    backend: str
    submission_id: str
    log: str


@dataclass(frozen=True, slots=True)
class SubmissionTimeout:
    backend: str
    submission_id: str
    waited: float


@dataclass(frozen=True, slots=True)
class SubmissionCancelled:
    backend: str
    submission_id: str


@dataclass(frozen=True, slots=True)
class AppRecordMissing:
    app_name: str
    bundle_id: str


@dataclass(frozen=True, slots=True)
class UploadRejected:
    backend: str
    errors: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class StepFailed:
    step: str
    returncode: int
    output: str = ""


DeliveryError = (
    MissingParameter
    | UnknownOperation
    | ToolNotFound
    | ArtifactNotFound
    | CorruptArchive
    | CredentialsIncomplete
    | ProbeRejected
    | ProbeUnreachable
    | NoBackendAvailable
    | SubmissionError
    | SubmissionInvalid
    | SubmissionTimeout
    | SubmissionCancelled
    | AppRecordMissing
    | UploadRejected
    | StepFailed
)


def describe(error: DeliveryError) -> tuple[str, str | None]:
    """Return ``(message, hint)`` for an error."""
    match error:
        case MissingParameter(operation=op, parameter=param, usage=usage):
            return f"{param} is required for {op}", usage
        case UnknownOperation(name=name, available=available, kind=kind):
            return f"unknown {kind}: {name}", f"valid: {', '.join(available)}"
        case ToolNotFound(tool=tool, hint=hint):
            return f"{tool}: missing", hint
        case ArtifactNotFound(path=path, hint=hint):
            return f"artifact not found: {path}", hint
        case CorruptArchive(path=path, reason=reason):
            return f"not a valid zip archive: {path} ({reason})", None
        case CredentialsIncomplete(requirement=req, missing=missing):
            return (
                f"credentials incomplete for {req}: {', '.join(missing)} not set",
                "export " + " ".join(f"{name}=..." for name in missing),
            )
        case ProbeRejected(backend=backend):
            return (
                f"{backend} rejected the credentials",
                "Check APPLE_ID and the app-specific password (required with 2FA)",
            )
        case ProbeUnreachable(backend=backend, detail=detail):
            suffix = f" ({detail})" if detail else ""
            return f"{backend} is unreachable{suffix}", "Install Xcode Command Line Tools"
        case NoBackendAvailable(probes=probes):
            summary = ", ".join(f"{p.backend}={p.status}" for p in probes)
            return (
                f"no upload backend accepted the credentials ({summary})",
                "Use Transporter or the Xcode Organizer as an alternative",
            )
        case SubmissionError(backend=backend, reason=reason):
            return f"{backend} submission failed: {reason}", None
        case SubmissionInvalid(backend=backend, submission_id=sub_id):
            return f"{backend} rejected submission {sub_id}", None
        case SubmissionTimeout(backend=backend, submission_id=sub_id, waited=waited):
            return (
                f"{backend} submission {sub_id} still in progress after {waited:.0f}s",
                f"Check later: xcrun notarytool info {sub_id}",
            )
        case SubmissionCancelled(backend=backend, submission_id=sub_id):
            return f"{backend} submission {sub_id}: wait cancelled", None
        case AppRecordMissing(app_name=app_name, bundle_id=bundle_id):
            return (
                f"app not found in App Store Connect: {app_name}",
                f"Create a macOS app with bundle ID {bundle_id} in App Store Connect first",
            )
        case UploadRejected(backend=backend):
            return (
                f"{backend} upload rejected",
                "Check the bundle ID and the app metadata in App Store Connect",
            )
        case StepFailed(step=step, returncode=rc):
            return f"{step} failed (exit {rc})", None
