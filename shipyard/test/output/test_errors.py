"""Tests for error presentation and exit codes."""

from __future__ import annotations

from pathlib import Path

import pytest

from shipyard.core.errors import ErrorCode
from shipyard.output.console import MockConsole
from shipyard.output.errors import delivery_error_exit_code, print_delivery_error
from shipyard.services.errors import (
    AppRecordMissing,
    ArtifactNotFound,
    CorruptArchive,
    CredentialsIncomplete,
    DeliveryError,
    MissingParameter,
    NoBackendAvailable,
    ProbeRejected,
    StepFailed,
    SubmissionInvalid,
    SubmissionTimeout,
    ToolNotFound,
    UnknownOperation,
    UploadRejected,
)
from shipyard.services.notary import BackendId, ProbeOutcome, ProbeStatus


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (MissingParameter(operation="deliver", parameter="version"), ErrorCode.USER_ERROR),
        (UnknownOperation(name="x", available=("verify",)), ErrorCode.USER_ERROR),
        (ToolNotFound(tool="ditto"), ErrorCode.ENV_ERROR),
        (CredentialsIncomplete(requirement="upload", missing=("APPLE_ID",)), ErrorCode.ENV_ERROR),
        (StepFailed(step="Scripts/build.sh", returncode=2), ErrorCode.BUILD_ERROR),
        (ArtifactNotFound(path=Path("Build/x.ipa")), ErrorCode.IO_ERROR),
        (CorruptArchive(path=Path("x.ipa"), reason="bad"), ErrorCode.IO_ERROR),
        (ProbeRejected(backend="altool"), ErrorCode.SERVICE_ERROR),
        (NoBackendAvailable(probes=()), ErrorCode.SERVICE_ERROR),
        (
            SubmissionTimeout(backend="notarytool", submission_id="abc", waited=10.0),
            ErrorCode.SERVICE_ERROR,
        ),
    ],
)
def test_exit_codes(error: DeliveryError, code: ErrorCode) -> None:
    assert delivery_error_exit_code(error) == int(code)


def test_every_failure_code_is_nonzero() -> None:
    assert delivery_error_exit_code(StepFailed(step="x", returncode=0)) != 0


def test_missing_parameter_prints_usage() -> None:
    console = MockConsole()
    print_delivery_error(
        MissingParameter(
            operation="deliver", parameter="version", usage="shipyard deliver <version>"
        ),
        console,
    )
    assert console.messages == [
        "error: version is required for deliver",
        "hint: shipyard deliver <version>",
    ]


def test_no_backend_lists_both_probes() -> None:
    console = MockConsole()
    error = NoBackendAvailable(
        probes=(
            ProbeOutcome(BackendId.ALTOOL, ProbeStatus.REJECTED, "Authentication failed"),
            ProbeOutcome(BackendId.NOTARYTOOL, ProbeStatus.UNREACHABLE),
        )
    )
    print_delivery_error(error, console)

    assert "altool=rejected" in console.messages[0]
    assert "notarytool=unreachable" in console.messages[0]
    assert "  altool: rejected (Authentication failed)" in console.messages
    assert "  notarytool: unreachable" in console.messages


def test_invalid_submission_shows_log() -> None:
    console = MockConsole()
    print_delivery_error(
        SubmissionInvalid(
            backend="notarytool", submission_id="abc", log='{"status": "Invalid"}'
        ),
        console,
    )
    assert console.messages[0] == "error: notarytool rejected submission abc"
    assert '{"status": "Invalid"}' in console.messages


def test_step_output_is_shown() -> None:
    console = MockConsole()
    print_delivery_error(
        StepFailed(step="codesign", returncode=1, output="resource fork not allowed\n"), console
    )
    assert console.messages == ["error: codesign failed (exit 1)", "resource fork not allowed"]


def test_upload_errors_are_listed() -> None:
    console = MockConsole()
    print_delivery_error(
        UploadRejected(backend="altool", errors=("ERROR ITMS-90035: Invalid Signature",)),
        console,
    )
    assert "  ERROR ITMS-90035: Invalid Signature" in console.messages


def test_app_record_missing_lists_creation_steps() -> None:
    console = MockConsole()
    print_delivery_error(AppRecordMissing(app_name="BongoCat", bundle_id="com.x.cat"), console)
    assert any("Bundle ID: com.x.cat" in m for m in console.messages)
    assert console.messages[-1].startswith("hint: ")
