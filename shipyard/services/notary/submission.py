"""Submission and status tracking.

A submission moves through::

    SUBMITTED -> IN_PROGRESS -> ACCEPTED | INVALID

with ERROR reachable from any step when the tool invocation itself fails,
and TIMED_OUT / CANCELLED when the bounded wait gives up. The wait
blocks the calling thread between status queries; a ``CancelToken`` set
from another thread (or a signal handler) wakes it early.

Store uploads (altool) are not tracked: the upload call itself is
terminal, so ``submit_and_wait`` returns right after ``submit``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from time import monotonic
from typing import Protocol

from shipyard.core.config import AppConfig, NotaryConfig
from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol, Style
from shipyard.platform.process import CommandRunner
from shipyard.services.credentials import Credentials
from shipyard.services.errors import (
    AppRecordMissing,
    CredentialsIncomplete,
    DeliveryError,
    SubmissionCancelled,
    SubmissionError,
    SubmissionInvalid,
    SubmissionTimeout,
    UploadRejected,
)
from shipyard.services.notary import classifier
from shipyard.services.notary.backends import BackendId
from shipyard.services.notary.classifier import StatusClass, UploadOutcome
from shipyard.services.notary.probe import discover_team_id
from shipyard.services.notary.timeouts import (
    LOG_TIMEOUT_SECONDS,
    STATUS_TIMEOUT_SECONDS,
    SUBMIT_TIMEOUT_SECONDS,
    UPLOAD_TIMEOUT_SECONDS,
)

__all__ = [
    "AltoolClient",
    "client_for",
    "CancelToken",
    "NotarytoolClient",
    "PollPolicy",
    "SubmissionClient",
    "SubmissionRecord",
    "SubmissionStatus",
    "submit_and_wait",
    "wait_for_completion",
]


class SubmissionStatus(StrEnum):
    SUBMITTED = "submitted"
    IN_PROGRESS = "in-progress"
    ACCEPTED = "accepted"
    INVALID = "invalid"
    ERROR = "error"
    TIMED_OUT = "timed-out"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self not in (SubmissionStatus.SUBMITTED, SubmissionStatus.IN_PROGRESS)


def _empty_diagnostics() -> list[str]:
    return []


@dataclass(slots=True)
class SubmissionRecord:
    """One submission, mutated only by the tracking loop.

    Attributes:
        backend: Backend the artifact was handed to
        submission_id: Service-assigned identifier (None until submitted)
        status: Current status
        diagnostics: Raw tool output collected along the way
        polls: Number of status queries performed
    """

    backend: BackendId
    submission_id: str | None = None
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    diagnostics: list[str] = field(default_factory=_empty_diagnostics)
    polls: int = 0


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """Bounded wait between status queries.

    ``backoff`` 1.0 gives a fixed interval; > 1.0 grows the delay
    geometrically up to ``max_interval``.
    """

    interval: float = 30.0
    backoff: float = 1.0
    max_interval: float = 300.0
    max_wait: float = 2 * 60 * 60.0

    def delay(self, attempt: int) -> float:
        ceiling = max(self.max_interval, self.interval)
        delay = self.interval
        for _ in range(attempt):
            if delay >= ceiling or delay <= 0 or self.backoff <= 1.0:
                break
            delay *= self.backoff
        return min(delay, ceiling)

    @classmethod
    def from_config(cls, config: NotaryConfig) -> PollPolicy:
        return cls(
            interval=config.poll_interval,
            backoff=config.backoff,
            max_interval=config.max_interval,
            max_wait=config.max_wait,
        )


class CancelToken:
    """Cooperative cancellation for the tracking loop."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        return self._event.wait(seconds)


class SubmissionClient(Protocol):
    """Tool-specific half of the state machine."""

    backend: BackendId

    def submit(self, archive: Path) -> Result[SubmissionRecord, DeliveryError]: ...

    def status(self, submission_id: str) -> Result[str, DeliveryError]: ...

    def fetch_log(self, submission_id: str) -> Result[str, DeliveryError]: ...


def submit_and_wait(
    client: SubmissionClient,
    archive: Path,
    *,
    policy: PollPolicy,
    console: ConsoleProtocol,
    cancel: CancelToken | None = None,
) -> Result[SubmissionRecord, DeliveryError]:
    """Submit ``archive`` and track it to a terminal status."""
    submitted = client.submit(archive)
    if isinstance(submitted, Err):
        return submitted

    record = submitted.value
    if record.status.terminal:
        return Ok(record)

    console.success(f"{client.backend} submission id: {record.submission_id}")
    return wait_for_completion(client, record, policy=policy, console=console, cancel=cancel)


def wait_for_completion(
    client: SubmissionClient,
    record: SubmissionRecord,
    *,
    policy: PollPolicy,
    console: ConsoleProtocol,
    cancel: CancelToken | None = None,
) -> Result[SubmissionRecord, DeliveryError]:
    """Poll until ACCEPTED / INVALID, an error, the deadline, or cancellation."""
    sub_id = record.submission_id
    if sub_id is None:
        record.status = SubmissionStatus.ERROR
        return Err(SubmissionError(backend=str(client.backend), reason="no submission id"))

    token = cancel or CancelToken()
    started = monotonic()
    attempt = 0

    while True:
        if token.cancelled:
            record.status = SubmissionStatus.CANCELLED
            return Err(SubmissionCancelled(backend=str(client.backend), submission_id=sub_id))

        response = client.status(sub_id)
        record.polls += 1
        if isinstance(response, Err):
            record.status = SubmissionStatus.ERROR
            return response

        match classifier.classify_status(response.value):
            case StatusClass.ACCEPTED:
                record.status = SubmissionStatus.ACCEPTED
                record.diagnostics.append(response.value)
                return Ok(record)
            case StatusClass.INVALID:
                record.status = SubmissionStatus.INVALID
                log = _log_text(client.fetch_log(sub_id))
                record.diagnostics.append(log)
                return Err(
                    SubmissionInvalid(backend=str(client.backend), submission_id=sub_id, log=log)
                )
            case StatusClass.IN_PROGRESS:
                record.status = SubmissionStatus.IN_PROGRESS

        elapsed = monotonic() - started
        remaining = policy.max_wait - elapsed
        if remaining <= 0:
            record.status = SubmissionStatus.TIMED_OUT
            return Err(
                SubmissionTimeout(backend=str(client.backend), submission_id=sub_id, waited=elapsed)
            )

        delay = min(policy.delay(attempt), remaining)
        console.print(f"still processing... checking again in {delay:.0f}s", Style.DIM)
        if token.wait(delay):
            record.status = SubmissionStatus.CANCELLED
            return Err(SubmissionCancelled(backend=str(client.backend), submission_id=sub_id))
        attempt += 1


def _log_text(result: Result[str, DeliveryError]) -> str:
    if isinstance(result, Ok):
        return result.value
    error = result.error
    output = getattr(error, "output", "")
    return output or "(log unavailable)"


class NotarytoolClient:
    """Notarization through ``xcrun notarytool``."""

    backend = BackendId.NOTARYTOOL

    def __init__(
        self,
        *,
        credentials: Credentials,
        runner: CommandRunner,
        cwd: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._credentials = credentials
        self._runner = runner
        self._cwd = cwd
        self._console = console

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def resolve_team(self) -> Result[Credentials, DeliveryError]:
        """Fill in the team id from the account's providers when it was not provided."""
        if self._credentials.team_id:
            return Ok(self._credentials)

        self._console.info("Getting team ID automatically...")
        found = discover_team_id(self._credentials, self._runner, self._cwd)
        if found is None:
            return Err(CredentialsIncomplete(requirement="notarize", missing=("TEAM_ID",)))

        self._credentials = self._credentials.with_team(found)
        self._console.success(f"Found Team ID: {found}")
        return Ok(self._credentials)

    def _auth(self) -> list[str]:
        c = self._credentials
        return ["--apple-id", c.identity, "--password", c.secret, "--team-id", c.team_id]

    def _run(self, cmd: list[str], timeout: float) -> tuple[int, str]:
        self._console.command(cmd)
        result = self._runner.run(cmd, cwd=self._cwd, timeout=timeout)
        if isinstance(result, Ok):
            return 0, result.value
        return result.error.returncode, result.error.output

    def submit(self, archive: Path) -> Result[SubmissionRecord, DeliveryError]:
        team = self.resolve_team()
        if isinstance(team, Err):
            return team

        cmd = ["xcrun", "notarytool", "submit", str(archive), *self._auth()]
        rc, output = self._run(cmd, SUBMIT_TIMEOUT_SECONDS)
        if rc != 0:
            return Err(SubmissionError(backend=str(self.backend), reason=f"exit {rc}", output=output))

        sub_id = classifier.submission_id(output)
        if sub_id is None:
            return Err(
                SubmissionError(
                    backend=str(self.backend),
                    reason="no submission id in response",
                    output=output,
                )
            )

        return Ok(
            SubmissionRecord(
                backend=self.backend,
                submission_id=sub_id,
                status=SubmissionStatus.SUBMITTED,
                diagnostics=[output],
            )
        )

    def status(self, submission_id: str) -> Result[str, DeliveryError]:
        cmd = ["xcrun", "notarytool", "info", submission_id, *self._auth()]
        rc, output = self._run(cmd, STATUS_TIMEOUT_SECONDS)
        if rc != 0:
            return Err(
                SubmissionError(
                    backend=str(self.backend),
                    reason=f"status query failed (exit {rc})",
                    output=output,
                )
            )
        return Ok(output)

    def fetch_log(self, submission_id: str) -> Result[str, DeliveryError]:
        cmd = ["xcrun", "notarytool", "log", submission_id, *self._auth()]
        rc, output = self._run(cmd, LOG_TIMEOUT_SECONDS)
        if rc != 0:
            return Err(
                SubmissionError(
                    backend=str(self.backend),
                    reason=f"log fetch failed (exit {rc})",
                    output=output,
                )
            )
        return Ok(output)


class AltoolClient:
    """App Store Connect upload through ``xcrun altool``."""

    backend = BackendId.ALTOOL

    def __init__(
        self,
        *,
        credentials: Credentials,
        runner: CommandRunner,
        cwd: Path,
        console: ConsoleProtocol,
        app: AppConfig,
    ) -> None:
        self._credentials = credentials
        self._runner = runner
        self._cwd = cwd
        self._console = console
        self._app = app

    def submit(self, archive: Path) -> Result[SubmissionRecord, DeliveryError]:
        c = self._credentials
        cmd = [
            "xcrun",
            "altool",
            "--upload-app",
            "--type",
            "macos",
            "--file",
            str(archive),
            "--username",
            c.identity,
            "--password",
            c.secret,
            "--verbose",
        ]
        self._console.warning("Note: the app must exist in App Store Connect first")
        self._console.command(cmd)
        result = self._runner.run(cmd, cwd=self._cwd, timeout=UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Ok):
            rc, output = 0, result.value
        else:
            rc, output = result.error.returncode, result.error.output

        verdict = classifier.classify_upload(rc, output)
        match verdict.outcome:
            case UploadOutcome.UPLOADED:
                return Ok(
                    SubmissionRecord(
                        backend=self.backend,
                        submission_id=verdict.request_uuid,
                        status=SubmissionStatus.ACCEPTED,
                        diagnostics=[output],
                    )
                )
            case UploadOutcome.APP_RECORD_MISSING:
                return Err(AppRecordMissing(app_name=self._app.name, bundle_id=self._app.bundle_id))
            case UploadOutcome.REJECTED:
                return Err(UploadRejected(backend=str(self.backend), errors=verdict.errors))
            case UploadOutcome.FAILED:
                return Err(
                    SubmissionError(
                        backend=str(self.backend),
                        reason=f"upload failed (exit {rc})",
                        output=output,
                    )
                )

    def status(self, submission_id: str) -> Result[str, DeliveryError]:
        return Err(SubmissionError(backend=str(self.backend), reason="uploads are not tracked"))

    def fetch_log(self, submission_id: str) -> Result[str, DeliveryError]:
        return Err(SubmissionError(backend=str(self.backend), reason="uploads are not tracked"))


def client_for(
    backend: BackendId,
    *,
    credentials: Credentials,
    runner: CommandRunner,
    cwd: Path,
    console: ConsoleProtocol,
    app: AppConfig,
) -> SubmissionClient:
    if backend == BackendId.ALTOOL:
        return AltoolClient(
            credentials=credentials, runner=runner, cwd=cwd, console=console, app=app
        )
    return NotarytoolClient(credentials=credentials, runner=runner, cwd=cwd, console=console)
