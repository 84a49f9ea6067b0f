"""Tests for the submission and status tracking loop."""

from __future__ import annotations

from pathlib import Path

import pytest

from shipyard.core.config import AppConfig, NotaryConfig
from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import MockConsole
from shipyard.platform.process import ProcessError
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
from shipyard.services.notary import submission as submission_mod
from shipyard.services.notary.backends import BackendId
from shipyard.services.notary.submission import (
    AltoolClient,
    CancelToken,
    NotarytoolClient,
    PollPolicy,
    SubmissionRecord,
    SubmissionStatus,
    client_for,
    submit_and_wait,
)

_ID = "2efe2717-52ef-43a5-96dc-0797e4ca1041"


def _status(value: str) -> str:
    return f"Successfully received submission info\n  id: {_ID}\n  status: {value}\n"


class FakeClient:
    """Scripted notarization client."""

    backend = BackendId.NOTARYTOOL

    def __init__(
        self,
        statuses: list[Result[str, DeliveryError]],
        *,
        log: Result[str, DeliveryError] = Ok("{}"),
        submit: Result[SubmissionRecord, DeliveryError] | None = None,
    ) -> None:
        self.statuses = list(statuses)
        self.log = log
        self.submit_result = submit
        self.status_calls = 0
        self.log_calls = 0

    def submit(self, archive: Path) -> Result[SubmissionRecord, DeliveryError]:
        if self.submit_result is not None:
            return self.submit_result
        return Ok(SubmissionRecord(backend=self.backend, submission_id=_ID))

    def status(self, submission_id: str) -> Result[str, DeliveryError]:
        assert submission_id == _ID
        self.status_calls += 1
        return self.statuses.pop(0)

    def fetch_log(self, submission_id: str) -> Result[str, DeliveryError]:
        self.log_calls += 1
        return self.log


class RecordingToken(CancelToken):
    """Token that never sleeps; records requested delays."""

    def __init__(self, cancel_after: int | None = None) -> None:
        super().__init__()
        self.delays: list[float] = []
        self.cancel_after = cancel_after

    def wait(self, seconds: float) -> bool:
        self.delays.append(seconds)
        if self.cancel_after is not None and len(self.delays) >= self.cancel_after:
            self.cancel()
        return self.cancelled


_POLICY = PollPolicy(interval=30, backoff=1.0, max_interval=300, max_wait=3600)


def _run(
    client: FakeClient, *, policy: PollPolicy = _POLICY, token: CancelToken | None = None
) -> tuple[Result[SubmissionRecord, DeliveryError], RecordingToken | CancelToken, MockConsole]:
    console = MockConsole()
    used = token if token is not None else RecordingToken()
    result = submit_and_wait(client, Path("a.zip"), policy=policy, console=console, cancel=used)
    return result, used, console


class TestPollingLoop:
    def test_accepted_after_three_polls(self) -> None:
        client = FakeClient(
            [Ok(_status("In Progress")), Ok(_status("In Progress")), Ok(_status("Accepted"))]
        )
        result, token, console = _run(client)

        assert isinstance(result, Ok)
        record = result.value
        assert record.status == SubmissionStatus.ACCEPTED
        assert record.polls == 3
        assert client.status_calls == 3
        assert client.log_calls == 0
        assert isinstance(token, RecordingToken)
        assert token.delays == [30, 30]
        assert len(console.find("still processing")) == 2

    def test_accepted_first_poll_stops_immediately(self) -> None:
        client = FakeClient([Ok(_status("Accepted")), Ok(_status("In Progress"))])
        result, token, _ = _run(client)

        assert isinstance(result, Ok)
        assert client.status_calls == 1
        assert isinstance(token, RecordingToken)
        assert token.delays == []

    def test_invalid_fetches_exactly_one_log(self) -> None:
        log = '{"status": "Invalid", "issues": [{"message": "The binary is not signed."}]}'
        client = FakeClient(
            [Ok(_status("In Progress")), Ok(_status("Invalid")), Ok(_status("Accepted"))],
            log=Ok(log),
        )
        result, _, _ = _run(client)

        assert result == Err(SubmissionInvalid(backend="notarytool", submission_id=_ID, log=log))
        assert client.status_calls == 2
        assert client.log_calls == 1

    def test_invalid_with_unavailable_log(self) -> None:
        client = FakeClient(
            [Ok(_status("Invalid"))],
            log=Err(SubmissionError(backend="notarytool", reason="x", output="HTTP 500")),
        )
        result, _, _ = _run(client)

        assert isinstance(result, Err)
        assert isinstance(result.error, SubmissionInvalid)
        assert result.error.log == "HTTP 500"
        assert client.log_calls == 1

    def test_status_error_aborts_without_retry(self) -> None:
        failure = SubmissionError(backend="notarytool", reason="status query failed (exit 1)")
        client = FakeClient([Ok(_status("In Progress")), Err(failure), Ok(_status("Accepted"))])
        result, _, _ = _run(client)

        assert result == Err(failure)
        assert client.status_calls == 2

    def test_unrecognised_status_keeps_waiting(self) -> None:
        client = FakeClient([Ok("The service said something new"), Ok(_status("Accepted"))])
        result, _, _ = _run(client)

        assert isinstance(result, Ok)
        assert client.status_calls == 2

    def test_submit_error_never_polls(self) -> None:
        failure = SubmissionError(backend="notarytool", reason="no submission id in response")
        client = FakeClient([], submit=Err(failure))
        result, _, _ = _run(client)

        assert result == Err(failure)
        assert client.status_calls == 0

    def test_terminal_submit_is_not_tracked(self) -> None:
        record = SubmissionRecord(backend=BackendId.ALTOOL, status=SubmissionStatus.ACCEPTED)
        client = FakeClient([], submit=Ok(record))
        result, _, _ = _run(client)

        assert result == Ok(record)
        assert client.status_calls == 0


class TestBoundedWait:
    def test_times_out(self, monkeypatch: pytest.MonkeyPatch) -> None:
        clock = iter([0.0, 50.0, 100.0, 130.0])
        monkeypatch.setattr(submission_mod, "monotonic", lambda: next(clock))
        client = FakeClient([Ok(_status("In Progress"))] * 5)
        policy = PollPolicy(interval=30, max_wait=120)

        result, token, _ = _run(client, policy=policy)

        assert isinstance(result, Err)
        assert isinstance(result.error, SubmissionTimeout)
        assert result.error.waited == 130.0
        assert client.status_calls == 3
        assert isinstance(token, RecordingToken)
        assert token.delays == [30, 20]

    def test_last_delay_is_clamped_to_deadline(self, monkeypatch: pytest.MonkeyPatch) -> None:
        clock = iter([0.0, 110.0, 200.0])
        monkeypatch.setattr(submission_mod, "monotonic", lambda: next(clock))
        client = FakeClient([Ok(_status("In Progress")), Ok(_status("In Progress"))])

        result, token, _ = _run(client, policy=PollPolicy(interval=30, max_wait=120))

        assert isinstance(result, Err)
        assert isinstance(token, RecordingToken)
        assert token.delays == [10]

    def test_backoff_grows_to_max_interval(self) -> None:
        policy = PollPolicy(interval=10, backoff=2.0, max_interval=60, max_wait=3600)
        assert [policy.delay(n) for n in range(5)] == [10, 20, 40, 60, 60]

    def test_large_attempt_stays_at_max_interval(self) -> None:
        policy = PollPolicy(interval=10, backoff=2.0, max_interval=60, max_wait=3600)
        assert policy.delay(5000) == 60

    def test_fixed_interval_ignores_attempt(self) -> None:
        assert PollPolicy(interval=30).delay(10_000) == 30

    def test_policy_from_config(self) -> None:
        policy = PollPolicy.from_config(NotaryConfig(poll_interval=5, backoff=1.5, max_wait=60))
        assert policy.interval == 5
        assert policy.backoff == 1.5
        assert policy.max_wait == 60


class TestCancellation:
    def test_cancel_during_wait(self) -> None:
        client = FakeClient([Ok(_status("In Progress"))] * 5)
        token = RecordingToken(cancel_after=2)

        result, _, _ = _run(client, token=token)

        assert result == Err(SubmissionCancelled(backend="notarytool", submission_id=_ID))
        assert client.status_calls == 2

    def test_cancelled_before_first_poll(self) -> None:
        client = FakeClient([Ok(_status("Accepted"))])
        token = CancelToken()
        token.cancel()

        result, _, _ = _run(client, token=token)

        assert isinstance(result, Err)
        assert isinstance(result.error, SubmissionCancelled)
        assert client.status_calls == 0

    def test_real_token_wakes_immediately_when_cancelled(self) -> None:
        token = CancelToken()
        token.cancel()
        assert token.wait(60) is True


class ToolRunner:
    """Runner answering ``xcrun`` calls from a script of responses."""

    def __init__(self, responses: list[Result[str, ProcessError]]) -> None:
        self.responses = list(responses)
        self.calls: list[list[str]] = []

    def run(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        self.calls.append(cmd)
        return self.responses.pop(0)

    def run_live(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]:
        raise AssertionError("not used")

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}"


def _fail(output: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(ProcessError(("xcrun",), returncode, output, ""))


_CREDS = Credentials(identity="dev@example.com", secret="pw-secret", team_id="T1")
_PROVIDERS = """\
ProviderName  ProviderShortname  PublicID                              WWDRTeamID
------------  -----------------  ------------------------------------  ----------
Acme Apps     AcmeApps           0c4f2a3e-7d1b-4e58-a9c6-21f0b8d3e4a7  ABCDE12345
"""


class TestNotarytoolClient:
    def test_submit_extracts_id(self, tmp_path: Path) -> None:
        runner = ToolRunner([Ok(f"Submission ID received\n  id: {_ID}\n")])
        console = MockConsole()
        client = NotarytoolClient(credentials=_CREDS, runner=runner, cwd=tmp_path, console=console)

        result = client.submit(tmp_path / "a.zip")
        assert isinstance(result, Ok)
        assert result.value.submission_id == _ID
        assert result.value.status == SubmissionStatus.SUBMITTED
        assert runner.calls[0][:4] == ["xcrun", "notarytool", "submit", str(tmp_path / "a.zip")]
        assert runner.calls[0][-2:] == ["--team-id", "T1"]
        assert "pw-secret" not in console.text

    def test_submit_without_id_is_error(self, tmp_path: Path) -> None:
        runner = ToolRunner([Ok("Upload progress: 100%\n")])
        client = NotarytoolClient(
            credentials=_CREDS, runner=runner, cwd=tmp_path, console=MockConsole()
        )

        result = client.submit(tmp_path / "a.zip")
        assert isinstance(result, Err)
        assert isinstance(result.error, SubmissionError)
        assert result.error.reason == "no submission id in response"
        assert "Upload progress" in result.error.output

    def test_submit_nonzero_exit(self, tmp_path: Path) -> None:
        runner = ToolRunner([_fail("Error: HTTP status code: 401", 69)])
        client = NotarytoolClient(
            credentials=_CREDS, runner=runner, cwd=tmp_path, console=MockConsole()
        )

        result = client.submit(tmp_path / "a.zip")
        assert isinstance(result, Err)
        assert isinstance(result.error, SubmissionError)
        assert result.error.reason == "exit 69"

    def test_team_id_discovered(self, tmp_path: Path) -> None:
        runner = ToolRunner(
            [
                Ok(_PROVIDERS),
                Ok(f"  id: {_ID}\n"),
            ]
        )
        creds = Credentials(identity="dev@example.com", secret="pw")
        client = NotarytoolClient(credentials=creds, runner=runner, cwd=tmp_path, console=MockConsole())

        result = client.submit(tmp_path / "a.zip")
        assert isinstance(result, Ok)
        assert client.credentials.team_id == "ABCDE12345"
        assert runner.calls[0][:3] == ["xcrun", "altool", "--list-providers"]
        assert runner.calls[1][-2:] == ["--team-id", "ABCDE12345"]

    def test_team_id_missing(self, tmp_path: Path) -> None:
        runner = ToolRunner([_fail("Error: Unable to authenticate.")])
        creds = Credentials(identity="dev@example.com", secret="pw")
        client = NotarytoolClient(credentials=creds, runner=runner, cwd=tmp_path, console=MockConsole())

        result = client.submit(tmp_path / "a.zip")
        assert result == Err(CredentialsIncomplete(requirement="notarize", missing=("TEAM_ID",)))
        assert len(runner.calls) == 1

    def test_status_and_log_commands(self, tmp_path: Path) -> None:
        runner = ToolRunner([Ok(_status("Accepted")), Ok("{}")])
        client = NotarytoolClient(
            credentials=_CREDS, runner=runner, cwd=tmp_path, console=MockConsole()
        )

        assert client.status(_ID) == Ok(_status("Accepted"))
        assert client.fetch_log(_ID) == Ok("{}")
        assert runner.calls[0][:4] == ["xcrun", "notarytool", "info", _ID]
        assert runner.calls[1][:4] == ["xcrun", "notarytool", "log", _ID]


class TestAltoolClient:
    def _client(self, tmp_path: Path, runner: ToolRunner) -> AltoolClient:
        return AltoolClient(
            credentials=_CREDS,
            runner=runner,
            cwd=tmp_path,
            console=MockConsole(),
            app=AppConfig(name="BongoCat", bundle_id="com.leaptech.bongocat"),
        )

    def test_upload_is_terminal(self, tmp_path: Path) -> None:
        runner = ToolRunner([Ok("No errors uploading 'a.zip'.\nRequestUUID = 6a2c1f5e-3b1d\n")])
        result = self._client(tmp_path, runner).submit(tmp_path / "a.zip")

        assert isinstance(result, Ok)
        assert result.value.status == SubmissionStatus.ACCEPTED
        assert result.value.submission_id == "6a2c1f5e-3b1d"
        assert runner.calls[0][:4] == ["xcrun", "altool", "--upload-app", "--type"]

    def test_app_record_missing(self, tmp_path: Path) -> None:
        runner = ToolRunner([_fail("*** Error: No suitable application records were found.")])
        result = self._client(tmp_path, runner).submit(tmp_path / "a.zip")
        assert result == Err(
            AppRecordMissing(app_name="BongoCat", bundle_id="com.leaptech.bongocat")
        )

    def test_itms_rejection(self, tmp_path: Path) -> None:
        runner = ToolRunner([_fail("*** Error: ERROR ITMS-90296: App sandbox not enabled.")])
        result = self._client(tmp_path, runner).submit(tmp_path / "a.zip")
        assert isinstance(result, Err)
        assert isinstance(result.error, UploadRejected)
        assert result.error.errors == ("*** Error: ERROR ITMS-90296: App sandbox not enabled.",)

    def test_not_tracked(self, tmp_path: Path) -> None:
        client = self._client(tmp_path, ToolRunner([]))
        assert isinstance(client.status("x"), Err)
        assert isinstance(client.fetch_log("x"), Err)


def test_client_for(tmp_path: Path) -> None:
    kwargs = dict(
        credentials=_CREDS,
        runner=ToolRunner([]),
        cwd=tmp_path,
        console=MockConsole(),
        app=AppConfig(),
    )
    assert isinstance(client_for(BackendId.ALTOOL, **kwargs), AltoolClient)
    assert isinstance(client_for(BackendId.NOTARYTOOL, **kwargs), NotarytoolClient)
