"""Credential probes against each backend.

A probe never submits anything. ``UNREACHABLE`` (tool or network absent)
and ``REJECTED`` (tool answered, credentials refused) are kept distinct
so the selector can decide whether another backend is worth trying.
"""

from __future__ import annotations

from pathlib import Path

from shipyard.core.result import Ok
from shipyard.platform.process import CommandRunner
from shipyard.services.credentials import Credentials
from shipyard.services.notary import classifier
from shipyard.services.notary.backends import BackendId, ProbeOutcome, ProbeStatus, spec_for
from shipyard.services.notary.timeouts import PROBE_TIMEOUT_SECONDS

__all__ = ["BackendProber", "discover_team_id"]


def discover_team_id(
    credentials: Credentials,
    runner: CommandRunner,
    cwd: Path,
    *,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> str | None:
    """Team of the first provider the Apple ID belongs to, or None."""
    cmd = [
        "xcrun",
        "altool",
        "--list-providers",
        "-u",
        credentials.identity,
        "-p",
        credentials.secret,
    ]
    result = runner.run(cmd, cwd=cwd, timeout=timeout)
    if not isinstance(result, Ok):
        return None
    return classifier.team_id(result.value)


class BackendProber:
    """Runs the identity check of a backend with the given credentials.

    A team discovered for the notarytool probe is kept in ``credentials``
    so the client that submits afterwards does not look it up again.
    """

    def __init__(
        self,
        *,
        credentials: Credentials,
        runner: CommandRunner,
        cwd: Path,
        timeout: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self._credentials = credentials
        self._runner = runner
        self._cwd = cwd
        self._timeout = timeout

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def __call__(self, backend: BackendId) -> ProbeOutcome:
        return self.probe(backend)

    def probe(self, backend: BackendId) -> ProbeOutcome:
        if self._runner.which("xcrun") is None:
            return ProbeOutcome(backend, ProbeStatus.UNREACHABLE, "xcrun not found")

        if backend == BackendId.NOTARYTOOL and not self._credentials.team_id:
            found = discover_team_id(
                self._credentials, self._runner, self._cwd, timeout=self._timeout
            )
            if found is None:
                return ProbeOutcome(backend, ProbeStatus.REJECTED, "TEAM_ID not set or discoverable")
            self._credentials = self._credentials.with_team(found)

        cmd = spec_for(backend).probe_command(self._credentials)
        result = self._runner.run(cmd, cwd=self._cwd, timeout=self._timeout)
        if isinstance(result, Ok):
            return ProbeOutcome(backend, ProbeStatus.ACCEPTED)

        error = result.error
        status = classifier.classify_probe(error.returncode, error.output)
        return ProbeOutcome(backend, status, _first_line(error.output))


def _first_line(text: str) -> str:
    for line in text.strip().splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""
