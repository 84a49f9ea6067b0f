"""Upload/notarization backends.

Backends are stateless descriptors, not connections: they know which
``xcrun`` subcommand to run and what it is for. The probe/submit logic
lives in ``probe`` and ``submission``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from shipyard.services.credentials import Credentials

__all__ = [
    "BACKENDS",
    "BackendId",
    "BackendSpec",
    "ProbeOutcome",
    "ProbeStatus",
    "Purpose",
    "spec_for",
]


class BackendId(StrEnum):
    """Backends in priority order (primary first)."""

    ALTOOL = "altool"
    NOTARYTOOL = "notarytool"


class Purpose(StrEnum):
    STORE_UPLOAD = "store-upload"
    NOTARIZATION = "notarization"


class ProbeStatus(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True, slots=True)
class ProbeOutcome:
    backend: BackendId
    status: ProbeStatus
    detail: str = ""

    @property
    def accepted(self) -> bool:
        return self.status == ProbeStatus.ACCEPTED


@dataclass(frozen=True, slots=True)
class BackendSpec:
    """Static description of a backend.

    Attributes:
        id: Backend identity
        purpose: What a successful submission achieves
        tracked: True if a submission must be polled until a terminal status
    """

    id: BackendId
    purpose: Purpose
    tracked: bool

    def probe_command(self, credentials: Credentials) -> list[str]:
        """Side-effect-free identity check.

        notarytool authenticates per team, so its probe needs ``team_id``.
        """
        if self.id == BackendId.ALTOOL:
            return [
                "xcrun",
                "altool",
                "--list-providers",
                "-u",
                credentials.identity,
                "-p",
                credentials.secret,
            ]
        return [
            "xcrun",
            "notarytool",
            "history",
            "--apple-id",
            credentials.identity,
            "--password",
            credentials.secret,
            "--team-id",
            credentials.team_id,
        ]


BACKENDS: tuple[BackendSpec, ...] = (
    BackendSpec(id=BackendId.ALTOOL, purpose=Purpose.STORE_UPLOAD, tracked=False),
    BackendSpec(id=BackendId.NOTARYTOOL, purpose=Purpose.NOTARIZATION, tracked=True),
)


def spec_for(backend: BackendId) -> BackendSpec:
    for spec in BACKENDS:
        if spec.id == backend:
            return spec
    raise KeyError(backend)
