"""Pick exactly one upload backend.

``auto`` walks the backends in priority order and stops at the first one
that accepts the credentials, so each backend is probed at most once and
the primary always wins when it accepts. An explicit mode probes only
the requested backend.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from shipyard.core.result import Err, Ok, Result
from shipyard.services.errors import (
    DeliveryError,
    NoBackendAvailable,
    ProbeRejected,
    ProbeUnreachable,
    UnknownOperation,
)
from shipyard.services.notary.backends import (
    BACKENDS,
    BackendId,
    BackendSpec,
    ProbeOutcome,
    ProbeStatus,
    spec_for,
)

__all__ = ["Probe", "Selection", "UploadMode", "select_backend"]

Probe = Callable[[BackendId], ProbeOutcome]


class UploadMode(StrEnum):
    AUTO = "auto"
    ALTOOL = "altool"
    NOTARYTOOL = "notarytool"

    @classmethod
    def parse(cls, value: str) -> Result[UploadMode, UnknownOperation]:
        try:
            return Ok(cls(value.strip().lower()))
        except ValueError:
            return Err(
                UnknownOperation(
                    name=value,
                    available=tuple(m.value for m in cls),
                    kind="upload method",
                )
            )


@dataclass(frozen=True, slots=True)
class Selection:
    backend: BackendSpec
    probes: tuple[ProbeOutcome, ...]


def select_backend(mode: UploadMode, probe: Probe) -> Result[Selection, DeliveryError]:
    if mode != UploadMode.AUTO:
        backend = spec_for(BackendId(mode.value))
        outcome = probe(backend.id)
        if outcome.accepted:
            return Ok(Selection(backend, (outcome,)))
        return Err(_probe_error(outcome))

    outcomes: list[ProbeOutcome] = []
    for backend in BACKENDS:
        outcome = probe(backend.id)
        outcomes.append(outcome)
        if outcome.accepted:
            return Ok(Selection(backend, tuple(outcomes)))

    return Err(NoBackendAvailable(probes=tuple(outcomes)))


def _probe_error(outcome: ProbeOutcome) -> DeliveryError:
    if outcome.status == ProbeStatus.UNREACHABLE:
        return ProbeUnreachable(backend=str(outcome.backend), detail=outcome.detail)
    return ProbeRejected(backend=str(outcome.backend), detail=outcome.detail)
