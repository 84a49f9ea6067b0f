"""Operation catalogue: what each user-facing operation runs.

Both the direct CLI commands and the interactive menu resolve to an
``OperationSpec`` here, then to a ``PipelinePlan``. Parameter checks
happen while planning, before any external tool runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from shipyard.core.result import Err, Ok, Result
from shipyard.services.errors import MissingParameter, UnknownOperation
from shipyard.services.pipeline import Configuration, PipelinePlan
from shipyard.services.stages import StageName

__all__ = [
    "OPERATIONS",
    "Operation",
    "OperationSpec",
    "operation_names",
    "plan",
    "resolve_menu_choice",
    "resolve_operation",
]


class Operation(StrEnum):
    VERIFY = "verify"
    DEBUG_RUN = "debug-run"
    DEBUG_PACKAGE = "debug-package"
    DEBUG_INSTALL = "debug-install"
    RELEASE_RUN = "release-run"
    RELEASE_PACKAGE = "release-package"
    RELEASE_INSTALL = "release-install"
    DELIVER = "deliver"
    DELIVER_PUSH = "deliver-push"


@dataclass(frozen=True, slots=True)
class OperationSpec:
    operation: Operation
    menu_key: int
    alias: str
    description: str
    stages: tuple[StageName, ...]
    configuration: Configuration = Configuration.DEBUG
    requires_version: bool = False


_DELIVER_STAGES = (
    StageName.PREFLIGHT,
    StageName.CLEAN,
    StageName.BUMP_VERSION,
    StageName.BUILD,
    StageName.PACKAGE,
    StageName.SIGN,
    StageName.NOTARIZE,
    StageName.PUBLISH,
)

OPERATIONS: tuple[OperationSpec, ...] = (
    OperationSpec(
        Operation.VERIFY, 0, "v", "Verify setup and dependencies", (StageName.VERIFY,)
    ),
    OperationSpec(
        Operation.DEBUG_RUN,
        1,
        "dr",
        "Build debug app and run",
        (StageName.CLEAN_SCRATCH, StageName.BUILD, StageName.LAUNCH),
    ),
    OperationSpec(
        Operation.DEBUG_PACKAGE,
        2,
        "dpk",
        "Build debug app and package",
        (StageName.CLEAN, StageName.BUILD, StageName.PACKAGE),
    ),
    OperationSpec(
        Operation.DEBUG_INSTALL,
        3,
        "di",
        "Build debug app, package and install locally",
        (StageName.CLEAN, StageName.BUILD, StageName.PACKAGE_INSTALL),
    ),
    OperationSpec(
        Operation.RELEASE_RUN,
        4,
        "rr",
        "Build release app and run",
        (StageName.CLEAN_SCRATCH, StageName.BUILD, StageName.LAUNCH),
        Configuration.RELEASE,
    ),
    OperationSpec(
        Operation.RELEASE_PACKAGE,
        5,
        "rp",
        "Build release app and package",
        (StageName.CLEAN, StageName.BUILD, StageName.PACKAGE),
        Configuration.RELEASE,
    ),
    OperationSpec(
        Operation.RELEASE_INSTALL,
        6,
        "ri",
        "Build release app, package and install locally",
        (StageName.CLEAN, StageName.BUILD, StageName.PACKAGE_INSTALL),
        Configuration.RELEASE,
    ),
    OperationSpec(
        Operation.DELIVER,
        7,
        "d",
        "Bump version, build release, sign, notarize and deliver",
        _DELIVER_STAGES,
        Configuration.RELEASE,
        requires_version=True,
    ),
    OperationSpec(
        Operation.DELIVER_PUSH,
        8,
        "dp",
        "Bump version with commit/push, build release, sign, notarize and deliver",
        tuple(
            StageName.BUMP_VERSION_PUBLISH if s == StageName.BUMP_VERSION else s
            for s in _DELIVER_STAGES
        ),
        Configuration.RELEASE,
        requires_version=True,
    ),
)

EXIT_MENU_KEY = 9


def operation_names() -> tuple[str, ...]:
    return tuple(spec.operation.value for spec in OPERATIONS)


def resolve_operation(name: str) -> Result[OperationSpec, UnknownOperation]:
    """Resolve ``verify``, ``--verify`` or ``-v`` style names."""
    key = name.strip()
    for spec in OPERATIONS:
        if key in (spec.operation.value, f"--{spec.operation.value}", f"-{spec.alias}"):
            return Ok(spec)
    return Err(UnknownOperation(name=name, available=operation_names()))


def resolve_menu_choice(choice: str) -> Result[OperationSpec, UnknownOperation]:
    key = choice.strip()
    for spec in OPERATIONS:
        if key == str(spec.menu_key):
            return Ok(spec)
    return Err(
        UnknownOperation(
            name=choice,
            available=tuple(str(k) for k in range(EXIT_MENU_KEY + 1)),
            kind="menu choice",
        )
    )


def plan(spec: OperationSpec, version: str | None = None) -> Result[PipelinePlan, MissingParameter]:
    cleaned = (version or "").strip() or None
    if spec.requires_version and cleaned is None:
        return Err(
            MissingParameter(
                operation=spec.operation.value,
                parameter="version",
                usage=f"shipyard {spec.operation.value} <version>",
            )
        )
    return Ok(
        PipelinePlan(
            operation=spec.operation.value,
            stages=tuple(str(s) for s in spec.stages),
            configuration=spec.configuration,
            version=cleaned,
        )
    )
