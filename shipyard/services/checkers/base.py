# SPDX-License-Identifier: MIT
"""Check results shared by ``verify`` and the delivery preflight.

A failed check carries the ``DeliveryError`` it stands for, so a stage
built on checks reports the same typed error (and exit code) as the step
that would have failed later.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from shipyard.services.errors import DeliveryError, describe


class CheckStatus(StrEnum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of one environment or preflight check.

    Attributes:
        name: What was checked ("xcodebuild", "Info.plist", "notarization")
        status: OK, WARNING (advisory) or ERROR
        message: One line for the check listing
        hint: Remediation shown for warnings and errors
        error: Typed failure, set exactly when status is ERROR
    """

    name: str
    status: CheckStatus
    message: str
    hint: str | None = None
    error: DeliveryError | None = None

    @property
    def ok(self) -> bool:
        """Warnings do not block."""
        return self.status != CheckStatus.ERROR

    @property
    def is_error(self) -> bool:
        return self.status == CheckStatus.ERROR

    @property
    def is_warning(self) -> bool:
        return self.status == CheckStatus.WARNING

    @classmethod
    def passed(cls, name: str, message: str) -> CheckResult:
        return cls(name=name, status=CheckStatus.OK, message=message)

    @classmethod
    def advisory(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.WARNING, message=message, hint=hint)

    @classmethod
    def failed(cls, name: str, message: str, error: DeliveryError) -> CheckResult:
        _, hint = describe(error)
        return cls(name=name, status=CheckStatus.ERROR, message=message, hint=hint, error=error)
