# SPDX-License-Identifier: MIT
"""Delivery preflight advisory.

Runs before a deliver pipeline and never fails it: missing credentials
mean the notarize stage will be skipped, a missing certificate means
ad-hoc signing.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shipyard.platform.process import CommandRunner
from shipyard.services.checkers.base import CheckResult
from shipyard.services.checkers.environment import certificate_check
from shipyard.services.credentials import Credentials, Requirement


@dataclass(frozen=True, slots=True)
class DeliveryChecker:
    credentials: Credentials
    runner: CommandRunner
    root: Path

    def check_all(self) -> list[CheckResult]:
        return [self.check_credentials(), certificate_check(self.runner, self.root)]

    def check_credentials(self) -> CheckResult:
        missing = self.credentials.missing(Requirement.NOTARIZE)
        if missing:
            return CheckResult.advisory(
                "notarization",
                f"credentials not fully set ({', '.join(missing)}), "
                "app will be delivered without notarization",
                hint="export " + " ".join(f"{name}=..." for name in missing),
            )
        return CheckResult.passed(
            "notarization",
            f"credentials found for {self.credentials.identity}, notarization will be attempted",
        )
