# SPDX-License-Identifier: MIT
"""Checkers for environment verification and delivery preflight.

- EnvironmentChecker: host, Apple toolchain, project files, test build
- DeliveryChecker: credential completeness and signing certificate
"""

from shipyard.services.checkers.base import CheckResult, CheckStatus
from shipyard.services.checkers.delivery import DeliveryChecker
from shipyard.services.checkers.environment import EnvironmentChecker, certificate_check

__all__ = [
    # Result types
    "CheckResult",
    "CheckStatus",
    # Checkers
    "DeliveryChecker",
    "EnvironmentChecker",
    "certificate_check",
]
