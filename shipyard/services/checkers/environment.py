# SPDX-License-Identifier: MIT
"""Development environment checker (the ``verify`` operation).

Static checks (host, tools, project files) run first. The SwiftPM
resolve and the debug build are only attempted when every static check
passed, since they would fail for the same reason anyway.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from shipyard.core.config import Settings
from shipyard.core.result import Err
from shipyard.platform.detection import Platform, detect_platform, macos_version
from shipyard.platform.process import CommandRunner, SubprocessRunner
from shipyard.services.checkers.base import CheckResult
from shipyard.services.errors import ArtifactNotFound, StepFailed, ToolNotFound
from shipyard.services.signing import find_signing_identity

_RESOLVE_TIMEOUT_SECONDS = 10 * 60.0
_BUILD_TIMEOUT_SECONDS = 30 * 60.0


@dataclass(frozen=True, slots=True)
class EnvironmentChecker:
    """Check that this machine can build, package and sign the app.

    Attributes:
        root: Project root (where Package.swift lives)
        settings: Project settings
        platform: Host platform
        runner: Command runner for tool probes and the test build
        build: Run ``swift package resolve`` and a debug build
    """

    root: Path
    settings: Settings
    platform: Platform = field(default_factory=detect_platform)
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    build: bool = True

    def check_all(self) -> list[CheckResult]:
        results = [
            self.check_platform(),
            self.check_tool("xcodebuild", hint="xcode-select --install"),
            self.check_swift(),
            self.check_file("Package.swift", hint="Run shipyard from the project directory"),
            self.check_scripts(),
            self.check_file(f"Sources/{self.settings.app.name}/main.swift"),
            self.check_file(f"Sources/{self.settings.app.name}/Resources/Images/base.png"),
            self.check_file("Info.plist"),
        ]

        if self.build and all(r.ok for r in results):
            results.append(self.check_resolve())
            if results[-1].ok:
                results.append(self.check_debug_build())

        results.append(self.check_certificate())
        return results

    def check_platform(self) -> CheckResult:
        if not self.platform.can_deliver:
            return CheckResult.failed(
                "macOS",
                f"unsupported host: {self.platform}",
                ToolNotFound(tool="macOS", hint="Building and signing need a macOS host"),
            )
        version = macos_version()
        return CheckResult.passed("macOS", version or "detected")

    def check_tool(self, name: str, *, hint: str | None = None) -> CheckResult:
        path = self.runner.which(name)
        if path is None:
            return CheckResult.failed(name, "missing", ToolNotFound(tool=name, hint=hint))
        return CheckResult.passed(name, path)

    def check_swift(self) -> CheckResult:
        missing = self.check_tool("swift", hint="xcode-select --install")
        if missing.is_error:
            return missing
        result = self.runner.run(["swift", "--version"], cwd=self.root)
        if isinstance(result, Err):
            e = result.error
            return CheckResult.failed(
                "swift",
                "swift --version failed",
                StepFailed(step="swift --version", returncode=e.returncode, output=e.output),
            )
        return CheckResult.passed("swift", _first_line(result.value) or "ok")

    def check_file(self, rel: str, *, hint: str | None = None) -> CheckResult:
        path = self.root / rel
        if path.is_file():
            return CheckResult.passed(rel, "found")
        return CheckResult.failed(rel, "not found", ArtifactNotFound(path=path, hint=hint))

    def check_scripts(self) -> CheckResult:
        missing = [s for s in self.settings.scripts.all() if not (self.root / s).is_file()]
        if missing:
            return CheckResult.failed(
                "scripts",
                f"not found: {', '.join(missing)}",
                ToolNotFound(tool=missing[0], hint="Run shipyard from the project directory"),
            )
        return CheckResult.passed("scripts", "all required scripts found")

    def check_resolve(self) -> CheckResult:
        cmd = ["swift", "package", "resolve"]
        result = self.runner.run(cmd, cwd=self.root, timeout=_RESOLVE_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return CheckResult.failed(
                "dependencies",
                "swift package resolve failed",
                StepFailed(step=" ".join(cmd), returncode=e.returncode, output=e.output),
            )
        return CheckResult.passed("dependencies", "resolved")

    def check_debug_build(self) -> CheckResult:
        cmd = ["swift", "build", "--configuration", "debug"]
        result = self.runner.run(cmd, cwd=self.root, timeout=_BUILD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return CheckResult.failed(
                "debug build",
                f"failed (exit {e.returncode})",
                StepFailed(step="swift build", returncode=e.returncode, output=e.output),
            )
        return CheckResult.passed("debug build", "ok")

    def check_certificate(self) -> CheckResult:
        return certificate_check(self.runner, self.root)


def certificate_check(runner: CommandRunner, root: Path) -> CheckResult:
    """Developer ID presence: a warning, never an error."""
    identity = find_signing_identity(runner, root)
    if identity is None:
        return CheckResult.advisory(
            "certificate",
            "no Developer ID certificate, will use ad-hoc signing",
            hint="Users will need to right-click and select 'Open' on first launch",
        )
    return CheckResult.passed("certificate", identity)


def _first_line(text: str) -> str:
    for line in text.strip().splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""
