"""Concrete pipeline stages.

Build, package, version bump and app launch are opaque project scripts
(exit 0 or not). Signing and notarization are driven here because their
decisions (which identity, whether to notarize, which backend) are the
point of the orchestrator. Publishing comes last: the package script only
gets ``--deliver`` once signing and notarization have passed.
"""

from __future__ import annotations

import shutil
from enum import StrEnum
from pathlib import Path

from shipyard.core.config import Settings
from shipyard.core.result import Err
from shipyard.output.console import ConsoleProtocol, Style
from shipyard.platform.detection import Platform, detect_platform
from shipyard.platform.process import CommandRunner
from shipyard.services.artifacts import temporary_archive
from shipyard.services.checkers import (
    CheckResult,
    CheckStatus,
    DeliveryChecker,
    EnvironmentChecker,
)
from shipyard.services.credentials import Credentials, Requirement
from shipyard.services.errors import (
    ArtifactNotFound,
    MissingParameter,
    StepFailed,
    ToolNotFound,
)
from shipyard.services.notary import (
    BackendProber,
    CancelToken,
    PollPolicy,
    UploadMode,
    client_for,
    select_backend,
    submit_and_wait,
)
from shipyard.services.pipeline import Configuration, PipelinePlan, StageFn, StageResult
from shipyard.services.signing import ADHOC_IDENTITY, find_signing_identity, sign_bundle

__all__ = ["ReleaseStages", "StageName", "print_checks"]


class StageName(StrEnum):
    VERIFY = "verify"
    PREFLIGHT = "preflight"
    CLEAN = "clean"
    CLEAN_SCRATCH = "clean-scratch"
    BUMP_VERSION = "bump-version"
    BUMP_VERSION_PUBLISH = "bump-version-publish"
    BUILD = "build"
    LAUNCH = "launch"
    PACKAGE = "package"
    PACKAGE_INSTALL = "package-install"
    SIGN = "sign"
    NOTARIZE = "notarize"
    PUBLISH = "publish"


def print_checks(console: ConsoleProtocol, results: list[CheckResult]) -> None:
    for r in results:
        match r.status:
            case CheckStatus.OK:
                style = Style.SUCCESS
            case CheckStatus.WARNING:
                style = Style.WARNING
            case CheckStatus.ERROR:
                style = Style.ERROR
        console.print(f"{r.name}: {r.message}", style)
        if r.hint and r.status != CheckStatus.OK:
            console.print(f"hint: {r.hint}", Style.DIM)


class ReleaseStages:
    """Stage implementations bound to one project and one set of credentials."""

    def __init__(
        self,
        *,
        root: Path,
        settings: Settings,
        credentials: Credentials,
        console: ConsoleProtocol,
        runner: CommandRunner,
        platform: Platform | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self._root = root
        self._settings = settings
        self._credentials = credentials
        self._console = console
        self._runner = runner
        self._platform = platform or detect_platform()
        self._cancel = cancel

    def registry(self) -> dict[str, StageFn]:
        return {
            StageName.VERIFY: self.verify,
            StageName.PREFLIGHT: self.preflight,
            StageName.CLEAN: self.clean,
            StageName.CLEAN_SCRATCH: self.clean_scratch,
            StageName.BUMP_VERSION: self.bump_version,
            StageName.BUMP_VERSION_PUBLISH: self.bump_version_publish,
            StageName.BUILD: self.build,
            StageName.LAUNCH: self.launch,
            StageName.PACKAGE: self.package,
            StageName.PACKAGE_INSTALL: self.package_install,
            StageName.SIGN: self.sign,
            StageName.NOTARIZE: self.notarize,
            StageName.PUBLISH: self.publish,
        }

    @property
    def bundle_path(self) -> Path:
        return self._root / self._settings.paths.package_dir / f"{self._settings.app.name}.app"

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def verify(self, plan: PipelinePlan) -> StageResult:
        checker = EnvironmentChecker(
            root=self._root,
            settings=self._settings,
            platform=self._platform,
            runner=self._runner,
        )
        results = checker.check_all()
        print_checks(self._console, results)

        for r in results:
            if r.error is not None:
                return StageResult.failed(StageName.VERIFY, r.error)
        return StageResult.passed(StageName.VERIFY, "development environment is ready")

    def preflight(self, plan: PipelinePlan) -> StageResult:
        checker = DeliveryChecker(credentials=self._credentials, runner=self._runner, root=self._root)
        print_checks(self._console, checker.check_all())
        return StageResult.passed(StageName.PREFLIGHT, "delivery prerequisites checked")

    # -------------------------------------------------------------------------
    # Opaque project steps
    # -------------------------------------------------------------------------

    def clean(self, plan: PipelinePlan) -> StageResult:
        paths = self._settings.paths
        return self._remove(StageName.CLEAN, (paths.scratch_dir, paths.build_dir))

    def clean_scratch(self, plan: PipelinePlan) -> StageResult:
        """Compiler scratch only; packaged bundles from earlier runs stay."""
        return self._remove(StageName.CLEAN_SCRATCH, (self._settings.paths.scratch_dir,))

    def _remove(self, stage: StageName, dirs: tuple[str, ...]) -> StageResult:
        removed: list[str] = []
        for rel in dirs:
            target = self._root / rel
            if not target.exists():
                continue
            try:
                shutil.rmtree(target)
            except OSError as e:
                return StageResult.failed(stage, StepFailed(step="clean", returncode=-1, output=str(e)))
            removed.append(rel)
        message = f"removed {', '.join(removed)}" if removed else "nothing to clean"
        return StageResult.passed(stage, message)

    def bump_version(self, plan: PipelinePlan) -> StageResult:
        return self._bump(plan, StageName.BUMP_VERSION, publish=False)

    def bump_version_publish(self, plan: PipelinePlan) -> StageResult:
        return self._bump(plan, StageName.BUMP_VERSION_PUBLISH, publish=True)

    def _bump(self, plan: PipelinePlan, stage: StageName, *, publish: bool) -> StageResult:
        if not plan.version:
            return StageResult.failed(
                stage, MissingParameter(operation=plan.operation, parameter="version")
            )
        args = [plan.version, "--push", "--commit"] if publish else [plan.version]
        failed = self._script(stage, self._settings.scripts.bump_version, args)
        if failed is not None:
            return failed
        return StageResult.passed(stage, f"version bumped to {plan.version}")

    def build(self, plan: PipelinePlan) -> StageResult:
        args = ["-r"] if plan.configuration == Configuration.RELEASE else []
        failed = self._script(StageName.BUILD, self._settings.scripts.build, args)
        if failed is not None:
            return failed
        return StageResult.passed(StageName.BUILD, f"{plan.configuration} build complete")

    def launch(self, plan: PipelinePlan) -> StageResult:
        if self._runner.which("swift") is None:
            return StageResult.failed(StageName.LAUNCH, ToolNotFound("swift", "xcode-select --install"))
        cmd = ["swift", "run"]
        if plan.configuration == Configuration.RELEASE:
            cmd.extend(["--configuration", "release"])
        self._console.command(cmd)
        result = self._runner.run_live(cmd, cwd=self._root)
        if isinstance(result, Err):
            return StageResult.failed(
                StageName.LAUNCH, StepFailed(step="swift run", returncode=result.error.returncode)
            )
        return StageResult.passed(StageName.LAUNCH, "app exited")

    def package(self, plan: PipelinePlan) -> StageResult:
        return self._package(plan, StageName.PACKAGE, [])

    def package_install(self, plan: PipelinePlan) -> StageResult:
        return self._package(plan, StageName.PACKAGE_INSTALL, ["--install_local"])

    def _package(self, plan: PipelinePlan, stage: StageName, extra: list[str]) -> StageResult:
        args = ["--debug"] if plan.configuration == Configuration.DEBUG else []
        args.extend(extra)
        failed = self._script(stage, self._settings.scripts.package, args)
        if failed is not None:
            return failed
        bundle = self.bundle_path
        return StageResult.passed(
            stage, f"packaged {bundle.name}", artifact=bundle if bundle.is_dir() else None
        )

    def _script(self, stage: StageName, rel: str, args: list[str]) -> StageResult | None:
        """Run a project script; return a failed result, or None on success."""
        script = self._root / rel
        if not script.is_file():
            return StageResult.failed(stage, ToolNotFound(tool=rel, hint="Run: shipyard verify"))
        cmd = [str(script), *args]
        self._console.command([rel, *args])
        result = self._runner.run_live(cmd, cwd=self._root)
        if isinstance(result, Err):
            return StageResult.failed(
                stage, StepFailed(step=rel, returncode=result.error.returncode)
            )
        return None

    # -------------------------------------------------------------------------
    # Signing and notarization
    # -------------------------------------------------------------------------

    def sign(self, plan: PipelinePlan) -> StageResult:
        bundle = self.bundle_path
        if not bundle.is_dir():
            return StageResult.failed(
                StageName.SIGN,
                ArtifactNotFound(path=bundle, hint="The package step produces the app bundle"),
            )

        identity = find_signing_identity(self._runner, self._root)
        if identity is None:
            self._console.warning("No Developer ID certificate found, using ad-hoc signing")
            identity = ADHOC_IDENTITY

        result = sign_bundle(bundle, identity, runner=self._runner, cwd=self._root)
        if isinstance(result, Err):
            return StageResult.failed(StageName.SIGN, result.error)
        label = "ad-hoc" if identity == ADHOC_IDENTITY else identity
        return StageResult.passed(StageName.SIGN, f"signed ({label})", artifact=bundle)

    def notarize(self, plan: PipelinePlan) -> StageResult:
        if not self._credentials.is_complete(Requirement.NOTARIZE):
            missing = ", ".join(self._credentials.missing(Requirement.NOTARIZE))
            self._console.print("Users may see security warnings on first launch", Style.DIM)
            return StageResult.skipped(StageName.NOTARIZE, f"{missing} not set")

        mode = UploadMode.parse(self._settings.notary.method)
        if isinstance(mode, Err):
            return StageResult.failed(StageName.NOTARIZE, mode.error)

        prober = BackendProber(credentials=self._credentials, runner=self._runner, cwd=self._root)
        selection = select_backend(mode.value, prober)
        if isinstance(selection, Err):
            return StageResult.failed(StageName.NOTARIZE, selection.error)

        backend = selection.value.backend
        self._console.info(f"Using {backend.id} ({backend.purpose})")
        client = client_for(
            backend.id,
            credentials=prober.credentials,
            runner=self._runner,
            cwd=self._root,
            console=self._console,
            app=self._settings.app,
        )

        with temporary_archive(
            self.bundle_path, runner=self._runner, cwd=self._root, purpose="notarize"
        ) as archived:
            if isinstance(archived, Err):
                return StageResult.failed(StageName.NOTARIZE, archived.error)
            outcome = submit_and_wait(
                client,
                archived.value,
                policy=PollPolicy.from_config(self._settings.notary),
                console=self._console,
                cancel=self._cancel,
            )

        if isinstance(outcome, Err):
            return StageResult.failed(StageName.NOTARIZE, outcome.error)
        record = outcome.value
        return StageResult.passed(
            StageName.NOTARIZE,
            f"{backend.id} accepted {record.submission_id or 'upload'} "
            f"after {record.polls} status check(s)",
        )

    def publish(self, plan: PipelinePlan) -> StageResult:
        """Hand the signed (and, when possible, notarized) bundle to the package script."""
        bundle = self.bundle_path
        if not bundle.is_dir():
            return StageResult.failed(
                StageName.PUBLISH,
                ArtifactNotFound(path=bundle, hint="The package step produces the app bundle"),
            )
        failed = self._script(StageName.PUBLISH, self._settings.scripts.package, ["--deliver"])
        if failed is not None:
            return failed
        return StageResult.passed(StageName.PUBLISH, f"delivered {bundle.name}", artifact=bundle)
