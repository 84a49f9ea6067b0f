"""App Store Connect upload.

Flow: require credentials, find and inspect the store package, pick a
backend, then hand the app bundle to it. altool wants the zipped
``.app`` for macOS rather than the IPA, so the IPA is only validated;
the bundle next to it is what gets uploaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shipyard.core.config import Settings
from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.platform.process import CommandRunner
from shipyard.services.artifacts import ValidationReport, locate, temporary_archive, validate
from shipyard.services.credentials import Credentials, Requirement
from shipyard.services.errors import ArtifactNotFound, DeliveryError
from shipyard.services.notary import (
    BackendProber,
    CancelToken,
    PollPolicy,
    Selection,
    SubmissionRecord,
    UploadMode,
    client_for,
    select_backend,
    submit_and_wait,
)

__all__ = ["UploadReport", "UploadService"]


@dataclass(frozen=True, slots=True)
class UploadReport:
    validation: ValidationReport
    selection: Selection
    record: SubmissionRecord | None = None


class UploadService:
    def __init__(
        self,
        *,
        root: Path,
        settings: Settings,
        credentials: Credentials,
        console: ConsoleProtocol,
        runner: CommandRunner,
        cancel: CancelToken | None = None,
    ) -> None:
        self._root = root
        self._settings = settings
        self._credentials = credentials
        self._console = console
        self._runner = runner
        self._cancel = cancel

    @property
    def bundle_path(self) -> Path:
        return self._root / self._settings.paths.package_dir / f"{self._settings.app.name}.app"

    def run(
        self,
        *,
        ipa: Path | None = None,
        mode: UploadMode = UploadMode.AUTO,
        verify_only: bool = False,
    ) -> Result[UploadReport, DeliveryError]:
        creds = self._credentials.require(Requirement.UPLOAD)
        if isinstance(creds, Err):
            return creds
        self._console.success(f"Apple ID credentials found: {self._credentials.identity}")

        found = self._find_package(ipa)
        if isinstance(found, Err):
            return found

        checked = validate(found.value, self._settings.app.name)
        if isinstance(checked, Err):
            return checked
        report = checked.value
        self._console.success(f"{report.artifact.path.name}: {report.artifact.size_label}, valid zip")
        for warning in report.warnings:
            self._console.warning(warning.message)

        prober = BackendProber(credentials=self._credentials, runner=self._runner, cwd=self._root)
        selection = select_backend(mode, prober)
        if isinstance(selection, Err):
            return selection
        backend = selection.value.backend
        self._console.success(f"{backend.id} credentials verified")

        if verify_only:
            return Ok(UploadReport(validation=report, selection=selection.value))

        self._console.info(f"Uploading with {backend.id} ({backend.purpose})")
        client = client_for(
            backend.id,
            credentials=prober.credentials,
            runner=self._runner,
            cwd=self._root,
            console=self._console,
            app=self._settings.app,
        )
        with temporary_archive(
            self.bundle_path, runner=self._runner, cwd=self._root, purpose="upload"
        ) as archived:
            if isinstance(archived, Err):
                return archived
            outcome = submit_and_wait(
                client,
                archived.value,
                policy=PollPolicy.from_config(self._settings.notary),
                console=self._console,
                cancel=self._cancel,
            )

        if isinstance(outcome, Err):
            return outcome
        return Ok(UploadReport(validation=report, selection=selection.value, record=outcome.value))

    def _find_package(self, ipa: Path | None) -> Result[Path, ArtifactNotFound]:
        if ipa is not None:
            path = ipa if ipa.is_absolute() else self._root / ipa
            if not path.is_file():
                return Err(ArtifactNotFound(path=path))
            self._console.success(f"Using specified IPA file: {path}")
            return Ok(path)

        self._console.info("Auto-detecting IPA file...")
        found = locate(
            self._root / self._settings.artifacts.search_root,
            self._settings.artifact_pattern,
            hint="Create an IPA first: ./Scripts/package_app.sh --app_store",
        )
        if isinstance(found, Ok):
            self._console.success(f"Found IPA file: {found.value}")
        return found
