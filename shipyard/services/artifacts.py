"""Locate and inspect packaged artifacts.

Inspection is read-only: artifacts are produced by the external package
step and consumed exactly once by a submission. The only files this
module creates are the temporary upload archives, which are removed by
``temporary_archive`` on every exit path.
"""

from __future__ import annotations

import shutil
import tempfile
import zipfile
import zlib
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from shipyard.core.result import Err, Ok, Result
from shipyard.platform.process import CommandRunner
from shipyard.services.errors import (
    ArtifactNotFound,
    CorruptArchive,
    DeliveryError,
    StepFailed,
    ToolNotFound,
)

__all__ = [
    "Artifact",
    "UnexpectedLayout",
    "ValidationReport",
    "archive_bundle",
    "locate",
    "temporary_archive",
    "validate",
]


@dataclass(frozen=True, slots=True)
class Artifact:
    """A packaged archive on disk."""

    path: Path
    size: int
    format: str = "zip"

    @property
    def size_label(self) -> str:
        size = float(self.size)
        for unit in ("B", "KB", "MB", "GB"):
            if size < 1024 or unit == "GB":
                return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
            size /= 1024
        return f"{self.size}B"


@dataclass(frozen=True, slots=True)
class UnexpectedLayout:
    """Non-fatal: the archive lacks the expected ``Payload/<App>.app`` entry."""

    path: Path
    expected: str

    @property
    def message(self) -> str:
        return f"{self.path.name} does not contain {self.expected}"


@dataclass(frozen=True, slots=True)
class ValidationReport:
    artifact: Artifact
    warnings: tuple[UnexpectedLayout, ...] = ()

    @property
    def clean(self) -> bool:
        return not self.warnings


def locate(
    search_root: Path, pattern: str, *, hint: str | None = None
) -> Result[Path, ArtifactNotFound]:
    """Return the latest file under ``search_root`` matching ``pattern``.

    Versioned names sort lexicographically, so the last name wins.
    """
    if not search_root.is_dir():
        return Err(ArtifactNotFound(path=search_root / pattern, hint=hint))

    matches = sorted(
        (p for p in search_root.rglob(pattern) if p.is_file()),
        key=lambda p: (p.name, str(p)),
        reverse=True,
    )
    if not matches:
        return Err(ArtifactNotFound(path=search_root / pattern, hint=hint))
    return Ok(matches[0])


def validate(path: Path, app_name: str) -> Result[ValidationReport, DeliveryError]:
    """Check that ``path`` is a readable zip holding the app bundle."""
    if not path.is_file():
        return Err(ArtifactNotFound(path=path))

    try:
        with zipfile.ZipFile(path) as archive:
            bad_member = archive.testzip()
            names = archive.namelist()
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
        return Err(CorruptArchive(path=path, reason=str(e) or type(e).__name__))
    except OSError as e:
        return Err(CorruptArchive(path=path, reason=str(e)))

    if bad_member is not None:
        return Err(CorruptArchive(path=path, reason=f"bad CRC for {bad_member}"))

    artifact = Artifact(path=path, size=path.stat().st_size)
    expected = f"Payload/{app_name}.app"
    if not any(name == expected or name.startswith(expected + "/") for name in names):
        return Ok(ValidationReport(artifact, (UnexpectedLayout(path=path, expected=expected),)))
    return Ok(ValidationReport(artifact))


def archive_bundle(
    bundle: Path, dest: Path, *, runner: CommandRunner, cwd: Path
) -> Result[Path, DeliveryError]:
    """Zip an ``.app`` bundle, keeping its parent directory, with ``ditto``."""
    if not bundle.is_dir():
        return Err(
            ArtifactNotFound(path=bundle, hint="Create the app bundle first: shipyard release-package")
        )
    if runner.which("ditto") is None:
        return Err(ToolNotFound(tool="ditto", hint="ditto ships with macOS"))

    result = runner.run(["ditto", "-c", "-k", "--keepParent", str(bundle), str(dest)], cwd=cwd)
    if isinstance(result, Err):
        e = result.error
        return Err(StepFailed(step="ditto", returncode=e.returncode, output=e.output))
    return Ok(dest)


@contextmanager
def temporary_archive(
    bundle: Path, *, runner: CommandRunner, cwd: Path, purpose: str
) -> Iterator[Result[Path, DeliveryError]]:
    """Archive ``bundle`` into a private temp dir, removed when the block exits."""
    workdir = Path(tempfile.mkdtemp(prefix="shipyard-"))
    try:
        dest = workdir / f"{bundle.stem}-{purpose}.zip"
        yield archive_bundle(bundle, dest, runner=runner, cwd=cwd)
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
