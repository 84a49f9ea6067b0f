"""Tests for artifact location and validation."""

from __future__ import annotations

import zipfile
from pathlib import Path

from shipyard.core.result import Err, Ok, Result
from shipyard.platform.process import ProcessError
from shipyard.services.artifacts import (
    Artifact,
    archive_bundle,
    locate,
    temporary_archive,
    validate,
)
from shipyard.services.errors import (
    ArtifactNotFound,
    CorruptArchive,
    StepFailed,
    ToolNotFound,
)


class ZipRunner:
    """Runner whose ``ditto`` writes a real zip of the bundle."""

    def __init__(self, *, has_ditto: bool = True, fail: bool = False) -> None:
        self.has_ditto = has_ditto
        self.fail = fail
        self.calls: list[list[str]] = []

    def run(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        self.calls.append(cmd)
        if self.fail:
            return Err(ProcessError(tuple(cmd), 1, "ditto: Couldn't read PKZip signature", ""))
        src, dest = Path(cmd[-2]), Path(cmd[-1])
        with zipfile.ZipFile(dest, "w") as archive:
            for path in src.rglob("*"):
                archive.write(path, path.relative_to(src.parent).as_posix())
        return Ok("")

    def run_live(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]:
        raise AssertionError("not used")

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if self.has_ditto else None


def _ipa(path: Path, entries: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


def _bundle(root: Path) -> Path:
    bundle = root / "BongoCat.app"
    (bundle / "Contents" / "MacOS").mkdir(parents=True)
    (bundle / "Contents" / "MacOS" / "BongoCat").write_bytes(b"\xcf\xfa\xed\xfe")
    return bundle


class TestLocate:
    def test_latest_version_wins(self, tmp_path: Path) -> None:
        build = tmp_path / "Build"
        _ipa(build / "BongoCat-1.2.0-AppStore.ipa", {"a": b""})
        _ipa(build / "store" / "BongoCat-1.3.0-AppStore.ipa", {"a": b""})
        _ipa(build / "BongoCat-1.3.0-debug.zip", {"a": b""})

        result = locate(build, "BongoCat-*-AppStore.ipa")
        assert result == Ok(build / "store" / "BongoCat-1.3.0-AppStore.ipa")

    def test_not_found_names_location_and_hint(self, tmp_path: Path) -> None:
        build = tmp_path / "Build"
        build.mkdir()

        result = locate(build, "BongoCat-*-AppStore.ipa", hint="Run the package step first")
        assert isinstance(result, Err)
        assert result.error.path == build / "BongoCat-*-AppStore.ipa"
        assert result.error.hint == "Run the package step first"

    def test_missing_search_root(self, tmp_path: Path) -> None:
        result = locate(tmp_path / "nope", "*.ipa")
        assert isinstance(result, Err)
        assert isinstance(result.error, ArtifactNotFound)


class TestValidate:
    def test_expected_layout_has_no_warnings(self, tmp_path: Path) -> None:
        path = _ipa(
            tmp_path / "BongoCat-1.0.0-AppStore.ipa",
            {
                "Payload/BongoCat.app/Contents/Info.plist": b"<plist/>",
                "Payload/BongoCat.app/Contents/MacOS/BongoCat": b"\x00" * 64,
            },
        )

        result = validate(path, "BongoCat")
        assert isinstance(result, Ok)
        assert result.value.clean
        assert result.value.artifact == Artifact(path=path, size=path.stat().st_size)

    def test_directory_entry_only_is_enough(self, tmp_path: Path) -> None:
        path = _ipa(tmp_path / "a.ipa", {"Payload/BongoCat.app/": b""})
        result = validate(path, "BongoCat")
        assert isinstance(result, Ok)
        assert result.value.clean

    def test_unexpected_layout_is_a_warning(self, tmp_path: Path) -> None:
        path = _ipa(tmp_path / "a.ipa", {"BongoCat.app/Contents/Info.plist": b""})

        result = validate(path, "BongoCat")
        assert isinstance(result, Ok)
        assert not result.value.clean
        warning = result.value.warnings[0]
        assert warning.expected == "Payload/BongoCat.app"
        assert "does not contain Payload/BongoCat.app" in warning.message

    def test_similar_app_name_does_not_match(self, tmp_path: Path) -> None:
        path = _ipa(tmp_path / "a.ipa", {"Payload/BongoCatPro.app/x": b""})
        result = validate(path, "BongoCat")
        assert isinstance(result, Ok)
        assert not result.value.clean

    def test_missing_file(self, tmp_path: Path) -> None:
        result = validate(tmp_path / "missing.ipa", "BongoCat")
        assert result == Err(ArtifactNotFound(path=tmp_path / "missing.ipa"))

    def test_not_an_archive(self, tmp_path: Path) -> None:
        path = tmp_path / "a.ipa"
        path.write_text("this is not a zip", encoding="utf-8")

        result = validate(path, "BongoCat")
        assert isinstance(result, Err)
        assert isinstance(result.error, CorruptArchive)

    def test_truncated_archive(self, tmp_path: Path) -> None:
        path = _ipa(tmp_path / "a.ipa", {"Payload/BongoCat.app/big": b"x" * 4096})
        data = path.read_bytes()
        path.write_bytes(data[: len(data) // 2])

        result = validate(path, "BongoCat")
        assert isinstance(result, Err)
        assert isinstance(result.error, CorruptArchive)

    def test_validation_does_not_modify_artifact(self, tmp_path: Path) -> None:
        path = _ipa(tmp_path / "a.ipa", {"Payload/BongoCat.app/x": b"1"})
        before = (path.read_bytes(), path.stat().st_mtime_ns)
        validate(path, "BongoCat")
        assert (path.read_bytes(), path.stat().st_mtime_ns) == before


class TestSizeLabel:
    def test_units(self) -> None:
        assert Artifact(Path("a"), 512).size_label == "512B"
        assert Artifact(Path("a"), 2048).size_label == "2.0KB"
        assert Artifact(Path("a"), 5 * 1024 * 1024).size_label == "5.0MB"


class TestArchiveBundle:
    def test_ditto_keeps_parent(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        runner = ZipRunner()
        dest = tmp_path / "out.zip"

        result = archive_bundle(bundle, dest, runner=runner, cwd=tmp_path)
        assert result == Ok(dest)
        assert runner.calls == [["ditto", "-c", "-k", "--keepParent", str(bundle), str(dest)]]
        with zipfile.ZipFile(dest) as archive:
            assert "BongoCat.app/Contents/MacOS/BongoCat" in archive.namelist()

    def test_missing_bundle(self, tmp_path: Path) -> None:
        result = archive_bundle(
            tmp_path / "None.app", tmp_path / "o.zip", runner=ZipRunner(), cwd=tmp_path
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, ArtifactNotFound)

    def test_missing_ditto(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        result = archive_bundle(
            bundle, tmp_path / "o.zip", runner=ZipRunner(has_ditto=False), cwd=tmp_path
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, ToolNotFound)

    def test_ditto_failure(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        result = archive_bundle(
            bundle, tmp_path / "o.zip", runner=ZipRunner(fail=True), cwd=tmp_path
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, StepFailed)
        assert "PKZip" in result.error.output


class TestTemporaryArchive:
    def test_removed_after_success(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        with temporary_archive(bundle, runner=ZipRunner(), cwd=tmp_path, purpose="notarize") as res:
            assert isinstance(res, Ok)
            archive = res.value
            assert archive.name == "BongoCat-notarize.zip"
            assert archive.is_file()
        assert not archive.exists()
        assert not archive.parent.exists()

    def test_removed_after_exception(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        archive: Path | None = None
        try:
            with temporary_archive(
                bundle, runner=ZipRunner(), cwd=tmp_path, purpose="upload"
            ) as res:
                assert isinstance(res, Ok)
                archive = res.value
                raise RuntimeError("submission blew up")
        except RuntimeError:
            pass
        assert archive is not None
        assert not archive.parent.exists()

    def test_failure_still_cleans_up(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        with temporary_archive(
            bundle, runner=ZipRunner(fail=True), cwd=tmp_path, purpose="upload"
        ) as res:
            assert isinstance(res, Err)
