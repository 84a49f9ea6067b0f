"""Typed project settings loaded from ``shipyard.toml``.

The file is optional; every field has a default matching the layout of
the BongoCat repository. Credentials are *not* part of this file: they
come from the process environment (see ``shipyard.services.credentials``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_str, get_table

__all__ = [
    "AppConfig",
    "ArtifactsConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "NotaryConfig",
    "PathsConfig",
    "ScriptsConfig",
    "Settings",
    "load_settings",
    "load_settings_or_default",
]

CONFIG_FILENAME = "shipyard.toml"

DEFAULT_APP_NAME = "BongoCat"
DEFAULT_BUNDLE_ID = "com.leaptech.bongocat"

# Notarization polling
DEFAULT_POLL_INTERVAL_SECONDS = 30.0
DEFAULT_POLL_BACKOFF = 1.0
DEFAULT_POLL_MAX_INTERVAL_SECONDS = 5 * 60.0
DEFAULT_POLL_MAX_WAIT_SECONDS = 2 * 60 * 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the settings file cannot be read or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class AppConfig:
    name: str = DEFAULT_APP_NAME
    bundle_id: str = DEFAULT_BUNDLE_ID


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Paths relative to the project root.

    ``scratch_dir`` is the SwiftPM build directory, ``build_dir`` the
    packaging output; both are wiped before every build.
    """

    scratch_dir: str = "build"
    build_dir: str = "Build"
    package_dir: str = "Build/package"


@dataclass(frozen=True, slots=True)
class ScriptsConfig:
    """External step scripts, relative to the project root."""

    build: str = "Scripts/build.sh"
    package: str = "Scripts/package_app.sh"
    bump_version: str = "Scripts/bump_version.sh"

    def all(self) -> tuple[str, ...]:
        return (self.build, self.package, self.bump_version)


@dataclass(frozen=True, slots=True)
class NotaryConfig:
    """Submission polling and backend choice for the deliver pipeline."""

    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    backoff: float = DEFAULT_POLL_BACKOFF
    max_interval: float = DEFAULT_POLL_MAX_INTERVAL_SECONDS
    max_wait: float = DEFAULT_POLL_MAX_WAIT_SECONDS
    method: str = "notarytool"


@dataclass(frozen=True, slots=True)
class ArtifactsConfig:
    """Where the store upload looks for its package.

    ``pattern`` may reference ``{app}``.
    """

    search_root: str = "Build"
    pattern: str = "{app}-*-AppStore.ipa"


@dataclass(frozen=True, slots=True)
class Settings:
    """Main settings container."""

    app: AppConfig = field(default_factory=AppConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    scripts: ScriptsConfig = field(default_factory=ScriptsConfig)
    notary: NotaryConfig = field(default_factory=NotaryConfig)
    artifacts: ArtifactsConfig = field(default_factory=ArtifactsConfig)

    @property
    def artifact_pattern(self) -> str:
        return self.artifacts.pattern.format(app=self.app.name)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Settings:
        """Create Settings from parsed TOML."""
        app: StrDict = get_table(data, "app") or {}
        paths: StrDict = get_table(data, "paths") or {}
        scripts: StrDict = get_table(data, "scripts") or {}
        notary: StrDict = get_table(data, "notary") or {}
        artifacts: StrDict = get_table(data, "artifacts") or {}

        notary_cfg = NotaryConfig(
            poll_interval=_float_or(notary, "poll_interval", DEFAULT_POLL_INTERVAL_SECONDS),
            backoff=_float_or(notary, "backoff", DEFAULT_POLL_BACKOFF),
            max_interval=_float_or(notary, "max_interval", DEFAULT_POLL_MAX_INTERVAL_SECONDS),
            max_wait=_float_or(notary, "max_wait", DEFAULT_POLL_MAX_WAIT_SECONDS),
            method=get_str(notary, "method") or "notarytool",
        )
        if notary_cfg.poll_interval <= 0 or notary_cfg.max_wait <= 0:
            raise ValueError("notary.poll_interval and notary.max_wait must be positive")
        if notary_cfg.backoff < 1.0:
            raise ValueError("notary.backoff must be >= 1.0")

        return cls(
            app=AppConfig(
                name=get_str(app, "name") or DEFAULT_APP_NAME,
                bundle_id=get_str(app, "bundle_id") or DEFAULT_BUNDLE_ID,
            ),
            paths=PathsConfig(
                scratch_dir=get_str(paths, "scratch_dir") or "build",
                build_dir=get_str(paths, "build_dir") or "Build",
                package_dir=get_str(paths, "package_dir") or "Build/package",
            ),
            scripts=ScriptsConfig(
                build=get_str(scripts, "build") or "Scripts/build.sh",
                package=get_str(scripts, "package") or "Scripts/package_app.sh",
                bump_version=get_str(scripts, "bump_version") or "Scripts/bump_version.sh",
            ),
            notary=notary_cfg,
            artifacts=ArtifactsConfig(
                search_root=get_str(artifacts, "search_root") or "Build",
                pattern=get_str(artifacts, "pattern") or "{app}-*-AppStore.ipa",
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Settings root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Settings file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading settings: {e}", path=path))


def load_settings(path: Path) -> Result[Settings, ConfigError]:
    """Load and validate settings from a TOML file.

    Args:
        path: Path to shipyard.toml

    Returns:
        Ok(Settings) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Settings.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid settings: {e}", path=path))


def load_settings_or_default(root: Path) -> Result[Settings, ConfigError]:
    """Load ``<root>/shipyard.toml`` if present, else default settings.

    A file that exists but is invalid is still an error.
    """
    path = root / CONFIG_FILENAME
    if not path.exists():
        return Ok(Settings())
    return load_settings(path)


def _float_or(table: Mapping[str, object], key: str, default: float) -> float:
    """Like ``get_float`` but only an absent key falls back; 0 is kept for validation."""
    value = get_float(table, key)
    return default if value is None else value
